"""Tests for presentation scripts and the cancellable interpreter."""
import asyncio
from abacus_academy.services.interfaces import Sound
from abacus_academy.services.presentation import (
    Advance,
    CancellationToken,
    HideTerm,
    PlayTone,
    ShowTerm,
    Speak,
    Wait,
    build_flash_script,
    build_speech_script,
    operator_words,
    run_script,
)
from conftest import FakeSleep, FakeSpeech, RecordingPresentation, RecordingTones


class TestBuildFlashScript:
    """Tests for flash step generation."""

    def test_steps_per_term(self):
        steps = build_flash_script((3, -2), display_ms=700, gap_ms=200)

        assert steps == [
            Advance(0), PlayTone(Sound.FLASH), ShowTerm(3), Wait(700), HideTerm(), Wait(200),
            Advance(1), PlayTone(Sound.FLASH), ShowTerm(-2), Wait(700), HideTerm(), Wait(200),
        ]


class TestBuildSpeechScript:
    """Tests for dictation step generation."""

    def test_operator_words_before_later_terms(self):
        steps = build_speech_script((3, 5, -2), "zh-TW")
        spoken = [step.text for step in steps if isinstance(step, Speak)]
        assert spoken == ["3", "加", "5", "減", "2"]

    def test_pauses(self):
        steps = build_speech_script((4, -1), "en-US")
        waits = [step.ms for step in steps if isinstance(step, Wait)]
        assert waits == [500, 300, 500]

    def test_unknown_language_falls_back_to_english(self):
        assert operator_words("fr-FR") == {"plus": "plus", "minus": "minus"}


class TestRunScript:
    """Tests for the interpreter."""

    def test_runs_all_steps_in_order(self):
        presentation = RecordingPresentation()
        tones = RecordingTones()
        sleep = FakeSleep()
        advanced = []

        completed = asyncio.run(run_script(
            build_flash_script((1, 2), 700, 200),
            CancellationToken(),
            presentation=presentation,
            tones=tones,
            on_advance=advanced.append,
            sleep=sleep,
        ))

        assert completed is True
        assert presentation.events == [("show", 1), ("hide",), ("show", 2), ("hide",)]
        assert tones.sounds == [Sound.FLASH, Sound.FLASH]
        assert sleep.delays == [0.7, 0.2, 0.7, 0.2]
        assert advanced == [0, 1]

    def test_cancelled_token_stops_before_next_step(self):
        """No term is shown after the token is cancelled."""
        token = CancellationToken()
        presentation = RecordingPresentation(on_show=lambda value: token.cancel())

        completed = asyncio.run(run_script(
            build_flash_script((1, 2, 3), 700, 200),
            token,
            presentation=presentation,
            sleep=FakeSleep(),
        ))

        assert completed is False
        assert presentation.events == [("show", 1)]

    def test_pre_cancelled_token_runs_nothing(self):
        token = CancellationToken()
        token.cancel()
        presentation = RecordingPresentation()

        completed = asyncio.run(run_script(build_flash_script((1,), 700, 200), token, presentation=presentation))

        assert completed is False
        assert presentation.events == []

    def test_speech_steps_use_language_and_rate(self):
        speech = FakeSpeech()

        asyncio.run(run_script(
            build_speech_script((7, 2), "en-US"),
            CancellationToken(),
            speech=speech,
            lang="en-US",
            rate=1.5,
            sleep=FakeSleep(),
        ))

        assert speech.spoken == [("7", "en-US", 1.5), ("plus", "en-US", 1.5), ("2", "en-US", 1.5)]
