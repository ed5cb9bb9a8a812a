"""Tests for the flash drill session flow."""
import asyncio
import pytest
from pydantic import ValidationError
from abacus_academy.services.drill_base import DrillState, DrillStateError
from abacus_academy.services.flash_drill import FlashDrill, FlashSettings, flash_points
from abacus_academy.services.interfaces import Sound
from conftest import RecordingPresentation, fixed_problems


def make_drill(store, *problems, presentation=None, tones=None, sleep=None):
    return FlashDrill(
        store,
        presentation=presentation,
        tones=tones,
        generator=fixed_problems(*problems),
        sleep=sleep if sleep is not None else asyncio.sleep,
    )


class TestFlashScoring:
    """Tests for the flash points formula."""

    @pytest.mark.parametrize("streak,points", [(1, 12), (2, 14), (10, 30), (15, 30)])
    def test_points(self, streak, points):
        assert flash_points(streak) == points


class TestFlashSettings:
    """Tests for settings validation."""

    def test_display_time(self):
        assert FlashSettings(speed=1000).display_ms == 700

    def test_rejects_zero_rows(self):
        with pytest.raises(ValidationError):
            FlashSettings(rows=0)

    def test_rejects_negative_gap(self):
        with pytest.raises(ValidationError):
            FlashSettings(gap=-1)


class TestFlashSession:
    """Tests for start, answer and stop."""

    def test_start_presents_every_term(self, store, presentation, tones, fake_sleep):
        drill = make_drill(store, (3, 5, -2), presentation=presentation, tones=tones, sleep=fake_sleep)

        completed = asyncio.run(drill.start({"digits": 1, "rows": 3, "speed": 1000, "gap": 200}))

        assert completed is True
        assert drill.state == DrillState.AWAITING_ANSWER
        assert presentation.shown == [3, 5, -2]
        assert fake_sleep.delays == [0.7, 0.2] * 3
        assert tones.sounds == [Sound.FLASH] * 3
        assert drill.current_index == 2

    def test_start_remembers_training_settings(self, store, fake_sleep):
        drill = make_drill(store, (1, 1), sleep=fake_sleep)

        asyncio.run(drill.start(FlashSettings(rows=2, speed=800)))

        assert store.training.mode == "flash"
        assert store.training.rows == 2
        assert store.training.speed == 800

    def test_first_correct_answer(self, store, tones, fake_sleep):
        """A first correct answer scores 12 points and 10 XP."""
        drill = make_drill(store, (3, 5, -2), tones=tones, sleep=fake_sleep)
        asyncio.run(drill.start())

        result = drill.submit_answer("6")

        assert result.is_correct is True
        assert result.points == 12
        assert drill.score == 12
        assert drill.streak == 1
        assert drill.accuracy == 100
        assert drill.state == DrillState.SCORED
        assert store.user.xp == 10
        assert store.statistics.flash_correct == 1
        assert store.statistics.best_streak == 1
        assert store.leaderboard.personal.flash.score == 12
        assert Sound.CORRECT in tones.sounds

    def test_wrong_answer_resets_streak_and_logs(self, store, tones, fake_sleep):
        drill = make_drill(store, (2, 2), (4, 1), tones=tones, sleep=fake_sleep)

        asyncio.run(drill.start())
        drill.submit_answer(4)
        asyncio.run(drill.next_question())
        result = drill.submit_answer(7)

        assert result.is_correct is False
        assert result.correct_answer == 5
        assert drill.streak == 0
        assert drill.score == 12
        assert drill.total_questions == 2
        assert drill.accuracy == 50
        assert result.error_record is not None
        errors = store.error_tracking.errors
        assert len(errors) == 1
        assert errors[0].problem == (4, 1)
        assert errors[0].user_answer == 7
        assert errors[0].type == "flash"
        assert tones.sounds[-1] == Sound.WRONG

    def test_non_numeric_answer_is_wrong(self, store, fake_sleep):
        drill = make_drill(store, (1, 2), sleep=fake_sleep)
        asyncio.run(drill.start())

        result = drill.submit_answer("three")

        assert result.is_correct is False
        assert result.user_answer is None
        assert store.error_tracking.errors[0].user_answer is None

    def test_streak_bonus_grows(self, store, fake_sleep):
        drill = make_drill(store, (1,), (2,), (3,), sleep=fake_sleep)

        asyncio.run(drill.start({"rows": 1}))
        drill.submit_answer(1)
        asyncio.run(drill.next_question())
        drill.submit_answer(2)
        asyncio.run(drill.next_question())
        result = drill.submit_answer(3)

        assert result.points == 16
        assert drill.score == 12 + 14 + 16

    def test_start_resets_session(self, store, fake_sleep):
        drill = make_drill(store, (1, 1), (2, 2), sleep=fake_sleep)
        asyncio.run(drill.start())
        drill.submit_answer(2)

        asyncio.run(drill.start())

        assert drill.score == 0
        assert drill.total_questions == 0
        assert drill.streak == 0


class TestFlashStateErrors:
    """Tests for operations in the wrong state."""

    def test_submit_before_start(self, store):
        drill = FlashDrill(store)
        with pytest.raises(DrillStateError):
            drill.submit_answer(3)

    def test_submit_twice(self, store, fake_sleep):
        drill = make_drill(store, (1, 1), sleep=fake_sleep)
        asyncio.run(drill.start())
        drill.submit_answer(2)
        with pytest.raises(DrillStateError):
            drill.submit_answer(2)

    def test_next_question_before_start(self, store):
        drill = FlashDrill(store)
        with pytest.raises(DrillStateError):
            asyncio.run(drill.next_question())

    def test_invalid_settings_do_not_start(self, store):
        drill = FlashDrill(store)
        with pytest.raises(ValidationError):
            asyncio.run(drill.start({"speed": 0}))
        assert drill.state == DrillState.IDLE


class TestFlashStop:
    """Tests for aborting a session."""

    def test_stop_during_presentation(self, store, fake_sleep):
        """Stopping mid-problem shows nothing further and discards the problem."""
        drill = None

        def on_show(value):
            if value == 5:
                drill.stop()

        presentation = RecordingPresentation(on_show=on_show)
        drill = make_drill(store, (3, 5, 7), presentation=presentation, sleep=fake_sleep)

        completed = asyncio.run(drill.start())

        assert completed is False
        assert presentation.shown == [3, 5]
        assert presentation.events[-1] == ("hide",)
        assert drill.state == DrillState.IDLE
        assert drill.current_problem is None
        assert drill.is_running is False
        with pytest.raises(DrillStateError):
            drill.submit_answer(15)

    def test_stop_while_awaiting_answer(self, store, fake_sleep):
        drill = make_drill(store, (1, 1), sleep=fake_sleep)
        asyncio.run(drill.start())

        drill.close()

        assert drill.state == DrillState.IDLE
        assert store.statistics.total_questions == 0

    def test_restart_then_stop_cancels_new_presentation(self, store):
        """Stopping after a restart ends the presentation that replaced the first one."""
        presentation = RecordingPresentation()

        async def scenario():
            gate = asyncio.Event()

            async def blocked_sleep(seconds):
                await gate.wait()

            drill = make_drill(store, (3, 5), (4, 6), presentation=presentation, sleep=blocked_sleep)
            first = asyncio.create_task(drill.start({"rows": 2}))
            for _ in range(3):
                await asyncio.sleep(0)
            second = asyncio.create_task(drill.start({"rows": 2}))
            for _ in range(3):
                await asyncio.sleep(0)

            drill.stop()

            assert await asyncio.wait_for(second, 1) is False
            assert await first is False
            return drill

        drill = asyncio.run(scenario())

        assert presentation.shown == [3, 4]
        assert drill.state == DrillState.IDLE
