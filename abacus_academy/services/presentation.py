"""Cancellable presentation scripts for timed drills.

A drill turns a problem into a flat list of steps (show a term, wait, hide
it, speak a word, ...) and hands it to run_script. The interpreter executes
the steps strictly in order and checks the cancellation token before every
step and after every suspension, so a stopped drill never shows or speaks
anything further.
"""
import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence, Union
from abacus_academy.constants import (
    AUDIO_NUMBER_PAUSE_MS,
    AUDIO_OPERATOR_PAUSE_MS,
    OPERATOR_WORDS,
)
from abacus_academy.services.interfaces import PresentationSink, Sound, SpeechSink, ToneSink

SleepFunc = Callable[[float], Awaitable[None]]


class CancellationToken:
    """Session-scoped stop flag shared by a drill and its running script."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


@dataclass(frozen=True)
class Advance:
    """Mark the start of term `index`."""
    index: int


@dataclass(frozen=True)
class ShowTerm:
    value: int


@dataclass(frozen=True)
class HideTerm:
    pass


@dataclass(frozen=True)
class Wait:
    ms: int


@dataclass(frozen=True)
class Speak:
    text: str


@dataclass(frozen=True)
class PlayTone:
    sound: Sound


Step = Union[Advance, ShowTerm, HideTerm, Wait, Speak, PlayTone]


def build_flash_script(nums: Sequence[int], display_ms: int, gap_ms: int) -> List[Step]:
    """
    Steps for flashing each term: tone, show, hold, hide, gap.

    Args:
        nums: Signed terms in presentation order
        display_ms: How long each term stays visible
        gap_ms: Blank time before the next term
    """
    steps: List[Step] = []
    for index, value in enumerate(nums):
        steps.extend([
            Advance(index),
            PlayTone(Sound.FLASH),
            ShowTerm(value),
            Wait(display_ms),
            HideTerm(),
            Wait(gap_ms),
        ])
    return steps


def operator_words(lang: str) -> dict:
    """Spoken plus/minus words for a language, English when unknown."""
    return OPERATOR_WORDS.get(lang, OPERATOR_WORDS["en-US"])


def build_speech_script(nums: Sequence[int], lang: str) -> List[Step]:
    """
    Steps for dictating a problem, e.g. "3, plus, 5, minus, 2".

    The first term is spoken without an operator; every later term is
    preceded by its operator word.
    """
    words = operator_words(lang)
    steps: List[Step] = []
    for index, value in enumerate(nums):
        steps.append(Advance(index))
        if index > 0:
            steps.append(Speak(words["plus"] if value >= 0 else words["minus"]))
            steps.append(Wait(AUDIO_OPERATOR_PAUSE_MS))
        steps.append(Speak(str(abs(value))))
        steps.append(Wait(AUDIO_NUMBER_PAUSE_MS))
    return steps


async def run_script(
    steps: Sequence[Step],
    token: CancellationToken,
    presentation: Optional[PresentationSink] = None,
    speech: Optional[SpeechSink] = None,
    tones: Optional[ToneSink] = None,
    lang: str = "en-US",
    rate: float = 1.0,
    on_advance: Optional[Callable[[int], None]] = None,
    sleep: SleepFunc = asyncio.sleep
) -> bool:
    """
    Execute a presentation script.

    Args:
        steps: Script produced by one of the build_* helpers
        token: Checked before each step and after each suspension
        presentation: Sink for ShowTerm/HideTerm
        speech: Sink for Speak
        tones: Sink for PlayTone
        lang: Speech language
        rate: Speech rate
        on_advance: Called with the index of each term as it starts
        sleep: Awaitable delay taking seconds

    Returns:
        True if every step ran, False if the token was cancelled
    """
    for step in steps:
        if token.cancelled:
            return False

        if isinstance(step, Advance):
            if on_advance is not None:
                on_advance(step.index)
        elif isinstance(step, ShowTerm):
            if presentation is not None:
                presentation.show_term(step.value)
        elif isinstance(step, HideTerm):
            if presentation is not None:
                presentation.hide_term()
        elif isinstance(step, PlayTone):
            if tones is not None:
                tones.play_sound(step.sound)
        elif isinstance(step, Wait):
            await sleep(step.ms / 1000)
        elif isinstance(step, Speak):
            if speech is not None:
                await speech.speak(step.text, lang, rate)
        else:
            raise TypeError(f"Unknown presentation step: {step!r}")

    return not token.cancelled
