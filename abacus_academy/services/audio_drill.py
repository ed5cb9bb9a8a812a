"""Audio anzan: terms dictated through speech synthesis."""
import asyncio
import logging
from typing import Any, Dict, List, Optional
from pydantic import Field, field_validator
from abacus_academy.constants import AUDIO_POINTS, AUDIO_XP, OPERATOR_WORDS
from abacus_academy.services.drill_base import (
    DrillSettings,
    DrillState,
    DrillStateError,
    ProblemFactory,
    SpeechUnavailableError,
    TimedDrill,
)
from abacus_academy.services.interfaces import SpeechSink, ToneSink
from abacus_academy.services.presentation import CancellationToken, SleepFunc, Step, build_speech_script, run_script
from abacus_academy.services.problem_generator import Problem, generate_problem
from abacus_academy.services.progress_store import ProgressStore

logger = logging.getLogger(__name__)


class AudioSettings(DrillSettings):
    lang: str = Field("zh-TW", description="Speech language tag")
    rate: float = Field(1.0, gt=0, le=3.0, description="Speech rate multiplier")

    @field_validator("lang")
    @classmethod
    def validate_lang(cls, v: str) -> str:
        if v not in OPERATOR_WORDS:
            raise ValueError(f"Unsupported speech language: {v}")
        return v


class AudioDrill(TimedDrill):
    """
    Audio drill session.

    Every correct answer is worth a flat 15 points and 15 XP. The streak is
    still tracked for statistics.
    """

    mode = "audio"
    settings_model = AudioSettings

    def __init__(
        self,
        store: ProgressStore,
        speech: Optional[SpeechSink] = None,
        tones: Optional[ToneSink] = None,
        generator: ProblemFactory = generate_problem,
        sleep: SleepFunc = asyncio.sleep
    ) -> None:
        super().__init__(store, tones=tones, generator=generator, sleep=sleep)
        self.speech = speech

    def _check_ready(self) -> None:
        if self.speech is None or not self.speech.available:
            logger.warning("Speech synthesis unavailable, audio drill not started", extra={"mode": self.mode})
            raise SpeechUnavailableError("Speech synthesis is not available")

    def _settings_from_store(self) -> Dict[str, Any]:
        training = self.store.training
        return {
            "digits": training.digits,
            "rows": training.rows,
            "lang": training.lang,
            "rate": training.rate,
        }

    def _build_script(self, problem: Problem) -> List[Step]:
        return build_speech_script(problem.nums, self.settings.lang)

    async def _run(self, steps: List[Step], token: CancellationToken) -> bool:
        return await run_script(
            steps,
            token,
            speech=self.speech,
            tones=self.tones,
            lang=self.settings.lang,
            rate=self.settings.rate,
            on_advance=self._on_advance,
            sleep=self._sleep,
        )

    def _points_for(self, streak: int) -> int:
        return AUDIO_POINTS

    def _xp_for(self, streak: int) -> int:
        return AUDIO_XP

    def _stop_output(self) -> None:
        if self.speech is not None:
            self.speech.stop_speaking()

    async def replay(self) -> bool:
        """
        Dictate the current problem again.

        Only valid while an answer is awaited; the problem and counters stay
        the same.
        """
        problem = self.session.current_problem
        if self.state != DrillState.AWAITING_ANSWER or problem is None:
            raise DrillStateError("Nothing to replay")
        self._check_ready()
        return await self._present(problem)
