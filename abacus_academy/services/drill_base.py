"""Shared drill state machine, session counters and scoring.

Timed drills (flash, audio) move through

    IDLE -> PRESENTING -> AWAITING_ANSWER -> SCORED -> PRESENTING ...

and can be stopped from PRESENTING or AWAITING_ANSWER at any time, which
discards the in-flight problem and returns to IDLE.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from pydantic import BaseModel, Field
from abacus_academy.services.interfaces import Sound, ToneSink
from abacus_academy.services.level_progression import add_xp
from abacus_academy.services.presentation import CancellationToken, SleepFunc, Step
from abacus_academy.services.problem_generator import Problem, generate_problem
from abacus_academy.services.progress_state import ErrorRecord
from abacus_academy.services.progress_store import ProgressStore
from abacus_academy.services.tracking import (
    accuracy_percent,
    parse_answer,
    record_answer,
    record_error,
    record_practice_day,
    update_best_streak,
    update_personal_best,
)

logger = logging.getLogger(__name__)

ProblemFactory = Callable[..., Problem]


class DrillState(str, Enum):
    """Where a drill is in its question cycle."""
    IDLE = "idle"
    PRESENTING = "presenting"
    AWAITING_ANSWER = "awaiting_answer"
    SCORED = "scored"


class DrillStateError(RuntimeError):
    """Raised when an operation is not valid in the drill's current state."""


class SpeechUnavailableError(RuntimeError):
    """Raised when an audio drill is started without speech synthesis."""


class DrillSettings(BaseModel):
    """Problem shape shared by all timed drills."""
    digits: int = Field(1, ge=1, le=6, description="Digits per term")
    rows: int = Field(3, ge=1, le=30, description="Number of terms")


@dataclass
class DrillSession:
    """Transient per-session counters. Never persisted."""
    is_running: bool = False
    current_problem: Optional[Problem] = None
    current_index: int = -1
    score: int = 0
    total_questions: int = 0
    correct_count: int = 0
    streak: int = 0


@dataclass(frozen=True)
class AnswerResult:
    """Outcome of one scored answer."""
    is_correct: bool
    user_answer: Optional[int]
    correct_answer: int
    points: int
    score: int
    streak: int
    accuracy: int
    total_questions: int
    level_up: Optional[Dict] = None
    error_record: Optional[ErrorRecord] = None


class DrillBase:
    """Session counters and the writes every scored answer makes."""

    mode: str = ""

    def __init__(self, store: ProgressStore, tones: Optional[ToneSink] = None) -> None:
        self.store = store
        self.tones = tones
        self.session = DrillSession()

    @property
    def score(self) -> int:
        return self.session.score

    @property
    def streak(self) -> int:
        return self.session.streak

    @property
    def total_questions(self) -> int:
        return self.session.total_questions

    @property
    def correct_count(self) -> int:
        return self.session.correct_count

    @property
    def accuracy(self) -> int:
        """Session accuracy percentage, rounded half up."""
        return accuracy_percent(self.session.correct_count, self.session.total_questions)

    def _reset_session(self) -> None:
        self.session = DrillSession()

    def _play(self, sound: Sound) -> None:
        if self.tones is not None:
            self.tones.play_sound(sound)

    def _record_correct(self, stats_mode: str, points_for: Callable[[int], int], xp_for: Callable[[int], int]):
        """
        Apply a correct answer to the session and the store.

        Returns:
            Tuple (points, level_up_info)
        """
        session = self.session
        session.total_questions += 1
        session.correct_count += 1
        session.streak += 1
        points = points_for(session.streak)
        session.score += points

        self._play(Sound.CORRECT)
        record_answer(self.store, stats_mode, True)
        update_best_streak(self.store, session.streak)
        record_practice_day(self.store)
        level_up = add_xp(self.store, xp_for(session.streak), self.tones)
        return points, level_up

    def _record_wrong(self, stats_mode: str) -> None:
        session = self.session
        session.total_questions += 1
        session.streak = 0

        self._play(Sound.WRONG)
        record_answer(self.store, stats_mode, False)
        record_practice_day(self.store)


class TimedDrill(DrillBase):
    """Generate, present, collect and score arithmetic problems."""

    settings_model = DrillSettings

    def __init__(
        self,
        store: ProgressStore,
        tones: Optional[ToneSink] = None,
        generator: ProblemFactory = generate_problem,
        sleep: SleepFunc = asyncio.sleep
    ) -> None:
        super().__init__(store, tones)
        self.generator = generator
        self.settings: Optional[DrillSettings] = None
        self.state = DrillState.IDLE
        self._sleep = sleep
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def current_problem(self) -> Optional[Problem]:
        return self.session.current_problem

    @property
    def current_index(self) -> int:
        return self.session.current_index

    @property
    def is_running(self) -> bool:
        return self.session.is_running

    # Subclass hooks

    def _build_script(self, problem: Problem) -> List[Step]:
        raise NotImplementedError

    async def _run(self, steps: List[Step], token: CancellationToken) -> bool:
        raise NotImplementedError

    def _points_for(self, streak: int) -> int:
        raise NotImplementedError

    def _xp_for(self, streak: int) -> int:
        raise NotImplementedError

    def _check_ready(self) -> None:
        """Raise if the environment cannot run this drill."""

    def _stop_output(self) -> None:
        """Silence any in-flight output when the drill is stopped."""

    def _settings_from_store(self) -> Dict[str, Any]:
        training = self.store.training
        return {"digits": training.digits, "rows": training.rows}

    def _remember_settings(self, settings: DrillSettings) -> None:
        updates = {f"training.{k}": v for k, v in settings.model_dump().items()}
        updates["training.mode"] = self.mode
        self.store.batch_update(updates)

    # Commands

    async def start(self, settings: Any = None) -> bool:
        """
        Start a fresh session and present its first problem.

        Args:
            settings: Settings model, a mapping of its fields, or None to use
                      the training section of the store

        Returns:
            True once the problem was fully presented, False if stopped

        Raises:
            pydantic.ValidationError: If settings are out of range
            SpeechUnavailableError: If the drill needs speech and none exists
        """
        self._check_ready()
        if settings is None:
            settings = self._settings_from_store()
        if not isinstance(settings, self.settings_model):
            settings = self.settings_model(**dict(settings))

        self.stop()
        self.settings = settings
        self._remember_settings(settings)
        self._reset_session()
        logger.info(f"{self.mode} drill started", extra={"mode": self.mode})
        return await self._present_new_problem()

    async def next_question(self) -> bool:
        """Present another problem, keeping the session counters."""
        if self.settings is None:
            raise DrillStateError("No session started")
        if self.state in (DrillState.PRESENTING, DrillState.AWAITING_ANSWER):
            raise DrillStateError(f"Cannot move on while {self.state.value}")
        self._check_ready()
        return await self._present_new_problem()

    def submit_answer(self, value: Any) -> AnswerResult:
        """
        Score an answer to the current problem.

        Non-numeric input counts as a wrong answer.

        Raises:
            DrillStateError: If the drill is not awaiting an answer
        """
        if self.state != DrillState.AWAITING_ANSWER or self.session.current_problem is None:
            raise DrillStateError("No problem is awaiting an answer")

        problem = self.session.current_problem
        user_answer = parse_answer(value)
        is_correct = user_answer == problem.total
        level_up = None
        error_record = None
        points = 0

        if is_correct:
            points, level_up = self._record_correct(self.mode, self._points_for, self._xp_for)
        else:
            self._record_wrong(self.mode)
            error_record = record_error(self.store, problem.nums, user_answer, problem.total, self.mode)

        update_personal_best(self.store, self.mode, self.session.score, accuracy=self.accuracy)
        self.state = DrillState.SCORED

        logger.debug(
            f"{self.mode} answer scored: correct={is_correct}",
            extra={"mode": self.mode, "score": self.session.score, "streak": self.session.streak}
        )

        return AnswerResult(
            is_correct=is_correct,
            user_answer=user_answer,
            correct_answer=problem.total,
            points=points,
            score=self.session.score,
            streak=self.session.streak,
            accuracy=self.accuracy,
            total_questions=self.session.total_questions,
            level_up=level_up,
            error_record=error_record,
        )

    def stop(self) -> None:
        """Abort the current problem and release timers and audio."""
        if self._token is not None:
            self._token.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._stop_output()

        if self.session.is_running:
            logger.info(f"{self.mode} drill stopped", extra={"mode": self.mode, "score": self.session.score})
        self.session.is_running = False
        self.session.current_problem = None
        self.session.current_index = -1
        self.state = DrillState.IDLE

    def close(self) -> None:
        """Tear down when the owning view goes away."""
        self.stop()
        self._task = None
        self._token = None

    # Presentation

    async def _present_new_problem(self) -> bool:
        settings = self.settings
        problem = self.generator(rows=settings.rows, digits=settings.digits)
        self.session.current_problem = problem
        self.session.is_running = True
        return await self._present(problem)

    async def _present(self, problem: Problem) -> bool:
        token = CancellationToken()
        self._token = token
        self.state = DrillState.PRESENTING
        self.session.current_index = -1

        task = asyncio.create_task(self._run(self._build_script(problem), token))
        self._task = task
        try:
            completed = await task
        except asyncio.CancelledError:
            if not token.cancelled:
                raise
            completed = False
        finally:
            # A restarted drill may already own a newer task
            if self._task is task:
                self._task = None

        if not completed or token.cancelled:
            return False

        self.state = DrillState.AWAITING_ANSWER
        return True

    def _on_advance(self, index: int) -> None:
        self.session.current_index = index


__all__ = [
    "AnswerResult",
    "DrillBase",
    "DrillSession",
    "DrillSettings",
    "DrillState",
    "DrillStateError",
    "SpeechUnavailableError",
    "TimedDrill",
]
