"""Abacus practice: free play, guided targets, timed challenge and error review.

The drill owns its AbacusModel. Guided and review answers are checked
explicitly with check_answer(); during a challenge every abacus change that
hits the target scores on its own.
"""
import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from pydantic import BaseModel, Field
from abacus_academy.config import settings as app_settings
from abacus_academy.constants import (
    CHALLENGE_DURATION,
    CHALLENGE_XP,
    DEFAULT_COLUMNS,
    PRACTICE_BASE_POINTS,
    PRACTICE_BASE_XP,
    PRACTICE_STREAK_BONUS,
    PRACTICE_XP_STREAK_CAP,
)
from abacus_academy.services.abacus import AbacusModel
from abacus_academy.services.drill_base import DrillBase, DrillStateError
from abacus_academy.services.interfaces import Sound, ToneSink
from abacus_academy.services.level_progression import add_xp
from abacus_academy.services.presentation import SleepFunc
from abacus_academy.services.problem_generator import random_target
from abacus_academy.services.progress_state import ErrorRecord
from abacus_academy.services.progress_store import ProgressStore
from abacus_academy.services.tracking import remove_errors, update_personal_best

logger = logging.getLogger(__name__)


class PracticeMode(str, Enum):
    FREE = "free"
    GUIDED = "guided"
    CHALLENGE = "challenge"
    REVIEW = "review"


class PracticeSettings(BaseModel):
    columns: int = Field(DEFAULT_COLUMNS, ge=1, le=13, description="Rods on the practice abacus")


@dataclass(frozen=True)
class CheckResult:
    """Outcome of checking the abacus against the target."""
    is_correct: bool
    value: int
    target: int
    points: int
    score: int
    streak: int
    hint: Optional[str] = None
    level_up: Optional[Dict] = None
    review_complete: bool = False
    bonus_xp: int = 0


@dataclass(frozen=True)
class ChallengeSummary:
    score: int
    hits: int
    bonus_xp: int
    new_record: bool
    level_up: Optional[Dict] = None


def practice_points(streak: int) -> int:
    return PRACTICE_BASE_POINTS + streak * PRACTICE_STREAK_BONUS


def guided_xp(streak: int) -> int:
    return PRACTICE_BASE_XP + min(streak, PRACTICE_XP_STREAK_CAP)


def challenge_xp(streak: int) -> int:
    return CHALLENGE_XP


class PracticeDrill(DrillBase):
    """Practice session on an owned abacus."""

    mode = "practice"

    def __init__(
        self,
        store: ProgressStore,
        settings: Union[PracticeSettings, Dict[str, Any], None] = None,
        tones: Optional[ToneSink] = None,
        rng: Optional[random.Random] = None,
        tick_seconds: Optional[float] = None,
        sleep: SleepFunc = asyncio.sleep
    ) -> None:
        super().__init__(store, tones)
        if settings is None:
            settings = PracticeSettings()
        elif not isinstance(settings, PracticeSettings):
            settings = PracticeSettings(**dict(settings))

        self.settings = settings
        self.abacus = AbacusModel(settings.columns, on_change=self._on_abacus_change, tones=tones)
        self.practice_mode = PracticeMode.FREE
        self.target: Optional[int] = None
        self.time_left = 0
        self.last_challenge: Optional[ChallengeSummary] = None
        self._rng = rng or random
        self._tick_seconds = app_settings.CHALLENGE_TICK_SECONDS if tick_seconds is None else tick_seconds
        self._sleep = sleep
        self._challenge_active = False
        self._challenge_finished = False
        self._countdown_task: Optional[asyncio.Task] = None
        self._review_queue: List[ErrorRecord] = []
        self._review_index = 0
        self._resolved: List[ErrorRecord] = []
        self._challenge_listeners: List[Callable[[ChallengeSummary], None]] = []

    @property
    def challenge_active(self) -> bool:
        return self._challenge_active

    @property
    def review_remaining(self) -> int:
        return max(0, len(self._review_queue) - self._review_index)

    @property
    def resolved_errors(self) -> Tuple[ErrorRecord, ...]:
        return tuple(self._resolved)

    def on_challenge_end(self, callback: Callable[[ChallengeSummary], None]) -> None:
        """Register a callback fired once when a challenge ends."""
        self._challenge_listeners.append(callback)

    # Mode handling

    def set_mode(self, mode: Union[PracticeMode, str]) -> PracticeMode:
        """
        Switch practice mode, starting a fresh session.

        Switching to review with an empty error log falls back to free mode.

        Returns:
            The mode actually entered
        """
        mode = PracticeMode(mode)
        self.stop()
        self._reset_session()
        self.abacus.reset()
        self.target = None
        self.practice_mode = mode

        if mode == PracticeMode.GUIDED:
            self.new_target()
        elif mode == PracticeMode.CHALLENGE:
            self.time_left = CHALLENGE_DURATION
            self._challenge_finished = False
        elif mode == PracticeMode.REVIEW:
            if not self._start_review():
                self.practice_mode = PracticeMode.FREE

        logger.info(f"Practice mode set to {self.practice_mode.value}", extra={"mode": self.practice_mode.value})
        return self.practice_mode

    def new_target(self) -> Optional[int]:
        """Pick the next target for the current mode."""
        if self.practice_mode in (PracticeMode.GUIDED, PracticeMode.CHALLENGE):
            self.target = random_target(self.abacus.columns, self._rng, exclude=self.abacus.get_value())
        elif self.practice_mode == PracticeMode.REVIEW and self.review_remaining:
            self.target = self._review_queue[self._review_index].correct_answer
        else:
            self.target = None
        return self.target

    def check_answer(self) -> CheckResult:
        """
        Compare the abacus against the target.

        Raises:
            DrillStateError: In free mode, outside an active challenge, or
                             when there is no target
        """
        if self.practice_mode == PracticeMode.FREE or self.target is None:
            raise DrillStateError("No target to check against")
        if self.practice_mode == PracticeMode.CHALLENGE and not self._challenge_active:
            raise DrillStateError("Challenge is not running")

        value = self.abacus.get_value()
        target = self.target

        if value != target:
            self._record_wrong(self.practice_mode.value)
            return CheckResult(
                is_correct=False,
                value=value,
                target=target,
                points=0,
                score=self.session.score,
                streak=0,
                hint=_hint(value, target),
            )

        if self.practice_mode == PracticeMode.REVIEW:
            return self._score_review()
        return self._score_hit()

    # Challenge

    def start_challenge(self) -> int:
        """
        Begin a challenge countdown with a fresh score.

        Returns:
            The first target
        """
        if self.practice_mode != PracticeMode.CHALLENGE:
            raise DrillStateError("Not in challenge mode")

        self._cancel_countdown()
        self._reset_session()
        self.abacus.reset()
        self.time_left = CHALLENGE_DURATION
        self.last_challenge = None
        self._challenge_active = True
        self._challenge_finished = False
        self.session.is_running = True

        logger.info("Challenge started", extra={"mode": "challenge"})
        return self.new_target()

    def tick(self) -> Optional[ChallengeSummary]:
        """
        Advance the countdown by one unit.

        Returns:
            The summary when this tick ended the challenge, otherwise None
        """
        if not self._challenge_active:
            return None

        self.time_left = max(0, self.time_left - 1)
        self._play(Sound.TICK)
        if self.time_left <= 0:
            return self.end_challenge()
        return None

    async def run_countdown(self) -> Optional[ChallengeSummary]:
        """Drive tick() until the challenge ends or is stopped."""
        while self._challenge_active:
            await self._sleep(self._tick_seconds)
            if not self._challenge_active:
                break
            summary = self.tick()
            if summary is not None:
                return summary
        return self.last_challenge

    def start_countdown(self) -> asyncio.Task:
        """Run the countdown on its own task. Needs a running event loop."""
        self._cancel_countdown()
        self._countdown_task = asyncio.create_task(self.run_countdown())
        return self._countdown_task

    def end_challenge(self) -> Optional[ChallengeSummary]:
        """
        Finish the challenge.

        The bonus of floor(score / 2) XP and the personal best update happen
        exactly once per challenge; later calls return None.
        """
        if self._challenge_finished or not self._challenge_active:
            return None

        self._challenge_active = False
        self._challenge_finished = True
        self.session.is_running = False
        self._cancel_countdown()

        score = self.session.score
        bonus = score // 2
        level_up = add_xp(self.store, bonus, self.tones)
        new_record = update_personal_best(self.store, "challenge", score, time=CHALLENGE_DURATION)

        summary = ChallengeSummary(
            score=score,
            hits=self.session.correct_count,
            bonus_xp=bonus,
            new_record=new_record,
            level_up=level_up,
        )
        self.last_challenge = summary
        self.target = None

        logger.info("Challenge finished", extra={"mode": "challenge", "score": score})
        for callback in list(self._challenge_listeners):
            callback(summary)
        return summary

    # Review

    def clear_resolved_errors(self) -> int:
        """Remove the errors answered correctly during review from the log."""
        removed = remove_errors(self.store, self._resolved)
        self._resolved = []
        return removed

    # Lifecycle

    def stop(self) -> None:
        """Stop any running challenge without awarding its bonus."""
        self._cancel_countdown()
        if self._challenge_active:
            logger.info("Challenge stopped", extra={"mode": "challenge", "score": self.session.score})
        self._challenge_active = False
        self.session.is_running = False

    def close(self) -> None:
        self.stop()
        self.abacus.reset()
        self._challenge_listeners.clear()

    # Internals

    def _start_review(self) -> bool:
        # Error log is newest first; review drains it oldest first
        self._review_queue = list(reversed(self.store.error_tracking.errors))
        self._review_index = 0
        self._resolved = []
        if not self._review_queue:
            logger.info("No errors to review", extra={"mode": "review"})
            return False
        self.session.is_running = True
        self.new_target()
        return True

    def _score_hit(self) -> CheckResult:
        xp_for = challenge_xp if self.practice_mode == PracticeMode.CHALLENGE else guided_xp
        target = self.target
        points, level_up = self._record_correct(self.practice_mode.value, practice_points, xp_for)

        self.abacus.reset()
        self.new_target()
        return CheckResult(
            is_correct=True,
            value=target,
            target=target,
            points=points,
            score=self.session.score,
            streak=self.session.streak,
            level_up=level_up,
        )

    def _score_review(self) -> CheckResult:
        target = self.target
        points, level_up = self._record_correct(self.practice_mode.value, practice_points, guided_xp)

        self._resolved.append(self._review_queue[self._review_index])
        self._review_index += 1
        self.abacus.reset()

        review_complete = self.review_remaining == 0
        bonus = 0
        if review_complete:
            bonus = self.session.score
            level_up = add_xp(self.store, bonus, self.tones) or level_up
            self.session.is_running = False
            self.target = None
            logger.info("Review finished", extra={"mode": "review", "score": self.session.score})
        else:
            self.new_target()

        return CheckResult(
            is_correct=True,
            value=target,
            target=target,
            points=points,
            score=self.session.score,
            streak=self.session.streak,
            level_up=level_up,
            review_complete=review_complete,
            bonus_xp=bonus,
        )

    def _on_abacus_change(self, value: int, values: Tuple[int, ...]) -> None:
        if (
            self.practice_mode == PracticeMode.CHALLENGE
            and self._challenge_active
            and self.target is not None
            and value == self.target
        ):
            self._score_hit()

    def _cancel_countdown(self) -> None:
        task = self._countdown_task
        self._countdown_task = None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()


def _hint(value: int, target: int) -> str:
    direction = "more" if value < target else "less"
    return f"The abacus shows {value}; the target is {target} ({direction} needed)"
