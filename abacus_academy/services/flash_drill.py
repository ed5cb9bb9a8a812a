"""Flash anzan: terms flashed one at a time, answer typed at the end."""
import asyncio
import logging
from typing import Any, Dict, List, Optional
from pydantic import Field
from abacus_academy.constants import (
    DEFAULT_FLASH_GAP_MS,
    DEFAULT_FLASH_SPEED_MS,
    FLASH_BASE_POINTS,
    FLASH_DISPLAY_RATIO,
    FLASH_STREAK_BONUS,
    FLASH_STREAK_BONUS_CAP,
    FLASH_XP,
)
from abacus_academy.services.drill_base import DrillSettings, ProblemFactory, TimedDrill
from abacus_academy.services.interfaces import PresentationSink, ToneSink
from abacus_academy.services.presentation import CancellationToken, SleepFunc, Step, build_flash_script, run_script
from abacus_academy.services.problem_generator import Problem, generate_problem
from abacus_academy.services.progress_store import ProgressStore

logger = logging.getLogger(__name__)


class FlashSettings(DrillSettings):
    speed: int = Field(DEFAULT_FLASH_SPEED_MS, ge=100, le=10000, description="Milliseconds per term")
    gap: int = Field(DEFAULT_FLASH_GAP_MS, ge=0, le=5000, description="Blank milliseconds between terms")

    @property
    def display_ms(self) -> int:
        """Time each term stays visible; the rest of the slot is blank."""
        return int(self.speed * FLASH_DISPLAY_RATIO)


def flash_points(streak: int) -> int:
    """10 points plus 2 per streak step, the bonus capped at a streak of 10."""
    return FLASH_BASE_POINTS + min(streak, FLASH_STREAK_BONUS_CAP) * FLASH_STREAK_BONUS


class FlashDrill(TimedDrill):
    """Flash drill session."""

    mode = "flash"
    settings_model = FlashSettings

    def __init__(
        self,
        store: ProgressStore,
        presentation: Optional[PresentationSink] = None,
        tones: Optional[ToneSink] = None,
        generator: ProblemFactory = generate_problem,
        sleep: SleepFunc = asyncio.sleep
    ) -> None:
        super().__init__(store, tones=tones, generator=generator, sleep=sleep)
        self.presentation = presentation

    def _settings_from_store(self) -> Dict[str, Any]:
        training = self.store.training
        return {
            "digits": training.digits,
            "rows": training.rows,
            "speed": training.speed,
            "gap": training.gap,
        }

    def _build_script(self, problem: Problem) -> List[Step]:
        return build_flash_script(problem.nums, self.settings.display_ms, self.settings.gap)

    async def _run(self, steps: List[Step], token: CancellationToken) -> bool:
        return await run_script(
            steps,
            token,
            presentation=self.presentation,
            tones=self.tones,
            on_advance=self._on_advance,
            sleep=self._sleep,
        )

    def _points_for(self, streak: int) -> int:
        return flash_points(streak)

    def _xp_for(self, streak: int) -> int:
        return FLASH_XP

    def _stop_output(self) -> None:
        if self.presentation is not None and self.session.is_running:
            self.presentation.hide_term()
