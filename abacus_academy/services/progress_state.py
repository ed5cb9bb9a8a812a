"""Typed state sections held by the progress store."""
from dataclasses import dataclass, field, fields, is_dataclass, replace
from typing import Any, Dict, List, Optional, Tuple
from abacus_academy.constants import (
    DEFAULT_FLASH_GAP_MS,
    DEFAULT_FLASH_SPEED_MS,
    INITIAL_XP_TO_NEXT_LEVEL,
    MAX_ERRORS,
)


@dataclass
class UserProfile:
    """Learner profile and level progression."""
    name: str = "小珠算師"
    level: int = 1
    xp: int = 0
    xp_to_next_level: int = INITIAL_XP_TO_NEXT_LEVEL
    avatar: str = "🧒"
    streak: int = 0  # consecutive practice days
    last_practice_date: Optional[str] = None  # ISO date, e.g. "2024-05-01"


@dataclass
class UiPrefs:
    """Presentation preferences consumed by the host."""
    theme: str = "light"  # 'light', 'dark', 'neon'
    sound_enabled: bool = True
    show_tutorial: bool = True


@dataclass
class TrainingSettings:
    """Last used drill settings. Not persisted."""
    mode: str = "flash"  # 'flash', 'audio', 'practice', 'review'
    digits: int = 1
    rows: int = 3
    speed: int = DEFAULT_FLASH_SPEED_MS
    gap: int = DEFAULT_FLASH_GAP_MS
    lang: str = "zh-TW"
    rate: float = 1.0


@dataclass
class WorksheetSettings:
    """Printable worksheet generator settings."""
    mode: str = "calc"  # 'read', 'draw', 'friends', 'calc'
    range_type: str = "0-9"
    friend_type: str = "5"
    friend_rows: int = 2
    friend_groups: int = 2
    calc_rows: int = 3
    calc_digits: int = 1
    calc_blocks: int = 4
    show_answer: bool = False


@dataclass
class Statistics:
    """Lifetime answer counters."""
    total_questions: int = 0
    correct_answers: int = 0
    flash_questions: int = 0
    flash_correct: int = 0
    audio_questions: int = 0
    audio_correct: int = 0
    practice_questions: int = 0
    practice_correct: int = 0
    best_streak: int = 0
    total_practice_time: int = 0  # minutes


@dataclass(frozen=True)
class ErrorRecord:
    """One wrong answer, kept for review."""
    problem: Tuple[int, ...] = ()
    user_answer: Optional[int] = None
    correct_answer: int = 0
    type: str = ""
    timestamp: str = ""


@dataclass
class ErrorTracking:
    """Bounded error log, newest first."""
    enabled: bool = True
    errors: List[ErrorRecord] = field(default_factory=list, metadata={"item_type": ErrorRecord})
    max_errors: int = MAX_ERRORS
    weak_areas: List[str] = field(default_factory=list)


@dataclass
class PersonalRecord:
    """Best flash or audio session."""
    score: int = 0
    accuracy: int = 0
    date: Optional[str] = None


@dataclass
class ChallengeRecord:
    """Best timed challenge."""
    score: int = 0
    time: int = 0
    date: Optional[str] = None


@dataclass
class PersonalRecords:
    flash: PersonalRecord = field(default_factory=PersonalRecord)
    audio: PersonalRecord = field(default_factory=PersonalRecord)
    challenge: ChallengeRecord = field(default_factory=ChallengeRecord)


@dataclass
class Leaderboard:
    personal: PersonalRecords = field(default_factory=PersonalRecords)


@dataclass
class AppState:
    """Root of all state held by the progress store."""
    user: UserProfile = field(default_factory=UserProfile)
    ui: UiPrefs = field(default_factory=UiPrefs)
    training: TrainingSettings = field(default_factory=TrainingSettings)
    worksheet: WorksheetSettings = field(default_factory=WorksheetSettings)
    statistics: Statistics = field(default_factory=Statistics)
    error_tracking: ErrorTracking = field(default_factory=ErrorTracking)
    leaderboard: Leaderboard = field(default_factory=Leaderboard)


DURABLE_SECTIONS = ("user", "ui", "worksheet", "statistics", "error_tracking", "leaderboard")
"""Sections written to the persisted snapshot."""


def section_to_dict(section: Any) -> Dict[str, Any]:
    """Convert a section to plain JSON-friendly data."""
    data = {}
    for f in fields(section):
        data[f.name] = _to_plain(getattr(section, f.name))
    return data


def _to_plain(value: Any) -> Any:
    if is_dataclass(value):
        return section_to_dict(value)
    if isinstance(value, (list, tuple)):
        return [_to_plain(item) for item in value]
    return value


def merge_into(default: Any, data: Dict[str, Any]) -> Any:
    """
    Merge persisted data field-by-field into a default instance.

    Missing fields keep their defaults and unknown keys are ignored, so a
    snapshot from an older schema still loads.

    Args:
        default: Dataclass instance holding default values
        data: Persisted mapping for that instance

    Returns:
        New instance of the same dataclass
    """
    updates = {}
    for f in fields(default):
        if f.name not in data:
            continue
        current = getattr(default, f.name)
        value = data[f.name]

        if is_dataclass(current) and isinstance(value, dict):
            value = merge_into(current, value)
        elif "item_type" in f.metadata and isinstance(value, list):
            item_type = f.metadata["item_type"]
            value = [merge_into(item_type(), item) for item in value if isinstance(item, dict)]
        elif isinstance(current, tuple) and isinstance(value, list):
            value = tuple(value)
        elif isinstance(current, list) and isinstance(value, list):
            value = list(value)

        updates[f.name] = value
    return replace(default, **updates)
