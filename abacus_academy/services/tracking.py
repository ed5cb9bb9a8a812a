"""Answer statistics, error log, personal records and practice-day streaks."""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence
from abacus_academy.constants import ACCURACY_RATINGS, MIN_QUESTIONS_FOR_RATING
from abacus_academy.services.progress_state import ChallengeRecord, ErrorRecord, PersonalRecord, Statistics
from abacus_academy.services.progress_store import ProgressStore

logger = logging.getLogger(__name__)

# Statistics counters per drill mode
MODE_COUNTERS = {
    "flash": ("flash_questions", "flash_correct"),
    "audio": ("audio_questions", "audio_correct"),
    "practice": ("practice_questions", "practice_correct"),
    "guided": ("practice_questions", "practice_correct"),
    "challenge": ("practice_questions", "practice_correct"),
    "review": ("practice_questions", "practice_correct"),
}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_answer(value: Any) -> Optional[int]:
    """
    Parse a submitted answer.

    Anything that is not an integer (or a string holding one) becomes None,
    which never equals a problem total.

    Examples:
        parse_answer("42") -> 42
        parse_answer(" -7 ") -> -7
        parse_answer("4.5") -> None
        parse_answer(True) -> None
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def accuracy_percent(correct: int, total: int) -> int:
    """
    Percentage of correct answers, rounded half up.

    Integer arithmetic keeps the result exact: 1/8 -> 13, 5/8 -> 63.
    """
    if total <= 0:
        return 0
    return (200 * correct + total) // (2 * total)


def record_answer(store: ProgressStore, mode: str, is_correct: bool) -> None:
    """
    Update lifetime statistics after one answer.

    Args:
        store: Progress store
        mode: Drill mode ('flash', 'audio', 'guided', 'challenge', 'review')
        is_correct: Whether the answer was correct
    """
    stats = store.statistics
    questions_field, correct_field = MODE_COUNTERS[mode]
    bonus = 1 if is_correct else 0

    store.batch_update({
        "statistics.total_questions": stats.total_questions + 1,
        "statistics.correct_answers": stats.correct_answers + bonus,
        f"statistics.{questions_field}": getattr(stats, questions_field) + 1,
        f"statistics.{correct_field}": getattr(stats, correct_field) + bonus,
    })


def update_best_streak(store: ProgressStore, streak: int) -> bool:
    """Raise statistics.best_streak if the current streak beats it."""
    if streak > store.statistics.best_streak:
        return store.set("statistics.best_streak", streak)
    return False


def record_error(
    store: ProgressStore,
    problem: Sequence[int],
    user_answer: Optional[int],
    correct_answer: int,
    mode: str
) -> Optional[ErrorRecord]:
    """
    Prepend a wrong answer to the bounded error log.

    The log keeps at most error_tracking.max_errors entries, newest first;
    the oldest entries are dropped on overflow.

    Returns:
        The stored record, or None when error tracking is disabled
    """
    tracking = store.error_tracking
    if not tracking.enabled:
        return None

    record = ErrorRecord(
        problem=tuple(problem),
        user_answer=user_answer,
        correct_answer=correct_answer,
        type=mode,
        timestamp=utc_timestamp(),
    )
    errors = [record] + list(tracking.errors)
    del errors[tracking.max_errors:]
    store.set("error_tracking.errors", errors)
    return record


def remove_errors(store: ProgressStore, resolved: Iterable[ErrorRecord]) -> int:
    """
    Remove resolved records from the error log.

    Returns:
        Number of records removed
    """
    resolved = list(resolved)
    errors = store.error_tracking.errors
    remaining: List[ErrorRecord] = [record for record in errors if record not in resolved]
    removed = len(errors) - len(remaining)

    if removed:
        store.set("error_tracking.errors", remaining)
        logger.info(f"Removed {removed} resolved error record(s)")
    return removed


def update_personal_best(
    store: ProgressStore,
    mode: str,
    score: int,
    accuracy: int = 0,
    time: int = 0
) -> bool:
    """
    Replace a personal best when the new score is strictly higher.

    Args:
        store: Progress store
        mode: 'flash', 'audio' or 'challenge'
        score: Session score
        accuracy: Session accuracy percentage (flash/audio)
        time: Challenge length in ticks (challenge)

    Returns:
        True if the record was replaced
    """
    current = getattr(store.leaderboard.personal, mode)
    if score <= current.score:
        return False

    if mode == "challenge":
        record = ChallengeRecord(score=score, time=time, date=utc_timestamp())
    else:
        record = PersonalRecord(score=score, accuracy=accuracy, date=utc_timestamp())

    store.set(f"leaderboard.personal.{mode}", record)
    logger.info("New personal best", extra={"mode": mode, "score": score})
    return True


def record_practice_day(store: ProgressStore, today: Optional[date] = None) -> int:
    """
    Update the consecutive practice-day streak.

    - Same day as last practice: unchanged
    - Day after last practice: streak + 1
    - Otherwise: streak restarts at 1

    Returns:
        The practice-day streak after the update
    """
    today = today or date.today()
    user = store.user
    last = date.fromisoformat(user.last_practice_date) if user.last_practice_date else None

    if last == today:
        return user.streak
    if last is not None and last + timedelta(days=1) == today:
        streak = user.streak + 1
    else:
        streak = 1

    store.batch_update({
        "user.streak": streak,
        "user.last_practice_date": today.isoformat(),
    })
    return streak


def get_accuracy_rating(stats: Statistics) -> Optional[Dict]:
    """
    Rate lifetime accuracy once enough questions were answered.

    Returns:
        None below the minimum question count, otherwise:
        {
            "accuracy": 92,
            "rating": "excellent",
            "error_free": False
        }
    """
    if stats.total_questions < MIN_QUESTIONS_FOR_RATING:
        return None

    accuracy = accuracy_percent(stats.correct_answers, stats.total_questions)
    exact = stats.correct_answers * 100 / stats.total_questions
    rating = next(label for threshold, label in ACCURACY_RATINGS if exact >= threshold)

    return {
        "accuracy": accuracy,
        "rating": rating,
        "error_free": stats.correct_answers == stats.total_questions,
    }
