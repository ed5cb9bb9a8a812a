"""Experience points and level progression."""
import logging
import math
from typing import Optional, Dict
from abacus_academy.constants import INITIAL_XP_TO_NEXT_LEVEL, XP_GROWTH_FACTOR
from abacus_academy.services.interfaces import Sound, ToneSink
from abacus_academy.services.progress_state import UserProfile
from abacus_academy.services.progress_store import ProgressStore

logger = logging.getLogger(__name__)


def calculate_xp_required(level: int) -> int:
    """
    Experience needed to leave a level when thresholds follow the default curve.

    Formula: floor(100 * 1.5 ** (level - 1))

    Args:
        level: Current level (>= 1)

    Returns:
        XP threshold for that level
    """
    return math.floor(INITIAL_XP_TO_NEXT_LEVEL * XP_GROWTH_FACTOR ** (level - 1))


def add_xp(
    store: ProgressStore,
    amount: int,
    tones: Optional[ToneSink] = None
) -> Optional[Dict]:
    """
    Award experience and level up when the threshold is reached.

    Level-up rule:
    - xp + amount >= xp_to_next_level
    - level += 1, leftover XP carries over
    - xp_to_next_level = floor(xp_to_next_level * 1.5)
    All three fields are written in one batched update.

    Args:
        store: Progress store holding the user profile
        amount: XP to add (non-positive amounts are ignored)
        tones: Optional tone sink for the level-up sound

    Returns:
        Dictionary with level-up info if leveled up, None otherwise:
        {
            "leveled_up": True,
            "from_level": 1,
            "to_level": 2,
            "xp": 5,
            "xp_to_next_level": 150
        }
    """
    if amount <= 0:
        return None

    user = store.user
    new_xp = user.xp + amount
    xp_to_next = user.xp_to_next_level

    if new_xp < xp_to_next:
        store.set("user.xp", new_xp)
        return None

    from_level = user.level
    to_level = from_level + 1
    carried_xp = new_xp - xp_to_next
    next_threshold = math.floor(xp_to_next * XP_GROWTH_FACTOR)

    store.batch_update({
        "user.level": to_level,
        "user.xp": carried_xp,
        "user.xp_to_next_level": next_threshold,
    })
    if tones is not None:
        tones.play_sound(Sound.LEVEL_UP)

    logger.info(f"Level up: {from_level} -> {to_level} (xp carried: {carried_xp})")

    return {
        "leveled_up": True,
        "from_level": from_level,
        "to_level": to_level,
        "xp": carried_xp,
        "xp_to_next_level": next_threshold,
    }


def get_level_progress(user: UserProfile) -> Dict:
    """
    Get user's progress toward the next level.

    Args:
        user: User profile section

    Returns:
        Dictionary with level progress:
        {
            "current_level": 2,
            "xp": 75,
            "xp_to_next_level": 150,
            "progress_percentage": 50.0
        }
    """
    progress_percentage = 0.0
    if user.xp_to_next_level > 0:
        progress_percentage = (user.xp / user.xp_to_next_level) * 100

    return {
        "current_level": user.level,
        "xp": user.xp,
        "xp_to_next_level": user.xp_to_next_level,
        "progress_percentage": round(progress_percentage, 1)
    }
