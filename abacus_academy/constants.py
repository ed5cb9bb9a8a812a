"""Application-wide constants and configuration values.

This module centralizes all magic numbers used by the drills, the abacus
model and the progress store.
"""

# Abacus
DEFAULT_COLUMNS = 5
"""Number of rods on a freshly created abacus."""

HEAVEN_BEAD_VALUE = 5
"""Value of the single upper bead on each rod."""

EARTH_BEAD_COUNT = 4
"""Number of lower beads on each rod, each worth 1."""

# Problem generation
POSITIVE_TERM_PROBABILITY = 0.6
"""Chance that a term after the first is added rather than subtracted."""

GUIDED_TARGET_CAP = 100
"""Exclusive upper bound for guided and challenge targets."""

# Flash drill
FLASH_BASE_POINTS = 10
"""Points for a correct flash answer before the streak bonus."""

FLASH_STREAK_BONUS = 2
"""Bonus points per consecutive correct flash answer."""

FLASH_STREAK_BONUS_CAP = 10
"""Streak length beyond which the flash bonus stops growing."""

FLASH_XP = 10
"""Experience awarded for a correct flash answer."""

FLASH_DISPLAY_RATIO = 0.7
"""Share of the flash speed during which a term is visible."""

DEFAULT_FLASH_SPEED_MS = 1000
DEFAULT_FLASH_GAP_MS = 200

# Audio drill
AUDIO_POINTS = 15
"""Flat points for a correct audio answer."""

AUDIO_XP = 15
"""Experience awarded for a correct audio answer."""

AUDIO_OPERATOR_PAUSE_MS = 300
"""Pause after speaking an operator word."""

AUDIO_NUMBER_PAUSE_MS = 500
"""Pause after speaking a number."""

OPERATOR_WORDS = {
    "zh-TW": {"plus": "加", "minus": "減"},
    "en-US": {"plus": "plus", "minus": "minus"},
}
"""Spoken operator words per language. Unknown languages fall back to English."""

# Practice drill
PRACTICE_BASE_POINTS = 10
PRACTICE_STREAK_BONUS = 2

PRACTICE_BASE_XP = 5
"""Base experience for a correct guided or review answer."""

PRACTICE_XP_STREAK_CAP = 10
"""Streak length beyond which guided XP stops growing."""

CHALLENGE_XP = 5
"""Experience for each target hit during a challenge."""

CHALLENGE_DURATION = 60
"""Countdown length of a challenge in ticks."""

# Level progression
INITIAL_XP_TO_NEXT_LEVEL = 100
"""Experience needed to leave level 1."""

XP_GROWTH_FACTOR = 1.5
"""Multiplier applied to the level threshold after each level-up."""

# Error tracking
MAX_ERRORS = 50
"""Maximum number of error records kept, newest first."""

# Statistics
MIN_QUESTIONS_FOR_RATING = 10
"""Answered questions required before an accuracy rating is given."""

ACCURACY_RATINGS = (
    (90, "excellent"),
    (70, "good"),
    (50, "average"),
    (0, "needs_practice"),
)
"""Minimum accuracy percentage for each rating, highest first."""

# Worksheet
WORKSHEET_NUMBER_COUNT = 20
"""Numbers generated for the read and draw worksheet modes."""

WORKSHEET_PROBLEMS_PER_BLOCK = 10
"""Problems per friends group or calc block."""

# Logging
DEFAULT_LOG_LEVEL = "INFO"
"""Default logging level for the application."""
