"""Problem sets for printable worksheets.

Only the data is produced here; layout belongs to the host application.
"""
import random
from typing import Dict, List, Optional, Tuple
from abacus_academy.constants import WORKSHEET_NUMBER_COUNT, WORKSHEET_PROBLEMS_PER_BLOCK
from abacus_academy.services.problem_generator import generate_friend_problem, generate_problem
from abacus_academy.services.progress_state import WorksheetSettings

# Inclusive bounds for the read/draw number ranges
NUMBER_RANGES: Dict[str, Tuple[int, int]] = {
    "0-4": (0, 4),
    "5-9": (5, 9),
    "0-9": (0, 9),
    "10-99": (10, 99),
}

WORKSHEET_MODES = ("read", "draw", "friends", "calc")


def generate_numbers(range_type: str, count: int = WORKSHEET_NUMBER_COUNT, rng: Optional[random.Random] = None) -> List[int]:
    """
    Random numbers for the read and draw worksheets.

    Unknown range types fall back to 0-9.
    """
    rng = rng or random
    low, high = NUMBER_RANGES.get(range_type, NUMBER_RANGES["0-9"])
    return [rng.randint(low, high) for _ in range(count)]


def generate_worksheet_data(sheet: WorksheetSettings, rng: Optional[random.Random] = None) -> Dict:
    """
    Build the problems for one worksheet.

    Args:
        sheet: Worksheet section of the progress store
        rng: Random source (defaults to the random module)

    Returns:
        Dictionary with the worksheet content:
        {
            "mode": "calc",
            "show_answer": False,
            "items": [Problem(...), ...]
        }

    Raises:
        ValueError: If the worksheet mode is unknown
    """
    rng = rng or random

    if sheet.mode in ("read", "draw"):
        items = generate_numbers(sheet.range_type, rng=rng)
    elif sheet.mode == "friends":
        items = [
            generate_friend_problem(sheet.friend_type, sheet.friend_rows, rng=rng)
            for _ in range(sheet.friend_groups * WORKSHEET_PROBLEMS_PER_BLOCK)
        ]
    elif sheet.mode == "calc":
        items = [
            generate_problem(rows=sheet.calc_rows, digits=sheet.calc_digits, rng=rng)
            for _ in range(sheet.calc_blocks * WORKSHEET_PROBLEMS_PER_BLOCK)
        ]
    else:
        raise ValueError(f"Unknown worksheet mode: {sheet.mode}")

    return {
        "mode": sheet.mode,
        "show_answer": sheet.show_answer,
        "items": items,
    }
