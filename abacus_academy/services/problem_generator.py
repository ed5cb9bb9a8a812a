"""Arithmetic problem generation for drills and worksheets."""
import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union
from abacus_academy.constants import POSITIVE_TERM_PROBABILITY, GUIDED_TARGET_CAP


class FriendType(str, Enum):
    """Which complement a friend-number problem practises."""
    FIVE = "5"
    TEN = "10"
    MIX = "mix"


@dataclass(frozen=True)
class Problem:
    """A signed sequence of terms and their sum."""
    nums: Tuple[int, ...]
    total: int


@dataclass(frozen=True)
class FriendProblem:
    """Two terms making 5 or 10, optionally followed by a signed third term."""
    nums: Tuple[int, ...]
    total: int


def term_range(digits: int) -> Tuple[int, int]:
    """
    Return the inclusive magnitude range for terms with the given digit count.

    Args:
        digits: Number of digits per term (>= 1)

    Returns:
        Tuple (min_value, max_value), e.g. (10, 99) for two digits
    """
    return 10 ** (digits - 1), 10 ** digits - 1


def generate_problem(
    rows: int = 3,
    digits: int = 1,
    allow_negative: bool = True,
    ensure_positive_result: bool = True,
    rng: Optional[random.Random] = None
) -> Problem:
    """
    Generate a mental arithmetic problem.

    Strategy:
    - First term is always positive.
    - Each later term is added with ~60% probability when negatives are
      allowed, otherwise always added.
    - A subtraction that would take the running sum below zero is turned
      into an addition when ensure_positive_result is set.

    Args:
        rows: Number of terms (>= 1)
        digits: Digits per term (>= 1)
        allow_negative: Whether subtraction terms may appear
        ensure_positive_result: Keep every prefix sum non-negative
        rng: Random source (defaults to the random module)

    Returns:
        Problem with the signed terms and their total

    Raises:
        ValueError: If rows or digits is below 1
    """
    if rows < 1:
        raise ValueError(f"rows must be at least 1, got {rows}")
    if digits < 1:
        raise ValueError(f"digits must be at least 1, got {digits}")

    rng = rng or random
    min_val, max_val = term_range(digits)

    first = rng.randint(min_val, max_val)
    nums = [first]
    current_sum = first

    for _ in range(1, rows):
        val = rng.randint(min_val, max_val)
        is_add = rng.random() < POSITIVE_TERM_PROBABILITY if allow_negative else True

        if not is_add and ensure_positive_result and current_sum - val < 0:
            is_add = True

        term = val if is_add else -val
        nums.append(term)
        current_sum += term

    return Problem(nums=tuple(nums), total=sum(nums))


def generate_friend_problem(
    friend_type: Union[FriendType, str] = FriendType.FIVE,
    rows: int = 2,
    rng: Optional[random.Random] = None
) -> FriendProblem:
    """
    Generate a "friend number" problem (complements of 5 or 10).

    Args:
        friend_type: '5', '10' or 'mix'
        rows: 2 for a plain pair, 3 or more to append a signed third term
        rng: Random source (defaults to the random module)

    Returns:
        FriendProblem whose first two terms sum to 5 or 10

    Raises:
        ValueError: If friend_type is not one of the known types
    """
    friend_type = FriendType(friend_type)
    rng = rng or random

    if friend_type == FriendType.MIX:
        is_five = rng.random() < 0.5
    else:
        is_five = friend_type == FriendType.FIVE

    if is_five:
        n1 = rng.randint(1, 4)
        n2 = 5 - n1
    else:
        n1 = rng.randint(1, 9)
        n2 = 10 - n1

    nums = [n1, n2]

    if rows >= 3:
        current = n1 + n2
        n3 = rng.randint(1, 9)
        if rng.random() < 0.5 and current - n3 >= 0:
            nums.append(-n3)
        else:
            nums.append(n3)

    return FriendProblem(nums=tuple(nums), total=sum(nums))


def random_target(
    columns: int,
    rng: Optional[random.Random] = None,
    exclude: Optional[int] = None
) -> int:
    """
    Pick a practice target the abacus can show.

    Args:
        columns: Number of rods on the abacus
        rng: Random source (defaults to the random module)
        exclude: Value the target must differ from, typically what the
                 abacus shows right now

    Returns:
        Integer in [0, min(10**columns - 1, 100))
    """
    rng = rng or random
    upper = min(10 ** columns - 1, GUIDED_TARGET_CAP)
    if exclude is None or not 0 <= exclude < upper:
        return rng.randrange(upper)

    # Draw from the remaining values and skip over the excluded one
    target = rng.randrange(upper - 1)
    return target + 1 if target >= exclude else target
