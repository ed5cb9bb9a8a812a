"""Abacus (soroban) value model and bead toggle semantics.

Each rod holds one heaven bead worth 5 and four earth beads worth 1. A bead
counts when it is slid toward the beam, so a rod's value is fully described
by an integer in [0, 9]:

    has_heaven  = value >= 5
    earth_count = value % 5

The leftmost rod is the most significant digit.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple, Union
from abacus_academy.constants import DEFAULT_COLUMNS, HEAVEN_BEAD_VALUE, EARTH_BEAD_COUNT
from abacus_academy.services.interfaces import Sound, ToneSink


ChangeCallback = Callable[[int, Tuple[int, ...]], None]


class BeadType(str, Enum):
    """Bead group on a rod."""
    HEAVEN = "heaven"
    EARTH = "earth"


@dataclass(frozen=True)
class Column:
    """Read-only view of one rod."""
    value: int

    @property
    def has_heaven(self) -> bool:
        return self.value >= HEAVEN_BEAD_VALUE

    @property
    def earth_count(self) -> int:
        return self.value % HEAVEN_BEAD_VALUE


def toggle_column_value(value: int, bead_type: Union[BeadType, str]) -> int:
    """
    Apply one bead toggle to a single rod value.

    Heaven: adds 5 when the heaven bead is away from the beam, removes 5
    when it is at the beam.
    Earth: activates one more earth bead; with all four active the group
    slides back to zero. The heaven component is preserved.

    Args:
        value: Current rod value (0-9)
        bead_type: Which bead group was touched

    Returns:
        New rod value clamped to [0, 9]
    """
    bead_type = BeadType(bead_type)
    heaven = HEAVEN_BEAD_VALUE if value >= HEAVEN_BEAD_VALUE else 0
    earth = value % HEAVEN_BEAD_VALUE

    if bead_type == BeadType.HEAVEN:
        new_value = value - HEAVEN_BEAD_VALUE if heaven else value + HEAVEN_BEAD_VALUE
    elif earth < EARTH_BEAD_COUNT:
        new_value = heaven + earth + 1
    else:
        new_value = heaven

    return max(0, min(9, new_value))


class AbacusModel:
    """Bead state of one abacus instance.

    Instances are owned by a single view or drill and are never shared.
    """

    def __init__(
        self,
        columns: int = DEFAULT_COLUMNS,
        on_change: Optional[ChangeCallback] = None,
        tones: Optional[ToneSink] = None
    ) -> None:
        if columns < 1:
            raise ValueError(f"columns must be at least 1, got {columns}")
        self._columns = columns
        self._values: List[int] = [0] * columns
        self._callbacks: List[ChangeCallback] = []
        self._tones = tones
        if on_change is not None:
            self._callbacks.append(on_change)

    @property
    def columns(self) -> int:
        return self._columns

    @property
    def max_value(self) -> int:
        return 10 ** self._columns - 1

    @property
    def values(self) -> Tuple[int, ...]:
        return tuple(self._values)

    def column(self, index: int) -> Column:
        """Return a read-only view of one rod."""
        return Column(self._values[index])

    def on_change(self, callback: ChangeCallback) -> Callable[[], None]:
        """
        Register a change callback.

        Args:
            callback: Called with (new_value, column_values)

        Returns:
            Function that removes the callback
        """
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def get_value(self) -> int:
        """Return the integer shown on the abacus."""
        total = 0
        for i, digit in enumerate(self._values):
            total += digit * 10 ** (self._columns - 1 - i)
        return total

    def toggle_bead(self, column: int, bead_type: Union[BeadType, str]) -> int:
        """
        Toggle a bead group on one rod.

        Args:
            column: Rod index, 0 = leftmost (most significant)
            bead_type: 'heaven' or 'earth'

        Returns:
            The abacus value after the toggle

        Raises:
            IndexError: If column is outside the abacus
        """
        if not 0 <= column < self._columns:
            raise IndexError(f"column {column} out of range for {self._columns}-column abacus")

        before = self.get_value()
        new_digit = toggle_column_value(self._values[column], bead_type)
        if new_digit != self._values[column]:
            self._values[column] = new_digit
            if self._tones is not None:
                self._tones.play_sound(Sound.BEAD_CLICK)

        after = self.get_value()
        if after != before:
            self._notify(after)
        return after

    def set_value(self, value: int) -> int:
        """
        Show an integer on the abacus.

        Args:
            value: Integer to display; clamped into [0, 10**columns - 1]

        Returns:
            The value actually shown
        """
        before = self.get_value()
        value = max(0, min(self.max_value, int(value)))
        digits = str(value).zfill(self._columns)
        self._values = [int(d) for d in digits]

        if value != before:
            self._notify(value)
        return value

    def reset(self) -> None:
        """Clear every rod without firing change callbacks."""
        self._values = [0] * self._columns

    def _notify(self, value: int) -> None:
        snapshot = self.values
        for callback in list(self._callbacks):
            callback(value, snapshot)
