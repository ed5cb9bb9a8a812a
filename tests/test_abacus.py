"""Unit tests for the abacus model."""
import pytest
from abacus_academy.services.abacus import AbacusModel, BeadType, Column, toggle_column_value
from abacus_academy.services.interfaces import Sound


class TestColumn:
    """Tests for the per-rod bead view."""

    @pytest.mark.parametrize("value,heaven,earth", [(0, False, 0), (3, False, 3), (5, True, 0), (9, True, 4)])
    def test_bead_decomposition(self, value, heaven, earth):
        column = Column(value)
        assert column.has_heaven is heaven
        assert column.earth_count == earth


class TestToggleColumnValue:
    """Tests for single-rod toggle rules."""

    def test_heaven_adds_and_removes_five(self):
        assert toggle_column_value(2, BeadType.HEAVEN) == 7
        assert toggle_column_value(7, BeadType.HEAVEN) == 2

    def test_heaven_double_toggle_is_identity(self):
        for value in range(10):
            once = toggle_column_value(value, "heaven")
            assert toggle_column_value(once, "heaven") == value

    def test_earth_adds_one(self):
        assert toggle_column_value(0, BeadType.EARTH) == 1
        assert toggle_column_value(6, BeadType.EARTH) == 7

    def test_earth_wraps_and_keeps_heaven(self):
        """Toggling a full earth group clears it but leaves the heaven bead."""
        assert toggle_column_value(4, BeadType.EARTH) == 0
        assert toggle_column_value(9, BeadType.EARTH) == 5

    def test_earth_cycle_returns_after_five_toggles(self):
        for value in range(10):
            current = value
            for _ in range(5):
                current = toggle_column_value(current, "earth")
            assert current == value


class TestAbacusModel:
    """Tests for the multi-rod model."""

    def test_starts_at_zero(self):
        abacus = AbacusModel()
        assert abacus.columns == 5
        assert abacus.get_value() == 0
        assert abacus.values == (0, 0, 0, 0, 0)

    def test_set_value_round_trip(self):
        abacus = AbacusModel(columns=4)
        for value in (0, 7, 42, 905, 9999):
            assert abacus.set_value(value) == value
            assert abacus.get_value() == value

    def test_set_value_clamps(self):
        abacus = AbacusModel(columns=2)
        assert abacus.set_value(150) == 99
        assert abacus.set_value(-3) == 0

    def test_leftmost_rod_is_most_significant(self):
        abacus = AbacusModel(columns=3)
        abacus.set_value(58)
        assert abacus.values == (0, 5, 8)
        assert abacus.column(1).has_heaven
        assert abacus.column(2).earth_count == 3

    def test_toggle_bead_updates_value(self):
        abacus = AbacusModel(columns=3)
        abacus.toggle_bead(1, BeadType.HEAVEN)
        assert abacus.get_value() == 50
        assert abacus.toggle_bead(2, "earth") == 51

    def test_toggle_out_of_range(self):
        abacus = AbacusModel(columns=2)
        with pytest.raises(IndexError):
            abacus.toggle_bead(2, "earth")

    def test_invalid_column_count(self):
        with pytest.raises(ValueError):
            AbacusModel(columns=0)

    def test_change_callback_receives_value_and_rods(self):
        changes = []
        abacus = AbacusModel(columns=2, on_change=lambda value, rods: changes.append((value, rods)))

        abacus.toggle_bead(0, "heaven")
        abacus.set_value(50)  # unchanged, no callback

        assert changes == [(50, (5, 0))]

    def test_unsubscribe(self):
        changes = []
        abacus = AbacusModel(columns=2)
        unsubscribe = abacus.on_change(lambda value, rods: changes.append(value))
        abacus.set_value(3)
        unsubscribe()
        abacus.set_value(4)
        assert changes == [3]

    def test_bead_click_tone(self, tones):
        abacus = AbacusModel(columns=2, tones=tones)
        abacus.toggle_bead(1, "earth")
        assert tones.sounds == [Sound.BEAD_CLICK]

    def test_reset_is_silent(self):
        changes = []
        abacus = AbacusModel(columns=3, on_change=lambda value, rods: changes.append(value))
        abacus.set_value(123)
        abacus.reset()
        assert abacus.get_value() == 0
        assert changes == [123]
