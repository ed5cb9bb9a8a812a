"""
Unit tests for level progression logic.

Tests cover:
1. add_xp() function
   - XP below the threshold accumulates
   - Reaching the threshold levels up with carry-over
   - Threshold grows by 1.5x per level
   - Level-up writes are batched and play the level-up tone
2. calculate_xp_required() function
3. get_level_progress() function
"""
import pytest
from abacus_academy.services.interfaces import Sound
from abacus_academy.services.level_progression import add_xp, calculate_xp_required, get_level_progress
from abacus_academy.services.progress_store import ProgressStore
from conftest import CountingRepository


class TestAddXp:
    """Test add_xp function."""

    def test_accumulates_below_threshold(self, store, tones):
        """XP below the threshold should just accumulate."""
        result = add_xp(store, 30, tones)

        assert result is None
        assert store.user.xp == 30
        assert store.user.level == 1
        assert tones.sounds == []

    def test_level_up_carries_leftover_xp(self, store, tones):
        """90/100 plus 15 should reach level 2 with 5 XP toward 150."""
        store.set("user.xp", 90)

        result = add_xp(store, 15, tones)

        assert result == {
            "leveled_up": True,
            "from_level": 1,
            "to_level": 2,
            "xp": 5,
            "xp_to_next_level": 150,
        }
        assert store.user.level == 2
        assert store.user.xp == 5
        assert store.user.xp_to_next_level == 150
        assert tones.sounds == [Sound.LEVEL_UP]

    def test_exact_threshold_levels_up(self, store):
        store.set("user.xp", 60)
        result = add_xp(store, 40)
        assert result["to_level"] == 2
        assert store.user.xp == 0

    def test_threshold_floors(self, store):
        """Threshold growth should round down: 225 * 1.5 = 337.5 -> 337."""
        store.batch_update({"user.level": 3, "user.xp_to_next_level": 225, "user.xp": 220})
        add_xp(store, 10)
        assert store.user.level == 4
        assert store.user.xp_to_next_level == 337

    def test_level_up_is_single_persisted_write(self):
        repo = CountingRepository()
        store = ProgressStore(repository=repo)
        store.set("user.xp", 95)
        saves_before = repo.saves
        level_calls = []
        store.subscribe("user.level", lambda new, old, path: level_calls.append((new, old)))

        add_xp(store, 10)

        assert repo.saves == saves_before + 1
        assert level_calls == [(2, 1)]

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_amount_ignored(self, store, amount):
        assert add_xp(store, amount) is None
        assert store.user.xp == 0


class TestCalculateXpRequired:
    """Test default threshold curve."""

    @pytest.mark.parametrize("level,expected", [(1, 100), (2, 150), (3, 225), (4, 337)])
    def test_curve(self, level, expected):
        assert calculate_xp_required(level) == expected


class TestGetLevelProgress:
    """Test get_level_progress function."""

    def test_progress_percentage(self, store):
        store.batch_update({"user.level": 2, "user.xp": 75, "user.xp_to_next_level": 150})

        progress = get_level_progress(store.user)

        assert progress == {
            "current_level": 2,
            "xp": 75,
            "xp_to_next_level": 150,
            "progress_percentage": 50.0,
        }

    def test_fresh_profile(self, store):
        assert get_level_progress(store.user)["progress_percentage"] == 0.0
