"""Tests for seeded randomness."""

import pytest

from engine.rng import pick_weighted, rng_int, rng_pick, stable_hash, value01


class TestValue01:
    """Tests for value01()."""

    def test_same_pair_same_value(self):
        assert value01(42, "skill:1:hit") == value01(42, "skill:1:hit")

    def test_in_unit_interval(self):
        for i in range(200):
            v = value01(7, f"draw:{i}")
            assert 0 <= v < 1

    def test_label_changes_value(self):
        values = {value01(7, f"draw:{i}") for i in range(50)}
        assert len(values) > 45

    def test_seed_changes_value(self):
        assert value01(1, "x") != value01(2, "x")


class TestRngInt:
    """Tests for rng_int()."""

    def test_inclusive_bounds(self):
        seen = {rng_int(3, f"roll:{i}", 1, 4) for i in range(300)}
        assert seen == {1, 2, 3, 4}

    def test_swapped_bounds(self):
        v = rng_int(3, "roll", 10, 5)
        assert 5 <= v <= 10

    def test_single_value_range(self):
        assert rng_int(3, "roll", 6, 6) == 6


class TestRngPick:
    """Tests for rng_pick()."""

    def test_picks_member(self):
        assert rng_pick(9, "pick", ["a", "b", "c"]) in ("a", "b", "c")

    def test_empty_raises(self):
        with pytest.raises(ValueError, match="empty"):
            rng_pick(9, "pick", [])


class TestPickWeighted:
    """Tests for pick_weighted()."""

    def test_zero_weight_never_chosen(self):
        for i in range(200):
            assert pick_weighted(5, f"w:{i}", [("never", 0), ("always", 1)]) == "always"

    def test_negative_weight_counts_as_zero(self):
        for i in range(100):
            assert pick_weighted(5, f"w:{i}", [("a", 1), ("b", -5)]) == "a"

    def test_all_zero_returns_first(self):
        assert pick_weighted(5, "w", [("first", 0), ("second", 0)]) == "first"

    def test_deterministic(self):
        entries = [("a", 3), ("b", 2), ("c", 1)]
        assert pick_weighted(11, "w", entries) == pick_weighted(11, "w", entries)

    def test_heavier_entry_wins_more_often(self):
        picks = [pick_weighted(1, f"w:{i}", [("heavy", 9), ("light", 1)]) for i in range(500)]
        assert picks.count("heavy") > picks.count("light") * 3

    def test_empty_raises(self):
        with pytest.raises(ValueError, match="empty"):
            pick_weighted(1, "w", [])


class TestStableHash:
    """Tests for stable_hash()."""

    def test_deterministic_32_bit(self):
        h = stable_hash("12:loot:0")
        assert h == stable_hash("12:loot:0")
        assert 0 <= h < 2**32
