"""
Unit tests for the boost overlay.
"""

import functools

import pytest

from pagewindow.boosts import DEFAULT_BOOST_TTL_MS, BoostOverlay
from pagewindow.item_index import default_get_id
from tests.conftest import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def overlay(clock):
    return BoostOverlay(clock=clock)


class TestBoostRegistry:
    """Adding, expiring and removing boosts."""

    def test_default_ttl(self, overlay, clock):
        record = overlay.boost("a")
        assert record.until == clock.now + DEFAULT_BOOST_TTL_MS
        assert record.seq == 0

    def test_explicit_until_wins(self, overlay):
        record = overlay.boost("a", ttl_ms=5, until=42)
        assert record.until == 42

    def test_is_boosted_until_inclusive(self, overlay, clock):
        overlay.boost("a", ttl_ms=100)
        clock.now += 100
        assert overlay.is_boosted("a") is True
        clock.now += 1
        assert overlay.is_boosted("a") is False

    def test_clear_expired(self, overlay, clock):
        overlay.boost("a", ttl_ms=10)
        overlay.boost("b", ttl_ms=1000)
        assert overlay.clear_expired(now=clock.now + 11) == 1
        assert overlay.keys() == ["b"]

    def test_max_seq_grows_on_boost(self, overlay):
        overlay.boost("a", seq=3)
        overlay.boost("b", seq=1)
        assert overlay.max_boost_seq == 3

    def test_max_seq_recomputed_on_removal(self, overlay):
        """Test that removing the top boost lowers max_boost_seq."""
        overlay.boost("a", seq=3)
        overlay.boost("b", seq=1)
        overlay.remove("a")
        assert overlay.max_boost_seq == 1
        overlay.remove("b")
        assert overlay.max_boost_seq == 0

    def test_max_seq_recomputed_on_expiry(self, overlay, clock):
        overlay.boost("a", ttl_ms=10, seq=5)
        overlay.boost("b", ttl_ms=1000, seq=2)
        overlay.clear_expired(now=clock.now + 20)
        assert overlay.max_boost_seq == 2

    def test_clear(self, overlay):
        overlay.boost("a", seq=2)
        overlay.clear()
        assert len(overlay) == 0
        assert overlay.max_boost_seq == 0


class TestBoostComparator:
    """Boost precedence over the base comparator."""

    def test_boosted_before_unboosted(self, overlay, letters, age_desc):
        overlay.boost("z")
        effective = overlay.comparator(age_desc, default_get_id)
        ordered = sorted(letters.values(), key=functools.cmp_to_key(effective))
        assert ordered[0]["id"] == "z"
        assert [i["id"] for i in ordered[1:]] == ["a", "b", "c", "d", "v", "x", "y"]

    def test_higher_seq_first(self, overlay, letters, age_desc):
        overlay.boost("y", seq=1)
        overlay.boost("x", seq=2)
        effective = overlay.comparator(age_desc, default_get_id)
        ordered = sorted([letters["a"], letters["y"], letters["x"]], key=functools.cmp_to_key(effective))
        assert [i["id"] for i in ordered] == ["x", "y", "a"]

    def test_equal_seq_falls_back_to_base(self, overlay, letters, age_desc):
        overlay.boost("y")
        overlay.boost("x")
        assert overlay.compare(letters["x"], letters["y"], age_desc, default_get_id) == -1

    def test_expired_boost_ignored(self, overlay, clock, letters, age_desc):
        overlay.boost("z", ttl_ms=10)
        clock.now += 11
        assert overlay.compare(letters["z"], letters["a"], age_desc, default_get_id) == 1

    def test_without_boosts_uses_base(self, overlay, letters, age_desc):
        effective = overlay.comparator(age_desc, default_get_id)
        assert effective(letters["a"], letters["z"]) == age_desc(letters["a"], letters["z"])

    def test_comparing_purges_expired_boosts(self, overlay, clock, letters, age_desc):
        """Test that max_boost_seq drops once the comparator sees an expired boost."""
        overlay.boost("a", ttl_ms=10, seq=7)
        clock.now += 100
        effective = overlay.comparator(age_desc, default_get_id)
        assert effective(letters["a"], letters["b"]) == -1
        assert overlay.max_boost_seq == 0
        assert overlay.keys() == []
