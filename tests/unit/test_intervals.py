"""
Unit tests for interval ingestion.

Items sort by age descending unless stated otherwise, so the head of every
interval is its oldest item.
"""

import logging

import pytest

from pagewindow.exceptions import IntervalCorruptionError
from pagewindow.intervals import (
    LOGICAL_HEAD_INTERVAL_ID,
    LOGICAL_TAIL_INTERVAL_ID,
    Interval,
    IntervalStore,
    is_logical_interval,
)
from pagewindow.item_index import ItemIndex, default_get_id
from pagewindow.sorting import make_comparator


@pytest.fixture
def store(age_desc):
    return IntervalStore(ItemIndex(), default_get_id, age_desc)


def ids(interval):
    return list(interval.item_ids)


@pytest.mark.unit
class TestIngestPage:
    """Merging pages into anchored intervals."""

    def test_empty_page(self, store):
        assert store.ingest_page([]) is None
        assert len(store) == 0

    def test_page_is_sorted_and_indexed(self, store, letters):
        interval = store.ingest_page([letters["c"], letters["a"], letters["d"]])

        assert ids(interval) == ["a", "c", "d"]
        assert interval.id.startswith("interval-")
        assert store.item_index.get("c") is letters["c"]

    def test_duplicate_ids_in_page(self, store, letters):
        interval = store.ingest_page([letters["a"], letters["a"], letters["b"]])
        assert ids(interval) == ["a", "b"]

    def test_overlapping_pages_merge(self, store, letters):
        first = store.ingest_page([letters["a"], letters["b"], letters["c"]])
        second = store.ingest_page([letters["c"], letters["d"]])

        assert second.id == first.id
        assert ids(second) == ["a", "b", "c", "d"]
        assert len(store) == 1

    def test_reingesting_a_page_is_idempotent(self, store, letters):
        page = [letters["a"], letters["b"]]
        first = store.ingest_page(page)
        second = store.ingest_page(page)

        assert second.id == first.id
        assert ids(second) == ["a", "b"]
        assert len(store) == 1

    def test_disjoint_pages_stay_apart(self, store, letters):
        store.ingest_page([letters["x"], letters["y"]])
        store.ingest_page([letters["a"], letters["b"]])

        assert [ids(itv) for itv in store.intervals] == [["a", "b"], ["x", "y"]]

    def test_page_bridging_two_intervals(self, store, letters):
        """Test that a page overlapping two intervals merges all three."""
        top = store.ingest_page([letters["a"]])
        bottom = store.ingest_page([letters["x"]])
        store.set_active(bottom)

        merged = store.ingest_page([letters["a"], letters["v"], letters["x"]])

        assert len(store) == 1
        assert merged.id == top.id
        assert ids(merged) == ["a", "v", "x"]
        assert store.active_interval_id == top.id

    def test_target_interval_wins(self, store, letters):
        target = store.ingest_page([letters["a"], letters["b"]])
        merged = store.ingest_page([letters["x"], letters["y"]], target_interval_id=target.id)

        assert merged.id == target.id
        assert ids(merged) == ["a", "b", "x", "y"]

    def test_head_and_tail_flags(self, store, letters):
        interval = store.ingest_page([letters["a"]], is_head=True)

        assert interval.is_head is True
        assert interval.has_more_head is False
        assert interval.has_more_tail is True

        merged = store.ingest_page([letters["a"], letters["b"]], is_tail=True)
        assert (merged.is_head, merged.is_tail) == (True, True)
        assert (merged.has_more_head, merged.has_more_tail) == (False, False)

    def test_auto_policy_merges_before_head(self, store, letters):
        head = store.ingest_page([letters["b"], letters["c"]], is_head=True)
        merged = store.ingest_page([letters["a"]])

        assert merged.id == head.id
        assert ids(merged) == ["a", "b", "c"]

    def test_auto_policy_merges_after_tail(self, store, letters):
        tail = store.ingest_page([letters["x"], letters["y"]], is_tail=True)
        merged = store.ingest_page([letters["z"]])

        assert merged.id == tail.id
        assert ids(merged) == ["x", "y", "z"]

    def test_strict_policy_keeps_disjoint_pages_apart(self, store, letters):
        store.ingest_page([letters["b"], letters["c"]], is_head=True)
        store.ingest_page([letters["a"]], policy="strict-overlap-only")

        assert [ids(itv) for itv in store.intervals] == [["a"], ["b", "c"]]

    def test_strict_policy_ignores_disjoint_target(self, store, letters):
        """Test that an explicit target only merges when it overlaps the page."""
        first = store.ingest_page([letters["a"], letters["b"]])

        second = store.ingest_page(
            [letters["x"], letters["y"]],
            target_interval_id=first.id,
            policy="strict-overlap-only",
        )

        assert second.id != first.id
        assert len(store) == 2
        assert ids(store.get(first.id)) == ["a", "b"]
        assert ids(second) == ["x", "y"]

    def test_strict_policy_merges_overlapping_target(self, store, letters):
        first = store.ingest_page([letters["a"], letters["b"]])

        merged = store.ingest_page(
            [letters["b"], letters["d"]],
            target_interval_id=first.id,
            policy="strict-overlap-only",
        )

        assert merged.id == first.id
        assert ids(merged) == ["a", "b", "d"]

    def test_merge_keeps_tied_order_without_tiebreaker(self):
        """Test that a tied item merged later sorts after the tied items already held."""
        store = IntervalStore(
            ItemIndex(), default_get_id, make_comparator({"age": -1}, tiebreaker=None)
        )
        c, b, d = {"id": "c", "age": 25}, {"id": "b", "age": 25}, {"id": "d", "age": 20}

        store.ingest_page([c, d])
        merged = store.ingest_page([b])

        assert ids(merged) == ["c", "b", "d"]
        assert len(store) == 1

    def test_id_lives_in_one_interval(self, store, letters):
        """Test that ids re-ingested elsewhere leave their old interval."""
        first = store.ingest_page([letters["a"], letters["b"], letters["d"]])
        second = store.ingest_page([letters["x"]])
        moved = {**letters["b"], "age": 1}

        store.ingest_page([moved, letters["x"]], target_interval_id=second.id)

        assert ids(store.get(first.id)) == ["a", "d"]
        assert ids(store.get(second.id)) == ["x", "b"]


@pytest.mark.unit
class TestLogicalIntervals:
    """Live items outside the loaded ranges."""

    def test_first_live_item_creates_active_logical_head(self, store, letters):
        result = store.ingest_item(letters["a"])

        assert result.changed is True
        assert result.interval.id == LOGICAL_HEAD_INTERVAL_ID
        assert store.active_interval_id == LOGICAL_HEAD_INTERVAL_ID
        assert is_logical_interval(store.active)

    def test_live_items_before_and_after_loaded_range(self, store, letters):
        store.ingest_page([letters["b"], letters["c"]])
        store.ingest_page([letters["v"], letters["x"]])

        head = store.ingest_item(letters["a"])
        tail = store.ingest_item(letters["z"])

        assert head.interval.id == LOGICAL_HEAD_INTERVAL_ID
        assert tail.interval.id == LOGICAL_TAIL_INTERVAL_ID
        assert [itv.id for itv in store.intervals][0] == LOGICAL_HEAD_INTERVAL_ID
        assert [itv.id for itv in store.intervals][-1] == LOGICAL_TAIL_INTERVAL_ID
        assert store.active_interval_id is None

    def test_item_in_gap_is_dropped(self, store, letters):
        store.ingest_page([letters["a"], letters["b"]])
        store.ingest_page([letters["x"], letters["y"]])

        result = store.ingest_item(letters["v"])

        assert result.changed is False
        assert result.interval is None
        assert store.find_interval_by_item_id("v") is None
        assert store.item_index.has("v")

    def test_item_beyond_head_interval_joins_it(self, store, letters):
        head = store.ingest_page([letters["b"], letters["c"]], is_head=True)

        result = store.ingest_item(letters["a"])

        assert result.interval.id == head.id
        assert ids(store.get(head.id)) == ["a", "b", "c"]
        assert store.logical_head is None

    def test_logical_head_absorbed_by_head_page(self, store, letters):
        store.ingest_item(letters["a"])

        merged = store.ingest_page([letters["b"], letters["c"]], is_head=True)

        assert ids(merged) == ["a", "b", "c"]
        assert store.logical_head is None
        assert store.active_interval_id == merged.id

    def test_logical_items_within_page_range_are_absorbed(self, store, letters):
        store.ingest_item(letters["a"])
        store.ingest_item(letters["c"])

        merged = store.ingest_page([letters["b"], letters["d"]])

        assert ids(merged) == ["b", "c", "d"]
        assert ids(store.logical_head) == ["a"]
        assert store.active_interval_id == LOGICAL_HEAD_INTERVAL_ID

    def test_second_live_item_after_first_goes_to_logical_tail(self, store, letters):
        store.ingest_item(letters["a"])

        result = store.ingest_item(letters["z"])

        assert result.interval.id == LOGICAL_TAIL_INTERVAL_ID

    def test_moved_item_stays_in_its_logical_interval(self, store, letters):
        """Test that a lone logical item is the only position information left."""
        store.ingest_item(letters["a"])

        result = store.ingest_item({**letters["a"], "age": 1})

        assert result.interval.id == LOGICAL_HEAD_INTERVAL_ID
        assert result.removed_from is None
        assert ids(store.logical_head) == ["a"]


@pytest.mark.unit
class TestIngestItem:
    """Live updates of items inside anchored intervals."""

    def test_insert_into_containing_interval(self, store, letters):
        interval = store.ingest_page([letters["a"], letters["b"], letters["d"]])

        result = store.ingest_item(letters["c"])

        assert result.interval.id == interval.id
        assert ids(store.get(interval.id)) == ["a", "b", "c", "d"]

    def test_filter_rejection_detaches(self, store, letters):
        interval = store.ingest_page([letters["a"], letters["b"], letters["c"]])

        result = store.ingest_item(letters["b"], matches_filter=False)

        assert bool(result) is True
        assert result.removed_from == interval.id
        assert ids(store.get(interval.id)) == ["a", "c"]

    def test_filter_rejection_of_unknown_item(self, store, letters):
        store.ingest_page([letters["a"]])
        assert store.ingest_item(letters["z"], matches_filter=False).changed is False

    def test_reingest_unchanged_item_is_stable(self, store, letters):
        interval = store.ingest_page([letters["a"], letters["b"], letters["c"], letters["d"]])

        store.ingest_item(letters["b"])

        assert ids(store.get(interval.id)) == ["a", "b", "c", "d"]

    def test_reingest_unchanged_edge_item_stays(self, store, letters):
        interval = store.ingest_page([letters["a"], letters["b"], letters["d"]])

        result = store.ingest_item({**letters["d"], "name": "edited"})

        assert result.interval.id == interval.id
        assert result.removed_from is None
        assert ids(store.get(interval.id)) == ["a", "b", "d"]
        assert store.logical_tail is None

    def test_emptied_interval_is_deleted(self, store, letters):
        store.ingest_page([letters["a"]])
        other = store.ingest_page([letters["x"]])

        store.ingest_item(letters["x"], matches_filter=False)

        assert other.id not in store


@pytest.mark.unit
class TestChronologicalOrder:
    """Intervals holding ids oldest first, with the head at the end."""

    @pytest.fixture
    def message_store(self, age_asc):
        return IntervalStore(ItemIndex(), default_get_id, age_asc, item_ids_head_first=False)

    def test_new_item_joins_head_interval(self, message_store, letters):
        head = message_store.ingest_page([letters["x"], letters["y"]], is_head=True)

        result = message_store.ingest_item(letters["a"])

        assert result.interval.id == head.id
        assert ids(message_store.get(head.id)) == ["y", "x", "a"]

    def test_new_item_beyond_open_interval_goes_to_logical_head(self, message_store, letters):
        message_store.ingest_page([letters["x"], letters["y"]])

        result = message_store.ingest_item(letters["a"])

        assert result.interval.id == LOGICAL_HEAD_INTERVAL_ID


@pytest.mark.unit
class TestStoreOperations:
    def test_remove_item(self, store, letters):
        interval = store.ingest_page([letters["a"], letters["b"]])

        location = store.remove_item("b")

        assert location.interval.id == interval.id
        assert ids(location.interval) == ["a", "b"]
        assert (location.current_index, location.insertion_index) == (1, 1)
        assert ids(store.get(interval.id)) == ["a"]
        assert store.remove_item("b") is None

    def test_remove_last_item_deletes_interval(self, store, letters):
        interval = store.ingest_page([letters["a"]])
        store.remove_item("a")
        assert interval.id not in store

    def test_locate_item(self, store, letters):
        interval = store.ingest_page([letters["a"], letters["b"], letters["c"], letters["d"]])

        location = store.locate_item(letters["c"])
        assert location.interval.id == interval.id
        assert location.current_index == 2

        unknown = store.locate_item({"id": "new", "age": 25})
        assert (unknown.current_index, unknown.insertion_index) == (-1, 3)

        assert store.locate_item(letters["z"]) is None

    def test_referenced_ids(self, store, letters):
        store.ingest_page([letters["a"]])
        store.ingest_page([letters["x"]])
        assert store.referenced_ids() == {"a", "x"}

    def test_clear(self, store, letters):
        interval = store.ingest_page([letters["a"]])
        store.set_active(interval.id)
        store.clear()
        assert len(store) == 0
        assert store.active is None

    def test_replace_interval(self, store, letters):
        interval = store.ingest_page([letters["a"]])
        updated = Interval(id=interval.id, item_ids=["a"], has_more_tail=False)

        store.replace_interval(updated)

        assert store.get(interval.id).has_more_tail is False
        with pytest.raises(KeyError):
            store.replace_interval(Interval(id="interval-unknown"))

    def test_missing_index_entries(self, store, letters, caplog):
        """Test that missing items are skipped when resolving and raised by the integrity check."""
        interval = store.ingest_page([letters["a"], letters["b"]])
        store.item_index.remove("a")
        caplog.set_level(logging.WARNING, logger="pagewindow")

        assert store.interval_to_items(interval) == [letters["b"]]
        assert "missing from the item index" in caplog.text

        with pytest.raises(IntervalCorruptionError) as exc_info:
            store.check_integrity()
        assert exc_info.value.item_id == "a"
