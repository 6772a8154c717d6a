"""
Interval model and ingestion.

An interval is a contiguous, sorted run of item ids known to have no gaps
between them. Anchored intervals come from server pages and know whether
more data exists on either side. The two logical intervals collect items
that arrived through live events outside any loaded range: the logical
head holds items sorting before everything loaded, the logical tail items
sorting after.

The store keeps intervals non-overlapping by merging every page into the
anchored intervals it touches:

    store = IntervalStore(item_index, get_item_id, make_comparator({"age": -1}))
    store.ingest_page([c, d], is_head=True)
    store.ingest_page([a])  # sorts before the head interval, merged into it
"""

from __future__ import annotations

import functools
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from typing import Any, Generic, Literal, TypeVar, Union

from ._logging import logger, redact_id, redact_ids
from .exceptions import IntervalCorruptionError
from .item_index import ItemIndex
from .pagination import IntervalLocation
from .sorting import Comparator, ItemLocation, binary_search

T = TypeVar("T")

LOGICAL_HEAD_INTERVAL_ID = "__logical_head__"
LOGICAL_TAIL_INTERVAL_ID = "__logical_tail__"

# "auto" merges pages beyond a known head or tail interval into it
MergePolicy = Literal["auto", "strict-overlap-only"]


def no_order_change(a: Any, b: Any) -> int:
    return 0


def generate_interval_id() -> str:
    return f"interval-{uuid.uuid4()}"


@dataclass
class Interval:
    """
    Anchored interval built from server pages.

    Attributes:
        id: Generated interval id
        item_ids: Ids in sort order
        has_more_head: More items may exist before this interval
        has_more_tail: More items may exist after this interval
        is_head: The interval reaches the head of the whole dataset
        is_tail: The interval reaches the tail of the whole dataset
    """

    id: str
    item_ids: list[str] = field(default_factory=list)
    has_more_head: bool = True
    has_more_tail: bool = True
    is_head: bool = False
    is_tail: bool = False


@dataclass
class LogicalInterval:
    """Holder of live items outside every anchored interval."""

    id: str
    item_ids: list[str] = field(default_factory=list)


AnyInterval = Union[Interval, LogicalInterval]


def is_logical_interval(interval: AnyInterval | None) -> bool:
    return interval is not None and interval.id in (
        LOGICAL_HEAD_INTERVAL_ID,
        LOGICAL_TAIL_INTERVAL_ID,
    )


@dataclass(frozen=True)
class IngestItemResult:
    """
    Outcome of ``IntervalStore.ingest_item``.

    Attributes:
        changed: Whether any interval was modified
        interval: Interval now holding the item, None if it was dropped
        removed_from: Id of the interval the item was detached from
    """

    changed: bool
    interval: AnyInterval | None = None
    removed_from: str | None = None

    def __bool__(self) -> bool:
        return self.changed


class IntervalStore(Generic[T]):
    """
    Ordered collection of intervals over a shared ItemIndex.

    Intervals are sorted by ``sort_comparator`` (the base comparator, never
    the boosted one). ``item_ids_head_first`` tells which end of an
    interval is the head: the first id when True, the last id otherwise.
    """

    def __init__(
        self,
        item_index: ItemIndex[T],
        get_item_id: Callable[[T], str],
        sort_comparator: Comparator = no_order_change,
        item_ids_head_first: bool = True,
    ):
        self.item_index = item_index
        self.get_item_id = get_item_id
        self.sort_comparator = sort_comparator
        self.item_ids_head_first = item_ids_head_first
        self.active_interval_id: str | None = None
        self._intervals: dict[str, AnyInterval] = {}

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._intervals)

    def __contains__(self, interval_id: object) -> bool:
        return interval_id in self._intervals

    def get(self, interval_id: str | None) -> AnyInterval | None:
        if interval_id is None:
            return None
        return self._intervals.get(interval_id)

    @property
    def logical_head(self) -> LogicalInterval | None:
        return self._intervals.get(LOGICAL_HEAD_INTERVAL_ID)  # type: ignore[return-value]

    @property
    def logical_tail(self) -> LogicalInterval | None:
        return self._intervals.get(LOGICAL_TAIL_INTERVAL_ID)  # type: ignore[return-value]

    def anchored(self) -> list[Interval]:
        """Anchored intervals ordered by their first item."""
        anchored = [itv for itv in self._intervals.values() if isinstance(itv, Interval)]

        def by_first_item(left: Interval, right: Interval) -> int:
            a, b = self._first_item(left), self._first_item(right)
            if a is None or b is None:
                return (a is None) - (b is None)
            return self.sort_comparator(a, b)

        return sorted(anchored, key=functools.cmp_to_key(by_first_item))

    @property
    def intervals(self) -> list[AnyInterval]:
        """All intervals: logical head, anchored intervals, logical tail."""
        ordered: list[AnyInterval] = []
        if self.logical_head is not None:
            ordered.append(self.logical_head)
        ordered.extend(self.anchored())
        if self.logical_tail is not None:
            ordered.append(self.logical_tail)
        return ordered

    @property
    def active(self) -> AnyInterval | None:
        return self.get(self.active_interval_id)

    def set_active(self, interval: AnyInterval | str | None) -> None:
        self.active_interval_id = interval if isinstance(interval, str) or interval is None else interval.id

    def clear(self) -> None:
        self._intervals.clear()
        self.active_interval_id = None

    def referenced_ids(self) -> set[str]:
        return {item_id for itv in self._intervals.values() for item_id in itv.item_ids}

    # ------------------------------------------------------------------
    # Item resolution
    # ------------------------------------------------------------------

    def resolve(self, item_id: str, interval_id: str | None = None) -> T | None:
        item = self.item_index.get(item_id)
        if item is None:
            logger.warning(
                "Interval references an item missing from the item index",
                extra={"interval": interval_id, "item_hash": redact_id(item_id)},
            )
        return item

    def interval_to_items(self, interval: AnyInterval | None) -> list[T]:
        """Resolves interval ids to items, skipping ids missing from the index."""
        if interval is None:
            return []
        items = []
        for item_id in interval.item_ids:
            item = self.resolve(item_id, interval.id)
            if item is not None:
                items.append(item)
        return items

    def check_integrity(self) -> None:
        """
        Verifies that every interval id resolves through the item index.

        Raises:
            IntervalCorruptionError: For the first id missing from the index
        """
        for interval in self.intervals:
            for item_id in interval.item_ids:
                if not self.item_index.has(item_id):
                    raise IntervalCorruptionError(interval.id, item_id)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def _first_item(self, interval: AnyInterval) -> T | None:
        for item_id in interval.item_ids:
            item = self.item_index.get(item_id)
            if item is not None:
                return item
        return None

    def _last_item(self, interval: AnyInterval) -> T | None:
        for item_id in reversed(interval.item_ids):
            item = self.item_index.get(item_id)
            if item is not None:
                return item
        return None

    def _head_cmp(self, a: T, b: T) -> int:
        """Comparator in head order: negative when ``a`` is closer to the head."""
        result = self.sort_comparator(a, b)
        return result if self.item_ids_head_first else -result

    def _head_edge(self, interval: AnyInterval) -> T | None:
        return self._first_item(interval) if self.item_ids_head_first else self._last_item(interval)

    def _tail_edge(self, interval: AnyInterval) -> T | None:
        return self._last_item(interval) if self.item_ids_head_first else self._first_item(interval)

    def _within(self, item: T, first: T, last: T) -> bool:
        return self.sort_comparator(item, first) >= 0 and self.sort_comparator(item, last) <= 0

    def _contains(self, interval: AnyInterval, item: T) -> bool:
        first, last = self._first_item(interval), self._last_item(interval)
        if first is None or last is None:
            return False
        return self._within(item, first, last)

    def _overlaps(self, first: T, last: T, interval: AnyInterval) -> bool:
        interval_first, interval_last = self._first_item(interval), self._last_item(interval)
        if interval_first is None or interval_last is None:
            return False
        return (
            self.sort_comparator(first, interval_last) <= 0
            and self.sort_comparator(interval_first, last) <= 0
        )

    def _sort_ids(self, item_ids: Iterable[str]) -> list[str]:
        """Dedupes ids, keeping the first occurrence, and sorts them stably."""
        unique = list(dict.fromkeys(item_ids))
        resolved = []
        for item_id in unique:
            item = self.resolve(item_id)
            if item is not None:
                resolved.append((item_id, item))
        resolved.sort(key=functools.cmp_to_key(lambda x, y: self.sort_comparator(x[1], y[1])))
        return [item_id for item_id, _ in resolved]

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def locate_in_interval(
        self, item: T, interval: AnyInterval, compare: Comparator | None = None
    ) -> ItemLocation:
        ids = interval.item_ids

        def get_item_at(index: int) -> T | None:
            return self.resolve(ids[index], interval.id)

        return binary_search(
            needle=item,
            length=len(ids),
            get_item_at=get_item_at,
            compare=compare or self.sort_comparator,
            get_item_id=self.get_item_id,
        )

    def locate_interval_for_item(self, item: T) -> AnyInterval | None:
        """First interval whose ``[first, last]`` range contains the item."""
        for interval in self.intervals:
            if self._contains(interval, item):
                return interval
        return None

    def locate_item(self, item: T) -> IntervalLocation | None:
        interval = self.locate_interval_for_item(item)
        if interval is None:
            return None
        location = self.locate_in_interval(item, interval)
        return IntervalLocation(
            interval=interval,
            current_index=location.current_index,
            insertion_index=location.insertion_index,
        )

    def find_interval_by_item_id(self, item_id: str) -> AnyInterval | None:
        for interval in self._intervals.values():
            if item_id in interval.item_ids:
                return interval
        return None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _store(self, interval: AnyInterval) -> None:
        self._intervals[interval.id] = interval

    def replace_interval(self, interval: AnyInterval) -> None:
        """Stores an updated copy of an interval already in the store."""
        if interval.id not in self._intervals:
            raise KeyError(interval.id)
        self._store(interval)

    def _delete_if_empty(self, interval: AnyInterval | None) -> None:
        if interval is not None and not interval.item_ids:
            current = self._intervals.get(interval.id)
            if current is not None and not current.item_ids:
                del self._intervals[interval.id]

    def _detach(self, item_id: str) -> AnyInterval | None:
        """Removes the id from its interval and returns the updated interval."""
        interval = self.find_interval_by_item_id(item_id)
        if interval is None:
            return None
        updated = replace(interval, item_ids=[i for i in interval.item_ids if i != item_id])
        self._store(updated)
        return updated

    def _fits_at(self, interval: AnyInterval, item: T, index: int) -> bool:
        ids = interval.item_ids
        if index < 0 or index > len(ids):
            return False
        before = self.item_index.get(ids[index - 1]) if index > 0 else None
        after = self.item_index.get(ids[index]) if index < len(ids) else None
        return (before is None or self.sort_comparator(before, item) <= 0) and (
            after is None or self.sort_comparator(item, after) <= 0
        )

    def _insert_sorted(
        self, interval: AnyInterval, item: T, preferred_index: int | None = None
    ) -> AnyInterval:
        """Inserts in sort order, at ``preferred_index`` when the item still sorts there."""
        if preferred_index is not None and self._fits_at(interval, item, preferred_index):
            index = preferred_index
        else:
            index = self.locate_in_interval(item, interval).insertion_index
        ids = list(interval.item_ids)
        ids.insert(index, self.get_item_id(item))
        updated = replace(interval, item_ids=ids)
        self._store(updated)
        return updated

    def remove_item(self, item_id: str) -> IntervalLocation | None:
        """
        Detaches an id from the interval holding it.

        Emptied intervals are deleted.

        Returns:
            The interval as it was before removal and the removed position,
            or None when no interval holds the id
        """
        interval = self.find_interval_by_item_id(item_id)
        if interval is None:
            return None
        index = interval.item_ids.index(item_id)
        updated = self._detach(item_id)
        self._delete_if_empty(updated)
        logger.debug(
            "Removed item from interval",
            extra={"interval": interval.id, "item_hash": redact_id(item_id)},
        )
        return IntervalLocation(interval=interval, current_index=index, insertion_index=index)

    def ingest_item(self, item: T, matches_filter: bool = True) -> IngestItemResult:
        """
        Places a single live item into the interval it belongs to.

        The item snapshot is stored in the index first. The id is detached
        from its previous interval and re-inserted where the item sorts now:
        into the anchored or logical interval whose range contains it, into
        the logical head or tail when it sorts beyond everything loaded, or
        nowhere when it falls into a gap between anchored intervals.

        Args:
            item: Latest snapshot of the item
            matches_filter: Whether the item satisfies the paginator filters

        Returns:
            IngestItemResult describing the change
        """
        item_id = self.get_item_id(item)
        previous_snapshot = self.item_index.get(item_id)
        self.item_index.set_one(item)
        holder = self.find_interval_by_item_id(item_id)
        previous_index = holder.item_ids.index(item_id) if holder is not None else -1
        previous = self._detach(item_id)
        removed_from = previous.id if previous is not None else None

        if not matches_filter:
            self._delete_if_empty(previous)
            logger.debug(
                "Item rejected by filters",
                extra={"item_hash": redact_id(item_id), "interval": removed_from},
            )
            return IngestItemResult(changed=previous is not None, removed_from=removed_from)

        target: AnyInterval | None = None
        if previous is not None and (
            not previous.item_ids or (is_logical_interval(previous) and not self.anchored())
        ):
            # the previous interval is the only position information left
            target = previous
        elif (
            previous is not None
            and previous_snapshot is not None
            and self.sort_comparator(previous_snapshot, item) == 0
            and self._fits_at(previous, item, previous_index)
        ):
            # sort position unchanged, edge items included
            target = previous
        if target is None:
            target = self.locate_interval_for_item(item)
        if target is None:
            # nothing exists beyond a head or tail interval
            beyond = self._edge_intervals_beyond(self.anchored(), item, item)
            target = beyond[0] if beyond else None
        if target is None:
            target = self._logical_interval_for(item)

        if target is None:
            self._delete_if_empty(previous)
            logger.debug(
                "Item falls between loaded intervals, dropped",
                extra={"item_hash": redact_id(item_id), "interval": removed_from},
            )
            return IngestItemResult(changed=previous is not None, removed_from=removed_from)

        if previous is not None and target.id == previous.id:
            updated = self._insert_sorted(target, item, preferred_index=previous_index)
        else:
            updated = self._insert_sorted(target, item)
        if previous is not None and previous.id != updated.id:
            self._delete_if_empty(previous)
        else:
            removed_from = None
        logger.debug(
            "Ingested item",
            extra={"item_hash": redact_id(item_id), "interval": updated.id},
        )
        return IngestItemResult(changed=True, interval=updated, removed_from=removed_from)

    def _logical_interval_for(self, item: T) -> AnyInterval | None:
        populated = [itv for itv in self.intervals if itv.item_ids]
        if not populated:
            interval = self.logical_head or LogicalInterval(id=LOGICAL_HEAD_INTERVAL_ID)
            self._store(interval)
            if self.active is None:
                self.active_interval_id = interval.id
            return interval

        head_edges = [e for e in (self._head_edge(itv) for itv in populated) if e is not None]
        tail_edges = [e for e in (self._tail_edge(itv) for itv in populated) if e is not None]
        if head_edges and all(self._head_cmp(item, edge) < 0 for edge in head_edges):
            return self.logical_head or LogicalInterval(id=LOGICAL_HEAD_INTERVAL_ID)
        if tail_edges and all(self._head_cmp(item, edge) > 0 for edge in tail_edges):
            return self.logical_tail or LogicalInterval(id=LOGICAL_TAIL_INTERVAL_ID)
        return None

    def ingest_page(
        self,
        page: list[T],
        is_head: bool = False,
        is_tail: bool = False,
        target_interval_id: str | None = None,
        policy: MergePolicy = "auto",
    ) -> Interval | None:
        """
        Merges a page of server items into the anchored intervals.

        Every anchored interval whose range overlaps the page range takes
        part in the merge. The anchored ``target_interval_id`` takes part as
        well, under "strict-overlap-only" only when it overlaps the page. With
        the "auto" policy a page sorting entirely before the head interval
        (or after the tail interval) is merged into it as well. Items of the
        logical intervals that fall into the merged range are absorbed.

        Args:
            page: Items as returned by the server
            is_head: The page reaches the head of the dataset
            is_tail: The page reaches the tail of the dataset
            target_interval_id: Anchored interval the page continues
            policy: "auto" or "strict-overlap-only"

        Returns:
            The merged interval, or None for an empty page
        """
        if not page:
            return None

        self.item_index.set_many(page)
        page_ids = self._sort_ids(self.get_item_id(item) for item in page)
        if not page_ids:
            return None
        page_first = self.item_index.get(page_ids[0])
        page_last = self.item_index.get(page_ids[-1])

        anchored = self.anchored()
        base = self._intervals.get(target_interval_id) if target_interval_id else None
        if not isinstance(base, Interval):
            base = None
        elif policy == "strict-overlap-only" and not self._overlaps(page_first, page_last, base):
            # only true overlaps merge, the target included
            base = None

        participants = [
            itv for itv in anchored if itv is base or self._overlaps(page_first, page_last, itv)
        ]
        if policy == "auto":
            participants.extend(
                itv
                for itv in self._edge_intervals_beyond(anchored, page_first, page_last)
                if itv not in participants
            )
        if base is None and participants:
            base = participants[0]
        others = [itv for itv in participants if itv is not base]

        merged_ids = list(base.item_ids) if base is not None else []
        for itv in others:
            merged_ids.extend(itv.item_ids)
        merged_ids.extend(page_ids)

        merged = Interval(
            id=base.id if base is not None else generate_interval_id(),
            has_more_head=all(itv.has_more_head for itv in participants),
            has_more_tail=all(itv.has_more_tail for itv in participants),
            is_head=any(itv.is_head for itv in participants),
            is_tail=any(itv.is_tail for itv in participants),
        )
        if is_head:
            merged.is_head = True
            merged.has_more_head = False
        if is_tail:
            merged.is_tail = True
            merged.has_more_tail = False

        for itv in others:
            del self._intervals[itv.id]
            if self.active_interval_id == itv.id:
                self.active_interval_id = merged.id

        merged.item_ids = self._sort_ids(merged_ids)
        merged.item_ids = self._sort_ids(merged.item_ids + self._absorb_logical(merged))
        self._store(merged)

        # an id lives in one interval only
        merged_set = set(merged.item_ids)
        for itv in list(self._intervals.values()):
            if itv.id != merged.id and merged_set.intersection(itv.item_ids):
                stripped = replace(itv, item_ids=[i for i in itv.item_ids if i not in merged_set])
                self._store(stripped)
                self._delete_if_empty(stripped)

        logger.debug(
            "Ingested page",
            extra={
                "interval": merged.id,
                "merged": [itv.id for itv in others],
                "page_size": len(page_ids),
                "item_hashes": redact_ids(page_ids),
            },
        )
        return merged

    def _edge_intervals_beyond(
        self, anchored: list[Interval], page_first: T, page_last: T
    ) -> list[Interval]:
        if self.item_ids_head_first:
            page_head, page_tail = page_first, page_last
        else:
            page_head, page_tail = page_last, page_first

        found = []
        head_interval = next((itv for itv in anchored if itv.is_head), None)
        if head_interval is not None:
            edge = self._head_edge(head_interval)
            if edge is not None and self._head_cmp(page_tail, edge) < 0:
                found.append(head_interval)
        tail_interval = next((itv for itv in anchored if itv.is_tail), None)
        if tail_interval is not None:
            edge = self._tail_edge(tail_interval)
            if edge is not None and self._head_cmp(page_head, edge) > 0:
                found.append(tail_interval)
        return found

    def _absorb_logical(self, merged: Interval) -> list[str]:
        """
        Moves logical interval ids covered by ``merged`` out of the logical intervals.

        A head interval also absorbs every logical-head item up to its tail
        edge; the rest of the logical head becomes an anchored interval of
        its own. The tail is handled the same way.
        """
        first = self.item_index.get(merged.item_ids[0]) if merged.item_ids else None
        last = self.item_index.get(merged.item_ids[-1]) if merged.item_ids else None
        if first is None or last is None:
            return []
        head_edge = first if self.item_ids_head_first else last
        tail_edge = last if self.item_ids_head_first else first

        absorbed: list[str] = []
        for logical_id, closes in (
            (LOGICAL_HEAD_INTERVAL_ID, merged.is_head),
            (LOGICAL_TAIL_INTERVAL_ID, merged.is_tail),
        ):
            logical = self._intervals.get(logical_id)
            if logical is None:
                continue
            kept = []
            for item_id in logical.item_ids:
                item = self.item_index.get(item_id)
                if item is None:
                    kept.append(item_id)
                elif self._within(item, first, last):
                    absorbed.append(item_id)
                elif closes and logical_id == LOGICAL_HEAD_INTERVAL_ID and self._head_cmp(item, tail_edge) <= 0:
                    absorbed.append(item_id)
                elif closes and logical_id == LOGICAL_TAIL_INTERVAL_ID and self._head_cmp(item, head_edge) >= 0:
                    absorbed.append(item_id)
                else:
                    kept.append(item_id)

            if closes:
                del self._intervals[logical_id]
                replacement_id = merged.id
                if kept:
                    remainder = Interval(id=generate_interval_id(), item_ids=self._sort_ids(kept))
                    self._store(remainder)
                    replacement_id = remainder.id
                if self.active_interval_id == logical_id:
                    self.active_interval_id = replacement_id
            elif kept:
                self._store(replace(logical, item_ids=kept))
            else:
                del self._intervals[logical_id]
                if self.active_interval_id == logical_id:
                    self.active_interval_id = merged.id
        return absorbed
