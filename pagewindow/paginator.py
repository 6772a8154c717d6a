"""
The pagination engine.

A Paginator owns the observable state of one paginated list. Domain code
plugs in through a PaginationSource, which performs the remote query and
describes how items are identified, filtered and sorted:

    class ChannelSource(PaginationSource):
        async def query(self, params):
            response = await client.query_channels(params.query_shape)
            return QueryResult(items=response.channels, tailward=response.next)

        def get_next_query_shape(self, direction):
            return {"filters": self.filters, "sort": self.sort}

    paginator = Paginator(ChannelSource(), initial_cursor=ZERO_PAGE_CURSOR)
    await paginator.to_tail()

With an ItemIndex configured, pages are merged into intervals and the state
projects the active interval. Without one, the state holds the pages as
they were received.
"""

from __future__ import annotations

import asyncio
import dataclasses
import functools
import inspect
import uuid
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Generic, TypeVar

from ._logging import logger, redact_id
from .boosts import Boost, BoostOverlay
from .config import PaginatorOptions
from .cursor_derivation import CursorDeriveContext, CursorDeriveResult
from .exceptions import QueryShapeNotImplementedError, handle_query_errors
from .filters import FieldResolver, item_matches_filter
from .intervals import AnyInterval, Interval, IntervalStore, MergePolicy, no_order_change
from .item_index import ItemIndex, default_get_id
from .pagination import (
    Direction,
    ExecuteQueryResult,
    ItemCoordinates,
    PaginatorCursor,
    PaginatorState,
    QueryParams,
    QueryResult,
    ResetPolicy,
    StateLocation,
)
from .scheduling import DelayedCall, Debouncer
from .sorting import Comparator, binary_search
from .store import StateStore

T = TypeVar("T")


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class PaginationSource(Generic[T]):
    """
    Domain strategy of a Paginator.

    Only ``query`` is required. ``get_next_query_shape`` is needed unless
    every query is issued with an explicit shape.
    """

    async def query(self, params: QueryParams) -> QueryResult[T]:
        raise NotImplementedError

    def filter_query_results(self, items: list[T]) -> list[T]:
        """Drops items the client never shows. May be a coroutine function."""
        return items

    def get_next_query_shape(self, direction: Direction | None) -> Any:
        raise QueryShapeNotImplementedError()

    def get_jump_query_shape(self, item_id: str) -> Any:
        """Shape of a query centered on ``item_id``, None if jumps are unsupported."""
        return None

    def build_filters(self) -> Mapping[str, Any] | None:
        """Filter tree live items are checked against, None matches everything."""
        return None

    def get_item_id(self, item: T) -> str:
        return default_get_id(item)

    def sort_comparator(self, a: T, b: T) -> int:
        return no_order_change(a, b)

    def preload_first_page(self, params: QueryParams) -> list[T] | None:
        """Items shown while the first query of a cold paginator is in flight."""
        return None

    def persist_after_query(self, items: list[T] | None, query_shape: Any) -> None:
        """Called with the new state items after every successful query."""
        return None


class Paginator(Generic[T]):
    """
    Windowed pagination cache over a PaginationSource.

    Args:
        source: Domain strategy
        options: Validated options, defaults when omitted
        **overrides: Individual PaginatorOptions fields
    """

    def __init__(
        self,
        source: PaginationSource[T],
        options: PaginatorOptions | None = None,
        **overrides: Any,
    ):
        if options is None:
            options = PaginatorOptions(**overrides)
        elif overrides:
            options = options.model_copy()
            for name, value in overrides.items():
                setattr(options, name, value)

        self.id = f"paginator-{uuid.uuid4()}"
        self.source = source
        self.options = options
        self.boosts = BoostOverlay()
        self._sort_comparator: Comparator = source.sort_comparator
        self._filter_resolvers: list[FieldResolver] = []
        self._last_query_shape: Any = None
        self._has_succeeded = False
        self._next_query_shape: Any = None

        self._intervals: IntervalStore[T] | None = None
        if options.item_index is not None:
            self._intervals = IntervalStore(
                item_index=options.item_index,
                get_item_id=self.get_item_id,
                sort_comparator=self._sort_comparator,
                item_ids_head_first=options.item_ids_head_first,
            )

        self.state: StateStore[PaginatorState[T]] = StateStore(self.initial_state)
        self._debouncer = Debouncer(self.execute_query, options.debounce_ms)

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def initial_state(self) -> PaginatorState[T]:
        return PaginatorState(
            cursor=self.options.initial_cursor,
            offset=self.options.initial_offset or 0,
        )

    @property
    def items(self) -> list[T] | None:
        return self.state.get_latest_value().items

    @property
    def has_more_head(self) -> bool:
        return self.state.get_latest_value().has_more_head

    @property
    def has_more_tail(self) -> bool:
        return self.state.get_latest_value().has_more_tail

    @property
    def is_loading(self) -> bool:
        return self.state.get_latest_value().is_loading

    @property
    def last_query_error(self) -> BaseException | None:
        return self.state.get_latest_value().last_query_error

    @property
    def cursor(self) -> PaginatorCursor | None:
        return self.state.get_latest_value().cursor

    @property
    def offset(self) -> int:
        return self.state.get_latest_value().offset

    @property
    def has_results(self) -> bool:
        return self.items is not None

    @property
    def is_initialized(self) -> bool:
        """False until a query has succeeded."""
        return self._has_succeeded

    @property
    def page_size(self) -> int:
        return self.options.page_size

    @page_size.setter
    def page_size(self, size: int) -> None:
        self.options.page_size = size

    @property
    def sort_comparator(self) -> Comparator:
        return self._sort_comparator

    @sort_comparator.setter
    def sort_comparator(self, comparator: Comparator) -> None:
        self._sort_comparator = comparator
        if self._intervals is not None:
            self._intervals.sort_comparator = comparator

    @property
    def effective_comparator(self) -> Comparator:
        """The sort comparator with boosted items placed first."""
        return self.boosts.comparator(self._sort_comparator, self.get_item_id)

    @property
    def max_boost_seq(self) -> int:
        return self.boosts.max_boost_seq

    @property
    def item_index(self) -> ItemIndex[T] | None:
        return self.options.item_index

    @property
    def interval_store(self) -> IntervalStore[T] | None:
        return self._intervals

    @property
    def intervals(self) -> list[AnyInterval]:
        return self._intervals.intervals if self._intervals is not None else []

    @property
    def active_interval(self) -> AnyInterval | None:
        return self._intervals.active if self._intervals is not None else None

    def get_item_id(self, item: T) -> str:
        return self.source.get_item_id(item)

    def get_item(self, item_id: str | None) -> T | None:
        if item_id is None or self.item_index is None:
            return None
        return self.item_index.get(item_id)

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def matches_filter(self, item: T) -> bool:
        filters = self.source.build_filters()
        if filters is None:
            return True
        return item_matches_filter(item, filters, self._filter_resolvers)

    def set_filter_resolvers(self, resolvers: Iterable[FieldResolver]) -> None:
        self._filter_resolvers = list(resolvers)

    def add_filter_resolvers(self, resolvers: Iterable[FieldResolver]) -> None:
        self._filter_resolvers.extend(resolvers)

    @property
    def filter_resolvers(self) -> list[FieldResolver]:
        return list(self._filter_resolvers)

    # ------------------------------------------------------------------
    # Boosts
    # ------------------------------------------------------------------

    def boost(
        self,
        item_id: str,
        ttl_ms: int | None = None,
        until: float | None = None,
        seq: int | None = None,
    ) -> Boost:
        return self.boosts.boost(item_id, ttl_ms=ttl_ms, until=until, seq=seq)

    def get_boost(self, item_id: str) -> Boost | None:
        return self.boosts.get(item_id)

    def remove_boost(self, item_id: str) -> None:
        self.boosts.remove(item_id)

    def is_boosted(self, item_id: str) -> bool:
        return self.boosts.is_boosted(item_id)

    def clear_expired_boosts(self, now: float | None = None) -> int:
        return self.boosts.clear_expired(now)

    # ------------------------------------------------------------------
    # Projection and search
    # ------------------------------------------------------------------

    def _project(self, interval: AnyInterval | None) -> list[T]:
        """Items of an interval as shown in the state."""
        if self._intervals is None or interval is None:
            return []
        items = self._intervals.interval_to_items(interval)
        if not self.options.lock_item_order:
            items.sort(key=functools.cmp_to_key(self.effective_comparator))
        return items

    def _locate_in_state(self, item: T) -> StateLocation:
        items = self.items or []
        location = binary_search(
            needle=item,
            length=len(items),
            get_item_at=items.__getitem__,
            compare=self.effective_comparator,
            get_item_id=self.get_item_id,
        )
        return StateLocation(location.current_index, location.insertion_index)

    def locate_by_item(self, item: T) -> ItemCoordinates:
        """
        Locates an item in the state items and in the intervals.

        Returns:
            ItemCoordinates; ``interval`` is None unless some interval range
            contains the item
        """
        interval = self._intervals.locate_item(item) if self._intervals is not None else None
        return ItemCoordinates(state=self._locate_in_state(item), interval=interval)

    def find_item(self, needle: T) -> T | None:
        """Returns the stored snapshot with the needle's identity, if any."""
        coordinates = self.locate_by_item(needle)
        if coordinates.state is not None and coordinates.state.current_index >= 0:
            return self.items[coordinates.state.current_index]  # type: ignore[index]
        located = coordinates.interval
        if located is not None and located.current_index >= 0:
            return self.get_item(located.interval.item_ids[located.current_index])
        return None

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest_page(
        self,
        page: list[T],
        is_head: bool = False,
        is_tail: bool = False,
        target_interval_id: str | None = None,
        set_active: bool = False,
        policy: MergePolicy | None = None,
    ) -> Interval | None:
        """
        Merges a page into the intervals.

        A no-op returning None when no ItemIndex is configured.

        Args:
            page: Items to merge
            is_head: The page reaches the head of the dataset
            is_tail: The page reaches the tail of the dataset
            target_interval_id: Anchored interval the page continues
            set_active: Activate the resulting interval and project it
            policy: Merge policy, ``options.merge_policy`` by default
        """
        if self._intervals is None:
            return None
        interval = self._intervals.ingest_page(
            page,
            is_head=is_head,
            is_tail=is_tail,
            target_interval_id=target_interval_id,
            policy=policy or self.options.merge_policy,
        )
        if interval is not None and set_active:
            self._activate(interval)
        return interval

    def _activate(self, interval: AnyInterval) -> None:
        assert self._intervals is not None
        self._intervals.set_active(interval)
        patch: dict[str, Any] = {"items": self._project(interval)}
        if isinstance(interval, Interval):
            patch["has_more_head"] = interval.has_more_head
            patch["has_more_tail"] = interval.has_more_tail
        self.state.partial_next(**patch)

    def ingest_item(self, item: T) -> bool:
        """
        Inserts, moves or removes a live item.

        The item is checked against the filters. A matching item is placed
        where it sorts (boosts included), a non-matching one is removed.
        With ``lock_item_order`` an item already shown keeps its position.

        Returns:
            True if the state or the intervals changed
        """
        matches = self.matches_filter(item)
        if self._intervals is None:
            return self._ingest_into_state(item, matches)

        item_id = self.get_item_id(item)
        result = self._intervals.ingest_item(item, matches)
        active_id = self._intervals.active_interval_id
        items = list(self.items or [])
        current_index = self._index_in_state(item_id, items)

        if not matches:
            if current_index < 0:
                return result.changed
            del items[current_index]
        elif self.options.lock_item_order and current_index >= 0:
            items[current_index] = item
        elif result.interval is not None and result.interval.id == active_id:
            if current_index >= 0:
                del items[current_index]
            self._insert_into(items, item, preferred_index=current_index)
        elif current_index >= 0:
            del items[current_index]
        else:
            return result.changed

        self.state.partial_next(items=items)
        return True

    def _ingest_into_state(self, item: T, matches: bool) -> bool:
        item_id = self.get_item_id(item)
        items = list(self.items or [])
        current_index = self._index_in_state(item_id, items)

        if not matches:
            if current_index < 0:
                return False
            del items[current_index]
        elif self.options.lock_item_order and current_index >= 0:
            items[current_index] = item
        else:
            if current_index >= 0:
                del items[current_index]
            self._insert_into(items, item, preferred_index=current_index)

        self.state.partial_next(items=items)
        return True

    def _index_in_state(self, item_id: str, items: list[T]) -> int:
        for index, candidate in enumerate(items):
            if self.get_item_id(candidate) == item_id:
                return index
        return -1

    def _insert_into(self, items: list[T], item: T, preferred_index: int = -1) -> None:
        """Inserts in effective order, at ``preferred_index`` when the item still sorts there."""
        compare = self.effective_comparator
        if 0 <= preferred_index <= len(items):
            before = items[preferred_index - 1] if preferred_index > 0 else None
            after = items[preferred_index] if preferred_index < len(items) else None
            if (before is None or compare(before, item) <= 0) and (
                after is None or compare(item, after) <= 0
            ):
                items.insert(preferred_index, item)
                return
        location = binary_search(
            needle=item,
            length=len(items),
            get_item_at=items.__getitem__,
            compare=compare,
            get_item_id=self.get_item_id,
            plateau_scan=False,
        )
        items.insert(location.insertion_index, item)

    def remove_item(self, item_id: str | None = None, item: T | None = None) -> ItemCoordinates:
        """
        Removes an item from the state and from its interval.

        The item snapshot stays in the ItemIndex, which may be shared.

        Returns:
            Coordinates the item was removed from. A state location of
            ``(-1, -1)`` means the state did not hold it; ``(index, -1)``
            means it was found by id scan, without a snapshot or because
            the state is not sorted under the current comparator.
        """
        if item_id is None and item is None:
            raise ValueError("remove_item() needs an item_id or an item")
        if item_id is None:
            item_id = self.get_item_id(item)  # type: ignore[arg-type]
        needle = item if item is not None else self.get_item(item_id)

        interval_location = None
        if self._intervals is not None:
            interval_location = self._intervals.remove_item(item_id)

        items = self.items
        state_location = StateLocation(-1, -1)
        if items:
            if needle is not None:
                location = self._locate_in_state(needle)
                if location.current_index >= 0:
                    state_location = StateLocation(location.current_index, location.current_index)
                else:
                    # locked order, or boosts expired since the items were placed
                    index = self._index_in_state(item_id, items)
                    if index >= 0:
                        state_location = StateLocation(index, -1)
            else:
                index = self._index_in_state(item_id, items)
                if index >= 0:
                    state_location = StateLocation(index, -1)

        if state_location.current_index >= 0:
            remaining = list(items)  # type: ignore[arg-type]
            del remaining[state_location.current_index]
            self.state.partial_next(items=remaining)

        logger.debug(
            "Removed item",
            extra={
                "paginator": self.id,
                "item_hash": redact_id(item_id),
                "state_index": state_location.current_index,
            },
        )
        return ItemCoordinates(state=state_location, interval=interval_location)

    def set_items(
        self,
        value_or_factory: list[T] | Callable[[list[T]], list[T]],
        cursor: PaginatorCursor | None = None,
        is_first_page: bool = False,
        is_last_page: bool = False,
    ) -> None:
        """
        Replaces the state items.

        Nothing is emitted when the new list is the current list object.
        Without a cursor the offset becomes the number of items. With an
        ItemIndex the items are also merged into an interval that becomes
        active.
        """
        current_items = self.items
        base = current_items if current_items is not None else []
        new_items = value_or_factory(base) if callable(value_or_factory) else value_or_factory
        if new_items is current_items:
            return

        patch: dict[str, Any] = {"items": new_items}
        if cursor is not None:
            patch["cursor"] = cursor
        else:
            patch["offset"] = len(new_items)

        interval = self.ingest_page(new_items, is_head=is_first_page, is_tail=is_last_page)
        if interval is not None and self._intervals is not None:
            self._intervals.set_active(interval)
        self.state.partial_next(**patch)

    def prune_item_index(self) -> int:
        """
        Drops ItemIndex entries no interval or state item refers to.

        Only call this when the index is not shared with other paginators,
        or when their references are no longer needed.

        Returns:
            Number of removed entries
        """
        if self._intervals is None or self.item_index is None:
            return 0
        keep = self._intervals.referenced_ids()
        keep.update(self.get_item_id(item) for item in self.items or [])
        removed = self.item_index.prune(keep)
        logger.info(
            "Pruned item index",
            extra={"paginator": self.id, "removed": removed, "kept": len(keep)},
        )
        return removed

    # ------------------------------------------------------------------
    # Query execution
    # ------------------------------------------------------------------

    def is_first_page_query(self, query_shape: Any, reset: ResetPolicy | None = None) -> bool:
        if self.items is None or reset == "yes":
            return True
        if reset == "no":
            return False
        if not self.is_initialized:
            return True
        # a None shape is a valid shape once a query has succeeded
        return self.options.has_pagination_query_shape_changed(self._last_query_shape, query_shape)

    def _can_execute_query(
        self, direction: Direction | None, query_shape: Any, reset: ResetPolicy | None
    ) -> bool:
        if reset == "yes":
            return True
        if self.is_loading:
            return False
        if reset != "no" and self.is_first_page_query(query_shape, reset):
            return True
        if direction == "tailward":
            return self.has_more_tail
        if direction == "headward":
            return self.has_more_head
        return True

    async def _run_query_retryable(self, params: QueryParams) -> QueryResult[T] | None:
        attempt = 0
        while True:
            attempt += 1
            try:
                with handle_query_errors(attempts=attempt, wrap=self.options.wrap_query_errors):
                    return await self.source.query(params)
            except Exception as e:
                self.state.partial_next(last_query_error=e)
                remaining = params.retry_count - 1
                if remaining > 0:
                    logger.warning(
                        "Query failed, retrying",
                        exc_info=e,
                        extra={
                            "paginator": self.id,
                            "direction": params.direction,
                            "attempt": attempt,
                            "retry_delay_ms": self.options.retry_delay_ms,
                        },
                    )
                    await asyncio.sleep(self.options.retry_delay_ms / 1000)
                    params = dataclasses.replace(params, retry_count=remaining)
                    continue
                if self.options.throw_errors:
                    self.state.partial_next(is_loading=False)
                    raise
                logger.warning(
                    "Query failed",
                    exc_info=e,
                    extra={"paginator": self.id, "direction": params.direction, "attempt": attempt},
                )
                return None

    async def execute_query(
        self,
        direction: Direction | None = "tailward",
        query_shape: Any = None,
        reset: ResetPolicy | None = None,
        retry_count: int = 0,
        update_state: bool = True,
    ) -> ExecuteQueryResult[T] | None:
        """
        Loads the next page in a direction.

        Args:
            direction: "tailward", "headward", or None for a jump
            query_shape: Explicit shape, otherwise ``source.get_next_query_shape``
            reset: "yes" forces a first page, "no" forces a continuation
            retry_count: Failed attempts are retried while the decremented
                count stays positive, so at most ``retry_count - 1`` attempts
                are made and always at least one
            update_state: When False, the page is ingested but neither the
                state items nor the active interval change

        Returns:
            ExecuteQueryResult, or None if the query was skipped or failed

        Raises:
            QueryShapeNotImplementedError: Without a shape provider
        """
        shape = query_shape if query_shape is not None else self.source.get_next_query_shape(direction)
        if not self._can_execute_query(direction, shape, reset):
            logger.debug(
                "Query skipped",
                extra={"paginator": self.id, "direction": direction, "reset": reset},
            )
            return None

        params = QueryParams(direction=direction, query_shape=shape, reset=reset, retry_count=retry_count)
        is_first_page = self.is_first_page_query(shape, reset)
        if is_first_page:
            first_page_state = dataclasses.replace(self.initial_state, is_loading=True)
            if not self.is_initialized:
                preloaded = await _maybe_await(self.source.preload_first_page(params))
                first_page_state = dataclasses.replace(first_page_state, items=preloaded)
            self.state.next(first_page_state)
        else:
            self.state.partial_next(is_loading=True)

        logger.info(
            "Querying page",
            extra={"paginator": self.id, "direction": direction, "first_page": is_first_page},
        )
        self._next_query_shape = shape
        result = await self._run_query_retryable(params)
        self._next_query_shape = None

        if result is None:
            self.state.partial_next(is_loading=False)
            return None

        try:
            return await self._apply_query_result(result, direction, shape, is_first_page, update_state)
        except Exception as e:
            # local failures count as query failures
            self.state.partial_next(last_query_error=e, is_loading=False)
            if self.options.throw_errors:
                raise
            logger.warning(
                "Query results could not be applied",
                exc_info=e,
                extra={"paginator": self.id, "direction": direction},
            )
            return None

    async def _apply_query_result(
        self,
        result: QueryResult[T],
        direction: Direction | None,
        shape: Any,
        is_first_page: bool,
        update_state: bool,
    ) -> ExecuteQueryResult[T]:
        """Filters and ingests a page, then stores the new state."""
        current = self.state.get_latest_value()
        patch: dict[str, Any] = {"last_query_error": None}
        derive_cursor = self.options.derive_cursor
        if self.options.cursor_pagination and derive_cursor is None:
            patch["cursor"] = PaginatorCursor(headward=result.headward, tailward=result.tailward)
            patch["has_more_head"] = bool(result.headward)
            patch["has_more_tail"] = bool(result.tailward)
        elif not self.options.cursor_pagination:
            patch["offset"] = current.offset + len(result.items)
            patch["has_more_tail"] = len(result.items) == self.page_size

        items = await _maybe_await(self.source.filter_query_results(result.items))

        target: Interval | None = None
        if self._intervals is not None:
            use_derived = self.options.cursor_pagination and derive_cursor is not None
            target = self._intervals.ingest_page(
                items,
                is_head=not use_derived and not patch.get("has_more_head", current.has_more_head),
                is_tail=not use_derived and not patch.get("has_more_tail", current.has_more_tail),
                target_interval_id=None if is_first_page else self._intervals.active_interval_id,
                policy=self.options.merge_policy,
            )
            if use_derived:
                # an empty page still bounds the interval it continued
                continued = target if target is not None or is_first_page else self._intervals.active
                derived = self._derive_cursor(derive_cursor, direction, result.items, continued, shape, current)
                patch.update(
                    cursor=derived.cursor,
                    has_more_head=derived.has_more_head,
                    has_more_tail=derived.has_more_tail,
                )
                if isinstance(continued, Interval):
                    marked = self._mark_edges(continued, derived)
                    if target is not None:
                        target = marked
        elif self.options.cursor_pagination and derive_cursor is not None:
            derived = self._derive_cursor(derive_cursor, direction, result.items, None, shape, current)
            patch.update(
                cursor=derived.cursor,
                has_more_head=derived.has_more_head,
                has_more_tail=derived.has_more_tail,
            )

        self._last_query_shape = shape
        self._has_succeeded = True

        if not update_state:
            self.state.partial_next(is_loading=False)
            return ExecuteQueryResult(state_candidate=patch, target_interval=target)

        if target is not None:
            self._intervals.set_active(target)  # type: ignore[union-attr]
            patch["items"] = self._project(target)
        elif is_first_page:
            patch["items"] = list(items)
        elif self._intervals is not None:
            patch["items"] = list(current.items or [])
        else:
            patch["items"] = list(current.items or []) + list(items)

        new_state = dataclasses.replace(current, **patch, is_loading=False)
        self.state.next(new_state)
        await _maybe_await(self.source.persist_after_query(new_state.items, shape))

        logger.info(
            "Page loaded",
            extra={
                "paginator": self.id,
                "direction": direction,
                "received": len(result.items),
                "kept": len(items),
                "interval": target.id if target is not None else None,
            },
        )
        return ExecuteQueryResult(state_candidate=patch, target_interval=target)

    def _derive_cursor(
        self,
        derive_cursor: Callable[[CursorDeriveContext], CursorDeriveResult],
        direction: Direction | None,
        page: list[T],
        interval: AnyInterval | None,
        query_shape: Any,
        current: PaginatorState[T],
    ) -> CursorDeriveResult:
        return derive_cursor(
            CursorDeriveContext(
                direction=direction,
                page=page,
                interval=interval,
                query_shape=query_shape,
                requested_page_size=self.page_size,
                has_more_head=current.has_more_head,
                has_more_tail=current.has_more_tail,
                cursor=current.cursor,
                get_item_id=self.get_item_id,
            )
        )

    def _mark_edges(self, interval: Interval, flags: CursorDeriveResult) -> Interval:
        assert self._intervals is not None
        updated = dataclasses.replace(
            interval,
            has_more_head=flags.has_more_head,
            has_more_tail=flags.has_more_tail,
            is_head=interval.is_head or not flags.has_more_head,
            is_tail=interval.is_tail or not flags.has_more_tail,
        )
        self._intervals.replace_interval(updated)
        return updated

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def to_tail(
        self, reset: ResetPolicy | None = None, retry_count: int = 0
    ) -> ExecuteQueryResult[T] | None:
        return await self.execute_query(direction="tailward", reset=reset, retry_count=retry_count)

    async def to_head(
        self, reset: ResetPolicy | None = None, retry_count: int = 0
    ) -> ExecuteQueryResult[T] | None:
        return await self.execute_query(direction="headward", reset=reset, retry_count=retry_count)

    def to_tail_debounced(self, reset: ResetPolicy | None = None, retry_count: int = 0) -> DelayedCall:
        return self._debouncer(direction="tailward", reset=reset, retry_count=retry_count)

    def to_head_debounced(self, reset: ResetPolicy | None = None, retry_count: int = 0) -> DelayedCall:
        return self._debouncer(direction="headward", reset=reset, retry_count=retry_count)

    def cancel_scheduled_query(self) -> bool:
        return self._debouncer.cancel()

    def set_debounce_options(self, debounce_ms: int) -> None:
        self._debouncer.cancel()
        self.options.debounce_ms = debounce_ms
        self._debouncer = Debouncer(self.execute_query, self.options.debounce_ms)

    async def reload(self) -> ExecuteQueryResult[T] | None:
        return await self.to_tail(reset="yes")

    def reset_state(self) -> None:
        """Restores the initial state and drops every interval."""
        if self._intervals is not None:
            self._intervals.clear()
        self.state.next(self.initial_state)

    async def jump_to_item(self, item_id: str) -> bool:
        """
        Moves the window to the interval holding an item.

        An item already held by an interval only switches the active
        interval. Otherwise a page around the item is queried with
        ``source.get_jump_query_shape``.

        Returns:
            True if the item is in the state items afterwards
        """
        if self._intervals is not None:
            interval = self._intervals.find_interval_by_item_id(item_id)
            if interval is not None:
                self._activate(interval)
                return True

        shape = self.source.get_jump_query_shape(item_id)
        if shape is None:
            return False
        if self._intervals is not None:
            self._intervals.set_active(None)
        logger.info(
            "Jumping to item",
            extra={"paginator": self.id, "item_hash": redact_id(item_id)},
        )
        await self.execute_query(direction=None, query_shape=shape, reset="yes")
        return any(self.get_item_id(item) == item_id for item in self.items or [])
