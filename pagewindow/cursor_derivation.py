"""
Cursor derivation strategies.

After a page has been ingested, a paginator over an ascending chronological
list (messages) has to decide whether more data exists on either side of
the interval the page landed in. The strategies below compute the new
``has_more_head`` / ``has_more_tail`` flags from the page, the interval and
the query shape that produced the page.

All strategies expect interval ids in ascending chronological order: the
tail edge is the first id and the head edge is the last id.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from ._logging import logger
from .intervals import AnyInterval
from .item_index import default_get_id
from .normalization import resolve_dot_path_value, to_epoch_millis
from .pagination import Direction, PaginatorCursor
from .sorting import binary_search_insert_index

T = TypeVar("T")

TAILWARD_QUERY_PROPERTIES = (
    "created_at_before_or_equal",
    "created_at_before",
    "id_lt",
    "id_lte",
    "offset",
)

HEADWARD_QUERY_PROPERTIES = (
    "created_at_after_or_equal",
    "created_at_after",
    "id_gt",
    "id_gte",
)


@dataclass
class CursorDeriveContext(Generic[T]):
    """
    Inputs of a cursor derivation.

    Attributes:
        direction: Direction of the query, None for jumps
        page: Items returned by the server
        interval: Interval the page was ingested into
        query_shape: Shape that produced the page
        requested_page_size: Number of items asked for
        has_more_head: Flag before the query
        has_more_tail: Flag before the query
        cursor: Cursor before the query
        get_item_id: Identity accessor
    """

    direction: Direction | None
    page: list[T]
    interval: AnyInterval | None
    query_shape: Any
    requested_page_size: int
    has_more_head: bool
    has_more_tail: bool
    cursor: PaginatorCursor | None = None
    get_item_id: Callable[[T], str] = field(default=default_get_id)


@dataclass(frozen=True)
class CursorDeriveResult:
    has_more_head: bool
    has_more_tail: bool
    cursor: PaginatorCursor | None = None


CursorDerivator = Callable[[CursorDeriveContext], CursorDeriveResult]


def _shape_value(query_shape: Any, prop: str) -> Any:
    if query_shape is None:
        return None
    return resolve_dot_path_value(query_shape, prop)


def _has_any(query_shape: Any, props: tuple[str, ...]) -> bool:
    return any(_shape_value(query_shape, prop) is not None for prop in props)


def _edges(ctx: CursorDeriveContext) -> tuple[bool, bool]:
    """Whether the first / last page item is the first / last interval item."""
    if not ctx.page or ctx.interval is None or not ctx.interval.item_ids:
        return False, False
    ids = ctx.interval.item_ids
    return (
        ctx.get_item_id(ctx.page[0]) == ids[0],
        ctx.get_item_id(ctx.page[-1]) == ids[-1],
    )


def _interval_length(ctx: CursorDeriveContext) -> int:
    return len(ctx.interval.item_ids) if ctx.interval is not None else 0


def _exhausted(ctx: CursorDeriveContext) -> bool:
    interval_length = _interval_length(ctx)
    requested = ctx.requested_page_size
    return (
        requested > interval_length or interval_length >= len(ctx.page)
    ) and requested > len(ctx.page)


def derive_linear_pagination_flags(ctx: CursorDeriveContext) -> CursorDeriveResult:
    """
    Flags for before/after (or offset) pagination.

    ``has_more`` is ``len(page) >= requested_page_size``. Only the edge that
    was queried is updated, and only if the page reaches the matching
    interval edge: a page ingested into the middle of an interval says
    nothing about its bounds. A first page (no cursor properties) is the
    newest page, so it closes the head.
    """
    shape = ctx.query_shape
    first_is_first, last_is_last = _edges(ctx)

    towards_head = ctx.direction == "headward" or _has_any(shape, HEADWARD_QUERY_PROPERTIES)
    towards_tail = (
        ctx.direction == "tailward" or shape is None or _has_any(shape, TAILWARD_QUERY_PROPERTIES)
    )
    non_linear = bool(_shape_value(shape, "id_around")) or bool(
        _shape_value(shape, "created_at_around")
    )
    unrecognized_only = not towards_head and not towards_tail and not non_linear
    is_first_page = not _has_any(shape, HEADWARD_QUERY_PROPERTIES + TAILWARD_QUERY_PROPERTIES)
    has_more = len(ctx.page) >= ctx.requested_page_size
    page_is_empty = not ctx.page

    has_more_head, has_more_tail = ctx.has_more_head, ctx.has_more_tail
    if (towards_tail or unrecognized_only) and (first_is_first or page_is_empty):
        has_more_tail = has_more if ctx.has_more_tail else False
    if (towards_head or is_first_page) and (last_is_last or page_is_empty):
        has_more_head = False if not ctx.has_more_head or is_first_page else has_more

    return CursorDeriveResult(has_more_head=has_more_head, has_more_tail=has_more_tail)


def derive_id_around_pagination_flags(ctx: CursorDeriveContext) -> CursorDeriveResult:
    """
    Flags for a page requested around an anchor id.

    The server centers the page on the anchor. When the anchor lands in the
    lower half, the page could not be filled towards the tail; when it lands
    in the upper half, towards the head.
    """
    unchanged = CursorDeriveResult(ctx.has_more_head, ctx.has_more_tail)
    anchor_id = _shape_value(ctx.query_shape, "id_around")
    if not anchor_id:
        return unchanged

    if _exhausted(ctx):
        return CursorDeriveResult(has_more_head=False, has_more_tail=False)

    midpoint = len(ctx.page) // 2
    if midpoint >= len(ctx.page):
        return unchanged
    if ctx.get_item_id(ctx.page[midpoint]) == anchor_id:
        return CursorDeriveResult(has_more_head=True, has_more_tail=True)

    first_is_first, last_is_last = _edges(ctx)
    lower_ids = {ctx.get_item_id(item) for item in ctx.page[:midpoint]}
    upper_ids = {ctx.get_item_id(item) for item in ctx.page[midpoint:]}
    has_more_head, has_more_tail = ctx.has_more_head, ctx.has_more_tail
    if first_is_first and anchor_id in lower_ids:
        has_more_tail = False
    if last_is_last and anchor_id in upper_ids:
        has_more_head = False
    return CursorDeriveResult(has_more_head=has_more_head, has_more_tail=has_more_tail)


def _created_at(item: Any) -> float | None:
    return to_epoch_millis(resolve_dot_path_value(item, "created_at"))


def derive_created_at_around_pagination_flags(ctx: CursorDeriveContext) -> CursorDeriveResult:
    """
    Flags for a page requested around an anchor timestamp.

    An anchor newer than the whole page closes the head, older than the
    whole page closes the tail. Otherwise the anchor's insertion point in
    the page is compared to the page midpoint the way
    ``derive_id_around_pagination_flags`` compares the anchor position.
    """
    has_more_head, has_more_tail = ctx.has_more_head, ctx.has_more_tail
    anchor = to_epoch_millis(_shape_value(ctx.query_shape, "created_at_around"))
    if anchor is None or not ctx.page:
        return CursorDeriveResult(has_more_head, has_more_tail)

    first_created = _created_at(ctx.page[0])
    last_created = _created_at(ctx.page[-1])
    is_above_head_bound = last_created is not None and anchor > last_created
    is_below_tail_bound = first_created is not None and anchor < first_created

    interval_length = _interval_length(ctx)
    requested_not_met = (
        ctx.requested_page_size > interval_length and ctx.requested_page_size > len(ctx.page)
    )

    if is_above_head_bound:
        has_more_head = False
        if requested_not_met:
            has_more_tail = False
    elif is_below_tail_bound:
        has_more_tail = False
        if requested_not_met:
            has_more_head = False
    elif _exhausted(ctx):
        has_more_head, has_more_tail = False, False
    else:
        first_is_first, last_is_last = _edges(ctx)
        midpoint = len(ctx.page) // 2
        timestamps = [_created_at(item) or 0 for item in ctx.page]
        insertion_index = binary_search_insert_index(
            timestamps, anchor, lambda a, b: (a > b) - (a < b)
        )
        if first_is_first:
            has_more_tail = midpoint <= insertion_index
        if last_is_last:
            has_more_head = midpoint >= insertion_index

    return CursorDeriveResult(has_more_head=has_more_head, has_more_tail=has_more_tail)


def derive_around_or_linear(ctx: CursorDeriveContext) -> CursorDeriveResult:
    """Picks the strategy matching the query shape."""
    if _shape_value(ctx.query_shape, "created_at_around"):
        return derive_created_at_around_pagination_flags(ctx)
    if _shape_value(ctx.query_shape, "id_around"):
        return derive_id_around_pagination_flags(ctx)
    return derive_linear_pagination_flags(ctx)


def make_filtered_cursor_derivator(
    strategy_selector: CursorDerivator = derive_around_or_linear,
    include_item: Callable[[Any], bool] = lambda item: True,
) -> CursorDerivator:
    """
    Wraps a strategy so that it runs against the locally filtered page.

    Intervals are built from filtered pages, while the server page may
    contain items the client hides (shadowed messages). Comparing the raw
    page against the interval would misjudge the interval edges, so rejected
    items are removed and the requested size is reduced by their count.

    The returned derivator also turns the flags into a cursor: the
    ``headward`` cursor is the interval's last id while the head is open,
    the ``tailward`` cursor its first id while the tail is open.

    Args:
        strategy_selector: Strategy producing the flags
        include_item: Whether an item is kept in intervals

    Returns:
        A derivator usable as ``PaginatorOptions.derive_cursor``
    """

    def derive(ctx: CursorDeriveContext) -> CursorDeriveResult:
        permitted = [item for item in ctx.page if include_item(item)]
        filtered_count = len(ctx.page) - len(permitted)

        if ctx.interval is not None and len(ctx.interval.item_ids) + filtered_count < len(ctx.page):
            logger.error(
                "Corrupted interval state: interval smaller than the returned page",
                extra={
                    "interval": ctx.interval.id,
                    "interval_size": len(ctx.interval.item_ids),
                    "page_size": len(ctx.page),
                },
            )
            return CursorDeriveResult(
                has_more_head=ctx.has_more_head,
                has_more_tail=ctx.has_more_tail,
                cursor=ctx.cursor,
            )

        adjusted = CursorDeriveContext(
            direction=ctx.direction,
            page=permitted,
            interval=ctx.interval,
            query_shape=ctx.query_shape,
            requested_page_size=max(0, ctx.requested_page_size - filtered_count),
            has_more_head=ctx.has_more_head,
            has_more_tail=ctx.has_more_tail,
            cursor=ctx.cursor,
            get_item_id=ctx.get_item_id,
        )
        flags = strategy_selector(adjusted)

        ids = ctx.interval.item_ids if ctx.interval is not None else []
        cursor = PaginatorCursor(
            headward=ids[-1] if flags.has_more_head and ids else None,
            tailward=ids[0] if flags.has_more_tail and ids else None,
        )
        return CursorDeriveResult(
            has_more_head=flags.has_more_head,
            has_more_tail=flags.has_more_tail,
            cursor=cursor,
        )

    return derive
