from .boosts import Boost, BoostOverlay
from .config import PaginatorOptions, message_paginator_options
from .cursor_derivation import (
    CursorDeriveContext,
    CursorDeriveResult,
    derive_around_or_linear,
    derive_created_at_around_pagination_flags,
    derive_id_around_pagination_flags,
    derive_linear_pagination_flags,
    make_filtered_cursor_derivator,
)
from .exceptions import (
    IntervalCorruptionError,
    InvalidSortError,
    PaginationError,
    QueryFailedError,
    QueryShapeNotImplementedError,
)
from .filters import DOT_PATH_RESOLVER, FieldResolver, item_matches_filter
from .intervals import (
    LOGICAL_HEAD_INTERVAL_ID,
    LOGICAL_TAIL_INTERVAL_ID,
    Interval,
    IntervalStore,
    LogicalInterval,
    is_logical_interval,
)
from .item_index import ItemIndex
from .pagination import (
    ZERO_PAGE_CURSOR,
    ExecuteQueryResult,
    ItemCoordinates,
    PaginatorCursor,
    PaginatorState,
    QueryParams,
    QueryResult,
)
from .paginator import PaginationSource, Paginator
from .sorting import binary_search, make_comparator, normalize_query_sort
from .store import StateStore

__all__ = [
    "Paginator",
    "PaginationSource",
    "PaginatorOptions",
    "message_paginator_options",
    "PaginatorState",
    "PaginatorCursor",
    "ZERO_PAGE_CURSOR",
    "QueryParams",
    "QueryResult",
    "ExecuteQueryResult",
    "ItemCoordinates",
    "StateStore",
    # Intervals
    "ItemIndex",
    "Interval",
    "LogicalInterval",
    "IntervalStore",
    "LOGICAL_HEAD_INTERVAL_ID",
    "LOGICAL_TAIL_INTERVAL_ID",
    "is_logical_interval",
    # Sorting and filtering
    "make_comparator",  # Comparator from a query sort spec
    "normalize_query_sort",
    "binary_search",
    "item_matches_filter",
    "FieldResolver",
    "DOT_PATH_RESOLVER",
    # Boosts
    "Boost",
    "BoostOverlay",
    # Cursor derivation
    "CursorDeriveContext",
    "CursorDeriveResult",
    "derive_linear_pagination_flags",
    "derive_id_around_pagination_flags",
    "derive_created_at_around_pagination_flags",
    "derive_around_or_linear",
    "make_filtered_cursor_derivator",
    # Exceptions
    "PaginationError",
    "QueryShapeNotImplementedError",
    "QueryFailedError",
    "IntervalCorruptionError",
    "InvalidSortError",
]
