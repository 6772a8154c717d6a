"""
State and value types of the pagination engine.

This module provides the data structures exchanged between a Paginator,
its PaginationSource and the subscribers of the paginator state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, Literal, TypeVar

if TYPE_CHECKING:
    from .intervals import AnyInterval

T = TypeVar("T")

Direction = Literal["headward", "tailward"]
# "auto" lets the query shape decide, "yes" forces a first page, "no" forces a continuation
ResetPolicy = Literal["auto", "yes", "no"]


@dataclass(frozen=True)
class PaginatorCursor:
    """Opaque tokens used to request the next page on either side."""

    headward: str | None = None
    tailward: str | None = None


# Initial cursor that switches a paginator into cursor pagination
ZERO_PAGE_CURSOR = PaginatorCursor(headward=None, tailward=None)


@dataclass(frozen=True)
class PaginatorState(Generic[T]):
    """
    Observable state of a paginator.

    Attributes:
        has_more_head: More items may exist before the loaded window
        has_more_tail: More items may exist after the loaded window
        is_loading: A query is in flight
        items: Projected items, None until the first page resolves
        last_query_error: Error of the last failed query, cleared on success
        cursor: Cursor tokens in cursor pagination mode
        offset: Number of items consumed in offset pagination mode
    """

    has_more_head: bool = True
    has_more_tail: bool = True
    is_loading: bool = False
    items: list[T] | None = None
    last_query_error: BaseException | None = None
    cursor: PaginatorCursor | None = None
    offset: int = 0


@dataclass(frozen=True)
class QueryParams:
    """Arguments handed to ``PaginationSource.query``."""

    direction: Direction | None = None
    query_shape: Any = None
    reset: ResetPolicy | None = None
    retry_count: int = 0


@dataclass
class QueryResult(Generic[T]):
    """
    A page returned by ``PaginationSource.query``.

    Attributes:
        items: Items of this page, as returned by the server
        headward: Cursor towards the head, None if the head is reached
        tailward: Cursor towards the tail, None if the tail is reached
    """

    items: list[T]
    headward: str | None = None
    tailward: str | None = None


@dataclass(frozen=True)
class IntervalLocation:
    """Location of an item inside an interval."""

    interval: AnyInterval
    current_index: int
    insertion_index: int


@dataclass(frozen=True)
class StateLocation:
    """Location of an item inside the projected ``PaginatorState.items``."""

    current_index: int
    insertion_index: int


@dataclass(frozen=True)
class ItemCoordinates:
    """Where an item is, or would be inserted, in state and in intervals."""

    state: StateLocation | None = None
    interval: IntervalLocation | None = None


@dataclass
class ExecuteQueryResult(Generic[T]):
    """
    Outcome of a successful ``Paginator.execute_query`` call.

    Attributes:
        state_candidate: State fields computed from the page
        target_interval: Interval the page was ingested into, if intervals are kept
    """

    state_candidate: dict[str, Any] = field(default_factory=dict)
    target_interval: AnyInterval | None = None
