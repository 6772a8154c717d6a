import operator
from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .item_index import ItemIndex
from .pagination import ZERO_PAGE_CURSOR, PaginatorCursor

DEFAULT_PAGE_SIZE = 10
DEFAULT_MESSAGE_PAGE_SIZE = 100
DEFAULT_DEBOUNCE_MS = 300
DEFAULT_RETRY_DELAY_MS = 1000


class PaginatorOptions(BaseModel):
    """
    Validated options of a Paginator.

    Unknown options are rejected so that typos surface at construction time.
    Assignments are validated as well, e.g. ``options.page_size = 0`` raises.
    """

    model_config = ConfigDict(
        extra="forbid", arbitrary_types_allowed=True, validate_assignment=True
    )

    debounce_ms: int = Field(DEFAULT_DEBOUNCE_MS, ge=0)
    page_size: int = Field(DEFAULT_PAGE_SIZE, ge=1)
    # Keep the position of items updated in place instead of re-sorting them
    lock_item_order: bool = False
    # Re-raise query errors after recording them in the state
    throw_errors: bool = False
    has_pagination_query_shape_changed: Callable[[Any, Any], bool] = operator.ne
    # Setting a cursor, ZERO_PAGE_CURSOR included, enables cursor pagination
    initial_cursor: PaginatorCursor | None = None
    initial_offset: int | None = Field(None, ge=0)
    item_index: ItemIndex | None = None
    retry_delay_ms: int = Field(DEFAULT_RETRY_DELAY_MS, ge=0)
    item_ids_head_first: bool = True
    merge_policy: Literal["auto", "strict-overlap-only"] = "auto"
    derive_cursor: Callable[..., Any] | None = None
    wrap_query_errors: bool = False

    @property
    def cursor_pagination(self) -> bool:
        return self.initial_cursor is not None


def message_paginator_options(**overrides: Any) -> PaginatorOptions:
    """
    Options for an ascending chronological list such as a message list.

    Intervals keep their ids oldest first and cursors are derived from the
    intervals instead of being taken from the server response.

    Args:
        **overrides: PaginatorOptions fields replacing the defaults

    Returns:
        PaginatorOptions
    """
    from .cursor_derivation import make_filtered_cursor_derivator

    defaults: dict[str, Any] = {
        "page_size": DEFAULT_MESSAGE_PAGE_SIZE,
        "initial_cursor": ZERO_PAGE_CURSOR,
        "item_index": ItemIndex(),
        "item_ids_head_first": False,
        "derive_cursor": make_filtered_cursor_derivator(),
    }
    defaults.update(overrides)
    return PaginatorOptions(**defaults)
