from collections.abc import Generator
from contextlib import contextmanager
from typing import Any


class PaginationError(Exception):
    """Base exception for all pagewindow errors."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class QueryShapeNotImplementedError(PaginationError):
    """Raised when a paginator is asked to query without a query shape provider."""

    def __init__(
        self,
        message: str = "Paginator.get_next_query_shape() is not implemented",
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)


class QueryFailedError(PaginationError):
    """Raised when the query callback fails and error wrapping is enabled."""

    def __init__(
        self,
        attempts: int = 1,
        original_error: Exception | None = None,
    ) -> None:
        msg = f"Pagination query failed after {attempts} attempt(s)"
        if original_error is not None:
            msg += f": {original_error}"
        super().__init__(msg, original_error)
        self.attempts = attempts


class IntervalCorruptionError(PaginationError):
    """Raised when an interval references an item missing from the item index."""

    def __init__(
        self, interval_id: str, item_id: str, original_error: Exception | None = None
    ) -> None:
        super().__init__(
            f"Interval '{interval_id}' references item '{item_id}' missing from the item index",
            original_error,
        )
        self.interval_id = interval_id
        self.item_id = item_id


class InvalidSortError(PaginationError):
    """Raised for sort specifications that cannot be compiled."""

    def __init__(
        self,
        field: str,
        direction: Any,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            f"Invalid sort direction {direction!r} for field '{field}', expected 1 or -1",
            original_error,
        )
        self.field = field
        self.direction = direction


@contextmanager
def handle_query_errors(attempts: int = 1, wrap: bool = False) -> Generator[None, None, None]:
    """
    Context manager around a single query callback invocation.

    Programmer errors raised by pagewindow itself always propagate unchanged.
    Any other exception is re-raised as is, or as QueryFailedError when
    ``wrap`` is set, keeping the original exception as ``original_error``.

    Args:
        attempts: Number of attempts made so far, including this one
        wrap: Whether to wrap foreign exceptions into QueryFailedError

    Usage:
        with handle_query_errors(attempts=2, wrap=True):
            result = await source.query(params)
    """
    try:
        yield
    except PaginationError:
        raise
    except Exception as e:
        if wrap:
            raise QueryFailedError(attempts=attempts, original_error=e) from e
        raise
