"""
Shared pytest fixtures and configuration for pagewindow tests.

Items are plain dicts with an ``id`` and an ``age``. Most tests sort them
by age descending, so the letter fixtures below are listed head first:
a(30), b(25), c(25), d(20), ..., v(10), x(5), y(4), z(1).
"""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from pagewindow import ItemIndex, PaginationSource, QueryResult, make_comparator


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests without I/O")
    config.addinivalue_line("markers", "slow: Slow tests that may take longer")


def make_item(item_id: str, age: int, **fields: Any) -> dict[str, Any]:
    return {"id": item_id, "age": age, **fields}


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: float = 1_000_000):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeSource(PaginationSource):
    """
    PaginationSource driven by test code.

    ``query`` is an AsyncMock returning ``QueryResult(items=[])`` unless a
    test sets ``return_value`` or ``side_effect``.
    """

    def __init__(self, shape: Any = None, filters: Any = None, comparator=None):
        self.query = AsyncMock(return_value=QueryResult(items=[]))
        self.shape = shape if shape is not None else {"filters": {}, "sort": {"age": -1}}
        self.filters = filters
        self.jump_shapes: dict[str, Any] = {}
        if comparator is not None:
            self.sort_comparator = comparator

    def get_next_query_shape(self, direction):
        return self.shape

    def get_jump_query_shape(self, item_id):
        return self.jump_shapes.get(item_id)

    def build_filters(self):
        return self.filters


@pytest.fixture
def age_desc():
    """Comparator sorting items by age, oldest first."""
    return make_comparator({"age": -1})


@pytest.fixture
def age_asc():
    return make_comparator({"age": 1})


@pytest.fixture
def letters() -> dict[str, dict[str, Any]]:
    ages = {"a": 30, "b": 25, "c": 25, "d": 20, "v": 10, "x": 5, "y": 4, "z": 1}
    return {key: make_item(key, age) for key, age in ages.items()}


@pytest.fixture
def numbered() -> list[dict[str, Any]]:
    """item1, item2, item3 with ages 100, 101, 102."""
    return [make_item(f"id{n}", 99 + n) for n in (1, 2, 3)]


@pytest.fixture
def item_index() -> ItemIndex:
    return ItemIndex()


@pytest.fixture
def source(age_desc) -> FakeSource:
    return FakeSource(comparator=age_desc)


@pytest.fixture
def make_source(age_desc):
    """Factory for FakeSource instances sorted by age descending by default."""

    def factory(**kwargs: Any) -> FakeSource:
        kwargs.setdefault("comparator", age_desc)
        return FakeSource(**kwargs)

    return factory
