"""
Canonical, ID-addressable item storage.

Every item managed by one or more paginators is stored here exactly once.
Intervals only hold ordered lists of ids and read the items back through
the index, so an update stored with ``set_one`` is visible to every
interval and every paginator sharing the index.

Items are treated as immutable snapshots: to change an item, store a new
object under the same id. The index neither sorts nor filters.
"""

from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any, Generic, TypeVar

T = TypeVar("T")


def default_get_id(item: Any) -> str:
    """Reads ``item["id"]`` from mappings and ``item.id`` from objects."""
    if isinstance(item, Mapping):
        return item["id"]
    return item.id


class ItemIndex(Generic[T]):
    """ID keyed store of the latest item snapshots."""

    def __init__(self, get_id: Callable[[T], str] = default_get_id):
        self.get_id = get_id
        self._by_id: dict[str, T] = {}

    def set_many(self, items: Iterable[T]) -> None:
        for item in items:
            self._by_id[self.get_id(item)] = item

    def set_one(self, item: T) -> None:
        self._by_id[self.get_id(item)] = item

    def get(self, item_id: str) -> T | None:
        return self._by_id.get(item_id)

    def has(self, item_id: str) -> bool:
        return item_id in self._by_id

    def remove(self, item_id: str) -> None:
        self._by_id.pop(item_id, None)

    def entries(self) -> list[tuple[str, T]]:
        """Snapshot of ``(id, item)`` pairs."""
        return list(self._by_id.items())

    def values(self) -> list[T]:
        return list(self._by_id.values())

    def ids(self) -> list[str]:
        return list(self._by_id)

    def clear(self) -> None:
        self._by_id.clear()

    def prune(self, keep_ids: Iterable[str]) -> int:
        """
        Drops every entry whose id is not in ``keep_ids``.

        Args:
            keep_ids: Ids still referenced by intervals or views

        Returns:
            Number of removed entries
        """
        keep = set(keep_ids)
        stale = [item_id for item_id in self._by_id if item_id not in keep]
        for item_id in stale:
            del self._by_id[item_id]
        return len(stale)

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._by_id

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._by_id))
