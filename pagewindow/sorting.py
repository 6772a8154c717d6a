"""
Sort compiler and search primitives.

A sort specification (``{"created_at": -1}`` or ``[{"pinned": -1}, {"name": 1}]``)
is compiled into a comparator returning -1, 0 or 1. The binary search
helpers below locate insertion points in sorted sequences and, because
several items can compare equal, scan the run of equal items ("plateau")
for the item with the same identity.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from .exceptions import InvalidSortError
from .normalization import compare, normalize_compared_values, resolve_dot_path_value

Comparator = Callable[[Any, Any], int]
PathResolver = Callable[[Any, str], Any]
SortSpec = Union[Mapping[str, int], Sequence[Mapping[str, int]]]


@dataclass(frozen=True)
class SortTerm:
    field: str
    direction: int


@dataclass(frozen=True)
class ItemLocation:
    """
    Result of locating an item in a sorted sequence.

    Attributes:
        current_index: Position of the item with the same identity, -1 if absent
        insertion_index: Position after the run of items comparing equal to it
    """

    current_index: int
    insertion_index: int


class _Unset:
    def __repr__(self) -> str:
        return "<default>"


_DEFAULT_TIEBREAKER: Any = _Unset()


def normalize_query_sort(sort: SortSpec) -> list[SortTerm]:
    """
    Flattens a sort specification into an ordered list of terms.

    A single mapping with several fields is accepted and read in insertion
    order, but a list of single-field mappings states the order explicitly.

    Raises:
        InvalidSortError: If a direction is neither 1 nor -1
    """
    mappings = [sort] if isinstance(sort, Mapping) else list(sort)
    terms: list[SortTerm] = []
    for mapping in mappings:
        for field, direction in mapping.items():
            if isinstance(direction, bool) or direction not in (1, -1):
                raise InvalidSortError(field, direction)
            terms.append(SortTerm(field=field, direction=int(direction)))
    return terms


def compare_by_cid(a: Any, b: Any) -> int:
    """Default tiebreaker: compares the ``cid`` of both items, missing values last."""
    left = resolve_dot_path_value(a, "cid")
    right = resolve_dot_path_value(b, "cid")
    if left == right:
        return 0
    if left is None:
        return 1
    if right is None:
        return -1
    return compare(str(left), str(right))


def _fallback_compare(left: Any, right: Any) -> int:
    if left is None and right is None:
        return 0
    if left is None:
        return 1
    if right is None:
        return -1
    return compare(str(left), str(right))


def make_comparator(
    sort: SortSpec,
    resolve_path_value: PathResolver = resolve_dot_path_value,
    tiebreaker: Comparator | None = _DEFAULT_TIEBREAKER,
) -> Comparator:
    """
    Compiles a sort specification into a deterministic comparator.

    Each term resolves both operands through ``resolve_path_value`` and
    compares them after normalization (date, number, string, boolean).
    Values that cannot be normalized fall back to: missing values last,
    otherwise their string forms. Descending terms negate the result.
    When every term ties, the tiebreaker decides.

    Args:
        sort: Mapping or list of mappings of field path to 1 / -1
        resolve_path_value: Reads a field path from an item
        tiebreaker: Comparator for full ties, ``cid`` by default, None to disable

    Returns:
        A comparator usable with ``functools.cmp_to_key``
    """
    terms = normalize_query_sort(sort)
    tiebreak = compare_by_cid if isinstance(tiebreaker, _Unset) else tiebreaker

    def comparator(a: Any, b: Any) -> int:
        for term in terms:
            left = resolve_path_value(a, term.field)
            right = resolve_path_value(b, term.field)
            normalized = normalize_compared_values(left, right)
            if normalized.kind == "incomparable":
                comparison = _fallback_compare(left, right)
            else:
                comparison = compare(normalized.a, normalized.b)
            if comparison != 0:
                return comparison if term.direction == 1 else -comparison
        return tiebreak(a, b) if tiebreak is not None else 0

    return comparator


def binary_search_insert_index(
    sorted_items: Sequence[Any], needle: Any, compare: Comparator
) -> int:
    """Returns the first position whose item sorts strictly after ``needle``."""
    low, high = 0, len(sorted_items)
    while low < high:
        middle = (low + high) // 2
        if compare(sorted_items[middle], needle) > 0:
            high = middle
        else:
            low = middle + 1
    return low


def _on_plateau(item: Any, needle: Any, compare: Comparator) -> bool:
    return item is not None and compare(item, needle) == 0


def locate_on_plateau_alternating(
    items: Sequence[Any],
    needle: Any,
    compare: Comparator,
    get_item_id: Callable[[Any], str],
    insertion_index: int,
) -> int:
    """
    Finds the needle's identity on the plateau ending at ``insertion_index``.

    Steps outwards alternating right and left so that items close to the
    insertion point are checked first. Returns -1 when the plateau holds no
    item with the needle's id.
    """
    target_id = get_item_id(needle)
    left_index = insertion_index - 1
    right_index = insertion_index
    step = 0
    while True:
        search_right = step % 2 == 0
        step += 1
        if search_right:
            if right_index < len(items) and _on_plateau(items[right_index], needle, compare):
                if get_item_id(items[right_index]) == target_id:
                    return right_index
                right_index += 1
                continue
        elif left_index >= 0 and _on_plateau(items[left_index], needle, compare):
            if get_item_id(items[left_index]) == target_id:
                return left_index
            left_index -= 1
            continue

        right_out = right_index >= len(items) or not _on_plateau(
            items[right_index], needle, compare
        )
        left_out = left_index < 0 or not _on_plateau(items[left_index], needle, compare)
        if right_out and left_out:
            return -1


def locate_on_plateau_scan_one_side(
    items: Sequence[Any],
    needle: Any,
    compare: Comparator,
    get_item_id: Callable[[Any], str],
    insertion_index: int,
) -> int:
    """Same contract as the alternating scan, checking the left side first."""
    target_id = get_item_id(needle)
    index = insertion_index - 1
    while index >= 0 and _on_plateau(items[index], needle, compare):
        if get_item_id(items[index]) == target_id:
            return index
        index -= 1
    index = insertion_index
    while index < len(items) and _on_plateau(items[index], needle, compare):
        if get_item_id(items[index]) == target_id:
            return index
        index += 1
    return -1


class _LazyItems(Sequence):
    """Sequence view resolving items on access; unresolvable slots read as None."""

    def __init__(self, length: int, get_item_at: Callable[[int], Any]):
        self._length = length
        self._get_item_at = get_item_at

    def __len__(self) -> int:
        return self._length

    def __getitem__(self, index):  # type: ignore[override]
        if isinstance(index, slice):
            return [self._get_item_at(i) for i in range(*index.indices(self._length))]
        return self._get_item_at(index)


def binary_search(
    needle: Any,
    length: int,
    get_item_at: Callable[[int], Any],
    compare: Comparator,
    get_item_id: Callable[[Any], str],
    plateau_scan: bool = True,
) -> ItemLocation:
    """
    Locates ``needle`` in a sorted sequence addressed by index.

    ``get_item_at`` may return None for slots whose item cannot be resolved.
    Such slots are stepped over while searching and never match the needle.

    Args:
        needle: Item to locate
        length: Number of slots in the sequence
        get_item_at: Returns the item at a slot
        compare: Comparator the sequence is sorted by
        get_item_id: Identity accessor
        plateau_scan: Scan the whole plateau for the needle's identity;
            otherwise only the slot right before the insertion point is checked

    Returns:
        ItemLocation with the current and the insertion index
    """
    low, high = 0, length
    while low < high:
        middle = (low + high) // 2
        probe = middle
        item = get_item_at(probe)
        while item is None and probe + 1 < high:
            probe += 1
            item = get_item_at(probe)
        if item is None:
            high = middle
            continue
        if compare(item, needle) > 0:
            high = middle
        else:
            low = probe + 1
    insertion_index = low

    items = _LazyItems(length, get_item_at)
    if plateau_scan:
        current_index = locate_on_plateau_alternating(
            items, needle, compare, get_item_id, insertion_index
        )
    else:
        previous = items[insertion_index - 1] if insertion_index > 0 else None
        same = previous is not None and get_item_id(previous) == get_item_id(needle)
        current_index = insertion_index - 1 if same else -1

    return ItemLocation(current_index=current_index, insertion_index=insertion_index)
