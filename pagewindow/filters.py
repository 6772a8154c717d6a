"""
Filter compiler.

Evaluates MongoDB style filter trees against local items, so that live
updates can be checked against the filters a paginator sends to the server:

    item_matches_filter(channel, {"$and": [{"type": "messaging"}, {"members": {"$in": ["u1"]}}]})

Field values are read through a registry of FieldResolver entries, tried
in registration order, with dot-path traversal as the fallback.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .normalization import (
    arrays_equal_as_sets,
    as_list,
    compare,
    is_iterable_but_not_string,
    normalize_compared_values,
    resolve_dot_path_value,
    same_value,
    to_iterable_list,
    tokenize,
)

_MISSING = object()


@dataclass(frozen=True)
class FieldResolver:
    """
    Resolves values for the filter fields it claims.

    Attributes:
        matches_field: Predicate deciding whether this resolver handles a field
        resolve: Reads the field value from an item
    """

    matches_field: Callable[[str], bool]
    resolve: Callable[[Any, str], Any]


DOT_PATH_RESOLVER = FieldResolver(matches_field=lambda field: True, resolve=resolve_dot_path_value)


def item_matches_filter(
    item: Any,
    filter: Mapping[str, Any] | None,
    resolvers: Iterable[FieldResolver] = (),
) -> bool:
    """
    Checks whether an item satisfies a filter tree.

    Args:
        item: Item to evaluate
        filter: Filter tree, None or empty matches everything
        resolvers: Field resolvers, first matching one wins

    Returns:
        True if the item matches
    """
    registry = tuple(resolvers)
    cache: dict[str, Any] = {}

    def resolve_once(field: str) -> Any:
        value = cache.get(field, _MISSING)
        if value is _MISSING:
            resolver = next((r for r in registry if r.matches_field(field)), DOT_PATH_RESOLVER)
            value = resolver.resolve(item, field)
            cache[field] = value
        return value

    def matches(node: Any) -> bool:
        if not node or not isinstance(node, Mapping):
            return True

        if "$and" in node:
            return all(matches(child) for child in node["$and"])
        if "$or" in node:
            return any(matches(child) for child in node["$or"])
        if "$nor" in node:
            return not any(matches(child) for child in node["$nor"])

        for field, condition in node.items():
            value = resolve_once(field)

            if not isinstance(condition, Mapping):
                if not equals_op(value, condition):
                    return False
                continue

            for op, filter_value in condition.items():
                if not _apply_operator(op, value, filter_value):
                    return False
        return True

    return matches(filter)


def _apply_operator(op: str, value: Any, filter_value: Any) -> bool:
    if op == "$eq":
        return equals_op(value, filter_value)
    if op == "$ne":
        return not equals_op(value, filter_value)
    if op == "$in":
        return in_set_op(value, as_list(filter_value))
    if op == "$nin":
        return not in_set_op(value, as_list(filter_value))
    if op == "$gt":
        return ordered_compare_op(value, filter_value, lambda c: c > 0)
    if op == "$gte":
        return ordered_compare_op(value, filter_value, lambda c: c >= 0)
    if op == "$lt":
        return ordered_compare_op(value, filter_value, lambda c: c < 0)
    if op == "$lte":
        return ordered_compare_op(value, filter_value, lambda c: c <= 0)
    if op == "$exists":
        return bool(value) == bool(filter_value)
    if op == "$contains":
        return contains_op(value, filter_value)
    if op == "$autocomplete":
        return autocomplete_op(value, filter_value)
    # Unknown operators never match
    return False


def ordered_compare_op(a: Any, b: Any, ok: Callable[[int], bool]) -> bool:
    """Range comparison, scalar operands only."""
    if is_iterable_but_not_string(a) or is_iterable_but_not_string(b):
        return False
    normalized = normalize_compared_values(a, b)
    if normalized.kind == "incomparable":
        return False
    return ok(compare(normalized.a, normalized.b))


def equals_op(left: Any, right: Any) -> bool:
    """
    Equality between stored and filter values.

    Scalars compare after normalization, so ``"1"`` equals ``1`` and ISO
    strings equal the datetimes they encode. Two iterables are equal as
    sets: ``["a", "a", "b"]`` equals ``["b", "a"]``. A scalar and an
    iterable are equal when the scalar is a member.
    """
    left_is_iter = is_iterable_but_not_string(left)
    right_is_iter = is_iterable_but_not_string(right)

    if not left_is_iter and not right_is_iter:
        normalized = normalize_compared_values(left, right)
        if normalized.kind == "incomparable":
            return same_value(left, right)
        return normalized.a == normalized.b

    if left_is_iter and right_is_iter:
        return arrays_equal_as_sets(to_iterable_list(left), to_iterable_list(right))

    if left_is_iter:
        return any(equals_op(element, right) for element in to_iterable_list(left))
    return any(equals_op(left, element) for element in to_iterable_list(right))


def in_set_op(value: Any, candidates: list[Any]) -> bool:
    return any(equals_op(value, candidate) for candidate in candidates)


def contains_op(value: Any, needle: Any) -> bool:
    if isinstance(value, (list, tuple)):
        return needle in value
    if isinstance(value, str) and isinstance(needle, str):
        return needle in value
    return False


def autocomplete_op(value: Any, query: Any) -> bool:
    """
    Matches when every query token is contained in some token of the value.

    The value may be a string or a list of strings (any element may match);
    the query may be a string or a list of strings.
    """
    if value is None or query is None:
        return False

    if isinstance(query, (list, tuple)):
        query_tokens = [token for part in query for token in tokenize(str(part))]
    else:
        query_tokens = tokenize(str(query))
    if not query_tokens:
        return False

    def match_one_string(s: str) -> bool:
        value_tokens = tokenize(s)
        return all(any(qt in vt for vt in value_tokens) for qt in query_tokens)

    if isinstance(value, str):
        return match_one_string(value)
    if isinstance(value, (list, tuple)):
        return any(isinstance(v, str) and match_one_string(v) for v in value)
    return False
