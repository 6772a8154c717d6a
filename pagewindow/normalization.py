"""
Value normalization helpers shared by the sort and filter compilers.

Item fields arrive in heterogeneous shapes: datetimes, ISO-8601 strings,
epoch milliseconds, numeric strings, booleans. The helpers here coerce a
pair of raw values into a common comparable kind so that both compilers
order and match values the same way.
"""

from __future__ import annotations

import math
import re
import unicodedata
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

ComparableKind = Literal["date", "number", "string", "boolean", "incomparable"]

_COMBINING_MARKS = re.compile(r"[\u0300-\u036f]")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class NormalizedPair:
    """Two values coerced into the same comparable kind."""

    kind: ComparableKind
    a: Any
    b: Any


def _is_real_number(x: Any) -> bool:
    # bool is a subclass of int but is compared as its own kind
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, list) else [value]


def parse_iso_datetime(value: str) -> datetime | None:
    """
    Parses an ISO-8601 timestamp, accepting a trailing ``Z`` for UTC.

    Returns:
        The parsed datetime, or None when the string is not a timestamp
    """
    if not isinstance(value, str) or "T" not in value:
        return None
    candidate = value.strip()
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return None


def is_iso_date_string(x: Any) -> bool:
    return parse_iso_datetime(x) is not None


def to_epoch_millis(x: Any) -> float | None:
    """
    Converts date-like values to epoch milliseconds.

    Datetimes, finite numbers (already epoch milliseconds) and ISO-8601
    strings containing a ``T`` separator are recognized.
    """
    if isinstance(x, datetime):
        return x.timestamp() * 1000
    if _is_real_number(x) and math.isfinite(x):
        return x
    parsed = parse_iso_datetime(x) if isinstance(x, str) else None
    if parsed is not None:
        return parsed.timestamp() * 1000
    return None


def to_number_like(x: Any) -> float | int | None:
    """Converts numbers and numeric strings to a finite number."""
    if _is_real_number(x) and math.isfinite(x):
        return x
    if isinstance(x, str) and x.strip() != "":
        try:
            number = float(x)
        except ValueError:
            return None
        if math.isfinite(number):
            return number
    return None


def normalize_compared_values(a: Any, b: Any) -> NormalizedPair:
    """
    Coerces two raw values into a common comparable kind.

    Kinds are tried in order: date, number, string, boolean. When no kind
    fits both values the pair is reported as ``incomparable`` and the raw
    values are returned unchanged.
    """
    date_a, date_b = to_epoch_millis(a), to_epoch_millis(b)
    if date_a is not None and date_b is not None:
        return NormalizedPair("date", date_a, date_b)

    number_a, number_b = to_number_like(a), to_number_like(b)
    if number_a is not None and number_b is not None:
        return NormalizedPair("number", number_a, number_b)

    if isinstance(a, str) and isinstance(b, str):
        return NormalizedPair("string", a, b)
    if isinstance(a, bool) and isinstance(b, bool):
        return NormalizedPair("boolean", a, b)

    return NormalizedPair("incomparable", a, b)


def norm_key(x: Any) -> str:
    """Returns a hashable, kind-tagged key used for set comparisons."""
    normalized = normalize_compared_values(x, x)
    if normalized.kind == "incomparable":
        return f"other:{x}"
    value = normalized.a
    if normalized.kind in ("date", "number") and float(value).is_integer():
        # 1 and 1.0 share one key
        value = int(value)
    return f"{normalized.kind}:{value}"


def compare(a: Any, b: Any) -> int:
    if a == b:
        return 0
    return -1 if a < b else 1


def same_value(a: Any, b: Any) -> bool:
    """Identity equality that also treats two NaNs as the same value."""
    if a is b:
        return True
    return isinstance(a, float) and isinstance(b, float) and math.isnan(a) and math.isnan(b)


def arrays_equal_as_sets(a_list: Iterable[Any], b_list: Iterable[Any]) -> bool:
    """Set equality by normalized key, ignoring duplicates and order."""
    return {norm_key(x) for x in a_list} == {norm_key(x) for x in b_list}


def normalize_string(s: str) -> str:
    return unicodedata.normalize("NFKC", s).lower().strip()


def normalize_string_accent_insensitive(s: str) -> str:
    return _COMBINING_MARKS.sub("", unicodedata.normalize("NFKD", s)).lower().strip()


def tokenize(s: str) -> list[str]:
    return [token for token in _WHITESPACE.split(normalize_string(s)) if token]


def resolve_dot_path_value(obj: Any, path: str) -> Any:
    """
    Resolves a dot separated path against mappings, sequences and objects.

    Args:
        obj: The item to read from
        path: Path such as ``"user.name"`` or ``"members.0.id"``

    Returns:
        The resolved value, or None when any segment is missing
    """
    current = obj
    for key in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(key)
        elif isinstance(current, Sequence) and not isinstance(current, str):
            if not key.isdigit() or int(key) >= len(current):
                return None
            current = current[int(key)]
        else:
            current = getattr(current, key, None)
    return current


def is_iterable_but_not_string(v: Any) -> bool:
    return (
        v is not None
        and isinstance(v, Iterable)
        and not isinstance(v, (str, bytes, Mapping))
    )


def to_iterable_list(v: Any) -> list[Any]:
    if isinstance(v, list):
        return v
    if is_iterable_but_not_string(v):
        return list(v)
    return [v]
