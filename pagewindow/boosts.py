"""
Temporary priority overlay.

A boost pins an item ahead of every non-boosted item until it expires,
e.g. a channel that just received a message. Boosts only change how the
active window is projected; intervals stay sorted by the base comparator.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ._logging import logger, redact_id
from .sorting import Comparator

DEFAULT_BOOST_TTL_MS = 15000


def epoch_millis() -> float:
    return time.time() * 1000


@dataclass(frozen=True)
class Boost:
    """
    Attributes:
        until: Expiry time in epoch milliseconds, inclusive
        seq: Priority among boosted items, higher sorts first
    """

    until: float
    seq: int = 0


class BoostOverlay:
    """Boost registry with an injectable millisecond clock."""

    def __init__(self, clock: Callable[[], float] = epoch_millis):
        self.clock = clock
        self.max_boost_seq = 0
        self._boosts: dict[str, Boost] = {}

    def boost(
        self,
        item_id: str,
        ttl_ms: int | None = None,
        until: float | None = None,
        seq: int | None = None,
    ) -> Boost:
        """
        Boosts an item.

        Args:
            item_id: Id of the boosted item
            ttl_ms: Lifetime from now, 15 seconds by default
            until: Absolute expiry in epoch milliseconds, wins over ttl_ms
            seq: Priority among boosted items, 0 by default

        Returns:
            The stored Boost
        """
        if until is None:
            until = self.clock() + (DEFAULT_BOOST_TTL_MS if ttl_ms is None else ttl_ms)
        record = Boost(until=until, seq=seq or 0)
        self._boosts[item_id] = record
        # only grows here, shrinks on removal
        if record.seq > self.max_boost_seq:
            self.max_boost_seq = record.seq
        logger.debug("Boosted item", extra={"item_hash": redact_id(item_id), "seq": record.seq})
        return record

    def get(self, item_id: str) -> Boost | None:
        return self._boosts.get(item_id)

    def remove(self, item_id: str) -> None:
        if self._boosts.pop(item_id, None) is not None:
            self._recompute_max_seq()

    def clear(self) -> None:
        self._boosts.clear()
        self.max_boost_seq = 0

    def is_boosted(self, item_id: str, now: float | None = None) -> bool:
        record = self._boosts.get(item_id)
        if record is None:
            return False
        return (self.clock() if now is None else now) <= record.until

    def clear_expired(self, now: float | None = None) -> int:
        """Drops expired boosts and returns how many were removed."""
        now = self.clock() if now is None else now
        expired = [item_id for item_id, record in self._boosts.items() if now > record.until]
        for item_id in expired:
            del self._boosts[item_id]
        if expired:
            self._recompute_max_seq()
        return len(expired)

    def keys(self) -> list[str]:
        return list(self._boosts)

    def __len__(self) -> int:
        return len(self._boosts)

    def _recompute_max_seq(self) -> None:
        self.max_boost_seq = max((record.seq for record in self._boosts.values()), default=0)

    def compare(
        self,
        a: Any,
        b: Any,
        base: Comparator,
        get_item_id: Callable[[Any], str],
    ) -> int:
        """
        Orders boosted items first, higher ``seq`` first among them.

        Expired boosts are purged first. Everything else falls back to ``base``.
        """
        now = self.clock()
        self.clear_expired(now)
        boost_a = self._boosts.get(get_item_id(a))
        boost_b = self._boosts.get(get_item_id(b))
        a_active = boost_a is not None and now <= boost_a.until
        b_active = boost_b is not None and now <= boost_b.until

        if a_active and not b_active:
            return -1
        if b_active and not a_active:
            return 1
        if a_active and b_active and boost_a.seq != boost_b.seq:  # type: ignore[union-attr]
            return -1 if boost_a.seq > boost_b.seq else 1  # type: ignore[union-attr]
        return base(a, b)

    def comparator(self, base: Comparator, get_item_id: Callable[[Any], str]) -> Comparator:
        """Binds ``compare`` to a base comparator."""

        def effective(a: Any, b: Any) -> int:
            if not self._boosts:
                return base(a, b)
            return self.compare(a, b, base, get_item_id)

        return effective
