"""
Observable state container.

Holds one immutable value (a frozen dataclass such as PaginatorState) and
notifies subscribers synchronously whenever a different value is stored.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Sequence
from typing import Any, Generic, TypeVar

T = TypeVar("T")
S = TypeVar("S", bound=Sequence[Any])

Handler = Callable[[T, "T | None"], None]
Unsubscribe = Callable[[], None]


class StateStore(Generic[T]):
    """
    Container for an immutable state value.

    Values are never mutated in place: ``next`` stores a new value,
    ``partial_next`` stores a copy with some fields replaced. Storing the
    very same object again does not notify subscribers.
    """

    def __init__(self, value: T):
        self._value = value
        self._handlers: list[Handler] = []

    def get_latest_value(self) -> T:
        return self._value

    def next(self, value_or_patch: T | Callable[[T], T]) -> None:
        """
        Replaces the value and notifies subscribers.

        Args:
            value_or_patch: The new value, or a function of the current value
        """
        new_value = value_or_patch(self._value) if callable(value_or_patch) else value_or_patch
        if new_value is self._value:
            return
        previous = self._value
        self._value = new_value
        for handler in list(self._handlers):
            handler(new_value, previous)

    def partial_next(self, **patch: Any) -> None:
        self.next(dataclasses.replace(self._value, **patch))  # type: ignore[type-var]

    def subscribe(self, handler: Handler) -> Unsubscribe:
        """
        Registers a handler called with ``(value, previous)``.

        The handler is called once right away with ``previous=None``.

        Returns:
            A function removing the handler
        """
        handler(self._value, None)
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def subscribe_with_selector(
        self,
        selector: Callable[[T], S],
        handler: Callable[[S, "S | None"], None],
    ) -> Unsubscribe:
        """
        Subscribes to a projection of the state.

        ``selector`` returns a tuple of values; the handler only runs when
        one of them is a different object than before.
        """
        selected: S | None = None

        def on_change(value: T, _previous: T | None) -> None:
            nonlocal selected
            new_selected = selector(value)
            if selected is not None and all(
                old is new for old, new in zip(selected, new_selected)
            ):
                return
            previous_selected = selected
            selected = new_selected
            handler(new_selected, previous_selected)

        return self.subscribe(on_change)
