"""Minimal observer primitives used between the core and whatever UI binds to it.

``Subject`` broadcasts events. ``Observable`` additionally holds a current
value, replays it to new subscribers and publishes only on change.
"""

import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription:
    """Handle returned by ``subscribe``; call ``cancel`` to stop receiving events."""

    def __init__(self, subject: "Subject[Any]", listener: Callable[[Any], Any]):
        self._subject = subject
        self._listener = listener
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self._subject._remove(self._listener)
            self.active = False


class Subject(Generic[T]):
    """Synchronous in-process publisher.

    A listener that raises is logged and skipped; the remaining listeners
    still receive the event.
    """

    def __init__(self, name: str = "subject"):
        self.name = name
        self._listeners: list[Callable[[T], Any]] = []

    def subscribe(self, listener: Callable[[T], Any]) -> Subscription:
        self._listeners.append(listener)
        return Subscription(self, listener)

    def _remove(self, listener: Callable[[T], Any]) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    def publish(self, event: T) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Listener on '{self.name}' failed: {e}")


class Observable(Subject[T]):
    """A value holder that notifies subscribers when the value changes."""

    def __init__(self, initial: T, name: str = "observable"):
        super().__init__(name)
        self._value = initial

    @property
    def value(self) -> T:
        return self._value

    @value.setter
    def value(self, new_value: T) -> None:
        if new_value == self._value:
            return
        self._value = new_value
        self.publish(new_value)

    def subscribe(self, listener: Callable[[T], Any], replay: bool = True) -> Subscription:
        subscription = super().subscribe(listener)
        if replay:
            try:
                listener(self._value)
            except Exception as e:
                logger.error(f"Listener on '{self.name}' failed on replay: {e}")
        return subscription


__all__ = ["Observable", "Subject", "Subscription"]
