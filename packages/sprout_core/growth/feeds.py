"""Pull/push feeds for upstream world snapshots and active pet lists."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
import threading
from typing import Any, Callable, Generic, TypeVar


logger = logging.getLogger("sprout_core.growth.feeds")

T = TypeVar("T")
Unsubscribe = Callable[[], None]


class SnapshotFeed(ABC, Generic[T]):
    @abstractmethod
    def snapshot(self) -> T:
        raise NotImplementedError

    @abstractmethod
    def subscribe(self, listener: Callable[[T], None]) -> Unsubscribe:
        raise NotImplementedError


class InMemoryFeed(SnapshotFeed[T]):
    """Holds the latest value and multicasts every ``publish`` to listeners."""

    def __init__(self, initial: T, *, name: str = "feed") -> None:
        self._value = initial
        self._name = name
        self._listeners: list[Callable[[T], None]] = []
        self._lock = threading.Lock()

    def snapshot(self) -> T:
        with self._lock:
            return self._value

    def subscribe(self, listener: Callable[[T], None]) -> Unsubscribe:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def publish(self, value: T) -> None:
        with self._lock:
            self._value = value
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(value)
            except Exception:
                logger.exception("[FEED] Listener failed on %s", self._name)

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)


def world_feed(initial: dict[str, Any] | None = None) -> InMemoryFeed[dict[str, Any]]:
    return InMemoryFeed(dict(initial or {}), name="world")


def agent_feed(initial: list[Any] | None = None) -> InMemoryFeed[list[Any]]:
    return InMemoryFeed(list(initial or []), name="agents")
