"""Push-style observation feeds for simulation progress.

``EventFeed`` delivers each event only to callbacks subscribed when it is
emitted. ``LiveValueFeed`` also remembers the latest value and replays it to
new subscribers, which suits running metrics.

Subscriber failures are logged and never interrupt the simulation.
"""

from __future__ import annotations

from typing import Callable, Dict, Generic, Optional, TypeVar

from .logging_utils import LOG_TAG_WARNING, log_warning

T = TypeVar("T")


class Subscription:
    """Handle returned by ``subscribe``; call :meth:`unsubscribe` to stop delivery."""

    def __init__(self, feed: "EventFeed", token: int) -> None:
        self._feed = feed
        self._token = token
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._feed._remove(self._token)
            self.active = False


class EventFeed(Generic[T]):
    """Fan-out of events to subscribed callbacks."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscribers: Dict[int, Callable[[T], None]] = {}
        self._next_token = 0

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = callback
        return Subscription(self, token)

    def emit(self, value: T) -> None:
        # Copy so callbacks may unsubscribe while being notified
        for callback in list(self._subscribers.values()):
            self._deliver(callback, value)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _deliver(self, callback: Callable[[T], None], value: T) -> None:
        try:
            callback(value)
        except Exception as exc:
            log_warning(f"  {LOG_TAG_WARNING} [{self.name}] Subscriber failed: {exc}")

    def _remove(self, token: int) -> None:
        self._subscribers.pop(token, None)


class LiveValueFeed(EventFeed[T]):
    """Feed that replays its latest value to each new subscriber."""

    def __init__(self, name: str, initial: Optional[T] = None) -> None:
        super().__init__(name)
        self._latest: Optional[T] = initial

    @property
    def latest(self) -> Optional[T]:
        return self._latest

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        subscription = super().subscribe(callback)
        if self._latest is not None:
            self._deliver(callback, self._latest)
        return subscription

    def emit(self, value: T) -> None:
        self._latest = value
        super().emit(value)
