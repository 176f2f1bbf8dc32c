"""Observer registry and notification protocol.

An observer becomes eligible for a notification by reading the store
with itself as the dependent.  A change notifies every armed observer
once and disarms it; to hear about the following change it must read
again.  Arming is a flag, not a counter, so nothing queues up between
reads.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Generic, Protocol, TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class Observer(Protocol):
    def notify(self) -> None: ...


class ObserverRegistry:
    """Set of observers waiting for the next change.

    Thread-safe.  ``fire`` takes the armed set atomically and calls the
    observers outside the lock, so an observer may re-arm itself from
    inside ``notify``.
    """

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._lock = threading.Lock()
        # dict keeps insertion order; values unused
        self._armed: dict[Observer, None] = {}
        self._logger = logger or _logger

    def arm(self, observer: Observer) -> None:
        """Mark *observer* to be notified on the next change."""
        with self._lock:
            self._armed[observer] = None

    def disarm(self, observer: Observer) -> bool:
        """Withdraw a pending notification.  Returns whether one was pending."""
        with self._lock:
            if observer not in self._armed:
                return False
            del self._armed[observer]
            return True

    def is_armed(self, observer: Observer) -> bool:
        with self._lock:
            return observer in self._armed

    @property
    def pending(self) -> int:
        """Number of observers waiting for the next change."""
        with self._lock:
            return len(self._armed)

    def clear(self) -> None:
        with self._lock:
            self._armed.clear()

    def fire(self) -> int:
        """Notify and disarm every armed observer.  Returns how many were notified."""
        with self._lock:
            armed = list(self._armed)
            self._armed.clear()

        for observer in armed:
            try:
                observer.notify()
            except Exception:
                self._logger.exception("Observer %r raised during change notification", observer)
        return len(armed)


class Subscription:
    """Handle that turns a plain callback into an :class:`Observer`.

    Pass the subscription to ``RegionStore.read`` to arm it.
    """

    def __init__(self, registry: ObserverRegistry, callback: Callable[[], None]) -> None:
        self._registry = registry
        self._callback = callback
        self._cancelled = False

    @property
    def pending(self) -> bool:
        """Whether the next change will invoke the callback."""
        return self._registry.is_armed(self)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def notify(self) -> None:
        if self._cancelled:
            return
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        self._registry.disarm(self)


class Reaction(Generic[T]):
    """Re-run ``fn(snapshot)`` after every change until stopped.

    Each run reads through *read* with the reaction itself as the
    dependent, which re-arms it for the next change.
    """

    def __init__(
        self,
        registry: ObserverRegistry,
        read: Callable[[Observer], T],
        fn: Callable[[T], None],
    ) -> None:
        self._registry = registry
        self._read = read
        self._fn = fn
        self._stopped = False
        self.runs = 0

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self) -> Reaction[T]:
        self._run()
        return self

    def notify(self) -> None:
        if self._stopped:
            return
        self._run()

    def stop(self) -> None:
        self._stopped = True
        self._registry.disarm(self)

    def _run(self) -> None:
        value = self._read(self)
        self.runs += 1
        self._fn(value)
