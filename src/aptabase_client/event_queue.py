"""Bounded, thread-safe buffer of pending events."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from enum import Enum

from .events import Event


logger = logging.getLogger(__name__)


class OverflowPolicy(str, Enum):
    """What enqueue does when the queue is full."""
    DROP = "drop"    # reject immediately (never blocks the caller)
    BLOCK = "block"  # wait up to enqueue_timeout for room, then reject


class EventQueue:
    """
    Bounded FIFO of events shared by producers and the dispatcher.

    All mutation happens under one condition variable, and drains remove
    events atomically, so an event is handed to at most one batch.
    A full queue never grows: depending on the overflow policy the event
    is rejected straight away or after a bounded wait, and the rejection
    is logged and counted.
    """

    def __init__(
        self,
        max_size: int = 1000,
        overflow_policy: OverflowPolicy | str = OverflowPolicy.DROP,
        enqueue_timeout: float = 0.1,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.overflow_policy = OverflowPolicy(overflow_policy)
        self.enqueue_timeout = enqueue_timeout

        self._items: deque[Event] = deque()
        self._cond = threading.Condition(threading.Lock())
        self._closed = False
        self._stats = {
            "enqueued": 0,
            "dropped": 0,
        }

    def enqueue(self, event: Event) -> bool:
        """
        Append an event.

        Returns True if queued, False if rejected (queue full or closed).
        """
        with self._cond:
            if self._closed:
                logger.debug(f"Queue closed, dropping event {event.name!r}")
                self._stats["dropped"] += 1
                return False

            if len(self._items) >= self.max_size and self.overflow_policy == OverflowPolicy.BLOCK:
                self._cond.wait_for(
                    lambda: self._closed or len(self._items) < self.max_size,
                    timeout=self.enqueue_timeout,
                )
                if self._closed:
                    logger.debug(
                        f"Queue closed while waiting for room, dropping event {event.name!r}"
                    )
                    self._stats["dropped"] += 1
                    return False

            if len(self._items) >= self.max_size:
                self._stats["dropped"] += 1
                logger.warning(
                    f"Event queue full ({self.max_size}), dropping event {event.name!r}"
                )
                return False

            self._items.append(event)
            self._stats["enqueued"] += 1
            self._cond.notify_all()
            return True

    def drain(self, limit: int) -> list[Event]:
        """Remove and return up to ``limit`` events, oldest first."""
        with self._cond:
            count = min(limit, len(self._items))
            batch = [self._items.popleft() for _ in range(count)]
            if batch:
                self._cond.notify_all()
            return batch

    def drain_all(self) -> list[Event]:
        """Remove and return every queued event."""
        with self._cond:
            batch = list(self._items)
            self._items.clear()
            if batch:
                self._cond.notify_all()
            return batch

    def wait_for(self, min_size: int, timeout: float | None) -> bool:
        """
        Block until ``min_size`` events are queued or the queue is closed.

        Returns True if woken by either condition, False on timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while not (self._closed or len(self._items) >= min_size):
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._cond.wait(remaining)
            return True

    def close(self) -> None:
        """Reject further events and wake every waiter."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    @property
    def stats(self) -> dict:
        """Get queue statistics."""
        with self._cond:
            return {
                **self._stats,
                "depth": len(self._items),
                "capacity": self.max_size,
            }
