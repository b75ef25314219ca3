"""Sliding-expiration session identifiers."""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Callable


logger = logging.getLogger(__name__)

DEFAULT_SESSION_TIMEOUT_SECONDS = 60 * 60


@dataclass
class SessionManager:
    """
    Owns the current session id and its expiry.

    A session lasts as long as events keep being dispatched within
    ``timeout_seconds`` of each other; any longer gap starts a new one.

    Session ids are ``<epoch seconds><8 random digits>``. They group events
    for analytics and are not a security token, so a plain (but locally
    owned) PRNG is enough.
    """
    timeout_seconds: float = DEFAULT_SESSION_TIMEOUT_SECONDS

    # Injected so tests (and multiple clients) never share global state
    clock: Callable[[], float] = time.time
    rng: random.Random = field(default_factory=random.Random)

    _session_id: str = field(default="", init=False)
    _last_touch: float = field(default=0.0, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def __post_init__(self):
        with self._lock:
            self._last_touch = self.clock()
            self._session_id = self._new_id(self._last_touch)

    def new_session_id(self) -> str:
        """Generate a fresh session id (does not change the current one)."""
        return self._new_id(self.clock())

    def _new_id(self, now: float) -> str:
        return f"{int(now)}{self.rng.randrange(100_000_000):08d}"

    def eval_session_id(self) -> str:
        """
        Return the current session id, rotating it if the session expired.

        Always extends the session window to now.
        """
        with self._lock:
            now = self.clock()
            if now - self._last_touch > self.timeout_seconds:
                previous = self._session_id
                self._session_id = self._new_id(now)
                logger.debug(f"Session {previous} expired, started {self._session_id}")
            self._last_touch = now
            return self._session_id

    @property
    def session_id(self) -> str:
        with self._lock:
            return self._session_id

    @property
    def last_touch(self) -> float:
        with self._lock:
            return self._last_touch
