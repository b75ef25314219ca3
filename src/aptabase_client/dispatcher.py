"""Background dispatcher that batches queued events and ships them."""

from __future__ import annotations

import logging
import threading
import time
from concurrent import futures
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from .errors import DeliveryError, SerializationError
from .event_queue import EventQueue
from .events import EnrichedEvent, Event, SystemProps, encode_batch
from .session import SessionManager
from .transport.base import Transport


logger = logging.getLogger(__name__)


class DispatcherState(str, Enum):
    RUNNING = "running"     # Accepting and shipping events
    DRAINING = "draining"   # Stop requested - final flush in progress
    STOPPED = "stopped"     # Final flush dispatched, stop() returned


class FlushTracker:
    """
    Runs flush tasks on their own daemon threads and tracks them.

    Works like a wait-group: ``wait`` blocks until every task started so
    far has finished, or the timeout elapses. Daemon threads mean a send
    stuck on an unreachable network can never hold up interpreter exit.
    """

    def __init__(self) -> None:
        self._pending: set[futures.Future] = set()
        self._lock = threading.Lock()
        self._counter = 0

    def spawn(self, fn: Callable[..., Any], *args: Any) -> futures.Future:
        future: futures.Future = futures.Future()
        future.set_running_or_notify_cancel()

        with self._lock:
            self._pending.add(future)
            self._counter += 1
            name = f"aptabase-flush-{self._counter}"

        def run() -> None:
            try:
                future.set_result(fn(*args))
            except Exception as e:
                logger.exception("Flush task failed")
                future.set_exception(e)
            finally:
                with self._lock:
                    self._pending.discard(future)

        threading.Thread(target=run, name=name, daemon=True).start()
        return future

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for in-flight tasks. Returns True if all of them finished."""
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = futures.wait(pending, timeout=timeout)
        return not not_done

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)


class BatchDispatcher:
    """
    Drains the event queue into batches and hands them to a transport.

    One background thread waits for either ``batch_size`` queued events
    or the periodic tick. A full batch is flushed as soon as it exists
    (the remainder stays queued); a tick flushes whatever is pending.
    Each flush runs on its own tracked thread, so a slow request never
    delays accumulation of the next batch.

    Enrichment happens in the flush task, so timestamps and session ids
    reflect send time. Delivery is best-effort: a failed batch is logged
    and dropped, never retried, and never reported to the caller.
    """

    # Pause after an unexpected loop error before trying again
    error_backoff = 0.5

    def __init__(
        self,
        queue: EventQueue,
        transport: Transport,
        session: SessionManager,
        system_props: Callable[[], SystemProps],
        url: str,
        headers: dict[str, str],
        batch_size: int = 10,
        flush_interval: float = 2.0,
        debug: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.queue = queue
        self.transport = transport
        self.session = session
        self.url = url
        self.headers = dict(headers)
        self.batch_size = batch_size
        self.flush_interval = flush_interval
        self.debug = debug

        self._system_props = system_props
        self._clock = clock
        self._tracker = FlushTracker()
        self._thread: threading.Thread | None = None
        self._state = DispatcherState.RUNNING
        self._state_lock = threading.Lock()
        self._clean_shutdown = False

        self._stats_lock = threading.Lock()
        self._stats = {
            "batches_sent": 0,
            "events_sent": 0,
            "send_failures": 0,
            "serialization_failures": 0,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the dispatcher thread (no-op if already started)."""
        with self._state_lock:
            if self._thread is not None or self._state != DispatcherState.RUNNING:
                return
            self._thread = threading.Thread(
                target=self._run, name="aptabase-dispatcher", daemon=True
            )
            self._thread.start()

    def stop(self, timeout: float = 5.0) -> bool:
        """
        Flush what is queued and wait (bounded) for in-flight sends.

        Always returns within roughly ``timeout`` seconds. Returns True if
        every send finished, False if some may still be in flight.
        Calling it again is harmless.
        """
        with self._state_lock:
            if self._state != DispatcherState.RUNNING:
                logger.debug(f"Dispatcher already {self._state.value}, ignoring stop")
                return self._clean_shutdown
            self._state = DispatcherState.DRAINING
            thread = self._thread

        logger.info(f"Stopping dispatcher ({len(self.queue)} events queued)")
        deadline = time.monotonic() + timeout

        # The dispatcher thread notices the closed queue on its next wake
        # and performs the final flush itself.
        self.queue.close()
        if thread is not None:
            thread.join(max(0.0, deadline - time.monotonic()))
        else:
            self._final_flush()

        completed = (thread is None or not thread.is_alive()) and self._tracker.wait(
            max(0.0, deadline - time.monotonic())
        )

        with self._state_lock:
            self._state = DispatcherState.STOPPED
            self._clean_shutdown = completed

        if completed:
            logger.info(f"Dispatcher stopped. Stats: {self.stats}")
        else:
            logger.warning(
                f"Dispatcher stop timed out after {timeout}s; "
                f"{self._tracker.pending} batch(es) may not have been delivered"
            )
        return completed

    @property
    def state(self) -> DispatcherState:
        with self._state_lock:
            return self._state

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------

    def flush(self) -> futures.Future | None:
        """
        Dispatch everything queued right now as one batch.

        Returns the flush task's future, or None if nothing was queued.
        """
        batch = self.queue.drain_all()
        if not batch:
            logger.debug("Flush requested with an empty queue")
            return None
        return self._dispatch(batch)

    def _run(self) -> None:
        logger.info(
            f"Dispatcher started (batch_size={self.batch_size}, "
            f"flush_interval={self.flush_interval}s)"
        )
        next_tick = time.monotonic() + self.flush_interval

        while not self.queue.closed:
            try:
                self.queue.wait_for(self.batch_size, max(0.0, next_tick - time.monotonic()))

                if self.queue.closed:
                    break

                if len(self.queue) >= self.batch_size:
                    self._dispatch(self.queue.drain(self.batch_size))
                    continue

                if time.monotonic() >= next_tick:
                    next_tick = time.monotonic() + self.flush_interval
                    batch = self.queue.drain_all()
                    if batch:
                        self._dispatch(batch)

            except Exception:
                logger.exception("Dispatcher loop error")
                time.sleep(self.error_backoff)

        self._final_flush()
        logger.info("Dispatcher loop exited")

    def _final_flush(self) -> None:
        batch = self.queue.drain_all()
        if batch:
            logger.info(f"Final flush of {len(batch)} events")
            self._dispatch(batch)

    def _dispatch(self, batch: list[Event]) -> futures.Future | None:
        if not batch:
            logger.warning("Flush triggered with no events, nothing sent")
            return None
        return self._tracker.spawn(self._send_batch, batch)

    def _send_batch(self, events: list[Event]) -> bool:
        """Enrich, encode and deliver one batch. Failures are logged, not raised."""
        if not events:
            logger.warning("Empty batch reached the send path, skipping")
            return False

        try:
            body = self._build_body(events)
        except SerializationError as e:
            logger.error(f"Dropping batch: {e}")
            self._count("serialization_failures")
            return False

        try:
            self._deliver(body)
        except DeliveryError as e:
            if e.status_code is not None:
                logger.error(
                    f"Failed to deliver {len(events)} events: status {e.status_code} "
                    f"at {self.url}: {e.response_body}"
                )
            else:
                logger.error(f"Failed to deliver {len(events)} events: {e}")
            self._count("send_failures")
            return False
        except Exception:
            logger.exception(f"Unexpected transport error, dropping {len(events)} events")
            self._count("send_failures")
            return False

        with self._stats_lock:
            self._stats["batches_sent"] += 1
            self._stats["events_sent"] += len(events)
        logger.debug(f"Delivered batch of {len(events)} events")
        return True

    def _build_body(self, events: list[Event]) -> bytes:
        system_props = self._system_props()
        session_id = self.session.eval_session_id()
        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc)

        enriched = [EnrichedEvent.create(e, session_id, system_props, now) for e in events]
        body = encode_batch(enriched)

        if self.debug:
            logger.debug(f"Sending batch to {self.url}: {body.decode('utf-8')}")
        return body

    def _deliver(self, body: bytes) -> None:
        response = self.transport.send(self.url, self.headers, body)
        if not response.ok:
            raise DeliveryError(
                f"Ingestion endpoint returned {response.status_code}",
                status_code=response.status_code,
                response_body=response.body,
            )

    def _count(self, key: str) -> None:
        with self._stats_lock:
            self._stats[key] += 1

    @property
    def in_flight(self) -> int:
        """Number of flush tasks still running."""
        return self._tracker.pending

    def wait(self, timeout: float | None = None) -> bool:
        """Block until in-flight flushes finish. Returns False on timeout."""
        return self._tracker.wait(timeout)

    @property
    def stats(self) -> dict:
        """Get dispatcher statistics."""
        with self._stats_lock:
            stats = dict(self._stats)
        return {
            **stats,
            "in_flight": self.in_flight,
            "state": self.state.value,
        }
