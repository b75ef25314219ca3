"""Main client class and convenience functions."""

from __future__ import annotations

import dataclasses
import logging
import platform
import random
import threading
import time
from concurrent import futures
from typing import Any, Callable, Mapping

from .config import ClientConfig
from .dispatcher import BatchDispatcher, DispatcherState
from .endpoints import EndpointResolver
from .errors import SerializationError
from .event_queue import EventQueue
from .events import Event, SystemProps
from .session import SessionManager
from .system_info import PlatformSystemInfoProvider, SystemInfoProvider
from .transport import HttpTransport, Transport
from .version import SDK_VERSION


logger = logging.getLogger(__name__)


class AptabaseClient:
    """
    Client for sending analytics events to Aptabase.

    Construction validates the app key and starts a background
    dispatcher; ``track_event`` only enqueues and returns. Call
    ``stop()`` before the process exits, or queued events are lost.

    Usage:
        client = AptabaseClient("A-EU-1234567890", app_version="1.2.0")
        client.track_event("UserSignUp", {"username": "johndoe"})
        client.stop()

        # Or with custom config
        with AptabaseClient(config=ClientConfig(
            app_key="A-SH-1234567890",
            base_url="https://analytics.example.com",
            batch_size=50,
        )) as client:
            client.track_event("AppStarted")

    Raises:
        ConfigurationError: Malformed app key, unknown region, self-hosted
            key without base_url, or invalid settings.
    """

    def __init__(
        self,
        app_key: str | None = None,
        app_version: str | None = None,
        app_build_number: int | None = None,
        debug: bool | None = None,
        base_url: str | None = None,
        *,
        config: ClientConfig | None = None,
        transport: Transport | None = None,
        system_info: SystemInfoProvider | None = None,
        resolver: EndpointResolver | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
    ):
        overrides = {
            "app_key": app_key,
            "app_version": app_version,
            "app_build_number": app_build_number,
            "debug": debug,
            "base_url": base_url,
        }
        overrides = {k: v for k, v in overrides.items() if v is not None}
        if config is None:
            config = ClientConfig(**overrides)
        elif overrides:
            config = dataclasses.replace(config, **overrides)
        self.config = config

        self.resolver = resolver or EndpointResolver()
        self.base_url = self.resolver.resolve(config.app_key, config.base_url)
        self.system_info = system_info or PlatformSystemInfoProvider()
        self.transport = transport or HttpTransport(timeout=config.request_timeout_seconds)

        self.session = SessionManager(
            timeout_seconds=config.session_timeout_seconds,
            clock=clock,
            rng=rng or random.Random(),
        )
        self.queue = EventQueue(
            max_size=config.max_queue_size,
            overflow_policy=config.overflow_policy,
            enqueue_timeout=config.enqueue_timeout_seconds,
        )
        self.dispatcher = BatchDispatcher(
            queue=self.queue,
            transport=self.transport,
            session=self.session,
            system_props=self.system_props,
            url=self.resolver.events_url(self.base_url),
            headers={
                "App-Key": config.app_key,
                "Content-Type": "application/json",
            },
            batch_size=config.batch_size,
            flush_interval=config.flush_interval_seconds,
            debug=config.debug,
            clock=clock,
        )
        self.dispatcher.start()

        logger.info(
            f"Aptabase client created (base_url={self.base_url}, "
            f"session={self.session.session_id}, debug={config.debug})"
        )

    @property
    def app_key(self) -> str:
        return self.config.app_key

    def track_event(self, name: str, props: Mapping[str, Any] | None = None) -> None:
        """
        Queue an event for delivery (fire and forget).

        Never raises: invalid events, a full queue or a stopped client
        are logged and the event is dropped.
        """
        try:
            event = Event(name=name, props=props or {})
        except (TypeError, ValueError, SerializationError) as e:
            logger.warning(f"Ignoring invalid event {name!r}: {e}")
            return

        if self.dispatcher.state != DispatcherState.RUNNING:
            logger.warning(f"Client is stopped, dropping event {name!r}")
            return

        if self.queue.enqueue(event) and self.config.debug:
            logger.debug(f"Queued event {event.name!r} props={event.props}")

    def flush(self) -> futures.Future | None:
        """
        Send everything queued now, without waiting for the batch threshold.

        Returns the flush task's future (resolves to True if delivered),
        or None if there was nothing to send.
        """
        return self.dispatcher.flush()

    def stop(self, timeout: float | None = None) -> bool:
        """
        Flush queued events and wait (bounded) for in-flight sends.

        Idempotent. Returns True if every send finished in time.
        """
        if timeout is None:
            timeout = self.config.stop_timeout_seconds
        completed = self.dispatcher.stop(timeout=timeout)
        if completed:
            self.transport.close()
        return completed

    def system_props(self) -> SystemProps:
        """Snapshot of environment metadata for the next batch."""
        info = self.system_info.get_system_info()
        props = SystemProps(
            is_debug=self.config.debug,
            os_name=info.os_name,
            os_version=info.os_version,
            engine_name="python",
            engine_version=platform.python_version(),
            locale=info.locale,
            app_version=self.config.app_version,
            app_build_number=str(self.config.app_build_number),
            device_model=info.device_model,
            sdk_version=SDK_VERSION,
        )
        if self.config.debug:
            logger.debug(f"systemProps: {props.to_dict()}")
        return props

    @property
    def stats(self) -> dict:
        """Get queue and dispatcher statistics."""
        return {
            **self.queue.stats,
            **self.dispatcher.stats,
        }

    def __enter__(self) -> AptabaseClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()


# Module-level default client
_default_client: AptabaseClient | None = None
_default_lock = threading.Lock()


def init(*args: Any, **kwargs: Any) -> AptabaseClient:
    """
    Create the process-wide default client.

    Accepts the same arguments as ``AptabaseClient``. A previously
    initialised default client is stopped first.

    Usage:
        import aptabase_client
        aptabase_client.init("A-EU-1234567890", app_version="1.2.0")
        aptabase_client.track_event("AppStarted")
    """
    global _default_client
    client = AptabaseClient(*args, **kwargs)
    with _default_lock:
        previous, _default_client = _default_client, client
    if previous is not None:
        logger.info("Replacing default Aptabase client")
        previous.stop()
    return client


def get_client() -> AptabaseClient | None:
    """Get the default client, if initialised."""
    return _default_client


def track_event(name: str, props: Mapping[str, Any] | None = None) -> None:
    """Track an event with the default client."""
    client = _default_client
    if client is None:
        logger.warning(f"Aptabase client not initialised, dropping event {name!r}")
        return
    client.track_event(name, props)


def flush() -> futures.Future | None:
    """Flush the default client."""
    client = _default_client
    if client is None:
        return None
    return client.flush()


def stop(timeout: float | None = None) -> bool:
    """Stop and discard the default client."""
    global _default_client
    with _default_lock:
        client, _default_client = _default_client, None
    if client is None:
        return True
    return client.stop(timeout)
