"""
Aptabase Client Library

Privacy-friendly analytics events, batched and shipped in the background.

Usage:
    # Object-oriented API (recommended)
    from aptabase_client import AptabaseClient

    client = AptabaseClient("A-EU-1234567890", app_version="1.2.0", app_build_number=42)
    client.track_event("UserSignUp", {"username": "johndoe"})
    client.stop()  # flushes queued events before exit

    # Functional API (process-wide default client)
    import aptabase_client

    aptabase_client.init("A-US-1234567890")
    aptabase_client.track_event("AppStarted")
    aptabase_client.stop()
"""

import logging

from .client import (
    # Core class
    AptabaseClient,
    # Convenience functions
    init,
    get_client,
    track_event,
    flush,
    stop,
)
from .config import ClientConfig
from .dispatcher import BatchDispatcher, DispatcherState
from .endpoints import DEFAULT_HOSTS, EndpointResolver
from .errors import (
    AptabaseError,
    ConfigurationError,
    SerializationError,
    DeliveryError,
)
from .event_queue import EventQueue, OverflowPolicy
from .events import Event, EnrichedEvent, SystemProps
from .logs import configure_logging
from .session import SessionManager
from .system_info import (
    SystemInfo,
    SystemInfoProvider,
    PlatformSystemInfoProvider,
    StaticSystemInfoProvider,
)
from .transport import Transport, TransportResponse, HttpTransport, ConsoleTransport
from .version import __version__

# Library logging stays silent unless the application configures it
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Core classes
    "AptabaseClient",
    "ClientConfig",
    "BatchDispatcher",
    "DispatcherState",
    "EndpointResolver",
    "EventQueue",
    "OverflowPolicy",
    "SessionManager",
    "DEFAULT_HOSTS",
    # Convenience functions
    "init",
    "get_client",
    "track_event",
    "flush",
    "stop",
    "configure_logging",
    # Event types
    "Event",
    "EnrichedEvent",
    "SystemProps",
    # Collaborators
    "SystemInfo",
    "SystemInfoProvider",
    "PlatformSystemInfoProvider",
    "StaticSystemInfoProvider",
    "Transport",
    "TransportResponse",
    "HttpTransport",
    "ConsoleTransport",
    # Exceptions
    "AptabaseError",
    "ConfigurationError",
    "SerializationError",
    "DeliveryError",
    "__version__",
]
