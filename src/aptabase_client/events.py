"""Event types and the batch wire format."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from .errors import SerializationError


@dataclass(frozen=True, slots=True)
class Event:
    """
    A raw event as recorded by the application.

    Properties are round-tripped through JSON on construction: the event
    owns a deep copy, so later changes to the caller's objects (nested
    ones included) do not leak into a queued event, and values the
    ingestion API cannot accept are rejected here instead of failing
    the whole batch at send time.
    """
    name: str
    props: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("Event name must be a non-empty string")
        if not isinstance(self.props, Mapping):
            raise TypeError(f"Event props must be a mapping, got {type(self.props).__name__}")
        try:
            props = json.loads(json.dumps(dict(self.props), allow_nan=False))
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Props of event {self.name!r} are not JSON-encodable: {e}") from e
        object.__setattr__(self, "props", props)


@dataclass(frozen=True, slots=True)
class SystemProps:
    """Environment metadata attached to every event of a batch."""
    is_debug: bool
    os_name: str
    os_version: str
    engine_name: str
    engine_version: str
    locale: str
    app_version: str
    app_build_number: str
    device_model: str
    sdk_version: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "isDebug": self.is_debug,
            "osName": self.os_name,
            "osVersion": self.os_version,
            "engineName": self.engine_name,
            "engineVersion": self.engine_version,
            "locale": self.locale,
            "appVersion": self.app_version,
            "appBuildNumber": self.app_build_number,
            "deviceModel": self.device_model,
            "sdkVersion": self.sdk_version,
        }


@dataclass(frozen=True, slots=True)
class EnrichedEvent:
    """An event stamped with send-time session and system metadata."""
    event: Event
    timestamp: str
    session_id: str
    system_props: SystemProps

    @classmethod
    def create(
        cls,
        event: Event,
        session_id: str,
        system_props: SystemProps,
        now: datetime | None = None,
    ) -> EnrichedEvent:
        return cls(
            event=event,
            timestamp=format_timestamp(now or datetime.now(timezone.utc)),
            session_id=session_id,
            system_props=system_props,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the ingestion API's JSON object."""
        return {
            "timestamp": self.timestamp,
            "sessionId": self.session_id,
            "eventName": self.event.name,
            "systemProps": self.system_props.to_dict(),
            "props": self.event.props,
        }


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as an RFC 3339 UTC timestamp (``...Z``)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def encode_batch(events: list[EnrichedEvent]) -> bytes:
    """
    Encode a batch as a JSON array.

    Raises:
        SerializationError: If any property value is not JSON-encodable.
    """
    try:
        return json.dumps(
            [e.to_dict() for e in events],
            ensure_ascii=False,
            allow_nan=False,
        ).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Failed to encode batch of {len(events)} events: {e}") from e
