"""Region-based resolution of the ingestion endpoint from an app key."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .errors import ConfigurationError


# Region code -> base URL. Self-hosted (SH) has no default host.
DEFAULT_HOSTS: Mapping[str, str | None] = MappingProxyType({
    "EU": "https://eu.aptabase.com",
    "US": "https://us.aptabase.com",
    "DEV": "http://localhost:3000",
    "SH": None,
})

EVENTS_PATH = "/api/v0/events"


@dataclass(frozen=True)
class EndpointResolver:
    """
    Maps an app key to the base URL of its ingestion region.

    App keys look like ``A-<REGION>-<id>``; the region is the second
    dash-delimited segment. Unknown regions are a configuration error
    rather than a fallback, since sending analytics to the wrong region
    cannot be corrected later.
    """
    hosts: Mapping[str, str | None] = field(default_factory=lambda: DEFAULT_HOSTS)

    def region(self, app_key: str) -> str:
        """Extract the region code from an app key."""
        if not isinstance(app_key, str) or not app_key:
            raise ConfigurationError("App key is required")

        parts = app_key.split("-")
        if len(parts) < 2 or not parts[1]:
            raise ConfigurationError(
                f"Malformed app key {app_key!r}: expected '<prefix>-<REGION>-<id>'"
            )
        return parts[1]

    def resolve(self, app_key: str, base_url: str | None = None) -> str:
        """
        Resolve the base URL for an app key.

        Args:
            app_key: Aptabase app key (e.g. ``A-EU-1234567890``)
            base_url: Explicit host override. Required for self-hosted (SH)
                keys, optional for the others.

        Raises:
            ConfigurationError: Malformed key, unknown region, or a
                self-hosted key without ``base_url``.
        """
        region = self.region(app_key)
        if region not in self.hosts:
            known = ", ".join(sorted(self.hosts))
            raise ConfigurationError(
                f"Unknown region {region!r} in app key (expected one of: {known})"
            )

        if base_url:
            return base_url.rstrip("/")

        host = self.hosts[region]
        if not host:
            raise ConfigurationError(
                f"Region {region!r} has no default host; base_url must be provided"
            )
        return host.rstrip("/")

    @staticmethod
    def events_url(base_url: str) -> str:
        """Full URL of the batch ingestion endpoint."""
        return f"{base_url.rstrip('/')}{EVENTS_PATH}"
