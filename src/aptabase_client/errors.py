"""Exceptions raised by the Aptabase client."""

from __future__ import annotations


class AptabaseError(Exception):
    """Base exception for Aptabase client errors."""
    pass


class ConfigurationError(AptabaseError):
    """Invalid app key, region or client settings (raised at construction)."""
    pass


class SerializationError(AptabaseError):
    """A batch could not be encoded as JSON."""
    pass


class DeliveryError(AptabaseError):
    """A batch could not be delivered to the ingestion endpoint."""
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body
