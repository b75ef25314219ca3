"""Transports - how batches reach the ingestion endpoint."""

from .base import Transport, TransportResponse
from .console import ConsoleTransport
from .http import HttpTransport

__all__ = [
    "Transport",
    "TransportResponse",
    "ConsoleTransport",
    "HttpTransport",
]
