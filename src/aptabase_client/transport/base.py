"""Base transport interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class TransportResponse:
    """Status and body returned by the ingestion endpoint."""
    status_code: int
    body: str = ""

    @property
    def ok(self) -> bool:
        return self.status_code < 300


class Transport(ABC):
    """
    Abstract base class for transports.

    A transport performs one network call per batch. Retry is not its
    concern: a failed batch is dropped by the dispatcher.
    """

    @abstractmethod
    def send(self, url: str, headers: dict[str, str], body: bytes) -> TransportResponse:
        """
        POST a batch body to ``url``.

        Non-2xx responses are returned, not raised.

        Raises:
            DeliveryError: If the request could not be made at all.
        """
        ...

    def close(self) -> None:
        """Release connections (called once the client has stopped)."""
        pass
