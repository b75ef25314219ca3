"""HTTP transport backed by httpx."""

from __future__ import annotations

import logging
import threading

import httpx

from ..errors import DeliveryError
from .base import Transport, TransportResponse


logger = logging.getLogger(__name__)


class HttpTransport(Transport):
    """
    Transport that POSTs batches with a shared ``httpx.Client``.

    The underlying client is created lazily and reused across batches so
    concurrent flushes share one connection pool.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ):
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._lock = threading.Lock()

    def _get_client(self) -> httpx.Client:
        with self._lock:
            if self._client is None:
                self._client = httpx.Client(timeout=self.timeout)
            return self._client

    def send(self, url: str, headers: dict[str, str], body: bytes) -> TransportResponse:
        try:
            response = self._get_client().post(url, content=body, headers=headers)
        except httpx.HTTPError as e:
            raise DeliveryError(f"Request to {url} failed: {e}") from e

        return TransportResponse(status_code=response.status_code, body=response.text)

    def close(self) -> None:
        with self._lock:
            if self._client is not None and self._owns_client:
                self._client.close()
            self._client = None
