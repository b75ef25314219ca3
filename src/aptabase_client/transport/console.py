"""Console transport for development/debugging."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass

from .base import Transport, TransportResponse


@dataclass
class ConsoleTransport(Transport):
    """
    Transport that writes batches to the console instead of the network.

    Every batch is reported as accepted (HTTP 200).
    """
    # Output destination
    stream: str = "stdout"  # stdout | stderr

    # Output format
    format: str = "json"  # json | pretty

    # Prefix for each line
    prefix: str = "[APTABASE] "

    def send(self, url: str, headers: dict[str, str], body: bytes) -> TransportResponse:
        out = sys.stdout if self.stream == "stdout" else sys.stderr

        for item in json.loads(body):
            if self.format == "pretty":
                line = json.dumps(item, indent=2)
            else:
                line = json.dumps(item)
            print(f"{self.prefix}{line}", file=out)

        return TransportResponse(status_code=200, body="")
