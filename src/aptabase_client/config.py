"""Client configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields

from .errors import ConfigurationError
from .event_queue import OverflowPolicy


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: str) -> int:
    raw = os.environ.get(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class ClientConfig:
    """
    Configuration for the Aptabase client.

    Can be set via:
    - Constructor arguments
    - Environment variables (APTABASE_*)
    - Config file (YAML or JSON)
    """
    # App key, e.g. "A-EU-1234567890" (region is the second segment)
    app_key: str = field(
        default_factory=lambda: os.environ.get("APTABASE_APP_KEY", "")
    )

    # Reported in systemProps
    app_version: str = field(
        default_factory=lambda: os.environ.get("APTABASE_APP_VERSION", "")
    )
    app_build_number: int = field(
        default_factory=lambda: _env_int("APTABASE_APP_BUILD_NUMBER", "0")
    )
    debug: bool = field(
        default_factory=lambda: _env_bool("APTABASE_DEBUG")
    )

    # Host override (required for self-hosted "SH" keys)
    base_url: str | None = field(
        default_factory=lambda: os.environ.get("APTABASE_BASE_URL") or None
    )

    # Session expires after this much inactivity
    session_timeout_seconds: float = 3600.0

    # Batching
    batch_size: int = 10
    flush_interval_seconds: float = 2.0

    # Queue
    max_queue_size: int = 1000
    overflow_policy: str = "drop"  # drop | block
    enqueue_timeout_seconds: float = 0.1

    # Shutdown: max time stop() waits for in-flight sends
    stop_timeout_seconds: float = 5.0

    # HTTP request timeout
    request_timeout_seconds: float = 10.0

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Check settings; raises ConfigurationError on the first problem."""
        if isinstance(self.app_build_number, bool) or not isinstance(self.app_build_number, int):
            raise ConfigurationError("app_build_number must be an integer")
        if self.app_build_number < 0:
            raise ConfigurationError("app_build_number must not be negative")
        if self.batch_size < 1:
            raise ConfigurationError("batch_size must be at least 1")
        if self.max_queue_size < 1:
            raise ConfigurationError("max_queue_size must be at least 1")
        if self.max_queue_size < self.batch_size:
            raise ConfigurationError("max_queue_size must not be smaller than batch_size")
        if self.flush_interval_seconds <= 0:
            raise ConfigurationError("flush_interval_seconds must be positive")
        if self.session_timeout_seconds <= 0:
            raise ConfigurationError("session_timeout_seconds must be positive")
        if self.stop_timeout_seconds < 0:
            raise ConfigurationError("stop_timeout_seconds must not be negative")
        if self.enqueue_timeout_seconds < 0:
            raise ConfigurationError("enqueue_timeout_seconds must not be negative")
        try:
            OverflowPolicy(self.overflow_policy)
        except ValueError:
            raise ConfigurationError(
                f"overflow_policy must be 'drop' or 'block', got {self.overflow_policy!r}"
            ) from None

    @classmethod
    def from_dict(cls, data: dict) -> ClientConfig:
        """Create config from dictionary (unknown keys are rejected)."""
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config must be a mapping, got {type(data).__name__}"
            )
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str) -> ClientConfig:
        """Load config from YAML file (top-level or under an 'aptabase' key)."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls._from_document(data, path)

    @classmethod
    def from_json(cls, path: str) -> ClientConfig:
        """Load config from JSON file."""
        import json
        with open(path, "r") as f:
            data = json.load(f)
        return cls._from_document(data, path)

    @classmethod
    def _from_document(cls, data: object, path: str) -> ClientConfig:
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"{path}: top level must be a mapping, got {type(data).__name__}"
            )
        return cls.from_dict(data.get("aptabase", data))
