"""Shared test fixtures for the Aptabase client."""

import random

import pytest

from aptabase_client import (
    AptabaseClient,
    ClientConfig,
    StaticSystemInfoProvider,
    SystemInfo,
)
from tests.mocks.transport import FakeClock, RecordingTransport


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def system_info() -> StaticSystemInfoProvider:
    return StaticSystemInfoProvider(SystemInfo(
        os_name="Linux",
        os_version="6.1.0",
        locale="en-US",
        device_model="x86_64",
    ))


@pytest.fixture
def config() -> ClientConfig:
    """Test configuration: ticks are slow so only thresholds/flush/stop send."""
    return ClientConfig(
        app_key="A-US-1234567890",
        app_version="1.0.0",
        app_build_number=42,
        debug=True,
        base_url=None,
        batch_size=10,
        flush_interval_seconds=60.0,
        max_queue_size=100,
        stop_timeout_seconds=2.0,
    )


@pytest.fixture
def make_client(config, transport, system_info, clock):
    """Factory for clients wired to fakes; stops every client on teardown."""
    clients = []

    def factory(**overrides) -> AptabaseClient:
        kwargs = {
            "config": config,
            "transport": transport,
            "system_info": system_info,
            "rng": random.Random(1234),
            "clock": clock,
        }
        kwargs.update(overrides)
        client = AptabaseClient(**kwargs)
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.stop(timeout=0.5)
