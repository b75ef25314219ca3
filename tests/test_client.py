"""Tests for the public client API."""

import dataclasses
import threading
import time

import pytest

import aptabase_client
from aptabase_client import AptabaseClient, ClientConfig, ConfigurationError
from aptabase_client.dispatcher import DispatcherState
from aptabase_client.version import SDK_VERSION
from tests.mocks.transport import RecordingTransport


class TestConstruction:
    def test_initial_values(self, make_client):
        client = make_client()
        assert client.app_key == "A-US-1234567890"
        assert client.base_url == "https://us.aptabase.com"
        assert client.config.app_version == "1.0.0"
        assert client.config.app_build_number == 42
        assert client.config.debug is True
        assert client.config.session_timeout_seconds == 3600
        assert client.session.session_id
        assert client.dispatcher.state == DispatcherState.RUNNING

    def test_explicit_arguments_override_config(self, make_client):
        client = make_client(app_key="A-EU-999", app_version="2.0.0", debug=False)
        assert client.base_url == "https://eu.aptabase.com"
        assert client.config.app_version == "2.0.0"
        assert client.config.debug is False

    @pytest.mark.parametrize("key", ["A-SH-1234567890", "APIKEY", "A-XX-1", ""])
    def test_invalid_key_fails_immediately(self, make_client, key):
        with pytest.raises(ConfigurationError):
            make_client(app_key=key)

    def test_self_hosted(self, make_client):
        client = make_client(app_key="A-SH-1", base_url="https://analytics.example.com")
        assert client.base_url == "https://analytics.example.com"

    def test_positional_arguments(self, transport, system_info):
        client = AptabaseClient(
            "A-DEV-1", "3.1.4", 7, True,
            config=ClientConfig(app_key="", flush_interval_seconds=60.0),
            transport=transport,
            system_info=system_info,
        )
        try:
            assert client.base_url == "http://localhost:3000"
            assert client.config.app_build_number == 7
        finally:
            client.stop()


class TestTrackEvent:
    def test_manual_flush_single_batch(self, make_client, transport):
        client = make_client()
        for i in range(5):
            client.track_event(f"Event{i}", {"i": i})

        assert client.flush().result(timeout=2.0) is True
        assert len(transport.batches) == 1
        batch = transport.batches[0]
        assert len(batch) == 5
        assert len({e["sessionId"] for e in batch}) == 1
        assert all(e["systemProps"]["isDebug"] is True for e in batch)

    def test_threshold_auto_flush(self, make_client, transport):
        client = make_client()
        for i in range(13):
            client.track_event(f"Event{i}")

        assert transport.wait_for_batches(1)
        time.sleep(0.1)
        assert len(transport.batches) == 1
        assert len(transport.batches[0]) == 10
        assert len(client.queue) == 3

    def test_round_trip(self, make_client, transport):
        client = make_client()
        client.track_event("UserSignUp", {"username": "johndoe"})
        client.flush().result(timeout=2.0)

        element = transport.batches[0][0]
        assert element["eventName"] == "UserSignUp"
        assert element["props"]["username"] == "johndoe"
        assert {"timestamp", "sessionId", "systemProps"} <= element.keys()

    def test_system_props(self, make_client, transport):
        client = make_client()
        client.track_event("AppStarted")
        client.flush().result(timeout=2.0)

        props = transport.batches[0][0]["systemProps"]
        assert props["osName"] == "Linux"
        assert props["osVersion"] == "6.1.0"
        assert props["locale"] == "en-US"
        assert props["deviceModel"] == "x86_64"
        assert props["engineName"] == "python"
        assert props["appVersion"] == "1.0.0"
        assert props["appBuildNumber"] == "42"
        assert props["sdkVersion"] == SDK_VERSION

    def test_headers(self, make_client, transport):
        client = make_client()
        client.track_event("AppStarted")
        client.flush().result(timeout=2.0)
        request = transport.requests[0]
        assert request["url"] == "https://us.aptabase.com/api/v0/events"
        assert request["headers"]["App-Key"] == "A-US-1234567890"
        assert request["headers"]["Content-Type"] == "application/json"

    def test_session_rotates_between_batches(self, make_client, transport, clock):
        client = make_client()
        client.track_event("A")
        client.flush().result(timeout=2.0)
        clock.advance(2 * 3600)
        client.track_event("B")
        client.flush().result(timeout=2.0)

        first, second = transport.batches
        assert first[0]["sessionId"] != second[0]["sessionId"]

    def test_invalid_events_never_raise(self, make_client):
        client = make_client()
        client.track_event("")
        client.track_event(None)
        client.track_event("Props", ["not", "a", "mapping"])
        assert len(client.queue) == 0

    def test_unencodable_event_dropped_alone(self, make_client, transport, caplog):
        client = make_client()
        client.track_event("Good1")
        with caplog.at_level("WARNING"):
            client.track_event("Bad", {"obj": object()})
        client.track_event("Good2", {"score": 1.5})

        assert "Ignoring invalid event 'Bad'" in caplog.text
        assert client.flush().result(timeout=2.0) is True
        assert [e["eventName"] for e in transport.batches[0]] == ["Good1", "Good2"]

    def test_props_mutated_after_tracking(self, make_client, transport):
        client = make_client()
        user = {"plan": "free"}
        client.track_event("Upgrade", {"user": user})
        user["plan"] = "pro"
        client.flush().result(timeout=2.0)
        assert transport.batches[0][0]["props"] == {"user": {"plan": "free"}}

    def test_failed_batch_does_not_break_client(self, make_client, caplog):
        transport = RecordingTransport(status_code=400, body="invalid")
        client = make_client(transport=transport)
        client.track_event("First")
        with caplog.at_level("ERROR"):
            assert client.flush().result(timeout=2.0) is False
        assert "status 400" in caplog.text

        client.track_event("Second")
        client.flush().result(timeout=2.0)
        assert [b[0]["eventName"] for b in transport.batches] == ["First", "Second"]

    def test_queue_stays_bounded(self, make_client, config):
        small = dataclasses.replace(config, batch_size=5, max_queue_size=5)
        gate = threading.Event()
        transport = RecordingTransport(gate=gate)
        client = make_client(config=small, transport=transport)
        try:
            for i in range(50):
                client.track_event(f"E{i}")
            stats = client.stats
            # Every event is either accepted or counted as dropped
            assert stats["enqueued"] + stats["dropped"] == 50
            assert len(client.queue) <= 5
        finally:
            gate.set()


class TestStop:
    def test_final_flush_on_stop(self, make_client, transport):
        client = make_client()
        client.track_event("A")
        client.track_event("B")
        assert client.stop() is True
        assert len(transport.batches) == 1
        assert [e["eventName"] for e in transport.batches[0]] == ["A", "B"]
        assert transport.closed

    def test_stop_twice(self, make_client, transport):
        client = make_client()
        client.track_event("A")
        client.stop()
        client.stop()
        assert len(transport.batches) == 1

    def test_track_after_stop_is_ignored(self, make_client, transport):
        client = make_client()
        client.stop()
        client.track_event("Late")
        assert client.flush() is None
        assert transport.batches == []

    def test_stop_returns_when_transport_hangs(self, make_client):
        gate = threading.Event()
        transport = RecordingTransport(gate=gate)
        client = make_client(transport=transport)
        client.track_event("A")
        try:
            start = time.monotonic()
            assert client.stop(timeout=0.3) is False
            assert time.monotonic() - start < 2.0
            assert len(transport.requests) == 1
            assert not transport.closed
        finally:
            gate.set()

    def test_context_manager(self, config, transport, system_info):
        with AptabaseClient(config=config, transport=transport, system_info=system_info) as client:
            client.track_event("Inside")
        assert client.dispatcher.state == DispatcherState.STOPPED
        assert transport.batches[0][0]["eventName"] == "Inside"

    def test_stats(self, make_client):
        client = make_client()
        client.track_event("A")
        client.stop()
        stats = client.stats
        assert stats["enqueued"] == 1
        assert stats["events_sent"] == 1
        assert stats["batches_sent"] == 1
        assert stats["state"] == "stopped"


class TestDefaultClient:
    @pytest.fixture(autouse=True)
    def reset_default(self):
        yield
        aptabase_client.stop(timeout=0.5)

    def test_track_before_init(self, caplog):
        with caplog.at_level("WARNING"):
            aptabase_client.track_event("Early")
        assert "not initialised" in caplog.text
        assert aptabase_client.get_client() is None
        assert aptabase_client.flush() is None

    def test_init_track_stop(self, config, transport, system_info):
        client = aptabase_client.init(config=config, transport=transport, system_info=system_info)
        assert aptabase_client.get_client() is client

        aptabase_client.track_event("Module", {"level": 1})
        assert aptabase_client.stop() is True
        assert aptabase_client.get_client() is None
        assert transport.batches[0][0]["props"] == {"level": 1}

    def test_reinit_stops_previous(self, config, transport, system_info):
        first = aptabase_client.init(config=config, transport=transport, system_info=system_info)
        first.track_event("FromFirst")
        second = aptabase_client.init(config=config, transport=transport, system_info=system_info)
        assert first.dispatcher.state == DispatcherState.STOPPED
        assert aptabase_client.get_client() is second
        assert transport.batches[0][0]["eventName"] == "FromFirst"
