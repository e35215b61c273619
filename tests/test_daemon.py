"""Tests for the watch daemon main loop."""

import asyncio

import pytest

from wakabeat.core.config import API_KEY_ENV, WakabeatConfig
from wakabeat.core.daemon import WakabeatDaemon
from wakabeat.core.heartbeat import NO_ACTIVE_FILE
from wakabeat.types import ActivityEvent

from conftest import ACCEPTED, ImmediateTransport


class FakeSensor:
    """Returns one batch of events, then asks the daemon to stop."""

    def __init__(self, daemon, events):
        self.daemon = daemon
        self.events = events
        self.started = False
        self.stopped = False

    def start(self):
        self.started = True
        return 1

    def drain(self):
        events, self.events = self.events, []
        self.daemon.running = False
        return events

    def stop(self):
        self.stopped = True


@pytest.fixture
def config(tmp_path, monkeypatch):
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    cfg = WakabeatConfig()
    cfg.api.api_key = "waka_daemon_key"
    cfg.project.root = str(tmp_path)
    cfg.project.name = "Roguelike"
    cfg.dispatch.cooldown_seconds = 0.0
    cfg.watch.poll_interval_seconds = 0.01
    return cfg


class TestDaemon:

    def test_inactive_daemon_returns_immediately(self, config):
        config.api.api_key = ""
        daemon = WakabeatDaemon(config=config)
        daemon.run()
        assert daemon.start_time is None

    def test_startup_and_file_events_are_dispatched(self, config):
        daemon = WakabeatDaemon(config=config)
        transport = ImmediateTransport(ACCEPTED)
        daemon.dispatcher.transport = transport
        daemon.sensor = FakeSensor(daemon, [ActivityEvent("/proj/Assets/Player.cs", is_forced_write=True)])

        daemon.running = True
        asyncio.run(daemon._main_loop())

        entities = [hb.entity for hb, _ in transport.sent]
        assert entities == [NO_ACTIVE_FILE, "/proj/Assets/Player.cs"]
        assert daemon.sensor.started and daemon.sensor.stopped
        assert transport.closed is True
        assert daemon.dispatcher.pending == 0

    def test_shutdown_signal_stops_loop(self, config):
        daemon = WakabeatDaemon(config=config)
        daemon.running = True
        daemon._handle_shutdown()
        assert daemon.running is False
