"""Shared fixtures — config snapshots, a controllable clock and fake transports."""

import asyncio
import json
from typing import List, Optional, Tuple

import pytest

from wakabeat.core.heartbeat import Heartbeat
from wakabeat.types import ConfigSnapshot, HttpResult


class FakeClock:
    """Callable clock the test moves by hand."""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeTransport:
    """Transport whose responses are released by the test, one request at a time."""

    def __init__(self):
        self.sent: List[Tuple[Heartbeat, str]] = []
        self._pending: List[asyncio.Future] = []
        self.closed = False

    async def send(self, heartbeat: Heartbeat, api_key: str) -> HttpResult:
        fut = asyncio.get_running_loop().create_future()
        self.sent.append((heartbeat, api_key))
        self._pending.append(fut)
        return await fut

    def respond(self, index: int, result: HttpResult):
        self._pending[index].set_result(result)

    def fail(self, index: int, exc: Exception):
        self._pending[index].set_exception(exc)

    async def close(self):
        self.closed = True


class ImmediateTransport:
    """Transport that answers every request with the same result."""

    def __init__(self, result: HttpResult):
        self.result = result
        self.sent: List[Tuple[Heartbeat, str]] = []
        self.closed = False

    async def send(self, heartbeat: Heartbeat, api_key: str) -> HttpResult:
        self.sent.append((heartbeat, api_key))
        return self.result

    async def close(self):
        self.closed = True


def envelope(error: Optional[str] = None, data: Optional[dict] = None) -> str:
    return json.dumps({"error": error, "data": data})


def accepted_body(entity: str = "/proj/Assets/Main.unity", time_: float = 100.0) -> str:
    return envelope(data={"id": "hb-1", "entity": entity, "type": "file", "time": time_})


ACCEPTED = HttpResult(status=201, body=accepted_body())
DUPLICATE = HttpResult(status=200, body=envelope(error="Duplicate"))


async def settle():
    """Let freshly created tasks run up to their first await."""
    for _ in range(3):
        await asyncio.sleep(0)


@pytest.fixture
def snapshot() -> ConfigSnapshot:
    return ConfigSnapshot(api_key="waka_test_key", enabled=True, debug=False, project_name="Roguelike")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
