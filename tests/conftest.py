import asyncio

import pytest
from websockets.protocol import State

import lcu_connection
from client_data import ClientData
from lcu_connection import LcuConnection


class FakeSocket:

    def __init__(self, frames=(), close_error=None):
        self.frames = list(frames)
        self.close_error = close_error
        self.sent = []
        self.closed = False
        self.state = State.OPEN

    async def send(self, message):
        self.sent.append(message)

    async def close(self):
        self.closed = True
        self.state = State.CLOSED
        if self.close_error is not None:
            raise self.close_error

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self.frames:
            yield frame
        self.state = State.CLOSED


class BlockingSocket(FakeSocket):
    """yields its frames, then waits like a live connection until close() is called"""

    def __init__(self, frames=(), close_error=None):
        super().__init__(frames, close_error)
        self._closed_event = asyncio.Event()

    async def close(self):
        self._closed_event.set()
        await super().close()

    async def _iterate(self):
        for frame in self.frames:
            yield frame
        await self._closed_event.wait()
        self.state = State.CLOSED


class FakeConnector:
    """stands in for websockets' connect, refusing `failures` times before handing out `socket`"""

    def __init__(self, socket, failures=0, events=None):
        self.socket = socket
        self.failures = failures
        self.events = events if events is not None else []
        self.calls = []

    async def __call__(self, uri, **kwargs):
        self.calls.append((uri, kwargs))
        self.events.append("connect")
        if len(self.calls) <= self.failures:
            raise ConnectionRefusedError("lcu not ready")
        return self.socket


@pytest.fixture
def events():
    return []


@pytest.fixture
def sleeps(monkeypatch, events):
    recorded = []

    async def fake_sleep(delay):
        recorded.append(delay)
        events.append(("sleep", delay))

    monkeypatch.setattr(lcu_connection.asyncio, "sleep", fake_sleep)
    return recorded


@pytest.fixture
def data():
    return ClientData()


@pytest.fixture
def connection(data):
    return LcuConnection(data)


@pytest.fixture
def fake_socket():
    return FakeSocket()


@pytest.fixture
def connector(monkeypatch, fake_socket, events):
    fake = FakeConnector(fake_socket, events=events)
    monkeypatch.setattr(lcu_connection, "ws_connect", fake)
    return fake


async def wait_until(predicate, timeout=5.0):
    for _ in range(int(timeout / 0.01)):
        if predicate():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition not reached in time")
