import asyncio
import json
import logging

import pytest
from websockets.protocol import State

from app.bot.avatar_realtime import AvatarRealtimeClient, ConnectionState


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


class FakeAvatarSocket:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self):
        self.sent = []
        self.state = State.OPEN
        self.close_code = None
        self.close_reason = ""
        self._incoming = asyncio.Queue()

    @property
    def sent_types(self):
        return [message["type"] for message in self.sent]

    async def send(self, message):
        self.sent.append(json.loads(message))

    async def close(self, code=1000, reason=""):
        if self.state is State.CLOSED:
            return
        self.close_code = code
        self.close_reason = reason
        self.state = State.CLOSED
        self._incoming.put_nowait(None)

    def feed(self, message):
        """Queue a frame as if the provider had sent it."""
        if not isinstance(message, str):
            message = json.dumps(message)
        self._incoming.put_nowait(message)

    def drop(self, code=1006, reason="connection lost"):
        """Simulate the provider side closing the connection."""
        self.close_code = code
        self.close_reason = reason
        self.state = State.CLOSED
        self._incoming.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        message = await self._incoming.get()
        if message is None:
            raise StopAsyncIteration
        return message


@pytest.fixture
def socket_factory():
    """Build fresh fake sockets."""
    return FakeAvatarSocket


@pytest.fixture
def fake_socket():
    return FakeAvatarSocket()


@pytest.fixture
def avatar_client():
    """An avatar realtime client with short reconnect delays."""
    return AvatarRealtimeClient(
        "heygen-session-1",
        "wss://avatar.example.com/v1/realtime",
        "test-api-key",
        reconnect_delay=0.01,
        heartbeat_interval=60,
    )


@pytest.fixture
def connected_client(avatar_client, fake_socket):
    """A client marked connected over a fake socket, without background tasks."""
    avatar_client.ws = fake_socket
    avatar_client.state = ConnectionState.CONNECTED
    return avatar_client


@pytest.fixture
def wait_until():
    """Poll a predicate on the running loop until it holds."""

    async def _wait_until(predicate, timeout=2.0, interval=0.005):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("Condition not met before timeout")
            await asyncio.sleep(interval)

    return _wait_until
