import random

import orjson
import pytest

from rendezvous.signaling.errors import ChannelClosed
from rendezvous.signaling.registry import PeerRegistry


class FakeChannel:
    """In-memory channel recording every frame sent to it."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.failure_callbacks = []
        self.fail = fail
        self.closed = False
        self.handlers = {"message": [], "close": []}

    def send(self, text: str, on_failure=None) -> None:
        if self.fail or self.closed:
            raise ChannelClosed("channel is closed")
        self.sent.append(text)
        self.failure_callbacks.append(on_failure)

    def on(self, event, handler):
        self.handlers[event].append(handler)

    async def close(self):
        self.closed = True

    # helpers for tests
    def receive(self, text: str) -> None:
        for handler in self.handlers["message"]:
            handler(text)

    def disconnect(self) -> None:
        self.closed = True
        for handler in self.handlers["close"]:
            handler()

    @property
    def frames(self):
        return [orjson.loads(text) for text in self.sent]


class FakeRequest:
    def __init__(self, path: str, channel: FakeChannel = None):
        self.path = path
        self.channel = channel or FakeChannel()
        self.accepted = False
        self.rejected = None

    async def accept(self):
        self.accepted = True
        return self.channel

    async def reject(self, code, reason):
        self.rejected = (code, reason)


def offer(sender="A", to="*", seqnr=1, inner_seqnr=7):
    return {
        "type": "ROUTE",
        "from": sender,
        "to": to,
        "seqnr": seqnr,
        "payload": {
            "type": "signaling-protocol",
            "from": sender,
            "to": to,
            "payload": {"type": "offer", "seqnr": inner_seqnr, "sdp": "v=0"},
        },
    }


def answer(sender="B", to="A", seqnr=2):
    return {
        "type": "ROUTE",
        "from": sender,
        "to": to,
        "seqnr": seqnr,
        "payload": {
            "type": "signaling-protocol",
            "from": sender,
            "to": to,
            "seqnr": 8,
            "payload": {"type": "answer", "sdp": "v=0"},
        },
    }


@pytest.fixture
def registry():
    return PeerRegistry()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def peers(registry):
    """Register FakeChannels under the given ids and return them by id."""

    def _register(*ids):
        channels = {}
        for peer_id in ids:
            channels[peer_id] = FakeChannel()
            registry.register(peer_id, channels[peer_id])
        return channels

    return _register


class FakeSocket:
    """Stand-in for a starlette WebSocket as seen by WebSocketChannel."""

    def __init__(self, send_error: Exception = None, scope=None):
        from starlette.websockets import WebSocketState

        self.application_state = WebSocketState.CONNECTED
        self.client_state = WebSocketState.CONNECTED
        self.scope = scope if scope is not None else {}
        self.send_error = send_error
        self.written = []

    async def send_text(self, text):
        if self.send_error is not None:
            raise self.send_error
        self.written.append(text)

    async def receive(self):
        return {"type": "websocket.disconnect", "code": 1000}

    async def close(self, code=1000, reason=None):
        from starlette.websockets import WebSocketState

        self.application_state = WebSocketState.DISCONNECTED
