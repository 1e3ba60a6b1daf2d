"""Fakes for protocol tests."""

from __future__ import annotations

import json
import queue
from collections.abc import Callable
from typing import Any

import pytest
import websocket

_CLOSED = object()

Responder = Callable[[dict[str, Any]], "dict[str, Any] | None"]


class FakeWebSocket:
    """In-memory stand-in for websocket.WebSocket.

    recv() blocks on a queue. A responder, when set, turns each sent request
    into a reply frame.
    """

    def __init__(self, responder: Responder | None = None) -> None:
        self.responder = responder
        self.sent: list[dict[str, Any]] = []
        self.inbox: queue.Queue[Any] = queue.Queue()
        self.connected = True
        self.timeout: float | None = None
        self.close_calls = 0

    def settimeout(self, timeout: float | None) -> None:
        self.timeout = timeout

    def send(self, payload: str) -> None:
        if not self.connected:
            raise websocket.WebSocketConnectionClosedException("socket is already closed")
        message = json.loads(payload)
        self.sent.append(message)
        if self.responder is not None:
            reply = self.responder(message)
            if reply is not None:
                self.push(reply)

    def recv(self) -> str:
        item = self.inbox.get()
        if item is _CLOSED:
            self.connected = False
            raise websocket.WebSocketConnectionClosedException("Connection to remote host was lost")
        return item

    def push(self, message: dict[str, Any]) -> None:
        self.inbox.put(json.dumps(message))

    def drop(self) -> None:
        """Simulate the browser closing the socket."""
        self.inbox.put(_CLOSED)

    def close(self) -> None:
        self.close_calls += 1
        self.connected = False
        self.inbox.put(_CLOSED)


def echo_responder(message: dict[str, Any]) -> dict[str, Any]:
    return {"id": message["id"], "result": {"method": message["method"], **message["params"]}}


@pytest.fixture
def ws_factory():
    """Build FakeWebSockets, closing them all at teardown."""
    sockets: list[FakeWebSocket] = []

    def _make(responder: Responder | None = None) -> FakeWebSocket:
        ws = FakeWebSocket(responder)
        sockets.append(ws)
        return ws

    yield _make
    for ws in sockets:
        ws.close()


@pytest.fixture
def fake_ws(ws_factory):
    return ws_factory(echo_responder)
