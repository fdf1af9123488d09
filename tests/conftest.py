"""Shared fixtures for meteor-ddp tests."""

import json
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import pytest
import websockets
from websockets import ServerConnection

from meteor_ddp.client import DDPClient
from meteor_ddp.listeners import DDPCallback
from meteor_ddp.transport import Transport, TransportHandler


class FakeTransport(Transport):
    """Records outgoing frames and lets tests fire transport events by hand."""

    def __init__(self) -> None:
        self.handler: TransportHandler | None = None
        self.sent: list[str] = []
        self.urls: list[str] = []
        self.disconnects = 0
        self.connect_error: Exception | None = None
        self._open = False

    @property
    def is_connected(self) -> bool:
        return self._open

    def connect(self, url: str, handler: TransportHandler) -> None:
        if self.connect_error is not None:
            raise self.connect_error
        self.urls.append(url)
        self.handler = handler

    def send(self, text: str) -> None:
        self.sent.append(text)

    def disconnect(self) -> None:
        self.disconnects += 1
        self._open = False

    @property
    def connects(self) -> int:
        return len(self.urls)

    @property
    def frames(self) -> list[dict[str, Any]]:
        return [json.loads(text) for text in self.sent]

    def open(self) -> None:
        assert self.handler is not None
        self._open = True
        self.handler.on_open()

    def close(self, code: int = 1006, reason: str = "") -> None:
        assert self.handler is not None
        self._open = False
        self.handler.on_close(code, reason)

    def receive(self, data: dict[str, Any] | str) -> None:
        assert self.handler is not None
        self.handler.on_message(data if isinstance(data, str) else json.dumps(data))


class RecordingCallback(DDPCallback):
    """Remembers every application notification in order."""

    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []

    def on_connect(self) -> None:
        self.events.append(("connect",))

    def on_disconnect(self, code: int, reason: str) -> None:
        self.events.append(("disconnect", code, reason))

    def on_exception(self, error: Exception) -> None:
        self.events.append(("exception", error))

    def on_data_added(
        self, collection: str | None, document_id: str | None, fields_json: str | None
    ) -> None:
        self.events.append(("added", collection, document_id, fields_json))

    def on_data_changed(
        self,
        collection: str | None,
        document_id: str | None,
        fields_json: str | None,
        cleared_json: str | None,
    ) -> None:
        self.events.append(
            ("changed", collection, document_id, fields_json, cleared_json)
        )

    def on_data_removed(self, collection: str | None, document_id: str | None) -> None:
        self.events.append(("removed", collection, document_id))

    def of_kind(self, kind: str) -> list[tuple[Any, ...]]:
        return [e for e in self.events if e[0] == kind]


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def callback() -> RecordingCallback:
    return RecordingCallback()


@pytest.fixture()
def client(transport: FakeTransport, callback: RecordingCallback) -> DDPClient:
    """Client over a FakeTransport, not yet connected."""
    c = DDPClient(
        "ws://meteor.test/websocket", transport=transport, max_reconnect_attempts=5
    )
    c.set_callback(callback)
    return c


@pytest.fixture()
def connected(
    client: DDPClient, transport: FakeTransport, callback: RecordingCallback
) -> DDPClient:
    """Client whose handshake has been accepted as session "sess-1"."""
    client.connect()
    transport.open()
    transport.receive({"msg": "connected", "session": "sess-1"})
    transport.sent.clear()
    callback.events.clear()
    return client


Handler = Callable[[ServerConnection], Awaitable[None]]


@pytest.fixture()
async def ddp_server() -> AsyncIterator[Callable[[Handler], Awaitable[str]]]:
    """Factory starting a websockets server with the given handler; returns its URL."""
    servers: list[Any] = []

    async def factory(handler: Handler) -> str:
        server = await websockets.serve(handler, "127.0.0.1", 0)
        servers.append(server)
        port = server.sockets[0].getsockname()[1]
        return f"ws://127.0.0.1:{port}"

    yield factory

    for s in servers:
        s.close()
        await s.wait_closed()


async def ok_handler(ws: ServerConnection) -> None:
    """Standard server: connect → connected, method → result, sub → ready."""
    try:
        async for raw in ws:
            msg = json.loads(raw)
            match msg.get("msg"):
                case "connect":
                    await ws.send(json.dumps({"msg": "connected", "session": "sess-1"}))
                case "method":
                    await ws.send(
                        json.dumps(
                            {"msg": "result", "id": msg["id"], "result": {"ok": True}}
                        )
                    )
                case "sub":
                    await ws.send(json.dumps({"msg": "ready", "subs": [msg["id"]]}))
                case "unsub":
                    await ws.send(json.dumps({"msg": "nosub", "id": msg["id"]}))
    except websockets.ConnectionClosed:
        pass
