"""Duplex text channels that carry DDP frames."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Protocol

import websockets
from websockets import ClientConnection
from websockets.exceptions import InvalidHandshake, InvalidURI
from websockets.protocol import State
from websockets.uri import parse_uri

from meteor_ddp.errors import TransportError

log = logging.getLogger(__name__)

ABNORMAL_CLOSURE = 1006


class TransportHandler(Protocol):
    """Receives the events of one transport."""

    def on_open(self) -> None: ...

    def on_close(self, code: int, reason: str) -> None: ...

    def on_message(self, frame: str | bytes) -> None: ...


class Transport(ABC):
    """A full-duplex text-message channel.

    ``connect`` returns immediately and reports the outcome through the
    handler: ``on_open`` once the channel is up, then ``on_message`` per
    frame, then ``on_close``. A connection attempt that fails is reported as
    ``on_close(1006, reason)``. Closes requested with ``disconnect`` are not
    reported.
    """

    @property
    @abstractmethod
    def is_connected(self) -> bool: ...

    @abstractmethod
    def connect(self, url: str, handler: TransportHandler) -> None: ...

    @abstractmethod
    def send(self, text: str) -> None: ...

    @abstractmethod
    def disconnect(self) -> None: ...

    async def wait_closed(self) -> None:  # noqa: B027
        """Wait until a disconnected channel has released its resources."""


@dataclass(eq=False)
class _Connection:
    handler: TransportHandler
    task: asyncio.Task[None] | None = None
    ws: ClientConnection | None = None
    outgoing: asyncio.Queue[str] = field(default_factory=asyncio.Queue)
    abandoned: bool = False


class WebSocketTransport(Transport):
    """Transport over a websocket, run as a task on the event loop."""

    def __init__(self) -> None:
        self._loop: asyncio.AbstractEventLoop | None = None
        self._conn: _Connection | None = None
        self._closing: set[asyncio.Task[None]] = set()

    @property
    def is_connected(self) -> bool:
        conn = self._conn
        return conn is not None and conn.ws is not None and conn.ws.state is State.OPEN

    def connect(self, url: str, handler: TransportHandler) -> None:
        """Start connecting to ``url``; must be called with a running event loop."""
        try:
            parse_uri(url)
        except InvalidURI as e:
            raise TransportError(f"Invalid websocket URL: {url}") from e

        self.disconnect()
        self._loop = asyncio.get_running_loop()
        conn = _Connection(handler=handler)
        conn.task = self._loop.create_task(self._run(url, conn))
        self._conn = conn

    def send(self, text: str) -> None:
        conn = self._conn
        if conn is None or self._loop is None:
            raise TransportError("Websocket is not open")
        # frames may come from application threads; the loop keeps them in order
        self._loop.call_soon_threadsafe(conn.outgoing.put_nowait, text)

    def disconnect(self) -> None:
        conn, self._conn = self._conn, None
        if conn is None:
            return
        conn.abandoned = True
        if conn.task is None or conn.task.done():
            return
        if conn.task is asyncio.current_task():
            # torn down from inside one of our own callbacks
            if conn.ws is not None:
                closing = asyncio.get_running_loop().create_task(conn.ws.close())
                self._closing.add(closing)
                closing.add_done_callback(self._closing.discard)
            return
        conn.task.cancel()
        self._closing.add(conn.task)
        conn.task.add_done_callback(self._closing.discard)

    async def wait_closed(self) -> None:
        for task in list(self._closing):
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _run(self, url: str, conn: _Connection) -> None:
        try:
            ws = await websockets.connect(url)
        except (OSError, InvalidHandshake) as e:
            log.warning("Could not connect to %s: %s", url, e)
            self._finish(conn, ABNORMAL_CLOSURE, str(e))
            return

        conn.ws = ws
        writer = asyncio.create_task(self._write(ws, conn.outgoing))
        try:
            if not conn.abandoned:
                conn.handler.on_open()
            async for raw in ws:
                if conn.abandoned:
                    break
                try:
                    conn.handler.on_message(raw)
                except Exception:
                    log.exception("Error handling DDP frame")
        except websockets.ConnectionClosed:
            pass
        finally:
            writer.cancel()
            if conn.abandoned:
                await ws.close()

        self._finish(conn, ws.close_code or ABNORMAL_CLOSURE, ws.close_reason or "")

    def _finish(self, conn: _Connection, code: int, reason: str) -> None:
        if conn.abandoned:
            return
        if self._conn is conn:
            self._conn = None
        try:
            conn.handler.on_close(code, reason)
        except Exception:
            log.exception("Error handling websocket close")

    @staticmethod
    async def _write(ws: ClientConnection, outgoing: asyncio.Queue[str]) -> None:
        try:
            while True:
                await ws.send(await outgoing.get())
        except websockets.ConnectionClosed:
            log.debug("Websocket closed while sending")
