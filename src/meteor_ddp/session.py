"""Connection lifecycle: handshake, version negotiation and reconnection."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any

from meteor_ddp import protocol
from meteor_ddp.errors import ProtocolVersionError, TransportError
from meteor_ddp.listeners import DDPCallback
from meteor_ddp.outbox import OutboundQueue
from meteor_ddp.registry import PendingRequests
from meteor_ddp.router import Router
from meteor_ddp.transport import Transport

log = logging.getLogger(__name__)


class SessionState(Enum):
    disconnected = "disconnected"
    connecting = "connecting"
    reconnecting = "reconnecting"
    awaiting_handshake = "awaiting_handshake"
    connected = "connected"

    @property
    def has_transport(self) -> bool:
        return self in (SessionState.awaiting_handshake, SessionState.connected)


@dataclass
class Session:
    url: str
    version: str
    session_id: str | None = None
    state: SessionState = SessionState.disconnected
    reconnect_attempts: int = 0

    @property
    def connected(self) -> bool:
        return self.state is SessionState.connected


class SessionMachine:
    """Drives one DDP session over a transport.

    Handles the transport's events, sends the ``connect`` handshake, reacts
    to ``connected`` and ``failed``, queues frames while the session is not
    connected, and reconnects (resuming the session) after a connection loss,
    up to ``max_reconnect_attempts`` consecutive times.
    """

    def __init__(
        self,
        url: str,
        version: str,
        transport: Transport,
        registry: PendingRequests,
        *,
        max_reconnect_attempts: int,
    ) -> None:
        self.session = Session(url=url, version=version)
        self.transport = transport
        self.registry = registry
        self.max_reconnect_attempts = max_reconnect_attempts
        self.queue = OutboundQueue()
        self.router = Router(self, registry)
        self.callback: DDPCallback | None = None
        # set once the session is connected, or has failed for good (see failure)
        self.settled = asyncio.Event()
        self.failure: Exception | None = None
        # held while deciding between sending and queueing, and while draining
        self._send_lock = threading.RLock()

    def open(self, reconnect: bool = False) -> None:
        """Connect the transport, or resume over it if it is still alive."""
        self.settled.clear()
        if reconnect and self.transport.is_connected:
            log.info(
                "Transport still open, resuming session %s", self.session.session_id
            )
            self.session.state = SessionState.awaiting_handshake
            self._send_handshake()
            return

        if self.session.state is not SessionState.reconnecting:
            self.session.state = SessionState.connecting
        log.info("Connecting to %s", self.session.url)
        try:
            self.transport.connect(self.session.url, self)
        except TransportError as e:
            log.error("Could not start connection to %s: %s", self.session.url, e)
            self.session.state = SessionState.disconnected
            self._settle(e)
            self._notify_exception(e)

    def disconnect(self) -> None:
        """End the session for good; the callback is detached and nothing retries."""
        log.info("Disconnecting from %s", self.session.url)
        self.callback = None
        self._teardown()
        self._settle(TransportError(f"Disconnected from {self.session.url}"))

    def send(self, frame: str) -> None:
        """Send an encoded frame now if connected, otherwise queue it."""
        if frame is None:
            raise ValueError("Cannot send a None frame")
        with self._send_lock:
            if self.session.connected:
                log.debug("SEND: %s", frame)
                self.transport.send(frame)
            else:
                log.debug("QUEUE: %s", frame)
                self.queue.put(frame)

    def send_message(self, data: dict[str, Any]) -> None:
        self.send(protocol.encode(data))

    # transport events

    def on_open(self) -> None:
        log.info("Transport open to %s", self.session.url)
        self.session.reconnect_attempts = 0
        self.session.state = SessionState.awaiting_handshake
        self._send_handshake()

    def on_close(self, code: int, reason: str) -> None:
        self.settled.clear()
        lost = self.session.state.has_transport or (
            self.session.state is SessionState.reconnecting
        )
        if not lost:
            log.warning(
                "Connection to %s closed (%s %s)", self.session.url, code, reason
            )
            self.session.state = SessionState.disconnected
            self._settle(TransportError(f"Connection closed ({code} {reason})"))
            if self.callback is not None:
                self.callback.on_disconnect(code, reason)
            return

        self.session.reconnect_attempts += 1
        attempt = self.session.reconnect_attempts
        if attempt > self.max_reconnect_attempts:
            log.error(
                "Giving up on %s after %d reconnect attempts (%s %s)",
                self.session.url,
                self.max_reconnect_attempts,
                code,
                reason,
            )
            self._teardown()
            self._settle(TransportError(f"Connection lost ({code} {reason})"))
            if self.callback is not None:
                self.callback.on_disconnect(code, reason)
            return

        log.warning(
            "Connection to %s lost (%s %s), reconnect attempt %d/%d",
            self.session.url,
            code,
            reason,
            attempt,
            self.max_reconnect_attempts,
        )
        self.session.state = SessionState.reconnecting
        self.open(reconnect=True)

    def on_message(self, frame: str | bytes) -> None:
        log.debug("RECEIVE: %r", frame)
        self.router.route(frame)

    # handshake replies

    def handshake_accepted(self, session_id: str | None) -> None:
        if self.session.state is not SessionState.awaiting_handshake:
            log.debug("Ignoring connected while %s", self.session.state.value)
            return
        if session_id is not None:
            self.session.session_id = session_id
        with self._send_lock:
            self.session.state = SessionState.connected
            queued = self.queue.drain()
            for frame in queued:
                log.debug("SEND: %s", frame)
                self.transport.send(frame)
        log.info(
            "Connected to %s (session %s, DDP %s, %d queued frame(s) sent)",
            self.session.url,
            self.session.session_id,
            self.session.version,
            len(queued),
        )
        self._settle(None)
        if self.callback is not None:
            self.callback.on_connect()

    def handshake_rejected(self, version: str | None) -> None:
        offered = self.session.version
        if version == offered or not protocol.is_version_supported(version):
            error = ProtocolVersionError(version)
            log.error(
                "Server %s rejected DDP %s: %s", self.session.url, offered, error
            )
            self._teardown()
            self._settle(error)
            self._notify_exception(error)
            return

        assert version is not None
        log.info("Server wants DDP %s instead of %s, reconnecting", version, offered)
        self.session.version = version
        self.session.session_id = None
        self.transport.disconnect()
        self.session.state = SessionState.connecting
        self.open()

    def _send_handshake(self) -> None:
        frame = protocol.encode(
            protocol.connect_frame(
                self.session.version,
                protocol.SUPPORTED_VERSIONS,
                self.session.session_id,
            )
        )
        log.debug("SEND: %s", frame)
        self.transport.send(frame)

    def _teardown(self) -> None:
        self.session.state = SessionState.disconnected
        self.session.session_id = None
        self.session.reconnect_attempts = 0
        self.registry.clear()
        self.queue.clear()
        try:
            self.transport.disconnect()
        except Exception:
            log.debug("Error tearing down transport", exc_info=True)

    def _settle(self, failure: Exception | None) -> None:
        self.failure = failure
        self.settled.set()

    def _notify_exception(self, error: Exception) -> None:
        if self.callback is not None:
            self.callback.on_exception(error)
