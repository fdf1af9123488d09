"""DDP client: method calls, subscriptions and collection helpers."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from meteor_ddp import environment, protocol
from meteor_ddp.errors import MethodError, ProtocolVersionError, SubscriptionError
from meteor_ddp.listeners import (
    DDPCallback,
    ResultListener,
    SubscribeListener,
    UnsubscribeListener,
)
from meteor_ddp.registry import PendingRequests
from meteor_ddp.session import Session, SessionMachine
from meteor_ddp.transport import Transport, WebSocketTransport

log = logging.getLogger(__name__)


class DDPClient:
    """Client for one DDP server.

    All request methods return immediately. Replies are delivered to the
    listener passed with each request, on the event loop that runs the
    transport; frames sent before the session is connected are queued and
    flushed, in order, once the server accepts the handshake.

    Typical use::

        client = DDPClient("ws://localhost:3000/websocket")
        client.set_callback(TodoWatcher())
        client.connect()
        client.subscribe("todos")
    """

    def __init__(
        self,
        url: str,
        version: str = protocol.SUPPORTED_VERSIONS[0],
        *,
        transport: Transport | None = None,
        max_reconnect_attempts: int | None = None,
    ) -> None:
        if not protocol.is_version_supported(version):
            raise ProtocolVersionError(version)
        if max_reconnect_attempts is None:
            max_reconnect_attempts = environment.get_int(
                "MAX_RECONNECT_ATTEMPTS", 5, minimum=0
            )
        self._registry = PendingRequests()
        self._machine = SessionMachine(
            url,
            version,
            transport or WebSocketTransport(),
            self._registry,
            max_reconnect_attempts=max_reconnect_attempts,
        )

    async def __aenter__(self) -> DDPClient:
        self.connect()
        await self.wait_until_connected()
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.disconnect()
        await self._machine.transport.wait_closed()

    @property
    def session(self) -> Session:
        return self._machine.session

    @property
    def is_connected(self) -> bool:
        return self._machine.session.connected

    def set_callback(self, callback: DDPCallback | None) -> None:
        self._machine.callback = callback

    def connect(self) -> None:
        """Open the connection; the handshake completes in the background."""
        self._machine.open()

    def reconnect(self) -> None:
        """Reconnect, resuming the session over a live transport if there is one."""
        self._machine.open(reconnect=True)

    def disconnect(self) -> None:
        """Close the session. Pending listeners are dropped without being called."""
        self._machine.disconnect()

    async def wait_until_connected(self) -> None:
        """Wait for the handshake; raises if the session fails for good first."""
        await self._machine.settled.wait()
        if self._machine.failure is not None:
            raise self._machine.failure

    def call(
        self,
        method: str,
        params: Sequence[Any] | None = None,
        listener: ResultListener | None = None,
    ) -> None:
        self.call_with_seed(method, None, params, listener)

    def call_with_seed(
        self,
        method: str,
        seed: str | None = None,
        params: Sequence[Any] | None = None,
        listener: ResultListener | None = None,
    ) -> None:
        """Invoke ``method`` on the server.

        ``seed`` is passed as ``randomSeed`` so the server generates the same
        pseudo-random values (e.g. document ids) as a client-side simulation.
        """
        call_id = protocol.unique_id()
        log.debug("Calling %s as %s", method, call_id)
        self._registry.register(call_id, listener)
        self._machine.send_message(
            protocol.method_frame(method, call_id, params, seed)
        )

    def subscribe(
        self,
        name: str,
        params: Sequence[Any] | None = None,
        listener: SubscribeListener | None = None,
    ) -> str:
        """Subscribe to the publication ``name`` and return the subscription id."""
        sub_id = protocol.unique_id()
        log.debug("Subscribing to %s as %s", name, sub_id)
        self._registry.register(sub_id, listener)
        self._machine.send_message(protocol.sub_frame(name, sub_id, params))
        return sub_id

    def unsubscribe(
        self, subscription_id: str, listener: UnsubscribeListener | None = None
    ) -> None:
        self._registry.register(subscription_id, listener)
        self._machine.send_message(protocol.unsub_frame(subscription_id))

    def insert(
        self,
        collection: str,
        document: Mapping[str, Any],
        listener: ResultListener | None = None,
    ) -> None:
        self.call(f"/{collection}/insert", [dict(document)], listener)

    def update(
        self,
        collection: str,
        query: Mapping[str, Any],
        changes: Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
        listener: ResultListener | None = None,
    ) -> None:
        self.call(
            f"/{collection}/update",
            [dict(query), dict(changes), dict(options or {})],
            listener,
        )

    def remove(
        self,
        collection: str,
        document_id: str,
        listener: ResultListener | None = None,
    ) -> None:
        self.call(f"/{collection}/remove", [{"_id": document_id}], listener)

    async def call_async(
        self,
        method: str,
        params: Sequence[Any] | None = None,
        *,
        seed: str | None = None,
    ) -> Any:
        """Call ``method`` and wait for its decoded result.

        Raises MethodError when the server answers with an error. If the
        session is given up or disconnected first, this never returns.
        """
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

        def on_success(result: str | None) -> None:
            if not future.done():
                future.set_result(None if result is None else json.loads(result))

        def on_error(
            error: str | None, reason: str | None, details: str | None
        ) -> None:
            if not future.done():
                future.set_exception(MethodError(error, reason, details))

        self.call_with_seed(method, seed, params, ResultListener(on_success, on_error))
        return await future

    async def subscribe_async(
        self, name: str, params: Sequence[Any] | None = None
    ) -> str:
        """Subscribe and wait until the subscription is ready.

        Raises SubscriptionError if the server refuses or stops it first.
        """
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def on_ready() -> None:
            if not future.done():
                future.set_result(None)

        def on_error(
            error: str | None, reason: str | None, details: str | None
        ) -> None:
            if not future.done():
                future.set_exception(SubscriptionError(error, reason, details))

        sub_id = self.subscribe(name, params, SubscribeListener(on_ready, on_error))
        await future
        return sub_id
