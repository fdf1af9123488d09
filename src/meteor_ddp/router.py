"""Dispatch of inbound DDP frames."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from meteor_ddp import protocol
from meteor_ddp.listeners import (
    DDPCallback,
    ResultListener,
    SubscribeListener,
    UnsubscribeListener,
)
from meteor_ddp.protocol import Message, ServerError
from meteor_ddp.registry import PendingRequests

if TYPE_CHECKING:
    from meteor_ddp.session import SessionMachine

log = logging.getLogger(__name__)


class Router:
    """Routes each decoded frame to the session, a pending request, or the callback."""

    def __init__(self, machine: SessionMachine, registry: PendingRequests) -> None:
        self.machine = machine
        self.registry = registry

    @property
    def callback(self) -> DDPCallback | None:
        return self.machine.callback

    def route(self, frame: str | bytes) -> None:
        try:
            data = protocol.decode(frame)
        except ValueError as e:
            log.warning("Dropping malformed DDP frame: %s", e)
            if self.callback is not None:
                self.callback.on_exception(e)
            return

        if not isinstance(data, dict):
            log.debug("Ignoring non-object DDP frame: %r", data)
            return

        match data.get("msg"):
            case Message.CONNECTED:
                self.machine.handshake_accepted(data.get("session"))
            case Message.FAILED:
                self.machine.handshake_rejected(data.get("version"))
            case Message.PING:
                self.machine.send_message(protocol.pong_frame(data.get("id")))
            case Message.ADDED | Message.ADDED_BEFORE:
                if self.callback is not None:
                    self.callback.on_data_added(
                        data.get("collection"),
                        data.get("id"),
                        protocol.raw(data, "fields"),
                    )
            case Message.CHANGED:
                if self.callback is not None:
                    self.callback.on_data_changed(
                        data.get("collection"),
                        data.get("id"),
                        protocol.raw(data, "fields"),
                        protocol.raw(data, "cleared"),
                    )
            case Message.REMOVED:
                if self.callback is not None:
                    self.callback.on_data_removed(
                        data.get("collection"), data.get("id")
                    )
            case Message.RESULT:
                self._on_result(data)
            case Message.READY:
                self._on_ready(data)
            case Message.NOSUB:
                self._on_nosub(data)
            case other:
                log.debug("Ignoring DDP frame of kind %r", other)

    def _on_result(self, data: dict[str, Any]) -> None:
        listener = self.registry.resolve(data.get("id"), ResultListener)
        if listener is None:
            return
        assert isinstance(listener, ResultListener)
        if "error" in data:
            err = ServerError.from_payload(data["error"])
            listener.on_error(err.error, err.reason, err.details)
        else:
            listener.on_success(protocol.raw(data, "result"))

    def _on_ready(self, data: dict[str, Any]) -> None:
        for sub_id in data.get("subs") or []:
            listener = self.registry.resolve(sub_id, SubscribeListener)
            if listener is not None:
                listener.on_success()

    def _on_nosub(self, data: dict[str, Any]) -> None:
        sub_id = data.get("id")
        match self.registry.resolve(sub_id, SubscribeListener, UnsubscribeListener):
            case SubscribeListener() as listener:
                err = ServerError.from_payload(data.get("error"))
                listener.on_error(err.error, err.reason, err.details)
            case UnsubscribeListener() as listener:
                listener.on_success()
            case None:
                log.debug("No one waiting on nosub for %s", sub_id)
