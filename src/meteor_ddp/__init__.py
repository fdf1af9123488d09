"""DDP (Distributed Data Protocol) client for Meteor-style real-time servers."""

from meteor_ddp.client import DDPClient
from meteor_ddp.errors import (
    DDPError,
    MethodError,
    ProtocolVersionError,
    SubscriptionError,
    TransportError,
)
from meteor_ddp.listeners import (
    DDPCallback,
    Listener,
    ResultListener,
    SubscribeListener,
    UnsubscribeListener,
)
from meteor_ddp.protocol import SUPPORTED_VERSIONS, is_version_supported
from meteor_ddp.session import Session, SessionState
from meteor_ddp.transport import Transport, TransportHandler, WebSocketTransport

__all__ = [
    "SUPPORTED_VERSIONS",
    "DDPCallback",
    "DDPClient",
    "DDPError",
    "Listener",
    "MethodError",
    "ProtocolVersionError",
    "ResultListener",
    "Session",
    "SessionState",
    "SubscribeListener",
    "SubscriptionError",
    "Transport",
    "TransportError",
    "TransportHandler",
    "UnsubscribeListener",
    "WebSocketTransport",
    "is_version_supported",
]
