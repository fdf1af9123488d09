"""DDP wire format: message kinds, frame builders and the JSON codec."""

import json
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Final

SUPPORTED_VERSIONS: Final[tuple[str, ...]] = ("1", "pre2", "pre1")
"""DDP versions this client speaks, most preferred first."""


class Message(StrEnum):
    """Values of the ``msg`` discriminator."""

    # client -> server
    CONNECT = "connect"
    METHOD = "method"
    SUB = "sub"
    UNSUB = "unsub"
    PONG = "pong"

    # server -> client
    CONNECTED = "connected"
    FAILED = "failed"
    PING = "ping"
    ADDED = "added"
    ADDED_BEFORE = "addedBefore"
    CHANGED = "changed"
    REMOVED = "removed"
    RESULT = "result"
    READY = "ready"
    NOSUB = "nosub"


def is_version_supported(version: str | None) -> bool:
    return version in SUPPORTED_VERSIONS


def unique_id() -> str:
    """Return a fresh random request identifier."""
    return str(uuid.uuid4())


def encode(data: dict[str, Any]) -> str:
    return json.dumps(data)


def decode(text: str | bytes) -> Any:
    """Decode one wire frame; raises ValueError on malformed payloads."""
    return json.loads(text)


def raw(data: dict[str, Any], key: str) -> str | None:
    """Re-encode a sub-document of a frame as compact JSON, or None if absent."""
    if key not in data:
        return None
    return json.dumps(data[key], separators=(",", ":"))


def connect_frame(
    version: str, support: Sequence[str], session: str | None = None
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "msg": Message.CONNECT,
        "version": version,
        "support": list(support),
    }
    if session is not None:
        data["session"] = session
    return data


def method_frame(
    method: str,
    request_id: str,
    params: Sequence[Any] | None = None,
    random_seed: str | None = None,
) -> dict[str, Any]:
    data: dict[str, Any] = {"msg": Message.METHOD, "method": method, "id": request_id}
    if params is not None:
        data["params"] = list(params)
    if random_seed is not None:
        data["randomSeed"] = random_seed
    return data


def sub_frame(
    name: str, request_id: str, params: Sequence[Any] | None = None
) -> dict[str, Any]:
    data: dict[str, Any] = {"msg": Message.SUB, "name": name, "id": request_id}
    if params is not None:
        data["params"] = list(params)
    return data


def unsub_frame(request_id: str) -> dict[str, Any]:
    return {"msg": Message.UNSUB, "id": request_id}


def pong_frame(ping_id: str | None = None) -> dict[str, Any]:
    data: dict[str, Any] = {"msg": Message.PONG}
    if ping_id is not None:
        data["id"] = ping_id
    return data


def _text(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


@dataclass(frozen=True)
class ServerError:
    """The ``error`` object of a ``result`` or ``nosub`` frame."""

    error: str | None = None
    reason: str | None = None
    details: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ServerError":
        """Build from the raw ``error`` value, which is normally an object.

        Meteor sends numeric codes (``404``) as often as string ones, so
        every part is normalized to text.
        """
        if not isinstance(payload, dict):
            return cls(error=_text(payload))
        return cls(
            error=_text(payload.get("error")),
            reason=_text(payload.get("reason")),
            details=_text(payload.get("details")),
        )
