"""Settings read from METEOR_DDP_* environment variables."""

import logging
import os
from typing import overload

_PREFIX = "METEOR_DDP_"
_MISSING = object()


def _lookup(name: str) -> tuple[str, str | None]:
    key = f"{_PREFIX}{name}"
    return key, os.environ.get(key)


@overload
def get_str(name: str) -> str: ...


@overload
def get_str(name: str, default: str) -> str: ...


def get_str(name: str, default: object = _MISSING) -> str:
    """Read METEOR_DDP_{name}; raises KeyError when unset and no default is given."""
    key, raw = _lookup(name)
    if raw is not None:
        return raw
    if default is _MISSING:
        raise KeyError(key)
    return default  # type: ignore[return-value]


def get_int(name: str, default: int, *, minimum: int | None = None) -> int:
    """Read METEOR_DDP_{name} as an integer no lower than ``minimum``."""
    key, raw = _lookup(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from None
    if minimum is not None and value < minimum:
        raise ValueError(f"{key} must be at least {minimum}, got {value}")
    return value


def parse_log_level(raw: str) -> int:
    """Turn a level name such as "debug" into its logging level."""
    level = logging.getLevelNamesMapping().get(raw.strip().upper())
    if level is None:
        raise ValueError(f"Invalid log level: {raw}")
    return level


def get_log_level(name: str, default: int) -> int:
    """Read METEOR_DDP_{name} as a logging level name."""
    _, raw = _lookup(name)
    return default if raw is None else parse_log_level(raw)
