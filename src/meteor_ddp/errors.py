"""Exceptions raised by the DDP client."""


class DDPError(Exception):
    """Base class for all DDP client errors."""


class TransportError(DDPError, ConnectionError):
    """The connection could not be made, or was lost for good."""


class ProtocolVersionError(DDPError, ValueError):
    """A DDP protocol version that this client does not speak."""

    def __init__(self, version: str | None) -> None:
        self.version = version
        super().__init__(f"DDP protocol version not supported: {version}")


class MethodError(DDPError):
    """The server answered a request with an error."""

    def __init__(
        self,
        error: str | None,
        reason: str | None = None,
        details: str | None = None,
    ) -> None:
        self.error = error
        self.reason = reason
        self.details = details
        super().__init__(f"{error}: {reason}" if reason else str(error))


class SubscriptionError(MethodError):
    """A subscription was rejected, or stopped by the server before it was ready."""
