"""Continuations for pending requests and the application callback surface."""

from collections.abc import Callable
from dataclasses import dataclass

ErrorHandler = Callable[[str | None, str | None, str | None], None]


def _ignore_error(
    _error: str | None, _reason: str | None, _details: str | None
) -> None:
    pass


@dataclass(frozen=True)
class ResultListener:
    """Waits for the ``result`` of a method call.

    ``on_success`` receives the result as JSON text (``None`` when the method
    returned nothing); ``on_error`` receives ``(error, reason, details)``.
    """

    on_success: Callable[[str | None], None]
    on_error: ErrorHandler = _ignore_error


@dataclass(frozen=True)
class SubscribeListener:
    """Waits for a subscription to become ``ready``, or for its ``nosub``.

    A ``nosub`` without error details calls ``on_error(None, None, None)``.
    """

    on_success: Callable[[], None]
    on_error: ErrorHandler = _ignore_error


@dataclass(frozen=True)
class UnsubscribeListener:
    """Waits for the ``nosub`` that confirms an unsubscription."""

    on_success: Callable[[], None]


Listener = ResultListener | SubscribeListener | UnsubscribeListener


class DDPCallback:
    """Application hooks for connection events and collection changes.

    Every method is a no-op; subclass and override the ones you need. Field
    payloads are the raw JSON text of the server's sub-documents, or ``None``
    when the server left them out.
    """

    def on_connect(self) -> None:
        pass

    def on_disconnect(self, code: int, reason: str) -> None:
        pass

    def on_exception(self, error: Exception) -> None:
        pass

    def on_data_added(
        self, collection: str | None, document_id: str | None, fields_json: str | None
    ) -> None:
        pass

    def on_data_changed(
        self,
        collection: str | None,
        document_id: str | None,
        fields_json: str | None,
        cleared_json: str | None,
    ) -> None:
        pass

    def on_data_removed(self, collection: str | None, document_id: str | None) -> None:
        pass
