"""Registry of requests that are waiting for a reply from the server."""

import logging
import threading

from meteor_ddp.listeners import Listener

log = logging.getLogger(__name__)


class PendingRequests:
    """Maps request ids to the listener waiting for the matching reply.

    Safe to use from the event loop and from application threads at once.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, Listener] = {}
        self._lock = threading.Lock()

    def register(self, request_id: str, listener: Listener | None) -> None:
        """Remember ``listener`` for ``request_id``, replacing any earlier one.

        Requests without a listener are fire-and-forget and are not tracked.
        """
        if listener is None:
            return
        with self._lock:
            self._listeners[request_id] = listener

    def resolve(
        self, request_id: str | None, *kinds: type[Listener]
    ) -> Listener | None:
        """Remove and return the listener for ``request_id`` if it is one of ``kinds``.

        A listener of another kind is left in place, and ``None`` is returned
        when nobody is waiting for this kind of reply.
        """
        if request_id is None:
            return None
        with self._lock:
            listener = self._listeners.get(request_id)
            if listener is None or not isinstance(listener, kinds):
                return None
            del self._listeners[request_id]
        return listener

    def clear(self) -> None:
        with self._lock:
            dropped = len(self._listeners)
            self._listeners.clear()
        if dropped:
            log.debug("Discarded %d pending request(s)", dropped)

    def __len__(self) -> int:
        return len(self._listeners)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._listeners
