"""Frames waiting for the session to be connected."""

import threading
from collections import deque


class OutboundQueue:
    """FIFO of encoded frames, drained once when the session connects."""

    def __init__(self) -> None:
        self._frames: deque[str] = deque()
        self._lock = threading.Lock()

    def put(self, frame: str) -> None:
        with self._lock:
            self._frames.append(frame)

    def drain(self) -> list[str]:
        """Take every queued frame, oldest first, leaving the queue empty."""
        with self._lock:
            frames = list(self._frames)
            self._frames.clear()
        return frames

    def clear(self) -> None:
        with self._lock:
            self._frames.clear()

    def __len__(self) -> int:
        return len(self._frames)
