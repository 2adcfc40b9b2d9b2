"""Registry of byte streams the engine reads documents from."""

from __future__ import annotations

import io
import logging
import threading
from typing import BinaryIO, Dict, Optional

LOGGER = logging.getLogger(__name__)


class StreamRegistry:
    """Maps registered byte streams to integer ids.

    The engine performs random access reads through the id it was handed at
    open time, so a stream must stay registered until its document is closed.
    Ids start at 1 and are never reused within a registry.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._streams: Dict[int, BinaryIO] = {}
        self._next_id = 1

    def register(self, stream: BinaryIO) -> int:
        if stream is None:
            raise ValueError("stream must not be None")
        for method in ("read", "seek"):
            if not callable(getattr(stream, method, None)):
                raise TypeError(f"stream must provide a callable '{method}'")
        with self._lock:
            stream_id = self._next_id
            self._next_id += 1
            self._streams[stream_id] = stream
        LOGGER.debug("Registered stream %d", stream_id)
        return stream_id

    def unregister(self, stream_id: int) -> Optional[BinaryIO]:
        with self._lock:
            stream = self._streams.pop(stream_id, None)
        if stream is not None:
            LOGGER.debug("Unregistered stream %d", stream_id)
        return stream

    def get(self, stream_id: int) -> BinaryIO:
        with self._lock:
            try:
                return self._streams[stream_id]
            except KeyError:
                raise KeyError(f"Stream {stream_id} is not registered") from None

    def length(self, stream_id: int) -> int:
        stream = self.get(stream_id)
        return stream.seek(0, io.SEEK_END)

    def read_block(self, stream_id: int, position: int, size: int) -> bytes:
        stream = self.get(stream_id)
        stream.seek(position)
        return stream.read(size)

    def __contains__(self, stream_id: object) -> bool:
        with self._lock:
            return stream_id in self._streams

    def __len__(self) -> int:
        with self._lock:
            return len(self._streams)


_DEFAULT_REGISTRY: Optional[StreamRegistry] = None
_DEFAULT_LOCK = threading.Lock()


def default_registry() -> StreamRegistry:
    """Return the process-wide registry used when none is injected."""
    global _DEFAULT_REGISTRY
    with _DEFAULT_LOCK:
        if _DEFAULT_REGISTRY is None:
            _DEFAULT_REGISTRY = StreamRegistry()
        return _DEFAULT_REGISTRY


__all__ = ["StreamRegistry", "default_registry"]
