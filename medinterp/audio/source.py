"""
AudioSource: where session audio comes from.

ClientAudioSource buffers encoded audio pushed by the client WebSocket (MediaRecorder
chunks, format sniffed upstream). The source outlives any single capture: a speaker
switch stops and restarts capture against the same acquired source.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from medinterp.config import get_settings
from medinterp.errors import AudioSourceError

logger = logging.getLogger(__name__)


class AudioSource(ABC):
    """Acquire once per session start; drain() returns and removes buffered bytes."""

    @abstractmethod
    def acquire(self) -> None:
        """Claim the device/stream. Raises AudioSourceError when unavailable."""
        ...

    @abstractmethod
    def release(self) -> None:
        ...

    @abstractmethod
    def drain(self) -> bytes:
        ...

    @property
    @abstractmethod
    def is_acquired(self) -> bool:
        ...


class ClientAudioSource(AudioSource):
    """
    Audio fed by the client WebSocket. Bytes are accepted only while acquired;
    anything fed while idle is dropped. Oldest bytes are dropped past max_bytes.
    """

    def __init__(self, max_bytes: int | None = None) -> None:
        self._max_bytes = max_bytes or get_settings().AUDIO_SOURCE_MAX_BYTES
        self._buffer = bytearray()
        self._acquired = False
        self._closed = False

    def acquire(self) -> None:
        if self._closed:
            raise AudioSourceError("Client audio stream is closed")
        self._buffer.clear()
        self._acquired = True

    def release(self) -> None:
        self._acquired = False
        self._buffer.clear()

    def close(self) -> None:
        """Client disconnected; the source can never be acquired again."""
        self.release()
        self._closed = True

    @property
    def is_acquired(self) -> bool:
        return self._acquired

    def feed(self, data: bytes) -> None:
        """Append raw audio bytes. Call from WebSocket handler."""
        if not self._acquired or not data:
            return
        self._buffer.extend(data)
        overflow = len(self._buffer) - self._max_bytes
        if overflow > 0:
            del self._buffer[:overflow]
            logger.warning("Client audio buffer full; dropped %d oldest bytes", overflow)

    def drain(self) -> bytes:
        out = bytes(self._buffer)
        self._buffer.clear()
        return out

    def remaining_bytes(self) -> int:
        return len(self._buffer)
