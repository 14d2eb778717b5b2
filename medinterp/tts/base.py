"""Speech synthesis engine interface. Only implementation so far: Edge TTS."""
from __future__ import annotations

from abc import ABC, abstractmethod


class TTSEngine(ABC):
    """Speaks translated entry text in one fixed voice."""

    @abstractmethod
    async def synthesize(self, text: str) -> tuple[bytes, str]:
        """(audio_bytes, mime_type); empty bytes when nothing could be synthesized."""
        ...

    @property
    @abstractmethod
    def format(self) -> str:
        """MIME type of the audio, e.g. 'audio/mpeg'."""
        ...

    @property
    @abstractmethod
    def voice(self) -> str:
        """Voice name sent to the backend."""
        ...
