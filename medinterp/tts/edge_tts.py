"""
Edge TTS engine (Microsoft Edge online neural voices). No API key needed.
A 403 from Microsoft usually means network/region trouble; set TTS_BACKEND=none to disable.
"""
from __future__ import annotations

import logging
import re

import edge_tts

from medinterp.languages import DEFAULT_VOICE
from medinterp.transcript.boundary import SENTENCE_TERMINALS
from medinterp.tts.base import TTSEngine

logger = logging.getLogger(__name__)

# One request per piece; pieces of MP3 are concatenated
MAX_CHARS_PER_CHUNK = 800

_SENTENCE_END = re.compile("(?<=[" + re.escape("".join(SENTENCE_TERMINALS)) + r"\n])\s+")


def _split_text_chunks(text: str, max_chars: int = MAX_CHARS_PER_CHUNK) -> list[str]:
    """Group whole sentences into pieces of at most max_chars; overlong sentences are cut hard."""
    text = (text or "").strip()
    if not text:
        return []
    pieces: list[str] = []
    pending = ""
    for sentence in _SENTENCE_END.split(text):
        while len(sentence) > max_chars:
            if pending:
                pieces.append(pending)
                pending = ""
            pieces.append(sentence[:max_chars])
            sentence = sentence[max_chars:]
        if not sentence:
            continue
        candidate = f"{pending} {sentence}" if pending else sentence
        if len(candidate) <= max_chars:
            pending = candidate
        else:
            pieces.append(pending)
            pending = sentence
    if pending:
        pieces.append(pending)
    return pieces


class EdgeTTSEngine(TTSEngine):
    """MP3 output in one neural voice; the service picks the voice from the entry's target language."""

    def __init__(self, voice: str | None = None) -> None:
        self._voice = (voice or "").strip() or DEFAULT_VOICE

    @property
    def format(self) -> str:
        return "audio/mpeg"

    @property
    def voice(self) -> str:
        return self._voice

    async def _request_audio(self, piece: str) -> bytes:
        audio = bytearray()
        try:
            async for event in edge_tts.Communicate(piece, self._voice).stream():
                if event.get("type") == "audio" and event.get("data"):
                    audio.extend(event["data"])
        except Exception as e:
            logger.error("Edge TTS request failed for voice %s: %s", self._voice, e)
            return b""
        if not audio:
            logger.warning("Edge TTS sent no audio for %d chars (voice=%s)", len(piece), self._voice)
        return bytes(audio)

    async def synthesize(self, text: str) -> tuple[bytes, str]:
        audio = bytearray()
        for piece in _split_text_chunks(text):
            piece_audio = await self._request_audio(piece)
            if not piece_audio:
                # All pieces or nothing
                return b"", self.format
            audio.extend(piece_audio)
        return bytes(audio), self.format
