"""
TTS service: picks the engine from config and a voice from the target language.
- edge: Edge TTS.
- none: disabled; callers get a "not configured" result.
synthesize_speech(text, language) -> SpeechResult. Never raises; never retried.
"""
from __future__ import annotations

import base64
import logging
from dataclasses import dataclass

from medinterp.config import get_settings
from medinterp.languages import voice_for_language
from medinterp.tts.base import TTSEngine
from medinterp.tts.edge_tts import EdgeTTSEngine

logger = logging.getLogger(__name__)

_SHORT_FORMATS = {"audio/mpeg": "mp3", "audio/wav": "wav", "audio/ogg": "ogg"}


@dataclass
class SpeechResult:
    """configured=False: TTS disabled. audio=None with configured=True: synthesis failed."""

    configured: bool
    audio: str | None = None  # base64
    format: str = ""
    voice: str = ""


def get_tts_engine(language: str | None = None) -> TTSEngine | None:
    """Return TTS engine from config, voiced for `language` (None when TTS_BACKEND=none)."""
    settings = get_settings()
    backend = (settings.TTS_BACKEND or "").strip().lower()
    if backend in ("", "none"):
        return None
    if backend == "edge":
        voice = settings.TTS_EDGE_VOICE.strip() or voice_for_language(language)
        return EdgeTTSEngine(voice=voice)
    logger.warning("Unknown TTS_BACKEND=%s; use edge or none", backend)
    return None


async def synthesize_speech(text: str, language: str | None = None) -> SpeechResult:
    """Generate TTS audio for text in `language`. Returns base64 audio and short format (mp3)."""
    engine = get_tts_engine(language)
    if not engine:
        logger.info("TTS disabled (TTS_BACKEND=none or unknown); audio=null")
        return SpeechResult(configured=False)
    if not (text or "").strip():
        return SpeechResult(configured=True, voice=engine.voice)
    try:
        audio_bytes, mime = await engine.synthesize(text)
    except Exception as e:
        logger.warning("TTS synthesize failed: %s", e)
        return SpeechResult(configured=True, voice=engine.voice)
    if not audio_bytes:
        logger.warning("TTS returned no audio (engine=%s); check logs for 403/network", type(engine).__name__)
        return SpeechResult(configured=True, voice=engine.voice)
    return SpeechResult(
        configured=True,
        audio=base64.b64encode(audio_bytes).decode("ascii"),
        format=_SHORT_FORMATS.get(mime, mime),
        voice=engine.voice,
    )
