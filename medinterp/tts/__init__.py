"""
TTS: text-to-speech for translated transcript entries.

- edge: Edge TTS (free, Microsoft).
- none: disabled.
"""
from __future__ import annotations

from medinterp.tts.base import TTSEngine
from medinterp.tts.edge_tts import EdgeTTSEngine
from medinterp.tts.service import SpeechResult, get_tts_engine, synthesize_speech

__all__ = ["TTSEngine", "EdgeTTSEngine", "SpeechResult", "synthesize_speech", "get_tts_engine"]
