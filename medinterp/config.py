"""Application configuration. Loads from env vars."""
from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    """App settings. Override via environment variables."""

    # Streaming recognition + translation (Soniox real-time WebSocket)
    SONIOX_API_KEY: str = ""
    SONIOX_WS_URL: str = "wss://stt-rt.soniox.com/transcribe-websocket"
    SONIOX_MODEL: str = "stt-rt-preview"
    SONIOX_AUDIO_FORMAT: str = "auto"  # client sends webm/ogg from MediaRecorder; let upstream sniff it

    # REST collaborators: batch transcription and text translation
    SONIOX_API_URL: str = "https://api.soniox.com"
    SONIOX_BATCH_MODEL: str = "en_v2"
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Finalization: wait this long after the last qualifying update before emitting an entry
    FINALIZE_DEBOUNCE_SECONDS: float = 1.0
    # Both texts must be strictly longer than this (trimmed) to finalize via debounce
    MIN_SEGMENT_CHARS: int = 5
    # Lower bar used when flushing the active buffer on stop
    MIN_FLUSH_CHARS: int = 2

    # Audio forwarding cadence (client audio is drained and sent upstream every N ms)
    AUDIO_CHUNK_MS: int = 250
    # Client audio buffer cap; oldest bytes are dropped past this
    AUDIO_SOURCE_MAX_BYTES: int = 2 * 1024 * 1024

    # Speaker switch: settle delay after closing the old connection, then poll for the new one
    SWITCH_SETTLE_SECONDS: float = 0.1
    RECONNECT_TIMEOUT_SECONDS: float = 3.0
    RECONNECT_POLL_SECONDS: float = 0.05

    # Session defaults (client may override per session with a "configure" message)
    PROVIDER_LANGUAGE: str = "en"
    PATIENT_LANGUAGE: str = "es"
    TTS_ENABLED: bool = False

    # TTS for translated entries: edge = Edge TTS, none = disabled.
    TTS_BACKEND: Literal["edge", "none"] = "edge"
    TTS_EDGE_VOICE: str = ""  # empty = pick a neural voice per target language

    # Logging: level (DEBUG, INFO, WARNING, ERROR); file path to also log to a file (empty = console only).
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"


def get_settings() -> Settings:
    return Settings()
