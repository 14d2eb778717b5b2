"""Schemas for the HTTP API: text translation, speech synthesis, batch transcription, languages."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class TranslateRequest(BaseModel):
    """Request body for POST /api/translate."""

    text: str = Field(..., min_length=1, description="Text to translate")
    source_language: str = Field(..., min_length=1, description="Source language code, e.g. 'en' or 'en-US'")
    target_language: str = Field(..., min_length=1, description="Target language code")


class TranslateResponse(BaseModel):
    success: bool = True
    translated_text: str = Field("", description="Translated text; empty if the service returned none")


class SpeakRequest(BaseModel):
    """Request body for POST /api/speak."""

    text: str = Field(..., min_length=1, description="Text to synthesize")
    language: str = Field(..., min_length=1, description="Language of the text; picks the voice")
    speaker: str | None = Field(None, description="Optional role the text belongs to (logging only)")


class SpeakResponse(BaseModel):
    """Either success with audio, or a 'TTS not configured' notice (still HTTP 200)."""

    success: bool = False
    audio: str | None = Field(None, description="Base64 audio when synthesis succeeded")
    format: str | None = Field(None, description="Short audio format, e.g. 'mp3'")
    message: str | None = Field(None, description="'TTS not configured' when TTS is disabled")
    note: str | None = None


class TranscribeResponse(BaseModel):
    transcript: str = ""
    words: list[dict[str, Any]] = Field(default_factory=list)


class LanguageOut(BaseModel):
    code: str
    name: str
