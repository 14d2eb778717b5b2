"""Pydantic schemas for API request/response and client control messages."""
from medinterp.schemas.api import (
    LanguageOut,
    SpeakRequest,
    SpeakResponse,
    TranscribeResponse,
    TranslateRequest,
    TranslateResponse,
)
from medinterp.schemas.control import ClientControl

__all__ = [
    "ClientControl",
    "LanguageOut",
    "SpeakRequest",
    "SpeakResponse",
    "TranscribeResponse",
    "TranslateRequest",
    "TranslateResponse",
]
