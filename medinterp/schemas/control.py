"""
Control messages sent by the client as text frames on /ws/interpret.
Binary frames on the same socket are audio.
"""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from medinterp.languages import is_supported
from medinterp.transcript.models import SpeakerRole


class ClientControl(BaseModel):
    """
    type=configure: provider_language / patient_language / tts_enabled (missing fields keep current values).
    type=start | switch: role is the speaker who is about to talk.
    type=stop | clear: no fields.
    """

    type: Literal["configure", "start", "switch", "stop", "clear"]
    role: SpeakerRole | None = Field(None, description="provider | patient")
    provider_language: str | None = None
    patient_language: str | None = None
    tts_enabled: bool | None = None

    @field_validator("provider_language", "patient_language")
    @classmethod
    def _supported_language(cls, value: str | None) -> str | None:
        if value is not None and not is_supported(value):
            raise ValueError(f"Unsupported language: {value}")
        return value

    def config_changes(self) -> dict[str, Any]:
        """Fields this control sets; applied to the session config in arrival order."""
        return self.model_dump(include={"provider_language", "patient_language", "tts_enabled"}, exclude_none=True)
