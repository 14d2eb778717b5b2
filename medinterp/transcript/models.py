"""
Data model for live bilingual transcript reconciliation.

- Token: one recognition token from the upstream stream, already normalized by the ingestion adapter.
- SpeakerBuffer: per-role accumulation of final and partial text between finalizations.
- TranscriptEntry: one finalized bilingual pair; immutable once created.
- SessionConfig: language pair per role and TTS flag; swapped per active role.
"""
from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from medinterp.config import Settings
from medinterp.languages import normalize_language_code

if TYPE_CHECKING:
    from medinterp.transcript.timer import DebounceTimer


class SpeakerRole(str, Enum):
    """The two fixed conversational sides. Exactly one is active during a session."""

    PROVIDER = "provider"
    PATIENT = "patient"

    @property
    def other(self) -> "SpeakerRole":
        return SpeakerRole.PATIENT if self is SpeakerRole.PROVIDER else SpeakerRole.PROVIDER


class TokenKind(str, Enum):
    SOURCE = "source"
    TRANSLATION = "translation"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Token:
    """Single recognition token. language_code is normalized; empty when untagged."""

    text: str = ""
    language_code: str = ""
    is_final: bool = False
    translation_marker: bool = False


@dataclass
class SpeakerBuffer:
    """
    Accumulated text for one speaker role since the last finalization.

    final_*: appended as final tokens arrive (arrival order preserved).
    partial_*: replaced on every message; the upstream's best guess for the unfinalized span.
    pending_timer: at most one live debounce timer; the scheduler cancels it before arming another.
    """

    final_original: str = ""
    final_translated: str = ""
    partial_original: str = ""
    partial_translated: str = ""
    saw_source_since_reset: bool = False
    last_update_time: float = 0.0
    pending_timer: "DebounceTimer | None" = field(default=None, repr=False, compare=False)

    def reset(self) -> None:
        """Clear text and source bookkeeping. Timer handling is left to the scheduler."""
        self.final_original = ""
        self.final_translated = ""
        self.partial_original = ""
        self.partial_translated = ""
        self.saw_source_since_reset = False

    @property
    def committed_original(self) -> str:
        return self.final_original.strip()

    @property
    def committed_translated(self) -> str:
        return self.final_translated.strip()


# Unit separator: cannot appear in recognized speech, so (a|b, c) and (a, b|c) never collide.
_SEGMENT_KEY_SEP = "\x1f"


def segment_key(original: str, translated: str) -> str:
    """Dedup identity of a finalized pair (both sides trimmed)."""
    return f"{original.strip()}{_SEGMENT_KEY_SEP}{translated.strip()}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_entry_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class TranscriptEntry:
    """Finalized bilingual transcript entry, appended to the session's ordered transcript."""

    speaker: SpeakerRole
    original_text: str
    translated_text: str
    id: str = field(default_factory=_new_entry_id)
    timestamp: datetime = field(default_factory=_utc_now)
    is_final: bool = True

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["speaker"] = self.speaker.value
        payload["timestamp"] = self.timestamp.isoformat()
        return payload


@dataclass(frozen=True)
class SessionConfig:
    """
    Language per role and TTS flag. Read-only while connected: a new config
    is stored by the session and only used on the next (re)connect.
    """

    provider_language: str = "en"
    patient_language: str = "es"
    tts_enabled: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "provider_language", normalize_language_code(self.provider_language))
        object.__setattr__(self, "patient_language", normalize_language_code(self.patient_language))

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionConfig":
        return cls(
            provider_language=settings.PROVIDER_LANGUAGE,
            patient_language=settings.PATIENT_LANGUAGE,
            tts_enabled=settings.TTS_ENABLED,
        )

    def merged(self, **changes: Any) -> "SessionConfig":
        """Copy with every non-None field in `changes` replaced."""
        return replace(self, **{name: value for name, value in changes.items() if value is not None})

    def source_language(self, role: SpeakerRole) -> str:
        return self.provider_language if role is SpeakerRole.PROVIDER else self.patient_language

    def target_language(self, role: SpeakerRole) -> str:
        return self.patient_language if role is SpeakerRole.PROVIDER else self.provider_language
