"""Transcript reconciliation: classify tokens, buffer per speaker, debounce into deduplicated entries."""
from .boundary import is_candidate
from .buffer import BufferUpdate, apply_tokens
from .classifier import classify_token, classify_tokens
from .ledger import DedupLedger
from .models import SessionConfig, SpeakerBuffer, SpeakerRole, Token, TokenKind, TranscriptEntry, segment_key
from .scheduler import FinalizationScheduler
from .state import SessionState
from .timer import DebounceTimer

__all__ = [
    "BufferUpdate",
    "DebounceTimer",
    "DedupLedger",
    "FinalizationScheduler",
    "SessionConfig",
    "SessionState",
    "SpeakerBuffer",
    "SpeakerRole",
    "Token",
    "TokenKind",
    "TranscriptEntry",
    "apply_tokens",
    "classify_token",
    "classify_tokens",
    "is_candidate",
    "segment_key",
]
