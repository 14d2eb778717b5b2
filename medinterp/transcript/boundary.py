"""Sentence boundary heuristic: terminal punctuation on either stream marks a finalization candidate."""
from __future__ import annotations

from medinterp.transcript.models import SpeakerBuffer

SENTENCE_TERMINALS = (".", "!", "?", "…")


def ends_sentence(text: str) -> bool:
    return text.strip().endswith(SENTENCE_TERMINALS)


def is_candidate(buffer: SpeakerBuffer) -> bool:
    """True when the trimmed final original OR final translated text ends a sentence."""
    return ends_sentence(buffer.final_original) or ends_sentence(buffer.final_translated)
