"""
Speaker buffer store: applies one message's classified tokens to a SpeakerBuffer.

- Final tokens append (arrival order preserved).
- Partial tokens REPLACE the previous partial: each message carries the upstream's
  current best guess for the whole unfinalized span, not an increment.
- Translations are accepted only when source speech was seen since the last reset,
  or in the same message. Translations can arrive slightly out of band; without
  this guard a stale translation could attach to the next speaker's empty buffer.
"""
from __future__ import annotations

import time
from dataclasses import dataclass

from medinterp.transcript.models import SpeakerBuffer, Token, TokenKind


@dataclass
class BufferUpdate:
    """What one apply() changed; used for logging and partial notifications."""

    final_original_appended: str = ""
    final_translated_appended: str = ""
    discarded_translations: int = 0
    saw_source: bool = False


def apply_tokens(
    buffer: SpeakerBuffer,
    classified: list[tuple[TokenKind, Token]],
    now: float | None = None,
) -> BufferUpdate:
    update = BufferUpdate()
    update.saw_source = any(
        kind is TokenKind.SOURCE and token.text.strip() for kind, token in classified
    )
    has_source_context = buffer.saw_source_since_reset or update.saw_source

    final_original = ""
    final_translated = ""
    partial_original = ""
    partial_translated = ""

    for kind, token in classified:
        if not token.text:
            continue
        if kind is TokenKind.SOURCE:
            if token.is_final:
                final_original += token.text
            else:
                partial_original += token.text
        elif kind is TokenKind.TRANSLATION:
            if not has_source_context:
                update.discarded_translations += 1
                continue
            if token.is_final:
                final_translated += token.text
            else:
                partial_translated += token.text

    if update.saw_source:
        buffer.saw_source_since_reset = True

    stamp = time.monotonic() if now is None else now
    if final_original:
        buffer.final_original += final_original
        update.final_original_appended = final_original
        if final_original.strip():
            buffer.last_update_time = stamp
    if final_translated:
        buffer.final_translated += final_translated
        update.final_translated_appended = final_translated
        if final_translated.strip():
            buffer.last_update_time = stamp

    buffer.partial_original = partial_original
    buffer.partial_translated = partial_translated
    return update
