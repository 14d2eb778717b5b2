"""
FinalizationScheduler: debounces sentence-complete buffers into TranscriptEntry objects.

- Every buffer update cancels the pending timer first (new activity supersedes it).
- A timer is re-armed only when the buffer ends a sentence AND both final texts
  pass the substance threshold.
- Expiry, stop-flush and any other path emit through _emit(), which claims the
  segment key in the dedup ledger first. A key already claimed is never emitted again.
"""
from __future__ import annotations

import logging
from typing import Callable

from medinterp.transcript.boundary import is_candidate
from medinterp.transcript.models import SpeakerRole, TranscriptEntry
from medinterp.transcript.state import SessionState
from medinterp.transcript.timer import DebounceTimer, TimerFactory, start_timer

logger = logging.getLogger(__name__)


class FinalizationScheduler:
    def __init__(
        self,
        state: SessionState,
        on_entry: Callable[[TranscriptEntry], None],
        on_timer_expired: Callable[[SpeakerRole, DebounceTimer], None],
        debounce_seconds: float = 1.0,
        min_segment_chars: int = 5,
        min_flush_chars: int = 2,
        timer_factory: TimerFactory = start_timer,
    ) -> None:
        self._state = state
        self._on_entry = on_entry
        self._on_timer_expired = on_timer_expired
        self._debounce_seconds = debounce_seconds
        self._min_segment_chars = min_segment_chars
        self._min_flush_chars = min_flush_chars
        self._timer_factory = timer_factory

    def cancel(self, role: SpeakerRole) -> None:
        buffer = self._state.buffer(role)
        if buffer.pending_timer is not None:
            buffer.pending_timer.cancel()
            buffer.pending_timer = None

    def cancel_all(self) -> None:
        for role in SpeakerRole:
            self.cancel(role)

    def after_update(self, role: SpeakerRole) -> DebounceTimer | None:
        """Call after every buffer update. Returns the armed timer, or None."""
        self.cancel(role)
        buffer = self._state.buffer(role)
        if not is_candidate(buffer):
            return None
        if not self._has_substance(role, self._min_segment_chars):
            return None
        timer = self._timer_factory(
            self._debounce_seconds,
            lambda t: self._on_timer_expired(role, t),
        )
        buffer.pending_timer = timer
        logger.debug("Finalize timer armed for %s (%.2fs)", role.value, self._debounce_seconds)
        return timer

    def timer_expired(self, role: SpeakerRole, timer: DebounceTimer) -> TranscriptEntry | None:
        """Handle expiry of `timer`. Ignored unless it is still the buffer's pending timer."""
        buffer = self._state.buffer(role)
        if buffer.pending_timer is not timer or timer.cancelled:
            logger.debug("Stale finalize timer for %s ignored", role.value)
            return None
        buffer.pending_timer = None
        return self._emit(role)

    def flush(self, role: SpeakerRole) -> TranscriptEntry | None:
        """Finalize in-flight speech now (stop path): no punctuation needed, lower threshold."""
        self.cancel(role)
        if not self._has_substance(role, self._min_flush_chars):
            return None
        return self._emit(role)

    def _has_substance(self, role: SpeakerRole, min_chars: int) -> bool:
        buffer = self._state.buffer(role)
        return len(buffer.committed_original) > min_chars and len(buffer.committed_translated) > min_chars

    def _emit(self, role: SpeakerRole) -> TranscriptEntry | None:
        buffer = self._state.buffer(role)
        original = buffer.committed_original
        translated = buffer.committed_translated
        if not self._state.ledger.claim(original, translated):
            logger.info("Duplicate segment for %s skipped", role.value)
            return None
        entry = TranscriptEntry(speaker=role, original_text=original, translated_text=translated)
        self._state.entries.append(entry)
        buffer.reset()
        logger.info("Entry emitted for %s (%d/%d chars)", role.value, len(original), len(translated))
        self._on_entry(entry)
        return entry
