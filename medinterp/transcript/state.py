"""
SessionState: everything the reconciliation core mutates for ONE interpreter session.

Owned exclusively by one InterpreterSession; only its event-processing task touches it.
"""
from __future__ import annotations

from medinterp.transcript.ledger import DedupLedger
from medinterp.transcript.models import SessionConfig, SpeakerBuffer, SpeakerRole, TranscriptEntry


class SessionState:
    def __init__(self, config: SessionConfig | None = None, active_role: SpeakerRole = SpeakerRole.PROVIDER):
        self.config: SessionConfig = config or SessionConfig()
        self.active_role: SpeakerRole = active_role
        self.buffers: dict[SpeakerRole, SpeakerBuffer] = {role: SpeakerBuffer() for role in SpeakerRole}
        self.ledger = DedupLedger()
        # Ordered, append-only; entries are immutable
        self.entries: list[TranscriptEntry] = []

    def buffer(self, role: SpeakerRole) -> SpeakerBuffer:
        return self.buffers[role]

    def languages(self, role: SpeakerRole) -> tuple[str, str]:
        """(source, target) for the role under the current config."""
        return self.config.source_language(role), self.config.target_language(role)

    def reset_buffers(self) -> None:
        """Cancel pending timers and empty both buffers. Ledger and entries are kept."""
        for buffer in self.buffers.values():
            if buffer.pending_timer is not None:
                buffer.pending_timer.cancel()
                buffer.pending_timer = None
            buffer.reset()

    def clear(self) -> None:
        """Explicit clear: drop entries, buffers and the dedup ledger."""
        self.reset_buffers()
        self.entries.clear()
        self.ledger.clear()

    def snapshot(self) -> dict:
        """Debug snapshot (safe for logs)."""
        return {
            "active_role": self.active_role.value,
            "entries": len(self.entries),
            "ledger": len(self.ledger),
            "buffers": {
                role.value: {
                    "final_original": buf.final_original,
                    "final_translated": buf.final_translated,
                    "partial_original": buf.partial_original,
                    "partial_translated": buf.partial_translated,
                    "saw_source_since_reset": buf.saw_source_since_reset,
                    "timer_pending": bool(buf.pending_timer and buf.pending_timer.active),
                }
                for role, buf in self.buffers.items()
            },
        }
