"""Per-session dedup ledger of emitted segment keys."""
from __future__ import annotations

from medinterp.transcript.models import segment_key


class DedupLedger:
    """
    Set of SegmentKeys already emitted in this session.
    Survives speaker switches and stops; cleared only by an explicit clear.
    """

    def __init__(self) -> None:
        self._keys: set[str] = set()

    def claim(self, original: str, translated: str) -> bool:
        """Check-then-insert in one step. True if the pair was new and is now recorded."""
        key = segment_key(original, translated)
        if key in self._keys:
            return False
        self._keys.add(key)
        return True

    def contains(self, original: str, translated: str) -> bool:
        return segment_key(original, translated) in self._keys

    def clear(self) -> None:
        self._keys.clear()

    def __len__(self) -> int:
        return len(self._keys)
