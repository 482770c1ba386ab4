"""
Issue history: snapshots of the document taken before each full regeneration.

Entries are kept most recent first and capped; adding an entry past the cap
evicts the oldest one.
"""

from __future__ import annotations

import copy
import threading
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from .document import Document
from .errors import NotFound

DEFAULT_HISTORY_LIMIT = 20


@dataclass
class HistoryEntry:
    """A captured issue.

    Attributes:
        id: Generated UUID
        captured_at: UTC ISO timestamp of the capture
        title: Subject line at capture time, for list display
        document: Serialized document
        aux_state: Serialized auxiliary state (e.g. the game of the week)
    """
    id: str
    captured_at: str
    title: str
    document: dict[str, Any]
    aux_state: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class HistorySummary:
    id: str
    captured_at: str
    title: str


class HistoryStore:
    """Bounded, most-recent-first list of document snapshots."""

    def __init__(self, entries: list[HistoryEntry] | None = None, limit: int = DEFAULT_HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self._entries: list[HistoryEntry] = list(entries or [])[:limit]
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def snapshot(
        self,
        document: Document,
        aux_state: dict[str, Any] | None = None,
        title: str | None = None,
    ) -> str:
        """Capture an independent copy of ``document``. Returns the entry id."""
        entry = HistoryEntry(
            id=str(uuid.uuid4()),
            captured_at=datetime.now(timezone.utc).isoformat(),
            title=title or document.title,
            document=document.to_dict(),
            aux_state=copy.deepcopy(aux_state or {}),
        )
        with self._lock:
            self._entries.insert(0, entry)
            del self._entries[self.limit:]
        return entry.id

    def list(self) -> list[HistorySummary]:
        """List entries, most recent first."""
        with self._lock:
            return [HistorySummary(e.id, e.captured_at, e.title) for e in self._entries]

    def get(self, entry_id: str) -> HistoryEntry:
        """Return a copy of one entry.

        Raises:
            NotFound: If no entry has this id.
        """
        with self._lock:
            for entry in self._entries:
                if entry.id == entry_id:
                    return copy.deepcopy(entry)
        raise NotFound(entry_id)

    def restore(self, entry_id: str) -> Document:
        """Rebuild the document captured in an entry. The store is not changed.

        Raises:
            NotFound: If no entry has this id.
        """
        return Document.from_dict(self.get(entry_id).document)

    def remove(self, entry_id: str) -> None:
        """Delete an entry; unknown ids are ignored."""
        with self._lock:
            self._entries = [e for e in self._entries if e.id != entry_id]

    def clear(self) -> None:
        with self._lock:
            self._entries = []

    def to_list(self) -> list[dict[str, Any]]:
        """Serialize all entries for persistence."""
        with self._lock:
            return [asdict(e) for e in self._entries]

    @classmethod
    def from_list(cls, data: list[dict[str, Any]], limit: int = DEFAULT_HISTORY_LIMIT) -> HistoryStore:
        """Load entries written by ``to_list``; malformed entries are skipped."""
        entries = []
        for item in data:
            try:
                entries.append(HistoryEntry(**item))
            except TypeError:
                continue
        return cls(entries, limit=limit)


def format_entry(entry: HistorySummary) -> str:
    """One-line description of an entry for display."""
    ts = datetime.fromisoformat(entry.captured_at)
    return f"{ts.strftime('%Y-%m-%d %H:%M UTC')}  {entry.title}  ({entry.id[:8]})"
