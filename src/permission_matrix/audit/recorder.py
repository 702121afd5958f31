"""Bounded, most-recent-first audit log for one tenant."""

from __future__ import annotations

import threading
from typing import Iterable

from permission_matrix.audit.models import AuditLogEntry

DEFAULT_MAX_ENTRIES = 50


class AuditRecorder:
    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        entries: Iterable[AuditLogEntry] = (),
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._entries: list[AuditLogEntry] = list(entries)[:max_entries]
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def append(self, entry: AuditLogEntry) -> None:
        """Insert at the head and drop anything beyond the retention count."""
        with self._lock:
            self._entries.insert(0, entry)
            del self._entries[self._max_entries :]

    def extend(self, entries: Iterable[AuditLogEntry]) -> None:
        """Append entries in order, so the last one ends up most recent."""
        with self._lock:
            for entry in entries:
                self._entries.insert(0, entry)
            del self._entries[self._max_entries :]

    def replace(self, entries: Iterable[AuditLogEntry]) -> None:
        """Swap in a persisted, most-recent-first log, keeping the cap."""
        with self._lock:
            self._entries = list(entries)[: self._max_entries]

    def list(self) -> list[AuditLogEntry]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
