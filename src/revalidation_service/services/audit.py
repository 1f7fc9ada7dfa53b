"""In-memory audit log of recent invalidation reports."""
from __future__ import annotations

import threading
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Callable

from revalidation_service.domain.dto import AuditEntry, InvalidationReport

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AuditLog:
    """Bounded, process-local log used to debounce redelivered webhooks.

    Entries expire after ``retention_seconds`` and the log never holds more
    than ``max_entries``. Safe to share between concurrent requests; the lock
    only guards in-memory bookkeeping.
    """

    def __init__(
        self,
        *,
        retention_seconds: float = 600.0,
        max_entries: int = 1000,
        clock: Clock = utc_now,
    ):
        self._retention = timedelta(seconds=retention_seconds)
        self._entries: deque[AuditEntry] = deque(maxlen=max_entries)
        self._lock = threading.Lock()
        self._clock = clock

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def record(
        self,
        fingerprint: str,
        report: InvalidationReport,
        *,
        replayed: bool = False,
        now: datetime | None = None,
    ) -> AuditEntry:
        now = now or self._clock()
        entry = AuditEntry(
            request_fingerprint=fingerprint,
            report=report,
            recorded_at=now,
            replayed=replayed,
        )
        with self._lock:
            self._prune_locked(now)
            self._entries.append(entry)
        return entry

    def lookup(
        self,
        fingerprint: str,
        within: float | timedelta,
        *,
        now: datetime | None = None,
    ) -> InvalidationReport | None:
        """Most recent original report for ``fingerprint`` inside the window.

        Replayed entries are ignored so that a redelivery storm cannot keep
        extending the window.
        """
        now = now or self._clock()
        window = within if isinstance(within, timedelta) else timedelta(seconds=within)
        with self._lock:
            for entry in reversed(self._entries):
                if entry.recorded_at < now - window:
                    break
                if entry.replayed or entry.request_fingerprint != fingerprint:
                    continue
                if entry.recorded_at <= now:
                    return entry.report
        return None

    def prune(self, now: datetime | None = None) -> int:
        now = now or self._clock()
        with self._lock:
            return self._prune_locked(now)

    def recent(self, limit: int = 50) -> list[AuditEntry]:
        """Newest entries first."""
        with self._lock:
            entries = list(self._entries)
        entries.reverse()
        return entries[:limit]

    def _prune_locked(self, now: datetime) -> int:
        cutoff = now - self._retention
        removed = 0
        while self._entries and self._entries[0].recorded_at < cutoff:
            self._entries.popleft()
            removed += 1
        return removed
