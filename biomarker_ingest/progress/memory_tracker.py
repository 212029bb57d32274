import threading
import time
from collections.abc import Callable
from dataclasses import replace

from biomarker_ingest.progress.base import BaseProgressTracker
from biomarker_ingest.progress.models import Progress, Stage


class InMemoryProgressTracker(BaseProgressTracker):
    """Process-local progress store with expiry of finished entries.

    Entries in a terminal stage (completed or error) expire ``ttl_seconds``
    after their last update.
    """

    FIELDS = frozenset({"stage", "percent", "message", "error"})

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[int, Progress] = {}
        self._lock = threading.Lock()

    def update(self, document_id: int, **changes: object) -> Progress:
        unknown = set(changes) - self.FIELDS
        if unknown:
            raise ValueError(f"Unknown progress fields: {sorted(unknown)}")
        if "stage" in changes:
            changes["stage"] = Stage(changes["stage"])
        with self._lock:
            now = self._clock()
            current = self._entries.get(document_id)
            if current is None or self._expired(current, now):
                current = Progress(document_id=document_id)
            updated = replace(current, updated_at=now, **changes)  # type: ignore[arg-type]
            self._entries[document_id] = updated
            return updated

    def get(self, document_id: int) -> Progress | None:
        with self._lock:
            entry = self._entries.get(document_id)
            if entry is None:
                return None
            if self._expired(entry, self._clock()):
                del self._entries[document_id]
                return None
            return entry

    def sweep(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [doc_id for doc_id, entry in self._entries.items() if self._expired(entry, now)]
            for doc_id in expired:
                del self._entries[doc_id]
            return len(expired)

    def _expired(self, entry: Progress, now: float) -> bool:
        return entry.stage.is_terminal and now - entry.updated_at >= self._ttl_seconds
