import time
from collections.abc import Callable

from biomarker_ingest.config.settings import Settings
from biomarker_ingest.database.repositories.document_repository import DocumentRepository
from biomarker_ingest.logging.logger import Log
from biomarker_ingest.progress.base import BaseProgressTracker
from biomarker_ingest.worker.dispatcher import BackgroundDispatcher


class Worker:
    """Poll loop: find documents without results -> dispatch -> sleep.

    Picks up documents whose processing never started or was abandoned in a
    non-terminal stage, for example after a crash. Documents in ``error``
    are left for manual follow-up.
    """

    def __init__(
        self,
        doc_repo: DocumentRepository,
        dispatcher: BackgroundDispatcher,
        tracker: BaseProgressTracker,
        settings: Settings,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._doc_repo = doc_repo
        self._dispatcher = dispatcher
        self._tracker = tracker
        self._settings = settings
        self._sleep = sleep

    def run(self, max_polls: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_polls is set, stop after that many polls (for testing).
        """
        Log.info("Worker started, polling for documents to reprocess")
        polls = 0
        try:
            while max_polls is None or polls < max_polls:
                self.poll_once()
                polls += 1
                if max_polls is not None and polls >= max_polls:
                    break
                self._sleep(self._settings.reprocess_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def poll_once(self) -> int:
        """Dispatch one batch and return how many documents were dispatched."""
        removed = self._tracker.sweep()
        if removed:
            Log.debug(f"Expired {removed} progress entries")
        document_ids = self._find_documents()
        futures = [self._dispatcher.submit(document_id) for document_id in document_ids]
        for future in futures:
            future.result()
        if document_ids:
            Log.info(f"Reprocessed {len(document_ids)} documents")
        else:
            Log.debug("No documents to reprocess")
        return len(document_ids)

    def _find_documents(self) -> list[int]:
        """Gracefully handle DB errors."""
        try:
            return self._doc_repo.find_needing_processing(
                limit=self._settings.reprocess_batch_size,
                stale_after_seconds=self._settings.reprocess_stale_after_seconds,
            )
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return []
