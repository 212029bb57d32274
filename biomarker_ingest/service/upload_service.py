from concurrent.futures import Future
from pathlib import Path

from biomarker_ingest.config.settings import Settings
from biomarker_ingest.database.models import BiomarkerRecord, ProcessingStatusRecord
from biomarker_ingest.database.repositories.document_repository import DocumentRepository
from biomarker_ingest.database.repositories.processing_status_repository import (
    ProcessingStatusRepository,
)
from biomarker_ingest.database.repositories.results_repository import ResultsRepository
from biomarker_ingest.logging.logger import Log
from biomarker_ingest.processor.file_storage import FileStorage
from biomarker_ingest.processor.upload_validator import UploadedFile, UploadValidator
from biomarker_ingest.progress.base import BaseProgressTracker
from biomarker_ingest.progress.models import STAGE_PERCENT, Progress, Stage
from biomarker_ingest.worker.dispatcher import BackgroundDispatcher


class UploadService:
    """Entry point for new lab documents and for progress/result queries."""

    def __init__(
        self,
        *,
        validator: UploadValidator,
        storage: FileStorage,
        doc_repo: DocumentRepository,
        status_repo: ProcessingStatusRepository,
        results_repo: ResultsRepository,
        tracker: BaseProgressTracker,
        dispatcher: BackgroundDispatcher,
    ) -> None:
        self._validator = validator
        self._storage = storage
        self._doc_repo = doc_repo
        self._status_repo = status_repo
        self._results_repo = results_repo
        self._tracker = tracker
        self._dispatcher = dispatcher
        self._pending: dict[int, Future[None]] = {}

    def upload(self, upload: UploadedFile, owner_id: int) -> int:
        """Validate, store and register a document, then start processing.

        Returns the new document id without waiting for processing.

        Raises:
            FileTooLargeError: if the file exceeds the size limit.
            UnsupportedFileTypeError: if the sniffed type is not allowed.
        """
        content_type = self._validator.validate(upload)
        storage_path = self._storage.save(owner_id, upload.file_name, upload.data)
        try:
            document = self._doc_repo.create(
                owner_id=owner_id,
                file_name=upload.file_name,
                content_type=content_type,
                storage_path=storage_path,
                file_size_bytes=len(upload.data),
            )
        except Exception:
            self._storage.delete(storage_path)
            raise

        self._tracker.update(
            document.id,
            stage=Stage.UPLOADING,
            percent=STAGE_PERCENT[Stage.UPLOADING],
            message="File uploaded",
        )
        Log.info(
            f"Stored document {document.id} ({content_type}, {len(upload.data)} bytes) "
            f"for owner {owner_id}"
        )
        future = self._dispatcher.submit(document.id)
        self._pending[document.id] = future
        future.add_done_callback(lambda _: self._pending.pop(document.id, None))
        return document.id

    def wait(self, document_id: int, timeout: float | None = None) -> None:
        """Block until the background run for a document uploaded here finishes."""
        future = self._pending.pop(document_id, None)
        if future is not None:
            future.result(timeout=timeout)

    def get_progress(self, document_id: int) -> Progress | None:
        return self._tracker.get(document_id)

    def get_status(self, document_id: int) -> ProcessingStatusRecord | None:
        return self._status_repo.find(document_id)

    def list_biomarkers(self, document_id: int) -> list[BiomarkerRecord]:
        return self._results_repo.list_for_document(document_id)


def build_upload_service(
    settings: Settings,
    tracker: BaseProgressTracker,
    dispatcher: BackgroundDispatcher,
) -> UploadService:
    """Build an UploadService sharing the tracker and dispatcher of the worker."""
    return UploadService(
        validator=UploadValidator(
            max_bytes=settings.max_upload_bytes,
            allowed_mime_types=settings.allowed_mime_types,
        ),
        storage=FileStorage(Path(settings.upload_dir)),
        doc_repo=DocumentRepository(),
        status_repo=ProcessingStatusRepository(),
        results_repo=ResultsRepository(chunk_size=settings.biomarker_insert_chunk_size),
        tracker=tracker,
        dispatcher=dispatcher,
    )
