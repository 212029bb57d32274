from concurrent.futures import Future
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from biomarker_ingest.database.models import DocumentRecord
from biomarker_ingest.database.repositories.document_repository import DocumentRepository
from biomarker_ingest.database.repositories.processing_status_repository import (
    ProcessingStatusRepository,
)
from biomarker_ingest.database.repositories.results_repository import ResultsRepository
from biomarker_ingest.processor.exceptions import FileTooLargeError
from biomarker_ingest.processor.file_storage import FileStorage
from biomarker_ingest.processor.upload_validator import UploadedFile, UploadValidator
from biomarker_ingest.progress.memory_tracker import InMemoryProgressTracker
from biomarker_ingest.progress.models import Stage
from biomarker_ingest.service.upload_service import UploadService
from biomarker_ingest.worker.dispatcher import BackgroundDispatcher


def _make_service(
    tmp_path: Path,
) -> tuple[UploadService, MagicMock, MagicMock, InMemoryProgressTracker]:
    validator = UploadValidator(
        max_bytes=1024,
        allowed_mime_types=["text/plain"],
        sniff=MagicMock(return_value="text/plain"),
    )
    doc_repo = MagicMock(spec=DocumentRepository)
    doc_repo.create.side_effect = lambda **kwargs: DocumentRecord(
        id=7, created_at=datetime(2024, 3, 1, tzinfo=timezone.utc), **kwargs
    )
    dispatcher = MagicMock(spec=BackgroundDispatcher)
    future: Future[None] = Future()
    dispatcher.submit.return_value = future
    tracker = InMemoryProgressTracker()
    service = UploadService(
        validator=validator,
        storage=FileStorage(tmp_path),
        doc_repo=doc_repo,
        status_repo=MagicMock(spec=ProcessingStatusRepository),
        results_repo=MagicMock(spec=ResultsRepository),
        tracker=tracker,
        dispatcher=dispatcher,
    )
    return service, doc_repo, dispatcher, tracker


def _stored_files(root: Path) -> list[Path]:
    return [p for p in root.rglob("*") if p.is_file()]


class TestUpload:
    def test_stores_registers_and_dispatches(self, tmp_path: Path) -> None:
        service, doc_repo, dispatcher, tracker = _make_service(tmp_path)

        document_id = service.upload(
            UploadedFile(file_name="report.txt", data=b"Glucose: 95 mg/dL"), owner_id=3
        )

        assert document_id == 7
        kwargs = doc_repo.create.call_args.kwargs
        assert kwargs["owner_id"] == 3
        assert kwargs["content_type"] == "text/plain"
        assert kwargs["file_size_bytes"] == len(b"Glucose: 95 mg/dL")
        assert (tmp_path / kwargs["storage_path"]).read_bytes() == b"Glucose: 95 mg/dL"
        dispatcher.submit.assert_called_once_with(7)

        progress = service.get_progress(7)
        assert progress is not None
        assert progress.stage is Stage.UPLOADING
        assert progress.percent == 10
        assert tracker.get(7) == progress

    def test_rejected_upload_stores_nothing(self, tmp_path: Path) -> None:
        service, doc_repo, dispatcher, _ = _make_service(tmp_path)

        with pytest.raises(FileTooLargeError):
            service.upload(UploadedFile(file_name="big.txt", data=b"x" * 2048), owner_id=3)

        doc_repo.create.assert_not_called()
        dispatcher.submit.assert_not_called()
        assert _stored_files(tmp_path) == []

    def test_failed_registration_removes_stored_file(self, tmp_path: Path) -> None:
        service, doc_repo, dispatcher, _ = _make_service(tmp_path)
        doc_repo.create.side_effect = RuntimeError("connection refused")

        with pytest.raises(RuntimeError, match="connection refused"):
            service.upload(UploadedFile(file_name="a.txt", data=b"Glucose: 95"), owner_id=3)

        assert _stored_files(tmp_path) == []
        dispatcher.submit.assert_not_called()


class TestWait:
    def test_waits_for_pending_run(self, tmp_path: Path) -> None:
        service, _, dispatcher, _ = _make_service(tmp_path)
        service.upload(UploadedFile(file_name="a.txt", data=b"Glucose: 95"), owner_id=3)
        dispatcher.submit.return_value.set_result(None)

        service.wait(7, timeout=1)

    def test_unknown_document_returns_immediately(self, tmp_path: Path) -> None:
        service, _, _, _ = _make_service(tmp_path)
        service.wait(999)


class TestQueries:
    def test_delegates_to_repositories(self, tmp_path: Path) -> None:
        service, _, _, _ = _make_service(tmp_path)
        service._status_repo.find.return_value = None  # type: ignore[attr-defined]
        service._results_repo.list_for_document.return_value = []  # type: ignore[attr-defined]

        assert service.get_status(7) is None
        assert service.list_biomarkers(7) == []
        assert service.get_progress(999) is None
