from pathlib import Path

import pytest

from biomarker_ingest.config.settings import Settings
from biomarker_ingest.database.models import DocumentRecord
from biomarker_ingest.database.repositories.document_repository import DocumentRepository
from biomarker_ingest.database.repositories.processing_status_repository import (
    ProcessingStatusRepository,
)
from biomarker_ingest.database.repositories.results_repository import ResultsRepository
from biomarker_ingest.processor.exceptions import PipelineFailedError
from biomarker_ingest.processor.file_storage import FileStorage
from biomarker_ingest.processor.processor import build_processor
from biomarker_ingest.progress.memory_tracker import InMemoryProgressTracker
from biomarker_ingest.progress.models import Stage

EXPECTED_NAMES = {
    "cholesterol",
    "ferritin",
    "glucose",
    "hdl",
    "hemoglobin",
    "ldl",
    "triglycerides",
    "tsh",
}


def _no_sleep(_seconds: float) -> None:
    return None


@pytest.mark.integration
class TestPipelineIntegration:
    def test_text_report_completes(
        self,
        seed_document: DocumentRecord,
        test_settings: Settings,
        files_root: Path,
    ) -> None:
        tracker = InMemoryProgressTracker()
        processor = build_processor(test_settings, tracker, storage_root=files_root, sleep=_no_sleep)

        processor.process(seed_document.id)

        records = ResultsRepository().list_for_document(seed_document.id)
        assert {r.name for r in records} == EXPECTED_NAMES
        assert all(str(r.test_date) == "2024-03-15" for r in records)
        status = ProcessingStatusRepository().find(seed_document.id)
        assert status is not None
        assert status.stage == "completed"
        assert status.biomarker_count == len(EXPECTED_NAMES)
        document = DocumentRepository().find_by_id(seed_document.id)
        assert document.summary
        assert document.biomarker_snapshot is not None
        progress = tracker.get(seed_document.id)
        assert progress is not None
        assert progress.stage is Stage.COMPLETED

    def test_missing_file_ends_in_error(
        self,
        seed_document: DocumentRecord,
        test_settings: Settings,
        storage: FileStorage,
        files_root: Path,
    ) -> None:
        storage.delete(seed_document.storage_path)
        processor = build_processor(
            test_settings, InMemoryProgressTracker(), storage_root=files_root, sleep=_no_sleep
        )

        with pytest.raises(PipelineFailedError) as exc_info:
            processor.process(seed_document.id)

        assert isinstance(exc_info.value.last_error, FileNotFoundError)
        status = ProcessingStatusRepository().find(seed_document.id)
        assert status is not None
        assert status.stage == "error"
        assert status.retry_count == test_settings.pipeline_max_attempts
        assert ResultsRepository().list_for_document(seed_document.id) == []
        assert seed_document.id not in DocumentRepository().find_needing_processing(
            limit=1000, stale_after_seconds=0
        )
