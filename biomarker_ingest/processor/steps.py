import time
from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime, timezone

from biomarker_ingest.database.repositories.document_repository import DocumentRepository
from biomarker_ingest.database.repositories.processing_status_repository import (
    ProcessingStatusRepository,
)
from biomarker_ingest.database.repositories.results_repository import (
    CompletedRun,
    ResultsRepository,
)
from biomarker_ingest.extraction.dates import detect_report_date
from biomarker_ingest.extraction.merger import ExtractionMerger
from biomarker_ingest.extraction.model_extractor import ModelExtractor
from biomarker_ingest.extraction.models import ExtractionMethod, ValidationStatus
from biomarker_ingest.extraction.pattern_extractor import PatternExtractor
from biomarker_ingest.logging.logger import Log
from biomarker_ingest.normalization.base import BaseTextNormalizer
from biomarker_ingest.processor.exceptions import InsufficientTextError
from biomarker_ingest.processor.file_storage import FileStorage
from biomarker_ingest.processor.pipeline import PipelineContext, PipelineStep
from biomarker_ingest.progress.base import BaseProgressTracker
from biomarker_ingest.progress.models import MODEL_EXTRACTION_PERCENT, STAGE_PERCENT, Stage
from biomarker_ingest.summarization.base import BaseSummarizer


class StartProcessingStep(PipelineStep):
    name = "start"

    def __init__(
        self, status_repo: ProcessingStatusRepository, tracker: BaseProgressTracker
    ) -> None:
        self._status_repo = status_repo
        self._tracker = tracker

    def run(self, context: PipelineContext) -> PipelineContext:
        self._status_repo.start(context.document_id)
        self._tracker.update(
            context.document_id,
            stage=Stage.PROCESSING,
            percent=STAGE_PERCENT[Stage.PROCESSING],
            message="Processing document",
            error=None,
        )
        Log.info(f"Document {context.document_id} marked as processing")
        return context


class LoadDocumentStep(PipelineStep):
    name = "load"

    def __init__(self, doc_repo: DocumentRepository, storage: FileStorage) -> None:
        self._doc_repo = doc_repo
        self._storage = storage

    def run(self, context: PipelineContext) -> PipelineContext:
        document = self._doc_repo.find_by_id(context.document_id)
        context.document = document
        context.raw_bytes = self._storage.load(document.storage_path)
        Log.info(f"Loaded {len(context.raw_bytes)} bytes for document {context.document_id}")
        return context


class NormalizeTextStep(PipelineStep):
    """Runs the normalizer and rejects text too short to hold lab results."""

    name = "normalize"

    def __init__(
        self,
        normalizer: BaseTextNormalizer,
        status_repo: ProcessingStatusRepository,
        tracker: BaseProgressTracker,
        min_text_length: int = 50,
        min_word_count: int = 10,
    ) -> None:
        self._normalizer = normalizer
        self._status_repo = status_repo
        self._tracker = tracker
        self._min_text_length = min_text_length
        self._min_word_count = min_word_count

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.document is None:
            raise ValueError("PipelineContext.document must be set before normalization")
        normalized = self._normalizer.normalize(
            context.raw_bytes, context.document.content_type
        )
        text = normalized.normalized_text.strip()
        word_count = len(text.split())
        if len(text) < self._min_text_length or word_count < self._min_word_count:
            raise InsufficientTextError(
                f"Extracted text too short: {len(text)} chars, {word_count} words "
                f"(need {self._min_text_length} chars and {self._min_word_count} words)"
            )
        context.normalized = normalized

        self._status_repo.set_stage(
            context.document_id, Stage.EXTRACTING, {"text_length": len(text)}
        )
        self._tracker.update(
            context.document_id,
            stage=Stage.EXTRACTING,
            percent=STAGE_PERCENT[Stage.EXTRACTING],
            message="Extracting biomarkers",
        )
        return context


class PatternExtractionStep(PipelineStep):
    name = "pattern_extraction"

    def __init__(self, extractor: PatternExtractor) -> None:
        self._extractor = extractor

    def run(self, context: PipelineContext) -> PipelineContext:
        context.pattern_matches = self._extractor.extract(context.text)
        return context


class ModelExtractionStep(PipelineStep):
    name = "model_extraction"

    def __init__(self, extractor: ModelExtractor, tracker: BaseProgressTracker) -> None:
        self._extractor = extractor
        self._tracker = tracker

    def run(self, context: PipelineContext) -> PipelineContext:
        self._tracker.update(
            context.document_id,
            percent=MODEL_EXTRACTION_PERCENT,
            message="Checking for missing biomarkers",
        )
        context.model_matches = self._extractor.extract(context.text, context.pattern_matches)
        return context


class MergeResultsStep(PipelineStep):
    """Merges candidates and stamps every biomarker with the report date."""

    name = "merge"

    def __init__(self, merger: ExtractionMerger) -> None:
        self._merger = merger

    def run(self, context: PipelineContext) -> PipelineContext:
        merged = self._merger.merge(context.pattern_matches, context.model_matches)
        test_date = self._test_date(context)
        context.biomarkers = [replace(biomarker, test_date=test_date) for biomarker in merged]
        Log.info(
            f"Document {context.document_id}: {len(context.biomarkers)} biomarkers "
            f"dated {test_date.isoformat()}"
        )
        return context

    @staticmethod
    def _test_date(context: PipelineContext) -> date:
        detected = detect_report_date(context.text)
        if detected is not None:
            return detected
        if context.document is not None and context.document.created_at is not None:
            return context.document.created_at.date()
        return datetime.now(timezone.utc).date()


class SummarizeStep(PipelineStep):
    """Best-effort narrative summary; failure leaves the summary empty."""

    name = "summarize"

    def __init__(
        self,
        summarizer: BaseSummarizer,
        status_repo: ProcessingStatusRepository,
        tracker: BaseProgressTracker,
    ) -> None:
        self._summarizer = summarizer
        self._status_repo = status_repo
        self._tracker = tracker

    def run(self, context: PipelineContext) -> PipelineContext:
        self._status_repo.set_stage(context.document_id, Stage.SUMMARIZING)
        self._tracker.update(
            context.document_id,
            stage=Stage.SUMMARIZING,
            percent=STAGE_PERCENT[Stage.SUMMARIZING],
            message="Summarizing results",
        )
        try:
            context.summary = self._summarizer.summarize(context.biomarkers, context.text)
        except Exception as exc:
            Log.warning(f"Summary failed for document {context.document_id}: {exc}")
            context.summary = None
        return context


class PersistResultsStep(PipelineStep):
    """Atomic completion write of biomarkers, document fields and status."""

    name = "persist"

    def __init__(
        self,
        results_repo: ResultsRepository,
        tracker: BaseProgressTracker,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._results_repo = results_repo
        self._tracker = tracker
        self._clock = clock

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.normalized is None:
            raise ValueError("PipelineContext.normalized must be set before persist")
        biomarkers = context.biomarkers
        model_count = sum(
            1 for b in biomarkers if b.extraction_method is ExtractionMethod.MODEL
        )
        snapshot = {
            "biomarkers": [b.to_snapshot() for b in biomarkers],
            "parsing_errors": [
                b.validation_message
                for b in biomarkers
                if b.validation_status is ValidationStatus.WARNING and b.validation_message
            ],
            "extracted_at": datetime.now(timezone.utc).isoformat(),
        }
        run = CompletedRun(
            document_id=context.document_id,
            biomarkers=biomarkers,
            normalization=context.normalized.to_dict(),
            biomarker_snapshot=snapshot,
            summary=context.summary,
            pattern_count=len(biomarkers) - model_count,
            model_count=model_count,
            retry_count=context.retry_count,
            text_length=len(context.text),
            processing_time_ms=int((self._clock() - context.started_at) * 1000),
        )
        self._results_repo.save_completed_run(run)
        self._tracker.update(
            context.document_id,
            stage=Stage.COMPLETED,
            percent=STAGE_PERCENT[Stage.COMPLETED],
            message=f"Extracted {len(biomarkers)} biomarkers",
            error=None,
        )
        Log.info(
            f"Document {context.document_id} completed with {len(biomarkers)} biomarkers "
            f"({run.pattern_count} pattern, {model_count} model)"
        )
        return context
