import time
import traceback
from collections.abc import Callable, Sequence
from pathlib import Path

from biomarker_ingest.ai.factory import ChatClientFactory
from biomarker_ingest.config.settings import Settings
from biomarker_ingest.database.repositories.document_repository import DocumentRepository
from biomarker_ingest.database.repositories.processing_status_repository import (
    ProcessingStatusRepository,
)
from biomarker_ingest.database.repositories.results_repository import ResultsRepository
from biomarker_ingest.extraction.merger import ExtractionMerger
from biomarker_ingest.extraction.model_extractor import ModelExtractor
from biomarker_ingest.extraction.pattern_extractor import PatternExtractor
from biomarker_ingest.logging.logger import Log
from biomarker_ingest.normalization.factory import TextNormalizerFactory
from biomarker_ingest.processor.exceptions import PipelineFailedError
from biomarker_ingest.processor.file_storage import FileStorage
from biomarker_ingest.processor.pipeline import PipelineContext, PipelineStep
from biomarker_ingest.processor.retry import RetryPolicy
from biomarker_ingest.processor.steps import (
    LoadDocumentStep,
    MergeResultsStep,
    ModelExtractionStep,
    NormalizeTextStep,
    PatternExtractionStep,
    PersistResultsStep,
    StartProcessingStep,
    SummarizeStep,
)
from biomarker_ingest.progress.base import BaseProgressTracker
from biomarker_ingest.progress.models import STAGE_PERCENT, Stage, retrying_percent
from biomarker_ingest.summarization.factory import SummarizerFactory


class Processor:
    """Runs the processing pipeline for one document as a bounded state machine.

    Steps run in order. When a step raises, the failure is recorded as
    ``retrying``, the retry policy's delay is waited out and the same step is
    run again. Once the attempt budget is spent the run moves to ``error``
    and ``PipelineFailedError`` is raised.
    """

    def __init__(
        self,
        steps: Sequence[PipelineStep],
        status_repo: ProcessingStatusRepository,
        tracker: BaseProgressTracker,
        retry_policy: RetryPolicy,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._steps = list(steps)
        self._status_repo = status_repo
        self._tracker = tracker
        self._retry_policy = retry_policy
        self._clock = clock

    def process(self, document_id: int) -> PipelineContext:
        """Run every step for a document.

        Raises:
            PipelineFailedError: after the last allowed attempt fails.
        """
        Log.info(f"Processing document {document_id}")
        context = PipelineContext(document_id=document_id, started_at=self._clock())
        index = 0
        while index < len(self._steps):
            step = self._steps[index]
            try:
                context = step.run(context)
            except Exception as exc:
                context.retry_count += 1
                if not self._retry_policy.should_retry(context.retry_count):
                    self._record_failure(context, step, exc)
                    raise PipelineFailedError(document_id, context.retry_count, exc) from exc
                self._record_retry(context, step, exc)
                continue
            index += 1
        return context

    def _record_retry(
        self, context: PipelineContext, step: PipelineStep, exc: Exception
    ) -> None:
        Log.warning(
            f"Document {context.document_id} step '{step.name}' failed "
            f"(attempt {context.retry_count} of {self._retry_policy.max_attempts}): {exc}"
        )
        self._safely(
            "record retry",
            lambda: self._status_repo.mark_retrying(
                context.document_id,
                retry_count=context.retry_count,
                error_message=str(exc),
                error_details=_format_details(exc),
            ),
        )
        self._tracker.update(
            context.document_id,
            stage=Stage.RETRYING,
            percent=retrying_percent(context.retry_count),
            message=f"Retrying ({context.retry_count}/{self._retry_policy.max_attempts})",
            error=str(exc),
        )
        delay = self._retry_policy.wait(context.retry_count)
        Log.info(f"Document {context.document_id} retrying '{step.name}' after {delay:.2f}s")

    def _record_failure(
        self, context: PipelineContext, step: PipelineStep, exc: Exception
    ) -> None:
        elapsed_ms = int((self._clock() - context.started_at) * 1000)
        Log.error(
            f"Document {context.document_id} permanently failed at step '{step.name}' "
            f"after {context.retry_count} attempts: {exc}"
        )
        self._safely(
            "record failure",
            lambda: self._status_repo.mark_error(
                context.document_id,
                retry_count=context.retry_count,
                error_message=str(exc),
                error_details=_format_details(exc),
                processing_time_ms=elapsed_ms,
            ),
        )
        self._tracker.update(
            context.document_id,
            stage=Stage.ERROR,
            percent=STAGE_PERCENT[Stage.ERROR],
            message="Processing failed",
            error=str(exc),
        )

    @staticmethod
    def _safely(action: str, write: Callable[[], None]) -> None:
        """Run a status write, logging instead of raising when it fails."""
        try:
            write()
        except Exception as exc:
            Log.error(f"Failed to {action}: {exc}")


def _format_details(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def build_processor(
    settings: Settings,
    tracker: BaseProgressTracker,
    storage_root: Path | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Processor:
    """Build a Processor with all required adapters."""
    doc_repo = DocumentRepository()
    status_repo = ProcessingStatusRepository()
    results_repo = ResultsRepository(chunk_size=settings.biomarker_insert_chunk_size)
    storage = FileStorage(storage_root or Path(settings.upload_dir))
    normalizer = TextNormalizerFactory.create(settings)

    steps: list[PipelineStep] = [
        StartProcessingStep(status_repo, tracker),
        LoadDocumentStep(doc_repo, storage),
        NormalizeTextStep(
            normalizer,
            status_repo,
            tracker,
            min_text_length=settings.min_text_length,
            min_word_count=settings.min_word_count,
        ),
        PatternExtractionStep(
            PatternExtractor(conversion_penalty=settings.conversion_confidence_penalty)
        ),
    ]
    if settings.model_extraction_enabled:
        model_extractor = ModelExtractor(
            client=ChatClientFactory.create(settings),
            model=settings.extraction_model_name,
            temperature=settings.llm_temperature,
            min_pattern_matches=settings.model_min_pattern_matches,
            long_text_chars=settings.model_long_text_chars,
            conversion_penalty=settings.conversion_confidence_penalty,
        )
        steps.append(ModelExtractionStep(model_extractor, tracker))
    steps.extend(
        [
            MergeResultsStep(ExtractionMerger()),
            SummarizeStep(SummarizerFactory.create(settings), status_repo, tracker),
            PersistResultsStep(results_repo, tracker),
        ]
    )
    return Processor(
        steps=steps,
        status_repo=status_repo,
        tracker=tracker,
        retry_policy=RetryPolicy.from_settings(settings, sleep=sleep),
    )
