from concurrent.futures import Future, ThreadPoolExecutor

from biomarker_ingest.logging.logger import Log
from biomarker_ingest.processor.exceptions import PipelineFailedError
from biomarker_ingest.processor.processor import Processor


class BackgroundDispatcher:
    """Runs one pipeline per document on a shared thread pool."""

    def __init__(self, processor: Processor, max_workers: int = 4) -> None:
        self._processor = processor
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="pipeline"
        )

    def submit(self, document_id: int) -> Future[None]:
        """Schedule processing and return immediately."""
        Log.info(f"Dispatching document {document_id}")
        return self._executor.submit(self._run, document_id)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _run(self, document_id: int) -> None:
        try:
            self._processor.process(document_id)
        except PipelineFailedError as exc:
            Log.error(f"Pipeline failed: {exc}", document_id=exc.document_id)
        except Exception as exc:
            Log.error(f"Unexpected pipeline crash for document {document_id}: {exc}")
