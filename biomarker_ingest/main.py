import argparse
from pathlib import Path

from biomarker_ingest.config.settings import Settings
from biomarker_ingest.database.connection import apply_schema, close_pool, init_pool
from biomarker_ingest.database.repositories.document_repository import DocumentRepository
from biomarker_ingest.logging.logger import Log
from biomarker_ingest.processor.exceptions import UploadRejectedError
from biomarker_ingest.processor.processor import build_processor
from biomarker_ingest.processor.upload_validator import UploadedFile
from biomarker_ingest.progress.memory_tracker import InMemoryProgressTracker
from biomarker_ingest.service.upload_service import UploadService, build_upload_service
from biomarker_ingest.worker.dispatcher import BackgroundDispatcher
from biomarker_ingest.worker.worker import Worker


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="biomarker_ingest",
        description="Lab report ingestion: text -> validated biomarkers.",
    )
    parser.add_argument(
        "--init-schema",
        action="store_true",
        help="create database tables before running",
    )
    commands = parser.add_subparsers(dest="command")
    commands.add_parser("worker", help="run the reprocessing poll loop (default)")
    process = commands.add_parser("process", help="upload one file and wait for its results")
    process.add_argument("file", type=Path)
    process.add_argument("--owner", type=int, required=True, help="owner id of the document")
    return parser


def run_process(service: UploadService, path: Path, owner_id: int) -> int:
    """Upload a file, wait for the pipeline and print the outcome."""
    upload = UploadedFile(file_name=path.name, data=path.read_bytes())
    try:
        document_id = service.upload(upload, owner_id)
    except UploadRejectedError as exc:
        Log.error(f"Upload rejected: {exc}")
        return 2

    service.wait(document_id)
    status = service.get_status(document_id)
    if status is None:
        Log.error(f"No processing status for document {document_id}")
        return 1
    print(f"document {document_id}: {status.stage}")
    if status.error_message:
        print(f"error: {status.error_message}")
    for biomarker in service.list_biomarkers(document_id):
        flag = f" [{biomarker.status}]" if biomarker.status else ""
        print(
            f"  {biomarker.name}: {biomarker.value} {biomarker.unit}{flag} "
            f"({biomarker.extraction_method}, {biomarker.confidence})"
        )
    return 0 if status.stage == "completed" else 1


def main(argv: list[str] | None = None) -> int:
    """Entry point: initialize pool -> build dependencies -> run the command."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    tracker = InMemoryProgressTracker(ttl_seconds=settings.progress_ttl_seconds)
    dispatcher: BackgroundDispatcher | None = None
    try:
        if args.init_schema:
            apply_schema()
        processor = build_processor(settings, tracker)
        dispatcher = BackgroundDispatcher(processor, max_workers=settings.pipeline_max_workers)
        if args.command == "process":
            service = build_upload_service(settings, tracker, dispatcher)
            return run_process(service, args.file, args.owner)
        worker = Worker(DocumentRepository(), dispatcher, tracker, settings)
        worker.run()
        return 0
    finally:
        if dispatcher is not None:
            dispatcher.shutdown()
        close_pool()


if __name__ == "__main__":
    raise SystemExit(main())
