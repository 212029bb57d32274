from datetime import date
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from biomarker_ingest.database.models import BiomarkerRecord, ProcessingStatusRecord
from biomarker_ingest.main import build_parser, run_process
from biomarker_ingest.processor.exceptions import UnsupportedFileTypeError
from biomarker_ingest.service.upload_service import UploadService


def _write_report(tmp_path: Path) -> Path:
    path = tmp_path / "report.txt"
    path.write_text("Glucose: 95 mg/dL", encoding="utf-8")
    return path


class TestBuildParser:
    def test_defaults_to_worker(self) -> None:
        args = build_parser().parse_args([])
        assert args.command is None
        assert args.init_schema is False

    def test_process_command(self) -> None:
        args = build_parser().parse_args(["--init-schema", "process", "r.pdf", "--owner", "3"])
        assert args.command == "process"
        assert args.file == Path("r.pdf")
        assert args.owner == 3
        assert args.init_schema is True


class TestRunProcess:
    def test_prints_results(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        service = MagicMock(spec=UploadService)
        service.upload.return_value = 7
        service.get_status.return_value = ProcessingStatusRecord(
            document_id=7, stage="completed", biomarker_count=1
        )
        service.list_biomarkers.return_value = [
            BiomarkerRecord(
                id=1,
                document_id=7,
                name="glucose",
                value=Decimal("95"),
                unit="mg/dL",
                category="metabolic",
                test_date=date(2024, 3, 15),
                extraction_method="pattern",
                status="normal",
            )
        ]

        assert run_process(service, _write_report(tmp_path), owner_id=3) == 0

        upload = service.upload.call_args.args[0]
        assert upload.file_name == "report.txt"
        service.wait.assert_called_once_with(7)
        out = capsys.readouterr().out
        assert "document 7: completed" in out
        assert "glucose: 95 mg/dL [normal]" in out

    def test_rejected_upload(self, tmp_path: Path) -> None:
        service = MagicMock(spec=UploadService)
        service.upload.side_effect = UnsupportedFileTypeError("bad type")

        assert run_process(service, _write_report(tmp_path), owner_id=3) == 2
        service.wait.assert_not_called()

    def test_failed_run(self, tmp_path: Path) -> None:
        service = MagicMock(spec=UploadService)
        service.upload.return_value = 7
        service.get_status.return_value = ProcessingStatusRecord(
            document_id=7, stage="error", error_message="too little text"
        )
        service.list_biomarkers.return_value = []

        assert run_process(service, _write_report(tmp_path), owner_id=3) == 1
