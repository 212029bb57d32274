from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from biomarker_ingest.extraction.models import (
    Biomarker,
    ExtractionMethod,
    ReferenceRange,
    ValidationStatus,
)


def _make_biomarker(**overrides: object) -> Biomarker:
    fields: dict[str, object] = {
        "name": "glucose",
        "value": Decimal("95"),
        "unit": "mg/dL",
        "category": "metabolic",
        "extraction_method": ExtractionMethod.PATTERN,
        "confidence": 0.95,
        "source_text": "Glucose: 95 mg/dL",
        "extracted_at": datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return Biomarker(**fields)  # type: ignore[arg-type]


class TestReferenceRangeParse:
    def test_parses_closed_range_with_unit(self) -> None:
        parsed = ReferenceRange.parse("(70-99 mg/dL)")
        assert parsed == ReferenceRange(Decimal("70"), Decimal("99"), "mg/dL")

    def test_parses_en_dash_and_to(self) -> None:
        assert ReferenceRange.parse("3.5–5.0") == ReferenceRange(Decimal("3.5"), Decimal("5.0"))
        assert ReferenceRange.parse("10 to 40 U/L") == ReferenceRange(
            Decimal("10"), Decimal("40"), "U/L"
        )

    def test_parses_upper_bound(self) -> None:
        assert ReferenceRange.parse("< 200 mg/dL") == ReferenceRange(
            high=Decimal("200"), unit="mg/dL"
        )

    def test_parses_lower_bound(self) -> None:
        assert ReferenceRange.parse(">40") == ReferenceRange(low=Decimal("40"))

    @pytest.mark.parametrize("text", [None, "", "see comment"])
    def test_returns_none_without_numbers(self, text: str | None) -> None:
        assert ReferenceRange.parse(text) is None


class TestReferenceRangeCompare:
    def test_classifies_value(self) -> None:
        rr = ReferenceRange(Decimal("70"), Decimal("99"))
        assert rr.compare(Decimal("65")) == "low"
        assert rr.compare(Decimal("120")) == "high"
        assert rr.compare(Decimal("99")) == "normal"

    def test_open_range_returns_none(self) -> None:
        assert ReferenceRange().compare(Decimal("1")) is None

    def test_str(self) -> None:
        assert str(ReferenceRange(Decimal("70"), Decimal("99"), "mg/dL")) == "70-99 mg/dL"
        assert str(ReferenceRange(high=Decimal("200"))) == "<200"
        assert str(ReferenceRange(low=Decimal("40"), unit="mg/dL")) == ">40 mg/dL"


class TestBiomarker:
    def test_row_metadata(self) -> None:
        metadata = _make_biomarker(
            validation_status=ValidationStatus.WARNING,
            validation_message="too high",
        ).row_metadata()
        assert metadata == {
            "source_text": "Glucose: 95 mg/dL",
            "extraction_timestamp": "2024-03-15T12:00:00+00:00",
            "validation_status": "warning",
            "validation_message": "too high",
        }

    def test_snapshot_is_json_ready(self) -> None:
        snapshot = _make_biomarker(test_date=date(2024, 3, 15), status="normal").to_snapshot()
        assert snapshot["value"] == "95"
        assert snapshot["test_date"] == "2024-03-15"
        assert snapshot["extraction_method"] == "pattern"
        assert snapshot["status"] == "normal"

    def test_snapshot_without_test_date(self) -> None:
        assert _make_biomarker().to_snapshot()["test_date"] is None
