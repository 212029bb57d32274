from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any


@dataclass
class DocumentRecord:
    """Represents a row from the lab_documents table."""

    id: int
    owner_id: int
    file_name: str
    content_type: str
    storage_path: str
    file_size_bytes: int
    normalization: dict[str, Any] | None = None
    biomarker_snapshot: dict[str, Any] | None = None
    summary: str | None = None
    summarized_at: datetime | None = None
    processed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class ProcessingStatusRecord:
    """Represents a row from the processing_status table."""

    document_id: int
    stage: str
    retry_count: int = 0
    error_message: str | None = None
    biomarker_count: int | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    updated_at: datetime | None = None


@dataclass
class BiomarkerRecord:
    """Represents a row from the biomarkers table."""

    id: int
    document_id: int
    name: str
    value: Decimal
    unit: str
    category: str
    test_date: date
    extraction_method: str
    reference_range: str | None = None
    confidence: Decimal | None = None
    status: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime | None = None
