from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from biomarker_ingest.database.connection import get_connection
from biomarker_ingest.database.models import BiomarkerRecord
from biomarker_ingest.extraction.models import Biomarker
from biomarker_ingest.processor.exceptions import DocumentNotFoundError
from biomarker_ingest.progress.models import Stage

_BIOMARKER_COLUMNS = (
    "document_id, name, value, unit, category, reference_range, test_date, "
    "extraction_method, confidence, status, metadata"
)
_ROW_PLACEHOLDER = "(" + ", ".join(["%s"] * 11) + ")"


@dataclass(frozen=True)
class CompletedRun:
    """Everything the completion write stores for one successful run."""

    document_id: int
    biomarkers: Sequence[Biomarker]
    normalization: dict[str, Any]
    biomarker_snapshot: dict[str, Any]
    summary: str | None
    pattern_count: int
    model_count: int
    retry_count: int
    text_length: int
    processing_time_ms: int


class ResultsRepository:
    """Biomarker rows plus the atomic completion write."""

    def __init__(self, chunk_size: int = 50) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        self._chunk_size = chunk_size

    def save_completed_run(self, run: CompletedRun) -> None:
        """Replace the document's biomarkers and mark it completed.

        All statements share one transaction: readers see either the previous
        run's rows or this run's rows, never a mix.

        Raises:
            DocumentNotFoundError: if the document row does not exist.
        """
        with get_connection() as conn:
            with conn.transaction():
                conn.execute(
                    "DELETE FROM biomarkers WHERE document_id = %s",
                    (run.document_id,),
                )
                self._insert_biomarkers(conn, run.document_id, run.biomarkers)
                self._update_document(conn, run)
                self._mark_completed(conn, run)

    def list_for_document(self, document_id: int) -> list[BiomarkerRecord]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT id, {_BIOMARKER_COLUMNS}, created_at
                    FROM biomarkers
                    WHERE document_id = %s
                    ORDER BY id
                    """,
                    (document_id,),
                )
                rows = cur.fetchall()

        return [
            BiomarkerRecord(
                id=row["id"],
                document_id=row["document_id"],
                name=row["name"],
                value=row["value"],
                unit=row["unit"],
                category=row["category"],
                test_date=row["test_date"],
                extraction_method=row["extraction_method"],
                reference_range=row["reference_range"],
                confidence=row["confidence"],
                status=row["status"],
                metadata=row["metadata"],
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def _insert_biomarkers(
        self,
        conn: psycopg.Connection[Any],
        document_id: int,
        biomarkers: Sequence[Biomarker],
    ) -> None:
        for start in range(0, len(biomarkers), self._chunk_size):
            chunk = biomarkers[start : start + self._chunk_size]
            params: list[Any] = []
            for biomarker in chunk:
                if biomarker.test_date is None:
                    raise ValueError(f"Biomarker {biomarker.name} has no test_date")
                params.extend(
                    (
                        document_id,
                        biomarker.name,
                        biomarker.value,
                        biomarker.unit,
                        biomarker.category,
                        biomarker.reference_range,
                        biomarker.test_date,
                        biomarker.extraction_method.value,
                        biomarker.confidence,
                        biomarker.status,
                        Jsonb(biomarker.row_metadata()),
                    )
                )
            values = ", ".join([_ROW_PLACEHOLDER] * len(chunk))
            conn.execute(
                f"INSERT INTO biomarkers ({_BIOMARKER_COLUMNS}) VALUES {values}",
                params,
            )

    @staticmethod
    def _update_document(conn: psycopg.Connection[Any], run: CompletedRun) -> None:
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE lab_documents
                SET normalization = %s,
                    biomarker_snapshot = %s,
                    summary = %s,
                    summarized_at = CASE WHEN %s::text IS NULL THEN NULL ELSE NOW() END,
                    processed_at = NOW(),
                    updated_at = NOW()
                WHERE id = %s
                """,
                (
                    Jsonb(run.normalization),
                    Jsonb(run.biomarker_snapshot),
                    run.summary,
                    run.summary,
                    run.document_id,
                ),
            )
            if cur.rowcount == 0:
                raise DocumentNotFoundError(f"Document {run.document_id} not found")

    @staticmethod
    def _mark_completed(conn: psycopg.Connection[Any], run: CompletedRun) -> None:
        conn.execute(
            """
            UPDATE processing_status
            SET stage = %s,
                biomarker_count = %s,
                retry_count = %s,
                error_message = NULL,
                completed_at = NOW(),
                metadata = metadata || %s,
                updated_at = NOW()
            WHERE document_id = %s
            """,
            (
                Stage.COMPLETED.value,
                len(run.biomarkers),
                run.retry_count,
                Jsonb(
                    {
                        "pattern_matches": run.pattern_count,
                        "model_extractions": run.model_count,
                        "processing_time_ms": run.processing_time_ms,
                        "retry_count": run.retry_count,
                        "text_length": run.text_length,
                    }
                ),
                run.document_id,
            ),
        )
