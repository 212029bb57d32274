from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from biomarker_ingest.database.connection import get_connection
from biomarker_ingest.database.models import ProcessingStatusRecord
from biomarker_ingest.processor.exceptions import DocumentNotFoundError
from biomarker_ingest.progress.models import Stage


class ProcessingStatusRepository:
    """Database operations for the processing_status table."""

    def start(self, document_id: int) -> None:
        """Create or reset the status row for a new pipeline run.

        Raises:
            DocumentNotFoundError: if the document does not exist.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO processing_status
                        (document_id, stage, retry_count, error_message, started_at,
                         completed_at, metadata, updated_at)
                    SELECT id, %s, 0, NULL, NOW(), NULL, '{}'::jsonb, NOW()
                    FROM lab_documents
                    WHERE id = %s
                    ON CONFLICT (document_id) DO UPDATE
                    SET stage = EXCLUDED.stage,
                        retry_count = 0,
                        error_message = NULL,
                        biomarker_count = NULL,
                        started_at = NOW(),
                        completed_at = NULL,
                        metadata = '{}'::jsonb,
                        updated_at = NOW()
                    """,
                    (Stage.PROCESSING.value, document_id),
                )
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"Document {document_id} not found")
            conn.commit()

    def set_stage(
        self,
        document_id: int,
        stage: Stage,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Move to ``stage`` and merge ``metadata`` into the stored metadata."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE processing_status
                SET stage = %s,
                    metadata = metadata || %s,
                    updated_at = NOW()
                WHERE document_id = %s
                """,
                (stage.value, Jsonb(metadata or {}), document_id),
            )
            conn.commit()

    def mark_retrying(
        self,
        document_id: int,
        retry_count: int,
        error_message: str,
        error_details: str,
    ) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE processing_status
                SET stage = %s,
                    retry_count = %s,
                    error_message = %s,
                    metadata = metadata || %s,
                    updated_at = NOW()
                WHERE document_id = %s
                """,
                (
                    Stage.RETRYING.value,
                    retry_count,
                    error_message,
                    Jsonb({"error_details": error_details}),
                    document_id,
                ),
            )
            conn.commit()

    def mark_error(
        self,
        document_id: int,
        retry_count: int,
        error_message: str,
        error_details: str,
        processing_time_ms: int,
    ) -> None:
        """Record the terminal failure of a run."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE processing_status
                SET stage = %s,
                    retry_count = %s,
                    error_message = %s,
                    completed_at = NOW(),
                    metadata = metadata || %s,
                    updated_at = NOW()
                WHERE document_id = %s
                """,
                (
                    Stage.ERROR.value,
                    retry_count,
                    error_message,
                    Jsonb(
                        {
                            "error_details": error_details,
                            "processing_time_ms": processing_time_ms,
                        }
                    ),
                    document_id,
                ),
            )
            conn.commit()

    def find(self, document_id: int) -> ProcessingStatusRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT document_id, stage, retry_count, error_message, biomarker_count,
                           started_at, completed_at, metadata, updated_at
                    FROM processing_status
                    WHERE document_id = %s
                    """,
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return ProcessingStatusRecord(
            document_id=row["document_id"],
            stage=row["stage"],
            retry_count=row["retry_count"],
            error_message=row["error_message"],
            biomarker_count=row["biomarker_count"],
            started_at=row["started_at"],
            completed_at=row["completed_at"],
            metadata=row["metadata"] or {},
            updated_at=row["updated_at"],
        )
