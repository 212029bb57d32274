from typing import Any

from psycopg.rows import dict_row

from biomarker_ingest.database.connection import get_connection
from biomarker_ingest.database.models import DocumentRecord
from biomarker_ingest.processor.exceptions import DocumentNotFoundError
from biomarker_ingest.progress.models import Stage

_COLUMNS = """
    id, owner_id, file_name, content_type, storage_path, file_size_bytes,
    normalization, biomarker_snapshot, summary, summarized_at, processed_at,
    created_at, updated_at
"""


def _to_record(row: dict[str, Any]) -> DocumentRecord:
    return DocumentRecord(
        id=row["id"],
        owner_id=row["owner_id"],
        file_name=row["file_name"],
        content_type=row["content_type"],
        storage_path=row["storage_path"],
        file_size_bytes=row["file_size_bytes"],
        normalization=row["normalization"],
        biomarker_snapshot=row["biomarker_snapshot"],
        summary=row["summary"],
        summarized_at=row["summarized_at"],
        processed_at=row["processed_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class DocumentRepository:
    """Database operations for the lab_documents table."""

    def create(
        self,
        *,
        owner_id: int,
        file_name: str,
        content_type: str,
        storage_path: str,
        file_size_bytes: int,
    ) -> DocumentRecord:
        """Insert a new document row and return it."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO lab_documents
                        (owner_id, file_name, content_type, storage_path, file_size_bytes)
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (owner_id, file_name, content_type, storage_path, file_size_bytes),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError("INSERT into lab_documents returned no row")
        return _to_record(row)

    def find_by_id(self, document_id: int) -> DocumentRecord:
        """Find a document by ID.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM lab_documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _to_record(row)

    def find_needing_processing(self, limit: int, stale_after_seconds: float) -> list[int]:
        """IDs of documents whose processing never started or never finished.

        Only documents untouched for ``stale_after_seconds`` are returned, so
        fresh uploads and runs still in progress are left alone. Terminal
        stages (``completed``, ``error``) are never returned.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT d.id
                    FROM lab_documents d
                    LEFT JOIN processing_status s ON s.document_id = d.id
                    WHERE (s.document_id IS NULL OR s.stage NOT IN (%s, %s))
                      AND COALESCE(s.updated_at, d.created_at)
                          < NOW() - make_interval(secs => %s)
                    ORDER BY d.created_at
                    LIMIT %s
                    """,
                    (Stage.COMPLETED.value, Stage.ERROR.value, stale_after_seconds, limit),
                )
                rows = cur.fetchall()
        return [row[0] for row in rows]
