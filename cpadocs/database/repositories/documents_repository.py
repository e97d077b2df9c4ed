from collections.abc import Collection
from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from cpadocs.database.connection import get_connection
from cpadocs.documents.exceptions import DocumentNotFoundError
from cpadocs.documents.models import (
    Classification,
    Document,
    DocumentCategory,
    DocumentFilter,
    NewDocument,
    ProcessingStep,
)

DOCUMENT_COLUMNS = """
    id, user_id, client_id, filename, original_filename, file_size, mime_type,
    document_type, storage_bucket, storage_path, tags, ocr_text, ai_summary,
    classification, secondary_classification, is_processed, processing_status,
    pipeline_step, pipeline_error, financial_payload, identity_payload,
    tax_payload, created_at, updated_at
"""

PROCESSING_FAILED_SUMMARY = "AI processing failed, please review manually"


def row_to_document(row: dict[str, Any]) -> Document:
    """Build a Document from a dict_row of the documents table."""
    classification = row.get("classification")
    pipeline_step = row.get("pipeline_step")
    return Document(
        id=str(row["id"]),
        user_id=row["user_id"],
        client_id=row.get("client_id"),
        filename=row["filename"],
        original_filename=row["original_filename"],
        file_size=row["file_size"],
        mime_type=row["mime_type"],
        document_type=DocumentCategory(row["document_type"]),
        storage_bucket=row["storage_bucket"],
        storage_path=row["storage_path"],
        tags=list(row.get("tags") or []),
        ocr_text=row.get("ocr_text"),
        ai_summary=row.get("ai_summary"),
        classification=Classification(classification) if classification else None,
        secondary_classification=row.get("secondary_classification"),
        is_processed=bool(row.get("is_processed")),
        processing_status=row.get("processing_status"),
        pipeline_step=ProcessingStep(pipeline_step) if pipeline_step else None,
        pipeline_error=row.get("pipeline_error"),
        financial_payload=row.get("financial_payload"),
        identity_payload=row.get("identity_payload"),
        tax_payload=row.get("tax_payload"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class DocumentsRepository:
    """Database operations for the documents table."""

    def create(self, new: NewDocument) -> Document:
        """Insert a document row with is_processed=false and return it."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO documents
                        (user_id, client_id, filename, original_filename, file_size,
                         mime_type, document_type, storage_bucket, storage_path, tags,
                         is_processed, pipeline_step)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, false, 'idle')
                    RETURNING {DOCUMENT_COLUMNS}
                    """,
                    (
                        new.user_id,
                        new.client_id,
                        new.filename,
                        new.original_filename,
                        new.file_size,
                        new.mime_type,
                        new.document_type.value,
                        new.storage_bucket,
                        new.storage_path,
                        list(new.tags),
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError(f"Insert returned no row for {new.filename}")
        return row_to_document(row)

    def find_by_id(self, document_id: str) -> Document:
        """Find a document by ID regardless of owner.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {DOCUMENT_COLUMNS} FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return row_to_document(row)

    def find_for_user(self, document_id: str, user_id: str) -> Document:
        """Find a document owned by user_id.

        Raises:
            DocumentNotFoundError: if the document is missing or owned by someone else.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {DOCUMENT_COLUMNS}
                    FROM documents
                    WHERE id = %s AND user_id = %s
                    """,
                    (document_id, user_id),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return row_to_document(row)

    def list_for_user(
        self,
        user_id: str,
        filters: DocumentFilter | None = None,
    ) -> list[Document]:
        """List a user's documents, newest first, narrowed by optional filters."""
        filters = filters or DocumentFilter()
        clauses = ["user_id = %s"]
        params: list[Any] = [user_id]

        if filters.client_id is not None:
            clauses.append("client_id = %s")
            params.append(filters.client_id)
        if filters.document_type is not None:
            clauses.append("document_type = %s")
            params.append(filters.document_type.value)
        if filters.is_processed is not None:
            clauses.append("is_processed = %s")
            params.append(filters.is_processed)
        if filters.tags:
            clauses.append("tags && %s")
            params.append(list(filters.tags))
        if filters.created_from is not None:
            clauses.append("created_at >= %s")
            params.append(filters.created_from)
        if filters.created_to is not None:
            clauses.append("created_at <= %s")
            params.append(filters.created_to)
        if filters.search_query:
            clauses.append(
                "to_tsvector('english', original_filename || ' ' || coalesce(ocr_text, '')) "
                "@@ plainto_tsquery('english', %s)"
            )
            params.append(filters.search_query)

        where = " AND ".join(clauses)
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {DOCUMENT_COLUMNS}
                    FROM documents
                    WHERE {where}
                    ORDER BY created_at DESC
                    """,
                    tuple(params),
                )
                rows = cur.fetchall()
        return [row_to_document(row) for row in rows]

    def update_ocr_text(self, document_id: str, ocr_text: str) -> None:
        """Persist extracted text.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        self._execute_update(
            """
            UPDATE documents
            SET ocr_text = %s, processing_status = 'ocr_complete', updated_at = NOW()
            WHERE id = %s
            """,
            (ocr_text, document_id),
            document_id,
        )

    def update_analysis(
        self,
        document_id: str,
        *,
        ocr_text: str,
        ai_summary: str,
        classification: Classification,
        secondary_classification: str | None,
    ) -> None:
        """Persist the classification stage output and mark the document processed."""
        self._execute_update(
            """
            UPDATE documents
            SET ocr_text = %s,
                ai_summary = %s,
                classification = %s,
                secondary_classification = %s,
                is_processed = true,
                processing_status = 'classified',
                updated_at = NOW()
            WHERE id = %s
            """,
            (
                ocr_text,
                ai_summary,
                classification.value,
                secondary_classification,
                document_id,
            ),
            document_id,
        )

    def update_classification(self, document_id: str, classification: Classification) -> None:
        """Overwrite the stored classification with an operator-chosen label."""
        self._execute_update(
            """
            UPDATE documents
            SET classification = %s, updated_at = NOW()
            WHERE id = %s
            """,
            (classification.value, document_id),
            document_id,
        )

    def transition_pipeline_step(
        self,
        document_id: str,
        to_step: ProcessingStep,
        from_steps: Collection[ProcessingStep] | None = None,
        error: str | None = None,
    ) -> bool:
        """Move the persisted pipeline step, optionally only from given steps.

        A NULL current step is treated as 'idle'. Returns False when the
        document exists but its current step is not in from_steps.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        if from_steps is None:
            self._execute_update(
                """
                UPDATE documents
                SET pipeline_step = %s, pipeline_error = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (to_step.value, error, document_id),
                document_id,
            )
            return True

        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET pipeline_step = %s, pipeline_error = %s, updated_at = NOW()
                    WHERE id = %s AND coalesce(pipeline_step, 'idle') = ANY(%s)
                    """,
                    (to_step.value, error, document_id, [s.value for s in from_steps]),
                )
                updated = cur.rowcount
            conn.commit()
        if updated:
            return True
        self.find_by_id(document_id)
        return False

    def save_payload(
        self,
        document_id: str,
        classification: Classification,
        payload: dict[str, Any],
    ) -> None:
        """Store the processor result and clear the payloads of other branches."""
        columns = {
            Classification.FINANCIAL: None,
            Classification.IDENTITY: None,
            Classification.TAX: None,
        }
        if classification not in columns:
            raise ValueError(f"No payload column for classification {classification}")
        columns[classification] = Jsonb(payload)
        self._execute_update(
            """
            UPDATE documents
            SET financial_payload = %s,
                identity_payload = %s,
                tax_payload = %s,
                is_processed = true,
                processing_status = 'completed',
                updated_at = NOW()
            WHERE id = %s
            """,
            (
                columns[Classification.FINANCIAL],
                columns[Classification.IDENTITY],
                columns[Classification.TAX],
                document_id,
            ),
            document_id,
        )

    def get_tax_payload(self, document_id: str) -> dict[str, Any] | None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT tax_payload FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()
        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return row[0]

    def get_ledger_context(self, document_id: str) -> tuple[str | None, str | None]:
        """Return (client_id, secondary_classification) for ledger derivation."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT client_id, secondary_classification
                    FROM documents
                    WHERE id = %s
                    """,
                    (document_id,),
                )
                row = cur.fetchone()
        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return row[0], row[1]

    def mark_processing_failed(self, document_id: str, error: str) -> None:
        """Leave a degraded but visible document after background processing gave up."""
        self._execute_update(
            """
            UPDATE documents
            SET ai_summary = %s,
                is_processed = true,
                processing_status = 'failed',
                pipeline_step = 'error',
                pipeline_error = %s,
                updated_at = NOW()
            WHERE id = %s
            """,
            (PROCESSING_FAILED_SUMMARY, error, document_id),
            document_id,
        )

    def delete(self, document_id: str, user_id: str) -> None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM documents WHERE id = %s AND user_id = %s",
                    (document_id, user_id),
                )
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"Document {document_id} not found")
            conn.commit()

    @staticmethod
    def _execute_update(sql: str, params: tuple[Any, ...], document_id: str) -> None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"Document {document_id} not found")
            conn.commit()
