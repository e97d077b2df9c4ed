from typing import Any

from psycopg.errors import UniqueViolation
from psycopg.rows import dict_row

from cpadocs.database.connection import get_connection
from cpadocs.documents.models import NoticePriority, NoticeStatus
from cpadocs.notices.exceptions import DuplicateNoticeError, NoticeNotFoundError
from cpadocs.notices.models import NewNotice, Notice

NOTICE_COLUMNS = """
    id, user_id, client_id, document_id, notice_type, notice_number, tax_year,
    amount_owed, deadline_date, status, priority, ai_summary, ai_recommendations,
    resolution_notes, created_at, updated_at
"""

UPDATABLE_FIELDS = frozenset({
    "notice_type",
    "notice_number",
    "tax_year",
    "amount_owed",
    "deadline_date",
    "status",
    "priority",
    "ai_summary",
    "ai_recommendations",
    "resolution_notes",
    "client_id",
})


def row_to_notice(row: dict[str, Any]) -> Notice:
    amount = row.get("amount_owed")
    document_id = row.get("document_id")
    return Notice(
        id=str(row["id"]),
        user_id=row["user_id"],
        client_id=row.get("client_id"),
        document_id=str(document_id) if document_id is not None else None,
        notice_type=row["notice_type"],
        notice_number=row.get("notice_number"),
        tax_year=row.get("tax_year"),
        amount_owed=float(amount) if amount is not None else None,
        deadline_date=row.get("deadline_date"),
        status=NoticeStatus(row["status"]),
        priority=NoticePriority(row["priority"]),
        ai_summary=row.get("ai_summary"),
        ai_recommendations=row.get("ai_recommendations"),
        resolution_notes=row.get("resolution_notes"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class NoticesRepository:
    """Database operations for the irs_notices table."""

    def find_by_document_id(self, document_id: str) -> Notice | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {NOTICE_COLUMNS} FROM irs_notices WHERE document_id = %s",
                    (document_id,),
                )
                row = cur.fetchone()
        return row_to_notice(row) if row is not None else None

    def find_for_user(self, notice_id: str, user_id: str) -> Notice:
        """Raises NoticeNotFoundError if missing or owned by someone else."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {NOTICE_COLUMNS}
                    FROM irs_notices
                    WHERE id = %s AND user_id = %s
                    """,
                    (notice_id, user_id),
                )
                row = cur.fetchone()
        if row is None:
            raise NoticeNotFoundError(f"Notice {notice_id} not found")
        return row_to_notice(row)

    def list_for_user(self, user_id: str, client_id: str | None = None) -> list[Notice]:
        sql = f"SELECT {NOTICE_COLUMNS} FROM irs_notices WHERE user_id = %s"
        params: tuple[Any, ...] = (user_id,)
        if client_id is not None:
            sql += " AND client_id = %s"
            params = (user_id, client_id)
        sql += " ORDER BY created_at DESC"
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()
        return [row_to_notice(row) for row in rows]

    def create(self, new: NewNotice) -> Notice:
        """Insert a pending notice.

        Raises:
            DuplicateNoticeError: if a notice already references new.document_id.
        """
        if new.document_id is not None and self.find_by_document_id(new.document_id):
            raise DuplicateNoticeError(
                f"IRS notice already exists for document {new.document_id}"
            )
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO irs_notices
                            (user_id, client_id, document_id, notice_type, notice_number,
                             tax_year, amount_owed, deadline_date, status, priority,
                             ai_summary, ai_recommendations)
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, 'pending', %s, %s, %s)
                        RETURNING {NOTICE_COLUMNS}
                        """,
                        (
                            new.user_id,
                            new.client_id,
                            new.document_id,
                            new.notice_type,
                            new.notice_number,
                            new.tax_year,
                            new.amount_owed,
                            new.deadline_date,
                            new.priority.value,
                            new.ai_summary,
                            new.ai_recommendations,
                        ),
                    )
                    row = cur.fetchone()
                conn.commit()
        except UniqueViolation as exc:
            raise DuplicateNoticeError(
                f"IRS notice already exists for document {new.document_id}"
            ) from exc
        if row is None:
            raise RuntimeError("Notice insert returned no row")
        return row_to_notice(row)

    def update(self, notice_id: str, fields: dict[str, Any]) -> Notice:
        """Update whitelisted columns of a notice and return the new row."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update notice fields: {sorted(unknown)}")
        if not fields:
            raise ValueError("No notice fields to update")

        names = sorted(fields)
        assignments = ", ".join(f"{name} = %s" for name in names)
        params = [_db_value(fields[name]) for name in names]
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE irs_notices
                    SET {assignments}, updated_at = NOW()
                    WHERE id = %s
                    RETURNING {NOTICE_COLUMNS}
                    """,
                    (*params, notice_id),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise NoticeNotFoundError(f"Notice {notice_id} not found")
        return row_to_notice(row)

    def delete_with_document(self, notice_id: str, user_id: str) -> tuple[str, str] | None:
        """Delete a notice and its document in one transaction.

        Returns the (bucket, path) of the deleted document's blob, or None when the
        notice had no document. The caller removes the blob after the commit.

        Raises:
            NoticeNotFoundError: if the notice is missing or owned by someone else.
        """
        with get_connection() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        DELETE FROM irs_notices
                        WHERE id = %s AND user_id = %s
                        RETURNING document_id
                        """,
                        (notice_id, user_id),
                    )
                    row = cur.fetchone()
                    if row is None:
                        raise NoticeNotFoundError(f"Notice {notice_id} not found")
                    document_id = row[0]
                    if document_id is None:
                        return None
                    cur.execute(
                        """
                        DELETE FROM documents
                        WHERE id = %s AND user_id = %s
                        RETURNING storage_bucket, storage_path
                        """,
                        (document_id, user_id),
                    )
                    doc_row = cur.fetchone()
        if doc_row is None:
            return None
        return doc_row[0], doc_row[1]


def _db_value(value: Any) -> Any:
    if isinstance(value, (NoticeStatus, NoticePriority)):
        return value.value
    return value
