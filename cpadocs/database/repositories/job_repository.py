from typing import Any

import psycopg
from psycopg.rows import dict_row

from cpadocs.database.connection import get_connection
from cpadocs.database.models import JobRecord, JobStatus

_JOB_COLUMNS = """
    id, document_id, user_id, status, attempts,
    error_message, locked_at, created_at, updated_at
"""


class JobRepository:
    """Queue of classification runs backed by processing_jobs.

    Workers claim rows with SKIP LOCKED, so several workers can poll the
    same table without handing one document to two of them.
    """

    def __init__(self, max_attempts: int) -> None:
        self._max_attempts = max_attempts

    def enqueue(self, document_id: str, user_id: str) -> int:
        with get_connection() as conn:
            row = conn.execute(
                """
                INSERT INTO processing_jobs (document_id, user_id, status, attempts)
                VALUES (%s, %s, %s, 0)
                RETURNING id
                """,
                (document_id, user_id, JobStatus.PENDING),
            ).fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError(f"Failed to enqueue job for document {document_id}")
        return int(row[0])

    def claim_next_job(self, conn: psycopg.Connection[Any]) -> JobRecord | None:
        """Move the oldest claimable pending job to processing and return it."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                UPDATE processing_jobs
                SET status = %s, locked_at = NOW(), updated_at = NOW()
                WHERE id = (
                    SELECT id FROM processing_jobs
                    WHERE status = %s AND attempts < %s
                    ORDER BY created_at
                    LIMIT 1
                    FOR UPDATE SKIP LOCKED
                )
                RETURNING {_JOB_COLUMNS}
                """,
                (JobStatus.PROCESSING, JobStatus.PENDING, self._max_attempts),
            )
            row = cur.fetchone()
        conn.commit()
        return JobRecord.from_row(row) if row is not None else None

    def mark_done(self, job_id: int) -> None:
        self._set_status(job_id, JobStatus.DONE)

    def mark_failed(self, job_id: int, error: str) -> None:
        """Give up on a job; it is never claimed again."""
        self._set_status(job_id, JobStatus.FAILED, error)

    def increment_attempts(self, job_id: int) -> None:
        """Count a failed attempt and put the job back in the queue."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE processing_jobs
                SET attempts = attempts + 1, status = %s,
                    locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (JobStatus.PENDING, job_id),
            )
            conn.commit()

    def find_by_id(self, job_id: int) -> JobRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_JOB_COLUMNS} FROM processing_jobs WHERE id = %s",
                    (job_id,),
                )
                row = cur.fetchone()
        return JobRecord.from_row(row) if row is not None else None

    def _set_status(self, job_id: int, status: JobStatus, error: str | None = None) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE processing_jobs
                SET status = %s, error_message = COALESCE(%s, error_message),
                    updated_at = NOW()
                WHERE id = %s
                """,
                (status, error, job_id),
            )
            conn.commit()
