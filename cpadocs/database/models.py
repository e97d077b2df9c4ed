from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class JobStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class JobRecord:
    """A queued classification run for one uploaded document."""

    id: int
    document_id: str
    user_id: str
    status: str
    attempts: int
    error_message: str | None = None
    locked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict) -> "JobRecord":
        return cls(
            id=row["id"],
            document_id=str(row["document_id"]),
            user_id=row["user_id"],
            status=row["status"],
            attempts=row["attempts"],
            error_message=row.get("error_message"),
            locked_at=row.get("locked_at"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )
