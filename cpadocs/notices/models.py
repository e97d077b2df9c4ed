from dataclasses import dataclass
from datetime import date, datetime

from cpadocs.documents.models import NoticePriority, NoticeStatus


@dataclass
class Notice:
    """A row of the irs_notices table, 1:1 with its source document."""

    id: str
    user_id: str
    notice_type: str
    status: NoticeStatus
    priority: NoticePriority
    document_id: str | None = None
    client_id: str | None = None
    notice_number: str | None = None
    tax_year: int | None = None
    amount_owed: float | None = None
    deadline_date: date | None = None
    ai_summary: str | None = None
    ai_recommendations: str | None = None
    resolution_notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class NewNotice:
    user_id: str
    notice_type: str
    document_id: str | None = None
    client_id: str | None = None
    notice_number: str | None = None
    tax_year: int | None = None
    amount_owed: float | None = None
    deadline_date: date | None = None
    priority: NoticePriority = NoticePriority.MEDIUM
    ai_summary: str | None = None
    ai_recommendations: str | None = None


@dataclass(frozen=True)
class NoticeResult:
    notice: Notice | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
