from dataclasses import dataclass, field
from datetime import date

from cpadocs.documents.models import (
    Classification,
    NoticePriority,
    SecondaryClassification,
)

UNKNOWN_NOTICE_TYPE = "Unknown"


@dataclass(frozen=True)
class DocumentAnalysis:
    """Structured result of the classification stage.

    Every field is always present. Optional facts are None, never missing.
    """

    classification: Classification
    secondary_classification: SecondaryClassification | None
    notice_type: str
    notice_number: str | None
    tax_year: int | None
    amount_owed: float | None
    deadline_date: date | None
    priority: NoticePriority
    summary: str
    recommendations: list[str] = field(default_factory=list)
    source: str = "ai"

