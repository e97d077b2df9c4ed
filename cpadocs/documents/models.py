from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class DocumentCategory(StrEnum):
    """Document type assigned at upload time."""

    WAGE_STATEMENT = "w2"
    MISC_INCOME = "1099"
    RECEIPT = "receipt"
    BANK_STATEMENT = "bank_statement"
    TAX_NOTICE = "irs_notice"
    VENDOR_TAX_FORM = "w9"
    INVOICE = "invoice"
    OTHER = "other"


class Classification(StrEnum):
    """Top-level AI classification that selects the specific processor."""

    FINANCIAL = "Financial"
    IDENTITY = "Identity"
    TAX = "Tax"
    UNKNOWN = "Unknown"


class SecondaryClassification(StrEnum):
    """Finer-grained financial label used for ledger derivation."""

    BANK_STATEMENT = "bank statement"
    INVOICE = "invoice"
    RECEIPT = "receipt"

    @classmethod
    def parse(cls, value: str | None) -> "SecondaryClassification | None":
        """Match a free-form label such as 'Bank_Statement' or 'RECEIPT'."""
        if not value:
            return None
        normalized = value.strip().lower().replace("_", " ").replace("-", " ")
        for member in cls:
            if member.value == normalized:
                return member
        return None


class ProcessingStep(StrEnum):
    IDLE = "idle"
    OCR = "ocr"
    CLASSIFICATION = "classification"
    SPECIFIC_PROCESSING = "specific_processing"
    COMPLETED = "completed"
    ERROR = "error"


class NoticeStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    APPEALED = "appealed"


class NoticePriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class Document:
    """A row of the documents table."""

    id: str
    user_id: str
    filename: str
    original_filename: str
    file_size: int
    mime_type: str
    document_type: DocumentCategory
    storage_bucket: str
    storage_path: str
    client_id: str | None = None
    tags: list[str] = field(default_factory=list)
    ocr_text: str | None = None
    ai_summary: str | None = None
    classification: Classification | None = None
    secondary_classification: str | None = None
    is_processed: bool = False
    processing_status: str | None = None
    pipeline_step: ProcessingStep | None = None
    pipeline_error: str | None = None
    financial_payload: dict[str, Any] | None = None
    identity_payload: dict[str, Any] | None = None
    tax_payload: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def payload_for(self, classification: Classification) -> dict[str, Any] | None:
        """Return the structured result stored for the given classification."""
        if classification == Classification.FINANCIAL:
            return self.financial_payload
        if classification == Classification.IDENTITY:
            return self.identity_payload
        if classification == Classification.TAX:
            return self.tax_payload
        return None

    @property
    def has_payload(self) -> bool:
        return any(
            p is not None
            for p in (self.financial_payload, self.identity_payload, self.tax_payload)
        )


@dataclass(frozen=True)
class NewDocument:
    """Values needed to insert a document row after a successful upload."""

    user_id: str
    filename: str
    original_filename: str
    file_size: int
    mime_type: str
    document_type: DocumentCategory
    storage_bucket: str
    storage_path: str
    client_id: str | None = None
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DocumentFilter:
    client_id: str | None = None
    document_type: DocumentCategory | None = None
    is_processed: bool | None = None
    tags: list[str] = field(default_factory=list)
    created_from: datetime | None = None
    created_to: datetime | None = None
    search_query: str | None = None


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Value-or-error pair returned across the service boundary."""

    data: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
