from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from cpadocs.classification.models import DocumentAnalysis
from cpadocs.documents.models import Classification


class OutcomeStatus(StrEnum):
    SUCCESS = "success"
    SUCCESS_WITH_WARNINGS = "success_with_warnings"
    FAILURE = "failure"


class OutcomeErrorCode(StrEnum):
    """Machine-readable failure reason, mapped by callers to HTTP-like codes."""

    NOT_FOUND = "not_found"
    APPROVAL_REQUIRED = "approval_required"
    INVALID_TRANSITION = "invalid_transition"
    UNSUPPORTED_CLASSIFICATION = "unsupported_classification"
    PROVIDER_ERROR = "provider_error"
    PROCESSING_ERROR = "processing_error"


@dataclass(frozen=True)
class ClassificationOutcome:
    document_id: str
    analysis: DocumentAnalysis
    notice_id: str | None = None
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProcessingOutcome:
    """Tagged result of approving a classification and running its processor."""

    document_id: str
    classification: Classification | None
    status: OutcomeStatus
    data: dict[str, Any] | None = None
    warnings: list[str] = field(default_factory=list)
    error: str | None = None
    error_code: OutcomeErrorCode | None = None
    provider_status_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.status != OutcomeStatus.FAILURE

    @classmethod
    def failure(
        cls,
        document_id: str,
        classification: Classification | None,
        error: str,
        error_code: OutcomeErrorCode,
        provider_status_code: int | None = None,
    ) -> "ProcessingOutcome":
        return cls(
            document_id=document_id,
            classification=classification,
            status=OutcomeStatus.FAILURE,
            error=error,
            error_code=error_code,
            provider_status_code=provider_status_code,
        )
