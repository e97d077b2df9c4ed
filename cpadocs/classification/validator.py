"""Validates raw parsed JSON from the AI provider and builds a DocumentAnalysis."""

from datetime import date
from typing import Any

from cpadocs.classification.exceptions import AnalysisValidationError
from cpadocs.classification.models import UNKNOWN_NOTICE_TYPE, DocumentAnalysis
from cpadocs.documents.models import (
    Classification,
    NoticePriority,
    SecondaryClassification,
)

_REQUIRED_FIELDS = (
    "classification",
    "secondary_classification",
    "notice_type",
    "notice_number",
    "tax_year",
    "amount_owed",
    "deadline_date",
    "priority",
    "summary",
    "recommendations",
)
_MAX_RECOMMENDATIONS = 10
_MIN_TAX_YEAR = 1900
_MAX_TAX_YEAR = 2100


def validate_and_build(data: dict[str, Any]) -> DocumentAnalysis:
    """Validate raw parsed JSON and build a DocumentAnalysis.

    Raises:
        AnalysisValidationError: on any validation failure.
    """
    for name in _REQUIRED_FIELDS:
        if name not in data:
            raise AnalysisValidationError(f"Missing required field: {name}")

    return DocumentAnalysis(
        classification=_build_classification(data["classification"]),
        secondary_classification=_build_secondary(data["secondary_classification"]),
        notice_type=_build_notice_type(data["notice_type"]),
        notice_number=_optional_string(data["notice_number"], "notice_number"),
        tax_year=_build_tax_year(data["tax_year"]),
        amount_owed=_build_amount(data["amount_owed"]),
        deadline_date=_build_deadline(data["deadline_date"]),
        priority=_build_priority(data["priority"]),
        summary=_build_summary(data["summary"]),
        recommendations=_build_recommendations(data["recommendations"]),
        source="ai",
    )


def _build_classification(raw: Any) -> Classification:
    try:
        return Classification(raw)
    except ValueError as exc:
        raise AnalysisValidationError(
            f"'classification' must be one of {[c.value for c in Classification]}, got {raw!r}"
        ) from exc


def _build_secondary(raw: Any) -> SecondaryClassification | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise AnalysisValidationError("'secondary_classification' must be a string or null")
    parsed = SecondaryClassification.parse(raw)
    if parsed is None:
        raise AnalysisValidationError(f"Unknown secondary_classification {raw!r}")
    return parsed


def _build_notice_type(raw: Any) -> str:
    if raw is None:
        return UNKNOWN_NOTICE_TYPE
    if not isinstance(raw, str):
        raise AnalysisValidationError("'notice_type' must be a string")
    return raw.strip() or UNKNOWN_NOTICE_TYPE


def _optional_string(raw: Any, name: str) -> str | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise AnalysisValidationError(f"'{name}' must be a string or null")
    return raw.strip() or None


def _build_tax_year(raw: Any) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise AnalysisValidationError("'tax_year' must be an integer or null")
    if not _MIN_TAX_YEAR <= raw <= _MAX_TAX_YEAR:
        raise AnalysisValidationError(f"'tax_year' out of range: {raw}")
    return raw


def _build_amount(raw: Any) -> float | None:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise AnalysisValidationError("'amount_owed' must be a number or null")
    if raw < 0:
        raise AnalysisValidationError("'amount_owed' must not be negative")
    return float(raw)


def _build_deadline(raw: Any) -> date | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise AnalysisValidationError("'deadline_date' must be a string or null")
    try:
        return date.fromisoformat(raw.strip())
    except ValueError as exc:
        raise AnalysisValidationError(
            f"'deadline_date' must be YYYY-MM-DD, got {raw!r}"
        ) from exc


def _build_priority(raw: Any) -> NoticePriority:
    try:
        return NoticePriority(raw)
    except ValueError as exc:
        raise AnalysisValidationError(
            f"'priority' must be one of {[p.value for p in NoticePriority]}, got {raw!r}"
        ) from exc


def _build_summary(raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise AnalysisValidationError("'summary' must be a non-empty string")
    return raw.strip()


def _build_recommendations(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        raise AnalysisValidationError("'recommendations' must be a list")
    if len(raw) > _MAX_RECOMMENDATIONS:
        raise AnalysisValidationError(
            f"Too many recommendations: {len(raw)} (max {_MAX_RECOMMENDATIONS})"
        )
    items: list[str] = []
    for i, item in enumerate(raw):
        if not isinstance(item, str):
            raise AnalysisValidationError(f"Recommendation at index {i} must be a string")
        if item.strip():
            items.append(item.strip())
    return items
