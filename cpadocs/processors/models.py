from dataclasses import dataclass, field
from typing import Any

from cpadocs.documents.models import Classification


@dataclass
class ProcessorResult:
    """Output of one type-specific processor run."""

    classification: Classification
    payload: dict[str, Any]
    warnings: list[str] = field(default_factory=list)
    transactions_inserted: int = 0
