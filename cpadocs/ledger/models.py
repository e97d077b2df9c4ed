from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class UnifiedTransaction:
    """Normalized ledger row derived from a financial document."""

    transaction_id: str
    document_id: str
    client_id: str
    document_source: str
    amount: float
    currency: str = "USD"
    transaction_date: str | None = None
    description: str | None = None
    transaction_type: str | None = None
    debit_credit: str | None = None
    reference_number: str | None = None
    counterparty: str | None = None
    counterparty_address: str | None = None
    invoice_number: str | None = None
    due_date: str | None = None
    payment_status: str | None = None
    payment_method: str | None = None
    line_items: list[dict[str, Any]] = field(default_factory=list)
    raw_data: dict[str, Any] = field(default_factory=dict)


@dataclass
class TransactionSummary:
    total_income: float = 0.0
    total_expenses: float = 0.0
    net_amount: float = 0.0
    transaction_count: int = 0
    by_source: dict[str, float] = field(default_factory=dict)
    by_status: dict[str, int] = field(default_factory=dict)
    by_month: dict[str, float] = field(default_factory=dict)
