from cpadocs.ledger.models import UnifiedTransaction
from cpadocs.ledger.summary import summarize_transactions


def _tx(amount: float, debit_credit: str, **overrides: object) -> UnifiedTransaction:
    values: dict[str, object] = {
        "transaction_id": f"t-{amount}-{debit_credit}",
        "document_id": "doc-1",
        "client_id": "client-1",
        "document_source": "bank_statement",
        "amount": amount,
        "debit_credit": debit_credit,
        "transaction_date": "2024-03-01",
    }
    values.update(overrides)
    return UnifiedTransaction(**values)  # type: ignore[arg-type]


class TestSummarizeTransactions:
    def test_empty(self) -> None:
        summary = summarize_transactions([])
        assert summary.transaction_count == 0
        assert summary.net_amount == 0.0

    def test_income_expenses_and_net(self) -> None:
        summary = summarize_transactions([_tx(1000, "credit"), _tx(250, "debit"), _tx(50, "debit")])
        assert summary.total_income == 1000
        assert summary.total_expenses == 300
        assert summary.net_amount == 700
        assert summary.transaction_count == 3

    def test_groups_by_source_status_and_month(self) -> None:
        summary = summarize_transactions(
            [
                _tx(10, "debit", document_source="receipt", payment_status="paid"),
                _tx(20, "debit", transaction_date="2024-04-02"),
                _tx(5, "credit", transaction_date=None),
            ]
        )
        assert summary.by_source == {"receipt": 10, "bank_statement": 25}
        assert summary.by_status == {"paid": 1, "unknown": 2}
        assert summary.by_month == {"2024-03": 10, "2024-04": 20}
