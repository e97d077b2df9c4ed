from collections.abc import Iterable

from cpadocs.ledger.models import TransactionSummary, UnifiedTransaction


def summarize_transactions(transactions: Iterable[UnifiedTransaction]) -> TransactionSummary:
    """Aggregate income, expenses and per-source/status/month totals."""
    summary = TransactionSummary()
    for transaction in transactions:
        amount = transaction.amount or 0.0
        summary.transaction_count += 1

        if transaction.debit_credit == "credit":
            summary.total_income += amount
        elif transaction.debit_credit == "debit":
            summary.total_expenses += amount

        source = transaction.document_source
        summary.by_source[source] = summary.by_source.get(source, 0.0) + amount

        status = transaction.payment_status or "unknown"
        summary.by_status[status] = summary.by_status.get(status, 0) + 1

        if transaction.transaction_date:
            month = transaction.transaction_date[:7]
            summary.by_month[month] = summary.by_month.get(month, 0.0) + amount

    summary.net_amount = summary.total_income - summary.total_expenses
    return summary
