"""Maps financial parser output to unified ledger transactions."""

import re
from datetime import date
from typing import Any

from cpadocs.documents.models import SecondaryClassification
from cpadocs.ledger.models import UnifiedTransaction

# Checked in order; the first matching pattern names the transaction type.
TRANSACTION_TYPE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"POS PURCHASE", re.IGNORECASE), "pos_purchase"),
    (re.compile(r"PREAUTHORIZED CREDIT", re.IGNORECASE), "preauthorized_credit"),
    (re.compile(r"INTEREST CREDIT", re.IGNORECASE), "interest_credit"),
    (re.compile(r"\bATM\b", re.IGNORECASE), "atm_withdrawal"),
    (re.compile(r"DEPOSIT", re.IGNORECASE), "deposit"),
    (re.compile(r"REFUND", re.IGNORECASE), "refund"),
    (re.compile(r"\bCHECK\b", re.IGNORECASE), "check"),
    (re.compile(r"TRANSFER", re.IGNORECASE), "transfer"),
    (re.compile(r"\bFEES?\b|SERVICE CHARGE", re.IGNORECASE), "fee"),
    (re.compile(r"PAYMENT", re.IGNORECASE), "payment"),
)

CREDIT_PATTERN = re.compile(r"PREAUTHORIZED CREDIT|INTEREST CREDIT|DEPOSIT|REFUND", re.IGNORECASE)

DOCUMENT_SOURCES = {
    SecondaryClassification.BANK_STATEMENT: "bank_statement",
    SecondaryClassification.INVOICE: "invoice",
    SecondaryClassification.RECEIPT: "receipt",
}


def transaction_type_for(description: str | None) -> str:
    if description:
        for pattern, transaction_type in TRANSACTION_TYPE_PATTERNS:
            if pattern.search(description):
                return transaction_type
    return "other"


def debit_credit_for(description: str | None) -> str:
    if description and CREDIT_PATTERN.search(description):
        return "credit"
    return "debit"


def map_transactions(
    raw: dict[str, Any],
    *,
    document_id: str,
    client_id: str,
    secondary: SecondaryClassification,
) -> list[UnifiedTransaction]:
    """Convert a financial parser response into ledger rows for one document.

    Only the first provider with extracted data is used so that fallback
    providers never produce duplicate rows.
    """
    extracted = first_extracted_data(raw)
    source = DOCUMENT_SOURCES[secondary]
    transactions: list[UnifiedTransaction] = []
    for doc_index, document in enumerate(extracted):
        if secondary == SecondaryClassification.BANK_STATEMENT:
            rows = _map_bank_statement(document, document_id, client_id, doc_index)
        else:
            row = _map_single(document, document_id, client_id, doc_index, source)
            rows = [row] if row is not None else []
        transactions.extend(rows)
    return transactions


def first_extracted_data(raw: dict[str, Any]) -> list[dict[str, Any]]:
    """Return the extracted documents of the first provider that succeeded."""
    for provider_result in raw.values():
        if not isinstance(provider_result, dict):
            continue
        if provider_result.get("status") == "fail":
            continue
        extracted = provider_result.get("extracted_data")
        if isinstance(extracted, list) and extracted:
            return [item for item in extracted if isinstance(item, dict)]
    return []


def _map_bank_statement(
    document: dict[str, Any],
    document_id: str,
    client_id: str,
    doc_index: int,
) -> list[UnifiedTransaction]:
    currency = _currency(document)
    fallback_date = _iso_date(_section(document, "financial_document_information").get("invoice_date"))
    transactions = []
    for line_index, line in enumerate(document.get("item_lines") or []):
        if not isinstance(line, dict):
            continue
        amount = _to_float(line.get("amount_line"))
        if amount is None:
            continue
        description = line.get("description")
        transactions.append(
            UnifiedTransaction(
                transaction_id=f"{document_id}:bank_statement:{doc_index}:{line_index}",
                document_id=document_id,
                client_id=client_id,
                document_source="bank_statement",
                amount=abs(amount),
                currency=currency,
                transaction_date=_iso_date(line.get("date")) or fallback_date,
                description=description,
                transaction_type=transaction_type_for(description),
                debit_credit=debit_credit_for(description),
                reference_number=line.get("product_code") or None,
                raw_data=line,
            )
        )
    return transactions


def _map_single(
    document: dict[str, Any],
    document_id: str,
    client_id: str,
    doc_index: int,
    source: str,
) -> UnifiedTransaction | None:
    payment = _section(document, "payment_information")
    info = _section(document, "financial_document_information")
    merchant = _section(document, "merchant_information")
    lines = [line for line in document.get("item_lines") or [] if isinstance(line, dict)]

    if source == "invoice":
        amount = _first_number(payment, ("amount_due", "total", "subtotal"))
    else:
        amount = _first_number(payment, ("total", "amount_paid", "subtotal"))
    if amount is None and lines:
        amounts = [_to_float(line.get("amount_line")) for line in lines]
        amount = sum(a for a in amounts if a is not None)
    if amount is None:
        return None

    merchant_name = merchant.get("name") or merchant.get("merchant_name")
    description = info.get("description") or merchant_name or source
    due_amount = _to_float(payment.get("amount_due"))
    if source == "invoice":
        transaction_type = "invoice"
        payment_status = "unpaid" if due_amount else "paid"
    else:
        transaction_type = "purchase"
        payment_status = "paid"

    return UnifiedTransaction(
        transaction_id=f"{document_id}:{source}:{doc_index}",
        document_id=document_id,
        client_id=client_id,
        document_source=source,
        amount=abs(amount),
        currency=_currency(document),
        transaction_date=_iso_date(info.get("invoice_date") or info.get("date")),
        description=description,
        transaction_type=transaction_type,
        debit_credit=debit_credit_for(description),
        reference_number=info.get("purchase_order") or None,
        counterparty=merchant_name,
        counterparty_address=merchant.get("address") or merchant.get("merchant_address"),
        invoice_number=info.get("invoice_receipt_id") or None,
        due_date=_iso_date(info.get("invoice_due_date")),
        payment_status=payment_status,
        payment_method=payment.get("payment_method") or None,
        line_items=lines,
        raw_data=document,
    )


def _section(document: dict[str, Any], name: str) -> dict[str, Any]:
    value = document.get(name)
    return value if isinstance(value, dict) else {}


def _currency(document: dict[str, Any]) -> str:
    currency = _section(document, "local").get("currency")
    return currency if isinstance(currency, str) and currency else "USD"


def _first_number(section: dict[str, Any], names: tuple[str, ...]) -> float | None:
    for name in names:
        value = _to_float(section.get(name))
        if value is not None:
            return value
    return None


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = value.replace("$", "").replace(",", "").strip()
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def _iso_date(value: Any) -> str | None:
    if not isinstance(value, str) or len(value) < 10:
        return None
    try:
        return date.fromisoformat(value[:10]).isoformat()
    except ValueError:
        return None
