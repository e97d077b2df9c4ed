from typing import Any

import pytest

from cpadocs.documents.models import SecondaryClassification
from cpadocs.ledger.mapper import (
    debit_credit_for,
    first_extracted_data,
    map_transactions,
    transaction_type_for,
)
from cpadocs.ledger.models import UnifiedTransaction


def _envelope(*documents: dict[str, Any], provider: str = "microsoft") -> dict[str, Any]:
    return {provider: {"status": "success", "extracted_data": list(documents)}}


def _map(raw: dict[str, Any], secondary: SecondaryClassification) -> list[UnifiedTransaction]:
    return map_transactions(raw, document_id="doc-1", client_id="client-1", secondary=secondary)


class TestTransactionTypes:
    @pytest.mark.parametrize(
        ("description", "expected"),
        [
            ("POS PURCHASE STORE #123", "pos_purchase"),
            ("PREAUTHORIZED CREDIT PAYROLL", "preauthorized_credit"),
            ("INTEREST CREDIT", "interest_credit"),
            ("ATM WITHDRAWAL 5TH AVE", "atm_withdrawal"),
            ("MOBILE DEPOSIT", "deposit"),
            ("AMAZON REFUND", "refund"),
            ("CHECK 1042", "check"),
            ("ONLINE TRANSFER TO SAVINGS", "transfer"),
            ("TRANSFER TO CHECKING", "transfer"),
            ("CHECKING ACCOUNT MAINTENANCE FEE", "fee"),
            ("MONTHLY SERVICE CHARGE", "fee"),
            ("OVERDRAFT FEE", "fee"),
            ("CREDIT CARD PAYMENT", "payment"),
            ("DENTAL TREATMENT", "other"),
            ("COFFEE SHOP", "other"),
            (None, "other"),
        ],
    )
    def test_transaction_type(self, description: str | None, expected: str) -> None:
        assert transaction_type_for(description) == expected

    @pytest.mark.parametrize(
        ("description", "expected"),
        [
            ("PREAUTHORIZED CREDIT PAYROLL", "credit"),
            ("INTEREST CREDIT", "credit"),
            ("BRANCH DEPOSIT", "credit"),
            ("Refund from store", "credit"),
            ("POS PURCHASE STORE", "debit"),
            ("ACH CREDIT", "debit"),
            (None, "debit"),
        ],
    )
    def test_debit_credit(self, description: str | None, expected: str) -> None:
        assert debit_credit_for(description) == expected


class TestBankStatement:
    def test_single_pos_purchase(self) -> None:
        raw = _envelope(
            {
                "item_lines": [
                    {
                        "description": "POS PURCHASE STORE #123",
                        "amount_line": -42.50,
                        "date": "2024-03-01",
                    }
                ]
            }
        )
        rows = _map(raw, SecondaryClassification.BANK_STATEMENT)
        assert len(rows) == 1
        row = rows[0]
        assert row.transaction_type == "pos_purchase"
        assert row.debit_credit == "debit"
        assert row.amount == 42.50
        assert row.transaction_date == "2024-03-01"
        assert row.document_source == "bank_statement"
        assert row.client_id == "client-1"

    def test_skips_lines_without_amount(self) -> None:
        raw = _envelope(
            {
                "item_lines": [
                    {"description": "BALANCE FORWARD"},
                    {"description": "DEPOSIT", "amount_line": "1,200.00"},
                ]
            }
        )
        rows = _map(raw, SecondaryClassification.BANK_STATEMENT)
        assert [r.amount for r in rows] == [1200.0]
        assert rows[0].debit_credit == "credit"

    def test_transaction_ids_are_stable(self) -> None:
        raw = _envelope({"item_lines": [{"amount_line": 1}, {"amount_line": 2}]})
        first = [r.transaction_id for r in _map(raw, SecondaryClassification.BANK_STATEMENT)]
        second = [r.transaction_id for r in _map(raw, SecondaryClassification.BANK_STATEMENT)]
        assert first == second == ["doc-1:bank_statement:0:0", "doc-1:bank_statement:0:1"]

    def test_uses_statement_currency(self) -> None:
        raw = _envelope({"local": {"currency": "CAD"}, "item_lines": [{"amount_line": 5}]})
        assert _map(raw, SecondaryClassification.BANK_STATEMENT)[0].currency == "CAD"


class TestInvoiceAndReceipt:
    def test_invoice_uses_amount_due(self) -> None:
        raw = _envelope(
            {
                "payment_information": {"amount_due": "$250.00", "total": 300},
                "financial_document_information": {
                    "invoice_receipt_id": "INV-1001",
                    "invoice_date": "2024-02-10T00:00:00",
                    "invoice_due_date": "2024-03-10",
                },
                "merchant_information": {"name": "Acme Corp", "address": "1 Main St"},
            }
        )
        row = _map(raw, SecondaryClassification.INVOICE)[0]
        assert row.amount == 250.0
        assert row.transaction_type == "invoice"
        assert row.payment_status == "unpaid"
        assert row.invoice_number == "INV-1001"
        assert row.transaction_date == "2024-02-10"
        assert row.due_date == "2024-03-10"
        assert row.counterparty == "Acme Corp"
        assert row.transaction_id == "doc-1:invoice:0"

    def test_receipt_uses_total(self) -> None:
        raw = _envelope({"payment_information": {"total": 18.75, "amount_paid": 20}})
        row = _map(raw, SecondaryClassification.RECEIPT)[0]
        assert row.amount == 18.75
        assert row.transaction_type == "purchase"
        assert row.payment_status == "paid"
        assert row.debit_credit == "debit"

    def test_falls_back_to_line_sum(self) -> None:
        raw = _envelope({"item_lines": [{"amount_line": 2.5}, {"amount_line": 7.5}]})
        row = _map(raw, SecondaryClassification.RECEIPT)[0]
        assert row.amount == 10.0
        assert len(row.line_items) == 2

    def test_no_amount_produces_no_row(self) -> None:
        raw = _envelope({"merchant_information": {"name": "Shop"}})
        assert _map(raw, SecondaryClassification.RECEIPT) == []


class TestFirstExtractedData:
    def test_skips_failed_provider(self) -> None:
        raw = {
            "microsoft": {"status": "fail", "extracted_data": [{"a": 1}]},
            "amazon": {"status": "success", "extracted_data": [{"b": 2}]},
        }
        assert first_extracted_data(raw) == [{"b": 2}]

    def test_only_first_successful_provider_is_used(self) -> None:
        raw = {
            "microsoft": {"status": "success", "extracted_data": [{"item_lines": [{"amount_line": 1}]}]},
            "amazon": {"status": "success", "extracted_data": [{"item_lines": [{"amount_line": 1}]}]},
        }
        assert len(_map(raw, SecondaryClassification.BANK_STATEMENT)) == 1

    def test_empty_response(self) -> None:
        assert first_extracted_data({}) == []
