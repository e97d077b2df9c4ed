from dataclasses import fields
from datetime import date

import pytest

from cpadocs.classification.keyword_classifier import (
    classify_by_keywords,
    extract_amount_owed,
    extract_deadline,
    extract_notice_number,
    extract_tax_year,
)
from cpadocs.classification.models import DocumentAnalysis
from cpadocs.documents.models import (
    Classification,
    NoticePriority,
    SecondaryClassification,
)
from cpadocs.ocr.service import placeholder_text

CP2000_TEXT = """
Department of the Treasury
Internal Revenue Service
Notice CP2000
Tax Year: 2022
Amount due: $1,234.56
Respond by: May 1, 2024
"""


class TestNoticeDetection:
    def test_cp2000_from_text(self) -> None:
        analysis = classify_by_keywords(CP2000_TEXT, "scan.pdf")
        assert analysis.classification == Classification.TAX
        assert analysis.notice_type == "CP2000 - Proposed Changes to Tax Return"
        assert analysis.notice_number == "CP2000"
        assert analysis.priority == NoticePriority.HIGH
        assert analysis.tax_year == 2022
        assert analysis.amount_owed == 1234.56
        assert analysis.deadline_date == date(2024, 5, 1)
        assert analysis.source == "keyword"

    def test_cp2000_from_filename_only(self) -> None:
        text = placeholder_text("CP2000_notice.pdf", "application/pdf")
        analysis = classify_by_keywords(text, "CP2000_notice.pdf")
        assert analysis.notice_number == "CP2000"
        assert analysis.priority == NoticePriority.HIGH
        assert analysis.classification == Classification.TAX

    def test_cp14_is_medium(self) -> None:
        analysis = classify_by_keywords("Notice CP14 balance due: $90.00", "letter.pdf")
        assert analysis.notice_number == "CP14"
        assert analysis.priority == NoticePriority.MEDIUM
        assert "outstanding balance of $90.00" in analysis.summary

    @pytest.mark.parametrize("code", ["CP90", "CP504"])
    def test_levy_notices_are_critical(self, code: str) -> None:
        analysis = classify_by_keywords(f"Notice {code} intent to levy", "letter.pdf")
        assert analysis.priority == NoticePriority.CRITICAL
        assert any("levy" in r for r in analysis.recommendations)

    def test_generic_irs_letter_uses_general_recommendations(self) -> None:
        analysis = classify_by_keywords("Internal Revenue Service correspondence", "letter.pdf")
        assert analysis.classification == Classification.TAX
        assert analysis.notice_type == "Unknown"
        assert len(analysis.recommendations) == 5

    def test_cp2000_summary_mentions_amount(self) -> None:
        analysis = classify_by_keywords(CP2000_TEXT, "scan.pdf")
        assert "$1,234.56" in analysis.summary
        assert "2022" in analysis.summary


class TestDocumentClassification:
    def test_wage_statement_is_tax(self) -> None:
        analysis = classify_by_keywords("Form W-2 Wages, tips, other compensation", "w2.pdf")
        assert analysis.classification == Classification.TAX
        assert analysis.recommendations == []

    def test_passport_is_identity(self) -> None:
        analysis = classify_by_keywords("United States Passport. Date of birth 01 Jan 1980", "id.jpg")
        assert analysis.classification == Classification.IDENTITY

    def test_bank_statement_is_financial(self) -> None:
        analysis = classify_by_keywords("Statement period 03/01 - 03/31. Beginning balance", "x.pdf")
        assert analysis.classification == Classification.FINANCIAL
        assert analysis.secondary_classification == SecondaryClassification.BANK_STATEMENT

    def test_invoice_is_financial(self) -> None:
        analysis = classify_by_keywords("INVOICE #1001 Total due $250.00", "x.pdf")
        assert analysis.secondary_classification == SecondaryClassification.INVOICE

    def test_receipt_is_financial(self) -> None:
        analysis = classify_by_keywords("Thank you! Subtotal 9.50", "x.jpg")
        assert analysis.secondary_classification == SecondaryClassification.RECEIPT

    def test_placeholder_image_text_is_unknown(self) -> None:
        text = placeholder_text("w2_employee.jpg", "image/jpeg")
        analysis = classify_by_keywords(text, "w2_employee.jpg")
        assert analysis.classification == Classification.UNKNOWN
        assert analysis.notice_number is None

    def test_every_field_is_present(self) -> None:
        analysis = classify_by_keywords("", "")
        for f in fields(DocumentAnalysis):
            assert hasattr(analysis, f.name)
        assert analysis.summary
        assert analysis.priority == NoticePriority.MEDIUM


class TestExtractors:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Notice CP2000", "CP2000"),
            ("notice cp-14 enclosed", "CP14"),
            ("Letter LTR 1058", "LTR1058"),
            ("Form LT11", "LT11"),
            ("no code here", None),
            ("ACP2000", None),
        ],
    )
    def test_notice_number(self, text: str, expected: str | None) -> None:
        assert extract_notice_number(text) == expected

    def test_tax_year(self) -> None:
        assert extract_tax_year("TAX YEAR 2021") == 2021
        assert extract_tax_year("nothing") is None

    def test_amount_owed(self) -> None:
        assert extract_amount_owed("Balance due: $12,000.10") == 12000.10
        assert extract_amount_owed("no money") is None

    def test_deadline_formats(self) -> None:
        assert extract_deadline("Payment due date: 06/15/2024") == date(2024, 6, 15)
        assert extract_deadline("Respond by Jan 5, 2025") == date(2025, 1, 5)
        assert extract_deadline("Due date: someday 2024") is None
