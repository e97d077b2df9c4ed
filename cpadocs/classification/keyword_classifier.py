"""Deterministic keyword classifier used when the AI provider is unavailable.

Every field of the returned DocumentAnalysis is populated from pattern rules
or explicitly None, so callers never have to branch on a partial result.
"""

import re
from datetime import date, datetime

from cpadocs.classification.models import UNKNOWN_NOTICE_TYPE, DocumentAnalysis
from cpadocs.documents.models import (
    Classification,
    NoticePriority,
    SecondaryClassification,
)

# (keyword, notice type, priority), checked in order against text then filename.
NOTICE_RULES: tuple[tuple[str, str, NoticePriority], ...] = (
    ("cp2000", "CP2000 - Proposed Changes to Tax Return", NoticePriority.HIGH),
    ("cp14", "CP14 - Balance Due Notice", NoticePriority.MEDIUM),
    ("cp90", "CP90 - Final Notice of Intent to Levy", NoticePriority.CRITICAL),
    ("cp504", "CP504 - Intent to Levy Notice", NoticePriority.CRITICAL),
)

_NOTICE_NUMBER_RE = re.compile(r"(?<![A-Za-z])(CP|LTR|LT)[\s\-]*(\d{1,4})(?!\d)", re.IGNORECASE)
_TAX_YEAR_RE = re.compile(r"tax year:?\s*(\d{4})", re.IGNORECASE)
_AMOUNT_RE = re.compile(
    r"(?:amount due|balance due|total.*due):?\s*\$?([\d,]+\.?\d*)", re.IGNORECASE
)
_DEADLINE_RE = re.compile(
    r"(?:payment due date|respond by|due date):?\s*([\w\s,/]+\d{4})", re.IGNORECASE
)
_DEADLINE_FORMATS = ("%B %d, %Y", "%B %d %Y", "%b %d, %Y", "%b %d %Y", "%d %B %Y", "%m/%d/%Y")

_IRS_KEYWORDS = ("internal revenue service", "department of the treasury", "irs notice")
_TAX_FORM_KEYWORDS = ("form 1040", "form w-2", "wages, tips", "1099", "form w-9", "miscellaneous income")
_IDENTITY_KEYWORDS = (
    "driver license",
    "driver's license",
    "drivers license",
    "passport",
    "identification card",
    "social security card",
    "date of birth",
)
_FINANCIAL_KEYWORDS: tuple[tuple[SecondaryClassification, tuple[str, ...]], ...] = (
    (
        SecondaryClassification.BANK_STATEMENT,
        ("bank statement", "statement period", "beginning balance", "ending balance"),
    ),
    (SecondaryClassification.INVOICE, ("invoice",)),
    (SecondaryClassification.RECEIPT, ("receipt", "subtotal")),
)

_RECOMMENDATIONS: dict[str, list[str]] = {
    "cp2000": [
        "Review all 1099 forms and income documents for the tax year",
        "Gather supporting documentation for any disputed amounts",
        "Consider filing an amended return if the proposed changes are correct",
        "Respond within 30 days to avoid automatic assessment",
        "Consult with a tax professional if you disagree with the proposed changes",
    ],
    "cp14": [
        "Pay the full amount immediately to stop interest and penalty accrual",
        "Set up a payment plan if you cannot pay the full amount",
        "Verify the balance is correct by reviewing your account transcript",
        "Consider making a partial payment to reduce interest charges",
        "Contact the IRS if you believe the balance is incorrect",
    ],
    "levy": [
        "Contact the IRS before the deadline to prevent the levy",
        "Pay the balance in full or request an installment agreement",
        "Request a Collection Due Process hearing if you disagree with the levy",
        "Verify the balance by reviewing your account transcript",
        "Engage a tax professional to represent you in collection proceedings",
    ],
    "general": [
        "Read the notice carefully and understand what action is required",
        "Gather any supporting documentation mentioned in the notice",
        "Respond by the deadline specified in the notice",
        "Contact a tax professional if you need assistance",
        "Keep a copy of the notice and any correspondence for your records",
    ],
}


def classify_by_keywords(text: str, filename: str) -> DocumentAnalysis:
    """Classify a document with keyword and regex rules only."""
    lower_text = text.lower()
    lower_filename = filename.lower()

    notice_key, notice_type, priority = _match_notice(lower_text, lower_filename)
    notice_number = extract_notice_number(text) or extract_notice_number(filename)
    tax_year = extract_tax_year(text)
    amount_owed = extract_amount_owed(text)
    deadline_date = extract_deadline(text)

    is_notice = notice_key is not None or any(k in lower_text for k in _IRS_KEYWORDS)
    classification, secondary = _classify(lower_text, is_notice)

    if is_notice:
        summary = _notice_summary(notice_key, tax_year, amount_owed)
        recommendations = list(_RECOMMENDATIONS[_recommendation_key(notice_key)])
    else:
        summary = (
            f"Document {filename} was classified as {classification.value} "
            f"from keyword rules. Confirm the classification before processing."
        )
        recommendations = []

    return DocumentAnalysis(
        classification=classification,
        secondary_classification=secondary,
        notice_type=notice_type,
        notice_number=notice_number,
        tax_year=tax_year,
        amount_owed=amount_owed,
        deadline_date=deadline_date,
        priority=priority,
        summary=summary,
        recommendations=recommendations,
        source="keyword",
    )


def extract_notice_number(text: str) -> str | None:
    """Return a normalized notice code such as 'CP2000', or None."""
    match = _NOTICE_NUMBER_RE.search(text)
    if match is None:
        return None
    return f"{match.group(1).upper()}{match.group(2)}"


def extract_tax_year(text: str) -> int | None:
    match = _TAX_YEAR_RE.search(text)
    return int(match.group(1)) if match else None


def extract_amount_owed(text: str) -> float | None:
    match = _AMOUNT_RE.search(text)
    if match is None:
        return None
    digits = match.group(1).replace(",", "")
    try:
        return float(digits)
    except ValueError:
        return None


def extract_deadline(text: str) -> date | None:
    match = _DEADLINE_RE.search(text)
    if match is None:
        return None
    candidate = " ".join(match.group(1).split())
    for fmt in _DEADLINE_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue
    return None


def _match_notice(
    lower_text: str,
    lower_filename: str,
) -> tuple[str | None, str, NoticePriority]:
    for keyword, notice_type, priority in NOTICE_RULES:
        if keyword in lower_text or keyword in lower_filename:
            return keyword, notice_type, priority
    return None, UNKNOWN_NOTICE_TYPE, NoticePriority.MEDIUM


def _classify(
    lower_text: str,
    is_notice: bool,
) -> tuple[Classification, SecondaryClassification | None]:
    if is_notice or any(k in lower_text for k in _TAX_FORM_KEYWORDS):
        return Classification.TAX, None
    if any(k in lower_text for k in _IDENTITY_KEYWORDS):
        return Classification.IDENTITY, None
    for secondary, keywords in _FINANCIAL_KEYWORDS:
        if any(k in lower_text for k in keywords):
            return Classification.FINANCIAL, secondary
    return Classification.UNKNOWN, None


def _recommendation_key(notice_key: str | None) -> str:
    if notice_key in ("cp90", "cp504"):
        return "levy"
    if notice_key in _RECOMMENDATIONS:
        return notice_key
    return "general"


def _format_amount(amount: float | None) -> str:
    return f"${amount:,.2f}" if amount is not None else "$TBD"


def _notice_summary(notice_key: str | None, tax_year: int | None, amount: float | None) -> str:
    if notice_key == "cp2000":
        year = f"{tax_year} " if tax_year else ""
        return (
            f"The IRS has identified unreported income on your {year}tax return. "
            f"They are proposing additional tax of {_format_amount(amount)} due to income "
            "discrepancies. This is typically caused by missing 1099 forms or other income "
            "documents that the IRS received but weren't reported on your return."
        )
    if notice_key == "cp14":
        return (
            f"You have an outstanding balance of {_format_amount(amount)} on your tax account. "
            "Interest and penalties will continue to accrue until the balance is paid in full."
        )
    if notice_key in ("cp90", "cp504"):
        return (
            f"The IRS intends to levy your property to collect an unpaid balance of "
            f"{_format_amount(amount)}. Respond before the deadline to avoid enforced collection."
        )
    return (
        "This IRS notice requires your attention regarding your tax account. Please review "
        "the details carefully and take appropriate action within the specified timeframe."
    )
