"""Category detection, storage naming, and bucket selection for uploads."""

import re
import secrets
import string
import time

from cpadocs.documents.models import DocumentCategory

NOTICES_BUCKET = "irs-notices"
CLIENT_DOCUMENTS_BUCKET = "client-documents"

_RANDOM_ALPHABET = string.ascii_lowercase + string.digits
_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9\-_]")
_MAX_BASENAME_LENGTH = 50

# Checked in order; the first matching rule wins.
FILENAME_RULES: list[tuple[tuple[str, ...], DocumentCategory]] = [
    (("w2", "w-2"), DocumentCategory.WAGE_STATEMENT),
    (("1099",), DocumentCategory.MISC_INCOME),
    (("w9", "w-9"), DocumentCategory.VENDOR_TAX_FORM),
    (("irs", "notice", "cp2000", "cp14"), DocumentCategory.TAX_NOTICE),
    (("receipt", "invoice"), DocumentCategory.RECEIPT),
    (("bank", "statement"), DocumentCategory.BANK_STATEMENT),
]

CONTENT_RULES: list[tuple[tuple[str, ...], DocumentCategory]] = [
    (("wages, tips", "form w-2"), DocumentCategory.WAGE_STATEMENT),
    (("1099", "miscellaneous income"), DocumentCategory.MISC_INCOME),
    (("internal revenue service", "notice of deficiency"), DocumentCategory.TAX_NOTICE),
]


def _match(text: str, rules: list[tuple[tuple[str, ...], DocumentCategory]]) -> DocumentCategory | None:
    for keywords, category in rules:
        if any(keyword in text for keyword in keywords):
            return category
    return None


def detect_document_category(filename: str, content: str | None = None) -> DocumentCategory:
    """Infer a category from filename keywords, then from text content."""
    category = _match(filename.lower(), FILENAME_RULES)
    if category is None and content:
        category = _match(content.lower(), CONTENT_RULES)
    return category or DocumentCategory.OTHER


def _split_extension(filename: str) -> tuple[str, str]:
    if "." not in filename:
        return filename, filename
    stem, extension = filename.rsplit(".", 1)
    return stem, extension


def generate_unique_filename(
    original_filename: str,
    user_id: str,
    now_ms: int | None = None,
) -> str:
    """Build `{user_id}/{epoch_ms}_{random6}_{sanitized}.{ext}`.

    A filename without a dot keeps its whole name as the extension.
    """
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(6))
    stem, extension = _split_extension(original_filename)
    sanitized = _UNSAFE_CHARS_RE.sub("_", stem)[:_MAX_BASENAME_LENGTH]
    return f"{user_id}/{timestamp}_{suffix}_{sanitized}.{extension}"


def bucket_for_category(
    category: DocumentCategory,
    *,
    notices_bucket: str = NOTICES_BUCKET,
    documents_bucket: str = CLIENT_DOCUMENTS_BUCKET,
) -> str:
    if category == DocumentCategory.TAX_NOTICE:
        return notices_bucket
    return documents_bucket
