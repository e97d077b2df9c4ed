import io

import pdfplumber

from cpadocs.ocr.base import BaseTextExtractor
from cpadocs.ocr.exceptions import TextExtractionError


class PdfPlumberAdapter(BaseTextExtractor):
    """Layout-aware extraction; slower, but keeps statement columns on one line."""

    def extract(self, content: bytes) -> str:
        try:
            with pdfplumber.open(io.BytesIO(content)) as pdf:
                return self.join_pages(page.extract_text() for page in pdf.pages)
        except Exception as exc:
            # pdfminer has no common base class for its parser errors
            raise TextExtractionError(f"pdfplumber extraction failed: {exc}") from exc
