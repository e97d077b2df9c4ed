import pymupdf

from cpadocs.ocr.base import BaseTextExtractor
from cpadocs.ocr.exceptions import TextExtractionError


class PyMuPdfAdapter(BaseTextExtractor):
    """Fast extraction in reading order through MuPDF."""

    def extract(self, content: bytes) -> str:
        try:
            with pymupdf.open(stream=content, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                return self.join_pages(page.get_text("text", sort=True) for page in doc)
        except Exception as exc:
            raise TextExtractionError(f"pymupdf extraction failed: {exc}") from exc
