"""Routes stored files to a text extractor by MIME type."""

from cpadocs.logging.logger import Log
from cpadocs.ocr.base import BaseTextExtractor
from cpadocs.ocr.docx_adapter import DocxAdapter
from cpadocs.ocr.exceptions import TextExtractionError
from cpadocs.ocr.plain_text_adapter import PlainTextAdapter

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
IMAGE_MIME_TYPES = ("image/jpeg", "image/png", "image/webp")


def placeholder_text(filename: str, mime_type: str) -> str:
    """Deterministic stand-in used when no text can be extracted."""
    return (
        f"[text unavailable] {filename}\n"
        f"No machine-readable text was extracted from this {mime_type} file."
    )


class TextExtractionService:
    """Extracts text from uploaded files, never returning an empty string.

    Images are only read when an image extractor is given; without one they
    get placeholder text like any other unsupported type.
    """

    def __init__(
        self,
        pdf_extractor: BaseTextExtractor,
        image_extractor: BaseTextExtractor | None = None,
    ) -> None:
        self._extractors: dict[str, BaseTextExtractor] = {
            "application/pdf": pdf_extractor,
            "text/plain": PlainTextAdapter(),
            DOCX_MIME_TYPE: DocxAdapter(),
        }
        if image_extractor is not None:
            for mime_type in IMAGE_MIME_TYPES:
                self._extractors[mime_type] = image_extractor

    def extract(self, content: bytes, mime_type: str, filename: str) -> str:
        extractor = self._extractors.get(mime_type)
        if extractor is None:
            Log.info(f"No text extractor for {mime_type}, using placeholder for {filename}")
            return placeholder_text(filename, mime_type)

        try:
            text = extractor.extract(content)
        except TextExtractionError as exc:
            Log.warning(f"Text extraction failed for {filename}: {exc}")
            return placeholder_text(filename, mime_type)

        if not text:
            Log.info(f"Extractor returned no text for {filename}, using placeholder")
            return placeholder_text(filename, mime_type)
        return text
