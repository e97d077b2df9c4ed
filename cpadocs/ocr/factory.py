from cpadocs.config.settings import Settings
from cpadocs.logging.logger import Log
from cpadocs.ocr.base import BaseTextExtractor
from cpadocs.ocr.pdfplumber_adapter import PdfPlumberAdapter
from cpadocs.ocr.pymupdf_adapter import PyMuPdfAdapter
from cpadocs.ocr.service import TextExtractionService
from cpadocs.ocr.tesseract_adapter import TesseractAdapter


class PdfExtractorFactory:
    """Picks the PDF engine named by settings.pdf_engine."""

    ENGINES: dict[str, type[BaseTextExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseTextExtractor:
        engine = settings.pdf_engine.strip().lower()
        try:
            return cls.ENGINES[engine]()
        except KeyError:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {sorted(cls.ENGINES)}"
            ) from None

    @classmethod
    def create_service(cls, settings: Settings) -> TextExtractionService:
        return TextExtractionService(cls.create(settings), cls._image_extractor(settings))

    @staticmethod
    def _image_extractor(settings: Settings) -> BaseTextExtractor | None:
        if not settings.image_ocr_enabled:
            return None
        if not TesseractAdapter.is_available():
            Log.warning("Tesseract not found, images will get placeholder text")
            return None
        return TesseractAdapter(lang=settings.tesseract_lang)
