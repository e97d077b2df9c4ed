import io

import pytesseract
from PIL import Image, UnidentifiedImageError

from cpadocs.ocr.base import BaseTextExtractor
from cpadocs.ocr.exceptions import TextExtractionError


class TesseractAdapter(BaseTextExtractor):
    """Reads text from scanned images and photos with the Tesseract binary."""

    def __init__(self, lang: str = "eng", config: str = "") -> None:
        self._lang = lang
        self._config = config

    @staticmethod
    def is_available() -> bool:
        """True when the tesseract executable can be found on this host."""
        try:
            pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError:
            return False
        return True

    def extract(self, content: bytes) -> str:
        try:
            image = Image.open(io.BytesIO(content))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise TextExtractionError(f"image could not be decoded: {exc}") from exc

        try:
            text = pytesseract.image_to_string(image, lang=self._lang, config=self._config)
        except pytesseract.TesseractNotFoundError as exc:
            raise TextExtractionError("tesseract is not installed") from exc
        except (pytesseract.TesseractError, RuntimeError) as exc:
            raise TextExtractionError(f"tesseract failed: {exc}") from exc
        finally:
            image.close()
        return text.strip()
