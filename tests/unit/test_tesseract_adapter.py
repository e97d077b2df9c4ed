from unittest.mock import patch

import pytesseract
import pytest
from PIL import Image

from cpadocs.ocr.exceptions import TextExtractionError
from cpadocs.ocr.service import TextExtractionService
from cpadocs.ocr.tesseract_adapter import TesseractAdapter

_IMAGE_TO_STRING = "cpadocs.ocr.tesseract_adapter.pytesseract.image_to_string"
_VERSION = "cpadocs.ocr.tesseract_adapter.pytesseract.get_tesseract_version"


class TestTesseractAdapter:
    def test_extract_returns_stripped_text(self, small_png_bytes: bytes) -> None:
        with patch(_IMAGE_TO_STRING, return_value="  Wages, tips 52,000\n\f") as mock_ocr:
            text = TesseractAdapter(lang="eng").extract(small_png_bytes)

        assert text == "Wages, tips 52,000"
        image = mock_ocr.call_args.args[0]
        assert isinstance(image, Image.Image)
        assert image.size == (64, 48)
        assert mock_ocr.call_args.kwargs["lang"] == "eng"

    def test_undecodable_bytes_raise(self) -> None:
        with patch(_IMAGE_TO_STRING) as mock_ocr:
            with pytest.raises(TextExtractionError, match="could not be decoded"):
                TesseractAdapter().extract(b"not an image")
        mock_ocr.assert_not_called()

    def test_missing_binary_raises(self, small_png_bytes: bytes) -> None:
        with patch(_IMAGE_TO_STRING, side_effect=pytesseract.TesseractNotFoundError()):
            with pytest.raises(TextExtractionError, match="not installed"):
                TesseractAdapter().extract(small_png_bytes)

    def test_tesseract_error_raises(self, small_png_bytes: bytes) -> None:
        with patch(_IMAGE_TO_STRING, side_effect=pytesseract.TesseractError(1, "bad lang")):
            with pytest.raises(TextExtractionError, match="tesseract failed"):
                TesseractAdapter(lang="xx").extract(small_png_bytes)

    def test_is_available(self) -> None:
        with patch(_VERSION, return_value="5.3.0"):
            assert TesseractAdapter.is_available() is True
        with patch(_VERSION, side_effect=pytesseract.TesseractNotFoundError()):
            assert TesseractAdapter.is_available() is False


class TestImageRouting:
    def test_images_go_to_image_extractor(self, small_png_bytes: bytes) -> None:
        service = TextExtractionService(TesseractAdapter(), TesseractAdapter())
        with patch(_IMAGE_TO_STRING, return_value="Form 1099-MISC"):
            for mime_type in ("image/jpeg", "image/png", "image/webp"):
                assert service.extract(small_png_bytes, mime_type, "scan") == "Form 1099-MISC"

    def test_ocr_failure_falls_back_to_placeholder(self, small_png_bytes: bytes) -> None:
        service = TextExtractionService(TesseractAdapter(), TesseractAdapter())
        with patch(_IMAGE_TO_STRING, side_effect=pytesseract.TesseractNotFoundError()):
            text = service.extract(small_png_bytes, "image/png", "receipt.png")
        assert text.startswith("[text unavailable] receipt.png")

    def test_blank_image_falls_back_to_placeholder(self, small_png_bytes: bytes) -> None:
        service = TextExtractionService(TesseractAdapter(), TesseractAdapter())
        with patch(_IMAGE_TO_STRING, return_value=" \n"):
            text = service.extract(small_png_bytes, "image/png", "blank.png")
        assert text.startswith("[text unavailable] blank.png")
