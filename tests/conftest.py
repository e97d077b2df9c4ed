import io
import zipfile

import pytest
from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from cpadocs.documents.models import Document, DocumentCategory


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def notice_pdf_bytes() -> bytes:
    """A CP2000-style notice with a tax year and amount due."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Department of the Treasury - Internal Revenue Service")
    c.drawString(72, 700, "Notice CP2000")
    c.drawString(72, 680, "Tax Year: 2022")
    c.drawString(72, 660, "Amount due: $1,234.56")
    c.save()
    return buf.getvalue()


def _image_bytes(size: tuple[int, int], fmt: str) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color=(120, 80, 200)).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture()
def small_png_bytes() -> bytes:
    return _image_bytes((64, 48), "PNG")


@pytest.fixture()
def large_jpeg_bytes() -> bytes:
    """A noisy 3000x2000 JPEG, well above the 2 MB compression threshold."""
    image = Image.effect_noise((3000, 2000), 100).convert("RGB")
    buf = io.BytesIO()
    image.save(buf, format="JPEG", quality=100)
    return buf.getvalue()


@pytest.fixture()
def docx_bytes() -> bytes:
    """Minimal DOCX package with two paragraphs."""
    document_xml = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
        "<w:body>"
        "<w:p><w:r><w:t>Invoice 1001</w:t></w:r></w:p>"
        "<w:p><w:r><w:t>Total due: </w:t></w:r><w:r><w:t>$250.00</w:t></w:r></w:p>"
        "</w:body></w:document>"
    )
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as archive:
        archive.writestr("word/document.xml", document_xml)
    return buf.getvalue()


@pytest.fixture()
def make_document():
    """Factory for Document values with sensible defaults."""

    def _make(**overrides: object) -> Document:
        values: dict[str, object] = {
            "id": "doc-1",
            "user_id": "user-1",
            "filename": "1700000000000_abc123_statement.pdf",
            "original_filename": "statement.pdf",
            "file_size": 1024,
            "mime_type": "application/pdf",
            "document_type": DocumentCategory.BANK_STATEMENT,
            "storage_bucket": "client-documents",
            "storage_path": "user-1/1700000000000_abc123_statement.pdf",
        }
        values.update(overrides)
        return Document(**values)  # type: ignore[arg-type]

    return _make
