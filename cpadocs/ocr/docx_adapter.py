import io
import zipfile
from xml.etree import ElementTree

from cpadocs.ocr.base import BaseTextExtractor
from cpadocs.ocr.exceptions import TextExtractionError

_WORD_NS = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"


class DocxAdapter(BaseTextExtractor):
    """Extracts paragraph text from word/document.xml of a DOCX package."""

    def extract(self, content: bytes) -> str:
        try:
            with zipfile.ZipFile(io.BytesIO(content)) as archive:
                xml = archive.read("word/document.xml")
            root = ElementTree.fromstring(xml)
        except (zipfile.BadZipFile, KeyError, ElementTree.ParseError) as exc:
            raise TextExtractionError(f"docx extraction failed: {exc}") from exc

        paragraphs = []
        for paragraph in root.iter(f"{_WORD_NS}p"):
            text = "".join(node.text or "" for node in paragraph.iter(f"{_WORD_NS}t"))
            if text:
                paragraphs.append(text)
        return "\n".join(paragraphs).strip()
