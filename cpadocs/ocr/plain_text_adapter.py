from cpadocs.ocr.base import BaseTextExtractor


class PlainTextAdapter(BaseTextExtractor):
    """Decodes text/plain uploads, replacing undecodable bytes."""

    def extract(self, content: bytes) -> str:
        return content.decode("utf-8", errors="replace").replace("\r\n", "\n").strip()
