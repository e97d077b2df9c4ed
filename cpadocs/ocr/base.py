from abc import ABC, abstractmethod
from collections.abc import Iterable


class BaseTextExtractor(ABC):
    """Turns the bytes of one stored file into plain text."""

    @abstractmethod
    def extract(self, content: bytes) -> str:
        """Return the file's text, or "" when it has none.

        Raises:
            TextExtractionError: if the bytes cannot be read as this format.
        """

    @staticmethod
    def join_pages(pages: Iterable[str | None]) -> str:
        """Blank pages are dropped; the rest are separated by an empty line."""
        return "\n\n".join(text.strip() for text in pages if text and text.strip())
