from abc import ABC, abstractmethod

from cpadocs.classification.models import DocumentAnalysis


class BaseDocumentAnalyzer(ABC):
    """Contract for all document analysis adapters."""

    @abstractmethod
    def analyze(self, text: str, filename: str) -> DocumentAnalysis:
        """Classify a document and extract notice facts from its text.

        Args:
            text: Extracted document text. Never empty.
            filename: Original filename, used as an extra classification signal.

        Returns:
            A complete DocumentAnalysis.
        """
