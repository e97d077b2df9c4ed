from abc import ABC, abstractmethod
from typing import ClassVar

from cpadocs.documents.models import Classification, Document
from cpadocs.processors.models import ProcessorResult


class BaseDocumentProcessor(ABC):
    """Contract for the Financial, Identity and Tax processors."""

    classification: ClassVar[Classification]

    @abstractmethod
    def process(self, document: Document) -> ProcessorResult:
        """Call the provider endpoint for this branch and persist its result.

        Persistence failures after a successful provider call are reported as
        warnings on the result, not raised.

        Raises:
            ProviderError: if the provider is unreachable or returns an error.
            ProcessorError: if the document cannot be processed at all.
        """
