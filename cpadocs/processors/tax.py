from datetime import UTC, datetime
from typing import Any

import psycopg

from cpadocs.database.repositories.documents_repository import DocumentsRepository
from cpadocs.documents.exceptions import DocumentNotFoundError
from cpadocs.documents.models import Classification, Document
from cpadocs.logging.logger import Log
from cpadocs.processors.base import BaseDocumentProcessor
from cpadocs.processors.eden_ai_client import EdenAIClient
from cpadocs.processors.exceptions import ProcessorError
from cpadocs.processors.models import ProcessorResult


class TaxProcessor(BaseDocumentProcessor):
    """Summarizes tax documents and merges the result under 'tax_processing'."""

    classification = Classification.TAX

    def __init__(
        self,
        *,
        eden_client: EdenAIClient,
        documents: DocumentsRepository,
        summarization_provider: str,
    ) -> None:
        self._eden = eden_client
        self._documents = documents
        self._provider = summarization_provider

    def process(self, document: Document) -> ProcessorResult:
        if not document.ocr_text:
            raise ProcessorError(f"Document {document.id} has no extracted text")

        Log.info(f"Processing tax document {document.id}")
        raw = self._eden.summarize(document.ocr_text, provider=self._provider)
        section = {
            "summary": _summary_text(raw, self._provider),
            "raw": raw,
            "processed_at": datetime.now(UTC).isoformat(),
        }

        try:
            existing = self._documents.get_tax_payload(document.id) or {}
        except (psycopg.Error, DocumentNotFoundError) as exc:
            Log.error(f"Failed to read tax payload for {document.id}: {exc}")
            return ProcessorResult(
                classification=self.classification,
                payload={"tax_processing": section},
                warnings=[f"Tax data was not saved: {exc}"],
            )

        payload = {**existing, "tax_processing": section}
        result = ProcessorResult(classification=self.classification, payload=payload)
        try:
            self._documents.save_payload(document.id, self.classification, payload)
        except (psycopg.Error, DocumentNotFoundError) as exc:
            Log.error(f"Failed to store tax payload for {document.id}: {exc}")
            result.warnings.append(f"Tax data was not saved: {exc}")
        return result


def _summary_text(raw: dict[str, Any], provider: str) -> str | None:
    provider_result = raw.get(provider)
    if not isinstance(provider_result, dict):
        provider_result = next((v for v in raw.values() if isinstance(v, dict)), {})
    summary = provider_result.get("result")
    return summary if isinstance(summary, str) else None
