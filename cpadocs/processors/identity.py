import json
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


class IdentityProcessor(BaseDocumentProcessor):
    classification = Classification.IDENTITY

    def __init__(self, *, eden_client: EdenAIClient, documents: DocumentsRepository) -> None:
        self._eden = eden_client
        self._documents = documents

    def process(self, document: Document) -> ProcessorResult:
        if not document.ocr_text:
            raise ProcessorError(f"Document {document.id} has no extracted text")

        Log.info(f"Processing identity document {document.id}")
        raw = self._eden.extract_identity(document.ocr_text)
        payload = {"normalized": _normalize_identity(raw), "raw": raw}
        result = ProcessorResult(classification=self.classification, payload=payload)

        try:
            self._documents.save_payload(document.id, self.classification, payload)
        except (psycopg.Error, DocumentNotFoundError) as exc:
            Log.error(f"Failed to store identity payload for {document.id}: {exc}")
            result.warnings.append(f"Identity data was not saved: {exc}")
        return result


def _normalize_identity(raw: dict[str, Any]) -> dict[str, Any]:
    """Unwrap the prompt response; structured output arrives as a JSON string."""
    text = raw.get("generated_text") or raw.get("result")
    if not isinstance(text, str):
        return {}
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return {"text": text}
    return parsed if isinstance(parsed, dict) else {"text": text}
