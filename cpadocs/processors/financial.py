"""Financial branch: parse the stored file and derive ledger transactions."""

from typing import Any

import psycopg

from cpadocs.database.repositories.documents_repository import DocumentsRepository
from cpadocs.database.repositories.transactions_repository import TransactionsRepository
from cpadocs.documents.exceptions import DocumentNotFoundError
from cpadocs.documents.models import Classification, Document, SecondaryClassification
from cpadocs.ledger.mapper import first_extracted_data, map_transactions
from cpadocs.logging.logger import Log
from cpadocs.processors.base import BaseDocumentProcessor
from cpadocs.processors.eden_ai_client import EdenAIClient
from cpadocs.processors.exceptions import ProcessorError
from cpadocs.processors.models import ProcessorResult
from cpadocs.storage.base import BaseStorageGateway
from cpadocs.storage.exceptions import StorageError


class FinancialProcessor(BaseDocumentProcessor):
    classification = Classification.FINANCIAL

    def __init__(
        self,
        *,
        eden_client: EdenAIClient,
        storage: BaseStorageGateway,
        documents: DocumentsRepository,
        transactions: TransactionsRepository,
        providers: list[str],
        fallback_providers: list[str],
        signed_url_ttl_seconds: int = 3600,
    ) -> None:
        self._eden = eden_client
        self._storage = storage
        self._documents = documents
        self._transactions = transactions
        self._providers = providers
        self._fallback_providers = fallback_providers
        self._signed_url_ttl = signed_url_ttl_seconds

    def process(self, document: Document) -> ProcessorResult:
        Log.info(f"Processing financial document {document.id}")
        try:
            file_url = self._storage.create_signed_url(
                document.storage_bucket, document.storage_path, self._signed_url_ttl
            )
        except StorageError as exc:
            raise ProcessorError(f"Failed to create signed URL for document: {exc}") from exc

        raw = self._eden.parse_financial_document(
            file_url,
            providers=self._providers,
            fallback_providers=self._fallback_providers,
        )
        payload = {"normalized": first_extracted_data(raw), "raw": raw}
        result = ProcessorResult(classification=self.classification, payload=payload)

        try:
            self._documents.save_payload(document.id, self.classification, payload)
        except (psycopg.Error, DocumentNotFoundError) as exc:
            Log.error(f"Failed to store financial payload for {document.id}: {exc}")
            result.warnings.append(f"Financial data was not saved: {exc}")
            return result

        self._derive_transactions(document.id, raw, result)
        return result

    def _derive_transactions(
        self,
        document_id: str,
        raw: dict[str, Any],
        result: ProcessorResult,
    ) -> None:
        try:
            client_id, secondary_label = self._documents.get_ledger_context(document_id)
        except (psycopg.Error, DocumentNotFoundError) as exc:
            Log.error(f"Failed to load ledger context for {document_id}: {exc}")
            result.warnings.append(f"Transactions were not derived: {exc}")
            return

        secondary = SecondaryClassification.parse(secondary_label)
        if secondary is None:
            Log.info(f"Document {document_id} has no ledger sub-type, skipping transactions")
            return

        if client_id is None:
            transactions = map_transactions(
                raw, document_id=document_id, client_id="", secondary=secondary
            )
            Log.warning(
                f"Skipped {len(transactions)} transactions for {document_id}: no client assigned"
            )
            result.warnings.append(
                f"Skipped {len(transactions)} transactions because the document has no client"
            )
            return

        transactions = map_transactions(
            raw, document_id=document_id, client_id=client_id, secondary=secondary
        )
        try:
            result.transactions_inserted = self._transactions.insert_many(transactions)
        except psycopg.Error as exc:
            Log.error(f"Failed to insert transactions for {document_id}: {exc}")
            result.warnings.append(f"Transactions were not saved: {exc}")
            return
        Log.info(f"Inserted {result.transactions_inserted} transactions for {document_id}")
