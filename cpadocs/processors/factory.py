from collections.abc import Iterable

from cpadocs.config.settings import Settings
from cpadocs.database.repositories.documents_repository import DocumentsRepository
from cpadocs.database.repositories.transactions_repository import TransactionsRepository
from cpadocs.documents.models import Classification
from cpadocs.processors.base import BaseDocumentProcessor
from cpadocs.processors.eden_ai_client import EdenAIClient
from cpadocs.processors.exceptions import UnsupportedClassificationError
from cpadocs.processors.financial import FinancialProcessor
from cpadocs.processors.identity import IdentityProcessor
from cpadocs.processors.tax import TaxProcessor
from cpadocs.storage.base import BaseStorageGateway


class ProcessorFactory:
    """Selects the type-specific processor for an approved classification."""

    def __init__(
        self,
        processors: Iterable[BaseDocumentProcessor],
        owned_clients: Iterable[EdenAIClient] = (),
    ) -> None:
        self._processors = {p.classification: p for p in processors}
        self._owned_clients = list(owned_clients)

    def get(self, classification: Classification) -> BaseDocumentProcessor:
        processor = self._processors.get(classification)
        if processor is None:
            raise UnsupportedClassificationError(
                f"No processor for classification '{classification}'. "
                f"Choose from: {[c.value for c in self._processors]}"
            )
        return processor

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        storage: BaseStorageGateway,
        documents: DocumentsRepository,
        transactions: TransactionsRepository,
        eden_client: EdenAIClient | None = None,
    ) -> "ProcessorFactory":
        owned: list[EdenAIClient] = []
        eden = eden_client
        if eden is None:
            eden = EdenAIClient(
                api_key=settings.eden_ai_api_key,
                base_url=settings.eden_ai_base_url,
                timeout_seconds=settings.eden_ai_timeout_seconds,
            )
            owned.append(eden)
        return cls(
            [
                FinancialProcessor(
                    eden_client=eden,
                    storage=storage,
                    documents=documents,
                    transactions=transactions,
                    providers=settings.financial_parser_providers,
                    fallback_providers=settings.financial_parser_fallback_providers,
                    signed_url_ttl_seconds=settings.signed_url_ttl_seconds,
                ),
                IdentityProcessor(eden_client=eden, documents=documents),
                TaxProcessor(
                    eden_client=eden,
                    documents=documents,
                    summarization_provider=settings.summarization_provider,
                ),
            ],
            owned_clients=owned,
        )

    def close(self) -> None:
        """Close provider clients this factory created; injected ones are left open."""
        for client in self._owned_clients:
            client.close()
        self._owned_clients.clear()
