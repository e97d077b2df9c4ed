"""Document-facing operations. Every method returns a result value."""

from collections.abc import Sequence

import psycopg

from cpadocs.config.settings import Settings
from cpadocs.database.repositories.documents_repository import DocumentsRepository
from cpadocs.database.repositories.job_repository import JobRepository
from cpadocs.database.repositories.notices_repository import NoticesRepository
from cpadocs.database.repositories.transactions_repository import TransactionsRepository
from cpadocs.documents.exceptions import PipelineError
from cpadocs.documents.models import (
    Classification,
    Document,
    DocumentFilter,
    ServiceResult,
)
from cpadocs.ledger.models import TransactionSummary
from cpadocs.ledger.summary import summarize_transactions
from cpadocs.logging.logger import Log
from cpadocs.ocr.exceptions import TextExtractionError
from cpadocs.pipeline.approval import ApprovalGate
from cpadocs.pipeline.models import ClassificationOutcome, ProcessingOutcome
from cpadocs.pipeline.stage import ClassificationStage, build_classification_stage
from cpadocs.pipeline.tracker import PipelineStateTracker, ProcessingState
from cpadocs.processors.factory import ProcessorFactory
from cpadocs.storage.base import BaseStorageGateway
from cpadocs.storage.exceptions import StorageError
from cpadocs.storage.factory import StorageGatewayFactory
from cpadocs.upload.models import UploadFile, UploadOptions, UploadResult
from cpadocs.upload.orchestrator import (
    BatchProgressCallback,
    ProgressCallback,
    UploadOrchestrator,
)


class DocumentService:
    def __init__(
        self,
        *,
        uploader: UploadOrchestrator,
        storage: BaseStorageGateway,
        documents: DocumentsRepository,
        transactions: TransactionsRepository,
        stage: ClassificationStage,
        approval: ApprovalGate,
        tracker: PipelineStateTracker,
        signed_url_ttl_seconds: int = 3600,
    ) -> None:
        self._uploader = uploader
        self._storage = storage
        self._documents = documents
        self._transactions = transactions
        self._stage = stage
        self._approval = approval
        self._tracker = tracker
        self._signed_url_ttl_seconds = signed_url_ttl_seconds

    def upload(
        self,
        file: UploadFile,
        user_id: str,
        options: UploadOptions | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResult:
        return self._uploader.upload(file, user_id, options, on_progress)

    def upload_many(
        self,
        files: Sequence[UploadFile],
        user_id: str,
        options: UploadOptions | None = None,
        on_progress: BatchProgressCallback | None = None,
    ) -> list[UploadResult]:
        return self._uploader.upload_many(files, user_id, options, on_progress)

    def download(self, document_id: str, user_id: str) -> ServiceResult[bytes]:
        try:
            document = self._documents.find_for_user(document_id, user_id)
            content = self._storage.download(document.storage_bucket, document.storage_path)
        except (PipelineError, StorageError, psycopg.Error) as exc:
            return ServiceResult(error=str(exc))
        return ServiceResult(data=content)

    def get_preview_url(
        self,
        document_id: str,
        user_id: str,
        expires_in: int | None = None,
    ) -> ServiceResult[str]:
        """Signed, time-limited URL for viewing the stored file."""
        try:
            document = self._documents.find_for_user(document_id, user_id)
            url = self._storage.create_signed_url(
                document.storage_bucket,
                document.storage_path,
                expires_in or self._signed_url_ttl_seconds,
            )
        except (PipelineError, StorageError, psycopg.Error) as exc:
            return ServiceResult(error=str(exc))
        return ServiceResult(data=url)

    def delete(self, document_id: str, user_id: str) -> ServiceResult[bool]:
        """Delete the row, then its stored file. A leftover file is only logged."""
        try:
            document = self._documents.find_for_user(document_id, user_id)
            self._documents.delete(document_id, user_id)
        except (PipelineError, psycopg.Error) as exc:
            return ServiceResult(error=str(exc))

        try:
            self._storage.remove(document.storage_bucket, [document.storage_path])
        except StorageError as exc:
            Log.error(
                f"Orphaned file {document.storage_bucket}/{document.storage_path} "
                f"after deleting document {document_id}: {exc}"
            )
        self._tracker.forget(document_id)
        Log.info(f"Deleted document {document_id}")
        return ServiceResult(data=True)

    def list_documents(
        self,
        user_id: str,
        filters: DocumentFilter | None = None,
    ) -> ServiceResult[list[Document]]:
        try:
            documents = self._documents.list_for_user(user_id, filters or DocumentFilter())
        except psycopg.Error as exc:
            return ServiceResult(error=str(exc))
        self._tracker.rebuild(documents)
        return ServiceResult(data=documents)

    def get_state(self, document_id: str) -> ProcessingState:
        return self._tracker.get(document_id)

    def classify(self, document_id: str, user_id: str) -> ServiceResult[ClassificationOutcome]:
        """Run OCR and classification now instead of waiting for the worker."""
        try:
            return ServiceResult(data=self._stage.run(document_id, user_id))
        except (PipelineError, TextExtractionError, StorageError, psycopg.Error) as exc:
            Log.error(f"Classification of document {document_id} failed: {exc}")
            return ServiceResult(error=str(exc))

    def approve(
        self,
        document_id: str,
        classification: Classification,
        user_id: str,
    ) -> ProcessingOutcome:
        return self._approval.approve(document_id, classification, user_id)

    def override(
        self,
        document_id: str,
        new_classification: Classification,
        user_id: str,
    ) -> ProcessingOutcome:
        return self._approval.override(document_id, new_classification, user_id)

    def transaction_summary(
        self,
        user_id: str,
        client_id: str | None = None,
    ) -> ServiceResult[TransactionSummary]:
        try:
            transactions = self._transactions.list_for_user(user_id, client_id)
        except psycopg.Error as exc:
            return ServiceResult(error=str(exc))
        return ServiceResult(data=summarize_transactions(transactions))

    def close(self) -> None:
        """Release provider HTTP clients held by the approval path."""
        self._approval.close()

    def __enter__(self) -> "DocumentService":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def build_document_service(settings: Settings) -> DocumentService:
    """Wire a DocumentService from settings. The connection pool must be open."""
    storage = StorageGatewayFactory.create(settings)
    documents = DocumentsRepository()
    transactions = TransactionsRepository()
    tracker = PipelineStateTracker(documents)
    stage = build_classification_stage(
        settings,
        storage=storage,
        doc_repo=documents,
        notice_repo=NoticesRepository(),
        tracker=tracker,
    )
    processors = ProcessorFactory.from_settings(
        settings,
        storage=storage,
        documents=documents,
        transactions=transactions,
    )
    uploader = UploadOrchestrator(
        storage=storage,
        documents=documents,
        jobs=JobRepository(settings.max_job_attempts),
        tracker=tracker,
        settings=settings,
    )
    return DocumentService(
        uploader=uploader,
        storage=storage,
        documents=documents,
        transactions=transactions,
        stage=stage,
        approval=ApprovalGate(documents, tracker, processors),
        tracker=tracker,
        signed_url_ttl_seconds=settings.signed_url_ttl_seconds,
    )
