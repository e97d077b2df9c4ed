"""Human-approval gate between classification and type-specific processing."""

import psycopg

from cpadocs.database.repositories.documents_repository import DocumentsRepository
from cpadocs.documents.exceptions import (
    ApprovalRequiredError,
    DocumentNotFoundError,
    InvalidTransitionError,
)
from cpadocs.documents.models import Classification, Document, ProcessingStep
from cpadocs.logging.logger import Log
from cpadocs.pipeline.models import OutcomeErrorCode, OutcomeStatus, ProcessingOutcome
from cpadocs.pipeline.tracker import PipelineStateTracker
from cpadocs.processors.exceptions import (
    ProcessorError,
    ProviderError,
    UnsupportedClassificationError,
)
from cpadocs.processors.factory import ProcessorFactory


class ApprovalGate:
    """Confirms or overrides a classification and runs the matching processor.

    The move to specific_processing is a compare-and-set on the stored step,
    so a second concurrent approve/override fails instead of interleaving.
    """

    def __init__(
        self,
        documents: DocumentsRepository,
        tracker: PipelineStateTracker,
        processors: ProcessorFactory,
    ) -> None:
        self._documents = documents
        self._tracker = tracker
        self._processors = processors

    def approve(
        self,
        document_id: str,
        classification: Classification,
        user_id: str,
    ) -> ProcessingOutcome:
        return self._run(document_id, classification, user_id, rewrite=False)

    def override(
        self,
        document_id: str,
        new_classification: Classification,
        user_id: str,
    ) -> ProcessingOutcome:
        """Store an operator-chosen classification, then approve it."""
        return self._run(document_id, new_classification, user_id, rewrite=True)

    def _run(
        self,
        document_id: str,
        classification: Classification,
        user_id: str,
        *,
        rewrite: bool,
    ) -> ProcessingOutcome:
        try:
            document = self._documents.find_for_user(document_id, user_id)
        except DocumentNotFoundError as exc:
            return ProcessingOutcome.failure(
                document_id, classification, str(exc), OutcomeErrorCode.NOT_FOUND
            )
        except psycopg.Error as exc:
            return ProcessingOutcome.failure(
                document_id, classification, str(exc), OutcomeErrorCode.PROCESSING_ERROR
            )

        try:
            _require_classified(document)
            if not rewrite:
                _require_stored_label(document, classification)
        except ApprovalRequiredError as exc:
            return ProcessingOutcome.failure(
                document_id, classification, str(exc), OutcomeErrorCode.APPROVAL_REQUIRED
            )

        try:
            processor = self._processors.get(classification)
        except UnsupportedClassificationError as exc:
            return ProcessingOutcome.failure(
                document_id, classification, str(exc), OutcomeErrorCode.UNSUPPORTED_CLASSIFICATION
            )

        stored = self._already_processed(document, classification)
        if stored is not None:
            Log.info(f"Document {document_id} already processed as {classification}, skipping")
            return stored

        try:
            self._tracker.transition(
                document_id,
                ProcessingStep.SPECIFIC_PROCESSING,
                classification=classification,
            )
        except (InvalidTransitionError, DocumentNotFoundError) as exc:
            return ProcessingOutcome.failure(
                document_id, classification, str(exc), OutcomeErrorCode.INVALID_TRANSITION
            )
        except psycopg.Error as exc:
            return ProcessingOutcome.failure(
                document_id, classification, str(exc), OutcomeErrorCode.PROCESSING_ERROR
            )

        if rewrite and document.classification != classification:
            try:
                self._documents.update_classification(document_id, classification)
            except (DocumentNotFoundError, psycopg.Error) as exc:
                self._record_error(document_id, str(exc))
                return ProcessingOutcome.failure(
                    document_id, classification, str(exc), OutcomeErrorCode.PROCESSING_ERROR
                )
            document.classification = classification
            Log.info(f"Document {document_id} classification overridden to {classification}")

        try:
            result = processor.process(document)
        except ProcessorError as exc:
            Log.error(f"{classification} processing failed for {document_id}: {exc}")
            self._record_error(document_id, str(exc))
            code = (
                OutcomeErrorCode.PROVIDER_ERROR
                if isinstance(exc, ProviderError)
                else OutcomeErrorCode.PROCESSING_ERROR
            )
            status_code = exc.status_code if isinstance(exc, ProviderError) else None
            return ProcessingOutcome.failure(
                document_id, classification, str(exc), code, provider_status_code=status_code
            )

        warnings = list(result.warnings)
        try:
            self._tracker.transition(
                document_id, ProcessingStep.COMPLETED, classification=classification
            )
        except (InvalidTransitionError, DocumentNotFoundError, psycopg.Error) as exc:
            Log.error(f"Failed to mark document {document_id} completed: {exc}")
            warnings.append(f"Pipeline step was not updated: {exc}")

        return ProcessingOutcome(
            document_id=document_id,
            classification=classification,
            status=OutcomeStatus.SUCCESS_WITH_WARNINGS if warnings else OutcomeStatus.SUCCESS,
            data=result.payload,
            warnings=warnings,
        )

    @staticmethod
    def _already_processed(
        document: Document,
        classification: Classification,
    ) -> ProcessingOutcome | None:
        if document.pipeline_step != ProcessingStep.COMPLETED:
            return None
        if document.classification != classification:
            return None
        payload = document.payload_for(classification)
        if payload is None:
            return None
        return ProcessingOutcome(
            document_id=document.id,
            classification=classification,
            status=OutcomeStatus.SUCCESS,
            data=payload,
        )

    def close(self) -> None:
        self._processors.close()

    def _record_error(self, document_id: str, error: str) -> None:
        try:
            self._tracker.transition(document_id, ProcessingStep.ERROR, error=error)
        except (InvalidTransitionError, DocumentNotFoundError, psycopg.Error) as exc:
            Log.warning(f"Could not record processing error for {document_id}: {exc}")


def _require_classified(document: Document) -> None:
    """A document must pass the classification stage before it can be approved."""
    if document.classification is None:
        raise ApprovalRequiredError(f"Document {document.id} has no classification to approve")


def _require_stored_label(document: Document, classification: Classification) -> None:
    """Approve confirms the stored label; a different label needs override."""
    if document.classification != classification:
        raise ApprovalRequiredError(
            f"Document {document.id} is classified as {document.classification}; "
            f"use override to process it as {classification}"
        )
