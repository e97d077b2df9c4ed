from collections.abc import Callable
from unittest.mock import MagicMock

import psycopg

from cpadocs.database.repositories.documents_repository import DocumentsRepository
from cpadocs.documents.exceptions import DocumentNotFoundError, InvalidTransitionError
from cpadocs.documents.models import Classification, Document, ProcessingStep
from cpadocs.pipeline.approval import ApprovalGate
from cpadocs.pipeline.models import OutcomeErrorCode, OutcomeStatus
from cpadocs.pipeline.tracker import PipelineStateTracker
from cpadocs.processors.exceptions import ProcessorError, ProviderError, UnsupportedClassificationError
from cpadocs.processors.factory import ProcessorFactory
from cpadocs.processors.models import ProcessorResult


DocumentFactory = Callable[..., Document]


def _make_gate(
    document: Document | None,
    result: ProcessorResult | None = None,
) -> tuple[ApprovalGate, MagicMock, MagicMock, MagicMock]:
    documents = MagicMock(spec=DocumentsRepository)
    tracker = MagicMock(spec=PipelineStateTracker)
    processors = MagicMock(spec=ProcessorFactory)
    processor = MagicMock()
    processors.get.return_value = processor
    processor.process.return_value = result or ProcessorResult(
        classification=Classification.FINANCIAL, payload={"normalized": []}
    )
    documents.find_for_user.return_value = document
    return ApprovalGate(documents, tracker, processors), documents, tracker, processor


class TestApprove:
    def test_runs_processor_and_completes(self, make_document: DocumentFactory) -> None:
        document = make_document(
            classification=Classification.FINANCIAL, pipeline_step=ProcessingStep.CLASSIFICATION
        )
        gate, _docs, tracker, processor = _make_gate(document)

        outcome = gate.approve("doc-1", Classification.FINANCIAL, "user-1")

        assert outcome.status == OutcomeStatus.SUCCESS
        assert outcome.data == {"normalized": []}
        processor.process.assert_called_once_with(document)
        steps = [c.args[1] for c in tracker.transition.call_args_list]
        assert steps == [ProcessingStep.SPECIFIC_PROCESSING, ProcessingStep.COMPLETED]

    def test_not_found(self) -> None:
        gate, documents, tracker, _ = _make_gate(None)
        documents.find_for_user.side_effect = DocumentNotFoundError("Document doc-1 not found")

        outcome = gate.approve("doc-1", Classification.FINANCIAL, "user-2")

        assert outcome.error_code == OutcomeErrorCode.NOT_FOUND
        tracker.transition.assert_not_called()

    def test_database_error_on_lookup(self) -> None:
        gate, documents, _tracker, _ = _make_gate(None)
        documents.find_for_user.side_effect = psycopg.OperationalError("db down")

        outcome = gate.approve("doc-1", Classification.FINANCIAL, "user-1")

        assert outcome.error_code == OutcomeErrorCode.PROCESSING_ERROR

    def test_requires_classification(self, make_document: DocumentFactory) -> None:
        gate, _docs, tracker, processor = _make_gate(make_document())

        outcome = gate.approve("doc-1", Classification.FINANCIAL, "user-1")

        assert outcome.error_code == OutcomeErrorCode.APPROVAL_REQUIRED
        processor.process.assert_not_called()
        tracker.transition.assert_not_called()

    def test_different_label_requires_override(self, make_document: DocumentFactory) -> None:
        gate, documents, tracker, processor = _make_gate(
            make_document(
                classification=Classification.FINANCIAL,
                pipeline_step=ProcessingStep.CLASSIFICATION,
            )
        )

        outcome = gate.approve("doc-1", Classification.TAX, "user-1")

        assert outcome.error_code == OutcomeErrorCode.APPROVAL_REQUIRED
        assert "use override" in (outcome.error or "")
        processor.process.assert_not_called()
        tracker.transition.assert_not_called()
        documents.update_classification.assert_not_called()

    def test_unknown_is_unsupported(self, make_document: DocumentFactory) -> None:
        gate, _docs, tracker, _ = _make_gate(make_document(classification=Classification.UNKNOWN))
        gate._processors.get.side_effect = UnsupportedClassificationError("No processor")  # type: ignore[attr-defined]

        outcome = gate.approve("doc-1", Classification.UNKNOWN, "user-1")

        assert outcome.error_code == OutcomeErrorCode.UNSUPPORTED_CLASSIFICATION
        tracker.transition.assert_not_called()

    def test_already_processed_is_noop(self, make_document: DocumentFactory) -> None:
        document = make_document(
            classification=Classification.FINANCIAL,
            pipeline_step=ProcessingStep.COMPLETED,
            financial_payload={"normalized": ["stored"]},
        )
        gate, _docs, tracker, processor = _make_gate(document)

        outcome = gate.approve("doc-1", Classification.FINANCIAL, "user-1")

        assert outcome.data == {"normalized": ["stored"]}
        processor.process.assert_not_called()
        tracker.transition.assert_not_called()

    def test_concurrent_approval_loses_transition(self, make_document: DocumentFactory) -> None:
        gate, _docs, tracker, processor = _make_gate(
            make_document(classification=Classification.FINANCIAL)
        )
        tracker.transition.side_effect = InvalidTransitionError("cannot move")

        outcome = gate.approve("doc-1", Classification.FINANCIAL, "user-1")

        assert outcome.error_code == OutcomeErrorCode.INVALID_TRANSITION
        processor.process.assert_not_called()

    def test_provider_error_keeps_status_code(self, make_document: DocumentFactory) -> None:
        gate, _docs, tracker, processor = _make_gate(
            make_document(classification=Classification.FINANCIAL)
        )
        processor.process.side_effect = ProviderError("failed", status_code=402)

        outcome = gate.approve("doc-1", Classification.FINANCIAL, "user-1")

        assert outcome.error_code == OutcomeErrorCode.PROVIDER_ERROR
        assert outcome.provider_status_code == 402
        tracker.transition.assert_called_with("doc-1", ProcessingStep.ERROR, error="failed")

    def test_processor_error(self, make_document: DocumentFactory) -> None:
        gate, _docs, _tracker, processor = _make_gate(
            make_document(classification=Classification.IDENTITY)
        )
        processor.process.side_effect = ProcessorError("no text")

        outcome = gate.approve("doc-1", Classification.IDENTITY, "user-1")

        assert outcome.error_code == OutcomeErrorCode.PROCESSING_ERROR
        assert outcome.provider_status_code is None

    def test_processor_warnings(self, make_document: DocumentFactory) -> None:
        result = ProcessorResult(
            classification=Classification.FINANCIAL,
            payload={},
            warnings=["Transactions were not saved: db down"],
        )
        gate, *_ = _make_gate(make_document(classification=Classification.FINANCIAL), result)

        outcome = gate.approve("doc-1", Classification.FINANCIAL, "user-1")

        assert outcome.status == OutcomeStatus.SUCCESS_WITH_WARNINGS
        assert outcome.ok
        assert outcome.warnings == ["Transactions were not saved: db down"]


class TestOverride:
    def test_rewrites_classification_after_transition(self, make_document: DocumentFactory) -> None:
        document = make_document(classification=Classification.TAX)
        gate, documents, tracker, processor = _make_gate(document)
        order: list[str] = []
        tracker.transition.side_effect = lambda *a, **k: order.append(f"step:{a[1]}")
        documents.update_classification.side_effect = lambda *a: order.append("rewrite")

        outcome = gate.override("doc-1", Classification.FINANCIAL, "user-1")

        assert outcome.ok
        documents.update_classification.assert_called_once_with("doc-1", Classification.FINANCIAL)
        assert order[:2] == ["step:specific_processing", "rewrite"]
        assert processor.process.call_args.args[0].classification == Classification.FINANCIAL

    def test_same_classification_is_not_rewritten(self, make_document: DocumentFactory) -> None:
        gate, documents, _tracker, _ = _make_gate(
            make_document(classification=Classification.FINANCIAL)
        )

        gate.override("doc-1", Classification.FINANCIAL, "user-1")

        documents.update_classification.assert_not_called()

    def test_rewrite_failure_records_error(self, make_document: DocumentFactory) -> None:
        gate, documents, tracker, processor = _make_gate(
            make_document(classification=Classification.TAX)
        )
        documents.update_classification.side_effect = psycopg.OperationalError("db down")

        outcome = gate.override("doc-1", Classification.FINANCIAL, "user-1")

        assert outcome.error_code == OutcomeErrorCode.PROCESSING_ERROR
        processor.process.assert_not_called()
        tracker.transition.assert_called_with("doc-1", ProcessingStep.ERROR, error="db down")


class TestClose:
    def test_close_releases_processors(self, make_document: DocumentFactory) -> None:
        gate, *_ = _make_gate(make_document())
        gate.close()
        gate._processors.close.assert_called_once()  # type: ignore[attr-defined]
