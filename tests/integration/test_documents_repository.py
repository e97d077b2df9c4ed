import uuid

import pytest

from cpadocs.database.repositories.documents_repository import (
    PROCESSING_FAILED_SUMMARY,
    DocumentsRepository,
)
from cpadocs.documents.exceptions import DocumentNotFoundError
from cpadocs.documents.models import Classification, Document, DocumentFilter, ProcessingStep
from cpadocs.pipeline.tracker import predecessors


@pytest.mark.integration
class TestCreateAndFind:
    def test_create_returns_idle_unprocessed_row(self, seed_document: Document) -> None:
        assert seed_document.is_processed is False
        assert seed_document.pipeline_step == ProcessingStep.IDLE
        assert seed_document.tags == ["2022"]

    def test_find_for_user_enforces_owner(self, seed_document: Document) -> None:
        repo = DocumentsRepository()
        assert repo.find_for_user(seed_document.id, seed_document.user_id).id == seed_document.id
        with pytest.raises(DocumentNotFoundError):
            repo.find_for_user(seed_document.id, "someone-else")

    def test_find_by_id_missing(self, integration_pool: None) -> None:
        with pytest.raises(DocumentNotFoundError):
            DocumentsRepository().find_by_id(str(uuid.uuid4()))

    def test_list_filters(self, seed_document: Document, user_id: str) -> None:
        repo = DocumentsRepository()
        assert [d.id for d in repo.list_for_user(user_id, DocumentFilter())] == [seed_document.id]
        assert repo.list_for_user(user_id, DocumentFilter(client_id="client-2")) == []


@pytest.mark.integration
class TestPipelineStep:
    def test_compare_and_set_transition(self, seed_document: Document) -> None:
        repo = DocumentsRepository()
        target = ProcessingStep.OCR

        assert repo.transition_pipeline_step(
            seed_document.id, target, from_steps=predecessors(target)
        )
        assert repo.find_by_id(seed_document.id).pipeline_step == ProcessingStep.OCR

    def test_rejected_transition_leaves_row(self, seed_document: Document) -> None:
        repo = DocumentsRepository()
        target = ProcessingStep.SPECIFIC_PROCESSING

        moved = repo.transition_pipeline_step(
            seed_document.id, target, from_steps=predecessors(target)
        )

        assert moved is False
        assert repo.find_by_id(seed_document.id).pipeline_step == ProcessingStep.IDLE

    def test_only_one_concurrent_approval_wins(self, seed_document: Document) -> None:
        repo = DocumentsRepository()
        repo.transition_pipeline_step(seed_document.id, ProcessingStep.CLASSIFICATION)
        target = ProcessingStep.SPECIFIC_PROCESSING
        allowed = predecessors(target)

        first = repo.transition_pipeline_step(seed_document.id, target, from_steps=allowed)
        second = repo.transition_pipeline_step(seed_document.id, target, from_steps=allowed)

        assert (first, second) == (True, False)

    def test_missing_document_raises(self, integration_pool: None) -> None:
        with pytest.raises(DocumentNotFoundError):
            DocumentsRepository().transition_pipeline_step(
                str(uuid.uuid4()), ProcessingStep.OCR, from_steps=[ProcessingStep.IDLE]
            )


@pytest.mark.integration
class TestPayloads:
    def test_save_payload_clears_other_branches(self, seed_document: Document) -> None:
        repo = DocumentsRepository()
        repo.save_payload(seed_document.id, Classification.TAX, {"tax_processing": {}})
        repo.save_payload(seed_document.id, Classification.FINANCIAL, {"normalized": []})

        stored = repo.find_by_id(seed_document.id)

        assert stored.financial_payload == {"normalized": []}
        assert stored.tax_payload is None
        assert stored.is_processed is True

    def test_mark_processing_failed(self, seed_document: Document) -> None:
        repo = DocumentsRepository()

        repo.mark_processing_failed(seed_document.id, "boom")

        stored = repo.find_by_id(seed_document.id)
        assert stored.ai_summary == PROCESSING_FAILED_SUMMARY
        assert stored.pipeline_step == ProcessingStep.ERROR
        assert stored.pipeline_error == "boom"

    def test_delete_is_owner_scoped(self, seed_document: Document) -> None:
        repo = DocumentsRepository()
        with pytest.raises(DocumentNotFoundError):
            repo.delete(seed_document.id, "someone-else")
        repo.delete(seed_document.id, seed_document.user_id)
        with pytest.raises(DocumentNotFoundError):
            repo.find_by_id(seed_document.id)
