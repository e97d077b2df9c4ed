"""Per-document pipeline state, persisted on the documents row.

The in-memory map is a cache for status rendering. Every transition is
written through to documents.pipeline_step with a compare-and-set, so two
sessions racing on the same document cannot both win a transition.
"""

from collections.abc import Collection, Iterable
from dataclasses import dataclass

from cpadocs.database.repositories.documents_repository import DocumentsRepository
from cpadocs.documents.exceptions import InvalidTransitionError
from cpadocs.documents.models import Classification, Document, ProcessingStep
from cpadocs.logging.logger import Log

_STEP = ProcessingStep

ALLOWED_TRANSITIONS: dict[ProcessingStep, frozenset[ProcessingStep]] = {
    _STEP.IDLE: frozenset({_STEP.OCR}),
    _STEP.OCR: frozenset({_STEP.OCR, _STEP.CLASSIFICATION, _STEP.ERROR}),
    _STEP.CLASSIFICATION: frozenset({_STEP.OCR, _STEP.SPECIFIC_PROCESSING}),
    _STEP.SPECIFIC_PROCESSING: frozenset({_STEP.COMPLETED, _STEP.ERROR}),
    _STEP.COMPLETED: frozenset({_STEP.OCR, _STEP.SPECIFIC_PROCESSING}),
    _STEP.ERROR: frozenset({_STEP.OCR, _STEP.SPECIFIC_PROCESSING}),
}


@dataclass(frozen=True)
class ProcessingState:
    is_processing: bool = False
    classification: Classification | None = None
    needs_approval: bool = False
    processing_step: ProcessingStep = ProcessingStep.IDLE
    error: str | None = None


def predecessors(to_step: ProcessingStep) -> frozenset[ProcessingStep]:
    """Steps from which to_step may be entered. Any step may reset to idle."""
    if to_step == ProcessingStep.IDLE:
        return frozenset(ProcessingStep)
    return frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if to_step in targets)


def can_transition(from_step: ProcessingStep, to_step: ProcessingStep) -> bool:
    return from_step in predecessors(to_step)


def state_for(
    step: ProcessingStep,
    classification: Classification | None = None,
    error: str | None = None,
) -> ProcessingState:
    return ProcessingState(
        is_processing=step in (ProcessingStep.OCR, ProcessingStep.SPECIFIC_PROCESSING),
        classification=classification,
        needs_approval=step == ProcessingStep.CLASSIFICATION,
        processing_step=step,
        error=error if step == ProcessingStep.ERROR else None,
    )


def infer_step(document: Document) -> ProcessingStep:
    """Derive a step for rows written before pipeline_step was tracked."""
    if document.pipeline_step is not None:
        return document.pipeline_step
    if document.has_payload:
        return ProcessingStep.COMPLETED
    if document.classification is not None:
        return ProcessingStep.CLASSIFICATION
    return ProcessingStep.IDLE


class PipelineStateTracker:
    def __init__(self, documents: DocumentsRepository) -> None:
        self._documents = documents
        self._states: dict[str, ProcessingState] = {}

    def get(self, document_id: str) -> ProcessingState:
        """Cached state, or idle for documents the tracker has not seen."""
        return self._states.get(document_id, ProcessingState())

    def transition(
        self,
        document_id: str,
        to_step: ProcessingStep,
        *,
        classification: Classification | None = None,
        error: str | None = None,
        from_steps: Collection[ProcessingStep] | None = None,
    ) -> ProcessingState:
        """Persist a step change and update the cache.

        from_steps narrows the steps the move is allowed from; by default any
        predecessor of to_step is accepted.

        Raises:
            InvalidTransitionError: if the persisted step does not allow to_step.
            DocumentNotFoundError: if the document does not exist.
        """
        moved = self._documents.transition_pipeline_step(
            document_id,
            to_step,
            from_steps=predecessors(to_step) if from_steps is None else from_steps,
            error=error,
        )
        if not moved:
            raise InvalidTransitionError(
                f"Document {document_id} cannot move to '{to_step}' from its current step"
            )

        previous = self._states.get(document_id)
        if classification is None and previous is not None:
            classification = previous.classification
        state = state_for(to_step, classification, error)
        self._states[document_id] = state
        Log.info(f"Document {document_id} pipeline step -> {to_step}")
        return state

    def reset(self, document_id: str) -> ProcessingState:
        """Return a document to idle and drop its cached entry."""
        self._documents.transition_pipeline_step(document_id, ProcessingStep.IDLE)
        self._states.pop(document_id, None)
        Log.info(f"Document {document_id} pipeline reset")
        return ProcessingState()

    def forget(self, document_id: str) -> None:
        """Drop a cached entry, e.g. after the document is deleted."""
        self._states.pop(document_id, None)

    def rebuild(self, documents: Iterable[Document]) -> dict[str, ProcessingState]:
        """Refresh the cache from persisted rows, e.g. when a session starts."""
        rebuilt: dict[str, ProcessingState] = {}
        for document in documents:
            state = state_for(
                infer_step(document),
                document.classification,
                document.pipeline_error,
            )
            self._states[document.id] = state
            rebuilt[document.id] = state
        return rebuilt
