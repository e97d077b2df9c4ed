from cpadocs.classification.base import BaseDocumentAnalyzer
from cpadocs.classification.factory import AnalyzerFactory
from cpadocs.config.settings import Settings
from cpadocs.database.repositories.documents_repository import DocumentsRepository
from cpadocs.database.repositories.notices_repository import NoticesRepository
from cpadocs.logging.logger import Log
from cpadocs.ocr.factory import PdfExtractorFactory
from cpadocs.pipeline.models import ClassificationOutcome
from cpadocs.pipeline.pipeline import PipelineContext, PipelineStep
from cpadocs.pipeline.steps import (
    AnalyzeStep,
    AwaitApprovalStep,
    BeginOcrStep,
    ExtractTextStep,
    LoadDocumentStep,
    MarkStageFailedStep,
    PersistAnalysisStep,
    UpsertNoticeStep,
)
from cpadocs.pipeline.tracker import PipelineStateTracker
from cpadocs.storage.base import BaseStorageGateway


class ClassificationStage:
    """Runs OCR and classification for one document.

    Pipeline: load -> begin ocr -> extract text -> analyze -> persist
    -> upsert notice -> await approval. On any step failure the failed
    step runs and the original exception propagates.
    """

    def __init__(self, steps: list[PipelineStep], failed_step: PipelineStep) -> None:
        self._steps = steps
        self._failed_step = failed_step

    def run(self, document_id: str, user_id: str) -> ClassificationOutcome:
        """Classify a document synchronously, outside the job queue."""
        return self.process(document_id, None, user_id)

    def process(
        self,
        document_id: str,
        job_id: int | None,
        user_id: str,
    ) -> ClassificationOutcome:
        Log.info(f"Classifying document {document_id} (job {job_id})")
        context = PipelineContext(document_id=document_id, user_id=user_id, job_id=job_id)
        try:
            for step in self._steps:
                context = step.run(context)
        except Exception as exc:
            context.error_message = str(exc)
            self._failed_step.run(context)
            raise

        if context.analysis is None:
            raise ValueError("Classification pipeline finished without an analysis")
        return ClassificationOutcome(
            document_id=document_id,
            analysis=context.analysis,
            notice_id=context.notice_id,
            warnings=list(context.warnings),
        )


def build_classification_stage(
    settings: Settings,
    *,
    storage: BaseStorageGateway,
    doc_repo: DocumentsRepository,
    notice_repo: NoticesRepository,
    tracker: PipelineStateTracker,
    analyzer: BaseDocumentAnalyzer | None = None,
) -> ClassificationStage:
    """Build a ClassificationStage with all required adapters."""
    text_service = PdfExtractorFactory.create_service(settings)
    steps: list[PipelineStep] = [
        LoadDocumentStep(doc_repo),
        BeginOcrStep(tracker),
        ExtractTextStep(storage, text_service, doc_repo),
        AnalyzeStep(analyzer or AnalyzerFactory.create(settings)),
        PersistAnalysisStep(doc_repo),
        UpsertNoticeStep(notice_repo),
        AwaitApprovalStep(tracker),
    ]
    return ClassificationStage(steps=steps, failed_step=MarkStageFailedStep(tracker))
