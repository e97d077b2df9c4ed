import psycopg

from cpadocs.classification.base import BaseDocumentAnalyzer
from cpadocs.classification.models import DocumentAnalysis
from cpadocs.database.repositories.documents_repository import DocumentsRepository
from cpadocs.database.repositories.notices_repository import NoticesRepository
from cpadocs.documents.exceptions import PipelineError
from cpadocs.documents.models import Document, DocumentCategory, ProcessingStep
from cpadocs.logging.logger import Log
from cpadocs.notices.exceptions import NoticeError
from cpadocs.notices.models import NewNotice, Notice
from cpadocs.ocr.service import TextExtractionService
from cpadocs.pipeline.pipeline import PipelineContext, PipelineStep
from cpadocs.pipeline.tracker import PipelineStateTracker
from cpadocs.storage.base import BaseStorageGateway


def _require_document(context: PipelineContext) -> Document:
    if context.document is None:
        raise ValueError("PipelineContext.document must be set before this step")
    return context.document


def _require_analysis(context: PipelineContext) -> DocumentAnalysis:
    if context.analysis is None:
        raise ValueError("PipelineContext.analysis must be set before this step")
    return context.analysis


class LoadDocumentStep(PipelineStep):
    def __init__(self, doc_repo: DocumentsRepository) -> None:
        self._doc_repo = doc_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        context.document = self._doc_repo.find_for_user(context.document_id, context.user_id)
        return context


class BeginOcrStep(PipelineStep):
    def __init__(self, tracker: PipelineStateTracker) -> None:
        self._tracker = tracker

    def run(self, context: PipelineContext) -> PipelineContext:
        document = _require_document(context)
        self._tracker.transition(
            context.document_id,
            ProcessingStep.OCR,
            classification=document.classification,
        )
        context.ocr_started = True
        return context


class ExtractTextStep(PipelineStep):
    """Reuses stored text, otherwise downloads the file and extracts it."""

    def __init__(
        self,
        storage: BaseStorageGateway,
        text_service: TextExtractionService,
        doc_repo: DocumentsRepository,
    ) -> None:
        self._storage = storage
        self._text_service = text_service
        self._doc_repo = doc_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        document = _require_document(context)
        if document.ocr_text:
            context.extracted_text = document.ocr_text
            Log.info(f"Reusing stored text for document {context.document_id}")
            return context

        content = self._storage.download(document.storage_bucket, document.storage_path)
        context.extracted_text = self._text_service.extract(
            content,
            document.mime_type,
            document.original_filename,
        )
        self._doc_repo.update_ocr_text(context.document_id, context.extracted_text)
        Log.info(
            f"Extracted {len(context.extracted_text)} chars from document {context.document_id}"
        )
        return context


class AnalyzeStep(PipelineStep):
    def __init__(self, analyzer: BaseDocumentAnalyzer) -> None:
        self._analyzer = analyzer

    def run(self, context: PipelineContext) -> PipelineContext:
        document = _require_document(context)
        context.analysis = self._analyzer.analyze(
            context.extracted_text,
            document.original_filename,
        )
        Log.info(
            f"Classified document {context.document_id} as "
            f"{context.analysis.classification} ({context.analysis.source})"
        )
        return context


class PersistAnalysisStep(PipelineStep):
    def __init__(self, doc_repo: DocumentsRepository) -> None:
        self._doc_repo = doc_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        analysis = _require_analysis(context)
        self._doc_repo.update_analysis(
            context.document_id,
            ocr_text=context.extracted_text,
            ai_summary=analysis.summary,
            classification=analysis.classification,
            secondary_classification=(
                analysis.secondary_classification.value
                if analysis.secondary_classification is not None
                else None
            ),
        )
        return context


class UpsertNoticeStep(PipelineStep):
    """Creates or refreshes the notice of an irs_notice document.

    Failures are recorded as warnings; the classification result stands.
    """

    def __init__(self, notice_repo: NoticesRepository) -> None:
        self._notice_repo = notice_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        document = _require_document(context)
        if document.document_type != DocumentCategory.TAX_NOTICE:
            return context
        analysis = _require_analysis(context)

        try:
            notice = self._upsert(document, analysis)
        except (NoticeError, psycopg.Error) as exc:
            Log.error(f"Notice upsert failed for document {document.id}: {exc}")
            context.warnings.append(f"Notice was not saved: {exc}")
            return context

        context.notice_id = notice.id
        Log.info(f"Notice {notice.id} saved for document {document.id}")
        return context

    def _upsert(self, document: Document, analysis: DocumentAnalysis) -> Notice:
        recommendations = "\n".join(analysis.recommendations)
        existing = self._notice_repo.find_by_document_id(document.id)
        if existing is not None:
            return self._notice_repo.update(
                existing.id,
                {
                    "notice_type": analysis.notice_type,
                    "notice_number": analysis.notice_number,
                    "tax_year": analysis.tax_year,
                    "amount_owed": analysis.amount_owed,
                    "deadline_date": analysis.deadline_date,
                    "priority": analysis.priority,
                    "ai_summary": analysis.summary,
                    "ai_recommendations": recommendations,
                },
            )
        return self._notice_repo.create(
            NewNotice(
                user_id=document.user_id,
                client_id=document.client_id,
                document_id=document.id,
                notice_type=analysis.notice_type,
                notice_number=analysis.notice_number,
                tax_year=analysis.tax_year,
                amount_owed=analysis.amount_owed,
                deadline_date=analysis.deadline_date,
                priority=analysis.priority,
                ai_summary=analysis.summary,
                ai_recommendations=recommendations,
            )
        )


class AwaitApprovalStep(PipelineStep):
    def __init__(self, tracker: PipelineStateTracker) -> None:
        self._tracker = tracker

    def run(self, context: PipelineContext) -> PipelineContext:
        analysis = _require_analysis(context)
        self._tracker.transition(
            context.document_id,
            ProcessingStep.CLASSIFICATION,
            classification=analysis.classification,
        )
        return context


class MarkStageFailedStep(PipelineStep):
    """Moves an in-flight document to the error step after a stage failure."""

    def __init__(self, tracker: PipelineStateTracker) -> None:
        self._tracker = tracker

    def run(self, context: PipelineContext) -> PipelineContext:
        if not context.ocr_started:
            return context
        try:
            self._tracker.transition(
                context.document_id,
                ProcessingStep.ERROR,
                error=context.error_message,
            )
        except (PipelineError, psycopg.Error) as exc:
            Log.warning(f"Could not record failure for document {context.document_id}: {exc}")
        return context
