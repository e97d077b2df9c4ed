from typing import Any

import psycopg

from cpadocs.config.settings import Settings
from cpadocs.database.repositories.documents_repository import DocumentsRepository
from cpadocs.database.repositories.notices_repository import NoticesRepository
from cpadocs.documents.exceptions import PipelineError
from cpadocs.documents.models import ServiceResult
from cpadocs.logging.logger import Log
from cpadocs.notices.exceptions import NoticeError
from cpadocs.notices.models import NewNotice, Notice, NoticeResult
from cpadocs.ocr.exceptions import TextExtractionError
from cpadocs.pipeline.models import ClassificationOutcome
from cpadocs.pipeline.stage import ClassificationStage, build_classification_stage
from cpadocs.pipeline.tracker import PipelineStateTracker
from cpadocs.storage.base import BaseStorageGateway
from cpadocs.storage.exceptions import StorageError
from cpadocs.storage.factory import StorageGatewayFactory


class NoticeService:
    """IRS notice operations. Errors are returned as values."""

    def __init__(
        self,
        notice_repo: NoticesRepository,
        storage: BaseStorageGateway,
        stage: ClassificationStage,
    ) -> None:
        self._notice_repo = notice_repo
        self._storage = storage
        self._stage = stage

    def create_notice(self, new: NewNotice) -> NoticeResult:
        try:
            notice = self._notice_repo.create(new)
        except (NoticeError, psycopg.Error) as exc:
            Log.warning(f"Notice creation failed: {exc}")
            return NoticeResult(error=str(exc))
        return NoticeResult(notice=notice)

    def update_notice(self, notice_id: str, user_id: str, fields: dict[str, Any]) -> NoticeResult:
        try:
            self._notice_repo.find_for_user(notice_id, user_id)
            notice = self._notice_repo.update(notice_id, fields)
        except (NoticeError, ValueError, psycopg.Error) as exc:
            return NoticeResult(error=str(exc))
        return NoticeResult(notice=notice)

    def list_notices(self, user_id: str, client_id: str | None = None) -> ServiceResult[list[Notice]]:
        try:
            return ServiceResult(data=self._notice_repo.list_for_user(user_id, client_id))
        except psycopg.Error as exc:
            return ServiceResult(error=str(exc))

    def delete_notice_with_document(self, notice_id: str, user_id: str) -> ServiceResult[bool]:
        """Delete a notice and its document together, then remove the stored file."""
        try:
            blob = self._notice_repo.delete_with_document(notice_id, user_id)
        except (NoticeError, psycopg.Error) as exc:
            return ServiceResult(error=str(exc))

        if blob is not None:
            bucket, path = blob
            try:
                self._storage.remove(bucket, [path])
            except StorageError as exc:
                Log.error(f"Orphaned file {bucket}/{path} after deleting notice {notice_id}: {exc}")
        Log.info(f"Deleted notice {notice_id} with its document")
        return ServiceResult(data=True)

    def reprocess_notice(
        self,
        notice_id: str,
        user_id: str,
    ) -> ServiceResult[ClassificationOutcome]:
        """Re-run classification for the notice's document, refreshing the notice."""
        try:
            notice = self._notice_repo.find_for_user(notice_id, user_id)
        except (NoticeError, psycopg.Error) as exc:
            return ServiceResult(error=str(exc))
        if notice.document_id is None:
            return ServiceResult(error=f"Notice {notice_id} has no source document")

        try:
            outcome = self._stage.run(notice.document_id, user_id)
        except (PipelineError, TextExtractionError, StorageError, psycopg.Error) as exc:
            Log.error(f"Reprocessing notice {notice_id} failed: {exc}")
            return ServiceResult(error=str(exc))
        return ServiceResult(data=outcome)


def build_notice_service(settings: Settings) -> NoticeService:
    """Wire a NoticeService from settings. The connection pool must be open."""
    storage = StorageGatewayFactory.create(settings)
    documents = DocumentsRepository()
    notices = NoticesRepository()
    stage = build_classification_stage(
        settings,
        storage=storage,
        doc_repo=documents,
        notice_repo=notices,
        tracker=PipelineStateTracker(documents),
    )
    return NoticeService(notices, storage, stage)
