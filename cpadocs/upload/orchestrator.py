import dataclasses
from collections.abc import Callable, Sequence

import psycopg

from cpadocs.config.settings import Settings
from cpadocs.database.repositories.documents_repository import DocumentsRepository
from cpadocs.database.repositories.job_repository import JobRepository
from cpadocs.documents.exceptions import PipelineError
from cpadocs.documents.models import Document, NewDocument, ProcessingStep
from cpadocs.logging.logger import Log
from cpadocs.pipeline.tracker import PipelineStateTracker
from cpadocs.storage.base import BaseStorageGateway
from cpadocs.storage.exceptions import StorageError
from cpadocs.upload.exceptions import FileValidationError
from cpadocs.upload.image_compressor import ImageCompressor
from cpadocs.upload.models import (
    UploadFile,
    UploadOptions,
    UploadProgress,
    UploadResult,
    UploadStatus,
)
from cpadocs.upload.naming import (
    bucket_for_category,
    detect_document_category,
    generate_unique_filename,
)
from cpadocs.upload.validation import validate_file

ProgressCallback = Callable[[UploadProgress], None]
BatchProgressCallback = Callable[[list[UploadProgress]], None]

_QUEUEABLE_STEPS = frozenset({ProcessingStep.IDLE})


class UploadOrchestrator:
    """Validate -> compress -> store -> record -> schedule classification.

    Progress is reported at 10, 30, 60, 80 and 100 percent. A blob is removed
    again only when its document row could not be created.
    """

    def __init__(
        self,
        storage: BaseStorageGateway,
        documents: DocumentsRepository,
        jobs: JobRepository,
        tracker: PipelineStateTracker,
        settings: Settings,
        compressor: ImageCompressor | None = None,
    ) -> None:
        self._storage = storage
        self._documents = documents
        self._jobs = jobs
        self._tracker = tracker
        self._settings = settings
        self._compressor = compressor or ImageCompressor(
            threshold_bytes=settings.image_compression_threshold_bytes,
            max_dimension=settings.image_max_dimension,
            quality=settings.image_quality,
        )

    def upload(
        self,
        file: UploadFile,
        user_id: str,
        options: UploadOptions | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResult:
        options = options or UploadOptions()

        def report(
            progress: int,
            status: UploadStatus,
            error: str | None = None,
            document_id: str | None = None,
        ) -> None:
            if on_progress is not None:
                on_progress(UploadProgress(file.filename, progress, status, error, document_id))

        def fail(error: str) -> UploadResult:
            report(0, UploadStatus.ERROR, error)
            return UploadResult(error=error)

        try:
            validate_file(file, self._settings.max_upload_size_bytes)
        except FileValidationError as exc:
            Log.warning(f"Rejected upload {file.filename}: {exc}")
            return fail(str(exc))

        report(10, UploadStatus.UPLOADING)

        processed = self._compressor.compress(file)
        category = options.category or detect_document_category(file.filename)
        storage_path = generate_unique_filename(file.filename, user_id)
        bucket = bucket_for_category(
            category,
            notices_bucket=self._settings.notices_bucket,
            documents_bucket=self._settings.client_documents_bucket,
        )

        report(30, UploadStatus.UPLOADING)

        try:
            self._storage.upload(bucket, storage_path, processed.content, processed.mime_type)
        except StorageError as exc:
            Log.error(f"Storage upload failed for {file.filename}: {exc}")
            return fail(str(exc))

        report(60, UploadStatus.UPLOADING)

        try:
            document = self._documents.create(
                NewDocument(
                    user_id=user_id,
                    filename=storage_path.rsplit("/", 1)[-1],
                    original_filename=file.filename,
                    file_size=processed.size,
                    mime_type=file.mime_type,
                    document_type=category,
                    storage_bucket=bucket,
                    storage_path=storage_path,
                    client_id=options.client_id,
                    tags=list(options.tags),
                )
            )
        except psycopg.Error as exc:
            Log.error(f"Document record creation failed for {file.filename}: {exc}")
            self._remove_orphan(bucket, storage_path)
            return fail(str(exc))

        report(80, UploadStatus.PROCESSING, document_id=document.id)

        if options.enable_ocr or options.enable_ai:
            self._schedule_classification(document)

        report(100, UploadStatus.COMPLETED, document_id=document.id)
        Log.info(f"Uploaded {file.filename} as document {document.id} ({category})")
        return UploadResult(document=document)

    def upload_many(
        self,
        files: Sequence[UploadFile],
        user_id: str,
        options: UploadOptions | None = None,
        on_progress: BatchProgressCallback | None = None,
    ) -> list[UploadResult]:
        """Upload files one after another, reporting the whole batch each time."""
        items = [UploadProgress(filename=f.filename) for f in files]

        def publish() -> None:
            if on_progress is not None:
                on_progress([dataclasses.replace(item) for item in items])

        publish()
        results: list[UploadResult] = []
        for index, file in enumerate(files):

            def update(progress: UploadProgress, index: int = index) -> None:
                items[index] = progress
                publish()

            results.append(self.upload(file, user_id, options, update))
        return results

    def _remove_orphan(self, bucket: str, path: str) -> None:
        try:
            self._storage.remove(bucket, [path])
        except StorageError as exc:
            Log.error(f"Could not remove orphaned file {bucket}/{path}: {exc}")

    def _schedule_classification(self, document: Document) -> None:
        # Must precede enqueue; the worker may finish the stage first.
        try:
            self._tracker.transition(
                document.id, ProcessingStep.OCR, from_steps=_QUEUEABLE_STEPS
            )
        except (PipelineError, psycopg.Error) as exc:
            Log.warning(f"Could not mark document {document.id} as queued: {exc}")

        try:
            job_id = self._jobs.enqueue(document.id, document.user_id)
        except psycopg.Error as exc:
            Log.error(f"Could not schedule classification for document {document.id}: {exc}")
            self._unmark_queued(document.id)
            return
        Log.info(f"Queued classification job {job_id} for document {document.id}")

    def _unmark_queued(self, document_id: str) -> None:
        try:
            self._tracker.reset(document_id)
        except (PipelineError, psycopg.Error) as exc:
            Log.warning(f"Document {document_id} left marked as queued: {exc}")
