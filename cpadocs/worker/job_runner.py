import psycopg

from cpadocs.config.settings import Settings
from cpadocs.database.models import JobRecord
from cpadocs.database.repositories.documents_repository import DocumentsRepository
from cpadocs.database.repositories.job_repository import JobRepository
from cpadocs.documents.exceptions import DocumentNotFoundError
from cpadocs.logging.logger import Log
from cpadocs.pipeline.stage import ClassificationStage


class JobRunner:
    """Run one classification job, catch exceptions, and apply retry logic."""

    def __init__(
        self,
        stage: ClassificationStage,
        job_repo: JobRepository,
        doc_repo: DocumentsRepository,
        settings: Settings,
    ) -> None:
        self._stage = stage
        self._job_repo = job_repo
        self._doc_repo = doc_repo
        self._settings = settings

    def run(self, job: JobRecord) -> None:
        """Execute a single job with error handling."""
        Log.info(f"Running job {job.id} for document {job.document_id} (attempt {job.attempts + 1})")
        try:
            outcome = self._stage.process(job.document_id, job.id, job.user_id)
            self._job_repo.mark_done(job.id)
            Log.info(
                f"Job {job.id} completed: document {job.document_id} "
                f"awaits approval as {outcome.analysis.classification}"
            )
        except DocumentNotFoundError as exc:
            # Nothing to retry once the document is gone.
            self._job_repo.mark_failed(job.id, str(exc))
            Log.error(f"Job {job.id} failed permanently: {exc}")
        except Exception as exc:
            self._handle_failure(job, exc)

    def _handle_failure(self, job: JobRecord, exc: Exception) -> None:
        """Increment attempts; mark failed if at max, otherwise back to pending."""
        Log.exception(f"Job {job.id} failed: {exc}")
        if job.attempts + 1 >= self._settings.max_job_attempts:
            self._job_repo.mark_failed(job.id, str(exc))
            self._mark_document_failed(job.document_id, str(exc))
            Log.error(f"Job {job.id} permanently failed after {job.attempts + 1} attempts")
        else:
            self._job_repo.increment_attempts(job.id)
            Log.warning(f"Job {job.id} will be retried (attempt {job.attempts + 1})")

    def _mark_document_failed(self, document_id: str, error: str) -> None:
        try:
            self._doc_repo.mark_processing_failed(document_id, error)
        except (DocumentNotFoundError, psycopg.Error) as exc:
            Log.warning(f"Could not flag document {document_id} as failed: {exc}")
