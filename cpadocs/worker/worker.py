import threading

import psycopg

from cpadocs.config.settings import Settings
from cpadocs.database.connection import get_connection
from cpadocs.database.models import JobRecord
from cpadocs.database.repositories.job_repository import JobRepository
from cpadocs.logging.logger import Log
from cpadocs.worker.job_runner import JobRunner


class Worker:
    """Classification poll loop: claim -> run -> sleep when the queue is empty."""

    def __init__(
        self,
        job_repo: JobRepository,
        job_runner: JobRunner,
        settings: Settings,
    ) -> None:
        self._job_repo = job_repo
        self._job_runner = job_runner
        self._settings = settings
        self._stopped = threading.Event()

    def stop(self) -> None:
        """Ask the loop to exit after the job in progress."""
        self._stopped.set()

    def run(self, max_jobs: int | None = None) -> int:
        """Poll until stopped or interrupted and return the number of jobs run.

        If max_jobs is set, stop after processing that many jobs (for testing).
        """
        Log.info("Worker started, polling for classification jobs")
        jobs_done = 0
        try:
            while not self._stopped.is_set():
                if max_jobs is not None and jobs_done >= max_jobs:
                    break
                job = self._try_claim_job()
                if job is None:
                    Log.debug("No jobs available, sleeping")
                    self._stopped.wait(self._settings.job_poll_interval_seconds)
                    continue
                self._job_runner.run(job)
                jobs_done += 1
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")
        Log.info(f"Worker stopped after {jobs_done} jobs")
        return jobs_done

    def _try_claim_job(self) -> JobRecord | None:
        """Claim the next pending job; database errors are retried on the next poll."""
        try:
            with get_connection() as conn:
                return self._job_repo.claim_next_job(conn)
        except (psycopg.Error, RuntimeError) as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None
