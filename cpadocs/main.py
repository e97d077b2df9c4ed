from cpadocs.config.settings import Settings
from cpadocs.database.connection import close_pool, init_pool
from cpadocs.database.repositories.documents_repository import DocumentsRepository
from cpadocs.database.repositories.job_repository import JobRepository
from cpadocs.database.repositories.notices_repository import NoticesRepository
from cpadocs.logging.logger import Log
from cpadocs.pipeline.stage import build_classification_stage
from cpadocs.pipeline.tracker import PipelineStateTracker
from cpadocs.storage.factory import StorageGatewayFactory
from cpadocs.worker.job_runner import JobRunner
from cpadocs.worker.worker import Worker


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        doc_repo = DocumentsRepository()
        stage = build_classification_stage(
            settings,
            storage=StorageGatewayFactory.create(settings),
            doc_repo=doc_repo,
            notice_repo=NoticesRepository(),
            tracker=PipelineStateTracker(doc_repo),
        )
        job_repo = JobRepository(settings.max_job_attempts)
        job_runner = JobRunner(stage, job_repo, doc_repo, settings)
        worker = Worker(job_repo, job_runner, settings)
        worker.run()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
