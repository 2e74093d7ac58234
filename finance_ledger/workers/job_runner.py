"""Background processing of upload jobs: parse the statement, then suggest categories."""

from pathlib import Path

from finance_ledger.core.db import Category
from finance_ledger.core.models import JobStatus, StagedTransaction, UploadJob
from finance_ledger.core.utils import get_logger, utcnow_iso
from finance_ledger.services.file_service import FileService
from finance_ledger.services.upload_service import UploadService

logger = get_logger("finance-ledger.worker")


class JobRunner:
    """JobRunner moves an upload job from pending to completed or failed."""

    def __init__(self, upload_service: UploadService, file_service: FileService) -> None:
        """Initialize JobRunner with the job store and the upload file storage."""
        self.upload_service = upload_service
        self.file_service = file_service

    def run_job(self, job_id: str, upload_path: Path) -> None:
        """Parse the uploaded file, categorize it if an agent is configured, and stage the result on the job."""
        job = self.upload_service.get_job(job_id)
        logger.info(f"Starting job: {job_id}, file: {job.filename}")
        job.status = JobStatus.PROCESSING
        try:
            content = self.file_service.get_text(upload_path)
            result = self.upload_service.registry.parse(content)
            job.bank_format = result.bank_name
            job.total_count = len(result.transactions)
            job.processed_count = 0
            staged = [StagedTransaction(parsed=txn) for txn in result.transactions]
            self._categorize(job, staged)
            job.transactions = staged
            job.processed_count = len(staged)
            job.completed_at = utcnow_iso()
            job.status = JobStatus.COMPLETED
            logger.info(f"Job {job_id} completed: {len(staged)} {result.bank_name} transactions staged")
        except Exception as exc:
            logger.exception(f"Error processing job {job_id}")
            job.error_message = str(exc)
            job.completed_at = utcnow_iso()
            job.status = JobStatus.FAILED
        finally:
            self.file_service.delete_file(upload_path)

    def _categorize(self, job: UploadJob, staged: list[StagedTransaction]) -> None:
        """Apply agent suggestions to the staged transactions; failures leave them uncategorized."""
        agent = self.upload_service.agent
        if agent is None:
            logger.warning(f"Job {job.id}: no categorization agent configured, transactions stay uncategorized")
            return
        if not staged:
            return
        try:
            db = self.upload_service.db_factory()
            try:
                categories: list[Category] = db.list_categories()
                by_name = {c.name.lower(): (c.id, c.name) for c in categories}
            finally:
                db.close()
            payload = [
                {
                    "transactionId": idx,
                    "date": s.parsed.date.isoformat(),
                    "description": s.parsed.description,
                    "merchant": s.parsed.merchant,
                    "amount": float(s.parsed.amount),
                    "transaction_type": s.parsed.direction,
                }
                for idx, s in enumerate(staged)
            ]
            results = agent.categorize_transactions(payload, [name for _, name in by_name.values()])
        except Exception:
            logger.exception(f"Job {job.id}: categorization failed, continuing uncategorized")
            return

        applied = 0
        for result in results:
            if not 0 <= result.transaction_id < len(staged):
                logger.warning(f"Job {job.id}: suggestion for unknown transaction {result.transaction_id}")
                continue
            match = by_name.get(result.suggested_category.strip().lower())
            if match is None:
                logger.warning(
                    f"Job {job.id}: category not found: {result.suggested_category} "
                    f"for transaction {result.transaction_id}"
                )
                continue
            target = staged[result.transaction_id]
            target.category_id, target.suggested_category = match
            target.confidence = result.confidence
            target.reasoning = result.reasoning
            applied += 1
            job.processed_count = applied
        logger.info(f"Job {job.id}: applied {applied} of {len(results)} category suggestions")


def run_job(job_id: str, upload_path: Path, upload_service: UploadService, file_service: FileService) -> None:
    """Top-level function to run a job using JobRunner (for background tasks)."""
    runner = JobRunner(upload_service, file_service)
    runner.run_job(job_id, upload_path)
