"""Upload job store and confirmation.

UploadService owns the process-wide map of upload jobs. A job is created ``pending`` when a file is accepted, is
advanced by the background job runner, and is removed once its staged transactions have been confirmed into the
ledger. Jobs are never persisted, so a restart drops any job that has not been confirmed.
"""

import threading
import uuid
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError

from finance_ledger.agents.base import BaseAgent
from finance_ledger.core.db import DBHelper, get_db
from finance_ledger.core.errors import JobNotCompletedError, JobNotFoundError, PersistenceError, RecordNotFoundError
from finance_ledger.core.models import (
    CategoryCorrection,
    JobStatus,
    StagedTransaction,
    StagedTransactionOut,
    UploadJob,
    UploadJobStatus,
)
from finance_ledger.core.utils import get_logger, utcnow_iso
from finance_ledger.parsers.registry import ParserRegistry

logger = get_logger("finance-ledger.upload")


def staged_to_row(staged: StagedTransaction) -> dict:
    """Map a staged transaction onto the persisted transaction columns."""
    parsed = staged.parsed
    return {
        "date": parsed.date,
        "description": parsed.description,
        "amount": parsed.amount,
        "category_id": staged.category_id,
        "merchant": parsed.merchant,
        "transaction_type": parsed.direction,
        "original_description": parsed.original_description,
        "confidence_score": staged.confidence,
        "manually_categorized": staged.manually_categorized,
    }


class UploadService:
    """Holds upload jobs in memory and writes confirmed jobs to the ledger."""

    def __init__(
        self,
        registry: ParserRegistry,
        agent: BaseAgent | None = None,
        db_factory: Callable[[], DBHelper] = get_db,
    ) -> None:
        """Initialize the service with a parser registry, an optional categorization agent and a DB factory."""
        self.registry = registry
        self.agent = agent
        self.db_factory = db_factory
        self._jobs: dict[str, UploadJob] = {}
        self._lock = threading.Lock()

    def create_job(self, filename: str) -> UploadJob:
        """Register a new pending job for an accepted file."""
        job = UploadJob(id=str(uuid.uuid4()), filename=filename, created_at=utcnow_iso())
        with self._lock:
            self._jobs[job.id] = job
        logger.info(f"Created upload job {job.id} for {filename}")
        return job

    def get_job(self, job_id: str) -> UploadJob:
        """Return the job with this id."""
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def discard(self, job_id: str) -> None:
        """Forget a job whose upload was rejected before processing started."""
        with self._lock:
            self._jobs.pop(job_id, None)

    def job_status(self, job_id: str) -> UploadJobStatus:
        """Build the client-facing status of a job, including staged transactions once completed."""
        job = self.get_job(job_id)
        staged = [
            StagedTransactionOut(
                transaction_id=idx,
                date=s.parsed.date,
                description=s.parsed.description,
                amount=s.parsed.amount,
                transaction_type=s.parsed.direction,
                merchant=s.parsed.merchant,
                original_description=s.parsed.original_description,
                category_id=s.category_id,
                suggested_category=s.suggested_category,
                confidence=s.confidence,
            )
            for idx, s in enumerate(job.transactions)
        ]
        return UploadJobStatus(
            id=job.id,
            filename=job.filename,
            status=job.status,
            total_count=job.total_count,
            processed_count=job.processed_count,
            bank_format=job.bank_format,
            error_message=job.error_message,
            created_at=job.created_at,
            completed_at=job.completed_at,
            transactions=staged,
        )

    def supported_banks(self) -> list[str]:
        """List the bank formats uploads can be parsed with."""
        return self.registry.available()

    def confirm(self, job_id: str, corrections: list[CategoryCorrection] | None = None) -> int:
        """Persist a completed job's staged transactions and forget the job.

        Corrections address staged transactions by their index; indexes outside the staged list are ignored. A
        correction naming an unknown category rejects the whole confirm before anything is changed. If the database
        write fails the job stays staged so the caller can retry.
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if job.status != JobStatus.COMPLETED:
                raise JobNotCompletedError(job_id, job.status.value)

            applicable = []
            for correction in corrections or []:
                if 0 <= correction.transaction_id < len(job.transactions):
                    applicable.append(correction)
                else:
                    logger.warning(f"Ignoring correction for unknown transaction {correction.transaction_id}")

            db = self.db_factory()
            try:
                if applicable:
                    missing = db.missing_category_ids(c.category_id for c in applicable)
                    if missing:
                        msg = f"Category not found: {', '.join(str(i) for i in sorted(missing))}"
                        raise RecordNotFoundError(msg)
                for correction in applicable:
                    staged = job.transactions[correction.transaction_id]
                    staged.category_id = correction.category_id
                    staged.manually_categorized = True
                saved = db.bulk_create_transactions(staged_to_row(s) for s in job.transactions)
            except SQLAlchemyError as exc:
                logger.exception(f"Failed to save transactions for job {job_id}")
                msg = f"Failed to save transactions: {exc}"
                raise PersistenceError(msg) from exc
            finally:
                db.close()

            del self._jobs[job_id]
        logger.info(f"Confirmed upload job {job_id}: saved {saved} transactions")
        return saved
