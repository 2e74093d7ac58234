"""Tests for the upload job store, the background job runner and confirmation."""

from pathlib import Path

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from finance_ledger.agents.base import BaseAgent
from finance_ledger.core.db import SessionLocal, Transaction, get_db
from finance_ledger.core.errors import (
    CategorizationError,
    JobNotCompletedError,
    JobNotFoundError,
    PersistenceError,
    RecordNotFoundError,
)
from finance_ledger.core.models import CategorizationResult, CategoryCorrection, JobStatus, SpendingAnalysis
from finance_ledger.parsers import default_registry
from finance_ledger.services.file_service import FileService
from finance_ledger.services.upload_service import UploadService
from finance_ledger.workers.job_runner import run_job
from tests.factories import CHASE_CSV


class CategorizingOnlyAgent(BaseAgent):
    """An agent that only takes part in imports."""

    def analyze_spending(self, start_date: str, end_date: str, transactions: list[dict]) -> SpendingAnalysis:
        raise AssertionError("Imports never analyze spending")

    def chat(self, message: str, history: list[dict], context: str = "") -> str:
        raise AssertionError("Imports never chat")


class StaticAgent(CategorizingOnlyAgent):
    """Returns fixed suggestions and records what it was asked."""

    def __init__(self, results: list[CategorizationResult]) -> None:
        self.results = results
        self.seen: list[tuple[list[dict], list[str]]] = []

    def categorize_transactions(self, transactions: list[dict], categories: list[str]) -> list[CategorizationResult]:
        self.seen.append((transactions, categories))
        return self.results


class BrokenAgent(CategorizingOnlyAgent):
    """Always fails like an unavailable LLM."""

    def categorize_transactions(self, transactions: list[dict], categories: list[str]) -> list[CategorizationResult]:
        raise CategorizationError("Invalid response from categorization agent")


class FailingDB:
    """A DBHelper stand-in whose bulk insert always fails."""

    def __init__(self) -> None:
        self.closed = False

    def bulk_create_transactions(self, rows: object) -> int:
        raise OperationalError("INSERT INTO transactions", {}, Exception("database is locked"))

    def close(self) -> None:
        self.closed = True


def _saved_count() -> int:
    with SessionLocal() as session:
        return session.scalar(select(func.count(Transaction.id)))


def _run(service: UploadService, tmp_path: Path, content: str | bytes = CHASE_CSV) -> str:
    files = FileService(tmp_path)
    job = service.create_job("statement.csv")
    path = files.save_file(job.id, content if isinstance(content, bytes) else content.encode())
    run_job(job.id, path, service, files)
    if path.exists():
        msg = "The uploaded file should be removed once the job has run"
        raise AssertionError(msg)
    return job.id


def test_job_completes_uncategorized_without_agent(tmp_path: Path) -> None:
    """Without an agent the job still completes with the parsed transactions staged."""
    service = UploadService(default_registry())
    job_id = _run(service, tmp_path)
    status = service.job_status(job_id)
    if status.status != JobStatus.COMPLETED or status.bank_format != "Chase":
        msg = f"Unexpected status: {status}"
        raise AssertionError(msg)
    if (status.total_count, status.processed_count, len(status.transactions)) != (2, 2, 2):
        msg = f"Unexpected counts: {status}"
        raise AssertionError(msg)
    if any(t.category_id is not None for t in status.transactions):
        msg = "Transactions should be uncategorized"
        raise AssertionError(msg)


def test_cp1252_export_is_imported(tmp_path: Path) -> None:
    """An export saved as Windows-1252 still parses, with accented descriptions intact."""
    content = (
        "Posting Date,Description,Amount,Type\n"
        "01/02/2024,STARBUCKS #123,-5.25,DEBIT\n"
        "01/04/2024,CAFÉ ROUGE,-12.50,DEBIT\n"
    ).encode("cp1252")
    service = UploadService(default_registry())
    status = service.job_status(_run(service, tmp_path, content))
    if status.status != JobStatus.COMPLETED or len(status.transactions) != 2:
        msg = f"Expected a completed job with 2 transactions, got {status}"
        raise AssertionError(msg)
    if status.transactions[1].description != "CAFÉ ROUGE":
        msg = f"Accented description mangled: {status.transactions[1].description!r}"
        raise AssertionError(msg)


def test_agent_suggestions_are_applied(tmp_path: Path) -> None:
    """Suggestions matching a known category (any case) are applied; unknown names are ignored."""
    agent = StaticAgent(
        [
            CategorizationResult(transactionId=0, suggestedCategory="dining", confidence=0.8),
            CategorizationResult(transactionId=1, suggestedCategory="Lottery Winnings", confidence=0.9),
            CategorizationResult(transactionId=7, suggestedCategory="Income", confidence=0.9),
        ]
    )
    service = UploadService(default_registry(), agent)
    status = service.job_status(_run(service, tmp_path))

    db = get_db()
    try:
        dining_id = next(c.id for c in db.list_categories() if c.name == "Dining")
    finally:
        db.close()
    coffee, payroll = status.transactions
    if (coffee.category_id, coffee.suggested_category, coffee.confidence) != (dining_id, "Dining", 0.8):
        msg = f"Suggestion not applied: {coffee}"
        raise AssertionError(msg)
    if payroll.category_id is not None:
        msg = f"Unknown category should be ignored: {payroll}"
        raise AssertionError(msg)
    payload, names = agent.seen[0]
    if [p["transactionId"] for p in payload] != [0, 1] or "Dining" not in names:
        msg = f"Agent received unexpected input: {payload}, {names}"
        raise AssertionError(msg)


def test_categorization_failure_does_not_fail_job(tmp_path: Path) -> None:
    """A broken agent leaves the transactions uncategorized and the job completed."""
    service = UploadService(default_registry(), BrokenAgent())
    status = service.job_status(_run(service, tmp_path))
    if status.status != JobStatus.COMPLETED or status.error_message is not None:
        msg = f"Job should complete despite categorization failure: {status}"
        raise AssertionError(msg)


def test_unrecognized_file_fails_job(tmp_path: Path) -> None:
    """A file no bank format recognizes moves the job to failed with the reason recorded."""
    service = UploadService(default_registry())
    status = service.job_status(_run(service, tmp_path, "Date,Payee,Amount\n2024-01-01,X,1.00\n"))
    if status.status != JobStatus.FAILED or "Unable to detect bank format" not in (status.error_message or ""):
        msg = f"Expected failed job with format error, got {status}"
        raise AssertionError(msg)


def test_confirm_persists_with_corrections(tmp_path: Path) -> None:
    """Confirm writes every staged transaction, applying corrections as manual categorizations."""
    service = UploadService(default_registry())
    job_id = _run(service, tmp_path)
    db = get_db()
    try:
        income_id = next(c.id for c in db.list_categories() if c.name == "Income")
    finally:
        db.close()

    saved = service.confirm(
        job_id,
        [
            CategoryCorrection(transactionId=1, categoryId=income_id),
            CategoryCorrection(transactionId=99, categoryId=income_id),
        ],
    )
    if saved != 2 or _saved_count() != 2:
        msg = f"Expected 2 saved transactions, got {saved} / {_saved_count()}"
        raise AssertionError(msg)
    with SessionLocal() as session:
        payroll = session.scalars(select(Transaction).where(Transaction.merchant == "PAYROLL DEPOSIT")).one()
    if payroll.category_id != income_id or not payroll.manually_categorized or payroll.transaction_type != "credit":
        msg = f"Correction not persisted: {payroll.category_id}, {payroll.manually_categorized}"
        raise AssertionError(msg)


def test_confirm_with_unknown_category_writes_nothing(tmp_path: Path) -> None:
    """A correction naming a missing category rejects the confirm and leaves the job staged and untouched."""
    service = UploadService(default_registry())
    job_id = _run(service, tmp_path)
    with pytest.raises(RecordNotFoundError, match="Category not found: 999999"):
        service.confirm(job_id, [CategoryCorrection(transactionId=0, categoryId=999999)])
    if _saved_count() != 0:
        msg = "Nothing should be written when a correction is invalid"
        raise AssertionError(msg)
    staged = service.get_job(job_id).transactions[0]
    if staged.category_id is not None or staged.manually_categorized:
        msg = f"The staged transaction should be unchanged: {staged}"
        raise AssertionError(msg)
    if service.confirm(job_id) != 2:
        msg = "The job should still be confirmable without the bad correction"
        raise AssertionError(msg)


def test_confirm_twice_reports_missing_job(tmp_path: Path) -> None:
    """The first confirm forgets the job, so a second confirm fails with job not found."""
    service = UploadService(default_registry())
    job_id = _run(service, tmp_path)
    service.confirm(job_id)
    with pytest.raises(JobNotFoundError, match="not found"):
        service.confirm(job_id)
    if _saved_count() != 2:
        msg = "The second confirm must not write anything"
        raise AssertionError(msg)


def test_confirm_before_completion_writes_nothing() -> None:
    """A pending job cannot be confirmed and nothing touches the database."""
    opened: list[object] = []
    service = UploadService(default_registry(), db_factory=lambda: opened.append(1))
    job = service.create_job("statement.csv")
    with pytest.raises(JobNotCompletedError, match="not completed"):
        service.confirm(job.id)
    if opened or service.get_job(job.id).status != JobStatus.PENDING:
        msg = "Confirming a pending job must not open the database or change the job"
        raise AssertionError(msg)


def test_persistence_failure_keeps_job_staged(tmp_path: Path) -> None:
    """A failed write surfaces as PersistenceError and the job can be confirmed again."""
    failing = FailingDB()
    service = UploadService(default_registry(), db_factory=lambda: failing)
    job_id = _run(service, tmp_path)
    with pytest.raises(PersistenceError, match="Failed to save transactions"):
        service.confirm(job_id)
    if not failing.closed or service.get_job(job_id).status != JobStatus.COMPLETED:
        msg = "Job should remain staged after a failed write"
        raise AssertionError(msg)

    service.db_factory = get_db
    if service.confirm(job_id) != 2:
        msg = "Retrying the confirm should save the staged transactions"
        raise AssertionError(msg)


def test_unknown_job_id() -> None:
    """Looking up an unknown job raises JobNotFoundError."""
    with pytest.raises(JobNotFoundError):
        UploadService(default_registry()).job_status("does-not-exist")
