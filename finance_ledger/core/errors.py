"""Exception types raised by the import pipeline and the ledger services."""


class UnsupportedFormatError(ValueError):
    """No registered bank format recognizes the uploaded file."""


class MissingColumnsError(ValueError):
    """A recognized file lacks one of the columns a bank format requires."""


class AgentError(RuntimeError):
    """An LLM agent call failed or returned an unusable response."""


class CategorizationError(AgentError):
    """The categorization agent failed or returned an unusable response."""


class AgentUnavailableError(RuntimeError):
    """An AI feature was used while no LLM agent is configured."""


class JobNotFoundError(LookupError):
    """No upload job exists for the given id."""

    def __init__(self, job_id: str) -> None:
        """Build the error message for the missing job id."""
        super().__init__(f"Upload job not found: {job_id}")
        self.job_id = job_id


class JobNotCompletedError(RuntimeError):
    """An upload job was confirmed before it reached the completed state."""

    def __init__(self, job_id: str, status: str) -> None:
        """Build the error message for the job and its current status."""
        super().__init__(f"Upload job {job_id} is not completed (status: {status})")
        self.job_id = job_id
        self.status = status


class PersistenceError(RuntimeError):
    """Writing staged transactions to the database failed."""


class RecordNotFoundError(LookupError):
    """A category, transaction, budget, insight or chat session does not exist."""


class DuplicateRecordError(ValueError):
    """A record with the same unique key already exists."""
