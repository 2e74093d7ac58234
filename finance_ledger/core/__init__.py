"""Core package: provides models, database helpers, settings, errors, and shared utilities."""

from .db import get_db  # noqa: F401
from .models import JobStatus, ParsedTransaction, UploadJob  # noqa: F401
from .settings import Settings  # noqa: F401
from .utils import get_logger  # noqa: F401
