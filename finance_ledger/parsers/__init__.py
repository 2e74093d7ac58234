"""Parsers package: CSV tokenizing, normalization helpers, and per-bank statement formats."""

from .base import BankFormat, ParseResult  # noqa: F401
from .chase import ChaseFormat  # noqa: F401
from .registry import ParserRegistry, default_registry  # noqa: F401
