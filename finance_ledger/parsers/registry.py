"""Parser registry for bank statement formats.

This module holds the known bank formats in registration order. Detection tries each format's header predicate in
that order and uses the first match, so earlier registrations take precedence.
"""

from finance_ledger.core.errors import UnsupportedFormatError
from finance_ledger.core.utils import get_logger
from finance_ledger.parsers.base import BankFormat, ParseResult
from finance_ledger.parsers.chase import ChaseFormat

logger = get_logger("finance-ledger.parsers")


class ParserRegistry:
    """Registry for bank format parsers."""

    def __init__(self, formats: list[BankFormat] | None = None) -> None:
        """Initialize the registry with an optional list of formats."""
        self._formats: list[BankFormat] = list(formats or [])

    def register(self, bank_format: BankFormat) -> None:
        """Register a bank format after the existing ones."""
        self._formats.append(bank_format)

    def get(self, bank_name: str) -> BankFormat:
        """Retrieve a bank format by its bank name."""
        for bank_format in self._formats:
            if bank_format.bank_name == bank_name:
                return bank_format
        raise KeyError(bank_name)

    def available(self) -> list[str]:
        """List the supported bank names in precedence order."""
        return [f.bank_name for f in self._formats]

    def detect(self, content: str) -> BankFormat | None:
        """Return the first format whose detector accepts the file header, or None."""
        for bank_format in self._formats:
            if bank_format.detect_format(content):
                return bank_format
        return None

    def parse(self, content: str) -> ParseResult:
        """Detect the bank format and parse the file with it."""
        bank_format = self.detect(content)
        if bank_format is None:
            msg = "Unable to detect bank format. Please ensure your CSV is from a supported bank."
            raise UnsupportedFormatError(msg)
        logger.info(f"Detected bank format: {bank_format.bank_name}")
        return ParseResult(bank_format.bank_name, bank_format.parse(content))


def default_registry() -> ParserRegistry:
    """Build a registry with every built-in bank format."""
    return ParserRegistry([ChaseFormat()])
