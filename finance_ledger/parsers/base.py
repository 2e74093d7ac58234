"""Bank format protocol.

Each bank format is an independent class that satisfies this protocol and composes the shared helpers in
``csv_tokenizer`` and ``normalize``; formats do not inherit from one another.
"""

from typing import NamedTuple, Protocol, runtime_checkable

from finance_ledger.core.models import ParsedTransaction


@runtime_checkable
class BankFormat(Protocol):
    """A bank statement format: a header detector plus a row parser."""

    bank_name: str

    def detect_format(self, content: str) -> bool:
        """Return True when the file header belongs to this bank."""
        ...

    def parse(self, content: str) -> list[ParsedTransaction]:
        """Parse the whole file into normalized transactions."""
        ...


class ParseResult(NamedTuple):
    """Output of a registry parse: which bank matched and what it produced."""

    bank_name: str
    transactions: list[ParsedTransaction]
