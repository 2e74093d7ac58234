"""Chase checking/credit card CSV export format."""

from decimal import Decimal

from finance_ledger.core.errors import MissingColumnsError
from finance_ledger.core.models import Direction, ParsedTransaction
from finance_ledger.core.utils import get_logger
from finance_ledger.parsers.csv_tokenizer import first_line, tokenize_csv
from finance_ledger.parsers.normalize import extract_merchant, normalize_amount, parse_date

MIN_ROW_FIELDS = 3
DETECT_MARKERS = ("posting date", "description", "amount")

logger = get_logger("finance-ledger.parsers.chase")


def _find_column(headers: list[str], *needles: str) -> int | None:
    for needle in needles:
        for idx, header in enumerate(headers):
            if needle in header:
                return idx
    return None


def _direction(amount: Decimal, type_cell: str) -> Direction:
    # An explicit type column wins; the sign decides only when it says neither.
    kind = type_cell.lower()
    if "debit" in kind:
        return "debit"
    if "credit" in kind:
        return "credit"
    return "debit" if amount < 0 else "credit"


class ChaseFormat:
    """Parser for Chase statement exports (``Posting Date,Description,Amount,Type,...``)."""

    bank_name = "Chase"

    def detect_format(self, content: str) -> bool:
        """Return True when the header has the posting date, description and amount columns."""
        header = first_line(content).lower()
        return all(marker in header for marker in DETECT_MARKERS)

    def parse(self, content: str) -> list[ParsedTransaction]:
        """Parse the export, skipping rows whose amount or date cannot be read."""
        rows = tokenize_csv(content)
        if not rows:
            raise MissingColumnsError("Invalid Chase CSV format: file is empty")
        headers = [h.lower() for h in rows[0]]

        date_idx = _find_column(headers, "posting date", "date")
        desc_idx = _find_column(headers, "description")
        amount_idx = _find_column(headers, "amount")
        type_idx = _find_column(headers, "type")

        missing = [
            name
            for name, idx in (("date", date_idx), ("description", desc_idx), ("amount", amount_idx))
            if idx is None
        ]
        if missing:
            msg = f"Invalid Chase CSV format: missing required columns: {', '.join(missing)}"
            raise MissingColumnsError(msg)

        transactions: list[ParsedTransaction] = []
        for line_no, row in enumerate(rows[1:], start=2):
            if len(row) < MIN_ROW_FIELDS:
                continue
            try:
                signed = normalize_amount(row[amount_idx])
                if signed == 0:
                    continue
                description = row[desc_idx]
                type_cell = row[type_idx] if type_idx is not None and type_idx < len(row) else ""
                transactions.append(
                    ParsedTransaction(
                        date=parse_date(row[date_idx]),
                        description=description,
                        amount=abs(signed),
                        direction=_direction(signed, type_cell),
                        original_description=description,
                        merchant=extract_merchant(description),
                    )
                )
            except (ValueError, IndexError) as exc:
                logger.warning(f"Skipping row {line_no}: {exc}")
        logger.info(f"Parsed {len(transactions)} of {len(rows) - 1} rows as {self.bank_name}")
        return transactions
