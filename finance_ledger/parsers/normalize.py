"""Amount, date and merchant normalization shared by every bank format."""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from dateutil import parser as date_parser

AMOUNT_NOISE = re.compile(r"[$€£¥,\s]")

# Tried in order before falling back to dateutil.
DATE_FORMATS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$"), "%m/%d/%Y"),
    (re.compile(r"^\d{4}-\d{1,2}-\d{1,2}$"), "%Y-%m-%d"),
    (re.compile(r"^\d{1,2}-\d{1,2}-\d{4}$"), "%m-%d-%Y"),
]

MERCHANT_PREFIX = re.compile(
    r"^(DEBIT CARD PURCHASE|CREDIT CARD|ACH|CHECK|TRANSFER|PAYMENT)\b\s*-?\s*",
    re.IGNORECASE,
)
TRAILING_REFERENCE = re.compile(r"\s+#\d+.*$")
TRAILING_DATE = re.compile(r"\s+\d{2}/\d{2}.*$")


def normalize_amount(raw: str) -> Decimal:
    """Parse a statement amount into a signed Decimal.

    Currency symbols, thousands separators and whitespace are removed, and accounting-style parentheses mean a
    negative value: ``"(1,234.56)"`` becomes ``Decimal("-1234.56")``.
    """
    text = AMOUNT_NOISE.sub("", raw)
    if text.startswith("(") and text.endswith(")"):
        text = "-" + text[1:-1]
    try:
        value = Decimal(text)
    except InvalidOperation as exc:
        msg = f"Unable to parse amount: {raw!r}"
        raise ValueError(msg) from exc
    if not value.is_finite():
        msg = f"Unable to parse amount: {raw!r}"
        raise ValueError(msg)
    return value


def parse_date(raw: str) -> date:
    """Parse a statement date, trying the US bank formats before a generic parse."""
    text = raw.strip()
    for pattern, fmt in DATE_FORMATS:
        if pattern.match(text):
            try:
                return datetime.strptime(text, fmt).date()  # noqa: DTZ007
            except ValueError:
                break
    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as exc:
        msg = f"Unable to parse date: {raw!r}"
        raise ValueError(msg) from exc


def extract_merchant(description: str) -> str:
    """Derive a merchant name by stripping payment-type prefixes, reference numbers and trailing dates."""
    merchant = MERCHANT_PREFIX.sub("", description)
    merchant = TRAILING_REFERENCE.sub("", merchant)
    merchant = TRAILING_DATE.sub("", merchant)
    merchant = merchant.strip()
    return merchant or description
