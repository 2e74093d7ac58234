"""Minimal CSV tokenizer for bank statement exports.

Quotes toggle a quoted section in which commas are literal. There is no escape for an embedded quote (``""``), so
such fields come out malformed rather than raising; callers check column counts downstream.
"""

QUOTE = '"'
DELIMITER = ","


def tokenize_line(line: str) -> list[str]:
    """Split one CSV line into trimmed, unquoted fields."""
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for char in line:
        if char == QUOTE:
            in_quotes = not in_quotes
        elif char == DELIMITER and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    fields.append("".join(current).strip())
    return [_strip_quotes(field) for field in fields]


def tokenize_csv(content: str) -> list[list[str]]:
    """Split CSV text into rows of fields, dropping blank lines."""
    return [tokenize_line(line) for line in content.split("\n") if line.strip()]


def first_line(content: str) -> str:
    """Return the header line of the file."""
    return content.split("\n", 1)[0]


def _strip_quotes(field: str) -> str:
    if field.startswith(QUOTE):
        field = field[1:]
    if field.endswith(QUOTE):
        field = field[:-1]
    return field
