"""Test data and stand-ins shared across the test modules."""

from types import SimpleNamespace

CHASE_CSV = (
    "Posting Date,Description,Amount,Type\n"
    "01/02/2024,STARBUCKS #123,-5.25,DEBIT\n"
    "01/03/2024,PAYROLL DEPOSIT,1000.00,CREDIT\n"
    "bad-date,TEST,10.00,DEBIT\n"
)


class FakeCompletions:
    """Stands in for ``client.chat.completions`` and replays a canned streamed reply."""

    def __init__(self, reply: str = "", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []

    def create(self, **kwargs: object) -> list[SimpleNamespace]:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        midpoint = len(self.reply) // 2
        return [
            SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=part))])
            for part in (self.reply[:midpoint], self.reply[midpoint:], None)
        ]


def fake_llm_client(reply: str = "", error: Exception | None = None) -> SimpleNamespace:
    """Build an object shaped like a Groq client."""
    return SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(reply, error)))
