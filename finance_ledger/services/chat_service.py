"""Finance assistant chat sessions backed by the LLM agent."""

import uuid
from collections.abc import Callable

from finance_ledger.agents.base import BaseAgent
from finance_ledger.core.db import DBHelper, get_db
from finance_ledger.core.errors import AgentUnavailableError
from finance_ledger.core.models import ChatMessageOut, ChatReply
from finance_ledger.core.utils import get_logger

logger = get_logger("finance-ledger.chat")


def ledger_context(db: DBHelper) -> str:
    """Summarize the ledger in a few lines for the assistant's system prompt."""
    stats = db.transaction_stats()
    lines = [
        f"Transactions in ledger: {stats['transaction_count']}",
        f"Total spending: ${stats['total_spent']:.2f}",
        f"Total income: ${stats['total_income']:.2f}",
    ]
    top = sorted(stats["by_category"].items(), key=lambda item: item[1], reverse=True)[:5]
    if top:
        lines.append("Top spending categories: " + ", ".join(f"{name} ${total:.2f}" for name, total in top))
    return "\n".join(lines)


class ChatService:
    """Answers user messages with the agent and keeps each session's history."""

    def __init__(self, agent: BaseAgent | None = None, db_factory: Callable[[], DBHelper] = get_db) -> None:
        """Initialize the service with an optional agent and a DB factory."""
        self.agent = agent
        self.db_factory = db_factory

    def send(self, message: str, session_id: str | None = None) -> ChatReply:
        """Answer ``message`` within a session, starting a new session when none is given.

        The user message and the answer are stored together once the agent has replied, so a failed call leaves the
        session unchanged.
        """
        if self.agent is None:
            msg = "AI service is not configured. Set GROQ_API_KEY to enable chat."
            raise AgentUnavailableError(msg)
        session_id = session_id or str(uuid.uuid4())
        db = self.db_factory()
        try:
            history = [{"role": m.role, "content": m.content} for m in db.chat_history(session_id)]
            answer = self.agent.chat(message, history, ledger_context(db))
            user_msg, assistant_msg = db.add_chat_messages(
                session_id, [("user", message), ("assistant", answer)]
            )
            reply = ChatReply(
                session_id=session_id,
                user_message=ChatMessageOut.model_validate(user_msg),
                assistant_message=ChatMessageOut.model_validate(assistant_msg),
            )
        finally:
            db.close()
        logger.info(f"Chat session {session_id}: answered message {len(history) // 2 + 1}")
        return reply
