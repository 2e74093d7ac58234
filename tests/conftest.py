"""Shared fixtures: an isolated SQLite ledger and a started TestClient."""

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="finance-ledger-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'ledger.db'}"
os.environ["UPLOAD_DIR"] = str(_TMP / "uploads")
os.environ["LOG_FILE"] = str(_TMP / "ledger.log")
os.environ["GROQ_API_KEY"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import delete  # noqa: E402

from finance_ledger.core.db import (  # noqa: E402
    Budget,
    Category,
    ChatMessage,
    Insight,
    SessionLocal,
    Transaction,
    init_db,
)


@pytest.fixture(autouse=True)
def clean_ledger() -> Generator[None, None, None]:
    """Start every test with only the seeded system categories and an otherwise empty ledger."""
    init_db()
    yield
    with SessionLocal() as session:
        session.execute(delete(Budget))
        session.execute(delete(Insight))
        session.execute(delete(ChatMessage))
        session.execute(delete(Transaction))
        session.execute(delete(Category).where(Category.is_system.is_(False)))
        session.commit()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """A TestClient with the application lifespan started and the AI features off."""
    from main import app

    with TestClient(app) as test_client:
        app.state.upload_service.agent = None
        app.state.insight_service.agent = None
        app.state.chat_service.agent = None
        yield test_client
