"""FastAPI dependencies for DI (settings, DB, agent, upload services).

This module provides dependency injection helpers for settings, database sessions, the optional LLM agent and the
per-process upload, insight and chat services stored on ``app.state``, enabling modular and testable API endpoints.
"""

from collections.abc import Generator

from fastapi import Request
from groq import Groq

from finance_ledger.agents import AgentRegistry
from finance_ledger.agents.base import BaseAgent
from finance_ledger.core.db import DBHelper, get_db
from finance_ledger.core.settings import Settings, get_settings
from finance_ledger.core.utils import get_logger
from finance_ledger.services.chat_service import ChatService
from finance_ledger.services.file_service import FileService
from finance_ledger.services.insight_service import InsightService
from finance_ledger.services.upload_service import UploadService

logger = get_logger("finance-ledger.api")

__all__ = [
    "build_agent",
    "get_chat_service",
    "get_db_conn",
    "get_file_service",
    "get_insight_service",
    "get_settings",
    "get_upload_service",
]


def build_agent(settings: Settings) -> BaseAgent | None:
    """Build the configured LLM agent, or None when no LLM key is set."""
    if not settings.ai_enabled:
        logger.warning("GROQ_API_KEY not set - AI categorization, insights and chat disabled")
        return None
    client = Groq(api_key=settings.groq_api_key)
    agent = AgentRegistry.create(settings.llm_agent, client, settings)
    logger.info(f"Using '{settings.llm_agent}' agent ({settings.groq_model}) for AI features")
    return agent


def get_upload_service(request: Request) -> UploadService:
    """Provide the process-wide UploadService."""
    return request.app.state.upload_service


def get_file_service(request: Request) -> FileService:
    """Provide the upload file storage."""
    return request.app.state.file_service


def get_insight_service(request: Request) -> InsightService:
    """Provide the process-wide InsightService."""
    return request.app.state.insight_service


def get_chat_service(request: Request) -> ChatService:
    """Provide the process-wide ChatService."""
    return request.app.state.chat_service


def get_db_conn() -> Generator[DBHelper, None, None]:
    """Provide a database helper for the duration of one request."""
    db = get_db()
    try:
        yield db
    finally:
        db.close()
