"""Main entrypoint and application factory for the Finance Ledger API.

This module initializes the FastAPI application, configures logging, creates the ledger tables, builds the upload,
insight and chat services shared by all requests, and exposes the Scalar API reference endpoint for interactive
OpenAPI documentation.
It also includes the main entrypoint for running the app with Uvicorn.
"""

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from scalar_fastapi import get_scalar_api_reference
from sqlalchemy.exc import SQLAlchemyError

from finance_ledger.api import budget_router, chat_router, insight_router, ledger_router, router
from finance_ledger.api.dependencies import build_agent
from finance_ledger.core.db import init_db
from finance_ledger.core.settings import get_settings
from finance_ledger.core.utils import add_file_handler, get_logger
from finance_ledger.parsers import default_registry
from finance_ledger.services.chat_service import ChatService
from finance_ledger.services.file_service import FileService
from finance_ledger.services.insight_service import InsightService
from finance_ledger.services.upload_service import UploadService

# Ensure the project root is in sys.path for 'python main.py'
PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


# --- Logging Setup ---
def setup_logging() -> None:
    """Configure the root project logger for console and file output."""
    logger = get_logger("finance-ledger")
    logger.setLevel(logging.INFO)
    add_file_handler(logger, get_settings().log_file)


setup_logging()
logger = get_logger("finance-ledger")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the ledger tables and the per-process upload, insight and chat services."""
    settings = get_settings()
    try:
        init_db()
    except SQLAlchemyError:
        logger.exception("Failed to initialize the ledger database")
        raise
    agent = build_agent(settings)
    app.state.file_service = FileService(settings.upload_dir)
    app.state.upload_service = UploadService(default_registry(), agent)
    app.state.insight_service = InsightService(agent)
    app.state.chat_service = ChatService(agent)
    logger.info(f"Finance Ledger ready; supported banks: {', '.join(app.state.upload_service.supported_banks())}")
    yield


app = FastAPI(
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    title="Finance Ledger API",
    description="""
    The Finance Ledger API imports bank statement CSVs into a personal-finance ledger, with optional LLM-powered
    categorization.

    **Endpoints:**
    - `POST /api/upload`: Upload a bank CSV and start an import job. Returns a `job_id`.
    - `GET /api/upload/{{job_id}}/status`: Poll an import job and review its staged transactions.
    - `POST /api/upload/{{job_id}}/confirm`: Save the staged transactions, with optional category corrections.
    - `GET /api/upload/banks`: Supported bank formats.
    - `/api/categories`, `/api/transactions`: Browse and edit the ledger.
    - `/api/budget`: Category budgets and monthly budget status.
    - `/api/insights`: AI spending insights (subscriptions, anomalies, trends, recommendations).
    - `/api/chat`: Ask the AI finance assistant about your spending.
    - `GET /health`: Health check endpoint.
    - `GET /scalar`: Interactive Scalar OpenAPI documentation.
    """,
    version="1.0.0",
)
app.include_router(router)
app.include_router(ledger_router)
app.include_router(budget_router)
app.include_router(insight_router)
app.include_router(chat_router)


@app.get("/scalar", include_in_schema=False)
async def scalar_docs() -> HTMLResponse:
    """Return Scalar API reference."""
    return get_scalar_api_reference(openapi_url=app.openapi_url, title=app.title)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("main:app", host=settings.server_host, port=settings.server_port, reload=True)
