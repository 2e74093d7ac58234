"""API package: provides FastAPI dependencies and route definitions for the application."""

from .budget_routes import router as budget_router  # noqa: F401
from .chat_routes import router as chat_router  # noqa: F401
from .insight_routes import router as insight_router  # noqa: F401
from .ledger_routes import router as ledger_router  # noqa: F401
from .routes import router  # noqa: F401
