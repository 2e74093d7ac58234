"""FastAPI endpoints for AI spending insights."""

from fastapi import APIRouter, Depends, HTTPException, Query

from finance_ledger.api.dependencies import get_db_conn, get_insight_service
from finance_ledger.core.db import DBHelper
from finance_ledger.core.errors import AgentError, AgentUnavailableError, RecordNotFoundError
from finance_ledger.core.models import InsightBatch, InsightOut
from finance_ledger.services.insight_service import InsightService

router = APIRouter(prefix="/api/insights")


@router.get("", response_model=list[InsightOut], summary="List insights")
async def list_insights(
    dismissed: bool | None = Query(default=None),
    db: DBHelper = Depends(get_db_conn),
) -> list[InsightOut]:
    """List stored insights, highest priority first, optionally filtered on whether they were dismissed."""
    return [InsightOut.model_validate(i) for i in db.list_insights(dismissed)]


@router.post(
    "/generate",
    response_model=InsightBatch,
    summary="Analyze spending and store new insights",
    description=(
        "Send the most recent ledger transactions to the LLM agent and store the subscriptions, anomalies, trends "
        "and recommendations it finds as insights.\n\n"
        "**Response:**\n"
        "- 200 OK: `{ 'generated': n, 'insights': [...] }`.\n"
        "- 404 Not Found: If the ledger has no transactions.\n"
        "- 502 Bad Gateway: If the LLM call failed or its answer was unusable.\n"
        "- 503 Service Unavailable: If no LLM key is configured."
    ),
    responses={
        404: {"description": "No transactions to analyze."},
        502: {"description": "Analysis failed."},
        503: {"description": "AI service not configured."},
    },
)
def generate_insights(insight_service: InsightService = Depends(get_insight_service)) -> InsightBatch:
    """Run a spending analysis and store the resulting insights."""
    try:
        insights = insight_service.generate()
    except AgentUnavailableError as exc:
        raise HTTPException(503, str(exc)) from exc
    except RecordNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    except AgentError as exc:
        raise HTTPException(502, str(exc)) from exc
    return InsightBatch(generated=len(insights), insights=insights)


@router.put("/{insight_id}/dismiss", response_model=InsightOut, summary="Dismiss an insight")
async def dismiss_insight(insight_id: int, db: DBHelper = Depends(get_db_conn)) -> InsightOut:
    """Hide an insight from the default list."""
    try:
        return InsightOut.model_validate(db.dismiss_insight(insight_id))
    except RecordNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc


@router.delete("/{insight_id}", summary="Delete an insight")
async def delete_insight(insight_id: int, db: DBHelper = Depends(get_db_conn)) -> dict:
    """Delete one insight."""
    try:
        db.delete_insight(insight_id)
    except RecordNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    return {"success": True}
