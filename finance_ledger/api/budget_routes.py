"""FastAPI endpoints for category budgets and monthly budget status."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from finance_ledger.api.dependencies import get_db_conn
from finance_ledger.core.db import DBHelper
from finance_ledger.core.errors import DuplicateRecordError, RecordNotFoundError
from finance_ledger.core.models import ActiveBudget, BudgetIn, BudgetOut, BudgetStatus, BudgetUpdate

router = APIRouter(prefix="/api/budget")


@router.get("", response_model=list[BudgetOut], summary="List budgets")
async def list_budgets(db: DBHelper = Depends(get_db_conn)) -> list[BudgetOut]:
    """List every budget, most recently started first."""
    return [BudgetOut.model_validate(b) for b in db.list_budgets()]


@router.get("/active", response_model=list[ActiveBudget], summary="Budgets in effect today")
async def active_budgets(db: DBHelper = Depends(get_db_conn)) -> list[ActiveBudget]:
    """Budgets in effect today, with spending and the remaining amount for their current period."""
    return [ActiveBudget(**row) for row in db.active_budgets()]


@router.get(
    "/status",
    response_model=BudgetStatus,
    summary="Monthly budget status",
    description=(
        "Compare debit spending in a month with each category's budget.\n\n"
        "**Query:** `month=YYYY-MM` (defaults to the current month)\n\n"
        "Each category is `under` its budget, `near` it from 80%, or `over` it at 100%."
    ),
)
async def budget_status(
    month: str | None = Query(default=None, pattern=r"^\d{4}-\d{2}$"),
    db: DBHelper = Depends(get_db_conn),
) -> BudgetStatus:
    """Budget performance per category for one month."""
    month = month or date.today().strftime("%Y-%m")  # noqa: DTZ011
    try:
        return BudgetStatus(**db.budget_status(month))
    except ValueError as exc:
        raise HTTPException(422, str(exc)) from exc


@router.post("", response_model=BudgetOut, status_code=201, summary="Set a category budget")
async def set_budget(body: BudgetIn, db: DBHelper = Depends(get_db_conn)) -> BudgetOut:
    """Create a budget for a category, or update the one already in effect on its start date."""
    try:
        budget = db.set_budget(body.category_id, body.amount, body.period, body.start_date)
    except RecordNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    except DuplicateRecordError as exc:
        raise HTTPException(409, str(exc)) from exc
    return BudgetOut.model_validate(budget)


@router.put("/{category_id}", response_model=BudgetOut, summary="Update a category's budget")
async def update_budget(category_id: int, body: BudgetUpdate, db: DBHelper = Depends(get_db_conn)) -> BudgetOut:
    """Change the amount or period of the category's budget in effect today, starting one if there is none."""
    try:
        budget = db.set_budget(category_id, body.amount, body.period)
    except RecordNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    except DuplicateRecordError as exc:
        raise HTTPException(409, str(exc)) from exc
    return BudgetOut.model_validate(budget)


@router.delete("/{budget_id}", summary="Delete a budget")
async def delete_budget(budget_id: int, db: DBHelper = Depends(get_db_conn)) -> dict:
    """Delete one budget."""
    try:
        db.delete_budget(budget_id)
    except RecordNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    return {"success": True}
