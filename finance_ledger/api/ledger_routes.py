"""FastAPI endpoints for the ledger: categories and confirmed transactions."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from finance_ledger.api.dependencies import get_db_conn
from finance_ledger.core.db import DBHelper
from finance_ledger.core.errors import DuplicateRecordError, RecordNotFoundError
from finance_ledger.core.models import (
    CategoryIn,
    CategoryOut,
    CategoryUpdate,
    TransactionFilter,
    TransactionOut,
    TransactionPage,
    TransactionStats,
)

router = APIRouter(prefix="/api")


@router.get("/categories", response_model=list[CategoryOut], summary="List categories")
async def list_categories(db: DBHelper = Depends(get_db_conn)) -> list[CategoryOut]:
    """List all categories ordered by name."""
    return [CategoryOut.model_validate(c) for c in db.list_categories()]


@router.get("/categories/{category_id}", response_model=CategoryOut, summary="Get a category")
async def get_category(category_id: int, db: DBHelper = Depends(get_db_conn)) -> CategoryOut:
    """Get one category by id."""
    try:
        return CategoryOut.model_validate(db.get_category(category_id))
    except RecordNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc


@router.post("/categories", response_model=CategoryOut, status_code=201, summary="Create a category")
async def create_category(body: CategoryIn, db: DBHelper = Depends(get_db_conn)) -> CategoryOut:
    """Create a user category. Names must be unique."""
    try:
        category = db.create_category(body.name, parent_id=body.parent_id, icon=body.icon, color=body.color)
    except DuplicateRecordError as exc:
        raise HTTPException(409, str(exc)) from exc
    except RecordNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    return CategoryOut.model_validate(category)


@router.delete("/categories/{category_id}", summary="Delete a category")
async def delete_category(category_id: int, db: DBHelper = Depends(get_db_conn)) -> dict:
    """Delete a user category. System categories are protected; its transactions become uncategorized."""
    try:
        db.delete_category(category_id)
    except RecordNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    return {"success": True}


@router.get("/transactions", response_model=TransactionPage, summary="List transactions")
async def list_transactions(
    flt: Annotated[TransactionFilter, Query()],
    db: DBHelper = Depends(get_db_conn),
) -> TransactionPage:
    """List confirmed transactions, newest first, with optional filters and pagination."""
    rows, total = db.list_transactions(flt)
    return TransactionPage(transactions=[TransactionOut.model_validate(r) for r in rows], total=total)


@router.get("/transactions/stats", response_model=TransactionStats, summary="Spending statistics")
async def transaction_stats(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: DBHelper = Depends(get_db_conn),
) -> TransactionStats:
    """Total spending, income and per-category spending over an optional date range."""
    return TransactionStats(**db.transaction_stats(start_date, end_date))


@router.get("/transactions/{transaction_id}", response_model=TransactionOut, summary="Get a transaction")
async def get_transaction(transaction_id: int, db: DBHelper = Depends(get_db_conn)) -> TransactionOut:
    """Get one transaction by id."""
    try:
        return TransactionOut.model_validate(db.get_transaction(transaction_id))
    except RecordNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc


@router.put("/transactions/{transaction_id}/category", response_model=TransactionOut, summary="Re-categorize")
async def set_transaction_category(
    transaction_id: int, body: CategoryUpdate, db: DBHelper = Depends(get_db_conn)
) -> TransactionOut:
    """Manually assign a category; the transaction is flagged as manually categorized."""
    try:
        return TransactionOut.model_validate(db.set_transaction_category(transaction_id, body.category_id))
    except RecordNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc


@router.delete("/transactions/{transaction_id}", summary="Delete a transaction")
async def delete_transaction(transaction_id: int, db: DBHelper = Depends(get_db_conn)) -> dict:
    """Delete one transaction."""
    try:
        db.delete_transaction(transaction_id)
    except RecordNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    return {"success": True}
