"""DB engine, ORM models and helpers for the Finance Ledger."""

import calendar
from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    event,
    func,
    or_,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from finance_ledger.core.errors import DuplicateRecordError, RecordNotFoundError
from finance_ledger.core.models import BudgetPeriod, TransactionFilter
from finance_ledger.core.utils import ensure_dir

Base = declarative_base()

DEFAULT_CATEGORIES: list[dict[str, str]] = [
    {"name": "Groceries", "icon": "cart", "color": "#4caf50"},
    {"name": "Dining", "icon": "utensils", "color": "#ff9800"},
    {"name": "Transportation", "icon": "car", "color": "#2196f3"},
    {"name": "Utilities", "icon": "bolt", "color": "#9c27b0"},
    {"name": "Housing", "icon": "home", "color": "#795548"},
    {"name": "Entertainment", "icon": "film", "color": "#e91e63"},
    {"name": "Shopping", "icon": "bag", "color": "#3f51b5"},
    {"name": "Healthcare", "icon": "heart", "color": "#f44336"},
    {"name": "Subscriptions", "icon": "repeat", "color": "#00bcd4"},
    {"name": "Travel", "icon": "plane", "color": "#009688"},
    {"name": "Income", "icon": "wallet", "color": "#8bc34a"},
    {"name": "Transfers", "icon": "exchange", "color": "#607d8b"},
    {"name": "Other", "icon": "tag", "color": "#9e9e9e"},
]


class Category(Base):
    """A spending or income category."""

    __tablename__ = "categories"
    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False, index=True)
    parent_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    icon = Column(String, nullable=True)
    color = Column(String, nullable=True)
    is_system = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.current_timestamp())
    updated_at = Column(DateTime, server_default=func.current_timestamp(), onupdate=func.current_timestamp())


class Transaction(Base):
    """A confirmed ledger transaction."""

    __tablename__ = "transactions"
    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False, index=True)
    description = Column(Text, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    merchant = Column(String, nullable=True, index=True)
    account_name = Column(String, nullable=True)
    account_last4 = Column(String, nullable=True)
    transaction_type = Column(String, nullable=False)
    original_description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    confidence_score = Column(Float, nullable=True)
    manually_categorized = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.current_timestamp())
    updated_at = Column(DateTime, server_default=func.current_timestamp(), onupdate=func.current_timestamp())


class Budget(Base):
    """A spending limit for one category, effective from ``start_date`` until ``end_date`` (open-ended if unset)."""

    __tablename__ = "budgets"
    __table_args__ = (UniqueConstraint("category_id", "start_date", "period"),)
    id = Column(Integer, primary_key=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    period = Column(String, nullable=False, default="monthly")
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime, server_default=func.current_timestamp())
    updated_at = Column(DateTime, server_default=func.current_timestamp(), onupdate=func.current_timestamp())


class Insight(Base):
    """A spending insight produced by the analysis agent."""

    __tablename__ = "insights"
    id = Column(Integer, primary_key=True)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    priority = Column(Integer, nullable=False, default=0)
    details = Column("metadata", Text, nullable=True)
    is_dismissed = Column(Boolean, nullable=False, default=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.current_timestamp())
    expires_at = Column(DateTime, nullable=True)


class ChatMessage(Base):
    """One message of an assistant chat session."""

    __tablename__ = "chat_messages"
    id = Column(Integer, primary_key=True)
    session_id = Column(String, nullable=False, index=True)
    role = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.current_timestamp())


def get_engine() -> Engine:
    """Create a SQLAlchemy engine using the configured database URL."""
    from finance_ledger.core.settings import get_settings

    url = get_settings().database_url
    if url.startswith("sqlite:///"):
        ensure_dir(_sqlite_parent(url))
        sqlite_engine = create_engine(url, connect_args={"check_same_thread": False})
        event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
        return sqlite_engine
    return create_engine(url)


def _enable_sqlite_foreign_keys(dbapi_connection: object, connection_record: object) -> None:
    """SQLite ignores ON DELETE clauses unless foreign keys are switched on for each connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _sqlite_parent(url: str) -> str:
    path = url.removeprefix("sqlite:///")
    parent = path.rsplit("/", 1)[0] if "/" in path else "."
    return parent or "/"


BUDGET_OVER_PERCENT = Decimal("100")
BUDGET_NEAR_PERCENT = Decimal("80")


def period_bounds(period: str, on: date) -> tuple[date, date]:
    """Return the first and last day of the monthly, quarterly or yearly period containing ``on``."""
    if period == "yearly":
        return date(on.year, 1, 1), date(on.year, 12, 31)
    if period == "quarterly":
        first_month = 3 * ((on.month - 1) // 3) + 1
        last_month = first_month + 2
        return date(on.year, first_month, 1), date(on.year, last_month, calendar.monthrange(on.year, last_month)[1])
    return on.replace(day=1), on.replace(day=calendar.monthrange(on.year, on.month)[1])


def _in_effect(first: date, last: date) -> list:
    """Clauses selecting budgets in effect at some point between ``first`` and ``last``."""
    return [Budget.start_date <= last, or_(Budget.end_date.is_(None), Budget.end_date >= first)]


def _money(value: object) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


def _budget_state(percentage: Decimal) -> str:
    if percentage >= BUDGET_OVER_PERCENT:
        return "over"
    if percentage >= BUDGET_NEAR_PERCENT:
        return "near"
    return "under"


engine = get_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create the ledger tables and seed the default categories."""
    Base.metadata.create_all(engine)
    db = get_db()
    try:
        db.seed_default_categories()
    finally:
        db.close()


def get_db() -> "DBHelper":
    """Get a DBHelper instance using a SQLAlchemy session."""
    session = SessionLocal()
    return DBHelper(session)


class DBHelper:
    """Helper class for ledger database operations using SQLAlchemy."""

    def __init__(self, session: Session) -> None:
        """Initialize the DBHelper with a SQLAlchemy session."""
        self.session = session

    # --- Categories ---

    def seed_default_categories(self) -> int:
        """Insert any missing default categories as system categories; return how many were added."""
        existing = set(self.session.scalars(select(Category.name)))
        added = 0
        for item in DEFAULT_CATEGORIES:
            if item["name"] in existing:
                continue
            self.session.add(Category(name=item["name"], icon=item["icon"], color=item["color"], is_system=True))
            added += 1
        self.session.commit()
        return added

    def list_categories(self) -> list[Category]:
        """Return all categories ordered by name."""
        return list(self.session.scalars(select(Category).order_by(Category.name)))

    def get_category(self, category_id: int) -> Category:
        """Return a category by id."""
        category = self.session.get(Category, category_id)
        if category is None:
            raise RecordNotFoundError(f"Category not found: {category_id}")
        return category

    def create_category(
        self, name: str, parent_id: int | None = None, icon: str | None = None, color: str | None = None
    ) -> Category:
        """Create a user category, rejecting duplicate names and unknown parents."""
        exists = self.session.scalars(select(Category).where(Category.name == name)).first()
        if exists:
            raise DuplicateRecordError(f"Category with this name already exists: {name}")
        if parent_id is not None:
            self.get_category(parent_id)
        category = Category(name=name, parent_id=parent_id, icon=icon, color=color, is_system=False)
        self.session.add(category)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateRecordError(f"Category with this name already exists: {name}") from exc
        self.session.refresh(category)
        return category

    def delete_category(self, category_id: int) -> None:
        """Delete a user category; system categories cannot be deleted.

        Transactions and child categories that pointed at it become uncategorized / top-level, and its budgets are
        removed.
        """
        category = self.session.get(Category, category_id)
        if category is None or category.is_system:
            raise RecordNotFoundError(f"Category not found or is a system category: {category_id}")
        self.session.execute(
            update(Transaction).where(Transaction.category_id == category_id).values(category_id=None)
        )
        self.session.execute(update(Category).where(Category.parent_id == category_id).values(parent_id=None))
        self.session.execute(delete(Budget).where(Budget.category_id == category_id))
        self.session.delete(category)
        self.session.commit()

    def missing_category_ids(self, category_ids: Iterable[int]) -> set[int]:
        """Return the ids in ``category_ids`` that do not name an existing category."""
        wanted = set(category_ids)
        if not wanted:
            return set()
        found = set(self.session.scalars(select(Category.id).where(Category.id.in_(wanted))))
        return wanted - found

    # --- Transactions ---

    def bulk_create_transactions(self, rows: Iterable[dict]) -> int:
        """Insert transaction rows in a single commit and return how many were written.

        The session is rolled back if anything fails, so a failed call writes nothing.
        """
        objs = [Transaction(**row) for row in rows]
        try:
            self.session.add_all(objs)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return len(objs)

    def list_transactions(self, flt: TransactionFilter) -> tuple[list[Transaction], int]:
        """Return one page of transactions matching the filter and the total match count."""
        clauses = []
        if flt.category_id is not None:
            clauses.append(Transaction.category_id == flt.category_id)
        if flt.start_date is not None:
            clauses.append(Transaction.date >= flt.start_date)
        if flt.end_date is not None:
            clauses.append(Transaction.date <= flt.end_date)
        if flt.merchant:
            clauses.append(Transaction.merchant.ilike(f"%{flt.merchant}%"))
        if flt.min_amount is not None:
            clauses.append(Transaction.amount >= flt.min_amount)
        if flt.max_amount is not None:
            clauses.append(Transaction.amount <= flt.max_amount)

        total = self.session.scalar(select(func.count(Transaction.id)).where(*clauses)) or 0
        stmt = (
            select(Transaction)
            .where(*clauses)
            .order_by(Transaction.date.desc(), Transaction.id.desc())
            .limit(flt.limit)
            .offset((flt.page - 1) * flt.limit)
        )
        return list(self.session.scalars(stmt)), total

    def get_transaction(self, transaction_id: int) -> Transaction:
        """Return a transaction by id."""
        txn = self.session.get(Transaction, transaction_id)
        if txn is None:
            raise RecordNotFoundError(f"Transaction not found: {transaction_id}")
        return txn

    def set_transaction_category(self, transaction_id: int, category_id: int) -> Transaction:
        """Manually assign a category to a transaction."""
        self.get_category(category_id)
        txn = self.get_transaction(transaction_id)
        txn.category_id = category_id
        txn.manually_categorized = True
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction by id."""
        txn = self.get_transaction(transaction_id)
        self.session.delete(txn)
        self.session.commit()

    def transaction_stats(self, start_date: date | None = None, end_date: date | None = None) -> dict:
        """Aggregate debit and credit totals, overall and per category, for a date range."""
        clauses = []
        if start_date is not None:
            clauses.append(Transaction.date >= start_date)
        if end_date is not None:
            clauses.append(Transaction.date <= end_date)

        totals = dict(
            self.session.execute(
                select(Transaction.transaction_type, func.coalesce(func.sum(Transaction.amount), 0))
                .where(*clauses)
                .group_by(Transaction.transaction_type)
            ).all()
        )
        count = self.session.scalar(select(func.count(Transaction.id)).where(*clauses)) or 0
        by_category = self.session.execute(
            select(Category.name, func.sum(Transaction.amount))
            .join(Category, Transaction.category_id == Category.id)
            .where(Transaction.transaction_type == "debit", *clauses)
            .group_by(Category.name)
            .order_by(Category.name)
        ).all()

        spent = Decimal(str(totals.get("debit", 0)))
        income = Decimal(str(totals.get("credit", 0)))
        return {
            "total_spent": spent,
            "total_income": income,
            "net": income - spent,
            "transaction_count": count,
            "by_category": {name: Decimal(str(total)) for name, total in by_category},
        }

    # --- Budgets ---

    def list_budgets(self) -> list[Budget]:
        """Return every budget, most recently started first."""
        return list(self.session.scalars(select(Budget).order_by(Budget.start_date.desc(), Budget.id.desc())))

    def get_budget(self, budget_id: int) -> Budget:
        """Return a budget by id."""
        budget = self.session.get(Budget, budget_id)
        if budget is None:
            raise RecordNotFoundError(f"Budget not found: {budget_id}")
        return budget

    def set_budget(
        self,
        category_id: int,
        amount: Decimal,
        period: BudgetPeriod = "monthly",
        start_date: date | None = None,
    ) -> Budget:
        """Update the category's budget in effect on ``start_date`` (today by default), or start a new one then."""
        self.get_category(category_id)
        effective = start_date or date.today()  # noqa: DTZ011
        budget = self.session.scalars(
            select(Budget)
            .where(Budget.category_id == category_id, *_in_effect(effective, effective))
            .order_by(Budget.start_date.desc())
        ).first()
        if budget is None:
            budget = Budget(category_id=category_id, amount=amount, period=period, start_date=effective)
            self.session.add(budget)
        else:
            budget.amount = amount
            budget.period = period
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateRecordError(f"A {period} budget already starts on {effective} for this category") from exc
        self.session.refresh(budget)
        return budget

    def delete_budget(self, budget_id: int) -> None:
        """Delete a budget by id."""
        self.session.delete(self.get_budget(budget_id))
        self.session.commit()

    def active_budgets(self, on: date | None = None) -> list[dict]:
        """Budgets in effect on ``on`` with what has been spent in their current period."""
        on = on or date.today()  # noqa: DTZ011
        budgets = self.session.scalars(select(Budget).where(*_in_effect(on, on)).order_by(Budget.category_id))
        result = []
        for budget in budgets:
            first, last = period_bounds(budget.period, on)
            spent = self._debits_by_category(first, last).get(budget.category_id, Decimal("0.00"))
            amount = _money(budget.amount)
            result.append(
                {
                    "id": budget.id,
                    "category_id": budget.category_id,
                    "amount": amount,
                    "period": budget.period,
                    "start_date": budget.start_date,
                    "end_date": budget.end_date,
                    "period_start": first,
                    "period_end": last,
                    "spent": spent,
                    "remaining": amount - spent,
                }
            )
        return result

    def budget_status(self, month: str) -> dict:
        """Compare each category's budget with its debit spending in ``month`` (``YYYY-MM``).

        A category counts as ``over`` at 100% of its budget, ``near`` from 80%, and ``under`` otherwise.
        """
        try:
            first = datetime.strptime(month, "%Y-%m").date()  # noqa: DTZ007
        except ValueError as exc:
            msg = f"Invalid month, expected YYYY-MM: {month!r}"
            raise ValueError(msg) from exc
        last = first.replace(day=calendar.monthrange(first.year, first.month)[1])

        rows = self.session.execute(
            select(Budget, Category.name)
            .join(Category, Budget.category_id == Category.id)
            .where(*_in_effect(first, last))
            .order_by(Category.name, Budget.start_date.desc())
        ).all()
        spent_by_category = self._debits_by_category(first, last)

        categories = []
        seen: set[int] = set()
        for budget, name in rows:
            if budget.category_id in seen:
                continue
            seen.add(budget.category_id)
            amount = _money(budget.amount)
            spent = spent_by_category.get(budget.category_id, Decimal("0.00"))
            percentage = (spent / amount * 100).quantize(Decimal("0.01")) if amount else Decimal("0.00")
            categories.append(
                {
                    "category_id": budget.category_id,
                    "category": name,
                    "budget": amount,
                    "spent": spent,
                    "percentage": float(percentage),
                    "status": _budget_state(percentage),
                }
            )

        total_budget = sum((c["budget"] for c in categories), Decimal("0.00"))
        total_spent = sum((c["spent"] for c in categories), Decimal("0.00"))
        return {
            "month": month,
            "total_budget": total_budget,
            "total_spent": total_spent,
            "remaining": total_budget - total_spent,
            "categories": categories,
        }

    def _debits_by_category(self, first: date, last: date) -> dict[int, Decimal]:
        rows = self.session.execute(
            select(Transaction.category_id, func.sum(Transaction.amount))
            .where(
                Transaction.transaction_type == "debit",
                Transaction.category_id.is_not(None),
                Transaction.date >= first,
                Transaction.date <= last,
            )
            .group_by(Transaction.category_id)
        ).all()
        return {category_id: _money(total) for category_id, total in rows}

    # --- Insights ---

    def create_insights(self, rows: Iterable[dict]) -> list[Insight]:
        """Store a batch of insights in one commit."""
        insights = [Insight(**row) for row in rows]
        self.session.add_all(insights)
        self.session.commit()
        for insight in insights:
            self.session.refresh(insight)
        return insights

    def list_insights(self, dismissed: bool | None = None) -> list[Insight]:
        """Return insights, highest priority and newest first, optionally filtered on the dismissed flag."""
        stmt = select(Insight).order_by(Insight.priority.desc(), Insight.created_at.desc(), Insight.id.desc())
        if dismissed is not None:
            stmt = stmt.where(Insight.is_dismissed.is_(dismissed))
        return list(self.session.scalars(stmt))

    def get_insight(self, insight_id: int) -> Insight:
        """Return an insight by id."""
        insight = self.session.get(Insight, insight_id)
        if insight is None:
            raise RecordNotFoundError(f"Insight not found: {insight_id}")
        return insight

    def dismiss_insight(self, insight_id: int) -> Insight:
        """Flag an insight as dismissed."""
        insight = self.get_insight(insight_id)
        insight.is_dismissed = True
        self.session.commit()
        self.session.refresh(insight)
        return insight

    def delete_insight(self, insight_id: int) -> None:
        """Delete an insight by id."""
        self.session.delete(self.get_insight(insight_id))
        self.session.commit()

    # --- Chat ---

    def add_chat_messages(self, session_id: str, messages: Iterable[tuple[str, str]]) -> list[ChatMessage]:
        """Append ``(role, content)`` messages to a chat session in one commit."""
        rows = [ChatMessage(session_id=session_id, role=role, content=content) for role, content in messages]
        self.session.add_all(rows)
        self.session.commit()
        for row in rows:
            self.session.refresh(row)
        return rows

    def chat_history(self, session_id: str) -> list[ChatMessage]:
        """Return a session's messages in the order they were written."""
        return list(
            self.session.scalars(
                select(ChatMessage).where(ChatMessage.session_id == session_id).order_by(ChatMessage.id)
            )
        )

    def chat_sessions(self) -> list[dict]:
        """Summarize every chat session, most recently active first."""
        rows = self.session.execute(
            select(
                ChatMessage.session_id,
                func.count(ChatMessage.id),
                func.min(ChatMessage.created_at),
                func.max(ChatMessage.created_at),
            )
            .group_by(ChatMessage.session_id)
            .order_by(func.max(ChatMessage.id).desc())
        ).all()
        return [
            {"session_id": sid, "message_count": count, "started_at": started, "last_message_at": last}
            for sid, count, started, last in rows
        ]

    def delete_chat_session(self, session_id: str) -> None:
        """Delete every message of a chat session."""
        result = self.session.execute(delete(ChatMessage).where(ChatMessage.session_id == session_id))
        if not result.rowcount:
            self.session.rollback()
            raise RecordNotFoundError(f"Chat session not found: {session_id}")
        self.session.commit()

    def close(self) -> None:
        """Close the SQLAlchemy session."""
        self.session.close()
