"""Pydantic models for the Finance Ledger API.

This module defines the models shared by the import pipeline, the upload job store and the HTTP layer: the immutable
ParsedTransaction produced by bank parsers, the staged/upload-job shapes held in memory until confirmation, the
categorization result and spending analysis returned by agents, and the request/response bodies of the ledger,
budget, insight and chat endpoints.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Direction = Literal["debit", "credit"]
TransactionType = Literal["debit", "credit", "transfer"]
BudgetPeriod = Literal["monthly", "quarterly", "yearly"]
BudgetState = Literal["under", "near", "over"]
InsightType = Literal["anomaly", "trend", "recommendation", "alert"]
ChatRole = Literal["user", "assistant", "system"]


class JobStatus(StrEnum):
    """Lifecycle states of an upload job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ParsedTransaction(BaseModel):
    """A normalized transaction produced from one CSV row.

    ``amount`` is always a non-negative magnitude; the sign is carried by ``direction``.
    """

    model_config = ConfigDict(frozen=True)

    date: date
    description: str
    amount: Decimal = Field(ge=0)
    direction: Direction
    original_description: str
    merchant: str | None = None


class StagedTransaction(BaseModel):
    """A parsed transaction held in memory until the upload is confirmed."""

    parsed: ParsedTransaction
    category_id: int | None = None
    suggested_category: str | None = None
    confidence: float | None = None
    reasoning: str | None = None
    manually_categorized: bool = False


class UploadJob(BaseModel):
    """In-memory record of one CSV upload and its staged transactions."""

    id: str
    filename: str
    status: JobStatus = JobStatus.PENDING
    total_count: int = 0
    processed_count: int = 0
    bank_format: str | None = None
    error_message: str | None = None
    transactions: list[StagedTransaction] = Field(default_factory=list)
    created_at: str
    completed_at: str | None = None


class CategoryAlternative(BaseModel):
    """A runner-up category suggestion."""

    category: str
    confidence: float = 0.0


class CategorizationResult(BaseModel):
    """One category suggestion returned by a categorization agent."""

    model_config = ConfigDict(populate_by_name=True)

    transaction_id: int = Field(alias="transactionId")
    suggested_category: str = Field(alias="suggestedCategory")
    confidence: float = 0.0
    reasoning: str = ""
    alternatives: list[CategoryAlternative] = Field(default_factory=list)

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, value: float) -> float:
        """Keep the confidence within 0..1."""
        return min(max(value, 0.0), 1.0)


class CategoryCorrection(BaseModel):
    """A user override of the category for one staged transaction."""

    model_config = ConfigDict(populate_by_name=True)

    transaction_id: int = Field(alias="transactionId")
    category_id: int = Field(alias="categoryId")


class ConfirmRequest(BaseModel):
    """Body of the upload confirmation endpoint."""

    corrections: list[CategoryCorrection] | None = None


class ConfirmResponse(BaseModel):
    """Result of confirming an upload job."""

    success: bool = True
    saved_count: int


class StagedTransactionOut(BaseModel):
    """Flattened staged transaction as shown to the client before confirmation."""

    transaction_id: int
    date: date
    description: str
    amount: Decimal
    transaction_type: Direction
    merchant: str | None = None
    original_description: str
    category_id: int | None = None
    suggested_category: str | None = None
    confidence: float | None = None


class UploadJobStatus(BaseModel):
    """Pydantic model representing the status of an upload job."""

    id: str
    filename: str
    status: JobStatus
    total_count: int
    processed_count: int
    bank_format: str | None = None
    error_message: str | None = None
    created_at: str
    completed_at: str | None = None
    transactions: list[StagedTransactionOut] = Field(default_factory=list)


class CategoryIn(BaseModel):
    """Body for creating a category."""

    name: str = Field(min_length=1)
    parent_id: int | None = None
    icon: str | None = None
    color: str | None = None


class CategoryOut(BaseModel):
    """A persisted category."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    parent_id: int | None = None
    icon: str | None = None
    color: str | None = None
    is_system: bool = False


class TransactionOut(BaseModel):
    """A persisted ledger transaction."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    date: date
    description: str
    amount: Decimal
    category_id: int | None = None
    merchant: str | None = None
    account_name: str | None = None
    account_last4: str | None = None
    transaction_type: TransactionType
    original_description: str | None = None
    notes: str | None = None
    confidence_score: float | None = None
    manually_categorized: bool = False


class TransactionPage(BaseModel):
    """A page of transactions plus the total number matching the filter."""

    transactions: list[TransactionOut]
    total: int


class TransactionFilter(BaseModel):
    """Filters and pagination for listing transactions."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=500)
    category_id: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    merchant: str | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None


class CategoryUpdate(BaseModel):
    """Body for manually re-categorizing a transaction."""

    category_id: int


class TransactionStats(BaseModel):
    """Spending and income totals over a date range."""

    total_spent: Decimal
    total_income: Decimal
    net: Decimal
    transaction_count: int
    by_category: dict[str, Decimal]


class BudgetIn(BaseModel):
    """Body for setting a category budget.

    When the category already has a budget in effect on ``start_date`` (today if omitted) it is updated in place.
    """

    model_config = ConfigDict(populate_by_name=True)

    category_id: int = Field(alias="categoryId")
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    period: BudgetPeriod = "monthly"
    start_date: date | None = Field(default=None, alias="startDate")


class BudgetUpdate(BaseModel):
    """Body for changing the amount or period of a category's current budget."""

    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    period: BudgetPeriod = "monthly"


class BudgetOut(BaseModel):
    """A persisted budget."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    category_id: int
    amount: Decimal
    period: BudgetPeriod
    start_date: date
    end_date: date | None = None


class ActiveBudget(BudgetOut):
    """A budget in effect today, with spending in its current period."""

    period_start: date
    period_end: date
    spent: Decimal
    remaining: Decimal


class BudgetCategoryStatus(BaseModel):
    """How one category's spending compares with its budget for a month."""

    category_id: int
    category: str
    budget: Decimal
    spent: Decimal
    percentage: float
    status: BudgetState


class BudgetStatus(BaseModel):
    """Budget performance across all budgeted categories for a month."""

    month: str
    total_budget: Decimal
    total_spent: Decimal
    remaining: Decimal
    categories: list[BudgetCategoryStatus]


class Subscription(BaseModel):
    """A recurring charge spotted by the analysis agent."""

    merchant: str
    amount: float = 0.0
    frequency: str = "monthly"


class Anomaly(BaseModel):
    """A transaction the analysis agent considers unusual."""

    model_config = ConfigDict(populate_by_name=True)

    transaction_id: int | None = Field(default=None, alias="transactionId")
    reason: str


class SpendingTrend(BaseModel):
    """The direction spending in one category is moving."""

    category: str
    trend: str = "stable"
    percentage: float = 0.0


class SpendingAnalysis(BaseModel):
    """Structured result of a spending analysis."""

    subscriptions: list[Subscription] = Field(default_factory=list)
    anomalies: list[Anomaly] = Field(default_factory=list)
    trends: list[SpendingTrend] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class InsightOut(BaseModel):
    """A stored insight."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    type: InsightType
    title: str
    description: str
    priority: int
    details: str | None = None
    is_dismissed: bool = False
    is_read: bool = False
    created_at: datetime | None = None


class InsightBatch(BaseModel):
    """Insights created by one analysis run."""

    generated: int
    insights: list[InsightOut]


class ChatRequest(BaseModel):
    """A user message to the finance assistant; omit the session id to start a new conversation."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1)
    session_id: str | None = Field(default=None, alias="sessionId")


class ChatMessageOut(BaseModel):
    """One stored chat message."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    session_id: str
    role: ChatRole
    content: str
    created_at: datetime | None = None


class ChatReply(BaseModel):
    """The stored user message and the assistant's answer."""

    session_id: str
    user_message: ChatMessageOut
    assistant_message: ChatMessageOut


class ChatSession(BaseModel):
    """Summary of one chat session."""

    session_id: str
    message_count: int
    started_at: datetime | None = None
    last_message_at: datetime | None = None
