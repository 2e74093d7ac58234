"""Spending insights generated by the LLM agent and stored in the ledger.

An analysis run sends the most recent ledger transactions to the agent and turns its structured answer into short
insight records: subscriptions and savings recommendations, unusual transactions, and per-category trends.
"""

import json
from collections.abc import Callable

from finance_ledger.agents.base import BaseAgent
from finance_ledger.core.db import DBHelper, get_db
from finance_ledger.core.errors import AgentUnavailableError, RecordNotFoundError
from finance_ledger.core.models import InsightOut, SpendingAnalysis, TransactionFilter
from finance_ledger.core.utils import get_logger

ANALYSIS_WINDOW = 500
MAX_SUBSCRIPTIONS = 5
MAX_ANOMALIES = 3
MAX_TRENDS = 3
MAX_RECOMMENDATIONS = 3

logger = get_logger("finance-ledger.insights")


def analysis_to_insights(analysis: SpendingAnalysis) -> list[dict]:
    """Map an analysis onto insight rows, keeping only the first few findings of each kind."""
    rows = [
        {
            "type": "recommendation",
            "title": f"Subscription: {sub.merchant}",
            "description": f"You have a {sub.frequency} subscription for ${sub.amount:.2f}",
            "priority": 1,
        }
        for sub in analysis.subscriptions[:MAX_SUBSCRIPTIONS]
    ]
    rows.extend(
        {
            "type": "anomaly",
            "title": "Unusual Transaction Detected",
            "description": anomaly.reason,
            "priority": 2,
            "details": json.dumps({"transactionId": anomaly.transaction_id}),
        }
        for anomaly in analysis.anomalies[:MAX_ANOMALIES]
    )
    rows.extend(
        {
            "type": "trend",
            "title": f"{trend.category} Spending Trend",
            "description": f"{trend.category} spending is {trend.trend} by {trend.percentage:g}%",
            "priority": 1,
        }
        for trend in analysis.trends[:MAX_TRENDS]
    )
    rows.extend(
        {"type": "recommendation", "title": "Savings Opportunity", "description": rec, "priority": 1}
        for rec in analysis.recommendations[:MAX_RECOMMENDATIONS]
    )
    return rows


class InsightService:
    """Runs spending analyses and stores the resulting insights."""

    def __init__(self, agent: BaseAgent | None = None, db_factory: Callable[[], DBHelper] = get_db) -> None:
        """Initialize the service with an optional agent and a DB factory."""
        self.agent = agent
        self.db_factory = db_factory

    def generate(self) -> list[InsightOut]:
        """Analyze recent ledger transactions and store one insight per finding.

        Raises AgentUnavailableError without an agent, RecordNotFoundError when the ledger is empty, and AgentError
        when the analysis fails; nothing is stored in those cases.
        """
        if self.agent is None:
            msg = "AI service is not configured. Set GROQ_API_KEY to enable insights."
            raise AgentUnavailableError(msg)
        db = self.db_factory()
        try:
            transactions, _ = db.list_transactions(TransactionFilter(limit=ANALYSIS_WINDOW))
            if not transactions:
                msg = "No transactions found. Please upload transactions first."
                raise RecordNotFoundError(msg)
            names = {c.id: c.name for c in db.list_categories()}
            payload = [
                {
                    "transactionId": t.id,
                    "date": t.date.isoformat(),
                    "description": t.description,
                    "merchant": t.merchant,
                    "amount": float(t.amount),
                    "type": t.transaction_type,
                    "category": names.get(t.category_id),
                }
                for t in transactions
            ]
            start_date = min(t.date for t in transactions).isoformat()
            end_date = max(t.date for t in transactions).isoformat()
            analysis = self.agent.analyze_spending(start_date, end_date, payload)
            insights = [InsightOut.model_validate(i) for i in db.create_insights(analysis_to_insights(analysis))]
        finally:
            db.close()
        logger.info(f"Generated {len(insights)} insights from {len(payload)} transactions")
        return insights
