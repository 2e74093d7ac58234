"""Base agent abstraction for the LLM agents behind categorization, insights and chat.

This module defines the abstract base class for all agents, enforcing a standard interface: suggest a category for
each of a batch of transactions tagged with temporary indices, analyze a period of spending, and answer a chat message.
"""

from abc import ABC, abstractmethod

from finance_ledger.core.models import CategorizationResult, SpendingAnalysis


class BaseAgent(ABC):
    """Abstract base class for all agents."""

    @abstractmethod
    def categorize_transactions(self, transactions: list[dict], categories: list[str]) -> list[CategorizationResult]:
        """Suggest a category for each transaction."""

    @abstractmethod
    def analyze_spending(self, start_date: str, end_date: str, transactions: list[dict]) -> SpendingAnalysis:
        """Find subscriptions, anomalies, trends and savings opportunities."""

    @abstractmethod
    def chat(self, message: str, history: list[dict], context: str = "") -> str:
        """Answer a user message."""
