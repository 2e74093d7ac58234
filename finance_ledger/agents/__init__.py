"""Agents package: provides the agent registry, base class, and the Groq finance agent."""

from .base import BaseAgent  # noqa: F401
from .finance_agent import FinanceAgent
from .registry import AgentRegistry

AgentRegistry.register("groq", FinanceAgent)
