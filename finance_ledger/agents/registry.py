"""Agent registry for LLM agents.

Agent classes register under a short name; the ``llm_agent`` setting picks which one the upload, insight and chat
services use. Every agent class is constructed with an LLM client and the application settings.
"""

from typing import ClassVar

from finance_ledger.agents.base import BaseAgent
from finance_ledger.core.settings import Settings


class AgentRegistry:
    """Registry for agent classes."""

    _registry: ClassVar[dict[str, type[BaseAgent]]] = {}

    @classmethod
    def register(cls, name: str, agent_cls: type[BaseAgent]) -> None:
        """Register an agent class with a given name."""
        cls._registry[name] = agent_cls

    @classmethod
    def get(cls, name: str) -> type[BaseAgent]:
        """Retrieve an agent class by name."""
        try:
            return cls._registry[name]
        except KeyError:
            msg = f"Unknown agent '{name}'. Available: {', '.join(cls.available()) or 'none'}"
            raise KeyError(msg) from None

    @classmethod
    def create(cls, name: str, llm_client: object, settings: Settings) -> BaseAgent:
        """Instantiate the agent registered under ``name``."""
        return cls.get(name)(llm_client, settings)

    @classmethod
    def available(cls) -> list[str]:
        """List all registered agent names."""
        return sorted(cls._registry)
