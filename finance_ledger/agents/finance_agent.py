"""FinanceAgent: Groq-backed categorization, spending analysis and chat.

This module defines the FinanceAgent class. It sends a batch of parsed transactions and the known category names to a
Groq chat completion and validates the JSON array of suggestions it returns; it asks for a structured spending
analysis of ledger transactions; and it answers free-form questions as a personal finance assistant. Every call
collects the (optionally streamed) output the same way, and any API failure or unusable response is raised as an
AgentError (CategorizationError for categorization) so callers can degrade gracefully.
"""

import json
import re

from pydantic import TypeAdapter, ValidationError

from finance_ledger.agents.base import BaseAgent
from finance_ledger.agents.prompts import (
    ANALYSIS_PROMPT_LOG_LABEL,
    ANALYSIS_PROMPT_TEMPLATE,
    ANALYSIS_SYSTEM_PROMPT,
    CHAT_SYSTEM_PROMPT,
    SYSTEM_PROMPT,
    USER_PROMPT_LOG_LABEL,
    USER_PROMPT_TEMPLATE,
)
from finance_ledger.core.errors import AgentError, CategorizationError
from finance_ledger.core.models import CategorizationResult, SpendingAnalysis
from finance_ledger.core.settings import Settings
from finance_ledger.core.utils import get_logger

MAX_OUTPUT_LOG_LEN = 300
THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL)
CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")

logger = get_logger("finance-ledger.agent")

_results_adapter = TypeAdapter(list[CategorizationResult])


def _get_color(color: str) -> str:
    try:
        from colorlog.escape_codes import escape_codes as _codes

        return _codes.get(color, "")
    except ImportError:
        return ""


def _clean_output(raw_output: str) -> str:
    """Drop reasoning blocks and markdown code fences around the model's answer."""
    text = THINK_BLOCK.sub("", raw_output).strip()
    return CODE_FENCE.sub("", text).strip()


class FinanceAgent(BaseAgent):
    """Agent that asks a Groq-hosted LLM about the user's transactions."""

    def __init__(self, llm_client: object, settings: Settings) -> None:
        """Initialize the FinanceAgent with an LLM client and settings."""
        self.llm_client = llm_client
        self.settings = settings

    def categorize_transactions(self, transactions: list[dict], categories: list[str]) -> list[CategorizationResult]:
        """Return one category suggestion per transaction, as judged by the LLM."""
        if not transactions:
            return []
        cyan = _get_color("cyan")
        yellow = _get_color("yellow")
        green = _get_color("green")
        reset = _get_color("reset")
        logger.info(f"{cyan}AGENT: categorizing {len(transactions)} transactions, {len(categories)} categories{reset}")
        logger.info(f"{yellow}PROMPT: {USER_PROMPT_LOG_LABEL}{reset}")
        user_prompt = USER_PROMPT_TEMPLATE.format(
            categories=", ".join(categories),
            payload=json.dumps(transactions, indent=2, default=str),
        )
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]
        raw_output = self._complete(messages, CategorizationError)
        results = self._parse_results(raw_output)
        logger.info(f"{green}AGENT: {len(results)} suggestions parsed{reset}")
        return results

    def analyze_spending(self, start_date: str, end_date: str, transactions: list[dict]) -> SpendingAnalysis:
        """Look for subscriptions, anomalies and trends in the transactions and suggest savings."""
        cyan = _get_color("cyan")
        yellow = _get_color("yellow")
        reset = _get_color("reset")
        logger.info(f"{cyan}AGENT: analyzing {len(transactions)} transactions from {start_date} to {end_date}{reset}")
        logger.info(f"{yellow}PROMPT: {ANALYSIS_PROMPT_LOG_LABEL}{reset}")
        user_prompt = ANALYSIS_PROMPT_TEMPLATE.format(
            start_date=start_date,
            end_date=end_date,
            payload=json.dumps(transactions, indent=2, default=str),
        )
        messages = [
            {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]
        text = _clean_output(self._complete(messages, AgentError))
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end < start:
            msg = "Invalid response from analysis agent: no JSON object found"
            raise AgentError(msg)
        try:
            return SpendingAnalysis.model_validate_json(text[start : end + 1])
        except ValidationError as exc:
            msg = f"Invalid response from analysis agent: {exc.error_count()} validation errors"
            raise AgentError(msg) from exc

    def chat(self, message: str, history: list[dict], context: str = "") -> str:
        """Answer a user message, given the earlier turns of the conversation and a summary of the ledger."""
        system_prompt = CHAT_SYSTEM_PROMPT
        if context:
            system_prompt = f"{system_prompt}\nContext:\n{context}"
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend({"role": turn["role"], "content": turn["content"]} for turn in history)
        messages.append({"role": "user", "content": message})
        logger.info(f"{_get_color('cyan')}AGENT: chat turn with {len(history)} earlier messages{_get_color('reset')}")
        answer = _clean_output(self._complete(messages, AgentError))
        if not answer:
            msg = "Empty response from chat agent"
            raise AgentError(msg)
        return answer

    def _complete(self, messages: list[dict], error_cls: type[AgentError]) -> str:
        """Run one chat completion and return its full text, raising ``error_cls`` on any failure."""
        yellow = _get_color("yellow")
        green = _get_color("green")
        reset = _get_color("reset")
        try:
            logger.info(f"{yellow}AGENT: Calling LLM...{reset}")
            completion = self.llm_client.chat.completions.create(
                model=self.settings.groq_model,
                messages=messages,
                temperature=self.settings.groq_temperature,
                max_completion_tokens=self.settings.groq_max_completion_tokens,
                top_p=self.settings.groq_top_p,
                stream=self.settings.groq_stream,
                stop=self.settings.groq_stop,
            )
        except Exception as exc:
            msg = f"Groq API call failed: {exc}"
            logger.exception(msg)
            raise error_cls(msg) from exc
        raw_output = self._collect_llm_output(completion, error_cls)
        shown = raw_output if len(raw_output) <= MAX_OUTPUT_LOG_LEN else raw_output[: MAX_OUTPUT_LOG_LEN - 3] + "..."
        logger.info(f"{green}OUTPUT: {shown}{reset}")
        return raw_output

    def _collect_llm_output(self, completion: object, error_cls: type[AgentError]) -> str:
        """Collect the full text from a streamed or non-streamed completion."""
        try:
            if not self.settings.groq_stream:
                return completion.choices[0].message.content or ""
            parts = []
            for chunk in completion:
                parts.append(chunk.choices[0].delta.content or "")
            return "".join(parts)
        except Exception as exc:
            msg = f"Groq streaming error: {exc}"
            logger.exception(msg)
            raise error_cls(msg) from exc

    def _parse_results(self, raw_output: str) -> list[CategorizationResult]:
        """Extract and validate the JSON array of suggestions from the LLM output."""
        text = _clean_output(raw_output)
        start, end = text.find("["), text.rfind("]")
        if start == -1 or end < start:
            msg = "Invalid response from categorization agent: no JSON array found"
            raise CategorizationError(msg)
        try:
            data = json.loads(text[start : end + 1])
        except json.JSONDecodeError as exc:
            msg = f"Invalid response from categorization agent: {exc}"
            raise CategorizationError(msg) from exc
        try:
            return _results_adapter.validate_python(data)
        except ValidationError as exc:
            msg = f"Malformed categorization results: {exc.error_count()} validation errors"
            raise CategorizationError(msg) from exc
