"""Base agent class with provider-agnostic, failure-tolerant generation.

Every content generator inherits from ``BaseAgent`` which provides:
- A single ``_complete`` helper that routes one request through the
  resilient invoker, so callers always get content or a fallback
- Per-agent sampling temperature and attempt budget
- Token tracking across calls
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from enum import Enum
from typing import Any, TypeVar

from agents.llm_provider import LLMProvider, LLMResponse
from agents.retry import ResilientInvoker

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AgentRole(str, Enum):
    """Well-known roles in the debate system."""

    MODERATOR = "moderator"
    DEBATER = "debater"
    JUDGE = "judge"
    RESEARCHER = "researcher"


class BaseAgent:
    """Provider-agnostic base class for every content generator.

    Parameters
    ----------
    role : AgentRole
        The functional role this agent plays in the debate.
    provider : LLMProvider
        The LLM backend used for generation.
    invoker : ResilientInvoker | None
        Retry wrapper; a default one is created if not supplied.
    agent_id : str | None
        Unique identifier; auto-generated if not supplied.
    temperature : float
        Sampling temperature forwarded to the provider.
    max_attempts : int | None
        Attempt budget per request; ``None`` uses the invoker policy.
    language : str
        Language every utterance must be written in.
    """

    role: AgentRole

    def __init__(
        self,
        *,
        role: AgentRole,
        provider: LLMProvider,
        invoker: ResilientInvoker | None = None,
        agent_id: str | None = None,
        temperature: float = 0.7,
        max_attempts: int | None = None,
        language: str = "Portuguese",
    ) -> None:
        self.agent_id = agent_id or f"{role.value}_{uuid.uuid4().hex[:8]}"
        self.role = role
        self.provider = provider
        self.invoker = invoker or ResilientInvoker()
        self.temperature = temperature
        self.max_attempts = max_attempts
        self.language = language

        self._total_tokens_used: int = 0

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def _complete(
        self,
        prompt: str,
        system_instruction: str,
        *,
        fallback: T,
        parse: Callable[[LLMResponse], T],
        **kwargs: Any,
    ) -> T:
        """Send one request through the invoker and parse its response.

        A ``parse`` failure counts as a failed attempt, so malformed output is
        retried and eventually replaced by *fallback*.
        """

        async def _attempt() -> T:
            resp = await self.provider.generate(
                prompt,
                system_instruction=system_instruction,
                temperature=self.temperature,
                **kwargs,
            )
            self._total_tokens_used += resp.tokens_used
            return parse(resp)

        return await self.invoker.invoke(
            _attempt,
            self.max_attempts,
            fallback,
            label=f"{self.role.value}[{self.provider.name}]",
        )

    async def _complete_text(
        self,
        prompt: str,
        system_instruction: str,
        *,
        fallback: str,
        empty_text: str,
        **kwargs: Any,
    ) -> str:
        """Plain-text variant: an empty response becomes *empty_text*."""
        return await self._complete(
            prompt,
            system_instruction,
            fallback=fallback,
            parse=lambda resp: resp.text.strip() or empty_text,
            **kwargs,
        )

    @property
    def total_tokens_used(self) -> int:
        return self._total_tokens_used

    # ------------------------------------------------------------------
    # Dunder
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.agent_id!r}, "
            f"role={self.role.value!r}, provider={self.provider})"
        )
