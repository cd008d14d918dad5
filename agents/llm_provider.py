"""LLM Provider abstraction layer for Gemini, OpenAI, Anthropic, and OpenRouter.

Provides a unified async, single-attempt interface to multiple LLM backends.
Each provider turns SDK failures into ``ProviderError`` (or the more specific
``RateLimitError`` when the backend signals quota exhaustion); retrying is the
job of :mod:`agents.retry`.
"""

from __future__ import annotations

import json
import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class RateLimitError(ProviderError):
    """The backend refused the call because a quota was exhausted."""


# Status codes are only read from attributes; bare numbers in a message
# (request ids, ports) must not trigger the cooldown.
_RATE_LIMIT_MARKERS = ("RESOURCE_EXHAUSTED", "RATE LIMIT", "RATE_LIMIT", "RATELIMIT", "TOO MANY REQUESTS")


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True when *exc* carries a quota-exhaustion signal."""
    if isinstance(exc, RateLimitError):
        return True
    for attr in ("status_code", "code", "status"):
        if getattr(exc, attr, None) == 429:
            return True
    text = str(exc).upper()
    return any(marker in text for marker in _RATE_LIMIT_MARKERS)


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LLMResponse:
    """Standardised response from any LLM provider."""

    text: str
    tokens_used: int
    model: str
    provider: str
    latency_ms: float
    sources: tuple[str, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class LLMProvider(ABC):
    """Provider-agnostic interface that all LLM backends implement."""

    name: str  # e.g. "gemini", "openai", "anthropic"
    supports_search_grounding: bool = False

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        api_key_env: str | None = None,
        timeout: int | None = None,
        max_tokens: int = 1024,
    ) -> None:
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens

        # Resolve API key: explicit > env var > raise
        self.api_key = api_key or os.getenv(api_key_env or "")
        if not self.api_key:
            raise ValueError(
                f"No API key for {self.name}. "
                f"Set {api_key_env!r} or pass api_key explicitly."
            )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(
        self,
        prompt: str,
        *,
        system_instruction: str = "",
        temperature: float = 0.7,
        response_schema: dict[str, Any] | None = None,
        search_grounding: bool = False,
    ) -> LLMResponse:
        """Make exactly one generation request.

        Raises ``RateLimitError`` on quota signals and ``ProviderError`` on
        any other failure.
        """
        if search_grounding and not self.supports_search_grounding:
            logger.warning(
                "[%s] %s has no web search; search grounding ignored",
                self.name,
                self.model,
            )
        start = time.perf_counter()
        try:
            payload = await self._call_api(
                prompt,
                system_instruction=system_instruction,
                temperature=temperature,
                response_schema=response_schema,
                search_grounding=search_grounding,
            )
        except ProviderError:
            raise
        except Exception as exc:  # noqa: BLE001
            if is_rate_limit_error(exc):
                raise RateLimitError(self.name, f"Rate limited: {exc}") from exc
            raise ProviderError(self.name, f"API call failed: {exc}") from exc

        elapsed = (time.perf_counter() - start) * 1000
        response = LLMResponse(
            text=payload.get("text") or "",
            tokens_used=payload.get("tokens_used", 0),
            model=self.model,
            provider=self.name,
            latency_ms=round(elapsed, 1),
            sources=tuple(payload.get("sources", ())),
            raw=payload.get("raw", {}),
        )
        logger.debug(
            "[%s] %s responded (%d tokens, %.0f ms)",
            self.name,
            self.model,
            response.tokens_used,
            response.latency_ms,
        )
        return response

    # ------------------------------------------------------------------
    # Backend-specific implementation (override in subclasses)
    # ------------------------------------------------------------------

    @abstractmethod
    async def _call_api(
        self,
        prompt: str,
        *,
        system_instruction: str,
        temperature: float,
        response_schema: dict[str, Any] | None,
        search_grounding: bool,
    ) -> dict[str, Any]:
        """Return ``{"text": ..., "tokens_used": ..., "sources": ..., "raw": ...}``."""
        ...

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _schema_instruction(
        system_instruction: str, response_schema: dict[str, Any] | None
    ) -> str:
        """Append a JSON-only directive for backends without schema support."""
        if response_schema is None:
            return system_instruction
        return (
            f"{system_instruction}\n\n"
            "Respond ONLY with a JSON object matching this schema "
            f"(no markdown, no commentary):\n{json.dumps(response_schema, ensure_ascii=False)}"
        ).strip()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------

# Political content is the whole point of the simulation, so the default
# blocking thresholds are lifted.
_GEMINI_SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
    "HARM_CATEGORY_CIVIC_INTEGRITY",
)


class GeminiProvider(LLMProvider):
    """Async Google Gemini provider using the ``google-genai`` client."""

    name = "gemini"
    supports_search_grounding = True

    def __init__(self, model: str = "gemini-2.5-flash", **kwargs: Any) -> None:
        kwargs.setdefault("api_key_env", "GEMINI_API_KEY")
        super().__init__(model=model, **kwargs)
        from google import genai
        from google.genai import types as genai_types

        self._types = genai_types
        http_options = (
            genai_types.HttpOptions(timeout=self.timeout * 1000) if self.timeout else None
        )
        self._client = genai.Client(api_key=self.api_key, http_options=http_options)

    async def _call_api(
        self,
        prompt: str,
        *,
        system_instruction: str,
        temperature: float,
        response_schema: dict[str, Any] | None,
        search_grounding: bool,
    ) -> dict[str, Any]:
        types = self._types
        config_kwargs: dict[str, Any] = {
            "temperature": temperature,
            "max_output_tokens": self.max_tokens,
            "safety_settings": [
                types.SafetySetting(category=category, threshold="BLOCK_NONE")
                for category in _GEMINI_SAFETY_CATEGORIES
            ],
        }
        if system_instruction:
            config_kwargs["system_instruction"] = system_instruction
        if response_schema is not None:
            config_kwargs["response_mime_type"] = "application/json"
            config_kwargs["response_schema"] = response_schema
        if search_grounding:
            config_kwargs["tools"] = [types.Tool(google_search=types.GoogleSearch())]

        response = await self._client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(**config_kwargs),
        )

        sources: list[str] = []
        if response.candidates:
            grounding = response.candidates[0].grounding_metadata
            for chunk in (grounding.grounding_chunks or []) if grounding else []:
                uri = chunk.web.uri if chunk.web else None
                if uri and uri not in sources:
                    sources.append(uri)

        usage = response.usage_metadata
        return {
            "text": response.text or "",
            "tokens_used": (usage.total_token_count or 0) if usage else 0,
            "sources": sources,
            "raw": response.model_dump(exclude_none=True) if hasattr(response, "model_dump") else {},
        }


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------

class OpenAIProvider(LLMProvider):
    """Async OpenAI provider using the ``openai>=1.0`` client."""

    name = "openai"
    base_url: str | None = None

    def __init__(self, model: str = "gpt-4o", **kwargs: Any) -> None:
        kwargs.setdefault("api_key_env", "OPENAI_API_KEY")
        super().__init__(model=model, **kwargs)
        import openai

        client_kwargs: dict[str, Any] = {"api_key": self.api_key}
        if self.timeout:
            client_kwargs["timeout"] = self.timeout
        if self.base_url:
            client_kwargs["base_url"] = self.base_url
        self._client = openai.AsyncOpenAI(**client_kwargs)

    async def _call_api(
        self,
        prompt: str,
        *,
        system_instruction: str,
        temperature: float,
        response_schema: dict[str, Any] | None,
        search_grounding: bool,
    ) -> dict[str, Any]:
        system = self._schema_instruction(system_instruction, response_schema)
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        create_kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": self.max_tokens,
        }
        if response_schema is not None:
            create_kwargs["response_format"] = {"type": "json_object"}

        response = await self._client.chat.completions.create(**create_kwargs)
        choice = response.choices[0]
        usage = response.usage
        return {
            "text": choice.message.content or "",
            "tokens_used": usage.total_tokens if usage else 0,
            "raw": response.model_dump(),
        }


# ---------------------------------------------------------------------------
# OpenRouter
# ---------------------------------------------------------------------------

class OpenRouterProvider(OpenAIProvider):
    """Async OpenRouter provider using the OpenAI-compatible API.

    Model names use OpenRouter's ``vendor/model`` format, e.g.
    ``"google/gemini-2.5-flash"`` or ``"anthropic/claude-sonnet-4.5"``.
    """

    name = "openrouter"
    base_url = "https://openrouter.ai/api/v1"

    def __init__(self, model: str = "google/gemini-2.5-flash", **kwargs: Any) -> None:
        kwargs.setdefault("api_key_env", "OPENROUTER_API_KEY")
        super().__init__(model=model, **kwargs)


# ---------------------------------------------------------------------------
# Anthropic
# ---------------------------------------------------------------------------

class AnthropicProvider(LLMProvider):
    """Async Anthropic provider using the ``anthropic`` client."""

    name = "anthropic"

    def __init__(self, model: str = "claude-sonnet-4-5", **kwargs: Any) -> None:
        kwargs.setdefault("api_key_env", "ANTHROPIC_API_KEY")
        super().__init__(model=model, **kwargs)
        import anthropic

        client_kwargs: dict[str, Any] = {"api_key": self.api_key}
        if self.timeout:
            client_kwargs["timeout"] = self.timeout
        self._client = anthropic.AsyncAnthropic(**client_kwargs)

    async def _call_api(
        self,
        prompt: str,
        *,
        system_instruction: str,
        temperature: float,
        response_schema: dict[str, Any] | None,
        search_grounding: bool,
    ) -> dict[str, Any]:
        create_kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
            "temperature": temperature,
        }
        system = self._schema_instruction(system_instruction, response_schema)
        if system:
            create_kwargs["system"] = system

        response = await self._client.messages.create(**create_kwargs)
        text = "\n".join(b.text for b in response.content if b.type == "text")
        tokens = (response.usage.input_tokens + response.usage.output_tokens) if response.usage else 0
        return {
            "text": text,
            "tokens_used": tokens,
            "raw": response.model_dump() if hasattr(response, "model_dump") else {},
        }


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_PROVIDERS: dict[str, type[LLMProvider]] = {
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "openrouter": OpenRouterProvider,
}


def create_provider(name: str, **kwargs: Any) -> LLMProvider:
    """Instantiate an LLM provider by its short name.

    >>> provider = create_provider("gemini", model="gemini-2.5-flash")
    """
    cls = _PROVIDERS.get(name.lower())
    if cls is None:
        raise ValueError(
            f"Unknown provider {name!r}. Choose from {list(_PROVIDERS)}"
        )
    return cls(**kwargs)
