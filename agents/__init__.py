"""Debate arena – content generators and generation backends."""

from agents.base import AgentRole, BaseAgent
from agents.debater import FALLBACK_DEBATE_TEXT, Debater
from agents.judge import Judge
from agents.llm_provider import (
    AnthropicProvider,
    GeminiProvider,
    LLMProvider,
    LLMResponse,
    OpenAIProvider,
    OpenRouterProvider,
    ProviderError,
    RateLimitError,
    create_provider,
)
from agents.moderator import FALLBACK_MODERATOR_TEXT, Moderator, ModeratorAction
from agents.researcher import FALLBACK_PROFILE_TEXT, ProfileResearcher
from agents.retry import ResilientInvoker, RetryPolicy
from agents.speech import GeminiSpeechSynthesizer, SpeechSynthesizer

# Placeholder texts that mark a degraded (fallback) utterance in a transcript.
FALLBACK_TEXTS = frozenset({FALLBACK_DEBATE_TEXT, FALLBACK_MODERATOR_TEXT})

__all__ = [
    "AgentRole",
    "AnthropicProvider",
    "BaseAgent",
    "Debater",
    "FALLBACK_DEBATE_TEXT",
    "FALLBACK_MODERATOR_TEXT",
    "FALLBACK_PROFILE_TEXT",
    "FALLBACK_TEXTS",
    "GeminiProvider",
    "GeminiSpeechSynthesizer",
    "Judge",
    "LLMProvider",
    "LLMResponse",
    "Moderator",
    "ModeratorAction",
    "OpenAIProvider",
    "OpenRouterProvider",
    "ProfileResearcher",
    "ProviderError",
    "RateLimitError",
    "ResilientInvoker",
    "RetryPolicy",
    "SpeechSynthesizer",
    "create_provider",
]
