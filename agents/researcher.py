"""Researcher agent – drafts a candidate profile from a web-grounded search."""

from __future__ import annotations

from typing import Any

from agents.base import AgentRole, BaseAgent
from agents.llm_provider import LLMProvider, LLMResponse

FALLBACK_PROFILE_TEXT = "Erro ao buscar informações automáticas."
EMPTY_PROFILE_TEXT = "Não foi possível encontrar informações."


class ProfileResearcher(BaseAgent):
    """Fills in a candidate's stance description from their name."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        temperature: float = 0.3,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            role=AgentRole.RESEARCHER,
            provider=provider,
            temperature=temperature,
            **kwargs,
        )

    async def enrich(self, name: str) -> str:
        """Return a 2-3 sentence profile of *name*, followed by its sources."""
        if not name.strip():
            return ""
        prompt = (
            f"Search for the political profile, party affiliation, and main stances "
            f"of {name}. Summarize it in 2-3 sentences suitable for a debate "
            f"simulation. Focus on ideology and key policy proposals. "
            f"Write in {self.language}."
        )
        return await self._complete(
            prompt,
            "",
            fallback=FALLBACK_PROFILE_TEXT,
            parse=_with_sources,
            search_grounding=True,
        )


def _with_sources(resp: LLMResponse) -> str:
    text = resp.text.strip() or EMPTY_PROFILE_TEXT
    if resp.sources:
        text += "\n\nFontes:\n" + "\n".join(dict.fromkeys(resp.sources))
    return text
