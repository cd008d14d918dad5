"""Moderator agent – opens the debate, hands over between rounds, closes it."""

from __future__ import annotations

from enum import Enum
from typing import Any

from agents.base import AgentRole, BaseAgent
from agents.llm_provider import LLMProvider
from data.models import Candidate

FALLBACK_MODERATOR_TEXT = "Vamos prosseguir com o debate."
EMPTY_MODERATOR_TEXT = "Prosseguindo com o debate."


class ModeratorAction(str, Enum):
    """Ceremonial moderator interventions, none of which count as a turn."""

    OPENING = "OPENING"
    TRANSITION = "TRANSITION"
    CLOSING = "CLOSING"

    @property
    def phase_label(self) -> str:
        return _PHASE_LABELS[self]


_PHASE_LABELS = {
    ModeratorAction.OPENING: "Abertura",
    ModeratorAction.TRANSITION: "Transição",
    ModeratorAction.CLOSING: "Encerramento",
}

_SYSTEM_PROMPT = """\
You are a neutral **Moderator** conducting a structured political debate.

Goal: keep the debate balanced, clear and moving through the topic without
favouring either side.

Responsibilities:
1. Introduce the topic.
2. Guarantee equal time to both candidates.
3. Keep order and decorum.
4. Never evaluate the candidates or give opinions.

Output plain text only (no markdown, no HTML). Be formal and direct,
authoritative when needed, but polite. Speak in {language}.
"""


class Moderator(BaseAgent):
    """Agent that produces the ceremonial messages bracketing each round."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        temperature: float = 0.5,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            role=AgentRole.MODERATOR,
            provider=provider,
            temperature=temperature,
            **kwargs,
        )

    @property
    def system_prompt(self) -> str:
        return _SYSTEM_PROMPT.format(language=self.language)

    async def generate_turn(
        self,
        action: ModeratorAction,
        topic: str,
        candidate_a: Candidate,
        candidate_b: Candidate,
        *,
        next_initiator: Candidate | None = None,
    ) -> str:
        """Return the moderator's utterance for *action*.

        ``next_initiator`` names who opens the upcoming round on a
        TRANSITION; it defaults to candidate B.
        """
        instruction = self.build_instruction(
            action, topic, candidate_a, candidate_b, next_initiator=next_initiator
        )
        return await self._complete_text(
            instruction,
            self.system_prompt,
            fallback=FALLBACK_MODERATOR_TEXT,
            empty_text=EMPTY_MODERATOR_TEXT,
        )

    def build_instruction(
        self,
        action: ModeratorAction,
        topic: str,
        candidate_a: Candidate,
        candidate_b: Candidate,
        *,
        next_initiator: Candidate | None = None,
    ) -> str:
        if action == ModeratorAction.OPENING:
            return (
                "INSTRUCTION: OPEN the debate.\n"
                f"1. Present the topic: {topic}.\n"
                f"2. Briefly introduce the candidates: {candidate_a.name} "
                f"({candidate_a.party}) and {candidate_b.name} ({candidate_b.party}).\n"
                "3. Explain the rules: each candidate will have the chance of a "
                "Question (Pergunta Base), Reply (Réplica), Rejoinder (Tréplica) "
                "and Counter-argument (Contra-argumento).\n"
                f"4. Invite {candidate_a.name} to start with the Pergunta Base."
            )
        if action == ModeratorAction.TRANSITION:
            starter = next_initiator or candidate_b
            return (
                "INSTRUCTION: TRANSITION to the next block.\n"
                "1. Briefly thank both candidates for the previous exchange.\n"
                f"2. Announce that {starter.name} will now open the round of questions.\n"
                "3. Ask them to stay focused on concrete proposals."
            )
        if action == ModeratorAction.CLOSING:
            return (
                "INSTRUCTION: CLOSE the debate.\n"
                "1. Thank the candidates for a civil debate.\n"
                "2. Announce that the Evaluator Agent will now process the "
                "results based on the voter's profile.\n"
                "3. Be brief and formal."
            )
        raise ValueError(f"No moderator instruction for action {action!r}")
