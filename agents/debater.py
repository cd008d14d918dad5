"""Debater agent – speaks for one candidate in a given debate phase."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from agents.base import AgentRole, BaseAgent
from agents.llm_provider import LLMProvider
from data.models import Candidate, Message

FALLBACK_DEBATE_TEXT = "Peço desculpas, houve uma falha técnica, mas mantenho minha posição."
EMPTY_DEBATE_TEXT = "..."

PHASE_OPENING_QUESTION = "Pergunta Base"
PHASE_REPLY = "Réplica"
PHASE_REJOINDER = "Tréplica"
PHASE_COUNTER_ARGUMENT = "Contra-argumento"

_PHASE_INSTRUCTIONS: dict[str, str] = {
    PHASE_OPENING_QUESTION: (
        "This is PHASE 1: PERGUNTA BASE. Open this block with an incisive "
        "question or a provocative statement about the topic \"{topic}\" "
        "aimed at your opponent."
    ),
    PHASE_REPLY: (
        "This is PHASE 2: RÉPLICA. Answer directly the question or point your "
        "opponent raised in the previous message. Defend your position and "
        "refute the attack."
    ),
    PHASE_REJOINDER: (
        "This is PHASE 3: TRÉPLICA. Your opponent answered your question. Point "
        "out the flaws in that answer or reinforce your original point. Keep "
        "up the pressure."
    ),
    PHASE_COUNTER_ARGUMENT: (
        "This is PHASE 4: CONTRA-ARGUMENTO. Close this cycle of the debate. "
        "Have the final word on this specific point, rebutting your opponent's "
        "rejoinder and summing up why your position is stronger."
    ),
}

_SYSTEM_PROMPT = """\
You are a political debate simulator.
You are now acting as the candidate: {name} ({party}).

Candidate profile: {description}

Your opponent is: {opponent_name} ({opponent_party}).
The debate topic is: "{topic}".

SPECIFIC INSTRUCTION FOR THIS TURN ({phase}):
{phase_instruction}

General rules:
1. Stay faithful to your political profile.
2. Be incisive but keep political decorum.
3. Keep the answer concise (at most {max_words} words).
4. Speak in {language}.
"""


def phase_instruction(phase: str, topic: str) -> str:
    """Return the framing for *phase*; unknown phases are a programming error."""
    try:
        template = _PHASE_INSTRUCTIONS[phase]
    except KeyError:
        raise ValueError(
            f"No instruction mapping for phase {phase!r}. "
            f"Known phases: {list(_PHASE_INSTRUCTIONS)}"
        ) from None
    return template.format(topic=topic)


def format_history(
    transcript: Sequence[Message],
    speaker: Candidate,
    opponent: Candidate,
) -> str:
    """Serialise the transcript from *speaker*'s point of view."""
    lines: list[str] = []
    for msg in transcript:
        if msg.is_moderator:
            lines.append(f"[MODERADOR]: {msg.text}")
            continue
        who = "Você" if msg.sender_id == speaker.id else opponent.name
        lines.append(f"[{msg.phase or 'Turno'}] {who}: {msg.text}")
    return "\n".join(lines)


class Debater(BaseAgent):
    """Agent that voices whichever candidate holds the floor."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        temperature: float = 0.8,
        max_words: int = 50,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            role=AgentRole.DEBATER,
            provider=provider,
            temperature=temperature,
            **kwargs,
        )
        self.max_words = max_words

    async def generate_turn(
        self,
        speaker: Candidate,
        opponent: Candidate,
        topic: str,
        transcript: Sequence[Message],
        phase: str,
    ) -> str:
        """Return *speaker*'s utterance for *phase* given the prior transcript."""
        system_instruction = self.build_system_instruction(speaker, opponent, topic, phase)
        prompt = self.build_prompt(speaker, opponent, topic, transcript, phase)
        return await self._complete_text(
            prompt,
            system_instruction,
            fallback=FALLBACK_DEBATE_TEXT,
            empty_text=EMPTY_DEBATE_TEXT,
        )

    def build_system_instruction(
        self,
        speaker: Candidate,
        opponent: Candidate,
        topic: str,
        phase: str,
    ) -> str:
        return _SYSTEM_PROMPT.format(
            name=speaker.name,
            party=speaker.party,
            description=speaker.description,
            opponent_name=opponent.name,
            opponent_party=opponent.party,
            topic=topic,
            phase=phase,
            phase_instruction=phase_instruction(phase, topic),
            max_words=self.max_words,
            language=self.language,
        )

    def build_prompt(
        self,
        speaker: Candidate,
        opponent: Candidate,
        topic: str,
        transcript: Sequence[Message],
        phase: str,
    ) -> str:
        if not transcript:
            return f"Start the debate with your Pergunta Base about: {topic}."
        history = format_history(transcript, speaker, opponent)
        return (
            f"Here is the debate transcript so far:\n{history}\n\n"
            f"Your turn to speak ({phase})."
        )
