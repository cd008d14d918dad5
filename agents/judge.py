"""Judge agent – scores the debate against a voter profile."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from agents.base import AgentRole, BaseAgent
from agents.llm_provider import LLMProvider
from data.models import Candidate, EvaluationResult, Message, Speaker, VoterProfile
from evaluation.rubric import (
    EVALUATION_SCHEMA,
    fallback_evaluation,
    parse_evaluation,
    rubric_text,
)

_SYSTEM_PROMPT = """\
You are an impartial **Evaluator** analysing a political debate based
EXCLUSIVELY on the voter profile provided.

Goal: assess how well each candidate aligns with the voter's interests,
values and priorities.

Important:
- Do NOT recommend a vote.
- Do NOT declare who is right or wrong.
- Assess only alignment, coherence and viability.
- State uncertainty when information is missing.

Score each criterion from 0 to 100 independently for each candidate, give a
short reason per criterion, compute each candidate's weighted total using the
weights given, and pick the winner (or "Tie"). Write the reasons and the
reasoning in {language}. Respond with JSON only.
"""


def format_transcript(
    transcript: Sequence[Message],
    candidate_a: Candidate,
    candidate_b: Candidate,
) -> str:
    names = {
        Speaker.A: candidate_a.name,
        Speaker.B: candidate_b.name,
        Speaker.MODERATOR: "MODERADOR",
    }
    return "\n".join(
        f"{names[m.sender_id]} ({m.phase or 'Info'}): {m.text}" for m in transcript
    )


class Judge(BaseAgent):
    """Agent that delivers the weighted, voter-centred evaluation."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        temperature: float = 0.2,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            role=AgentRole.JUDGE,
            provider=provider,
            temperature=temperature,
            **kwargs,
        )

    @property
    def system_prompt(self) -> str:
        return _SYSTEM_PROMPT.format(language=self.language)

    async def evaluate(
        self,
        candidate_a: Candidate,
        candidate_b: Candidate,
        voter: VoterProfile,
        topic: str,
        transcript: Sequence[Message],
    ) -> EvaluationResult:
        """Return the evaluation as produced by the backend, or a neutral tie."""
        prompt = self.build_prompt(candidate_a, candidate_b, voter, topic, transcript)
        return await self._complete(
            prompt,
            self.system_prompt,
            fallback=fallback_evaluation(),
            parse=lambda resp: parse_evaluation(resp.text),
            response_schema=EVALUATION_SCHEMA,
        )

    def build_prompt(
        self,
        candidate_a: Candidate,
        candidate_b: Candidate,
        voter: VoterProfile,
        topic: str,
        transcript: Sequence[Message],
    ) -> str:
        return (
            "VOTER PROFILE\n"
            f"Name: {voter.name}\n"
            f"Description (priorities, values, view of the state, risk, rejections): "
            f"\"{voter.interests}\"\n\n"
            "EVALUATION CRITERIA (scale 0-100)\n"
            f"{rubric_text()}\n\n"
            "DEBATE CONTEXT\n"
            f"Topic: {topic}\n"
            f"Candidate A: {candidate_a.name} ({candidate_a.party}) - {candidate_a.description}\n"
            f"Candidate B: {candidate_b.name} ({candidate_b.party}) - {candidate_b.description}\n\n"
            "DEBATE TRANSCRIPT\n"
            f"{format_transcript(transcript, candidate_a, candidate_b)}"
        )
