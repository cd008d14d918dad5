"""Weighted evaluation rubric and the structured-output contract for it.

The weights are communicated to the evaluator in its instruction; the final
scores and winner are accepted exactly as returned and never re-weighted here.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

from data.models import (
    CriterionScore,
    EvaluationResult,
    ScoreBreakdown,
    Scores,
    WinnerId,
)


@dataclass(frozen=True)
class Criterion:
    key: str
    label: str
    weight: int  # percent
    question: str


CRITERIA: tuple[Criterion, ...] = (
    Criterion(
        "alignment", "Alinhamento", 35,
        "Do the proposals serve the voter's priorities and interests?",
    ),
    Criterion(
        "coherence", "Coerência", 20,
        "Did the candidate stay faithful to their own ideology?",
    ),
    Criterion(
        "viability", "Viabilidade", 15,
        "Are the proposals applicable in the real world?",
    ),
    Criterion(
        "consistency", "Institucional", 15,
        "Do the proposals respect laws and democratic institutions?",
    ),
    Criterion(
        "clarity", "Clareza", 15,
        "Was the candidate clear, honest and upfront about limits?",
    ),
)

_CRITERION_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "a": {"type": "INTEGER"},
        "b": {"type": "INTEGER"},
        "reason": {"type": "STRING"},
    },
    "required": ["a", "b", "reason"],
}

EVALUATION_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "winnerId": {"type": "STRING", "enum": [w.value for w in WinnerId]},
        "scores": {
            "type": "OBJECT",
            "properties": {
                "candidateA": {"type": "INTEGER"},
                "candidateB": {"type": "INTEGER"},
            },
            "required": ["candidateA", "candidateB"],
        },
        "reasoning": {"type": "STRING"},
        "breakdown": {
            "type": "OBJECT",
            "properties": {c.key: _CRITERION_SCHEMA for c in CRITERIA},
            "required": [c.key for c in CRITERIA],
        },
    },
    "required": ["winnerId", "scores", "reasoning", "breakdown"],
}

FALLBACK_REASONING = (
    "Não foi possível processar a avaliação devido a instabilidade no serviço."
)

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")


def rubric_text() -> str:
    """Numbered criteria with weights, as shown to the evaluator."""
    return "\n".join(
        f"{i}. {c.key} – {c.label} (weight {c.weight}%): {c.question}"
        for i, c in enumerate(CRITERIA, start=1)
    )


def clean_json(text: str) -> str:
    """Strip markdown code fences some models wrap JSON in."""
    return _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text.strip())).strip()


def parse_evaluation(text: str) -> EvaluationResult:
    """Parse and validate an evaluator response.

    Raises ``ValueError`` (``json.JSONDecodeError`` or pydantic's
    ``ValidationError``) when the payload does not match the schema.
    """
    payload = json.loads(clean_json(text or "{}"))
    return EvaluationResult.model_validate(payload)


def fallback_evaluation() -> EvaluationResult:
    """Neutral all-zero tie used when the evaluation cannot be obtained."""
    empty = CriterionScore(score_a=0, score_b=0, rationale="N/A")
    return EvaluationResult(
        winner_id=WinnerId.TIE,
        scores=Scores(candidate_a=0, candidate_b=0),
        reasoning=FALLBACK_REASONING,
        breakdown=ScoreBreakdown(
            coherence=empty,
            alignment=empty,
            viability=empty,
            consistency=empty,
            clarity=empty,
        ),
    )
