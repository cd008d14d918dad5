"""Pydantic models for debate setup, transcript and evaluation records."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Speaker(str, Enum):
    """Who a transcript message belongs to."""

    A = "A"
    B = "B"
    MODERATOR = "Moderator"


class WinnerId(str, Enum):
    A = "A"
    B = "B"
    TIE = "Tie"


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

class Candidate(BaseModel):
    """One of the two debating politicians."""

    model_config = ConfigDict(frozen=True)

    id: Speaker
    name: str
    party: str = ""
    description: str = ""  # stance, ideology, history
    color: str = ""


class VoterProfile(BaseModel):
    """The voter the evaluation is personalised for."""

    model_config = ConfigDict(frozen=True)

    name: str
    interests: str = ""  # priorities, values, rejections


class DebateConfig(BaseModel):
    """Everything fixed at the moment a debate starts."""

    model_config = ConfigDict(frozen=True)

    candidate_a: Candidate
    candidate_b: Candidate
    voter: VoterProfile
    topic: str

    def candidate(self, speaker: Speaker) -> Candidate:
        if speaker is Speaker.A:
            return self.candidate_a
        if speaker is Speaker.B:
            return self.candidate_b
        raise ValueError(f"{speaker.value!r} is not a candidate")


# ---------------------------------------------------------------------------
# Transcript
# ---------------------------------------------------------------------------

class Message(BaseModel):
    """A single transcript entry. Immutable once appended."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    sender_id: Speaker
    text: str
    created_at: datetime = Field(default_factory=_utcnow)
    phase: str | None = None

    @property
    def is_moderator(self) -> bool:
        return self.sender_id is Speaker.MODERATOR


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

class CriterionScore(BaseModel):
    """Per-criterion scores for both candidates (0-100)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    score_a: int = Field(alias="a", ge=0, le=100)
    score_b: int = Field(alias="b", ge=0, le=100)
    rationale: str = Field(alias="reason")


class Scores(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    candidate_a: int = Field(alias="candidateA", ge=0, le=100)
    candidate_b: int = Field(alias="candidateB", ge=0, le=100)


class ScoreBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    coherence: CriterionScore
    alignment: CriterionScore
    viability: CriterionScore
    consistency: CriterionScore
    clarity: CriterionScore


class EvaluationResult(BaseModel):
    """Outcome of the weighted evaluation pass, accepted as returned."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    winner_id: WinnerId = Field(alias="winnerId")
    scores: Scores
    reasoning: str
    breakdown: ScoreBreakdown


# ---------------------------------------------------------------------------
# Counters
# ---------------------------------------------------------------------------

class PlatformStats(BaseModel):
    """Advisory usage counters shown on the landing screen."""

    active_users: int = 0
    total_debates: int = 0
