"""Data layer – pydantic models and the SQLite counter store."""

from data.models import (
    Candidate,
    CriterionScore,
    DebateConfig,
    EvaluationResult,
    Message,
    PlatformStats,
    ScoreBreakdown,
    Scores,
    Speaker,
    VoterProfile,
    WinnerId,
)
from data.database import StatsDatabase

__all__ = [
    "Candidate",
    "CriterionScore",
    "DebateConfig",
    "EvaluationResult",
    "Message",
    "PlatformStats",
    "ScoreBreakdown",
    "Scores",
    "Speaker",
    "StatsDatabase",
    "VoterProfile",
    "WinnerId",
]
