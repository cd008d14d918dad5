"""Evaluation framework – rubric, validators and transcript metrics."""

from evaluation.metrics import TranscriptMetrics, compute_transcript_metrics
from evaluation.rubric import (
    CRITERIA,
    EVALUATION_SCHEMA,
    Criterion,
    fallback_evaluation,
    parse_evaluation,
)
from evaluation.validators import DebateValidator, InvalidConfigError, ValidationResult

__all__ = [
    "CRITERIA",
    "Criterion",
    "DebateValidator",
    "EVALUATION_SCHEMA",
    "InvalidConfigError",
    "TranscriptMetrics",
    "ValidationResult",
    "compute_transcript_metrics",
    "fallback_evaluation",
    "parse_evaluation",
]
