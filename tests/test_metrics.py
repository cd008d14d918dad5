"""Tests for transcript process metrics."""

from __future__ import annotations

from agents import FALLBACK_DEBATE_TEXT, FALLBACK_MODERATOR_TEXT, FALLBACK_TEXTS
from data.models import Message, Speaker
from evaluation.metrics import compute_transcript_metrics, word_count


def _transcript() -> list[Message]:
    return [
        Message(sender_id=Speaker.MODERATOR, text="Boa noite a todos."),
        Message(sender_id=Speaker.A, text="Um dois três quatro"),
        Message(sender_id=Speaker.B, text="Um dois"),
        Message(sender_id=Speaker.A, text="Um dois"),
        Message(sender_id=Speaker.B, text=FALLBACK_DEBATE_TEXT),
        Message(sender_id=Speaker.MODERATOR, text=FALLBACK_MODERATOR_TEXT),
    ]


class TestTranscriptMetrics:
    def test_word_count(self):
        assert word_count("  a  b c ") == 3
        assert word_count("") == 0

    def test_counts(self):
        metrics = compute_transcript_metrics(_transcript())
        assert metrics.total_messages == 6
        assert metrics.moderator_messages == 2
        assert metrics.candidate_turns == {"A": 2, "B": 2}
        assert metrics.avg_words["A"] == 3.0
        assert metrics.degraded_turns == 0

    def test_degraded_turns(self):
        metrics = compute_transcript_metrics(_transcript(), FALLBACK_TEXTS)
        assert metrics.degraded_turns == 2
        assert abs(metrics.degraded_ratio - 2 / 6) < 1e-9

    def test_empty(self):
        metrics = compute_transcript_metrics([])
        assert metrics.total_messages == 0
        assert metrics.avg_words == {"A": 0.0, "B": 0.0}
        assert metrics.degraded_ratio == 0.0

    def test_to_dict(self):
        d = compute_transcript_metrics(_transcript(), FALLBACK_TEXTS).to_dict()
        assert d["total_messages"] == 6
        assert d["degraded_ratio"] == 0.333
        assert set(d) == {
            "total_messages",
            "moderator_messages",
            "candidate_turns",
            "avg_words",
            "degraded_turns",
            "degraded_ratio",
        }
