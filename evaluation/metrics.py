"""Process metrics computed locally from a debate transcript.

These describe how the debate ran (who spoke, how much, how many turns
degraded to placeholder text). They never touch the evaluator's scores.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import dataclass, field
from typing import Any

from data.models import Message, Speaker


@dataclass
class TranscriptMetrics:
    """Collection of process metrics for a debate."""

    total_messages: int = 0
    moderator_messages: int = 0
    candidate_turns: dict[str, int] = field(default_factory=dict)
    avg_words: dict[str, float] = field(default_factory=dict)
    degraded_turns: int = 0

    @property
    def degraded_ratio(self) -> float:
        if self.total_messages == 0:
            return 0.0
        return self.degraded_turns / self.total_messages

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_messages": self.total_messages,
            "moderator_messages": self.moderator_messages,
            "candidate_turns": self.candidate_turns,
            "avg_words": {k: round(v, 1) for k, v in self.avg_words.items()},
            "degraded_turns": self.degraded_turns,
            "degraded_ratio": round(self.degraded_ratio, 3),
        }


def word_count(text: str) -> int:
    return len(text.split())


def compute_transcript_metrics(
    transcript: Sequence[Message],
    degraded_texts: Collection[str] = (),
) -> TranscriptMetrics:
    """Compute per-speaker participation and degraded-turn counts.

    ``degraded_texts`` are the fallback placeholders the generators emit when
    every attempt failed; messages whose text equals one of them are counted.
    """
    turns: dict[str, int] = {Speaker.A.value: 0, Speaker.B.value: 0}
    words: dict[str, int] = {Speaker.A.value: 0, Speaker.B.value: 0}
    moderator = 0
    degraded = 0

    for msg in transcript:
        if msg.text.strip() in degraded_texts:
            degraded += 1
        if msg.is_moderator:
            moderator += 1
            continue
        key = msg.sender_id.value
        turns[key] += 1
        words[key] += word_count(msg.text)

    return TranscriptMetrics(
        total_messages=len(transcript),
        moderator_messages=moderator,
        candidate_turns=turns,
        avg_words={k: words[k] / turns[k] if turns[k] else 0.0 for k in turns},
        degraded_turns=degraded,
    )
