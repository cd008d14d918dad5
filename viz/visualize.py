"""Debate visualization – score-card charts and formatted text reports.

Generates matplotlib charts for the evaluation breakdown and per-candidate
participation, and exports a pretty-printed text transcript.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

import matplotlib

matplotlib.use("Agg")  # non-interactive backend
import matplotlib.pyplot as plt

from data.models import Candidate, EvaluationResult, Message, Speaker
from evaluation.metrics import TranscriptMetrics
from evaluation.rubric import CRITERIA

logger = logging.getLogger(__name__)

# Colour per speaker
_SPEAKER_COLOURS: dict[Speaker, str] = {
    Speaker.A: "#2563EB",
    Speaker.B: "#F97316",
    Speaker.MODERATOR: "#64748B",
}


class DebateVisualizer:
    """Generate charts and reports from a finished debate."""

    def __init__(self, output_dir: str | Path = "viz/output") -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate_all(
        self,
        debate_id: str,
        transcript: Sequence[Message],
        result: EvaluationResult,
        metrics: TranscriptMetrics,
        candidate_a: Candidate,
        candidate_b: Candidate,
        topic: str = "",
    ) -> list[Path]:
        """Generate all charts and the text transcript. Returns file paths."""
        return [
            self.plot_breakdown(debate_id, result, candidate_a, candidate_b),
            self.plot_participation(debate_id, metrics, candidate_a, candidate_b),
            self.export_transcript(debate_id, transcript, candidate_a, candidate_b, topic),
        ]

    # ------------------------------------------------------------------
    # Charts
    # ------------------------------------------------------------------

    def plot_breakdown(
        self,
        debate_id: str,
        result: EvaluationResult,
        candidate_a: Candidate,
        candidate_b: Candidate,
    ) -> Path:
        """Grouped bar chart of the five weighted criteria."""
        labels = [f"{c.label} ({c.weight}%)" for c in CRITERIA]
        scores = [getattr(result.breakdown, c.key) for c in CRITERIA]
        positions = list(range(len(CRITERIA)))
        width = 0.38

        fig, ax = plt.subplots(figsize=(10, 5))
        ax.bar(
            [p - width / 2 for p in positions],
            [s.score_a for s in scores],
            width,
            label=candidate_a.name,
            color=_SPEAKER_COLOURS[Speaker.A],
        )
        ax.bar(
            [p + width / 2 for p in positions],
            [s.score_b for s in scores],
            width,
            label=candidate_b.name,
            color=_SPEAKER_COLOURS[Speaker.B],
        )
        ax.set_xticks(positions)
        ax.set_xticklabels(labels)
        ax.set_ylim(0, 100)
        ax.set_ylabel("Score")
        ax.set_title(
            f"Debate {debate_id} – {candidate_a.name} {result.scores.candidate_a} "
            f"× {result.scores.candidate_b} {candidate_b.name}"
        )
        ax.legend()
        plt.tight_layout()

        path = self.output_dir / f"debate_{debate_id}_breakdown.png"
        fig.savefig(path, dpi=150)
        plt.close(fig)
        logger.info("Saved %s", path)
        return path

    def plot_participation(
        self,
        debate_id: str,
        metrics: TranscriptMetrics,
        candidate_a: Candidate,
        candidate_b: Candidate,
    ) -> Path:
        """Horizontal bars of average words per turn for each candidate."""
        names = [candidate_a.name, candidate_b.name]
        values = [
            metrics.avg_words.get(Speaker.A.value, 0.0),
            metrics.avg_words.get(Speaker.B.value, 0.0),
        ]
        colours = [_SPEAKER_COLOURS[Speaker.A], _SPEAKER_COLOURS[Speaker.B]]

        fig, ax = plt.subplots(figsize=(8, 3))
        ax.barh(names, values, color=colours)
        ax.set_xlabel("Average words per turn")
        ax.set_title(f"Debate {debate_id} – Participation")
        plt.tight_layout()

        path = self.output_dir / f"debate_{debate_id}_participation.png"
        fig.savefig(path, dpi=150)
        plt.close(fig)
        logger.info("Saved %s", path)
        return path

    # ------------------------------------------------------------------
    # Text transcript
    # ------------------------------------------------------------------

    def export_transcript(
        self,
        debate_id: str,
        transcript: Sequence[Message],
        candidate_a: Candidate,
        candidate_b: Candidate,
        topic: str = "",
    ) -> Path:
        """Export a pretty-printed text transcript."""
        names = {
            Speaker.A: candidate_a.name,
            Speaker.B: candidate_b.name,
            Speaker.MODERATOR: "MODERADOR",
        }
        lines = [
            f"{'=' * 72}",
            f"  DEBATE {debate_id} TRANSCRIPT",
            f"  Topic: {topic}",
            f"{'=' * 72}",
            "",
        ]
        for msg in transcript:
            lines.append(f"--- {msg.phase or 'Info'} {'─' * 50}")
            lines.append(f"  [{names[msg.sender_id]}] {msg.created_at:%H:%M:%S}")
            lines.append("")
            for paragraph in msg.text.split("\n"):
                lines.append(f"    {paragraph}")
            lines.append("")

        lines.append(f"{'=' * 72}")
        lines.append("  END OF TRANSCRIPT")
        lines.append(f"{'=' * 72}")

        path = self.output_dir / f"debate_{debate_id}_transcript.txt"
        path.write_text("\n".join(lines), encoding="utf-8")
        logger.info("Saved %s", path)
        return path
