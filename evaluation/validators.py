"""Validators for debate setups and transcripts."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from data.models import DebateConfig, Message, Speaker

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Outcome of a validation check."""

    valid: bool
    issues: list[str]

    def __bool__(self) -> bool:
        return self.valid


class InvalidConfigError(ValueError):
    """Raised when a debate is started with an unusable setup."""

    def __init__(self, issues: list[str]) -> None:
        self.issues = issues
        super().__init__("Invalid debate setup: " + "; ".join(issues))


class DebateValidator:
    """Validates debate setups before starting and transcripts afterwards."""

    def __init__(self, max_topic_length: int = 500) -> None:
        self.max_topic_length = max_topic_length

    def validate_config(self, config: DebateConfig) -> ValidationResult:
        """Check a setup before the debate starts."""
        issues: list[str] = []

        if not config.topic.strip():
            issues.append("Topic is empty")
        elif len(config.topic) > self.max_topic_length:
            issues.append(
                f"Topic too long ({len(config.topic)} chars, "
                f"maximum {self.max_topic_length})"
            )

        if config.candidate_a.id is not Speaker.A:
            issues.append(f"First candidate must have id 'A', got {config.candidate_a.id.value!r}")
        if config.candidate_b.id is not Speaker.B:
            issues.append(f"Second candidate must have id 'B', got {config.candidate_b.id.value!r}")

        for candidate in (config.candidate_a, config.candidate_b):
            if not candidate.name.strip():
                issues.append(f"Candidate {candidate.id.value} has no name")

        if not config.voter.name.strip():
            issues.append("Voter profile has no name")

        return ValidationResult(valid=len(issues) == 0, issues=issues)

    def validate_transcript(
        self,
        transcript: Sequence[Message],
        turn_counter: int,
    ) -> ValidationResult:
        """Check the bookkeeping invariants of a transcript."""
        issues: list[str] = []

        candidate_turns = sum(1 for m in transcript if not m.is_moderator)
        if candidate_turns != turn_counter:
            issues.append(
                f"Turn counter {turn_counter} does not match "
                f"{candidate_turns} candidate messages"
            )

        if transcript and not transcript[0].is_moderator:
            issues.append("Transcript does not start with the moderator opening")

        ids = [m.id for m in transcript]
        if len(set(ids)) != len(ids):
            issues.append("Duplicate message ids")

        for prev, cur in zip(transcript, transcript[1:]):
            if prev.is_moderator and cur.is_moderator:
                issues.append(f"Consecutive moderator messages at {cur.id}")
                break

        if issues:
            logger.warning("Transcript validation failed: %s", "; ".join(issues))

        return ValidationResult(valid=len(issues) == 0, issues=issues)
