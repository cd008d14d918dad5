"""Tests for setup and transcript validators."""

from __future__ import annotations

import pytest

from data.models import Candidate, Message, Speaker, VoterProfile
from evaluation.validators import DebateValidator, InvalidConfigError, ValidationResult


@pytest.fixture
def validator() -> DebateValidator:
    return DebateValidator(max_topic_length=50)


def _msg(sender: Speaker, text: str = "...", **kwargs) -> Message:
    return Message(sender_id=sender, text=text, **kwargs)


class TestValidateConfig:
    def test_valid(self, validator, debate_config):
        result = validator.validate_config(debate_config)
        assert result.valid
        assert bool(result) is True
        assert result.issues == []

    def test_empty_topic(self, validator, debate_config):
        result = validator.validate_config(debate_config.model_copy(update={"topic": " "}))
        assert not result
        assert "Topic is empty" in result.issues

    def test_topic_too_long(self, validator, debate_config):
        result = validator.validate_config(debate_config.model_copy(update={"topic": "x" * 51}))
        assert any("too long" in issue for issue in result.issues)

    def test_swapped_candidate_ids(self, validator, debate_config):
        swapped = debate_config.model_copy(
            update={"candidate_a": debate_config.candidate_b, "candidate_b": debate_config.candidate_a}
        )
        result = validator.validate_config(swapped)
        assert len(result.issues) == 2

    def test_blank_names(self, validator, debate_config):
        config = debate_config.model_copy(
            update={
                "candidate_b": Candidate(id=Speaker.B, name="  "),
                "voter": VoterProfile(name=""),
            }
        )
        result = validator.validate_config(config)
        assert "Candidate B has no name" in result.issues
        assert "Voter profile has no name" in result.issues


class TestValidateTranscript:
    def test_valid(self, validator):
        transcript = [_msg(Speaker.MODERATOR), _msg(Speaker.A), _msg(Speaker.B)]
        assert validator.validate_transcript(transcript, 2).valid

    def test_empty(self, validator):
        assert validator.validate_transcript([], 0).valid

    def test_counter_mismatch(self, validator):
        transcript = [_msg(Speaker.MODERATOR), _msg(Speaker.A)]
        result = validator.validate_transcript(transcript, 2)
        assert any("does not match" in issue for issue in result.issues)

    def test_must_open_with_moderator(self, validator):
        result = validator.validate_transcript([_msg(Speaker.A)], 1)
        assert any("moderator opening" in issue for issue in result.issues)

    def test_duplicate_ids(self, validator):
        transcript = [_msg(Speaker.MODERATOR, id="x"), _msg(Speaker.A, id="x")]
        result = validator.validate_transcript(transcript, 1)
        assert "Duplicate message ids" in result.issues

    def test_consecutive_moderator(self, validator):
        transcript = [_msg(Speaker.MODERATOR), _msg(Speaker.MODERATOR)]
        result = validator.validate_transcript(transcript, 0)
        assert any("Consecutive moderator" in issue for issue in result.issues)


class TestInvalidConfigError:
    def test_message_and_issues(self):
        err = InvalidConfigError(["a", "b"])
        assert err.issues == ["a", "b"]
        assert "a; b" in str(err)
        assert isinstance(err, ValueError)

    def test_validation_result_bool(self):
        assert not ValidationResult(valid=False, issues=["x"])
