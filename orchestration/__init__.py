"""Orchestration layer – turn state machine, orchestrator and session."""

from orchestration.orchestrator import PacingConfig, StepResult, TurnOrchestrator
from orchestration.session import DebateSession, SessionStateError, SessionStatus
from orchestration.turns import (
    MAX_TURNS,
    PHASE_NAMES,
    TOTAL_ROUNDS,
    TURNS_PER_ROUND,
    ActionKind,
    NextAction,
    TurnSlot,
    decide_next_action,
    turn_slot,
)

__all__ = [
    "ActionKind",
    "DebateSession",
    "MAX_TURNS",
    "NextAction",
    "PHASE_NAMES",
    "PacingConfig",
    "SessionStateError",
    "SessionStatus",
    "StepResult",
    "TOTAL_ROUNDS",
    "TURNS_PER_ROUND",
    "TurnOrchestrator",
    "TurnSlot",
    "decide_next_action",
    "turn_slot",
]
