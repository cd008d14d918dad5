"""Turn state machine for the two-candidate debate format.

The next action is never stored; it is re-derived from the transcript and the
candidate-turn counter every time ``decide_next_action`` is called. Priority:

1. empty transcript                                  -> moderator OPENING
2. round boundary reached, last speaker not moderator -> moderator TRANSITION
3. all turns spoken, last speaker not moderator       -> moderator CLOSING
4. all turns spoken, last speaker is moderator        -> TERMINATE
5. otherwise                                          -> candidate turn

Each round has a fixed initiator (A on even rounds, B on odd rounds) who
speaks at steps 0 and 2; the opponent speaks at steps 1 and 3.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from agents.debater import (
    PHASE_COUNTER_ARGUMENT,
    PHASE_OPENING_QUESTION,
    PHASE_REJOINDER,
    PHASE_REPLY,
)
from agents.moderator import ModeratorAction
from data.models import Message, Speaker

PHASE_NAMES: tuple[str, ...] = (
    PHASE_OPENING_QUESTION,
    PHASE_REPLY,
    PHASE_REJOINDER,
    PHASE_COUNTER_ARGUMENT,
)
TURNS_PER_ROUND = len(PHASE_NAMES)
TOTAL_ROUNDS = 2
MAX_TURNS = TURNS_PER_ROUND * TOTAL_ROUNDS


class ActionKind(str, Enum):
    MODERATOR = "moderator"
    CANDIDATE_TURN = "candidate_turn"
    TERMINATE = "terminate"


@dataclass(frozen=True)
class TurnSlot:
    """Who speaks, against whom, and in which phase for one candidate turn."""

    turn: int
    round: int
    step: int
    speaker: Speaker
    opponent: Speaker
    phase: str

    @property
    def initiator(self) -> Speaker:
        return round_initiator(self.round)


@dataclass(frozen=True)
class NextAction:
    kind: ActionKind
    moderator_action: ModeratorAction | None = None
    slot: TurnSlot | None = None

    @classmethod
    def moderator(cls, action: ModeratorAction) -> NextAction:
        return cls(kind=ActionKind.MODERATOR, moderator_action=action)

    @classmethod
    def candidate(cls, slot: TurnSlot) -> NextAction:
        return cls(kind=ActionKind.CANDIDATE_TURN, slot=slot)

    @classmethod
    def terminate(cls) -> NextAction:
        return cls(kind=ActionKind.TERMINATE)

    @property
    def advances_turn(self) -> bool:
        return self.kind is ActionKind.CANDIDATE_TURN


def max_turns(total_rounds: int = TOTAL_ROUNDS) -> int:
    return TURNS_PER_ROUND * total_rounds


def round_initiator(round_index: int) -> Speaker:
    return Speaker.A if round_index % 2 == 0 else Speaker.B


def _other(speaker: Speaker) -> Speaker:
    return Speaker.B if speaker is Speaker.A else Speaker.A


def turn_slot(turn_counter: int) -> TurnSlot:
    """Pure mapping from the candidate-turn counter to its slot."""
    if turn_counter < 0:
        raise ValueError(f"turn_counter must be non-negative, got {turn_counter}")
    round_index, step = divmod(turn_counter, TURNS_PER_ROUND)
    initiator = round_initiator(round_index)
    speaker = initiator if step % 2 == 0 else _other(initiator)
    return TurnSlot(
        turn=turn_counter,
        round=round_index,
        step=step,
        speaker=speaker,
        opponent=_other(speaker),
        phase=PHASE_NAMES[step],
    )


def decide_next_action(
    transcript: Sequence[Message],
    turn_counter: int,
    *,
    total_rounds: int = TOTAL_ROUNDS,
) -> NextAction:
    """Decide what happens next from the transcript and turn counter alone."""
    if not transcript:
        return NextAction.moderator(ModeratorAction.OPENING)

    last_is_moderator = transcript[-1].is_moderator
    limit = max_turns(total_rounds)

    if (
        0 < turn_counter < limit
        and turn_counter % TURNS_PER_ROUND == 0
        and not last_is_moderator
    ):
        return NextAction.moderator(ModeratorAction.TRANSITION)

    if turn_counter >= limit:
        if not last_is_moderator:
            return NextAction.moderator(ModeratorAction.CLOSING)
        return NextAction.terminate()

    return NextAction.candidate(turn_slot(turn_counter))
