"""TurnOrchestrator – turns one decision into one transcript message.

The orchestrator is stateless between steps: it reads the transcript and
counter it is handed, decides the next action, awaits the matching content
generator to completion and returns the message to append. Applying the
result (and advancing the counter) is left to the session, which owns the
transcript and knows whether the result is still current.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from agents.debater import Debater
from agents.moderator import Moderator, ModeratorAction
from data.models import DebateConfig, Message, Speaker
from orchestration.turns import (
    TOTAL_ROUNDS,
    TURNS_PER_ROUND,
    ActionKind,
    NextAction,
    TurnSlot,
    decide_next_action,
    round_initiator,
)

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PacingConfig:
    """Fixed delays (seconds) that give the debate a human cadence.

    ``moderator_delay`` precedes TRANSITION/CLOSING, ``turn_delay`` precedes
    candidate turns; OPENING is dispatched immediately. ``settle_delay`` is
    the scheduler's gap between steps and ``evaluation_delay`` the pause
    before the evaluation call.
    """

    settle_delay: float = 0.5
    moderator_delay: float = 0.6
    turn_delay: float = 1.2
    evaluation_delay: float = 1.5

    @classmethod
    def instant(cls) -> PacingConfig:
        return cls(settle_delay=0.0, moderator_delay=0.0, turn_delay=0.0, evaluation_delay=0.0)


@dataclass(frozen=True)
class StepResult:
    """Outcome of one orchestrator step."""

    action: NextAction
    message: Message | None = None

    @property
    def terminal(self) -> bool:
        return self.action.kind is ActionKind.TERMINATE

    @property
    def advances_turn(self) -> bool:
        return self.action.advances_turn


class TurnOrchestrator:
    """Decides and produces the next debate message.

    Parameters
    ----------
    moderator : Moderator
        Generator for OPENING / TRANSITION / CLOSING.
    debater : Debater
        Generator for candidate turns.
    total_rounds : int
        Number of four-turn rounds.
    pacing : PacingConfig | None
        Delays before dispatch.
    sleep : SleepFn
        Awaitable used for the pacing delays (injectable for tests).
    """

    def __init__(
        self,
        moderator: Moderator,
        debater: Debater,
        *,
        total_rounds: int = TOTAL_ROUNDS,
        pacing: PacingConfig | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if total_rounds < 1:
            raise ValueError(f"total_rounds must be at least 1, got {total_rounds}")
        self.moderator = moderator
        self.debater = debater
        self.total_rounds = total_rounds
        self.pacing = pacing or PacingConfig()
        self._sleep = sleep

    def decide(self, transcript: Sequence[Message], turn_counter: int) -> NextAction:
        return decide_next_action(transcript, turn_counter, total_rounds=self.total_rounds)

    async def step(
        self,
        config: DebateConfig,
        transcript: Sequence[Message],
        turn_counter: int,
    ) -> StepResult:
        """Run one step against a snapshot of the transcript."""
        action = self.decide(transcript, turn_counter)

        if action.kind is ActionKind.TERMINATE:
            logger.info("All %d turns spoken and closed – debate is over", turn_counter)
            return StepResult(action=action)

        if action.kind is ActionKind.MODERATOR:
            assert action.moderator_action is not None
            message = await self._moderator_message(
                config, action.moderator_action, turn_counter
            )
        else:
            assert action.slot is not None
            message = await self._candidate_message(config, transcript, action.slot)

        logger.info(
            "[%s] %s: %s",
            message.phase,
            message.sender_id.value,
            message.text[:80] + "…" if len(message.text) > 80 else message.text,
        )
        return StepResult(action=action, message=message)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _moderator_message(
        self,
        config: DebateConfig,
        action: ModeratorAction,
        turn_counter: int,
    ) -> Message:
        if action is not ModeratorAction.OPENING:
            await self._sleep(self.pacing.moderator_delay)

        next_initiator = None
        if action is ModeratorAction.TRANSITION:
            next_round = turn_counter // TURNS_PER_ROUND
            next_initiator = config.candidate(round_initiator(next_round))

        text = await self.moderator.generate_turn(
            action,
            config.topic,
            config.candidate_a,
            config.candidate_b,
            next_initiator=next_initiator,
        )
        return Message(sender_id=Speaker.MODERATOR, text=text, phase=action.phase_label)

    async def _candidate_message(
        self,
        config: DebateConfig,
        transcript: Sequence[Message],
        slot: TurnSlot,
    ) -> Message:
        await self._sleep(self.pacing.turn_delay)
        text = await self.debater.generate_turn(
            config.candidate(slot.speaker),
            config.candidate(slot.opponent),
            config.topic,
            list(transcript),
            slot.phase,
        )
        return Message(sender_id=slot.speaker, text=text, phase=slot.phase)
