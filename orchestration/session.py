"""DebateSession – lifecycle controller for one debate at a time.

Lifecycle::

    LANDING --enter_arena--> SETUP --start--> DEBATE --(terminal|stop)--> EVALUATING --> FINISHED
                               ^                                                          |
                               +-------------------------- reset -------------------------+

The session owns the transcript, the candidate-turn counter and the
single-flight lock. While in DEBATE it re-arms a timer after every completed
step; a step requested while another is in flight is dropped, not queued.
Every step and evaluation is tagged with the session token that was current
when it started, and anything arriving under an outdated token is discarded.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import uuid
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any

from agents.judge import Judge
from agents.speech import SpeechSynthesizer
from data.database import StatsDatabase
from data.models import DebateConfig, EvaluationResult, Message, Speaker
from evaluation.validators import DebateValidator, InvalidConfigError
from orchestration.orchestrator import PacingConfig, StepResult, TurnOrchestrator

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]
MessageCallback = Callable[[Message], None]
StatusCallback = Callable[["SessionStatus"], None]
AudioCallback = Callable[[Message, bytes], None]

DEFAULT_VOICES: dict[Speaker, str] = {
    Speaker.MODERATOR: "Kore",
    Speaker.A: "Puck",
    Speaker.B: "Charon",
}


class SessionStatus(str, Enum):
    LANDING = "LANDING"
    SETUP = "SETUP"
    DEBATE = "DEBATE"
    EVALUATING = "EVALUATING"
    FINISHED = "FINISHED"


class SessionStateError(RuntimeError):
    """Raised when a lifecycle operation is invoked in the wrong status."""


class DebateSession:
    """Runs a debate from setup to evaluation.

    Parameters
    ----------
    orchestrator : TurnOrchestrator
        Decides and produces each message.
    judge : Judge
        Produces the final evaluation.
    counter_store : StatsDatabase | None
        Advisory usage counters; failures are logged and ignored.
    speech : SpeechSynthesizer | None
        Optional text-to-speech side channel.
    audio_enabled : bool
        When True (and ``speech`` is set) each new message is synthesised
        before the step releases the lock.
    voices : Mapping[Speaker, str] | None
        Voice id per speaker.
    pacing : PacingConfig | None
        Scheduler and evaluation delays; defaults to the orchestrator's.
    auto_advance : bool
        Schedule steps automatically while in DEBATE. Disable to drive the
        debate with explicit ``request_step`` calls.
    validator : DebateValidator | None
        Setup validation applied by ``start``.
    """

    def __init__(
        self,
        orchestrator: TurnOrchestrator,
        judge: Judge,
        *,
        counter_store: StatsDatabase | None = None,
        speech: SpeechSynthesizer | None = None,
        audio_enabled: bool = False,
        voices: Mapping[Speaker, str] | None = None,
        pacing: PacingConfig | None = None,
        auto_advance: bool = True,
        validator: DebateValidator | None = None,
        sleep: SleepFn = asyncio.sleep,
        on_message: MessageCallback | None = None,
        on_status_change: StatusCallback | None = None,
        on_audio: AudioCallback | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.judge = judge
        self.counter_store = counter_store
        self.speech = speech
        self.audio_enabled = audio_enabled
        self.voices: dict[Speaker, str] = {**DEFAULT_VOICES, **(voices or {})}
        self.pacing = pacing or orchestrator.pacing
        self.auto_advance = auto_advance
        self.validator = validator or DebateValidator()
        self._sleep = sleep
        self.on_message = on_message
        self.on_status_change = on_status_change
        self.on_audio = on_audio

        self._tokens = itertools.count(1)
        self._session_id = next(self._tokens)
        self._status = SessionStatus.LANDING
        self._config: DebateConfig | None = None
        self._transcript: list[Message] = []
        self._turn_counter = 0
        self._evaluation: EvaluationResult | None = None
        self._lock_owner: int | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._finished = asyncio.Event()
        self._error: BaseException | None = None

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def config(self) -> DebateConfig | None:
        return self._config

    @property
    def transcript(self) -> tuple[Message, ...]:
        return tuple(self._transcript)

    @property
    def turn_counter(self) -> int:
        return self._turn_counter

    @property
    def evaluation(self) -> EvaluationResult | None:
        return self._evaluation

    @property
    def session_id(self) -> int:
        return self._session_id

    @property
    def in_flight(self) -> bool:
        return self._lock_owner is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def enter_arena(self, visitor_id: str | None = None) -> None:
        """LANDING -> SETUP, recording the visit."""
        self._require(SessionStatus.LANDING)
        await self._advisory(
            "record_visit", lambda store: store.record_visit(visitor_id or uuid.uuid4().hex)
        )
        self._set_status(SessionStatus.SETUP)

    async def start(self, config: DebateConfig) -> None:
        """SETUP -> DEBATE with a fresh transcript."""
        self._require(SessionStatus.SETUP)
        result = self.validator.validate_config(config)
        if not result:
            raise InvalidConfigError(result.issues)

        self._new_session()
        self._config = config
        logger.info(
            "Session %d: debate on %r between %s and %s",
            self._session_id,
            config.topic,
            config.candidate_a.name,
            config.candidate_b.name,
        )
        await self._advisory("increment_debate_started", lambda store: store.increment_debate_started())
        self._set_status(SessionStatus.DEBATE)
        self._schedule_step()

    async def stop(self) -> None:
        """End the debate early and evaluate what has been said so far."""
        self._require(SessionStatus.DEBATE)
        logger.info("Session %d: debate stopped after %d turns", self._session_id, self._turn_counter)
        self._begin_evaluation()

    async def reset(self) -> None:
        """Return to SETUP, discarding transcript, counter, evaluation and lock."""
        if self._status is SessionStatus.LANDING:
            raise SessionStateError("Cannot reset before entering the arena")
        self._new_session()
        self._set_status(SessionStatus.SETUP)

    async def wait_finished(self) -> EvaluationResult:
        """Wait until the session reaches FINISHED (or fails) and return the result.

        A reset while waiting carries the wait over to the new debate.
        """
        while True:
            event = self._finished
            await event.wait()
            if event is self._finished:
                break
        if self._error is not None:
            raise self._error
        assert self._evaluation is not None
        return self._evaluation

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def request_step(self) -> bool:
        """Run one orchestrator step unless one is already in flight.

        Returns True when the step's result was applied.
        """
        if self._status is not SessionStatus.DEBATE or self._config is None:
            return False
        if self._lock_owner is not None:
            logger.debug("Session %d: step already in flight, request dropped", self._session_id)
            return False

        session_id = self._session_id
        self._lock_owner = session_id
        applied = False
        try:
            result = await self.orchestrator.step(
                self._config, tuple(self._transcript), self._turn_counter
            )
            if not self._is_current(session_id):
                logger.info("Session %d: discarding stale step result", session_id)
                return False
            if result.terminal:
                self._begin_evaluation()
                return True
            message = self._apply(result)
            applied = True
            if self.audio_enabled and self.speech is not None:
                await self._speak(message, session_id)
            return True
        finally:
            if self._lock_owner == session_id:
                self._lock_owner = None
            if applied and self.auto_advance and self._is_current(session_id):
                self._schedule_step()

    def _apply(self, result: StepResult) -> Message:
        assert result.message is not None
        self._transcript.append(result.message)
        if result.advances_turn:
            self._turn_counter += 1
        if self.on_message is not None:
            self.on_message(result.message)
        return result.message

    async def _speak(self, message: Message, session_id: int) -> None:
        assert self.speech is not None
        voice = self.voices.get(message.sender_id, DEFAULT_VOICES[message.sender_id])
        try:
            audio = await self.speech.synthesize(message.text, voice)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Speech synthesis failed for message %s: %s", message.id, exc)
            return
        if self.on_audio is not None and session_id == self._session_id:
            self.on_audio(message, audio)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _schedule_step(self) -> None:
        if not self.auto_advance:
            return
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(
            self.pacing.settle_delay, self._fire_step, self._session_id
        )

    def _fire_step(self, session_id: int) -> None:
        self._timer = None
        if not self._is_current(session_id) or self._lock_owner is not None:
            return
        self._spawn(self._run_scheduled_step(session_id))

    async def _run_scheduled_step(self, session_id: int) -> None:
        try:
            await self.request_step()
        except Exception as exc:
            logger.exception("Session %d: step failed", session_id)
            if session_id == self._session_id:
                self._fail(exc)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _begin_evaluation(self) -> None:
        self._cancel_timer()
        self._set_status(SessionStatus.EVALUATING)
        self._spawn(self._run_evaluation(self._session_id))

    async def _run_evaluation(self, session_id: int) -> None:
        assert self._config is not None
        config = self._config
        transcript = tuple(self._transcript)
        try:
            await self._sleep(self.pacing.evaluation_delay)
            result = await self.judge.evaluate(
                config.candidate_a,
                config.candidate_b,
                config.voter,
                config.topic,
                transcript,
            )
        except Exception as exc:
            logger.exception("Session %d: evaluation failed", session_id)
            if session_id == self._session_id:
                self._fail(exc)
            return

        if session_id != self._session_id or self._status is not SessionStatus.EVALUATING:
            logger.info("Session %d: discarding stale evaluation", session_id)
            return
        self._evaluation = result
        logger.info(
            "Session %d: winner %s (A=%d, B=%d)",
            session_id,
            result.winner_id.value,
            result.scores.candidate_a,
            result.scores.candidate_b,
        )
        self._set_status(SessionStatus.FINISHED)
        self._finished.set()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _new_session(self) -> None:
        self._cancel_timer()
        self._session_id = next(self._tokens)
        self._transcript = []
        self._turn_counter = 0
        self._evaluation = None
        self._lock_owner = None
        self._error = None
        previous, self._finished = self._finished, asyncio.Event()
        previous.set()

    def _is_current(self, session_id: int) -> bool:
        return session_id == self._session_id and self._status is SessionStatus.DEBATE

    def _require(self, *allowed: SessionStatus) -> None:
        if self._status not in allowed:
            raise SessionStateError(
                f"Operation not allowed in status {self._status.value} "
                f"(expected {', '.join(s.value for s in allowed)})"
            )

    def _set_status(self, status: SessionStatus) -> None:
        if status is self._status:
            return
        logger.info("Session %d: %s -> %s", self._session_id, self._status.value, status.value)
        self._status = status
        if self.on_status_change is not None:
            self.on_status_change(status)

    def _fail(self, exc: BaseException) -> None:
        self._cancel_timer()
        self._error = exc
        self._finished.set()

    async def _advisory(
        self,
        operation: str,
        call: Callable[[StatsDatabase], Awaitable[Any]],
    ) -> None:
        if self.counter_store is None:
            return
        try:
            await call(self.counter_store)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Counter store %s failed: %s", operation, exc)
