"""Tests for the DebateSession lifecycle controller."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from agents import Debater, Judge, Moderator
from agents.retry import ResilientInvoker, RetryPolicy
from agents.speech import SpeechSynthesizer
from data.models import DebateConfig, Speaker, WinnerId
from evaluation.validators import DebateValidator, InvalidConfigError
from orchestration import (
    DebateSession,
    PacingConfig,
    SessionStateError,
    SessionStatus,
    TurnOrchestrator,
)
from tests.conftest import MockProvider, RecordingSleep

M = "Moderator"
EXPECTED_SENDERS = [M, "A", "B", "A", "B", M, "B", "A", "B", "A", M]
EXPECTED_PHASES = [
    "Abertura", "Pergunta Base", "Réplica", "Tréplica", "Contra-argumento",
    "Transição", "Pergunta Base", "Réplica", "Tréplica", "Contra-argumento",
    "Encerramento",
]


class GatedProvider(MockProvider):
    """MockProvider whose calls block on queued events until released."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.gates: list[asyncio.Event] = []

    def add_gate(self) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates.append(gate)
        return gate

    async def _call_api(self, prompt: str, **kwargs: Any) -> dict[str, Any]:
        if self.gates:
            await self.gates.pop(0).wait()
        return await super()._call_api(prompt, **kwargs)


class FakeSpeech(SpeechSynthesizer):
    name = "fake"

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, str]] = []

    async def synthesize(self, text: str, voice_id: str) -> bytes:
        self.calls.append((text, voice_id))
        if self.fail:
            raise RuntimeError("tts down")
        return b"\x00\x00"


class FailingStore:
    async def record_visit(self, visitor_id: str) -> None:
        raise RuntimeError("db offline")

    async def increment_debate_started(self) -> int:
        raise RuntimeError("db offline")


def _session(
    provider: MockProvider | None = None,
    *,
    auto_advance: bool = False,
    **kwargs: Any,
) -> DebateSession:
    provider = provider or MockProvider()
    sleep = RecordingSleep()
    orchestrator = TurnOrchestrator(
        Moderator(provider),
        Debater(provider),
        pacing=PacingConfig.instant(),
        sleep=sleep,
    )
    return DebateSession(
        orchestrator,
        Judge(provider),
        auto_advance=auto_advance,
        sleep=sleep,
        **kwargs,
    )


async def _started(session: DebateSession, config: DebateConfig) -> DebateSession:
    await session.enter_arena("visitor-1")
    await session.start(config)
    return session


async def _run_manually(session: DebateSession, steps: int) -> list[bool]:
    return [await session.request_step() for _ in range(steps)]


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

class TestLifecycle:
    @pytest.mark.asyncio
    async def test_initial_status(self):
        session = _session()
        assert session.status is SessionStatus.LANDING
        assert session.transcript == ()
        assert session.turn_counter == 0

    @pytest.mark.asyncio
    async def test_start_requires_setup(self, debate_config):
        with pytest.raises(SessionStateError):
            await _session().start(debate_config)

    @pytest.mark.asyncio
    async def test_reset_before_entering(self):
        with pytest.raises(SessionStateError):
            await _session().reset()

    @pytest.mark.asyncio
    async def test_invalid_config_rejected(self, debate_config):
        session = _session()
        await session.enter_arena()
        bad = debate_config.model_copy(update={"topic": "   "})
        with pytest.raises(InvalidConfigError, match="Topic is empty"):
            await session.start(bad)
        assert session.status is SessionStatus.SETUP

    @pytest.mark.asyncio
    async def test_status_callbacks(self, debate_config):
        seen: list[SessionStatus] = []
        session = await _started(_session(on_status_change=seen.append), debate_config)
        await _run_manually(session, 12)
        await session.wait_finished()
        assert seen == [
            SessionStatus.SETUP,
            SessionStatus.DEBATE,
            SessionStatus.EVALUATING,
            SessionStatus.FINISHED,
        ]

    @pytest.mark.asyncio
    async def test_request_step_outside_debate(self):
        session = _session()
        assert await session.request_step() is False


# ---------------------------------------------------------------------------
# Full debate
# ---------------------------------------------------------------------------

class TestFullDebate:
    @pytest.mark.asyncio
    async def test_manual_end_to_end(self, debate_config):
        session = await _started(_session(), debate_config)

        applied = await _run_manually(session, 11)
        assert applied == [True] * 11
        assert [m.sender_id.value for m in session.transcript] == EXPECTED_SENDERS
        assert [m.phase for m in session.transcript] == EXPECTED_PHASES
        assert session.turn_counter == 8
        assert session.status is SessionStatus.DEBATE

        # the twelfth step terminates without adding a message
        assert await session.request_step() is True
        assert session.status is SessionStatus.EVALUATING
        assert len(session.transcript) == 11
        assert await session.request_step() is False

        result = await session.wait_finished()
        assert session.status is SessionStatus.FINISHED
        assert result.winner_id is WinnerId.A
        assert session.evaluation == result

        check = DebateValidator().validate_transcript(session.transcript, session.turn_counter)
        assert check.valid, check.issues

    @pytest.mark.asyncio
    async def test_auto_advance(self, debate_config):
        messages = []
        session = await _started(
            _session(auto_advance=True, on_message=messages.append), debate_config
        )
        result = await asyncio.wait_for(session.wait_finished(), timeout=5)
        assert result.winner_id is WinnerId.A
        assert [m.sender_id.value for m in messages] == EXPECTED_SENDERS
        assert not session.in_flight

    @pytest.mark.asyncio
    async def test_single_round(self, debate_config):
        provider = MockProvider()
        orchestrator = TurnOrchestrator(
            Moderator(provider), Debater(provider), total_rounds=1, sleep=RecordingSleep()
        )
        session = DebateSession(
            orchestrator, Judge(provider), auto_advance=False, sleep=RecordingSleep()
        )
        await _started(session, debate_config)
        await _run_manually(session, 7)
        assert [m.sender_id.value for m in session.transcript] == [M, "A", "B", "A", "B", M]
        assert session.status is SessionStatus.EVALUATING
        await session.wait_finished()

    @pytest.mark.asyncio
    async def test_degraded_debate_still_finishes(self, debate_config):
        class _Down(MockProvider):
            async def _call_api(self, prompt, **kwargs):
                raise RuntimeError("service unavailable")

        provider = _Down()
        sleep = RecordingSleep()
        invoker = ResilientInvoker(RetryPolicy(max_attempts=2), sleep=sleep)
        orchestrator = TurnOrchestrator(
            Moderator(provider, invoker=invoker),
            Debater(provider, invoker=invoker),
            pacing=PacingConfig.instant(),
            sleep=sleep,
        )
        session = DebateSession(
            orchestrator, Judge(provider, invoker=invoker), auto_advance=False, sleep=sleep
        )
        await _started(session, debate_config)
        await _run_manually(session, 12)
        result = await session.wait_finished()
        assert len(session.transcript) == 11
        assert result.winner_id is WinnerId.TIE


# ---------------------------------------------------------------------------
# Single-flight lock and stale results
# ---------------------------------------------------------------------------

class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_request_dropped(self, debate_config):
        provider = GatedProvider()
        gate = provider.add_gate()
        session = await _started(_session(provider), debate_config)

        first = asyncio.create_task(session.request_step())
        await asyncio.sleep(0)
        assert session.in_flight
        assert await session.request_step() is False
        # the dropped request made no generation call of its own
        assert provider.call_log == []
        assert provider._call_count == 0

        gate.set()
        assert await first is True
        assert len(session.transcript) == 1
        assert len(provider.call_log) == 1
        assert provider._call_count == 1
        assert not session.in_flight

    @pytest.mark.asyncio
    async def test_gathered_requests_produce_one_message(self, debate_config):
        provider = GatedProvider()
        gate = provider.add_gate()
        session = await _started(_session(provider), debate_config)

        async def _release() -> None:
            await asyncio.sleep(0)
            gate.set()

        results = await asyncio.gather(session.request_step(), session.request_step(), _release())
        assert sorted(results[:2]) == [False, True]
        assert len(session.transcript) == 1

    @pytest.mark.asyncio
    async def test_reset_discards_in_flight_result(self, debate_config):
        provider = GatedProvider()
        old_gate = provider.add_gate()
        session = await _started(_session(provider), debate_config)

        stale = asyncio.create_task(session.request_step())
        await asyncio.sleep(0)
        await session.reset()
        assert session.status is SessionStatus.SETUP
        assert not session.in_flight

        await session.start(debate_config)
        new_gate = provider.add_gate()
        fresh = asyncio.create_task(session.request_step())
        await asyncio.sleep(0)
        assert session.in_flight

        old_gate.set()
        assert await stale is False
        # the stale step must not release the new session's lock
        assert session.in_flight
        assert session.transcript == ()

        new_gate.set()
        assert await fresh is True
        assert len(session.transcript) == 1
        assert session.turn_counter == 0

    @pytest.mark.asyncio
    async def test_stale_step_error_does_not_fail_new_session(self, debate_config):
        gate = asyncio.Event()

        class _FirstStepBroken(TurnOrchestrator):
            calls = 0

            async def step(self, config, transcript, turn_counter):
                type(self).calls += 1
                if type(self).calls == 1:
                    await gate.wait()
                    raise RuntimeError("stale step blew up")
                return await super().step(config, transcript, turn_counter)

        provider = MockProvider()
        orchestrator = _FirstStepBroken(
            Moderator(provider),
            Debater(provider),
            pacing=PacingConfig.instant(),
            sleep=RecordingSleep(),
        )
        session = DebateSession(orchestrator, Judge(provider), sleep=RecordingSleep())
        await _started(session, debate_config)

        async def _until_in_flight() -> None:
            while not session.in_flight:
                await asyncio.sleep(0)

        await asyncio.wait_for(_until_in_flight(), timeout=5)
        await session.reset()
        await session.start(debate_config)
        result = await asyncio.wait_for(session.wait_finished(), timeout=5)
        assert session.status is SessionStatus.FINISHED

        gate.set()
        for _ in range(5):
            await asyncio.sleep(0)

        assert session.status is SessionStatus.FINISHED
        assert len(session.transcript) == 11
        assert await session.wait_finished() == result

    @pytest.mark.asyncio
    async def test_stop_discards_in_flight_result(self, debate_config):
        provider = GatedProvider()
        session = await _started(_session(provider), debate_config)
        await _run_manually(session, 3)

        gate = provider.add_gate()
        pending = asyncio.create_task(session.request_step())
        await asyncio.sleep(0)
        await session.stop()
        gate.set()
        assert await pending is False

        await session.wait_finished()
        assert len(session.transcript) == 3
        assert session.turn_counter == 2


# ---------------------------------------------------------------------------
# Stop / reset
# ---------------------------------------------------------------------------

class TestStopAndReset:
    @pytest.mark.asyncio
    async def test_stop_early_evaluates_partial_transcript(self, debate_config):
        provider = MockProvider()
        session = await _started(_session(provider), debate_config)
        await _run_manually(session, 3)
        await session.stop()
        assert session.status is SessionStatus.EVALUATING

        result = await session.wait_finished()
        assert result.winner_id is WinnerId.A
        assert [m.sender_id.value for m in session.transcript] == [M, "A", "B"]
        judge_prompt = provider.call_log[-1]["prompt"]
        assert "Encerramento" not in judge_prompt

    @pytest.mark.asyncio
    async def test_stop_requires_debate(self, debate_config):
        session = _session()
        await session.enter_arena()
        with pytest.raises(SessionStateError):
            await session.stop()

    @pytest.mark.asyncio
    async def test_reset_after_finish(self, debate_config):
        session = await _started(_session(), debate_config)
        await _run_manually(session, 12)
        await session.wait_finished()
        old_id = session.session_id

        await session.reset()
        assert session.status is SessionStatus.SETUP
        assert session.transcript == ()
        assert session.turn_counter == 0
        assert session.evaluation is None
        assert session.session_id != old_id

    @pytest.mark.asyncio
    async def test_reset_during_evaluation_drops_result(self, debate_config):
        provider = GatedProvider()
        session = await _started(_session(provider), debate_config)
        await _run_manually(session, 11)

        gate = provider.add_gate()
        assert await session.request_step() is True
        await asyncio.sleep(0)
        await session.reset()
        gate.set()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert session.status is SessionStatus.SETUP
        assert session.evaluation is None


# ---------------------------------------------------------------------------
# Side channels
# ---------------------------------------------------------------------------

class TestSideChannels:
    @pytest.mark.asyncio
    async def test_audio_does_not_change_order(self, debate_config):
        speech = FakeSpeech()
        audio: list[tuple[str, bytes]] = []
        with_audio = await _started(
            _session(
                speech=speech,
                audio_enabled=True,
                on_audio=lambda msg, pcm: audio.append((msg.id, pcm)),
            ),
            debate_config,
        )
        without_audio = await _started(_session(speech=FakeSpeech()), debate_config)
        await _run_manually(with_audio, 12)
        await _run_manually(without_audio, 12)

        senders = lambda s: [(m.sender_id, m.phase) for m in s.transcript]  # noqa: E731
        assert senders(with_audio) == senders(without_audio)
        assert len(speech.calls) == 11
        assert [voice for _, voice in speech.calls][:2] == ["Kore", "Puck"]
        assert len(audio) == 11

    @pytest.mark.asyncio
    async def test_audio_failure_is_advisory(self, debate_config):
        session = await _started(
            _session(speech=FakeSpeech(fail=True), audio_enabled=True), debate_config
        )
        assert await _run_manually(session, 2) == [True, True]
        assert len(session.transcript) == 2

    @pytest.mark.asyncio
    async def test_custom_voices(self, debate_config):
        speech = FakeSpeech()
        session = await _started(
            _session(speech=speech, audio_enabled=True, voices={Speaker.MODERATOR: "Aoede"}),
            debate_config,
        )
        await _run_manually(session, 2)
        assert [voice for _, voice in speech.calls] == ["Aoede", "Puck"]

    @pytest.mark.asyncio
    async def test_counter_store_failures_swallowed(self, debate_config):
        session = await _started(_session(counter_store=FailingStore()), debate_config)
        assert session.status is SessionStatus.DEBATE

    @pytest.mark.asyncio
    async def test_counters_recorded(self, debate_config, test_db):
        session = await _started(_session(counter_store=test_db), debate_config)
        await _run_manually(session, 1)
        stats = await test_db.get_stats()
        assert stats.total_debates == 1
        assert stats.active_users == 1


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestFailures:
    @pytest.mark.asyncio
    async def test_step_error_surfaces_from_wait(self, debate_config):
        class _Broken(TurnOrchestrator):
            async def step(self, config, transcript, turn_counter):
                raise RuntimeError("turn counter out of sync")

        provider = MockProvider()
        orchestrator = _Broken(
            Moderator(provider), Debater(provider), pacing=PacingConfig.instant()
        )
        session = DebateSession(orchestrator, Judge(provider), sleep=RecordingSleep())
        await _started(session, debate_config)
        with pytest.raises(RuntimeError, match="out of sync"):
            await asyncio.wait_for(session.wait_finished(), timeout=5)
        assert not session.in_flight
