"""Shared fixtures for the test suite.

Provides a MockProvider that simulates LLM responses without network calls,
plus a recording sleep, pre-built candidates and a temporary stats database.
"""

from __future__ import annotations

import json
from typing import Any

import pytest
import pytest_asyncio

from agents.llm_provider import LLMProvider
from agents.retry import ResilientInvoker, RetryPolicy
from data.database import StatsDatabase
from data.models import Candidate, DebateConfig, Speaker, VoterProfile


# ---------------------------------------------------------------------------
# Mock LLM provider
# ---------------------------------------------------------------------------

SAMPLE_EVALUATION: dict[str, Any] = {
    "winnerId": "A",
    "scores": {"candidateA": 72, "candidateB": 58},
    "reasoning": "A candidata A respondeu melhor às prioridades da eleitora.",
    "breakdown": {
        "coherence": {"a": 70, "b": 65, "reason": "Ambos coerentes."},
        "alignment": {"a": 80, "b": 50, "reason": "A prioriza saúde pública."},
        "viability": {"a": 60, "b": 62, "reason": "Propostas parecidas."},
        "consistency": {"a": 75, "b": 70, "reason": "Respeitam as instituições."},
        "clarity": {"a": 68, "b": 55, "reason": "A foi mais direta."},
    },
}


class MockProvider(LLMProvider):
    """Deterministic mock provider for testing – no network calls.

    ``responses`` are returned in a cycle. Requests carrying a response
    schema get ``json_response`` instead. ``errors`` are raised, in order,
    by the first calls before any response is returned.
    """

    name = "mock"
    supports_search_grounding = True

    def __init__(
        self,
        model: str = "mock-v1",
        responses: list[str] | None = None,
        *,
        json_response: str | None = None,
        errors: list[Exception] | None = None,
        sources: list[str] | None = None,
        **kwargs: Any,
    ) -> None:
        # Bypass API-key validation
        self.model = model
        self.timeout = kwargs.get("timeout")
        self.max_tokens = kwargs.get("max_tokens", 1024)
        self.api_key = "mock-key"

        self._responses = responses or [
            "Minha proposta é clara: menos impostos para quem produz."
        ]
        self._json_response = json_response or json.dumps(SAMPLE_EVALUATION)
        self._errors = list(errors or [])
        self._sources = sources or []
        self._call_count = 0
        self.call_log: list[dict[str, Any]] = []

    async def _call_api(
        self,
        prompt: str,
        *,
        system_instruction: str,
        temperature: float,
        response_schema: dict[str, Any] | None,
        search_grounding: bool,
    ) -> dict[str, Any]:
        self.call_log.append(
            {
                "prompt": prompt,
                "system_instruction": system_instruction,
                "temperature": temperature,
                "response_schema": response_schema,
                "search_grounding": search_grounding,
            }
        )
        if self._errors:
            raise self._errors.pop(0)
        if response_schema is not None:
            text = self._json_response
        else:
            text = self._responses[self._call_count % len(self._responses)]
            self._call_count += 1
        return {
            "text": text,
            "tokens_used": len(text.split()) * 2,
            "sources": list(self._sources),
            "raw": {},
        }


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fast_invoker(recording_sleep: RecordingSleep) -> ResilientInvoker:
    """Invoker whose waits are recorded instead of slept."""
    return ResilientInvoker(RetryPolicy(), sleep=recording_sleep)


@pytest.fixture
def candidate_a() -> Candidate:
    return Candidate(
        id=Speaker.A,
        name="Ana Ribeiro",
        party="Partido Progressista Popular",
        description="Centro-esquerda, defende progressividade tributária.",
    )


@pytest.fixture
def candidate_b() -> Candidate:
    return Candidate(
        id=Speaker.B,
        name="Bruno Carvalho",
        party="Aliança Liberal",
        description="Liberal, defende simplificação e corte de gastos.",
    )


@pytest.fixture
def voter() -> VoterProfile:
    return VoterProfile(
        name="Carla",
        interests="Pequena empresária; prioriza saúde e segurança; rejeita burocracia.",
    )


@pytest.fixture
def debate_config(candidate_a, candidate_b, voter) -> DebateConfig:
    return DebateConfig(
        candidate_a=candidate_a,
        candidate_b=candidate_b,
        voter=voter,
        topic="Reforma tributária",
    )


@pytest_asyncio.fixture
async def test_db(tmp_path) -> StatsDatabase:
    """Temporary SQLite counter store."""
    db = StatsDatabase(db_path=tmp_path / "test_stats.db")
    await db.connect()
    yield db
    await db.close()
