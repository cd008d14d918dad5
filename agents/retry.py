"""Resilient invocation of external generation calls.

``ResilientInvoker.invoke`` attempts an operation a bounded number of times
and degrades to a fallback value instead of raising. Two failure classes wait
differently between attempts:

* ``RATE_LIMITED`` – a fixed, long cooldown regardless of attempt index.
* ``TRANSIENT`` – exponential backoff with jitter, ``base * 2**attempt + U(0, jitter)``.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from agents.llm_provider import is_rate_limit_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


class FailureKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"


def classify_failure(exc: BaseException) -> FailureKind:
    """Map an exception raised by an attempt onto a failure class."""
    if is_rate_limit_error(exc):
        return FailureKind.RATE_LIMITED
    return FailureKind.TRANSIENT


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and wait parameters (seconds)."""

    max_attempts: int = 3
    rate_limit_cooldown: float = 15.0
    base_delay: float = 1.0
    jitter: float = 1.0


class ResilientInvoker:
    """Runs an async operation with retries and never raises on its failure.

    Parameters
    ----------
    policy : RetryPolicy | None
        Wait/attempt parameters; defaults to ``RetryPolicy()``.
    sleep : SleepFn
        Awaitable used for waiting between attempts (injectable for tests).
    rng : random.Random | None
        Source of jitter.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        sleep: SleepFn = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._rng = rng or random.Random()

    def delay_for(self, kind: FailureKind, attempt: int) -> float:
        """Seconds to wait after the failed attempt with 0-based index *attempt*."""
        if kind is FailureKind.RATE_LIMITED:
            return self.policy.rate_limit_cooldown
        return self.policy.base_delay * (2 ** attempt) + self._rng.uniform(0, self.policy.jitter)

    async def invoke(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: int | None,
        fallback: T,
        *,
        label: str = "generation",
    ) -> T:
        """Return the first successful result of *operation*, else *fallback*."""
        attempts = self.policy.max_attempts if max_attempts is None else max_attempts
        if attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {attempts}")

        for attempt in range(attempts):
            try:
                return await operation()
            except Exception as exc:  # noqa: BLE001
                kind = classify_failure(exc)
                if attempt == attempts - 1:
                    logger.warning(
                        "%s attempt %d/%d failed (%s: %s). Using fallback.",
                        label,
                        attempt + 1,
                        attempts,
                        kind.value,
                        exc,
                    )
                    break
                wait = self.delay_for(kind, attempt)
                logger.warning(
                    "%s attempt %d/%d failed (%s: %s). Retrying in %.1fs …",
                    label,
                    attempt + 1,
                    attempts,
                    kind.value,
                    exc,
                    wait,
                )
                await self._sleep(wait)

        return fallback
