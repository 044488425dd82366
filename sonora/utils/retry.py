"""Retry and backoff helpers for upstream calls."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import random
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RetryDirective:
    """Instruction returned from ``classify_err`` for ``with_retry``."""

    retry: bool
    delay_override_ms: int | None = None


AsyncFactory = Callable[[], Awaitable[T]]
Classifier = Callable[[Exception], RetryDirective | bool]
Sleeper = Callable[[float], Awaitable[None]]


def exp_backoff_delays(base_ms: int, max_attempts: int) -> list[int]:
    """Return the nominal delay in milliseconds before each retry."""

    base = max(1, int(base_ms))
    return [base * (2**index) for index in range(max(0, int(max_attempts)))]


def _resolve_directive(result: RetryDirective | bool) -> RetryDirective:
    if isinstance(result, RetryDirective):
        return result
    if isinstance(result, bool):
        return RetryDirective(retry=result)
    msg = "classify_err must return a boolean or RetryDirective"
    raise TypeError(msg)


def _jitter_delay_ms(delay_ms: int, jitter_pct: int) -> float:
    delay = max(0, int(delay_ms))
    pct = max(0, int(jitter_pct))
    if delay <= 0 or pct <= 0:
        return float(delay)
    jitter = delay * pct / 100.0
    return random.uniform(max(0.0, delay - jitter), delay + jitter)


async def with_retry(
    async_fn: AsyncFactory[T],
    *,
    attempts: int,
    base_ms: int,
    classify_err: Classifier,
    jitter_pct: int = 20,
    sleep: Sleeper = asyncio.sleep,
) -> T:
    """Await ``async_fn()`` until it succeeds or ``classify_err`` gives up.

    The last error is re-raised unchanged once attempts are exhausted.
    """

    max_attempts = max(1, int(attempts))
    delays = exp_backoff_delays(base_ms, max_attempts)

    for attempt in range(1, max_attempts + 1):
        try:
            return await async_fn()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            directive = _resolve_directive(classify_err(exc))
            if not directive.retry or attempt >= max_attempts:
                raise
            delay_ms = directive.delay_override_ms
            if delay_ms is None:
                delay_ms = delays[attempt - 1]
            jittered_ms = _jitter_delay_ms(delay_ms, jitter_pct)
            if jittered_ms > 0:
                await sleep(jittered_ms / 1000.0)
    raise RuntimeError("Retry loop exited unexpectedly")


__all__ = [
    "RetryDirective",
    "exp_backoff_delays",
    "with_retry",
]
