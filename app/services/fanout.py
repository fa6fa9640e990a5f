"""Concurrent fan-out/fan-in for upstream classification calls.

Every call runs as its own task bounded by a per-call timeout, and the whole
batch is bounded by an aggregate deadline. A slow call never blocks the
others. Calls still pending at the deadline are cancelled and reported as
failures; cancelling the caller cancels every outstanding call.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class FanOutResult(Generic[T]):
    """Successful results and failure reasons, keyed like the input calls."""

    results: dict[str, T] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def all_failed(self) -> bool:
        return bool(self.failures) and not self.results

    @property
    def degraded(self) -> bool:
        return bool(self.failures)


async def fan_out(
    calls: Mapping[str, Callable[[], Awaitable[T]]],
    per_call_timeout: float,
    deadline: float,
) -> FanOutResult[T]:
    """Run independent calls concurrently and collect every outcome.

    Args:
        calls: Key -> zero-argument coroutine factory
        per_call_timeout: Seconds allowed for each individual call
        deadline: Seconds allowed for the whole batch

    Returns:
        FanOutResult with one entry per key, in results or failures.
    """
    outcome: FanOutResult[T] = FanOutResult()
    if not calls:
        return outcome

    tasks: dict[str, asyncio.Task] = {
        key: asyncio.create_task(asyncio.wait_for(factory(), timeout=per_call_timeout))
        for key, factory in calls.items()
    }

    try:
        _, pending = await asyncio.wait(tasks.values(), timeout=deadline)
    except asyncio.CancelledError:
        for task in tasks.values():
            task.cancel()
        await asyncio.gather(*tasks.values(), return_exceptions=True)
        raise

    if pending:
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    for key, task in tasks.items():
        if task in pending:
            outcome.failures[key] = f"deadline of {deadline:g}s exceeded"
        elif task.cancelled():
            outcome.failures[key] = "cancelled"
        elif task.exception() is None:
            outcome.results[key] = task.result()
        elif isinstance(task.exception(), asyncio.TimeoutError):
            outcome.failures[key] = f"timed out after {per_call_timeout:g}s"
        else:
            exc = task.exception()
            outcome.failures[key] = str(exc) or exc.__class__.__name__

    for key, reason in outcome.failures.items():
        logger.warning("Classification call %s failed: %s", key, reason)
    return outcome
