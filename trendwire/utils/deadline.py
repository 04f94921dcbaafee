"""
Deadline helpers for parallel fan-out.

A slow branch never fails the caller: once the deadline elapses it is
cancelled and reported as timed out, and the caller substitutes an empty
fallback. Cancelled tasks are awaited so their connections are released.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Generic, Hashable, TypeVar

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


async def with_deadline(operation: Awaitable[T], seconds: float, fallback: T) -> T:
    """Await an operation, returning fallback if it does not finish in time.

    Exceptions raised by the operation itself are propagated.
    """
    try:
        return await asyncio.wait_for(operation, timeout=seconds)
    except asyncio.TimeoutError:
        return fallback


@dataclass
class Settled(Generic[T]):
    """Outcome of one branch of a settle_all fan-out."""

    value: T | None = None
    error: BaseException | None = None
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.timed_out


async def settle_all(operations: dict[K, Awaitable[Any]], seconds: float) -> dict[K, Settled[Any]]:
    """Run operations concurrently and wait until all settle or the deadline passes.

    Errors in one branch do not cancel the others. Branches still pending at
    the deadline are cancelled and reported with timed_out=True.
    """
    if not operations:
        return {}

    tasks = {key: asyncio.ensure_future(op) for key, op in operations.items()}
    _done, pending = await asyncio.wait(tasks.values(), timeout=seconds)

    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    outcomes: dict[K, Settled[Any]] = {}
    for key, task in tasks.items():
        if task in pending:
            outcomes[key] = Settled(timed_out=True)
        elif task.cancelled():
            outcomes[key] = Settled(error=asyncio.CancelledError())
        elif task.exception() is not None:
            outcomes[key] = Settled(error=task.exception())
        else:
            outcomes[key] = Settled(value=task.result())
    return outcomes
