"""Bounded-concurrency fan-out with per-item failure isolation."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from leadsync.errors import RecordError, SyncFatalError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class ItemFailure:
    """An item whose worker raised a non-fatal exception."""

    key: Any
    error: str
    exception: Exception


@dataclass
class PoolOutcome(Generic[R]):
    succeeded: list[R] = field(default_factory=list)
    failed: list[ItemFailure] = field(default_factory=list)
    fatal: SyncFatalError | None = None


async def run_bounded(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    concurrency: int,
    key: Callable[[T], Any] = lambda item: item,
) -> PoolOutcome[R]:
    """
    Run `worker` over `items` with at most `concurrency` in flight.

    Ordinary exceptions are collected per item and never stop the others.
    The first SyncFatalError is reported in `fatal`; the caller must not
    write anything for that batch. Results keep input order.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _run(item: T) -> R:
        async with semaphore:
            return await worker(item)

    results = await asyncio.gather(*(_run(item) for item in items), return_exceptions=True)

    outcome: PoolOutcome[R] = PoolOutcome()
    for item, result in zip(items, results):
        if isinstance(result, SyncFatalError):
            if outcome.fatal is None:
                outcome.fatal = result
        elif isinstance(result, Exception):
            if not isinstance(result, RecordError):
                logger.warning(f"Unexpected error for item {key(item)}: {result!r}")
            outcome.failed.append(ItemFailure(key=key(item), error=str(result), exception=result))
        elif isinstance(result, BaseException):
            raise result
        else:
            outcome.succeeded.append(result)

    return outcome
