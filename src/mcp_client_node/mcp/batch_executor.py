"""
Batch execution of per-item operations.

Items are split into contiguous batches. Every item of a batch runs
concurrently on the event loop, a batch settles completely before the next
one starts, and results are assembled in input order.
"""

import asyncio
import math
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Sequence, TypeVar

from ..core.config import Settings, get_settings
from ..core.logging import get_logger
from .exceptions import MCPConnectionError
from .models import BatchConfig, ItemResult


logger = get_logger(__name__)

T = TypeVar("T")

ItemOperation = Callable[[T, int], Awaitable[Any]]


def _clamped_int(value: Any, default: int, lower: int, upper: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return max(lower, min(upper, int(number)))


def resolve_batch_config(
    item_count: int,
    batching: Optional[Mapping[str, Any]] = None,
    settings: Optional[Settings] = None
) -> BatchConfig:
    """
    Derive the effective batch configuration.

    Args:
        item_count: Number of input items
        batching: ``{"batchSize": ..., "batchInterval": ...}`` when batching is
            configured, ``None`` to process all items as one batch

    Returns:
        BatchConfig with size clamped to [1, MAX_BATCH_SIZE] and interval to
        [0, MAX_BATCH_INTERVAL_MS]
    """
    settings = settings or get_settings()
    if batching is None:
        return BatchConfig(items_per_batch=max(1, item_count), batch_interval_ms=0)

    return BatchConfig(
        items_per_batch=_clamped_int(
            batching.get("batchSize"),
            settings.DEFAULT_BATCH_SIZE,
            1,
            settings.MAX_BATCH_SIZE
        ),
        batch_interval_ms=_clamped_int(
            batching.get("batchInterval"),
            0,
            0,
            settings.MAX_BATCH_INTERVAL_MS
        ),
    )


class BatchExecutor:
    """Runs an item operation batch by batch."""

    def __init__(self, config: BatchConfig, continue_on_fail: bool = False):
        self.config = config
        self.continue_on_fail = continue_on_fail

    async def run(self, items: Sequence[T], operation: ItemOperation) -> List[ItemResult]:
        """
        Run ``operation(item, index)`` for every item.

        With ``continue_on_fail`` a failing item yields an error ItemResult;
        otherwise the first failure aborts the run and no results are returned.
        A session-fatal MCPConnectionError aborts the run in either mode.
        """
        results: List[ItemResult] = []
        size = self.config.items_per_batch
        total = len(items)

        for start in range(0, total, size):
            batch = range(start, min(start + size, total))
            logger.debug(f"Running batch of items {batch.start}-{batch.stop - 1} of {total}")
            results.extend(await self._run_batch(items, batch, operation))

            if batch.stop < total and self.config.batch_interval_ms > 0:
                await asyncio.sleep(self.config.batch_interval_seconds)

        return results

    async def _run_batch(
        self,
        items: Sequence[T],
        batch: range,
        operation: ItemOperation
    ) -> List[ItemResult]:
        tasks = [asyncio.ensure_future(operation(items[index], index)) for index in batch]

        if self.continue_on_fail:
            outcomes = await asyncio.gather(*tasks, return_exceptions=True)
            settled = []
            for index, outcome in zip(batch, outcomes):
                # the session cannot serve later items
                if isinstance(outcome, MCPConnectionError):
                    raise outcome
                if isinstance(outcome, Exception):
                    logger.debug(f"Item {index} failed: {outcome}")
                    settled.append(ItemResult.failure(index, str(outcome)))
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    settled.append(ItemResult(payload=outcome, source_item_index=index))
            return settled

        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        failures = [
            task.exception() for task in tasks
            if not task.cancelled() and task.exception() is not None
        ]
        if failures:
            raise failures[0]
        return [
            ItemResult(payload=task.result(), source_item_index=index)
            for index, task in zip(batch, tasks)
        ]
