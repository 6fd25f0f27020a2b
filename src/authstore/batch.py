"""
Batch Executor.

DynamoDB has no delete-by-filter or update-by-filter, so bulk mutations
are "find the matches, then touch each one":
- deletes go out as BatchWriteItem calls of at most 25 keys, one chunk
  after another
- updates fan out as individual UpdateItem calls, at most
  `max_concurrency` in flight

Both cost O(matches) round trips. Nothing is rolled back: when a chunk or
an item fails after others were applied, BatchPartialFailure reports how
many completed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from authstore.config import MAX_BATCH_SIZE
from authstore.db.adapter import StoreClient
from authstore.errors import BatchPartialFailure, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def chunked(items: Sequence[T], size: int) -> list[Sequence[T]]:
    if size <= 0:
        raise ValueError("size must be > 0")
    return [items[i : i + size] for i in range(0, len(items), size)]


@dataclass(frozen=True)
class BatchExecutor:
    client: StoreClient
    batch_size: int = MAX_BATCH_SIZE
    max_concurrency: int = 10

    async def batch_delete(self, model: str, table: str, keys: Sequence[dict[str, Any]]) -> int:
        """
        Delete `keys` in chunks of `batch_size`, sequentially.

        Returns the number of deleted keys. A failing first chunk propagates
        the store error as-is; later failures raise BatchPartialFailure.
        """
        chunks = chunked(keys, self.batch_size)
        completed = 0
        for chunk in chunks:
            try:
                unprocessed = await self.client.batch_delete(table, chunk)
            except StoreError as e:
                if not completed:
                    raise
                logger.warning(f"Batch delete on '{model}' stopped after {completed}/{len(keys)}: {e}")
                raise BatchPartialFailure(model, "delete_many", completed, len(keys)) from e

            completed += len(chunk) - len(unprocessed)
            if unprocessed:
                logger.warning(f"Batch delete on '{model}': {len(unprocessed)} keys left unprocessed")
                raise BatchPartialFailure(model, "delete_many", completed, len(keys))

        logger.info(f"Batch deleted {completed} '{model}' items in {len(chunks)} chunk(s)")
        return completed

    async def fan_out(
        self,
        model: str,
        operation: str,
        items: Sequence[T],
        fn: Callable[[T], Awaitable[R]],
    ) -> list[R]:
        """
        Run `fn` over every item with bounded concurrency and join the results.

        If nothing succeeded the first error propagates unchanged; otherwise
        BatchPartialFailure carries the number of items that did complete.
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(item: T) -> R:
            async with semaphore:
                return await fn(item)

        results = await asyncio.gather(*(run(item) for item in items), return_exceptions=True)
        failures = [r for r in results if isinstance(r, BaseException)]
        if not failures:
            return list(results)

        completed = len(results) - len(failures)
        if not completed:
            raise failures[0]
        logger.warning(f"{operation} on '{model}': {len(failures)}/{len(items)} items failed")
        raise BatchPartialFailure(model, operation, completed, len(items)) from failures[0]
