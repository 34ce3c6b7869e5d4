"""Partition-parallel additive merge of batch counts into the counter store.

Each writer is bound to one aggregation kind, one session factory and one
counter repository type. A batch's rows are split into partitions; every
partition runs in its own session and transaction, concurrently with its
siblings. There is no transaction spanning the whole batch, so a failure can
leave some partitions committed and others not.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Protocol

from logtally.errors import MergeError
from logtally.services.utils import partition

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from logtally.domain.counters.dtos import AggregationKind, CounterRow


logger = logging.getLogger(__name__)


class CounterRepository(Protocol):
    """What the writer needs from a counter repository."""

    def __init__(self, *, session: Any) -> None: ...

    async def upsert_increment(self, row: Any) -> None: ...


@dataclass
class MergeResult:
    """Outcome of merging one batch."""

    rows: int
    partitions: int
    attempts: int


class CounterMergeWriter:
    """Merges aggregation rows into durable counters by additive upsert.

    Example:
        writer = CounterMergeWriter(
            AggregationKind.STATUS,
            session_factory=session_maker,
            repository_type=StatusCounterRepository,
            partitions=4,
        )
        await writer.merge(rows)
    """

    def __init__(
        self,
        kind: "AggregationKind",
        session_factory: "Callable[[], AsyncSession]",
        repository_type: type[CounterRepository],
        *,
        partitions: int = 4,
        max_retries: int = 0,
        retry_delay: float = 1.0,
    ) -> None:
        """Initialize the writer.

        Args:
            kind: Aggregation kind this writer persists.
            session_factory: Creates a new session on the counter store.
            repository_type: Repository class providing ``upsert_increment``.
            partitions: Maximum number of partitions merged concurrently.
            max_retries: Extra attempts per failed partition (0 disables retries).
            retry_delay: Seconds to wait between attempts.
        """
        if partitions < 1:
            raise ValueError("partitions must be at least 1")
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        self.kind = kind
        self.session_factory = session_factory
        self.repository_type = repository_type
        self.partitions = partitions
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        # Statistics
        self.total_rows_merged: int = 0
        self.total_failed_partitions: int = 0

    async def merge(self, rows: Sequence["CounterRow"]) -> MergeResult:
        """Add every row's count to its durable counter.

        All partitions are allowed to finish before failures are reported.

        Raises:
            MergeError: If any partition failed after its retries.
        """
        if not rows:
            return MergeResult(rows=0, partitions=0, attempts=0)

        # Every transaction upserts its keys in the same global order
        chunks = partition(sorted(rows, key=lambda row: row.sort_key), self.partitions)
        results = await asyncio.gather(
            *(self._merge_partition(index, chunk) for index, chunk in enumerate(chunks)),
            return_exceptions=True,
        )

        failures: dict[int, BaseException] = {}
        attempts = 0
        merged = 0
        for index, result in enumerate(results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                failures[index] = result
            else:
                attempts += result
                merged += len(chunks[index])

        self.total_rows_merged += merged
        if failures:
            self.total_failed_partitions += len(failures)
            for index, exc in failures.items():
                logger.error(
                    "Failed to merge %s partition %d (%d rows): %s",
                    self.kind.value,
                    index,
                    len(chunks[index]),
                    exc,
                )
            raise MergeError(self.kind.value, failures, len(chunks)) from next(iter(failures.values()))

        logger.debug(
            "Merged %d %s rows in %d partition(s)", merged, self.kind.value, len(chunks)
        )
        return MergeResult(rows=merged, partitions=len(chunks), attempts=attempts)

    async def _merge_partition(self, index: int, rows: Sequence["CounterRow"]) -> int:
        """Merge one partition, retrying up to ``max_retries`` times. Returns attempts used."""
        attempt = 0
        while True:
            attempt += 1
            try:
                await self._upsert_partition(rows)
                return attempt
            except Exception as e:
                if attempt > self.max_retries:
                    raise
                logger.warning(
                    "Retrying %s partition %d after attempt %d failed: %s",
                    self.kind.value,
                    index,
                    attempt,
                    e,
                )
                await asyncio.sleep(self.retry_delay)

    async def _upsert_partition(self, rows: Sequence["CounterRow"]) -> None:
        async with self.session_factory() as session:
            repository = self.repository_type(session=session)
            for row in rows:
                await repository.upsert_increment(row)
            await session.commit()
