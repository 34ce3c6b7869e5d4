"""Per-batch pipeline driver.

Runs one aggregation kind over each incoming batch:

    RECEIVED -> PARSED -> AGGREGATED -> CALLBACK_INVOKED -> MERGE_DISPATCHED -> DONE

Any failure moves the batch to FAILED, is re-raised to the caller, and halts
the driver so no further batches are merged on top of a broken run.
"""
from __future__ import annotations

import inspect
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from logtally.errors import PipelineHaltedError
from logtally.services.logparser import EventParser

if TYPE_CHECKING:
    from logtally.domain.counters.dtos import AggregationKind, CounterRow
    from logtally.services.aggregation.service import BatchAggregator
    from logtally.services.merge.writer import CounterMergeWriter, MergeResult


logger = logging.getLogger(__name__)

BatchObserver = Callable[["list[CounterRow]", datetime], Union[None, Awaitable[None]]]


class BatchState(str, Enum):
    RECEIVED = "received"
    PARSED = "parsed"
    AGGREGATED = "aggregated"
    CALLBACK_INVOKED = "callback_invoked"
    MERGE_DISPATCHED = "merge_dispatched"
    DONE = "done"
    FAILED = "failed"


@dataclass
class BatchReport:
    """What happened to a single batch."""

    batch_time: datetime
    state: BatchState = BatchState.RECEIVED
    history: list[BatchState] = field(default_factory=lambda: [BatchState.RECEIVED])
    lines: int = 0
    events: int = 0
    rows: list["CounterRow"] = field(default_factory=list)
    merge: "MergeResult | None" = None
    error: BaseException | None = None

    def advance(self, state: BatchState) -> None:
        self.state = state
        self.history.append(state)


def logging_observer(kind: "AggregationKind") -> BatchObserver:
    """Observer that logs each batch's sorted rows."""

    def observe(rows: "list[CounterRow]", batch_time: datetime) -> None:
        logger.info(
            "%s batch at %s: %d row(s) %s",
            kind.value,
            batch_time.isoformat(),
            len(rows),
            ", ".join(f"{row.key}={row.count}" for row in rows),
        )

    return observe


class PipelineDriver:
    """Drives raw batches through parsing, one aggregation, the observer and the merge.

    Example:
        driver = PipelineDriver(aggregator, writer, observer=print_rows)
        report = await driver.process(lines, batch_time)
    """

    def __init__(
        self,
        aggregator: "BatchAggregator",
        writer: "CounterMergeWriter",
        *,
        parser: EventParser | None = None,
        observer: BatchObserver | None = None,
    ) -> None:
        if aggregator.kind is not writer.kind:
            raise ValueError(
                f"Aggregator kind '{aggregator.kind.value}' does not match writer kind '{writer.kind.value}'"
            )
        self.aggregator = aggregator
        self.writer = writer
        self.parser = parser or EventParser()
        self.observer = observer or logging_observer(aggregator.kind)

        self.halted: bool = False
        self.last_error: BaseException | None = None
        self.last_batch_time: datetime | None = None

        # Statistics
        self.batches_processed: int = 0
        self.batches_failed: int = 0
        self.total_lines: int = 0
        self.total_events: int = 0
        self.total_rows_merged: int = 0

    @property
    def kind(self) -> "AggregationKind":
        return self.aggregator.kind

    async def process(self, lines: Iterable[str] | str, batch_time: datetime) -> BatchReport:
        """Process one batch end to end.

        Args:
            lines: Raw lines, or a single multi-line blob.
            batch_time: Logical time assigned to the batch by the scheduler.

        Raises:
            PipelineHaltedError: If an earlier batch failed.
            GeoLookupError: If a location lookup faulted.
            MergeError: If merging into the counter store failed.
        """
        if self.halted:
            raise PipelineHaltedError(self.kind.value)

        if isinstance(lines, str):
            lines = [lines]
        report = BatchReport(batch_time=batch_time)
        try:
            await self._run(list(lines), report)
        except Exception as e:
            report.error = e
            report.advance(BatchState.FAILED)
            self.halted = True
            self.last_error = e
            self.batches_failed += 1
            logger.error(
                "%s pipeline failed at batch %s after %s: %s",
                self.kind.value,
                batch_time.isoformat(),
                report.history[-2].value,
                e,
            )
            raise
        finally:
            self.last_batch_time = batch_time
        return report

    async def _run(self, lines: list[str], report: BatchReport) -> None:
        report.lines = len(lines)
        events = self.parser.parse_batch(lines)
        report.events = len(events)
        self.total_lines += report.lines
        self.total_events += report.events
        report.advance(BatchState.PARSED)

        rows = await self.aggregator.aggregate(events)
        report.advance(BatchState.AGGREGATED)

        report.rows = sorted(rows, key=lambda row: row.sort_key)
        result = self.observer(report.rows, report.batch_time)
        if inspect.isawaitable(result):
            await result
        report.advance(BatchState.CALLBACK_INVOKED)

        report.advance(BatchState.MERGE_DISPATCHED)
        report.merge = await self.writer.merge(report.rows)
        self.total_rows_merged += report.merge.rows

        report.advance(BatchState.DONE)
        self.batches_processed += 1

    def stats(self) -> dict[str, Any]:
        """Counters exposed on the stats endpoint."""
        return {
            "kind": self.kind.value,
            "batches_processed": self.batches_processed,
            "batches_failed": self.batches_failed,
            "total_lines": self.total_lines,
            "total_events": self.total_events,
            "parsed_lines": self.parser.parsed_lines_count(),
            "skipped_lines": self.parser.skipped_lines_count(),
            "total_rows_merged": self.total_rows_merged,
            "halted": self.halted,
            "last_batch_time": self.last_batch_time.isoformat() if self.last_batch_time else None,
            "last_error": str(self.last_error) if self.last_error else None,
        }
