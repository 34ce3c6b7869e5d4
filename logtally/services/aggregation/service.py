"""Batch aggregation of parsed log events.

This service handles the three keyed reductions run over each micro-batch:
- Status: requests per response status code
- Volume: requests per minute bucket (minutes since the epoch)
- Location: visits per (country, city), resolved through GeoIP

Each reduction maps events to keys, counts one per qualifying event and emits
one row per distinct key. Batches are split into partitions that are counted
in worker threads and summed afterwards.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import Hashable, Iterable, Sequence
from datetime import datetime
from typing import TYPE_CHECKING

from logtally.domain.counters.dtos import AggregationKind, CounterRow, build_row
from logtally.errors import GeoLookupError
from logtally.services.geo.resolver import GeoStatus
from logtally.services.utils import partition

if TYPE_CHECKING:
    from logtally.services.geo.resolver import GeoResolver
    from logtally.services.logparser.schemas import LogEvent

logger = logging.getLogger(__name__)


def minute_bucket(ts: datetime) -> int:
    """Return whole minutes since the epoch, truncating seconds."""
    return int(ts.timestamp() // 60)


def count_statuses(events: Iterable[LogEvent]) -> Counter[Hashable]:
    return Counter(event.status_code for event in events)


def count_volume(events: Iterable[LogEvent]) -> Counter[Hashable]:
    return Counter(minute_bucket(event.timestamp) for event in events)


def count_locations(events: Iterable[LogEvent], resolver: GeoResolver) -> Counter[Hashable]:
    """Count visits per (country, city).

    Events whose address is not in the GeoIP database are left out. Any other
    lookup failure raises GeoLookupError.
    """
    counts: Counter[Hashable] = Counter()
    for event in events:
        resolution = resolver.resolve(event.ip_address)
        if resolution.status is GeoStatus.UNRESOLVED:
            continue
        if resolution.status is GeoStatus.FAULT or resolution.location is None:
            raise GeoLookupError(event.ip_address, resolution.error or ValueError("no location"))
        counts[(resolution.location.country_code, resolution.location.city)] += 1
    return counts


class BatchAggregator:
    """Runs one kind of aggregation over batches of LogEvents.

    Example:
        aggregator = BatchAggregator(AggregationKind.LOCATION, geo_resolver=resolver, workers=4)
        rows = await aggregator.aggregate(events)
    """

    def __init__(
        self,
        kind: AggregationKind,
        *,
        geo_resolver: "GeoResolver | None" = None,
        workers: int = 4,
    ) -> None:
        """Initialize the aggregator.

        Args:
            kind: Which aggregation this instance computes.
            geo_resolver: Required for location aggregation.
            workers: Number of partitions counted concurrently.
        """
        if kind is AggregationKind.LOCATION and geo_resolver is None:
            raise ValueError("Location aggregation requires a GeoResolver")
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.kind = kind
        self.geo_resolver = geo_resolver
        self.workers = workers

    def count(self, events: Iterable[LogEvent]) -> Counter[Hashable]:
        """Count one partition of events by this aggregator's key."""
        if self.kind is AggregationKind.STATUS:
            return count_statuses(events)
        if self.kind is AggregationKind.VOLUME:
            return count_volume(events)
        return count_locations(events, self.geo_resolver)

    def to_rows(self, counts: Counter[Hashable]) -> list[CounterRow]:
        return [build_row(self.kind, key, count) for key, count in counts.items()]

    def aggregate_sync(self, events: Sequence[LogEvent]) -> list[CounterRow]:
        """Aggregate a batch in the calling thread."""
        return self.to_rows(self.count(events))

    async def aggregate(self, events: Sequence[LogEvent]) -> list[CounterRow]:
        """Aggregate a batch across the worker pool.

        Row order is unspecified. GeoLookupError from any partition propagates.
        """
        if not events:
            return []
        partitions = partition(events, self.workers)
        partials: list[Counter[Hashable]] = await asyncio.gather(
            *(asyncio.to_thread(self.count, chunk) for chunk in partitions)
        )
        totals: Counter[Hashable] = Counter()
        for partial in partials:
            totals.update(partial)
        logger.debug(
            "Aggregated %d %s events into %d rows across %d partitions",
            len(events),
            self.kind.value,
            len(totals),
            len(partitions),
        )
        return self.to_rows(totals)
