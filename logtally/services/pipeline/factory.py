"""Wiring of one pipeline per configured aggregation kind."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from logtally.domain.counters.dtos import AggregationKind
from logtally.domain.counters.repositories import (
    LocationCounterRepository,
    StatusCounterRepository,
    VolumeCounterRepository,
)
from logtally.services.aggregation.service import BatchAggregator
from logtally.services.merge.writer import CounterMergeWriter
from logtally.services.pipeline.driver import PipelineDriver

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from logtally.config.settings import PipelineSettings
    from logtally.services.geo.resolver import GeoResolver
    from logtally.services.pipeline.driver import BatchObserver

logger = logging.getLogger(__name__)

REPOSITORIES = {
    AggregationKind.STATUS: StatusCounterRepository,
    AggregationKind.VOLUME: VolumeCounterRepository,
    AggregationKind.LOCATION: LocationCounterRepository,
}


def create_pipelines(
    settings: "PipelineSettings",
    session_factory: "Callable[[], AsyncSession]",
    geo_resolver: "GeoResolver",
    *,
    observers: "dict[AggregationKind, BatchObserver] | None" = None,
) -> list[PipelineDriver]:
    """Create an independent driver, aggregator and writer for each enabled aggregation.

    Args:
        settings: Pipeline settings (enabled kinds, workers, partitions, retries).
        session_factory: Session factory for the counter store, shared by all writers.
        geo_resolver: Shared read-only resolver for the location pipeline.
        observers: Optional per-kind batch observers. Defaults to logging the rows.
    """
    observers = observers or {}
    drivers: list[PipelineDriver] = []
    for kind in settings.aggregations:
        aggregator = BatchAggregator(
            kind,
            geo_resolver=geo_resolver if kind is AggregationKind.LOCATION else None,
            workers=settings.aggregation_workers,
        )
        writer = CounterMergeWriter(
            kind,
            session_factory=session_factory,
            repository_type=REPOSITORIES[kind],
            partitions=settings.merge_partitions,
            max_retries=settings.merge_max_retries,
            retry_delay=settings.merge_retry_delay,
        )
        drivers.append(PipelineDriver(aggregator, writer, observer=observers.get(kind)))
        logger.info("Created %s pipeline", kind.value)
    return drivers
