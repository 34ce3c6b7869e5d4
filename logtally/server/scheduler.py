"""APScheduler configuration and the micro-batch job.

This module configures the AsyncIOScheduler from APScheduler 3.x. A single
interval job drains the tail source and runs every live pipeline over the
drained lines. Overlapping runs are allowed up to ``max_concurrent_batches``.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Sequence

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from logtally.config.settings import Settings
    from logtally.services.ingestion import LogTailSource
    from logtally.services.pipeline import BatchReport, PipelineDriver

logger = logging.getLogger(__name__)


async def dispatch_batch_job(
    source: "LogTailSource",
    drivers: "Sequence[PipelineDriver]",
) -> "list[BatchReport | BaseException]":
    """Drain one micro-batch and run it through every live pipeline.

    Pipelines run concurrently on the same lines. A failing pipeline halts and
    is logged; its siblings carry on.

    Args:
        source: Tail source buffering raw lines.
        drivers: One pipeline driver per aggregation kind.

    Returns:
        One BatchReport or exception per live driver.
    """
    lines = source.drain()
    batch_time = datetime.now(timezone.utc)

    live = [driver for driver in drivers if not driver.halted]
    if not live:
        logger.error("All pipelines are halted, dropping batch of %d lines", len(lines))
        return []

    results = await asyncio.gather(
        *(driver.process(lines, batch_time) for driver in live),
        return_exceptions=True,
    )
    for driver, result in zip(live, results):
        if isinstance(result, BaseException):
            logger.error(
                "%s pipeline halted by batch %s",
                driver.kind.value,
                batch_time.isoformat(),
                exc_info=result,
            )
        else:
            logger.debug(
                "%s batch %s done: %d lines, %d events, %d rows",
                driver.kind.value,
                batch_time.isoformat(),
                result.lines,
                result.events,
                len(result.rows),
            )
    return list(results)


def create_scheduler(
    source: "LogTailSource",
    drivers: "Sequence[PipelineDriver]",
    settings: "Settings",
) -> AsyncIOScheduler:
    """Create and configure the APScheduler instance.

    Args:
        source: Tail source buffering raw lines.
        drivers: Pipelines to run on every batch.
        settings: Application settings for job configuration.

    Returns:
        Configured AsyncIOScheduler (not yet started).
    """
    scheduler = AsyncIOScheduler(timezone=timezone.utc)

    scheduler.add_job(
        dispatch_batch_job,
        IntervalTrigger(seconds=settings.pipeline.batch_interval),
        id="micro-batch",
        name="Aggregate and merge access-log micro-batch",
        args=[source, drivers],
        max_instances=settings.pipeline.max_concurrent_batches,
        coalesce=False,
        replace_existing=True,
    )
    logger.info(
        "Scheduled micro-batches every %.1f second(s) for %s",
        settings.pipeline.batch_interval,
        ", ".join(driver.kind.value for driver in drivers),
    )

    return scheduler
