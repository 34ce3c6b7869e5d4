"""Application lifecycle hooks for startup and shutdown."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from sqlalchemy.ext.asyncio import AsyncSession
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from logtally.config.settings import get_settings
from logtally.db.schema import install_schema
from logtally.server.plugins import sqlalchemy_config
from logtally.server.scheduler import create_scheduler
from logtally.services.geo.resolver import GeoResolver, open_reader
from logtally.services.ingestion import LogTailSource
from logtally.services.pipeline.factory import create_pipelines

if TYPE_CHECKING:
    from litestar import Litestar

    from logtally.services.pipeline import PipelineDriver

logger = logging.getLogger(__name__)


async def on_startup(app: "Litestar") -> None:
    """Open the GeoIP database, install the counter schema and start the pipelines.

    A missing GeoIP database or an unreachable counter store aborts startup:
    the pipelines never run with partial geo resolution or without a store.
    """
    settings = get_settings()

    geo_resolver = GeoResolver(
        open_reader(settings.geoip.db_path, settings.geoip.locales),
        default_country=settings.geoip.default_country,
        default_city=settings.geoip.default_city,
    )
    app.state.geo_resolver = geo_resolver

    await install_schema(
        sqlalchemy_config.get_engine(),
        drop_first=settings.database.drop_on_startup,
    )

    session_maker: Callable[[], AsyncSession] = sqlalchemy_config.create_session_maker()
    drivers: list[PipelineDriver] = create_pipelines(settings.pipeline, session_maker, geo_resolver)

    source = LogTailSource(
        settings.pipeline.log_path,
        poll_interval=settings.pipeline.poll_interval,
        start_at_end=settings.pipeline.start_at_end,
    )

    scheduler: AsyncIOScheduler = create_scheduler(source, drivers, settings)

    # Store in app state for shutdown and API access
    app.state.pipelines = drivers
    app.state.log_source = source
    app.state.scheduler = scheduler

    await source.start()
    scheduler.start()
    logger.info("Started APScheduler")


async def on_shutdown(app: "Litestar") -> None:
    """Gracefully stop background services and clean up resources."""
    scheduler: AsyncIOScheduler | None = getattr(app.state, "scheduler", None)
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Stopped APScheduler")

    source: LogTailSource | None = getattr(app.state, "log_source", None)
    if source:
        await source.stop(timeout=5.0)

    geo_resolver: GeoResolver | None = getattr(app.state, "geo_resolver", None)
    if geo_resolver:
        geo_resolver.close()
        logger.info("Closed GeoIP database")
