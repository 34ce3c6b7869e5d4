"""Global plugin instances and configurations.

This module provides singleton instances for:
- SQLAlchemy async configuration for the counter store
- Logging configuration
"""
from __future__ import annotations

from litestar.logging import LoggingConfig
from sqlalchemy.ext.asyncio import create_async_engine

from advanced_alchemy.extensions.litestar import (
    AsyncSessionConfig,
    SQLAlchemyAsyncConfig,
    SQLAlchemyInitPlugin,
)

from logtally.config.settings import get_settings
from logtally.db.schema import metadata

settings = get_settings()

# SQLAlchemy async engine with connection pooling, shared by all merge partitions
_engine = create_async_engine(
    url=settings.database.url,
    echo=settings.database.echo,
    pool_size=settings.database.pool_size,
    max_overflow=settings.database.max_overflow,
    pool_timeout=settings.database.pool_timeout,
    pool_recycle=settings.database.pool_recycle,
    echo_pool=settings.database.echo_pool,
    pool_pre_ping=settings.database.pool_pre_ping,
    pool_use_lifo=True,  # use lifo to reduce the number of idle connections
)

# SQLAlchemy configuration for Litestar
sqlalchemy_config = SQLAlchemyAsyncConfig(
    engine_instance=_engine,
    session_config=AsyncSessionConfig(expire_on_commit=False),
    create_all=False,
    metadata=metadata,
)

sqlalchemy_plugin = SQLAlchemyInitPlugin(config=sqlalchemy_config)

# Logging configuration, with APScheduler job-run messages kept at WARNING
logging_config = LoggingConfig(
    root={"level": settings.api.log_level, "handlers": ["queue_listener"]},
    formatters={
        "standard": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"}
    },
    loggers={
        "litestar": {"level": settings.api.log_level, "handlers": ["queue_listener"], "propagate": False},
        "apscheduler": {"level": "WARNING", "handlers": ["queue_listener"], "propagate": False},
    },
    log_exceptions="always",
)
