"""One-time installation of the counter tables."""
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncEngine
from advanced_alchemy.extensions.litestar import base

# Register the counter tables on the shared metadata
from logtally.domain.counters import models as _models  # noqa: F401

logger = logging.getLogger(__name__)

metadata = base.BigIntBase.metadata


async def install_schema(engine: AsyncEngine, *, drop_first: bool = False) -> None:
    """Create the counter tables if they do not exist yet.

    Args:
        engine: Async engine bound to the counter store.
        drop_first: Drop existing tables first (development only).
    """
    async with engine.begin() as conn:
        if drop_first:
            logger.warning("Dropping all counter tables on startup as per configuration.")
            await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)
    logger.info("Installed counter schema: %s", ", ".join(sorted(metadata.tables)))
