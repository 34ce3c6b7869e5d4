"""Repositories for durable counter data access."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from advanced_alchemy.repository import SQLAlchemyAsyncRepository

from logtally.domain.counters.dtos import LocationVisit, LogVolume, StatusCount
from logtally.domain.counters.models import LocationCounter, StatusCounter, VolumeCounter


def _increment_stmt(
    session: AsyncSession,
    model: Any,
    key_columns: list[str],
    values: dict[str, Any],
) -> Insert:
    """Build ``INSERT ... ON CONFLICT (key) DO UPDATE SET count = count + excluded.count``.

    PostgreSQL is the production store; SQLite is accepted for tests.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(model).values(**values)
    elif dialect == "sqlite":
        stmt = sqlite.insert(model).values(**values)
    else:
        raise ValueError(f"Additive upsert is not supported on dialect '{dialect}'")
    return stmt.on_conflict_do_update(
        index_elements=key_columns,
        set_={"count": model.count + stmt.excluded["count"]},
    )


class StatusCounterRepository(SQLAlchemyAsyncRepository[StatusCounter]):
    """Repository for StatusCounter model."""

    model_type = StatusCounter

    async def upsert_increment(self, row: StatusCount) -> None:
        """Add ``row.count`` to the counter for ``row.status_code``, creating it if absent."""
        stmt = _increment_stmt(
            self.session,
            StatusCounter,
            ["status_code"],
            {"status_code": row.status_code, "count": row.count},
        )
        await self.session.execute(stmt)

    async def totals(self) -> dict[int, int]:
        return {counter.status_code: counter.count for counter in await self.list()}


class VolumeCounterRepository(SQLAlchemyAsyncRepository[VolumeCounter]):
    """Repository for VolumeCounter model."""

    model_type = VolumeCounter

    async def upsert_increment(self, row: LogVolume) -> None:
        """Add ``row.count`` to the counter for ``row.minute``, creating it if absent."""
        stmt = _increment_stmt(
            self.session,
            VolumeCounter,
            ["minute"],
            {"minute": row.minute, "count": row.count},
        )
        await self.session.execute(stmt)

    async def totals(self) -> dict[int, int]:
        return {counter.minute: counter.count for counter in await self.list()}


class LocationCounterRepository(SQLAlchemyAsyncRepository[LocationCounter]):
    """Repository for LocationCounter model."""

    model_type = LocationCounter

    async def upsert_increment(self, row: LocationVisit) -> None:
        """Add ``row.count`` to the counter for ``(row.country, row.city)``, creating it if absent."""
        stmt = _increment_stmt(
            self.session,
            LocationCounter,
            ["country", "city"],
            {"country": row.country, "city": row.city, "count": row.count},
        )
        await self.session.execute(stmt)

    async def totals(self) -> dict[tuple[str, str], int]:
        return {(counter.country, counter.city): counter.count for counter in await self.list()}
