from sqlalchemy import (
    BigInteger,
    SmallInteger,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from advanced_alchemy.extensions.litestar import base


class StatusCounter(base.BigIntBase):
    """Running request count per HTTP status code."""

    __tablename__ = "status_counts"

    # SmallInteger: 2 bytes (0-65535) - sufficient for HTTP status codes
    status_code: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    count: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("status_code", name="uq_status_counts_status_code"),
    )

    def __repr__(self) -> str:
        return f"<StatusCounter(status_code={self.status_code}, count={self.count})>"


class VolumeCounter(base.BigIntBase):
    """Running request count per minute bucket (minutes since the epoch)."""

    __tablename__ = "log_volumes"

    minute: Mapped[int] = mapped_column(BigInteger, nullable=False)
    count: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("minute", name="uq_log_volumes_minute"),
    )

    def __repr__(self) -> str:
        return f"<VolumeCounter(minute={self.minute}, count={self.count})>"


class LocationCounter(base.BigIntBase):
    """Running visit count per resolved (country, city) pair."""

    __tablename__ = "location_visits"

    country: Mapped[str] = mapped_column(String(8), nullable=False)
    city: Mapped[str] = mapped_column(String(255), nullable=False)
    count: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("country", "city", name="uq_location_visits_country_city"),
    )

    def __repr__(self) -> str:
        return f"<LocationCounter(country={self.country}, city={self.city}, count={self.count})>"
