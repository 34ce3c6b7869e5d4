"""GeoIP resolution of client addresses.

The resolver wraps a single geoip2 ``Reader`` that is opened once at startup
and shared read-only by every aggregation worker. Lookups return an explicit
tri-state ``GeoResolution`` so callers must tell "no data" apart from a
broken database.
"""
from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from geoip2.database import Reader
from geoip2.errors import AddressNotFoundError

from logtally.errors import GeoDatabaseNotFoundError
from logtally.services.logparser.constants import (
    ALLOWED_GEOIP_LOCALES,
    DEFAULT_CITY,
    DEFAULT_COUNTRY,
    GEOIP_LOCALES_DEFAULT,
)
from logtally.services.logparser.schemas import Location

if TYPE_CHECKING:
    from geoip2.models import City


logger = logging.getLogger(__name__)


def open_reader(path: Path | str, locales: list[str] | None = None) -> Reader:
    """Open the GeoIP2 database, failing fast if the file is not there."""
    if not os.path.exists(path):
        logger.error("GeoIP file %s does not exist.", path)
        raise GeoDatabaseNotFoundError(path)
    if any(loc not in ALLOWED_GEOIP_LOCALES for loc in locales or []):
        logger.warning(
            "Unmatched GeoIp2 locale found. Allowed are '%s', defaulting to 'en'",
            ALLOWED_GEOIP_LOCALES,
        )
        locales = GEOIP_LOCALES_DEFAULT
    reader = Reader(path, locales=locales)
    logger.info("Opened GeoIP database %s", path)
    return reader


class GeoStatus(str, enum.Enum):
    """Outcome of a single GeoIP lookup."""

    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"
    FAULT = "fault"


@dataclass(frozen=True, slots=True)
class GeoResolution:
    status: GeoStatus
    location: Location | None = None
    error: Exception | None = None

    @property
    def is_resolved(self) -> bool:
        return self.status is GeoStatus.RESOLVED


class GeoResolver:
    """Resolves IP addresses to a country/city Location."""

    def __init__(
        self,
        reader: Reader,
        *,
        default_country: str = DEFAULT_COUNTRY,
        default_city: str = DEFAULT_CITY,
    ) -> None:
        self.reader = reader
        self.default_country = default_country
        self.default_city = default_city

    def resolve(self, ip: str) -> GeoResolution:
        """Look up ``ip`` once.

        An address missing from the database is UNRESOLVED. Every other
        exception (invalid address, corrupt database, I/O errors) is a FAULT
        carrying the original exception.
        """
        try:
            ip_data: City = self.reader.city(ip)
        except AddressNotFoundError:
            logger.debug("No GeoIP data found for IP %s", ip)
            return GeoResolution(GeoStatus.UNRESOLVED)
        except Exception as e:
            logger.debug("GeoIP lookup failed for %s: %s", ip, e)
            return GeoResolution(GeoStatus.FAULT, error=e)

        return GeoResolution(
            GeoStatus.RESOLVED,
            location=Location(
                ip_address=ip,
                country_code=ip_data.country.iso_code or self.default_country,
                city=ip_data.city.name or self.default_city,
                latitude=ip_data.location.latitude,
                longitude=ip_data.location.longitude,
            ),
        )

    def close(self) -> None:
        self.reader.close()
