"""Per-batch aggregation rows handed from the aggregator to observers and writers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Hashable, Union


class AggregationKind(str, Enum):
    """The three keyed aggregations a pipeline can run."""

    STATUS = "status"
    VOLUME = "volume"
    LOCATION = "location"


@dataclass(frozen=True, slots=True)
class StatusCount:
    """Requests per response status code within one batch."""

    status_code: int
    count: int

    @property
    def key(self) -> int:
        return self.status_code

    @property
    def sort_key(self) -> int:
        return self.status_code


@dataclass(frozen=True, slots=True)
class LogVolume:
    """Requests per minute bucket (minutes since the epoch) within one batch."""

    minute: int
    count: int

    @property
    def key(self) -> int:
        return self.minute

    @property
    def sort_key(self) -> int:
        return self.minute


@dataclass(frozen=True, slots=True)
class LocationVisit:
    """Visits per (country, city) pair within one batch."""

    country: str
    city: str
    count: int

    @property
    def key(self) -> tuple[str, str]:
        return (self.country, self.city)

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.country, self.city)


CounterRow = Union[StatusCount, LogVolume, LocationVisit]


def build_row(kind: AggregationKind, key: Hashable, count: int) -> CounterRow:
    """Build the row type for ``kind`` from a grouped key and its count."""
    if kind is AggregationKind.STATUS:
        return StatusCount(status_code=key, count=count)
    if kind is AggregationKind.VOLUME:
        return LogVolume(minute=key, count=count)
    country, city = key
    return LocationVisit(country=country, city=city, count=count)
