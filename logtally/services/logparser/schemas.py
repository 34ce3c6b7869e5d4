"""Schemas for parsed log data - pure data, no ORM dependencies."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class LogEvent:
    """One validated request record from a combined access-log line."""

    ip_address: str
    client_identity: str
    user_identity: str
    timestamp: datetime
    method: str
    path: str
    http_version: str
    status_code: int
    bytes_sent: int
    referrer: str
    user_agent: str


@dataclass(frozen=True, slots=True)
class Location:
    """Geographic data resolved for a single IP address."""

    ip_address: str
    country_code: str
    city: str
    latitude: float | None
    longitude: float | None
