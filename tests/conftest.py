import os
from dataclasses import dataclass

import pytest
from geoip2.errors import AddressNotFoundError


SCENARIO_LINE = '1.2.3.4 - - [10/Oct/2020:13:55:36 -0700] "GET /index HTTP/1.1" 200 1024 "-" "curl/7.0"'


def make_line(
    ip: str = "1.2.3.4",
    timestamp: str = "10/Oct/2020:13:55:36 -0700",
    status: int = 200,
    path: str = "/index",
    size: int = 1024,
) -> str:
    """Build a combined access-log line."""
    return f'{ip} - - [{timestamp}] "GET {path} HTTP/1.1" {status} {size} "-" "curl/7.0"'


@pytest.fixture
def scenario_line() -> str:
    return SCENARIO_LINE


@pytest.fixture
def line_factory():
    """Return the combined access-log line builder."""
    return make_line


@pytest.fixture(scope="session", autouse=True)
def disable_wait_env():
    """Ensure retry loops are disabled during test runs.

    Sets DISABLE_WAIT=true for the entire pytest session so any @wait-decorated
    functions run once and return immediately, preventing slow/hanging tests.
    """
    os.environ["DISABLE_WAIT"] = "true"


@pytest.fixture(scope="session", autouse=True)
def baseline_settings_env():
    """Provide baseline env vars so tests are not affected by local .env.

    Pydantic-settings precedence: init args > env vars > .env > defaults.
    Setting these ensures stable defaults regardless of any .env present.
    """
    os.environ.update({
        # App
        "APP_NAME": "LogTally",
        "APP_VERSION": "0.1.0",
        "APP_DEBUG": "false",
        "APP_ENVIRONMENT": "development",
        # API
        "API_HOST": "0.0.0.0",
        "API_PORT": "8000",
        "API_WORKERS": "1",
        "API_RELOAD": "false",
        "API_LOG_LEVEL": "INFO",
        # Database
        "DB_HOST": "localhost",
        "DB_PORT": "5432",
        "DB_ECHO": "false",
        "DB_POOL_SIZE": "5",
        "DB_MAX_OVERFLOW": "10",
        "DB_POOL_TIMEOUT": "30",
        "DB_POOL_RECYCLE": "3600",
        "DB_DROP_ON_STARTUP": "false",
    })


@pytest.fixture(autouse=True)
def refresh_settings_cache():
    """Clear settings cache so env changes take effect per test.

    Ensures tests using monkeypatch.setenv() get a fresh Settings instance.
    """
    from logtally.config.settings import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# Minimal stand-ins for geoip2.models.City


@dataclass
class Country:
    iso_code: str | None


@dataclass
class City:
    name: str | None


@dataclass
class Location:
    latitude: float | None
    longitude: float | None


@dataclass
class IPData:
    country: Country
    city: City
    location: Location


class StubReader:
    """geoip2 Reader stand-in backed by a dict of known addresses."""

    def __init__(self, records: dict[str, IPData], faults: dict[str, Exception] | None = None) -> None:
        self.records = records
        self.faults = faults or {}
        self.lookups: list[str] = []
        self.closed = False

    def city(self, ip: str) -> IPData:
        self.lookups.append(ip)
        if ip in self.faults:
            raise self.faults[ip]
        if ip not in self.records:
            raise AddressNotFoundError(f"The address {ip} is not in the database.")
        return self.records[ip]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def geo_reader() -> StubReader:
    """Reader knowing a handful of addresses.

    - 1.2.3.4: US / Mountain View
    - 9.9.9.9: DE / Berlin
    - 5.6.7.8: resolved, but without country or city names
    - 6.6.6.6: lookup raises an I/O error
    - anything else: not in the database
    """
    return StubReader(
        records={
            "1.2.3.4": IPData(Country("US"), City("Mountain View"), Location(37.386, -122.0838)),
            "9.9.9.9": IPData(Country("DE"), City("Berlin"), Location(52.52, 13.405)),
            "5.6.7.8": IPData(Country(""), City(None), Location(1.5, 2.5)),
        },
        faults={"6.6.6.6": OSError("mmdb read failed")},
    )


@pytest.fixture
def geo_resolver(geo_reader: StubReader):
    from logtally.services.geo.resolver import GeoResolver
    return GeoResolver(geo_reader)
