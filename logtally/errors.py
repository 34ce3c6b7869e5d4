"""Exceptions raised by the aggregation pipeline."""
from __future__ import annotations

from pathlib import Path


class LogTallyError(Exception):
    """Base exception for all logtally errors."""


class GeoDatabaseNotFoundError(LogTallyError, FileNotFoundError):
    """Raised at startup when the GeoIP database file is missing."""

    def __init__(self, path: Path | str) -> None:
        self.path = path
        super().__init__(f"GeoIP database file not found: {path}")


class GeoLookupError(LogTallyError):
    """Raised when a GeoIP lookup fails for any reason other than a missing address."""

    def __init__(self, ip_address: str, cause: BaseException) -> None:
        self.ip_address = ip_address
        self.cause = cause
        super().__init__(f"GeoIP lookup failed for {ip_address}: {cause!r}")


class MergeError(LogTallyError):
    """Raised when one or more merge partitions failed to upsert their counters."""

    def __init__(self, kind: str, failures: dict[int, BaseException], total_partitions: int) -> None:
        self.kind = kind
        self.failures = failures
        self.total_partitions = total_partitions
        failed = ", ".join(f"{index}: {exc!r}" for index, exc in sorted(failures.items()))
        super().__init__(
            f"{len(failures)} of {total_partitions} {kind} merge partition(s) failed ({failed})"
        )


class PipelineHaltedError(LogTallyError):
    """Raised when a batch is submitted to a pipeline that already failed."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"The {kind} pipeline is halted after an earlier failure")
