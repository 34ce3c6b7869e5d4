from collections.abc import Iterable
import logging
from datetime import datetime
from functools import lru_cache

from IPy import IP

from .constants import access_log_pattern, TIMESTAMP_FORMAT
from .schemas import LogEvent


logger = logging.getLogger(__name__)


@lru_cache(maxsize=4096)
def is_valid_ip(ip: str) -> bool:
    """Return True if ``ip`` is a single, fully written IPv4 or IPv6 address.

    IPy pads short IPv4 forms (``127.1`` -> ``127.1.0.0``) and reads bare
    integers or 32 hex digits as addresses, so the written form is checked too.
    """
    try:
        parsed = IP(ip)
    except ValueError:
        return False
    if parsed.len() != 1:
        return False
    if parsed.version() == 4:
        return ip.count(".") == 3
    return ":" in ip


class EventParser:
    """Validates raw access-log lines and turns them into LogEvent objects.

    Lines that do not match the combined log grammar in full, carry an
    unparsable timestamp or an invalid client address are dropped. Dropping is
    silent: ``parse`` returns None and only bumps the skipped counter.
    """

    def __init__(self) -> None:
        # Statistics
        self.parsed_lines: int = 0
        self.skipped_lines: int = 0

    def parsed_lines_count(self) -> int:
        """Return the number of parsed lines."""
        return self.parsed_lines

    def skipped_lines_count(self) -> int:
        """Return the number of skipped lines."""
        return self.skipped_lines

    def parse(self, line: str) -> LogEvent | None:
        """Parse one line into a LogEvent, or return None if it is malformed."""
        event = self._parse_line(line.rstrip("\r\n"))
        if event is None:
            self.skipped_lines += 1
        else:
            self.parsed_lines += 1
        return event

    def _parse_line(self, line: str) -> LogEvent | None:
        matched = access_log_pattern().fullmatch(line)
        if not matched:
            logger.debug("Skipping unmatched line: '%s'", line)
            return None

        datadict: dict[str, str] = matched.groupdict()
        ip = datadict["ip"]
        if not is_valid_ip(ip):
            logger.debug("Skipping line with invalid client address %s", ip)
            return None

        try:
            ts = datetime.strptime(datadict["dateandtime"], TIMESTAMP_FORMAT)
        except ValueError:
            logger.debug("Skipping line with invalid timestamp '%s'", datadict["dateandtime"])
            return None

        return LogEvent(
            ip_address=ip,
            client_identity=datadict["client_identity"],
            user_identity=datadict["user_identity"],
            timestamp=ts,
            method=datadict["method"],
            path=datadict["path"],
            http_version=datadict["http_version"],
            status_code=int(datadict["status_code"]),
            bytes_sent=int(datadict["bytes_sent"]),
            referrer=datadict["referrer"],
            user_agent=datadict["user_agent"],
        )

    def parse_batch(self, lines: Iterable[str]) -> list[LogEvent]:
        """Parse a batch of raw text.

        Each item may hold several records separated by newlines; items are
        split first and every resulting line is parsed on its own.
        """
        events: list[LogEvent] = []
        for chunk in lines:
            for line in chunk.split("\n"):
                if event := self.parse(line):
                    events.append(event)
        return events
