"""Regex patterns and constants for combined access-log parsing."""
import re
from functools import lru_cache

TIMESTAMP_FORMAT = "%d/%b/%Y:%H:%M:%S %z"

ALLOWED_GEOIP_LOCALES = ["de", "en", "es", "fr", "ja", "pt-BR", "ru", "zh-CN"]
GEOIP_LOCALES_DEFAULT = ["en"]

DEFAULT_COUNTRY = "US"
DEFAULT_CITY = "<empty>"

ACCESS_LOG_PATTERN = (
    r"(?P<ip>[0-9A-Fa-f:.]+) "
    r"(?P<client_identity>\S+) "
    r"(?P<user_identity>\S+) "
    r"\[(?P<dateandtime>.*)\] "
    r'"(?P<method>[^\s]+) (?P<path>/[^\s]*) HTTP/(?P<http_version>[^\s]+)" '
    r"(?P<status_code>\d{3}) "
    r"(?P<bytes_sent>\d+) "
    r'"(?P<referrer>[^"]+)" '
    r'"(?P<user_agent>[^"]+)"'
)


@lru_cache(maxsize=1)
def access_log_pattern() -> re.Pattern[str]:
    """Compiled combined access-log pattern. Use with ``fullmatch``."""
    return re.compile(ACCESS_LOG_PATTERN)
