# src/logdna_shipper/defaults.py
"""Constants shared by the buffering, flush and transport layers.

These values are not exposed as user settings unless LoggerOptions lists
them explicitly (flush interval and flush byte limit are overridable).
"""

import re
from typing import Final

# Ingestion endpoint used when no logdna_url is configured
LOGDNA_URL: Final[str] = "https://logs.logdna.com/logs/ingest"

# Lines longer than this are cut when max_length is enabled
MAX_LINE_LENGTH: Final[int] = 32_000
TRUNCATION_MARKER: Final[str] = " (cut off, too long...)"

# Upper bound for key, hostname, mac, ip, level, app and url strings
MAX_INPUT_LENGTH: Final[int] = 80

FLUSH_INTERVAL_MS: Final[int] = 250
FLUSH_BYTE_LIMIT: Final[int] = 5_000_000

DEFAULT_REQUEST_TIMEOUT_MS: Final[int] = 180_000
MAX_REQUEST_TIMEOUT_MS: Final[int] = 300_000
REQUEST_WITH_CREDENTIALS: Final[bool] = False

MS_IN_A_DAY: Final[int] = 86_400_000

DEFAULT_LEVEL: Final[str] = "INFO"
DEFAULT_APP: Final[str] = "default"
LOG_LEVELS: Final[tuple[str, ...]] = ("TRACE", "DEBUG", "INFO", "WARN", "ERROR", "FATAL")

CONTENT_TYPE: Final[str] = "application/json; charset=UTF-8"

HOSTNAME_CHECK: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z0-9\-.]+$")
MAC_ADDR_CHECK: Final[re.Pattern[str]] = re.compile(r"^([0-9a-fA-F][0-9a-fA-F]:){5}([0-9a-fA-F][0-9a-fA-F])$")
IP_ADDR_CHECK: Final[re.Pattern[str]] = re.compile(
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)
