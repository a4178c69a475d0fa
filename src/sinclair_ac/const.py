import os
from typing import Final

from sinclair_ac import __version__

__all__ = [
    "DEFAULT_COMMAND_PORT",
    "DEFAULT_MAX_DISCOVERY_ATTEMPTS",
    "DEFAULT_MAX_MISSED_POLLS",
    "DEFAULT_REQUEST_TIMEOUT",
    "DEFAULT_RETRY_INTERVAL",
    "DEFAULT_UPDATE_INTERVAL",
    "LOCAL_PORT_BASE",
    "SINCLAIR_DEBUG",
    "SINCLAIR_LOG_FORMAT",
    "SINCLAIR_LOG_HUMAN_OUTPUT",
    "SINCLAIR_LOG_JSON_FILE",
    "SINCLAIR_LOG_NAME",
    "SINCLAIR_METRICS_PORT",
    "SINCLAIR_VERSION",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
SINCLAIR_LOG_NAME: str = "sinclair_ac"
SINCLAIR_VERSION: str = __version__

# Protocol defaults
DEFAULT_COMMAND_PORT: Final = 7000
LOCAL_PORT_BASE: Final = 8000  # local port = base + last octet of the unit's IPv4 address

# Timing defaults (seconds)
DEFAULT_UPDATE_INTERVAL: Final = 10.0
DEFAULT_RETRY_INTERVAL: Final = 5.0
DEFAULT_REQUEST_TIMEOUT: Final = 3.0
DEFAULT_MAX_DISCOVERY_ATTEMPTS: Final = 3
DEFAULT_MAX_MISSED_POLLS: Final = 3

SINCLAIR_DEBUG: bool = os.environ.get("SINCLAIR_DEBUG", "0").casefold() in YES_ANSWER

_log_format = os.environ.get("SINCLAIR_LOG_FORMAT", "human").casefold()
SINCLAIR_LOG_FORMAT: str = _log_format if _log_format in ("json", "human", "both") else "human"
_json_file = os.environ.get("SINCLAIR_LOG_JSON_FILE")
SINCLAIR_LOG_JSON_FILE: str | None = _json_file if _json_file else None
SINCLAIR_LOG_HUMAN_OUTPUT: str = os.environ.get("SINCLAIR_LOG_HUMAN_OUTPUT", "stdout")

_metrics_port = os.environ.get("SINCLAIR_METRICS_PORT", "")
if not _metrics_port:
    _metrics_port_value: int | None = None
else:
    try:
        _metrics_port_value = int(_metrics_port)
    except ValueError:
        _metrics_port_value = None
SINCLAIR_METRICS_PORT: int | None = _metrics_port_value
