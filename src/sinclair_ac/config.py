"""Client configuration model and YAML loader."""

from __future__ import annotations

import ipaddress
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, PositiveInt

from sinclair_ac.const import (
    DEFAULT_COMMAND_PORT,
    DEFAULT_MAX_DISCOVERY_ATTEMPTS,
    DEFAULT_MAX_MISSED_POLLS,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_INTERVAL,
    DEFAULT_UPDATE_INTERVAL,
    LOCAL_PORT_BASE,
)
from sinclair_ac.protocol.properties import DEFAULT_TEMPERATURE_SENSOR_OFFSET
from sinclair_ac.transport.retry_policy import TimeoutConfig

logger = logging.getLogger(__name__)


class ClientConfig(BaseModel):
    """Settings for one client/unit pair.

    Every field except host has an explicit default.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    host: str
    command_port: int = Field(default=DEFAULT_COMMAND_PORT, ge=1, le=65535)
    # None derives 8000 + last octet of host; 0 lets the OS pick
    local_port: int | None = Field(default=None, ge=0, le=65535)
    update_interval: PositiveFloat = DEFAULT_UPDATE_INTERVAL
    retry_interval: PositiveFloat = DEFAULT_RETRY_INTERVAL
    request_timeout: PositiveFloat = DEFAULT_REQUEST_TIMEOUT
    max_discovery_attempts: PositiveInt = DEFAULT_MAX_DISCOVERY_ATTEMPTS
    max_missed_polls: PositiveInt = DEFAULT_MAX_MISSED_POLLS
    temperature_sensor_offset: int = DEFAULT_TEMPERATURE_SENSOR_OFFSET
    # Readings below the floor for their code are dropped as implausible
    property_floors: dict[str, int] = Field(default_factory=dict)
    debug: bool = False

    def resolved_local_port(self) -> int:
        """Local port to bind.

        Falls back to an ephemeral port when host is not an IPv4 literal.
        """
        if self.local_port is not None:
            return self.local_port
        try:
            address = ipaddress.ip_address(self.host)
        except ValueError:
            logger.debug("Host %s is not an IP literal, using an ephemeral local port", self.host)
            return 0
        if address.version != 4:  # noqa: PLR2004
            return 0
        return LOCAL_PORT_BASE + int(self.host.rsplit(".", 1)[1])

    def timeout_config(self) -> TimeoutConfig:
        return TimeoutConfig(
            request_timeout_seconds=self.request_timeout,
            update_interval_seconds=self.update_interval,
            retry_interval_seconds=self.retry_interval,
            max_missed_polls=self.max_missed_polls,
        )


def load_config(path: str | Path, **overrides: Any) -> ClientConfig:
    """Load a ClientConfig from a YAML mapping.

    Args:
        path: YAML file path
        **overrides: Values that take precedence over the file (None values ignored)

    Raises:
        ValueError: If the file does not contain a mapping
        pydantic.ValidationError: If a value is invalid

    """
    config_path = Path(path).expanduser()
    with config_path.open(encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        msg = f"Config file {config_path} must contain a mapping, got {type(raw).__name__}"
        raise ValueError(msg)

    raw.update({k: v for k, v in overrides.items() if v is not None})
    config = ClientConfig.model_validate(raw)
    logger.info("Loaded config for %s from %s", config.host, config_path)
    return config
