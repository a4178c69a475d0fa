"""Core data structures shared by the session, the client and its collaborators."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from sinclair_ac.protocol.properties import (
    DEFAULT_TEMPERATURE_SENSOR_OFFSET,
    FIXED_SWING_POSITIONS,
    MAX_TARGET_TEMPERATURE,
    MIN_TARGET_TEMPERATURE,
    FanSpeed,
    Mode,
    Power,
    PropertyCode,
    SwingVertical,
)


class BindingState(StrEnum):
    """Binding state of the session with one unit."""

    UNBOUND = "unbound"
    AWAITING_DEVICE_ACK = "awaiting_device_ack"
    BOUND = "bound"


class EventKind(StrEnum):
    """Notifications published by the client."""

    CONNECTED = "connected"
    STATUS = "status"
    UPDATE = "update"
    ERROR = "error"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class DeviceIdentity:
    """Unit identity learned from a scan reply.

    Fixed for the lifetime of one binding session.

    Attributes:
        id: Unit-reported MAC-like identifier
        address: IP address the scan reply came from
        port: Port the unit listens on
        name: Friendly name from the scan reply (may be empty)
    """

    id: str
    address: str
    port: int
    name: str = ""


@dataclass(frozen=True)
class DeviceState:
    """Read-only snapshot of everything known about the unit."""

    host: str
    binding_state: BindingState = BindingState.UNBOUND
    identity: DeviceIdentity | None = None
    properties: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def bound(self) -> bool:
        return self.binding_state is BindingState.BOUND

    def get(self, code: str, default: int | None = None) -> int | None:
        return self.properties.get(code, default)

    @property
    def power(self) -> bool | None:
        value = self.properties.get(PropertyCode.POWER)
        return None if value is None else value == Power.ON

    @property
    def mode(self) -> Mode | None:
        value = self.properties.get(PropertyCode.MODE)
        if value is None:
            return None
        try:
            return Mode(value)
        except ValueError:
            return None

    @property
    def target_temperature(self) -> int | None:
        return self.properties.get(PropertyCode.TARGET_TEMPERATURE)

    @property
    def fan_speed(self) -> int | None:
        return self.properties.get(PropertyCode.FAN_SPEED)

    @property
    def swing_vertical(self) -> int | None:
        return self.properties.get(PropertyCode.SWING_VERTICAL)

    @property
    def swing_enabled(self) -> bool | None:
        value = self.swing_vertical
        return None if value is None else value not in FIXED_SWING_POSITIONS

    def room_temperature(self, offset: int = DEFAULT_TEMPERATURE_SENSOR_OFFSET) -> int | None:
        """Room temperature in °C with the sensor offset removed."""
        value = self.properties.get(PropertyCode.ROOM_TEMPERATURE)
        return None if value is None else value - offset

    def to_dict(self) -> dict[str, Any]:
        return {
            "host": self.host,
            "binding_state": self.binding_state.value,
            "id": self.identity.id if self.identity else None,
            "name": self.identity.name if self.identity else None,
            "address": self.identity.address if self.identity else None,
            "port": self.identity.port if self.identity else None,
            "properties": dict(self.properties),
        }


@dataclass
class DesiredState:
    """Partial state write; unset fields are left untouched on the unit."""

    power: bool | None = None
    mode: Mode | int | None = None
    temperature: int | None = None
    fan: FanSpeed | int | None = None
    swing: SwingVertical | int | None = None

    def to_command(self) -> tuple[list[str], list[int]]:
        """Translate set fields to parallel code/value lists.

        Order is always Pow, Mod, SetTem, WdSpd, SwUpDn.

        Raises:
            ValueError: If no field is set or a value is out of range

        """
        opt: list[str] = []
        p: list[int] = []

        if self.power is not None:
            opt.append(PropertyCode.POWER.value)
            p.append(Power.ON if self.power else Power.OFF)
        if self.mode is not None:
            opt.append(PropertyCode.MODE.value)
            p.append(int(Mode(self.mode)))
        if self.temperature is not None:
            temperature = int(self.temperature)
            if not MIN_TARGET_TEMPERATURE <= temperature <= MAX_TARGET_TEMPERATURE:
                msg = (
                    f"Target temperature {temperature} outside "
                    f"{MIN_TARGET_TEMPERATURE}..{MAX_TARGET_TEMPERATURE}"
                )
                raise ValueError(msg)
            opt.append(PropertyCode.TARGET_TEMPERATURE.value)
            p.append(temperature)
        if self.fan is not None:
            opt.append(PropertyCode.FAN_SPEED.value)
            p.append(int(FanSpeed(self.fan)))
        if self.swing is not None:
            opt.append(PropertyCode.SWING_VERTICAL.value)
            p.append(int(SwingVertical(self.swing)))

        if not opt:
            msg = "DesiredState has no fields set"
            raise ValueError(msg)
        return opt, [int(v) for v in p]


@dataclass(frozen=True)
class ClientEvent:
    """Notification delivered to subscribers.

    Attributes:
        kind: Which notification this is
        state: Snapshot taken when the event fired
        error: Failure detail for ERROR events, None otherwise
    """

    kind: EventKind
    state: DeviceState
    error: Exception | None = None
