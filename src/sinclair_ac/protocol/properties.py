"""Property codes and value enumerations of the unit's status/command vocabulary.

Codes are the short strings the firmware uses in "cols"/"opt" lists. Values
are always integers on the wire.
"""

from enum import IntEnum, StrEnum
from typing import Final


class PropertyCode(StrEnum):
    """Device attribute codes."""

    POWER = "Pow"
    MODE = "Mod"
    TARGET_TEMPERATURE = "SetTem"
    FAN_SPEED = "WdSpd"
    FRESH_AIR = "Air"
    XFAN = "Blo"  # Blow-dry after cooling
    HEALTH = "Health"  # Ionizer
    SLEEP = "SwhSlp"
    LIGHT = "Lig"
    SWING_HORIZONTAL = "SwingLfRig"
    SWING_VERTICAL = "SwUpDn"
    QUIET = "Quiet"
    TURBO = "Tur"
    HEAT_8C = "StHt"  # Frost protection (8 °C heating)
    TEMPERATURE_UNIT = "TemUn"
    HEAT_COOL_TYPE = "HeatCoolType"
    TEMPERATURE_RECOVERY = "TemRec"  # Fahrenheit half-degree bit
    ENERGY_SAVING = "SvSt"
    SLEEP_MODE = "SlpMod"
    ROOM_TEMPERATURE = "TemSen"


# Every status request asks for the full known vocabulary
STATUS_COLUMNS: Final[tuple[str, ...]] = tuple(code.value for code in PropertyCode)


class Power(IntEnum):
    OFF = 0
    ON = 1


class Mode(IntEnum):
    AUTO = 0
    COOL = 1
    DRY = 2
    FAN = 3
    HEAT = 4


class FanSpeed(IntEnum):
    AUTO = 0
    LOW = 1
    MEDIUM_LOW = 2
    MEDIUM = 3
    MEDIUM_HIGH = 4
    HIGH = 5


class SwingVertical(IntEnum):
    """Vertical louver positions.

    0 returns the louver to its default, 1 sweeps the full range, 2-6 are
    fixed positions from top to bottom and 7-11 sweep partial ranges.
    """

    DEFAULT = 0
    FULL = 1
    FIXED_TOP = 2
    FIXED_MIDDLE_TOP = 3
    FIXED_MIDDLE = 4
    FIXED_MIDDLE_BOTTOM = 5
    FIXED_BOTTOM = 6
    SWING_BOTTOM = 7
    SWING_MIDDLE_BOTTOM = 8
    SWING_MIDDLE = 9
    SWING_MIDDLE_TOP = 10
    SWING_TOP = 11


# Positions where the louver is not moving
FIXED_SWING_POSITIONS: Final = frozenset(
    {
        SwingVertical.DEFAULT,
        SwingVertical.FIXED_TOP,
        SwingVertical.FIXED_MIDDLE_TOP,
        SwingVertical.FIXED_MIDDLE,
        SwingVertical.FIXED_MIDDLE_BOTTOM,
        SwingVertical.FIXED_BOTTOM,
    },
)

MIN_TARGET_TEMPERATURE: Final = 16
MAX_TARGET_TEMPERATURE: Final = 30

# Raw TemSen readings are reported with this offset added
DEFAULT_TEMPERATURE_SENSOR_OFFSET: Final = 40
