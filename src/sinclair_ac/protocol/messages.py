"""Inner payload builders and parsers for the unit's JSON message types.

Message type overview ("t" field of the decrypted payload):
- scan   → dev     : discovery (scan is sent unencrypted)
- bind   → bindok  : session key exchange (default key)
- status → dat     : property poll (session key)
- cmd    → res     : property write (session key)

Commands and replies carry parallel code/value arrays; positions correspond
1:1 and order must be preserved.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Final

from sinclair_ac.protocol.exceptions import CodecError

# Request types
MSG_TYPE_SCAN: Final = "scan"
MSG_TYPE_BIND: Final = "bind"
MSG_TYPE_STATUS: Final = "status"
MSG_TYPE_COMMAND: Final = "cmd"

# Response types
MSG_TYPE_DEVICE: Final = "dev"
MSG_TYPE_BIND_OK: Final = "bindok"
MSG_TYPE_STATUS_DATA: Final = "dat"
MSG_TYPE_COMMAND_RESULT: Final = "res"

KNOWN_RESPONSE_TYPES: Final = frozenset(
    {MSG_TYPE_DEVICE, MSG_TYPE_BIND_OK, MSG_TYPE_STATUS_DATA, MSG_TYPE_COMMAND_RESULT},
)

BIND_REQUEST_INDEX: Final = 1
DEFAULT_REQUEST_INDEX: Final = 0

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceMessage:
    """Decrypted inbound payload with its routing metadata.

    Attributes:
        type: Payload "t" field (dev, bindok, dat, res)
        payload: Full decrypted payload
        cid: Envelope "cid" (the unit's identifier on scan replies)
        address: (host, port) the datagram came from
    """

    type: str
    payload: Mapping[str, Any]
    cid: str = ""
    address: tuple[str, int] = field(default=("", 0))


def build_bind(device_id: str) -> dict[str, Any]:
    return {"mac": device_id, "t": MSG_TYPE_BIND, "uid": 0}


def build_status(device_id: str, columns: Sequence[str]) -> dict[str, Any]:
    return {"cols": list(columns), "mac": device_id, "t": MSG_TYPE_STATUS}


def build_command(codes: Sequence[str], values: Sequence[int]) -> dict[str, Any]:
    """Build a cmd payload from parallel code/value sequences.

    Raises:
        ValueError: If the sequences are empty or differ in length

    """
    if len(codes) != len(values):
        msg = f"Command codes and values differ in length ({len(codes)} != {len(values)})"
        raise ValueError(msg)
    if not codes:
        msg = "Command must set at least one property"
        raise ValueError(msg)
    return {"opt": list(codes), "p": [int(v) for v in values], "t": MSG_TYPE_COMMAND}


def zip_properties(payload: Mapping[str, Any], names_key: str, values_key: str) -> dict[str, int]:
    """Zip a payload's name list against its value list.

    Non-integer values (some firmwares report strings for a few columns) are
    skipped; the unit's property model is integer-only.

    Raises:
        CodecError: If either list is missing or the lengths differ

    """
    names = payload.get(names_key)
    values = payload.get(values_key)
    if not isinstance(names, list) or not isinstance(values, list):
        error_reason = f"missing_{names_key}_or_{values_key}"
        raise CodecError(error_reason)
    if len(names) != len(values):
        error_reason = "column_mismatch"
        raise CodecError(error_reason)

    properties: dict[str, int] = {}
    for name, value in zip(names, values, strict=True):
        if isinstance(value, bool):
            properties[str(name)] = int(value)
        elif isinstance(value, int):
            properties[str(name)] = value
        else:
            logger.debug("Skipping non-integer property %s=%r", name, value)
    return properties


def command_result_properties(payload: Mapping[str, Any]) -> dict[str, int]:
    """Properties acknowledged by a res payload.

    Most firmwares echo values in "val"; some only echo "p".
    """
    values_key = "val" if "val" in payload else "p"
    return zip_properties(payload, "opt", values_key)


def status_properties(payload: Mapping[str, Any]) -> dict[str, int]:
    return zip_properties(payload, "cols", "dat")
