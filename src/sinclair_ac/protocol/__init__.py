"""Sinclair protocol package - payload codec, message vocabulary and session.

This package implements the Gree-derived LAN protocol spoken by Sinclair
units: AES-ECB payload encryption, the JSON envelope, property codes, and
the scan/bind/status/cmd message builders. The binding state machine lives
in sinclair_ac.protocol.session.

Public API:
- Codec functions (encrypt, decrypt, encode_envelope, decode_envelope, encode_scan)
- Message type constants (MSG_TYPE_*) and DeviceMessage
- Property vocabulary (PropertyCode, Mode, FanSpeed, SwingVertical, STATUS_COLUMNS)
"""

from sinclair_ac.protocol.codec import (
    DEFAULT_KEY,
    decode_envelope,
    decrypt,
    encode_envelope,
    encode_scan,
    encrypt,
)
from sinclair_ac.protocol.exceptions import CodecError, SinclairProtocolError, UnexpectedMessageError
from sinclair_ac.protocol.messages import (
    MSG_TYPE_BIND,
    MSG_TYPE_BIND_OK,
    MSG_TYPE_COMMAND,
    MSG_TYPE_COMMAND_RESULT,
    MSG_TYPE_DEVICE,
    MSG_TYPE_SCAN,
    MSG_TYPE_STATUS,
    MSG_TYPE_STATUS_DATA,
    DeviceMessage,
)
from sinclair_ac.protocol.properties import (
    STATUS_COLUMNS,
    FanSpeed,
    Mode,
    Power,
    PropertyCode,
    SwingVertical,
)

__all__ = [
    # Codec
    "DEFAULT_KEY",
    "decode_envelope",
    "decrypt",
    "encode_envelope",
    "encode_scan",
    "encrypt",
    # Exceptions
    "CodecError",
    "SinclairProtocolError",
    "UnexpectedMessageError",
    # Message types
    "MSG_TYPE_BIND",
    "MSG_TYPE_BIND_OK",
    "MSG_TYPE_COMMAND",
    "MSG_TYPE_COMMAND_RESULT",
    "MSG_TYPE_DEVICE",
    "MSG_TYPE_SCAN",
    "MSG_TYPE_STATUS",
    "MSG_TYPE_STATUS_DATA",
    "DeviceMessage",
    # Vocabulary
    "STATUS_COLUMNS",
    "FanSpeed",
    "Mode",
    "Power",
    "PropertyCode",
    "SwingVertical",
]
