"""AES-ECB payload codec and JSON envelope framing.

Every datagram exchanged with the unit (except the discovery scan) is a JSON
envelope whose "pack" field holds a base64 AES-128-ECB ciphertext of the
inner JSON payload. ECB with no IV means identical payloads under the same
key always produce identical ciphertext; units depend on this, so it is kept.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from collections.abc import Mapping
from typing import Any, Final

from Crypto.Cipher import AES
from Crypto.Util.Padding import pad, unpad

from sinclair_ac.protocol.exceptions import CodecError

# Protocol-fixed key used for scan replies and the bind exchange
DEFAULT_KEY: Final = b"a3K8Bx%2r8Y7#xDh"

BLOCK_SIZE: Final = AES.block_size  # 16
CLIENT_ID: Final = "app"

_SCAN_PAYLOAD: Final = {"t": "scan"}

logger = logging.getLogger(__name__)


def _key_bytes(key: bytes | str) -> bytes:
    key_bytes = key.encode("utf-8") if isinstance(key, str) else key
    if len(key_bytes) != BLOCK_SIZE:
        error_reason = "invalid_key"
        raise CodecError(error_reason)
    return key_bytes


def _dumps(payload: Mapping[str, Any]) -> bytes:
    # Compact separators match what the unit firmware and vendor apps send
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


def encrypt(payload: Mapping[str, Any], key: bytes | str = DEFAULT_KEY) -> str:
    """Encrypt a payload object into base64 text.

    Args:
        payload: JSON-serializable mapping (the inner payload)
        key: 16-byte AES key (bytes, or str encoded as UTF-8)

    Returns:
        Base64 ciphertext suitable for the envelope "pack" field

    Raises:
        CodecError: If the key is not 16 bytes long

    Example:
        >>> encrypt({"t": "status"}) == encrypt({"t": "status"})
        True

    """
    cipher = AES.new(_key_bytes(key), AES.MODE_ECB)
    ciphertext = cipher.encrypt(pad(_dumps(payload), BLOCK_SIZE))
    return base64.b64encode(ciphertext).decode("ascii")


def decrypt(pack: str | bytes, key: bytes | str = DEFAULT_KEY) -> dict[str, Any]:
    """Decrypt base64 ciphertext back into a payload object.

    Args:
        pack: Base64 ciphertext from an envelope "pack" field
        key: 16-byte AES key (bytes, or str encoded as UTF-8)

    Returns:
        Decoded payload mapping

    Raises:
        CodecError: On invalid base64, partial blocks, bad padding,
            undecodable JSON, or a payload that is not a JSON object

    """
    cipher = AES.new(_key_bytes(key), AES.MODE_ECB)

    raw = pack.encode("ascii", errors="replace") if isinstance(pack, str) else pack
    try:
        ciphertext = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as e:
        error_reason = "invalid_base64"
        raise CodecError(error_reason, raw) from e

    if not ciphertext or len(ciphertext) % BLOCK_SIZE:
        error_reason = "bad_block_length"
        raise CodecError(error_reason, ciphertext)

    try:
        plaintext = unpad(cipher.decrypt(ciphertext), BLOCK_SIZE)
    except ValueError as e:
        error_reason = "bad_padding"
        raise CodecError(error_reason, ciphertext) from e

    try:
        payload = json.loads(plaintext.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        error_reason = "invalid_json"
        raise CodecError(error_reason, plaintext) from e

    if not isinstance(payload, dict):
        error_reason = "not_an_object"
        raise CodecError(error_reason, plaintext)

    return payload


def encode_scan() -> bytes:
    """Return the unencrypted discovery datagram."""
    return _dumps(_SCAN_PAYLOAD)


def encode_envelope(pack: str, index: int = 0) -> bytes:
    """Wrap an encrypted pack in the outer request envelope.

    Field order is fixed: cid, i, t, uid, pack.

    Args:
        pack: Base64 ciphertext produced by encrypt()
        index: Request index (1 for bind, 0 otherwise)

    Returns:
        Datagram bytes

    """
    envelope = {"cid": CLIENT_ID, "i": index, "t": "pack", "uid": 0, "pack": pack}
    return _dumps(envelope)


def decode_envelope(data: bytes) -> dict[str, Any]:
    """Parse an inbound datagram into its outer envelope.

    Raises:
        CodecError: If the datagram is not a JSON object with a string "pack"

    """
    try:
        envelope = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        error_reason = "invalid_envelope"
        raise CodecError(error_reason, data) from e

    if not isinstance(envelope, dict) or not isinstance(envelope.get("pack"), str):
        error_reason = "missing_pack"
        raise CodecError(error_reason, data)

    logger.debug(
        "Decoded envelope: t=%s, i=%s, cid=%s",
        envelope.get("t"),
        envelope.get("i"),
        envelope.get("cid"),
    )
    return envelope
