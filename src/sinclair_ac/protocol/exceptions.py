"""Custom exception types for Sinclair protocol errors.

This module defines the exception hierarchy for protocol-related errors.
Codec failures raise instead of returning None so the caller decides whether
a bad datagram is noise or a failure of an in-flight request.
"""

from __future__ import annotations


class SinclairProtocolError(Exception):
    """Base exception for all Sinclair protocol errors.

    All protocol and transport exceptions inherit from this base class,
    enabling catch-all error handling when needed while maintaining
    specific exception types for detailed handling.
    """


class CodecError(SinclairProtocolError):
    """Payload cannot be encrypted, decrypted or parsed.

    Raised when a datagram carries invalid base64, ciphertext that is not a
    whole number of AES blocks, bad PKCS#7 padding, or plaintext that is not
    a JSON object.

    Attributes:
        reason: Specific failure reason (e.g., "bad_padding", "invalid_json")
        data_preview: First 16 bytes of the offending data (security: the rest
            may contain key material)
    """

    def __init__(self, reason: str, data: bytes = b""):
        self.reason = reason
        self.data_preview = data[:16] if data else b""
        super().__init__(f"Payload decode failed: {reason}")


class UnexpectedMessageError(SinclairProtocolError):
    """Decrypted payload has a type the client does not understand.

    Attributes:
        message_type: Value of the payload's "t" field (or "" when absent)
    """

    def __init__(self, message_type: str):
        self.message_type = message_type
        super().__init__(f"Unexpected message type: {message_type or '<missing>'}")
