"""Custom exception types for transport, correlation and binding errors.

This module defines the exception hierarchy for transport-related errors,
extending the protocol exceptions.
"""

from __future__ import annotations

from sinclair_ac.protocol.exceptions import SinclairProtocolError


class SocketError(SinclairProtocolError):
    """Local UDP socket could not be bound or used.

    Raised when:
    - The local port is in use or the OS rejects the bind
    - The socket was lost and has not been reopened yet
    - close() ran while the socket was still being bound

    Recovered by retrying on a fixed interval; never fatal to the process.

    Attributes:
        reason: Specific failure reason
        local_port: Port that was being bound (0 for ephemeral)
    """

    def __init__(self, reason: str, local_port: int = 0):
        self.reason = reason
        self.local_port = local_port
        super().__init__(f"Socket error: {reason} (local port: {local_port})")


class SinclairConnectionError(SinclairProtocolError):
    """Session state error (not bound, client closed, etc.)

    Note: Named SinclairConnectionError to avoid shadowing Python's built-in ConnectionError.

    Attributes:
        reason: Specific failure reason
        state: Binding state when error occurred
    """

    def __init__(self, reason: str, state: str = "unknown"):
        self.reason = reason
        self.state = state
        super().__init__(f"Connection error: {reason} (state: {state})")


class RequestTimeoutError(SinclairProtocolError, TimeoutError):
    """No matching response arrived before the request deadline.

    Also a built-in TimeoutError, so `except TimeoutError` catches it.

    Attributes:
        kind: Logical request kind (bind, status, cmd)
        timeout_seconds: Deadline that was exceeded
        correlation_id: Correlation ID for observability
    """

    def __init__(self, kind: str, timeout_seconds: float, correlation_id: str = ""):
        self.kind = kind
        self.timeout_seconds = timeout_seconds
        self.correlation_id = correlation_id
        super().__init__(f"{kind} request timed out after {timeout_seconds}s")


class BusyError(SinclairProtocolError):
    """A request was issued while another one is still in flight.

    Attributes:
        kind: Kind of the rejected request
        pending_kind: Kind of the request occupying the slot
    """

    def __init__(self, kind: str, pending_kind: str):
        self.kind = kind
        self.pending_kind = pending_kind
        super().__init__(f"Cannot send {kind} request: {pending_kind} request still pending")


class BindError(SinclairProtocolError):
    """Discovery/binding exhausted its retry budget.

    Attributes:
        reason: Specific failure reason
        attempts: Number of scan/bind attempts made
    """

    def __init__(self, reason: str, attempts: int = 0):
        self.reason = reason
        self.attempts = attempts
        super().__init__(f"Bind failed: {reason} after {attempts} attempts")
