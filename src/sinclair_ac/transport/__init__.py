"""UDP transport, retry policy and request correlation."""

from sinclair_ac.transport.exceptions import (
    BindError,
    BusyError,
    RequestTimeoutError,
    SinclairConnectionError,
    SocketError,
)
from sinclair_ac.transport.request_tracker import RequestTracker
from sinclair_ac.transport.retry_policy import RetryPolicy, TimeoutConfig
from sinclair_ac.transport.types import PendingRequest
from sinclair_ac.transport.udp_socket import UDPTransport

__all__ = [
    "BindError",
    "BusyError",
    "PendingRequest",
    "RequestTimeoutError",
    "RequestTracker",
    "RetryPolicy",
    "SinclairConnectionError",
    "SocketError",
    "TimeoutConfig",
    "UDPTransport",
]
