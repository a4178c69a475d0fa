"""Metrics module."""

from .registry import (
    record_bind_attempt,
    record_binding_state,
    record_datagram_recv,
    record_datagram_sent,
    record_decode_error,
    record_poll,
    record_request_latency,
    record_request_timeout,
    start_metrics_server,
)

__all__ = [
    "record_bind_attempt",
    "record_binding_state",
    "record_datagram_recv",
    "record_datagram_sent",
    "record_decode_error",
    "record_poll",
    "record_request_latency",
    "record_request_timeout",
    "start_metrics_server",
]
