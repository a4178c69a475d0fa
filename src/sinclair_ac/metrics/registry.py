"""Prometheus metrics registry for the Sinclair UDP client."""

import threading
from typing import Final

from prometheus_client import (  # type: ignore[import-untyped]
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from sinclair_ac.structs import BindingState

# Datagram metrics
sinclair_udp_datagram_sent_total: Final = Counter(  # type: ignore[assignment]
    "sinclair_udp_datagram_sent_total",
    "Total datagrams sent",
    ["device_id", "outcome"],
)

sinclair_udp_datagram_recv_total: Final = Counter(  # type: ignore[assignment]
    "sinclair_udp_datagram_recv_total",
    "Total datagrams received",
    ["device_id", "outcome"],
)

sinclair_udp_decode_errors_total: Final = Counter(  # type: ignore[assignment]
    "sinclair_udp_decode_errors_total",
    "Total payload decode errors",
    ["device_id", "reason"],
)

sinclair_udp_socket_open_failures_total: Final = Counter(  # type: ignore[assignment]
    "sinclair_udp_socket_open_failures_total",
    "Total failed attempts to bind the local UDP socket",
    ["local_port"],
)

# Request/response metrics
sinclair_request_latency_seconds: Final = Histogram(  # type: ignore[assignment]
    "sinclair_request_latency_seconds",
    "Request round-trip latency in seconds",
    ["device_id", "kind"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

sinclair_request_timeout_total: Final = Counter(  # type: ignore[assignment]
    "sinclair_request_timeout_total",
    "Total requests that timed out",
    ["device_id", "kind"],
)

sinclair_request_busy_total: Final = Counter(  # type: ignore[assignment]
    "sinclair_request_busy_total",
    "Total requests rejected because another request was in flight",
    ["device_id", "kind"],
)

sinclair_orphan_response_total: Final = Counter(  # type: ignore[assignment]
    "sinclair_orphan_response_total",
    "Total responses that matched no pending request",
    ["device_id", "message_type"],
)

# Session metrics
sinclair_binding_state: Final = Gauge(  # type: ignore[assignment]
    "sinclair_binding_state",
    "Current binding state",
    ["device_id", "state"],
)

sinclair_bind_attempts_total: Final = Counter(  # type: ignore[assignment]
    "sinclair_bind_attempts_total",
    "Total scan/bind attempts",
    ["device_id", "outcome"],
)

sinclair_poll_total: Final = Counter(  # type: ignore[assignment]
    "sinclair_poll_total",
    "Total status poll ticks",
    ["device_id", "outcome"],
)

sinclair_property_rejected_total: Final = Counter(  # type: ignore[assignment]
    "sinclair_property_rejected_total",
    "Total property readings dropped as implausible",
    ["device_id", "code"],
)

_server_state = {"started": False}
_server_lock = threading.Lock()


def start_metrics_server(port: int = 9400) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)  # type: ignore[no-untyped-call]
            _server_state["started"] = True


def record_datagram_sent(device_id: str, outcome: str) -> None:
    """Record a sent datagram."""
    sinclair_udp_datagram_sent_total.labels(device_id=device_id, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_datagram_recv(device_id: str, outcome: str) -> None:
    """Record a received datagram."""
    sinclair_udp_datagram_recv_total.labels(device_id=device_id, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_decode_error(device_id: str, reason: str) -> None:
    """Record a decode error."""
    sinclair_udp_decode_errors_total.labels(device_id=device_id, reason=reason).inc()  # type: ignore[no-untyped-call]


def record_socket_open_failure(local_port: int) -> None:
    """Record a failed socket bind."""
    sinclair_udp_socket_open_failures_total.labels(local_port=str(local_port)).inc()  # type: ignore[no-untyped-call]


def record_request_latency(device_id: str, kind: str, latency_seconds: float) -> None:
    """Record request latency."""
    sinclair_request_latency_seconds.labels(device_id=device_id, kind=kind).observe(latency_seconds)  # type: ignore[no-untyped-call]


def record_request_timeout(device_id: str, kind: str) -> None:
    """Record a request timeout."""
    sinclair_request_timeout_total.labels(device_id=device_id, kind=kind).inc()  # type: ignore[no-untyped-call]


def record_request_busy(device_id: str, kind: str) -> None:
    """Record a request rejected by the single-flight slot."""
    sinclair_request_busy_total.labels(device_id=device_id, kind=kind).inc()  # type: ignore[no-untyped-call]


def record_orphan_response(device_id: str, message_type: str) -> None:
    """Record a response with no pending request."""
    sinclair_orphan_response_total.labels(device_id=device_id, message_type=message_type).inc()  # type: ignore[no-untyped-call]


def record_binding_state(device_id: str, state: BindingState) -> None:
    """Record binding state change."""
    # Set gauge to 1 for current state, 0 for all others
    for s in BindingState:
        value = 1 if s is state else 0
        sinclair_binding_state.labels(device_id=device_id, state=s.value).set(value)  # type: ignore[no-untyped-call]


def record_bind_attempt(device_id: str, outcome: str) -> None:
    """Record a scan/bind attempt."""
    sinclair_bind_attempts_total.labels(device_id=device_id, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_poll(device_id: str, outcome: str) -> None:
    """Record a poll tick."""
    sinclair_poll_total.labels(device_id=device_id, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_property_rejected(device_id: str, code: str) -> None:
    """Record an implausible property reading."""
    sinclair_property_rejected_total.labels(device_id=device_id, code=code).inc()  # type: ignore[no-untyped-call]
