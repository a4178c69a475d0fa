"""Core dataclasses for the request correlation layer."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from sinclair_ac.protocol.messages import DeviceMessage


@dataclass
class PendingRequest:
    """Tracks the one request awaiting a correlated response.

    Attributes:
        kind: Logical request kind (bind, status, cmd)
        expect: Response message types that complete this request
        correlation_id: UUIDv7 for observability and event tracing
        sent_at: Timestamp when the request was registered (time.monotonic())
        deadline: Timestamp after which the request is abandoned
        future: Resolved with the matching DeviceMessage
    """

    kind: str
    expect: frozenset[str]
    correlation_id: str
    sent_at: float
    deadline: float
    future: asyncio.Future[DeviceMessage]

    def matches(self, message: DeviceMessage) -> bool:
        return message.type in self.expect and not self.future.done()
