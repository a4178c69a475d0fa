"""Strict single-flight request correlation.

Exactly one request may be outstanding at a time. A second request while the
slot is taken fails fast with BusyError instead of queueing; the unit has one
command channel and replies carry no sequence number to match them by.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable

from sinclair_ac.correlation import correlation_context
from sinclair_ac.metrics.registry import (
    record_orphan_response,
    record_request_busy,
    record_request_latency,
    record_request_timeout,
)
from sinclair_ac.protocol.messages import DeviceMessage
from sinclair_ac.transport.exceptions import BusyError, RequestTimeoutError, SinclairConnectionError
from sinclair_ac.transport.types import PendingRequest

logger = logging.getLogger(__name__)

SendCallable = Callable[[], bool]


class RequestTracker:
    """Owns the single request slot for one unit."""

    def __init__(self, device_id: str, timeout_seconds: float):
        """
        Initialize the tracker.

        Args:
            device_id: Label used in logs and metrics
            timeout_seconds: Default deadline for a request
        """
        self.device_id = device_id
        self.timeout_seconds = timeout_seconds
        self._pending: PendingRequest | None = None

    @property
    def busy(self) -> bool:
        return self._pending is not None

    @property
    def pending(self) -> PendingRequest | None:
        return self._pending

    async def request(
        self,
        kind: str,
        send: SendCallable,
        expect: Iterable[str],
        timeout: float | None = None,
    ) -> DeviceMessage:
        """
        Send a request and wait for the first matching response.

        The slot is registered before send() runs so a reply that arrives
        during the send is not missed. A send() that returns False is not
        raised; the request runs out its deadline instead.

        Args:
            kind: Logical request kind (bind, status, cmd)
            send: Callable that puts the request on the wire
            expect: Response types that complete this request
            timeout: Deadline override in seconds

        Returns:
            The matching DeviceMessage

        Raises:
            BusyError: Another request is pending
            RequestTimeoutError: No matching response before the deadline
            SinclairConnectionError: The request was cancelled by cancel_all()
        """
        if self._pending is not None:
            record_request_busy(self.device_id, kind)
            logger.debug(
                "Rejecting %s request: %s request pending",
                kind,
                self._pending.kind,
                extra={"device_id": self.device_id, "kind": kind, "pending_kind": self._pending.kind},
            )
            raise BusyError(kind, self._pending.kind)

        timeout = self.timeout_seconds if timeout is None else timeout
        loop = asyncio.get_running_loop()

        with correlation_context() as correlation_id:
            sent_at = time.monotonic()
            pending = PendingRequest(
                kind=kind,
                expect=frozenset(expect),
                correlation_id=correlation_id or "",
                sent_at=sent_at,
                deadline=sent_at + timeout,
                future=loop.create_future(),
            )
            self._pending = pending
            start_time = time.perf_counter()
            try:
                if not send():
                    logger.warning(
                        "%s request was not sent, waiting out the deadline",
                        kind,
                        extra={"device_id": self.device_id, "kind": kind},
                    )
                message = await asyncio.wait_for(pending.future, timeout=timeout)
            except TimeoutError as e:
                record_request_timeout(self.device_id, kind)
                logger.warning(
                    "%s request timed out after %.1fs",
                    kind,
                    timeout,
                    extra={"device_id": self.device_id, "kind": kind, "timeout": timeout},
                )
                raise RequestTimeoutError(kind, timeout, pending.correlation_id) from e
            finally:
                if not pending.future.done():
                    pending.future.cancel()
                if self._pending is pending:
                    self._pending = None

            latency = time.perf_counter() - start_time
            record_request_latency(self.device_id, kind, latency)
            logger.debug(
                "%s request answered by %s in %.1fms",
                kind,
                message.type,
                latency * 1000,
                extra={
                    "device_id": self.device_id,
                    "kind": kind,
                    "response": message.type,
                    "elapsed_ms": latency * 1000,
                },
            )
            return message

    def resolve(self, message: DeviceMessage) -> bool:
        """
        Complete the pending request if the message answers it.

        Returns:
            True if delivered, False for unsolicited or late responses
        """
        pending = self._pending
        if pending is None or not pending.matches(message):
            record_orphan_response(self.device_id, message.type)
            logger.debug(
                "No pending request for %s response",
                message.type,
                extra={"device_id": self.device_id, "response": message.type},
            )
            return False
        pending.future.set_result(message)
        return True

    def cancel_all(self, reason: str = "client closed") -> None:
        """Fail the pending request, if any, with SinclairConnectionError."""
        pending = self._pending
        if pending is None:
            return
        self._pending = None
        if not pending.future.done():
            pending.future.set_exception(SinclairConnectionError(reason, state=pending.kind))
        logger.info(
            "Cancelled pending %s request: %s",
            pending.kind,
            reason,
            extra={"device_id": self.device_id, "kind": pending.kind, "reason": reason},
        )
