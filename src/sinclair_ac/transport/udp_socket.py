"""Asyncio UDP socket with self-healing bind and single-point dispatch."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from sinclair_ac.const import DEFAULT_RETRY_INTERVAL
from sinclair_ac.metrics.registry import (
    record_datagram_recv,
    record_datagram_sent,
    record_socket_open_failure,
)
from sinclair_ac.transport.exceptions import SocketError
from sinclair_ac.transport.retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

DatagramHandler = Callable[[bytes, tuple[str, int]], None]

BIND_ADDRESS = "0.0.0.0"  # noqa: S104


class _DatagramProtocol(asyncio.DatagramProtocol):
    """Forwards asyncio protocol callbacks to the owning UDPTransport."""

    def __init__(self, owner: UDPTransport):
        self._owner = owner

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        self._owner._dispatch(data, addr)  # noqa: SLF001

    def error_received(self, exc: Exception) -> None:
        # ICMP port unreachable and friends; the socket stays usable
        logger.warning(
            "UDP socket error: %s",
            exc,
            extra={"local_port": self._owner.local_port, "error": str(exc)},
        )

    def connection_lost(self, exc: Exception | None) -> None:
        self._owner._on_connection_lost(self, exc)  # noqa: SLF001


class UDPTransport:
    """One UDP socket bound to a local port.

    Sends are best effort and never raise. Every inbound datagram, whatever
    its origin, goes to the single handler registered with on_datagram();
    filtering by source is the caller's job.
    """

    def __init__(self, retry_interval: float = DEFAULT_RETRY_INTERVAL, label: str = ""):
        """
        Initialize the transport.

        Args:
            retry_interval: Seconds between bind attempts
            label: Device label used on metrics (usually the unit host)
        """
        self.retry_interval = retry_interval
        self.label = label
        self._transport: asyncio.DatagramTransport | None = None
        self._protocol: _DatagramProtocol | None = None
        self._handler: DatagramHandler | None = None
        self._requested_port = 0
        self._closing = False
        self._reopen_task: asyncio.Task[None] | None = None

    @property
    def is_open(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    @property
    def local_port(self) -> int:
        """Port actually bound (the requested one until the socket is open)."""
        if self._transport is None:
            return self._requested_port
        sockname = self._transport.get_extra_info("sockname")
        return sockname[1] if sockname else self._requested_port

    def on_datagram(self, handler: DatagramHandler | None) -> None:
        """Register the single dispatch point for inbound datagrams."""
        self._handler = handler

    async def open(self, local_port: int = 0, max_attempts: int | None = None) -> int:
        """
        Bind the socket, retrying every retry_interval while the OS refuses.

        Args:
            local_port: Port to bind (0 = ephemeral)
            max_attempts: Attempt budget (None = retry until bound)

        Returns:
            The bound local port

        Raises:
            SocketError: If max_attempts is exhausted or close() ran meanwhile
        """
        if self.is_open:
            return self.local_port

        self._closing = False
        self._requested_port = local_port
        policy = RetryPolicy(interval_seconds=self.retry_interval, max_attempts=max_attempts)
        loop = asyncio.get_running_loop()
        attempt = 0

        while True:
            start_time = time.perf_counter()
            try:
                transport, protocol = await loop.create_datagram_endpoint(
                    lambda: _DatagramProtocol(self),
                    local_addr=(BIND_ADDRESS, local_port),
                )
            except OSError as e:
                record_socket_open_failure(local_port)
                logger.warning(
                    "Failed to bind UDP port %d (attempt %d): %s",
                    local_port,
                    attempt + 1,
                    e,
                    extra={"local_port": local_port, "attempt": attempt + 1, "error": str(e)},
                )
                if not policy.should_retry(attempt):
                    error_reason = f"bind_failed: {e}"
                    raise SocketError(error_reason, local_port) from e
                await asyncio.sleep(policy.get_delay(attempt))
                if self._closing:
                    raise SocketError("closed", local_port) from e
                attempt += 1
                continue

            if self._closing:
                transport.close()
                raise SocketError("closed", local_port)

            self._transport = transport
            self._protocol = protocol
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "UDP socket bound on port %d in %.1fms",
                self.local_port,
                elapsed_ms,
                extra={"local_port": self.local_port, "elapsed_ms": elapsed_ms},
            )
            return self.local_port

    def send_to(self, address: str, port: int, data: bytes) -> bool:
        """
        Send one datagram.

        Args:
            address: Destination IP address
            port: Destination port
            data: Datagram bytes

        Returns:
            True if handed to the OS, False otherwise
        """
        if not self.is_open or self._transport is None:
            logger.error(
                "Cannot send to %s:%d: socket not open",
                address,
                port,
                extra={"host": address, "port": port},
            )
            record_datagram_sent(self.label, "not_open")
            return False

        try:
            self._transport.sendto(data, (address, port))
        except OSError as e:
            logger.exception(
                "Send to %s:%d failed",
                address,
                port,
                extra={"host": address, "port": port, "bytes": len(data), "error": str(e)},
            )
            record_datagram_sent(self.label, "error")
            return False

        logger.debug(
            "Sent %d bytes to %s:%d",
            len(data),
            address,
            port,
            extra={"bytes": len(data), "host": address, "port": port},
        )
        record_datagram_sent(self.label, "success")
        return True

    def close(self) -> None:
        """Release the socket and stop any pending reopen. Idempotent."""
        self._closing = True
        if self._reopen_task is not None:
            self._reopen_task.cancel()
            self._reopen_task = None
        if self._transport is not None:
            self._transport.close()
            self._transport = None
            self._protocol = None
            logger.info("UDP socket closed", extra={"local_port": self._requested_port})

    def _dispatch(self, data: bytes, addr: tuple[str, int]) -> None:
        if self._handler is None:
            record_datagram_recv(self.label, "unhandled")
            logger.debug("Dropping %d bytes from %s:%d: no handler", len(data), addr[0], addr[1])
            return
        try:
            self._handler(data, addr)
        except Exception as e:
            # Never raise into the event loop's datagram callback
            logger.exception(
                "Datagram handler failed for %d bytes from %s:%d",
                len(data),
                addr[0],
                addr[1],
                extra={"host": addr[0], "port": addr[1], "error": str(e)},
            )

    def _on_connection_lost(self, protocol: _DatagramProtocol, exc: Exception | None) -> None:
        if protocol is not self._protocol:
            # A socket we already replaced or closed
            return
        self._transport = None
        self._protocol = None
        if self._closing or exc is None:
            return
        logger.warning(
            "UDP socket lost (%s), reopening port %d in %.1fs",
            exc,
            self._requested_port,
            self.retry_interval,
            extra={"local_port": self._requested_port, "error": str(exc)},
        )
        self._reopen_task = asyncio.get_running_loop().create_task(self._reopen())

    async def _reopen(self) -> None:
        await asyncio.sleep(self.retry_interval)
        if not self._closing:
            await self.open(self._requested_port)
