"""Public facade for controlling one Sinclair unit.

SinclairClient composes the UDP transport, the binding state machine and the
single-flight request tracker, runs the status poll and rediscovery tasks,
and fans ClientEvent notifications out to subscribers.

Example:
    async with SinclairClient(ClientConfig(host="192.168.1.50")) as client:
        client.on(EventKind.STATUS, lambda event: print(event.state.to_dict()))
        await client.set_state(power=True, mode=Mode.COOL, temperature=24)
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import dataclasses
import inspect
import logging
from collections.abc import Awaitable, Callable, Coroutine, Sequence
from typing import Any, Self, TypeVar

from sinclair_ac.config import ClientConfig
from sinclair_ac.const import SINCLAIR_LOG_NAME
from sinclair_ac.metrics.registry import record_bind_attempt, record_poll
from sinclair_ac.protocol.messages import (
    MSG_TYPE_BIND,
    MSG_TYPE_BIND_OK,
    MSG_TYPE_COMMAND,
    MSG_TYPE_COMMAND_RESULT,
    MSG_TYPE_DEVICE,
    MSG_TYPE_STATUS,
    MSG_TYPE_STATUS_DATA,
    build_command,
)
from sinclair_ac.protocol.session import DeviceSession
from sinclair_ac.structs import BindingState, ClientEvent, DesiredState, DeviceState, EventKind
from sinclair_ac.transport.exceptions import (
    BindError,
    BusyError,
    RequestTimeoutError,
    SinclairConnectionError,
    SocketError,
)
from sinclair_ac.transport.request_tracker import RequestTracker
from sinclair_ac.transport.retry_policy import RetryPolicy
from sinclair_ac.transport.udp_socket import UDPTransport

logger = logging.getLogger(__name__)

EventHandler = Callable[[ClientEvent], Awaitable[None] | None]
T = TypeVar("T")


class SinclairClient:
    """Client for one unit. All methods run on the event loop that called connect()."""

    def __init__(self, config: ClientConfig, transport: UDPTransport | None = None):
        """
        Initialize the client (no I/O happens until connect()).

        Args:
            config: Client configuration
            transport: Transport override (tests inject a fake here)
        """
        self.config = config
        self.timeouts = config.timeout_config()
        self.transport = transport or UDPTransport(retry_interval=config.retry_interval, label=config.host)
        self.session = DeviceSession(
            host=config.host,
            transport=self.transport,
            command_port=config.command_port,
            listener=self._publish,
            property_floors=config.property_floors,
        )
        self.tracker = RequestTracker(config.host, config.request_timeout)

        self._handlers: dict[EventKind, list[EventHandler]] = {kind: [] for kind in EventKind}
        self._handler_tasks: set[asyncio.Task[Any]] = set()
        self._poll_task: asyncio.Task[None] | None = None
        self._rediscovery_task: asyncio.Task[None] | None = None
        self._missed_polls = 0
        self._loop: asyncio.AbstractEventLoop | None = None
        self._closed = False
        self._connect_lock = asyncio.Lock()

        if config.debug:
            logging.getLogger(SINCLAIR_LOG_NAME).setLevel(logging.DEBUG)

        self.transport.on_datagram(self._on_datagram)

    @property
    def state(self) -> DeviceState:
        return self.session.snapshot()

    @property
    def bound(self) -> bool:
        return self.session.bound

    @property
    def room_temperature(self) -> int | None:
        """Room temperature in °C using the configured sensor offset."""
        return self.session.snapshot().room_temperature(self.config.temperature_sensor_offset)

    # ---- lifecycle --------------------------------------------------------

    async def connect(self) -> DeviceState:
        """
        Open the socket, discover and bind the unit, then start polling.

        Returns:
            Snapshot taken right after binding

        Raises:
            BindError: No bind confirmation after max_discovery_attempts
            SinclairConnectionError: The client was closed
        """
        self._ensure_open()
        self._loop = asyncio.get_running_loop()
        async with self._connect_lock:
            # A concurrent connect() may have bound while this one waited
            self._ensure_open()
            if self.session.bound:
                return self.session.snapshot()

            await self._cancel_rediscovery()
            try:
                local_port = await self.transport.open(self.config.resolved_local_port())
            except SocketError as e:
                if self._closed:
                    error_reason = "client closed"
                    raise SinclairConnectionError(error_reason, state=str(self.session.binding_state)) from e
                raise
            if self._closed:
                self.transport.close()
                error_reason = "client closed"
                raise SinclairConnectionError(error_reason, state=str(self.session.binding_state))
            logger.info(
                "Connecting to %s:%d from local port %d",
                self.config.host,
                self.config.command_port,
                local_port,
                extra={"host": self.config.host, "local_port": local_port},
            )

            policy = RetryPolicy(
                interval_seconds=self.config.retry_interval,
                max_attempts=self.config.max_discovery_attempts,
            )
            await self._bind(policy)
            self._start_polling()
            return self.session.snapshot()

    async def close(self) -> None:
        """Stop all timers, reject the pending request and release the socket. Idempotent."""
        if self._closed:
            return
        self._closed = True

        tasks = [t for t in (self._poll_task, self._rediscovery_task) if t is not None and not t.done()]
        # close() may itself run inside an async handler
        current = asyncio.current_task()
        tasks.extend(t for t in self._handler_tasks if t is not current)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._poll_task = None
        self._rediscovery_task = None

        self.tracker.cancel_all("client closed")
        if self.session.binding_state is BindingState.BOUND:
            self.session.demote("client closed")
        else:
            self.session.reset()

        self.transport.on_datagram(None)
        self.transport.close()
        await self._drain_handler_tasks()
        logger.info("Client for %s closed", self.config.host, extra={"host": self.config.host})

    disconnect = close

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ---- requests ---------------------------------------------------------

    async def get_status(self, refresh: bool = False) -> DeviceState:
        """
        Return the last known state, optionally polling the unit first.

        Raises:
            SinclairConnectionError: refresh requested while not bound
            BusyError: refresh requested while another request is pending
            RequestTimeoutError: The unit did not answer the refresh
        """
        if refresh:
            self._require_bound(MSG_TYPE_STATUS)
            await self.tracker.request(MSG_TYPE_STATUS, self.session.send_status, {MSG_TYPE_STATUS_DATA})
        return self.session.snapshot()

    async def set_state(self, desired: DesiredState | None = None, **fields: Any) -> DeviceState:
        """
        Apply a partial state; fields left unset are not sent.

        Accepts a DesiredState, keyword fields (power, mode, temperature, fan,
        swing), or both (keywords win).

        Returns:
            Snapshot after the unit acknowledged the command

        Raises:
            ValueError: Nothing to set or a value out of range
        """
        if desired is None:
            desired = DesiredState(**fields)
        elif fields:
            desired = dataclasses.replace(desired, **fields)
        opt, p = desired.to_command()
        return await self.send_command(opt, p)

    async def send_command(self, opt: Sequence[str], p: Sequence[int]) -> DeviceState:
        """
        Send raw parallel property code/value lists.

        Raises:
            ValueError: Lists empty or of different length
            SinclairConnectionError: Not bound
            BusyError: Another request is pending
            RequestTimeoutError: The unit did not acknowledge
        """
        build_command(opt, p)
        self._require_bound(MSG_TYPE_COMMAND)
        await self.tracker.request(
            MSG_TYPE_COMMAND,
            lambda: self.session.send_command(opt, p),
            {MSG_TYPE_COMMAND_RESULT},
        )
        return self.session.snapshot()

    def run_threadsafe(self, coro: Coroutine[Any, Any, T]) -> concurrent.futures.Future[T]:
        """Schedule a client coroutine from another thread onto the client's loop."""
        if self._loop is None:
            coro.close()
            error_reason = "client not connected"
            raise SinclairConnectionError(error_reason, state=str(self.session.binding_state))
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    # ---- events -----------------------------------------------------------

    def on(self, kind: EventKind | str, handler: EventHandler) -> Callable[[], None]:
        """
        Subscribe to a notification kind.

        Returns:
            Callable that removes the subscription
        """
        event_kind = EventKind(kind)
        self._handlers[event_kind].append(handler)
        return lambda: self.off(event_kind, handler)

    def off(self, kind: EventKind | str, handler: EventHandler) -> None:
        handlers = self._handlers[EventKind(kind)]
        if handler in handlers:
            handlers.remove(handler)

    def _publish(self, event: ClientEvent) -> None:
        for handler in list(self._handlers[event.kind]):
            try:
                result = handler(event)
            except Exception:
                logger.exception(
                    "%s handler %r failed",
                    event.kind,
                    handler,
                    extra={"host": self.config.host, "event": str(event.kind)},
                )
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._handler_tasks.add(task)
                task.add_done_callback(self._handler_done)

    async def _drain_handler_tasks(self) -> None:
        """Give handlers of the final DISCONNECTED event one request timeout, then cancel."""
        current = asyncio.current_task()
        waiting = {t for t in self._handler_tasks if t is not current}
        if not waiting:
            return
        _, pending = await asyncio.wait(waiting, timeout=self.config.request_timeout)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    def _handler_done(self, task: asyncio.Task[Any]) -> None:
        self._handler_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Async event handler failed: %s",
                exc,
                exc_info=exc,
                extra={"host": self.config.host},
            )

    # ---- internals --------------------------------------------------------

    def _on_datagram(self, data: bytes, addr: tuple[str, int]) -> None:
        message = self.session.handle_datagram(data, addr)
        if message is None:
            return
        if self.session.bound:
            self._missed_polls = 0
        if message.type == MSG_TYPE_DEVICE:
            # Consumed by the session, which answers it with a bind request
            return
        self.tracker.resolve(message)

    def _ensure_open(self) -> None:
        if self._closed:
            error_reason = "client closed"
            raise SinclairConnectionError(error_reason, state=str(self.session.binding_state))

    def _require_bound(self, kind: str) -> None:
        self._ensure_open()
        if not self.session.bound:
            error_reason = f"cannot send {kind} before binding"
            raise SinclairConnectionError(error_reason, state=str(self.session.binding_state))

    async def _bind(self, policy: RetryPolicy) -> None:
        """Scan and bind until confirmed or the policy's budget runs out."""
        attempt = 0
        while True:
            self._ensure_open()
            if self.session.bound:
                self._missed_polls = 0
                return
            try:
                await self.tracker.request(
                    MSG_TYPE_BIND,
                    self.session.send_scan,
                    {MSG_TYPE_BIND_OK},
                    timeout=self.timeouts.bind_timeout_seconds,
                )
            except (RequestTimeoutError, BusyError) as e:
                record_bind_attempt(self.config.host, "failed")
                timed_out = isinstance(e, RequestTimeoutError)
                if timed_out and self.session.binding_state is BindingState.AWAITING_DEVICE_ACK:
                    # Discovered but the bind was never confirmed
                    self.session.reset()
                if not policy.should_retry(attempt):
                    logger.error(
                        "Giving up on %s after %d discovery attempts",
                        self.config.host,
                        attempt + 1,
                        extra={"host": self.config.host, "attempts": attempt + 1},
                    )
                    error_reason = f"no bind confirmation from {self.config.host}"
                    raise BindError(error_reason, attempts=attempt + 1) from e
                logger.info(
                    "No bind confirmation from %s (attempt %d), retrying in %.1fs",
                    self.config.host,
                    attempt + 1,
                    policy.get_delay(attempt),
                    extra={"host": self.config.host, "attempt": attempt + 1},
                )
                await asyncio.sleep(policy.get_delay(attempt))
                attempt += 1
            else:
                record_bind_attempt(self.config.host, "success")
                self._missed_polls = 0
                return

    def _start_polling(self) -> None:
        if self._poll_task is not None and not self._poll_task.done():
            return
        self._poll_task = asyncio.get_running_loop().create_task(
            self._poll_loop(),
            name=f"sinclair-poll-{self.config.host}",
        )

    async def _poll_loop(self) -> None:
        while self.session.bound:
            await self._poll_once()
            if not self.session.bound:
                return
            await asyncio.sleep(self.timeouts.update_interval_seconds)

    async def _poll_once(self) -> None:
        if self.tracker.busy:
            # Single-flight: coalesce with whatever is in flight
            record_poll(self.config.host, "skipped")
            logger.debug("Skipping poll of %s: request pending", self.config.host)
            return
        try:
            await self.tracker.request(MSG_TYPE_STATUS, self.session.send_status, {MSG_TYPE_STATUS_DATA})
        except RequestTimeoutError:
            self._missed_polls += 1
            record_poll(self.config.host, "timeout")
            logger.warning(
                "Poll of %s unanswered (%d/%d)",
                self.config.host,
                self._missed_polls,
                self.timeouts.max_missed_polls,
                extra={"host": self.config.host, "missed_polls": self._missed_polls},
            )
            if self._missed_polls >= self.timeouts.max_missed_polls:
                self._on_device_lost()
        except BusyError:
            record_poll(self.config.host, "skipped")
        else:
            record_poll(self.config.host, "success")

    def _on_device_lost(self) -> None:
        missed = self._missed_polls
        self._missed_polls = 0
        self.session.demote(f"{missed} consecutive polls unanswered")
        if self._closed:
            return
        self._rediscovery_task = asyncio.get_running_loop().create_task(
            self._rediscover(),
            name=f"sinclair-rediscover-{self.config.host}",
        )

    async def _rediscover(self) -> None:
        logger.info(
            "Rediscovering %s every %.1fs",
            self.config.host,
            self.config.retry_interval,
            extra={"host": self.config.host},
        )
        await self._bind(RetryPolicy(interval_seconds=self.config.retry_interval, max_attempts=None))
        logger.info("Unit %s is back", self.config.host, extra={"host": self.config.host})
        self._start_polling()

    async def _cancel_rediscovery(self) -> None:
        task = self._rediscovery_task
        self._rediscovery_task = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
