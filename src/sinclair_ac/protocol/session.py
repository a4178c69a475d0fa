"""Binding state machine for one Sinclair unit.

DeviceSession owns everything the unit tells us: its identity, the session
key issued at bind time, the binding state and the last known property
values. It builds and sends every outbound request and interprets every
inbound datagram, publishing ClientEvent notifications to one listener.

State transitions:
    UNBOUND --dev--> AWAITING_DEVICE_ACK (bind sent automatically)
    AWAITING_DEVICE_ACK --bindok--> BOUND (session key installed)
    any --demote()/reset()--> UNBOUND

A single bad datagram never changes the binding state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from types import MappingProxyType
from typing import Protocol

from sinclair_ac.const import DEFAULT_COMMAND_PORT
from sinclair_ac.metrics.registry import (
    record_binding_state,
    record_datagram_recv,
    record_decode_error,
    record_property_rejected,
)
from sinclair_ac.protocol.codec import DEFAULT_KEY, decode_envelope, decrypt, encode_envelope, encode_scan, encrypt
from sinclair_ac.protocol.exceptions import CodecError, UnexpectedMessageError
from sinclair_ac.protocol.messages import (
    BIND_REQUEST_INDEX,
    DEFAULT_REQUEST_INDEX,
    MSG_TYPE_BIND_OK,
    MSG_TYPE_COMMAND_RESULT,
    MSG_TYPE_DEVICE,
    MSG_TYPE_STATUS_DATA,
    DeviceMessage,
    build_bind,
    build_command,
    build_status,
    command_result_properties,
    status_properties,
)
from sinclair_ac.protocol.properties import STATUS_COLUMNS
from sinclair_ac.structs import BindingState, ClientEvent, DeviceIdentity, DeviceState, EventKind

logger = logging.getLogger(__name__)

EventListener = Callable[[ClientEvent], None]


class DatagramSender(Protocol):
    def send_to(self, address: str, port: int, data: bytes) -> bool: ...


class DeviceSession:
    """Protocol state machine for a single unit at a fixed address."""

    def __init__(
        self,
        host: str,
        transport: DatagramSender,
        command_port: int = DEFAULT_COMMAND_PORT,
        listener: EventListener | None = None,
        property_floors: Mapping[str, int] | None = None,
    ):
        """
        Initialize the session in the UNBOUND state.

        Args:
            host: Unit IP address; datagrams from any other source are dropped
            transport: Anything with a best-effort send_to()
            command_port: Port the unit listens on for scan requests
            listener: Receives every ClientEvent
            property_floors: Minimum plausible value per property code
        """
        self.host = host
        self.command_port = command_port
        self.transport = transport
        self.listener = listener
        self.property_floors: dict[str, int] = dict(property_floors or {})

        self.identity: DeviceIdentity | None = None
        self.key: bytes = DEFAULT_KEY
        self.binding_state = BindingState.UNBOUND
        self._properties: dict[str, int] = {}
        record_binding_state(self.host, self.binding_state)

    @property
    def bound(self) -> bool:
        return self.binding_state is BindingState.BOUND

    @property
    def properties(self) -> Mapping[str, int]:
        return MappingProxyType(self._properties)

    def snapshot(self) -> DeviceState:
        """Immutable copy of the current state for collaborators."""
        return DeviceState(
            host=self.host,
            binding_state=self.binding_state,
            identity=self.identity,
            properties=MappingProxyType(dict(self._properties)),
        )

    # ---- outbound ---------------------------------------------------------

    def send_scan(self) -> bool:
        """Send the unencrypted discovery request to the unit's command port."""
        logger.debug("Scanning %s:%d", self.host, self.command_port, extra={"host": self.host})
        return self.transport.send_to(self.host, self.command_port, encode_scan())

    def send_bind(self) -> bool:
        """Send the bind request (default key, index 1) to the discovered unit."""
        if self.identity is None:
            logger.warning("Cannot bind %s: unit not discovered yet", self.host, extra={"host": self.host})
            return False
        pack = encrypt(build_bind(self.identity.id), DEFAULT_KEY)
        logger.info(
            "Binding to %s (%s)",
            self.identity.id,
            self.identity.address,
            extra={"host": self.host, "device_id": self.identity.id},
        )
        return self._send(encode_envelope(pack, BIND_REQUEST_INDEX))

    def send_status(self, columns: Sequence[str] = STATUS_COLUMNS) -> bool:
        """Request the listed property columns (all known codes by default)."""
        if not self._require_bound("status"):
            return False
        assert self.identity is not None
        pack = encrypt(build_status(self.identity.id, columns), self.key)
        return self._send(encode_envelope(pack, DEFAULT_REQUEST_INDEX))

    def send_command(self, opt: Sequence[str], p: Sequence[int]) -> bool:
        """
        Send a cmd request with parallel code/value lists.

        Raises:
            ValueError: If the lists are empty or differ in length
        """
        payload = build_command(opt, p)
        if not self._require_bound("cmd"):
            return False
        logger.info(
            "Sending command %s",
            dict(zip(payload["opt"], payload["p"], strict=True)),
            extra={"host": self.host, "opt": payload["opt"], "p": payload["p"]},
        )
        return self._send(encode_envelope(encrypt(payload, self.key), DEFAULT_REQUEST_INDEX))

    def _send(self, data: bytes) -> bool:
        port = self.identity.port if self.identity else self.command_port
        return self.transport.send_to(self.host, port, data)

    def _require_bound(self, kind: str) -> bool:
        if self.bound and self.identity is not None:
            return True
        logger.warning(
            "Cannot send %s to %s: session is %s",
            kind,
            self.host,
            self.binding_state,
            extra={"host": self.host, "kind": kind, "state": str(self.binding_state)},
        )
        return False

    # ---- inbound ----------------------------------------------------------

    def handle_datagram(self, data: bytes, addr: tuple[str, int]) -> DeviceMessage | None:
        """
        Interpret one inbound datagram.

        Returns:
            The decoded message (for request correlation), or None if the
            datagram was foreign or undecodable
        """
        if addr[0] != self.host:
            record_datagram_recv(self.host, "foreign")
            logger.debug(
                "Ignoring datagram from %s:%d, expecting %s",
                addr[0],
                addr[1],
                self.host,
                extra={"host": self.host, "source": addr[0]},
            )
            return None

        try:
            message = self._decode(data, addr)
        except CodecError as e:
            record_decode_error(self.host, e.reason)
            record_datagram_recv(self.host, "invalid")
            logger.warning(
                "Dropping undecodable datagram from %s: %s",
                addr[0],
                e.reason,
                extra={"host": self.host, "reason": e.reason, "bytes": len(data)},
            )
            self._emit(EventKind.ERROR, e)
            return None

        record_datagram_recv(self.host, "decoded")
        try:
            self._apply(message)
        except (CodecError, UnexpectedMessageError) as e:
            reason = e.reason if isinstance(e, CodecError) else "unexpected_message"
            record_decode_error(self.host, reason)
            logger.warning(
                "Rejected %s message from %s: %s",
                message.type,
                addr[0],
                e,
                extra={"host": self.host, "type": message.type, "state": str(self.binding_state)},
            )
            self._emit(EventKind.ERROR, e)
            return None
        return message

    def _decode(self, data: bytes, addr: tuple[str, int]) -> DeviceMessage:
        envelope = decode_envelope(data)
        key = self.key if self.bound else DEFAULT_KEY
        payload = decrypt(envelope["pack"], key)
        message_type = payload.get("t")
        if not isinstance(message_type, str):
            error_reason = "missing_type"
            raise CodecError(error_reason)
        return DeviceMessage(
            type=message_type,
            payload=payload,
            cid=str(envelope.get("cid") or ""),
            address=(addr[0], addr[1]),
        )

    def _apply(self, message: DeviceMessage) -> None:
        if message.type == MSG_TYPE_DEVICE:
            self._on_device(message)
        elif message.type == MSG_TYPE_BIND_OK:
            self._on_bind_ok(message)
        elif message.type == MSG_TYPE_STATUS_DATA and self.bound:
            self._apply_properties(status_properties(message.payload))
            self._emit(EventKind.STATUS)
        elif message.type == MSG_TYPE_COMMAND_RESULT and self.bound:
            self._apply_properties(command_result_properties(message.payload))
            self._emit(EventKind.UPDATE)
        else:
            raise UnexpectedMessageError(message.type)

    def _on_device(self, message: DeviceMessage) -> None:
        if self.bound:
            raise UnexpectedMessageError(message.type)
        device_id = message.cid or str(message.payload.get("mac") or message.payload.get("cid") or "")
        if not device_id:
            error_reason = "missing_device_id"
            raise CodecError(error_reason)

        self.identity = DeviceIdentity(
            id=device_id,
            address=message.address[0],
            port=message.address[1],
            name=str(message.payload.get("name") or ""),
        )
        logger.info(
            "Discovered unit %s (%s) at %s:%d",
            self.identity.name or "<unnamed>",
            self.identity.id,
            self.identity.address,
            self.identity.port,
            extra={"host": self.host, "device_id": device_id},
        )
        self._set_binding_state(BindingState.AWAITING_DEVICE_ACK)
        self.send_bind()

    def _on_bind_ok(self, message: DeviceMessage) -> None:
        if self.binding_state is not BindingState.AWAITING_DEVICE_ACK:
            raise UnexpectedMessageError(message.type)
        key = message.payload.get("key")
        if not isinstance(key, str) or len(key.encode("utf-8")) != len(DEFAULT_KEY):
            error_reason = "invalid_key"
            raise CodecError(error_reason)

        self.key = key.encode("utf-8")
        self._set_binding_state(BindingState.BOUND)
        self._emit(EventKind.CONNECTED)

    def _apply_properties(self, properties: Mapping[str, int]) -> None:
        # Last writer wins per property; datagrams carry no global ordering
        for code, value in properties.items():
            floor = self.property_floors.get(code)
            if floor is not None and value < floor:
                record_property_rejected(self.host, code)
                logger.warning(
                    "Ignoring implausible %s=%d (floor %d)",
                    code,
                    value,
                    floor,
                    extra={"host": self.host, "code": code, "value": value, "floor": floor},
                )
                continue
            self._properties[code] = value

    # ---- state ------------------------------------------------------------

    def reset(self) -> None:
        """Forget identity and key, back to UNBOUND. Properties are kept."""
        self.identity = None
        self.key = DEFAULT_KEY
        self._set_binding_state(BindingState.UNBOUND)

    def demote(self, reason: str) -> None:
        """Drop the binding after the unit stopped answering and notify."""
        if self.binding_state is BindingState.UNBOUND:
            return
        logger.warning(
            "Lost unit %s: %s",
            self.host,
            reason,
            extra={"host": self.host, "reason": reason},
        )
        self.reset()
        self._emit(EventKind.DISCONNECTED)

    def _set_binding_state(self, state: BindingState) -> None:
        if state is self.binding_state:
            return
        logger.info(
            "Binding state %s -> %s",
            self.binding_state,
            state,
            extra={"host": self.host, "from_state": str(self.binding_state), "to_state": str(state)},
        )
        self.binding_state = state
        record_binding_state(self.host, state)

    def _emit(self, kind: EventKind, error: Exception | None = None) -> None:
        if self.listener is None:
            return
        self.listener(ClientEvent(kind=kind, state=self.snapshot(), error=error))
