"""Unit tests for the binding state machine."""

from __future__ import annotations

import json

import pytest

from sinclair_ac.protocol.codec import DEFAULT_KEY, decrypt, encrypt
from sinclair_ac.protocol.exceptions import CodecError, UnexpectedMessageError
from sinclair_ac.protocol.properties import STATUS_COLUMNS
from sinclair_ac.protocol.session import DeviceSession
from sinclair_ac.structs import BindingState, ClientEvent, EventKind
from tests.helpers.simulated_device import (
    SESSION_KEY,
    UNIT_HOST,
    UNIT_ID,
    UNIT_PORT,
    FakeTransport,
    SimulatedUnit,
    envelope,
)

UNIT_ADDR = (UNIT_HOST, UNIT_PORT)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def events() -> list[ClientEvent]:
    return []


@pytest.fixture
def unit() -> SimulatedUnit:
    return SimulatedUnit()


@pytest.fixture
def session(transport, events) -> DeviceSession:
    return DeviceSession(host=UNIT_HOST, transport=transport, listener=events.append)


def bind(session: DeviceSession, unit: SimulatedUnit) -> None:
    session.handle_datagram(unit.scan_reply(), UNIT_ADDR)
    session.handle_datagram(unit.bind_reply(), UNIT_ADDR)


def sent_payload(transport: FakeTransport, index: int = -1, key: bytes | str = SESSION_KEY) -> dict:
    _, _, data = transport.sent[index]
    return decrypt(json.loads(data)["pack"], key)


class TestOutbound:
    """Tests for request construction."""

    def test_initial_state(self, session):
        assert session.binding_state is BindingState.UNBOUND
        assert session.identity is None
        assert session.key == DEFAULT_KEY

    def test_send_scan(self, session, transport):
        assert session.send_scan()
        assert transport.sent == [(UNIT_HOST, 7000, b'{"t":"scan"}')]

    def test_scan_uses_configured_command_port(self, transport):
        session = DeviceSession(host=UNIT_HOST, transport=transport, command_port=7100)
        session.send_scan()
        assert transport.sent[0][1] == 7100

    def test_bind_requires_identity(self, session, transport):
        assert not session.send_bind()
        assert transport.sent == []

    def test_status_and_command_require_binding(self, session, transport):
        assert not session.send_status()
        assert not session.send_command(["Pow"], [1])
        assert transport.sent == []

    def test_command_validates_before_sending(self, session, transport, unit):
        bind(session, unit)
        count = len(transport.sent)
        with pytest.raises(ValueError, match="differ in length"):
            session.send_command(["Pow", "Mod"], [1])
        assert len(transport.sent) == count

    def test_status_request_encrypted_with_session_key(self, session, transport, unit):
        bind(session, unit)
        assert session.send_status()
        address, port, data = transport.sent[-1]
        outer = json.loads(data)
        assert (address, port) == UNIT_ADDR
        assert outer["i"] == 0
        assert outer["cid"] == "app"
        assert decrypt(outer["pack"], SESSION_KEY) == {
            "cols": list(STATUS_COLUMNS),
            "mac": UNIT_ID,
            "t": "status",
        }

    def test_command_request(self, session, transport, unit):
        bind(session, unit)
        assert session.send_command(["Mod"], [1])
        assert sent_payload(transport) == {"opt": ["Mod"], "p": [1], "t": "cmd"}


class TestBinding:
    """Tests for scan -> bind -> bound."""

    def test_scan_reply_records_identity_and_sends_bind(self, session, transport, unit, events):
        message = session.handle_datagram(unit.scan_reply(), UNIT_ADDR)

        assert message is not None and message.type == "dev"
        assert session.binding_state is BindingState.AWAITING_DEVICE_ACK
        assert session.identity is not None
        assert session.identity.id == UNIT_ID
        assert session.identity.name == "living-room"
        assert (session.identity.address, session.identity.port) == UNIT_ADDR

        _, _, data = transport.sent[-1]
        outer = json.loads(data)
        assert outer["i"] == 1
        assert decrypt(outer["pack"], DEFAULT_KEY) == {"mac": UNIT_ID, "t": "bind", "uid": 0}
        assert events == []

    def test_bindok_installs_key_and_emits_connected_once(self, session, unit, events):
        bind(session, unit)

        assert session.binding_state is BindingState.BOUND
        assert session.key == SESSION_KEY.encode()
        assert [e.kind for e in events] == [EventKind.CONNECTED]
        assert events[0].state.bound

    def test_bindok_without_scan_is_an_error(self, session, unit, events):
        assert session.handle_datagram(unit.bind_reply(), UNIT_ADDR) is None
        assert session.binding_state is BindingState.UNBOUND
        assert [e.kind for e in events] == [EventKind.ERROR]
        assert isinstance(events[0].error, UnexpectedMessageError)

    def test_bindok_with_bad_key(self, session, unit, events):
        session.handle_datagram(unit.scan_reply(), UNIT_ADDR)
        bad = envelope(encrypt({"t": "bindok", "key": "short"}, DEFAULT_KEY))
        assert session.handle_datagram(bad, UNIT_ADDR) is None
        assert session.binding_state is BindingState.AWAITING_DEVICE_ACK
        assert events[-1].kind is EventKind.ERROR

    def test_scan_reply_without_id(self, transport, events):
        session = DeviceSession(host=UNIT_HOST, transport=transport, listener=events.append)
        data = envelope(encrypt({"t": "dev", "name": "x"}, DEFAULT_KEY), cid="")
        assert session.handle_datagram(data, UNIT_ADDR) is None
        assert session.identity is None
        assert events[-1].kind is EventKind.ERROR

    def test_identity_falls_back_to_payload_mac(self, session):
        data = envelope(encrypt({"t": "dev", "mac": "aabbccddeeff"}, DEFAULT_KEY), cid="")
        session.handle_datagram(data, UNIT_ADDR)
        assert session.identity is not None
        assert session.identity.id == "aabbccddeeff"


class TestInbound:
    """Tests for status and acknowledgement handling."""

    def test_status_reply_updates_properties(self, session, unit, events):
        bind(session, unit)
        data = envelope(encrypt({"t": "dat", "cols": ["Pow", "SetTem"], "dat": [1, 24]}, SESSION_KEY), index=0)

        message = session.handle_datagram(data, UNIT_ADDR)

        assert message is not None and message.type == "dat"
        assert dict(session.properties) == {"Pow": 1, "SetTem": 24}
        assert [e.kind for e in events] == [EventKind.CONNECTED, EventKind.STATUS]
        assert dict(events[-1].state.properties) == {"Pow": 1, "SetTem": 24}

    def test_command_ack_updates_properties(self, session, unit, events):
        bind(session, unit)
        session.handle_datagram(unit.command_reply(["Mod"], [4]), UNIT_ADDR)
        assert session.properties["Mod"] == 4
        assert events[-1].kind is EventKind.UPDATE

    def test_last_writer_wins_per_property(self, session, unit):
        bind(session, unit)
        session.handle_datagram(unit.command_reply(["SetTem"], [20]), UNIT_ADDR)
        stale = envelope(encrypt({"t": "dat", "cols": ["SetTem", "Pow"], "dat": [26, 0]}, SESSION_KEY))
        session.handle_datagram(stale, UNIT_ADDR)
        assert dict(session.properties) == {"SetTem": 26, "Pow": 0}

    def test_foreign_source_is_ignored(self, session, unit, events):
        bind(session, unit)
        before = (session.binding_state, dict(session.properties), len(events))

        assert session.handle_datagram(unit.status_reply(), ("192.168.1.51", UNIT_PORT)) is None
        assert session.handle_datagram(b"garbage", ("10.0.0.9", 7000)) is None

        assert (session.binding_state, dict(session.properties), len(events)) == before

    @pytest.mark.parametrize("data", [b"garbage", b'{"pack":"!!!"}', envelope("QUJD")])
    def test_bad_datagram_emits_error_without_state_change(self, session, unit, events, data):
        bind(session, unit)
        assert session.handle_datagram(data, UNIT_ADDR) is None
        assert session.binding_state is BindingState.BOUND
        assert events[-1].kind is EventKind.ERROR
        assert isinstance(events[-1].error, CodecError)

    def test_unknown_type_emits_error(self, session, unit, events):
        bind(session, unit)
        data = envelope(encrypt({"t": "hb"}, SESSION_KEY))
        assert session.handle_datagram(data, UNIT_ADDR) is None
        assert isinstance(events[-1].error, UnexpectedMessageError)
        assert session.bound

    def test_status_before_binding_is_unexpected(self, session, events):
        data = envelope(encrypt({"t": "dat", "cols": ["Pow"], "dat": [1]}, DEFAULT_KEY))
        assert session.handle_datagram(data, UNIT_ADDR) is None
        assert session.properties == {}
        assert events[-1].kind is EventKind.ERROR

    def test_property_floor_rejects_implausible_values(self, transport, unit, events):
        session = DeviceSession(
            host=UNIT_HOST,
            transport=transport,
            listener=events.append,
            property_floors={"TemSen": 1},
        )
        bind(session, unit)
        session.handle_datagram(unit.command_reply(["TemSen"], [63]), UNIT_ADDR)
        data = envelope(encrypt({"t": "dat", "cols": ["TemSen", "Pow"], "dat": [0, 1]}, SESSION_KEY))
        session.handle_datagram(data, UNIT_ADDR)
        assert dict(session.properties) == {"TemSen": 63, "Pow": 1}


class TestDemotion:
    """Tests for reset() and demote()."""

    def test_demote_emits_disconnected_and_resets(self, session, unit, events):
        bind(session, unit)
        session.handle_datagram(unit.status_reply(), UNIT_ADDR)

        session.demote("unit stopped answering")

        assert session.binding_state is BindingState.UNBOUND
        assert session.identity is None
        assert session.key == DEFAULT_KEY
        assert events[-1].kind is EventKind.DISCONNECTED
        # Last known values survive the demotion
        assert session.properties["Pow"] == 1

    def test_demote_when_unbound_is_silent(self, session, events):
        session.demote("nothing to lose")
        assert events == []

    def test_rebinding_after_demote(self, session, unit, events):
        bind(session, unit)
        session.demote("lost")
        bind(session, unit)
        assert session.bound
        assert [e.kind for e in events].count(EventKind.CONNECTED) == 2

    def test_snapshot_is_detached(self, session, unit):
        bind(session, unit)
        snapshot = session.snapshot()
        session.handle_datagram(unit.status_reply(), UNIT_ADDR)
        assert dict(snapshot.properties) == {}
