"""Unit tests for state snapshots and partial state writes."""

from __future__ import annotations

import dataclasses
from types import MappingProxyType

import pytest

from sinclair_ac.protocol.properties import FanSpeed, Mode, SwingVertical
from sinclair_ac.structs import BindingState, DesiredState, DeviceIdentity, DeviceState
from tests.helpers.expectations import expect_exception


def make_state(**properties: int) -> DeviceState:
    return DeviceState(
        host="192.168.1.50",
        binding_state=BindingState.BOUND,
        identity=DeviceIdentity(id="f4911e7aca59", address="192.168.1.50", port=7000, name="hall"),
        properties=MappingProxyType(properties),
    )


class TestDeviceState:
    """Tests for DeviceState accessors."""

    def test_defaults(self):
        state = DeviceState(host="10.0.0.2")
        assert state.binding_state is BindingState.UNBOUND
        assert not state.bound
        assert state.identity is None
        assert state.power is None
        assert state.mode is None
        assert dict(state.properties) == {}

    def test_accessors(self):
        state = make_state(Pow=1, Mod=4, SetTem=22, WdSpd=3, SwUpDn=1, TemSen=61)
        assert state.bound
        assert state.power is True
        assert state.mode is Mode.HEAT
        assert state.target_temperature == 22
        assert state.fan_speed == 3
        assert state.swing_vertical == 1
        assert state.swing_enabled is True
        assert state.room_temperature() == 21
        assert state.room_temperature(offset=0) == 61

    def test_unknown_mode_is_none(self):
        assert make_state(Mod=9).mode is None

    @pytest.mark.parametrize("position", [0, 2, 4, 6])
    def test_fixed_positions_are_not_swinging(self, position):
        assert make_state(SwUpDn=position).swing_enabled is False

    @pytest.mark.parametrize("position", [1, 7, 11])
    def test_sweeping_positions_are_swinging(self, position):
        assert make_state(SwUpDn=position).swing_enabled is True

    def test_snapshot_is_immutable(self):
        state = make_state(Pow=0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            state.host = "other"  # type: ignore[misc]
        with pytest.raises(TypeError):
            state.properties["Pow"] = 1  # type: ignore[index]

    def test_to_dict(self):
        data = make_state(Pow=1).to_dict()
        assert data == {
            "host": "192.168.1.50",
            "binding_state": "bound",
            "id": "f4911e7aca59",
            "name": "hall",
            "address": "192.168.1.50",
            "port": 7000,
            "properties": {"Pow": 1},
        }


class TestDesiredState:
    """Tests for DesiredState.to_command()."""

    def test_single_field(self):
        assert DesiredState(mode=1).to_command() == (["Mod"], [1])

    def test_field_order_is_fixed(self):
        desired = DesiredState(swing=SwingVertical.FULL, fan=FanSpeed.HIGH, temperature=24, mode=Mode.COOL, power=True)
        assert desired.to_command() == (["Pow", "Mod", "SetTem", "WdSpd", "SwUpDn"], [1, 1, 24, 5, 1])

    def test_power_off(self):
        assert DesiredState(power=False).to_command() == (["Pow"], [0])

    def test_values_are_plain_ints(self):
        _, p = DesiredState(mode=Mode.DRY, fan=FanSpeed.LOW).to_command()
        assert all(type(v) is int for v in p)

    def test_empty_is_rejected(self):
        expect_exception(DesiredState().to_command, ValueError)

    @pytest.mark.parametrize("temperature", [15, 31, -5])
    def test_temperature_out_of_range(self, temperature):
        err = expect_exception(DesiredState(temperature=temperature).to_command, ValueError)
        assert str(temperature) in str(err)

    @pytest.mark.parametrize("temperature", [16, 30])
    def test_temperature_bounds_inclusive(self, temperature):
        assert DesiredState(temperature=temperature).to_command() == (["SetTem"], [temperature])

    def test_invalid_enum_value(self):
        expect_exception(DesiredState(mode=7).to_command, ValueError)
