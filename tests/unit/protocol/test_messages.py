"""Unit tests for request builders and response parsers."""

from __future__ import annotations

import pytest

from sinclair_ac.protocol.exceptions import CodecError
from sinclair_ac.protocol.messages import (
    build_bind,
    build_command,
    build_status,
    command_result_properties,
    status_properties,
    zip_properties,
)
from sinclair_ac.protocol.properties import STATUS_COLUMNS, PropertyCode
from tests.helpers.expectations import expect_error_with, expect_exception


def test_build_bind():
    assert build_bind("f4911e7aca59") == {"mac": "f4911e7aca59", "t": "bind", "uid": 0}


def test_build_status_lists_all_columns():
    payload = build_status("f4911e7aca59", STATUS_COLUMNS)
    assert payload["t"] == "status"
    assert payload["mac"] == "f4911e7aca59"
    assert payload["cols"] == list(STATUS_COLUMNS)
    assert "TemSen" in payload["cols"]


def test_build_command_preserves_pair_order():
    payload = build_command(["SetTem", "Pow"], [22, 1])
    assert payload == {"opt": ["SetTem", "Pow"], "p": [22, 1], "t": "cmd"}


def test_build_command_rejects_mismatched_lengths():
    err = expect_exception(build_command, ValueError, ["Pow", "Mod"], [1])
    assert "differ in length" in str(err)


def test_build_command_rejects_empty():
    expect_exception(build_command, ValueError, [], [])


class TestZipProperties:
    """Tests for zipping name lists against value lists."""

    def test_status_properties(self):
        payload = {"t": "dat", "cols": ["Pow", "SetTem"], "dat": [1, 24]}
        assert status_properties(payload) == {"Pow": 1, "SetTem": 24}

    def test_command_result_uses_val(self):
        payload = {"t": "res", "opt": ["Mod"], "p": [4], "val": [1]}
        assert command_result_properties(payload) == {"Mod": 1}

    def test_command_result_falls_back_to_p(self):
        payload = {"t": "res", "opt": ["Mod"], "p": [4]}
        assert command_result_properties(payload) == {"Mod": 4}

    def test_non_integer_values_are_skipped(self):
        payload = {"cols": ["Pow", "host", "Lig"], "dat": [1, "192.168.1.50", True]}
        assert zip_properties(payload, "cols", "dat") == {"Pow": 1, "Lig": 1}

    def test_length_mismatch(self):
        payload = {"cols": ["Pow", "Mod"], "dat": [1]}
        expect_error_with(lambda: status_properties(payload), CodecError, reason="column_mismatch")

    @pytest.mark.parametrize("payload", [{"t": "dat"}, {"cols": "Pow", "dat": [1]}, {"cols": ["Pow"]}])
    def test_missing_lists(self, payload):
        with pytest.raises(CodecError):
            status_properties(payload)


def test_status_columns_cover_every_property_code():
    assert set(STATUS_COLUMNS) == {code.value for code in PropertyCode}
    assert len(STATUS_COLUMNS) == len(set(STATUS_COLUMNS))
