"""Unit tests for the AES-ECB payload codec and envelope framing."""

from __future__ import annotations

import base64
import json

import pytest
from Crypto.Cipher import AES

from sinclair_ac.protocol.codec import (
    DEFAULT_KEY,
    decode_envelope,
    decrypt,
    encode_envelope,
    encode_scan,
    encrypt,
)
from sinclair_ac.protocol.exceptions import CodecError
from tests.helpers.expectations import expect_error_with

SESSION_KEY = "Zx9Qp2Lm7Rt4Vb8N"


class TestEncryptDecrypt:
    """Tests for encrypt() and decrypt()."""

    @pytest.mark.parametrize(
        "payload",
        [
            {"t": "scan"},
            {"mac": "f4911e7aca59", "t": "bind", "uid": 0},
            {"t": "cmd", "opt": ["Pow", "SetTem"], "p": [1, 24]},
            {"t": "dev", "name": "Żółw ☃"},
        ],
    )
    def test_round_trip(self, payload):
        assert decrypt(encrypt(payload, SESSION_KEY), SESSION_KEY) == payload

    def test_default_key_round_trip(self):
        payload = {"t": "status", "cols": ["Pow"]}
        assert decrypt(encrypt(payload)) == payload

    def test_encryption_is_deterministic(self):
        """ECB with no IV: same payload and key give the same ciphertext."""
        payload = {"t": "status", "mac": "abc", "cols": ["Pow", "Mod"]}
        assert encrypt(payload, SESSION_KEY) == encrypt(payload, SESSION_KEY)

    def test_different_keys_give_different_ciphertext(self):
        payload = {"t": "status"}
        assert encrypt(payload, DEFAULT_KEY) != encrypt(payload, SESSION_KEY)

    def test_str_and_bytes_keys_are_equivalent(self):
        payload = {"t": "scan"}
        assert encrypt(payload, SESSION_KEY) == encrypt(payload, SESSION_KEY.encode())

    def test_ciphertext_is_compact_json_under_aes_ecb(self):
        """Plaintext is JSON with no whitespace, PKCS#7 padded."""
        pack = encrypt({"t": "cmd", "opt": ["Pow"], "p": [1]}, SESSION_KEY)
        raw = AES.new(SESSION_KEY.encode(), AES.MODE_ECB).decrypt(base64.b64decode(pack))
        pad_len = raw[-1]
        assert raw[-pad_len:] == bytes([pad_len]) * pad_len
        assert raw[:-pad_len] == b'{"t":"cmd","opt":["Pow"],"p":[1]}'

    def test_default_key_value(self):
        assert DEFAULT_KEY == b"a3K8Bx%2r8Y7#xDh"
        assert len(DEFAULT_KEY) == 16


class TestDecryptErrors:
    """Tests for decrypt() failure reasons."""

    def test_invalid_base64(self):
        expect_error_with(lambda: decrypt("not base64!!", SESSION_KEY), CodecError, reason="invalid_base64")

    def test_partial_block(self):
        pack = base64.b64encode(b"x" * 20).decode()
        expect_error_with(lambda: decrypt(pack, SESSION_KEY), CodecError, reason="bad_block_length")

    def test_empty_ciphertext(self):
        expect_error_with(lambda: decrypt("", SESSION_KEY), CodecError, reason="bad_block_length")

    def test_wrong_key_fails_padding_or_json(self):
        pack = encrypt({"t": "dat", "cols": ["Pow"], "dat": [1]}, SESSION_KEY)
        with pytest.raises(CodecError) as exc_info:
            decrypt(pack, DEFAULT_KEY)
        assert exc_info.value.reason in {"bad_padding", "invalid_json"}

    def test_bad_padding(self):
        cipher = AES.new(SESSION_KEY.encode(), AES.MODE_ECB)
        pack = base64.b64encode(cipher.encrypt(b"A" * 16)).decode()
        expect_error_with(lambda: decrypt(pack, SESSION_KEY), CodecError, reason="bad_padding")

    def test_payload_not_an_object(self):
        pack = encrypt([1, 2, 3], SESSION_KEY)  # type: ignore[arg-type]
        expect_error_with(lambda: decrypt(pack, SESSION_KEY), CodecError, reason="not_an_object")

    def test_invalid_key_length(self):
        expect_error_with(lambda: encrypt({"t": "scan"}, "short"), CodecError, reason="invalid_key")
        expect_error_with(lambda: decrypt("AAAA", b"x" * 17), CodecError, reason="invalid_key")

    def test_error_keeps_only_a_preview(self):
        err = expect_error_with(lambda: decrypt(base64.b64encode(b"y" * 40).decode(), SESSION_KEY), CodecError)
        assert len(err.data_preview) <= 16


class TestEnvelope:
    """Tests for the outer JSON envelope."""

    def test_scan_is_unencrypted(self):
        assert encode_scan() == b'{"t":"scan"}'

    def test_envelope_field_order(self):
        assert encode_envelope("PACK", 1) == b'{"cid":"app","i":1,"t":"pack","uid":0,"pack":"PACK"}'

    def test_envelope_default_index(self):
        assert json.loads(encode_envelope("PACK"))["i"] == 0

    def test_decode_envelope(self):
        data = b'{"t":"pack","i":1,"uid":0,"cid":"f4911e7aca59","tcid":"","pack":"abc="}'
        envelope = decode_envelope(data)
        assert envelope["cid"] == "f4911e7aca59"
        assert envelope["pack"] == "abc="

    @pytest.mark.parametrize(
        ("data", "reason"),
        [
            (b"\xff\xfe garbage", "invalid_envelope"),
            (b"{not json", "invalid_envelope"),
            (b"[1, 2]", "missing_pack"),
            (b'{"t":"pack"}', "missing_pack"),
            (b'{"t":"pack","pack":5}', "missing_pack"),
        ],
    )
    def test_decode_envelope_errors(self, data, reason):
        expect_error_with(lambda: decode_envelope(data), CodecError, reason=reason)
