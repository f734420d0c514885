# Tests for VaultCodec: blob format, fresh IVs, failure kinds

import base64
import os

import pytest

from pinvault.vault.codec import VaultCodec
from pinvault.vault.encryption import IV_LENGTH, KEY_LENGTH, AESGCMProvider
from pinvault.vault.errors import AuthenticationError, FormatError


@pytest.fixture
def codec():
    return VaultCodec(AESGCMProvider())


@pytest.fixture
def key():
    return os.urandom(KEY_LENGTH)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


class TestRoundTrip:
    @pytest.mark.parametrize("value", [
        [],
        [{"id": "cat-makan", "name": "Makan", "type": "expense"}],
        [{"id": "t1", "amount": 50000, "note": "kopi ☕", "categoryId": None}],
    ])
    def test_roundtrip(self, codec, key, value):
        assert codec.decrypt(codec.encrypt(value, key), key) == value

    def test_blob_shape(self, codec, key):
        blob = codec.encrypt([1, 2, 3], key)
        iv_part, ct_part = blob.split(".")
        assert len(base64.b64decode(iv_part)) == IV_LENGTH
        # ciphertext carries the 16-byte GCM tag
        assert len(base64.b64decode(ct_part)) > 16

    def test_fresh_iv_every_write(self, codec, key):
        blobs = {codec.encrypt([], key) for _ in range(5)}
        ivs = {b.split(".")[0] for b in blobs}
        assert len(blobs) == 5
        assert len(ivs) == 5

    def test_bytearray_key_accepted(self, codec, key):
        blob = codec.encrypt(["x"], bytearray(key))
        assert codec.decrypt(blob, key) == ["x"]


class TestEmpty:
    def test_none_blob_is_empty_list(self, codec, key):
        assert codec.decrypt(None, key) == []

    def test_empty_string_is_empty_list(self, codec, key):
        assert codec.decrypt("", key) == []

    def test_custom_default(self, codec, key):
        assert codec.decrypt(None, key, default=dict) == {}


class TestAuthentication:
    def test_wrong_key(self, codec, key):
        blob = codec.encrypt([{"amount": 1}], key)
        with pytest.raises(AuthenticationError):
            codec.decrypt(blob, os.urandom(KEY_LENGTH))

    def test_tampered_ciphertext(self, codec, key):
        blob = codec.encrypt([{"amount": 1}], key)
        iv_part, ct_part = blob.split(".")
        ct = bytearray(base64.b64decode(ct_part))
        ct[0] ^= 0x01
        with pytest.raises(AuthenticationError):
            codec.decrypt(f"{iv_part}.{_b64(bytes(ct))}", key)

    def test_wrong_key_and_tampering_look_the_same(self, codec, key):
        blob = codec.encrypt([], key)
        iv_part, ct_part = blob.split(".")
        ct = bytearray(base64.b64decode(ct_part))
        ct[-1] ^= 0x01

        with pytest.raises(AuthenticationError) as wrong_key:
            codec.decrypt(blob, os.urandom(KEY_LENGTH))
        with pytest.raises(AuthenticationError) as tampered:
            codec.decrypt(f"{iv_part}.{_b64(bytes(ct))}", key)

        assert str(wrong_key.value) == str(tampered.value)


class TestFormat:
    @pytest.mark.parametrize("blob", [
        "no-delimiter",
        "a.b.c",
        ".onlyciphertext",
        "onlyiv.",
        "!!!.@@@",
    ])
    def test_malformed(self, codec, key, blob):
        with pytest.raises(FormatError):
            codec.decrypt(blob, key)

    def test_short_iv(self, codec, key):
        blob = f"{_b64(os.urandom(8))}.{_b64(os.urandom(32))}"
        with pytest.raises(FormatError, match="IV"):
            codec.decrypt(blob, key)

    def test_non_string_blob(self, codec, key):
        with pytest.raises(FormatError):
            codec.decrypt(b"bytes.blob", key)

    def test_authenticated_non_json(self, key):
        provider = AESGCMProvider()
        iv = os.urandom(IV_LENGTH)
        ct = provider.aead_encrypt(key, iv, b"not json at all")
        with pytest.raises(FormatError, match="JSON"):
            VaultCodec(provider).decrypt(f"{_b64(iv)}.{_b64(ct)}", key)
