# Tests for key derivation, PIN hashing and the AES-GCM provider
# Covers: KeyManager.derive_key / hash_pin / generate_salt, AESGCMProvider

import base64
import os

import pytest

from pinvault.vault.encryption import (
    IV_LENGTH,
    KEY_LENGTH,
    SALT_LENGTH,
    AESGCMProvider,
    KeyManager,
    decode_from_storage,
    encode_for_storage,
)
from pinvault.vault.errors import AuthenticationError


@pytest.fixture
def keys():
    return KeyManager(AESGCMProvider())


class TestDeriveKey:
    def test_same_pin_and_salt_give_same_key(self, keys):
        salt = os.urandom(SALT_LENGTH)
        assert keys.derive_key("1234", salt) == keys.derive_key("1234", salt)

    def test_key_is_256_bits(self, keys):
        key = keys.derive_key("1234", os.urandom(SALT_LENGTH))
        assert len(key) == KEY_LENGTH == 32

    def test_different_salts_give_different_keys(self, keys):
        k1 = keys.derive_key("1234", os.urandom(SALT_LENGTH))
        k2 = keys.derive_key("1234", os.urandom(SALT_LENGTH))
        assert k1 != k2

    def test_different_pins_give_different_keys(self, keys):
        salt = os.urandom(SALT_LENGTH)
        assert keys.derive_key("1234", salt) != keys.derive_key("1235", salt)

    def test_bytearray_salt_accepted(self, keys):
        salt = os.urandom(SALT_LENGTH)
        assert keys.derive_key("1234", bytearray(salt)) == keys.derive_key("1234", salt)

    def test_non_string_pin_is_programmer_error(self, keys):
        with pytest.raises(TypeError):
            keys.derive_key(1234, os.urandom(SALT_LENGTH))

    def test_non_bytes_salt_is_programmer_error(self, keys):
        with pytest.raises(TypeError):
            keys.derive_key("1234", "not-bytes")


class TestHashPin:
    def test_hash_is_base64_sha256(self):
        digest = KeyManager.hash_pin("1234")
        assert len(base64.b64decode(digest)) == 32

    def test_hash_is_stable(self):
        assert KeyManager.hash_pin("1234") == KeyManager.hash_pin("1234")

    def test_hash_differs_per_pin(self):
        assert KeyManager.hash_pin("1234") != KeyManager.hash_pin("0000")

    def test_hash_is_not_the_key(self, keys):
        salt = os.urandom(SALT_LENGTH)
        key = keys.derive_key("1234", salt)
        assert base64.b64decode(KeyManager.hash_pin("1234")) != key


class TestSalt:
    def test_salt_length(self, keys):
        assert len(keys.generate_salt()) == SALT_LENGTH == 16

    def test_salts_are_random(self, keys):
        assert keys.generate_salt() != keys.generate_salt()


class TestAESGCMProvider:
    def test_iteration_floor(self):
        with pytest.raises(ValueError, match="at least 100000"):
            AESGCMProvider(iterations=1000)

    def test_more_iterations_allowed(self):
        assert AESGCMProvider(iterations=200_000).iterations == 200_000

    def test_encrypt_decrypt(self):
        provider = AESGCMProvider()
        key = os.urandom(KEY_LENGTH)
        iv = os.urandom(IV_LENGTH)
        ct = provider.aead_encrypt(key, iv, b"hello")
        assert ct != b"hello"
        assert provider.aead_decrypt(key, iv, ct) == b"hello"

    def test_wrong_key_raises_authentication_error(self):
        provider = AESGCMProvider()
        iv = os.urandom(IV_LENGTH)
        ct = provider.aead_encrypt(os.urandom(KEY_LENGTH), iv, b"hello")
        with pytest.raises(AuthenticationError):
            provider.aead_decrypt(os.urandom(KEY_LENGTH), iv, ct)


def test_storage_encoding_roundtrip():
    data = os.urandom(40)
    assert decode_from_storage(encode_for_storage(data)) == data


def test_decode_rejects_garbage():
    with pytest.raises(ValueError):
        decode_from_storage("not*base64!")
