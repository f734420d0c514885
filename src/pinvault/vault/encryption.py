# Vault - Encryption Service
#
# PIN → session key (PBKDF2-HMAC-SHA256)
# Collection encryption (AES-256-GCM, random 96-bit IV per write)
# PIN verification digest (SHA-256, unsalted, never used as key material)

import base64
import hashlib
import os
import threading
from abc import ABC, abstractmethod

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..config import MIN_PBKDF2_ITERATIONS
from .errors import AuthenticationError

KEY_LENGTH = 32  # 256 bits for AES-256
SALT_LENGTH = 16
IV_LENGTH = 12  # 96-bit nonce for GCM

# PBKDF2, AES-GCM and friends never run in parallel inside one process,
# even when callers offload them to worker threads.
_PRIMITIVE_LOCK = threading.Lock()


class CryptoProvider(ABC):
    """
    Capability interface for randomness and cryptographic primitives.

    The vault logic only talks to this interface, so a deterministic fake
    can stand in for tests.
    """

    @abstractmethod
    def random_bytes(self, n: int) -> bytes:
        """Return ``n`` cryptographically random bytes."""

    @abstractmethod
    def derive_key(self, pin: str, salt: bytes) -> bytes:
        """Derive a 256-bit key from a PIN and salt."""

    @abstractmethod
    def aead_encrypt(self, key: bytes, iv: bytes, plaintext: bytes) -> bytes:
        """Return ciphertext with the authentication tag appended."""

    @abstractmethod
    def aead_decrypt(self, key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
        """Return plaintext, or raise AuthenticationError if the tag fails."""


class AESGCMProvider(CryptoProvider):
    """
    Production provider backed by the ``cryptography`` package.

    Flow:
    1. User enters PIN
    2. PBKDF2 derives a 256-bit key from PIN + salt
    3. AES-256-GCM encrypts/decrypts each collection
    4. Each write uses a fresh random IV
    """

    def __init__(self, iterations: int = MIN_PBKDF2_ITERATIONS):
        if iterations < MIN_PBKDF2_ITERATIONS:
            raise ValueError(
                f"PBKDF2 iterations must be at least {MIN_PBKDF2_ITERATIONS}, got {iterations}"
            )
        self.iterations = iterations

    def random_bytes(self, n: int) -> bytes:
        return os.urandom(n)

    def derive_key(self, pin: str, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=salt,
            iterations=self.iterations,
        )
        with _PRIMITIVE_LOCK:
            return kdf.derive(pin.encode('utf-8'))

    def aead_encrypt(self, key: bytes, iv: bytes, plaintext: bytes) -> bytes:
        with _PRIMITIVE_LOCK:
            return AESGCM(key).encrypt(iv, plaintext, None)

    def aead_decrypt(self, key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
        try:
            with _PRIMITIVE_LOCK:
                return AESGCM(key).decrypt(iv, ciphertext, None)
        except InvalidTag:
            # Wrong key and tampered data must look identical
            raise AuthenticationError() from None


class KeyManager:
    """Turns a PIN into key material. Holds no state beyond its provider."""

    def __init__(self, provider: CryptoProvider):
        self.provider = provider

    def derive_key(self, pin: str, salt: bytes) -> bytes:
        """
        Derive the session key for ``pin`` under ``salt``.

        Same (pin, salt) always yields the same key; a different salt for
        the same PIN yields an unrelated key.
        """
        if not isinstance(pin, str):
            raise TypeError(f"pin must be str, not {type(pin).__name__}")
        if not isinstance(salt, (bytes, bytearray)):
            raise TypeError(f"salt must be bytes, not {type(salt).__name__}")
        return self.provider.derive_key(pin, bytes(salt))

    @staticmethod
    def hash_pin(pin: str) -> str:
        """Base64 SHA-256 digest of the PIN, used only to check attempts."""
        if not isinstance(pin, str):
            raise TypeError(f"pin must be str, not {type(pin).__name__}")
        return encode_for_storage(hashlib.sha256(pin.encode('utf-8')).digest())

    def generate_salt(self) -> bytes:
        """Fresh random salt for a new credential."""
        return self.provider.random_bytes(SALT_LENGTH)


def encode_for_storage(data: bytes) -> str:
    """Encode binary data for the text-only record store (base64)."""
    return base64.b64encode(data).decode('ascii')


def decode_from_storage(data: str) -> bytes:
    """Decode strict base64 text. Raises binascii.Error on bad input."""
    return base64.b64decode(data.encode('ascii'), validate=True)
