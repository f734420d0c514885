# Vault - Collection Codec
#
# JSON value  <->  "base64(iv).base64(ciphertext||tag)"
#
# One blob per collection. The IV is random on every encrypt, so two
# writes of the same list never produce the same blob.

import json
from typing import Any, Callable, Optional, Tuple

from .encryption import IV_LENGTH, CryptoProvider, decode_from_storage, encode_for_storage
from .errors import FormatError

BLOB_SEPARATOR = "."


class VaultCodec:
    """Encrypts and decrypts JSON-serialisable values with a session key."""

    def __init__(self, provider: CryptoProvider):
        self.provider = provider

    def encrypt(self, value: Any, key: bytes) -> str:
        """Serialise ``value`` and return an opaque blob for storage."""
        payload = json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
        iv = self.provider.random_bytes(IV_LENGTH)
        ciphertext = self.provider.aead_encrypt(bytes(key), iv, payload)
        return encode_for_storage(iv) + BLOB_SEPARATOR + encode_for_storage(ciphertext)

    def decrypt(self, blob: Optional[str], key: bytes, default: Callable[[], Any] = list) -> Any:
        """
        Decrypt a blob produced by encrypt().

        A missing or empty blob returns ``default()``.

        Raises:
            FormatError: blob is structurally malformed, or decrypted bytes
                are not JSON
            AuthenticationError: wrong key or tampered ciphertext
        """
        if not blob:
            return default()

        iv, ciphertext = self.split(blob)
        plaintext = self.provider.aead_decrypt(bytes(key), iv, ciphertext)

        try:
            return json.loads(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise FormatError(f"Decrypted payload is not valid JSON: {e}") from None

    @staticmethod
    def split(blob: str) -> Tuple[bytes, bytes]:
        """Split and decode the two blob segments without decrypting."""
        if not isinstance(blob, str):
            raise FormatError(f"Blob must be text, not {type(blob).__name__}")

        parts = blob.split(BLOB_SEPARATOR)
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise FormatError("Blob must have the form <iv>.<ciphertext>")

        try:
            iv = decode_from_storage(parts[0])
            ciphertext = decode_from_storage(parts[1])
        except ValueError:
            raise FormatError("Blob segments are not valid base64") from None

        if len(iv) != IV_LENGTH:
            raise FormatError(f"Blob IV must be {IV_LENGTH} bytes, got {len(iv)}")
        if not ciphertext:
            raise FormatError("Blob ciphertext is empty")

        return iv, ciphertext
