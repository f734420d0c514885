# Vault - PIN Credential Store
#
# Persists {pinHash, salt} under the "settings" record and checks PIN
# attempts against it. The credential is replaced wholesale on every
# registration, so a salt is never reused.

import hmac
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..core import EventSeverity, EventType, get_audit_logger
from .encryption import KeyManager, SALT_LENGTH, decode_from_storage, encode_for_storage
from .errors import CredentialCorruptedError
from .storage import SETTINGS, KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """PIN verification material. Never contains the PIN or the key."""
    pin_hash: str
    salt: bytes

    def to_record(self) -> Dict[str, str]:
        return {"pinHash": self.pin_hash, "salt": encode_for_storage(self.salt)}

    @classmethod
    def from_record(cls, record: Any) -> "Credential":
        if not isinstance(record, dict):
            raise CredentialCorruptedError("PIN settings record is not an object")
        pin_hash = record.get("pinHash")
        salt_b64 = record.get("salt")
        if not isinstance(pin_hash, str) or not pin_hash:
            raise CredentialCorruptedError("PIN settings record has no pinHash")
        if not isinstance(salt_b64, str) or not salt_b64:
            raise CredentialCorruptedError("PIN settings record has no salt")
        try:
            salt = decode_from_storage(salt_b64)
        except ValueError:
            raise CredentialCorruptedError("PIN settings salt is not valid base64") from None
        if len(salt) != SALT_LENGTH:
            raise CredentialCorruptedError(
                f"PIN settings salt must be {SALT_LENGTH} bytes, got {len(salt)}"
            )
        return cls(pin_hash=pin_hash, salt=salt)


class CredentialStore:
    """
    Reads, writes and checks the PIN credential.

    Storage failures propagate as StorageError: the vault cannot run
    without this record.
    """

    def __init__(self, storage: KeyValueStore, keys: KeyManager):
        self.storage = storage
        self.keys = keys

    def exists(self) -> bool:
        """True when a credential record has been written."""
        return self.storage.exists(SETTINGS)

    def load(self) -> Optional[Credential]:
        """
        Load the stored credential.

        Returns:
            The credential, or None if no PIN was ever registered.

        Raises:
            CredentialCorruptedError: the record exists but is unreadable.
        """
        raw = self.storage.get(SETTINGS)
        if raw is None:
            return None
        try:
            return Credential.from_record(self._parse(raw))
        except CredentialCorruptedError as e:
            self._report_corruption(str(e))
            raise

    def register(self, pin: str) -> Credential:
        """Write a brand new credential for ``pin``, replacing any prior one."""
        credential = Credential(
            pin_hash=self.keys.hash_pin(pin),
            salt=self.keys.generate_salt(),
        )
        self.storage.set(SETTINGS, json.dumps(credential.to_record()))
        logger.info("Stored new PIN credential")
        return credential

    def verify(self, pin: str) -> bool:
        """Check a PIN attempt. False when no credential exists."""
        credential = self.load()
        if credential is None:
            return False
        return self.matches(credential, pin)

    def matches(self, credential: Credential, pin: str) -> bool:
        """Constant-time comparison of a PIN against a loaded credential."""
        return hmac.compare_digest(
            self.keys.hash_pin(pin).encode('ascii'),
            credential.pin_hash.encode('ascii', errors='replace'),
        )

    def clear(self) -> bool:
        """Delete the credential record. Returns True if one existed."""
        return self.storage.delete(SETTINGS)

    @staticmethod
    def _parse(raw: str) -> Any:
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            raise CredentialCorruptedError("PIN settings record is not valid JSON") from None

    @staticmethod
    def _report_corruption(reason: str):
        get_audit_logger().log_event(
            event_type=EventType.VAULT_ERROR,
            severity=EventSeverity.CRITICAL,
            message=f"PIN credential unreadable, existing data cannot be decrypted: {reason}",
            details={"record": SETTINGS},
        )
