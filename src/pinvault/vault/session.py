# Vault - Session State
#
# Locked (initial) --unlock(pin)--> Unlocked --lock()--> Locked
#
# The session object owns the only live copy of the key. Every DataStore
# operation goes through VaultSession.key, which raises LockedError while
# locked: plaintext is only reachable after a successful PIN check.

import asyncio
import time
from enum import Enum
from typing import Optional

from ..core import EventSeverity, EventType, get_audit_logger
from .credentials import CredentialStore
from .encryption import KEY_LENGTH, KeyManager
from .errors import LockedError

MAX_LOCKOUT_SECONDS = 16


class SessionStatus(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class VaultSession:
    """
    Locked/Unlocked state plus the live session key.

    Security: rate limiting with exponential backoff against PIN guessing.
    The first ``free_attempts`` consecutive failures cost nothing; after
    that each failure locks unlocking out for 1, 2, 4, 8, then 16 seconds.

    Usable as a context manager: leaving the block locks the session.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        keys: KeyManager,
        free_attempts: int = 3,
    ):
        self.credentials = credentials
        self.keys = keys
        self.free_attempts = free_attempts

        self._key: Optional[bytearray] = None

        self.failed_attempts = 0
        self._lockout_until: Optional[float] = None

        self.logger = get_audit_logger()

    def __enter__(self) -> "VaultSession":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.lock()

    @property
    def status(self) -> SessionStatus:
        return SessionStatus.UNLOCKED if self._key is not None else SessionStatus.LOCKED

    @property
    def is_unlocked(self) -> bool:
        return self._key is not None

    @property
    def key(self) -> bytes:
        """The live session key. Raises LockedError while locked."""
        self.ensure_unlocked()
        return bytes(self._key)

    def ensure_unlocked(self):
        """Raise LockedError unless a session key is held."""
        if self._key is None:
            raise LockedError()

    @property
    def lockout_remaining(self) -> float:
        """Seconds until another unlock attempt is accepted (0 if none)."""
        if self._lockout_until is None:
            return 0.0
        return max(0.0, self._lockout_until - time.monotonic())

    async def unlock(self, pin: str) -> bool:
        """
        Check ``pin`` and, on success, derive and hold the session key.

        Returns False for a wrong PIN, a missing credential, or an attempt
        made during a back-off period. A failed attempt always leaves the
        session locked.

        Raises:
            CredentialCorruptedError: the stored credential is unreadable
            StorageError: the record store failed
        """
        if self.is_unlocked:
            self.lock()

        remaining = self.lockout_remaining
        if remaining > 0:
            self.logger.log_event(
                event_type=EventType.VAULT_UNLOCK_FAILED,
                severity=EventSeverity.ALERT,
                message=f"Unlock attempt during lockout period ({remaining:.0f}s remaining)"
            )
            return False

        credential = self.credentials.load()
        if credential is None or not self.credentials.matches(credential, pin):
            self.record_failure()
            return False

        key = await asyncio.to_thread(self.keys.derive_key, pin, credential.salt)
        self.activate(key)
        self.reset_failures()

        self.logger.log_event(
            event_type=EventType.VAULT_UNLOCKED,
            severity=EventSeverity.INFO,
            message="Vault unlocked"
        )
        return True

    def activate(self, key: bytes):
        """Hold ``key`` as the live session key (used after registration)."""
        if len(key) != KEY_LENGTH:
            raise ValueError(f"Session key must be {KEY_LENGTH} bytes, got {len(key)}")
        self._wipe()
        self._key = bytearray(key)

    def lock(self):
        """Discard the session key. Safe to call when already locked."""
        was_unlocked = self.is_unlocked
        self._wipe()
        if was_unlocked:
            self.logger.log_event(
                event_type=EventType.VAULT_LOCKED,
                severity=EventSeverity.INFO,
                message="Vault locked"
            )

    def record_failure(self):
        """Count a failed PIN check and start a back-off when due."""
        self.failed_attempts += 1
        penalised = self.failed_attempts - self.free_attempts
        if penalised > 0:
            delay_seconds = min(2 ** (penalised - 1), MAX_LOCKOUT_SECONDS)
            self._lockout_until = time.monotonic() + delay_seconds
            severity = EventSeverity.ALERT
            message = (
                f"Vault unlock failed: incorrect PIN "
                f"(attempt {self.failed_attempts}, {delay_seconds}s lockout)"
            )
        else:
            severity = EventSeverity.INVESTIGATE
            message = f"Vault unlock failed: incorrect PIN (attempt {self.failed_attempts})"

        self.logger.log_event(
            event_type=EventType.VAULT_UNLOCK_FAILED,
            severity=severity,
            message=message
        )

    def reset_failures(self):
        """Clear the failure count after a correct PIN."""
        self.failed_attempts = 0
        self._lockout_until = None

    def _wipe(self):
        if self._key is not None:
            for i in range(len(self._key)):
                self._key[i] = 0
        self._key = None
