# Vault Manager - PIN-gated encrypted finance vault
#
# Composes the key manager, credential store, codec, session and data store
# over one record store. Each PinVault owns its own session, so two vaults
# (or two tests) never share key material.

import asyncio
from pathlib import Path
from typing import Optional, Union

from ..config import VaultConfig, load_config
from ..core import EventSeverity, EventType, UserPreferences, get_audit_logger
from .codec import VaultCodec
from .credentials import CredentialStore
from .data_store import COLLECTIONS, DataStore
from .encryption import AESGCMProvider, CryptoProvider, KeyManager
from .records import default_categories, validate_pin
from .session import SessionStatus, VaultSession
from .storage import CATEGORIES, SETTINGS, TRANSACTIONS, KeyValueStore, SQLiteKeyValueStore


class PinVault:
    """
    Encrypted local vault for transactions and categories.

    Security:
    - PIN → PBKDF2-SHA256 → AES-256-GCM session key, never persisted
    - Stored PIN material is {SHA-256(pin), salt} only
    - Each collection is one AES-GCM blob with a fresh IV per write
    - Audit logging for every lifecycle event and mutation

    Usage:
        vault = PinVault.open()
        if not vault.has_pin():
            await vault.register("1234")
        elif not await vault.unlock("1234"):
            ...
        await vault.data.add_transaction({...})
        vault.lock()
    """

    def __init__(
        self,
        storage: KeyValueStore,
        provider: Optional[CryptoProvider] = None,
        free_attempts: int = 3,
    ):
        self.storage = storage
        self.provider = provider or AESGCMProvider()
        self.keys = KeyManager(self.provider)
        self.credentials = CredentialStore(storage, self.keys)
        self.codec = VaultCodec(self.provider)
        self.session = VaultSession(self.credentials, self.keys, free_attempts=free_attempts)
        self.data = DataStore(storage, self.codec, self.session)
        self.preferences = UserPreferences(storage)

        # Serialises register / unlock / change_pin / reset
        self._auth_lock = asyncio.Lock()

        self.logger = get_audit_logger()

    @classmethod
    def open(
        cls,
        config: Optional[VaultConfig] = None,
        db_path: Optional[Union[str, Path]] = None,
    ) -> "PinVault":
        """Open the SQLite-backed vault described by ``config``."""
        config = config or load_config()
        storage = SQLiteKeyValueStore(db_path or config.db_path, namespace=config.namespace)
        return cls(
            storage,
            provider=AESGCMProvider(iterations=config.pbkdf2_iterations),
            free_attempts=config.free_attempts,
        )

    async def __aenter__(self) -> "PinVault":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.lock()

    # ── Status ───────────────────────────────────────────────────────

    @property
    def status(self) -> SessionStatus:
        return self.session.status

    @property
    def is_unlocked(self) -> bool:
        return self.session.is_unlocked

    @property
    def lockout_remaining(self) -> float:
        return self.session.lockout_remaining

    def has_pin(self) -> bool:
        """True once a PIN has been registered (decides set-up vs. login)."""
        return self.credentials.exists()

    # ── Lifecycle ────────────────────────────────────────────────────

    async def register(self, pin: str):
        """
        Register ``pin`` and unlock with the new key.

        Overwrites any existing credential. On the very first registration
        (no collections stored yet) the default categories and an empty
        transaction list are written so the vault is usable at once.

        Raises:
            ValidationError: ``pin`` is not four digits
        """
        validate_pin(pin)
        async with self._auth_lock:
            await self._register(pin)

    async def _register(self, pin: str):
        # readers wait for the new key instead of seeing the gap
        async with self.data.locked():
            self.session.lock()
            credential = self.credentials.register(pin)
            key = await asyncio.to_thread(self.keys.derive_key, pin, credential.salt)
            self.session.activate(key)

            if not self.storage.exists(CATEGORIES):
                await self.data.write_collection(CATEGORIES, default_categories())
            if not self.storage.exists(TRANSACTIONS):
                await self.data.write_collection(TRANSACTIONS, [])

        self.logger.log_event(
            event_type=EventType.VAULT_REGISTERED,
            severity=EventSeverity.INFO,
            message="Vault PIN registered"
        )

    async def unlock(self, pin: str) -> bool:
        """Check ``pin`` and unlock. False on a wrong PIN or during back-off."""
        async with self._auth_lock:
            return await self.session.unlock(pin)

    def lock(self):
        """Discard the session key."""
        self.session.lock()

    async def change_pin(self, current_pin: str, new_pin: str) -> bool:
        """
        Rotate the PIN and re-encrypt both collections under the new key.

        With no PIN registered yet this is a first registration of
        ``new_pin``. A wrong ``current_pin`` returns False with no side
        effects beyond the unlock back-off counter.

        Durability gap: the old key is discarded before the collections are
        rewritten. If the process dies after the new credential is stored
        but before both collections are re-encrypted, the remaining blobs
        are still under the old key and can no longer be decrypted. There
        is no two-phase commit.

        Raises:
            ValidationError: ``new_pin`` is not four digits
        """
        validate_pin(new_pin)
        async with self._auth_lock:
            if not self.credentials.exists():
                await self._register(new_pin)
                return True

            if self.session.lockout_remaining > 0:
                return False

            credential = self.credentials.load()
            if not self.credentials.matches(credential, current_pin):
                self.session.record_failure()
                return False
            self.session.reset_failures()

            current_key = await asyncio.to_thread(self.keys.derive_key, current_pin, credential.salt)
            self.session.activate(current_key)

            async with self.data.locked():
                categories = await self.data.read_collection(CATEGORIES)
                transactions = await self.data.read_collection(TRANSACTIONS)

                self.session.lock()
                credential = self.credentials.register(new_pin)
                key = await asyncio.to_thread(self.keys.derive_key, new_pin, credential.salt)
                self.session.activate(key)

                await self.data.write_collection(CATEGORIES, categories)
                await self.data.write_collection(TRANSACTIONS, transactions)

        self.logger.log_event(
            event_type=EventType.VAULT_PIN_CHANGED,
            severity=EventSeverity.INFO,
            message="Vault PIN changed and data re-encrypted",
            details={"transactions": len(transactions), "categories": len(categories)}
        )
        return True

    async def reset(self):
        """
        Destroy the vault: credential and both collections.

        The only way out of a CredentialCorruptedError. Irreversible: every
        stored transaction and category is gone afterwards.
        """
        async with self._auth_lock:
            self.session.lock()
            async with self.data.locked():
                for name in (SETTINGS,) + COLLECTIONS:
                    self.storage.delete(name)

        self.logger.log_event(
            event_type=EventType.VAULT_RESET,
            severity=EventSeverity.CRITICAL,
            message="Vault reset: PIN credential and all encrypted data deleted"
        )

    # ── Preferences ──────────────────────────────────────────────────

    def get_theme(self) -> str:
        return self.preferences.get_theme()

    def set_theme(self, theme: str) -> str:
        return self.preferences.set_theme(theme)
