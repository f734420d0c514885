# Vault Module - PIN-gated encrypted storage for finance records
#
# PIN → PBKDF2 key → AES-256-GCM blobs, one per collection
# Locked/unlocked session lifecycle and PIN rotation

from .codec import VaultCodec
from .credentials import Credential, CredentialStore
from .data_store import DataStore
from .encryption import AESGCMProvider, CryptoProvider, KeyManager
from .errors import (
    AuthenticationError,
    CredentialCorruptedError,
    FormatError,
    LockedError,
    NotFoundError,
    StorageError,
    ValidationError,
    VaultError,
)
from .session import SessionStatus, VaultSession
from .storage import KeyValueStore, MemoryKeyValueStore, SQLiteKeyValueStore
from .vault_manager import PinVault

__all__ = [
    "PinVault",
    "VaultSession",
    "SessionStatus",
    "DataStore",
    "CredentialStore",
    "Credential",
    "VaultCodec",
    "KeyManager",
    "CryptoProvider",
    "AESGCMProvider",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLiteKeyValueStore",
    # Errors
    "VaultError",
    "LockedError",
    "AuthenticationError",
    "FormatError",
    "CredentialCorruptedError",
    "NotFoundError",
    "ValidationError",
    "StorageError",
]
