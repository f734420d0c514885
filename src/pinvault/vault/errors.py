# Vault - Error Taxonomy
#
# Every failure the vault surfaces is a VaultError subclass. Callers decide
# whether to retry, prompt for the PIN again, or show a message.

from typing import Optional


class VaultError(Exception):
    """Base class for all vault failures."""


class LockedError(VaultError):
    """Operation needs an unlocked session."""

    def __init__(self, message: str = "Vault is locked. Unlock with your PIN first."):
        super().__init__(message)


class AuthenticationError(VaultError):
    """
    PIN mismatch, or ciphertext failed to authenticate.

    A wrong key and a tampered blob produce the same error and message so
    the caller cannot tell which one happened.
    """

    def __init__(self, message: str = "Unable to authenticate vault data"):
        super().__init__(message)


class FormatError(VaultError):
    """Malformed persisted blob or import payload."""


class CredentialCorruptedError(FormatError):
    """
    The stored PIN credential is unreadable.

    Unrecoverable: without the salt no key can be derived, so existing
    ciphertext is lost. The only way forward is PinVault.reset(), which
    deletes everything.
    """


class NotFoundError(VaultError):
    """Mutation target id does not exist."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"No record {record_id!r} in {kind}")


class ValidationError(VaultError):
    """A record field failed validation."""

    def __init__(self, field: Optional[str], message: str):
        self.field = field
        super().__init__(message)


class StorageError(VaultError):
    """The backing key/value store failed to read or write."""
