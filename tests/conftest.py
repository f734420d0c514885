"""
Shared pytest fixtures for the pinvault test suite.

Autouse fixtures below isolate tests from the live application data:
  - Audit logger -> temp directory (prevents test events in ./audit_logs)
  - Vault API    -> no process-wide vault left over between tests
"""

import hashlib

import pytest

from pinvault.vault.encryption import AESGCMProvider, KEY_LENGTH
from pinvault.vault.storage import MemoryKeyValueStore
from pinvault.vault.vault_manager import PinVault


class FakeCryptoProvider(AESGCMProvider):
    """Deterministic randomness and a cheap KDF; AES-GCM stays real.

    Every random_bytes() call returns a different, reproducible value so
    IV-freshness checks still mean something.
    """

    def __init__(self):
        super().__init__()
        self.counter = 0
        self.derive_calls = 0

    def random_bytes(self, n):
        self.counter += 1
        seed = hashlib.sha256(f"fake-random-{self.counter}".encode()).digest()
        return (seed * (n // len(seed) + 1))[:n]

    def derive_key(self, pin, salt):
        self.derive_calls += 1
        return hashlib.sha256(salt + pin.encode("utf-8")).digest()[:KEY_LENGTH]


@pytest.fixture(autouse=True)
def _isolate_audit_logs(tmp_path):
    """Point the global AuditLogger at a temp directory for every test.

    Without this, any test that (directly or indirectly) calls
    ``get_audit_logger().log_event(...)`` writes into the real
    ``./audit_logs/`` directory.
    """
    import pinvault.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = audit_mod.AuditLogger(log_dir=tmp_path / "audit_logs")

    yield

    audit_mod._audit_logger = old_logger


@pytest.fixture(autouse=True)
def _isolate_api_vault():
    """Reset the API's process-wide vault so no test sees another's key."""
    import pinvault.api.vault_routes as routes_mod

    old_vault = routes_mod._vault
    routes_mod._vault = None

    yield

    if routes_mod._vault is not None:
        routes_mod._vault.lock()
    routes_mod._vault = old_vault


@pytest.fixture
def fake_provider():
    return FakeCryptoProvider()


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def vault(store, fake_provider):
    """A vault over an in-memory store with the fast fake provider."""
    return PinVault(store, provider=fake_provider)


@pytest.fixture
def real_vault(store):
    """A vault with the production PBKDF2 / AES-GCM provider."""
    return PinVault(store)
