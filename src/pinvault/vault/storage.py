# Vault - Record Storage
#
# Namespaced key -> string stores. The vault only ever persists strings:
# the credential JSON, the two collection blobs and the theme name.
# Storage access is synchronous local I/O.

import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..core.db import connect as db_connect
from .errors import StorageError

DEFAULT_NAMESPACE = "sft"

# Record names
SETTINGS = "settings"
TRANSACTIONS = "transactions"
CATEGORIES = "categories"


class KeyValueStore(ABC):
    """
    Abstract record store.

    Names passed in are bare (``settings``); implementations prefix them
    with the deployment namespace (``sft-settings``).
    """

    def __init__(self, namespace: str = DEFAULT_NAMESPACE):
        self.namespace = namespace

    def qualify(self, name: str) -> str:
        return f"{self.namespace}-{name}"

    @abstractmethod
    def get(self, name: str) -> Optional[str]:
        """Return the stored value or None when absent."""

    @abstractmethod
    def set(self, name: str, value: str) -> None:
        """Create or overwrite a record."""

    @abstractmethod
    def delete(self, name: str) -> bool:
        """Remove a record. Returns True if it existed."""

    @abstractmethod
    def names(self) -> List[str]:
        """Bare names of every record in this namespace."""

    def exists(self, name: str) -> bool:
        return self.get(name) is not None


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE):
        super().__init__(namespace)
        self._records: Dict[str, str] = {}

    def get(self, name: str) -> Optional[str]:
        return self._records.get(self.qualify(name))

    def set(self, name: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Record {name!r} must be a string, not {type(value).__name__}")
        self._records[self.qualify(name)] = value

    def delete(self, name: str) -> bool:
        return self._records.pop(self.qualify(name), None) is not None

    def names(self) -> List[str]:
        prefix = f"{self.namespace}-"
        return sorted(k[len(prefix):] for k in self._records if k.startswith(prefix))


class SQLiteKeyValueStore(KeyValueStore):
    """SQLite file store, one row per record.

    Args:
        db_path: Path to SQLite file. Defaults to data/vault.db.
        namespace: Key prefix, so several deployments can share one file.
    """

    def __init__(
        self,
        db_path: Optional[Union[str, Path]] = None,
        namespace: str = DEFAULT_NAMESPACE,
    ):
        super().__init__(namespace)
        self.db_path = Path(db_path) if db_path else Path("data/vault.db")
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create vault directory: {e}") from e
        self._init_database()

    def _init_database(self):
        try:
            with db_connect(self.db_path) as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS vault_records (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                """)
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open vault database {self.db_path}: {e}") from e

    def _connect(self) -> sqlite3.Connection:
        return db_connect(self.db_path, row_factory=True)

    def get(self, name: str) -> Optional[str]:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM vault_records WHERE key = ?",
                    (self.qualify(name),),
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read {name!r}: {e}") from e
        if row is None:
            return None
        return row["value"]

    def set(self, name: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Record {name!r} must be a string, not {type(value).__name__}")
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._connect() as conn:
                conn.execute(
                    """INSERT INTO vault_records (key, value, updated_at)
                       VALUES (?, ?, ?)
                       ON CONFLICT(key) DO UPDATE SET
                           value = excluded.value,
                           updated_at = excluded.updated_at""",
                    (self.qualify(name), value, now),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write {name!r}: {e}") from e

    def delete(self, name: str) -> bool:
        try:
            with self._connect() as conn:
                cur = conn.execute(
                    "DELETE FROM vault_records WHERE key = ?", (self.qualify(name),)
                )
                conn.commit()
                return cur.rowcount > 0
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete {name!r}: {e}") from e

    def names(self) -> List[str]:
        prefix = f"{self.namespace}-"
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT key FROM vault_records ORDER BY key"
                ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to list records: {e}") from e
        return [row["key"][len(prefix):] for row in rows if row["key"].startswith(prefix)]
