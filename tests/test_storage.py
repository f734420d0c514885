"""Tests for the namespaced record stores (memory and SQLite).

Covers:
  - get / set / delete / names
  - Namespacing (two deployments sharing one file)
  - Persistence across instances
  - StorageError on bad values
"""

import pytest

from pinvault.vault.errors import StorageError
from pinvault.vault.storage import MemoryKeyValueStore, SQLiteKeyValueStore


@pytest.fixture(params=["memory", "sqlite"])
def kv(request, tmp_path):
    if request.param == "memory":
        return MemoryKeyValueStore()
    return SQLiteKeyValueStore(db_path=tmp_path / "vault.db")


class TestKeyValueStore:

    def test_missing_is_none(self, kv):
        assert kv.get("settings") is None
        assert kv.exists("settings") is False

    def test_set_and_get(self, kv):
        kv.set("settings", '{"a": 1}')
        assert kv.get("settings") == '{"a": 1}'
        assert kv.exists("settings") is True

    def test_overwrite(self, kv):
        kv.set("theme", "light")
        kv.set("theme", "dark")
        assert kv.get("theme") == "dark"

    def test_delete(self, kv):
        kv.set("theme", "dark")
        assert kv.delete("theme") is True
        assert kv.delete("theme") is False
        assert kv.get("theme") is None

    def test_names(self, kv):
        kv.set("transactions", "x")
        kv.set("categories", "y")
        assert sorted(kv.names()) == ["categories", "transactions"]

    def test_rejects_non_string(self, kv):
        with pytest.raises(StorageError):
            kv.set("transactions", ["not", "a", "string"])

    def test_qualified_names(self, kv):
        assert kv.qualify("settings") == "sft-settings"


class TestSQLiteKeyValueStore:

    def test_creates_db_file(self, tmp_path):
        SQLiteKeyValueStore(db_path=tmp_path / "vault.db")
        assert (tmp_path / "vault.db").exists()

    def test_creates_parent_dirs(self, tmp_path):
        SQLiteKeyValueStore(db_path=tmp_path / "sub" / "dir" / "vault.db")
        assert (tmp_path / "sub" / "dir" / "vault.db").exists()

    def test_persists_across_instances(self, tmp_path):
        SQLiteKeyValueStore(db_path=tmp_path / "vault.db").set("theme", "dark")
        assert SQLiteKeyValueStore(db_path=tmp_path / "vault.db").get("theme") == "dark"

    def test_namespaces_are_isolated(self, tmp_path):
        a = SQLiteKeyValueStore(db_path=tmp_path / "vault.db", namespace="a")
        b = SQLiteKeyValueStore(db_path=tmp_path / "vault.db", namespace="b")
        a.set("settings", "for-a")
        assert b.get("settings") is None
        assert b.names() == []
        assert a.names() == ["settings"]

    def test_unusable_path_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(StorageError):
            SQLiteKeyValueStore(db_path=blocker / "vault.db")


class TestMemoryKeyValueStore:

    def test_namespaces_are_isolated(self):
        a = MemoryKeyValueStore(namespace="a")
        a.set("settings", "x")
        assert a.names() == ["settings"]
        assert MemoryKeyValueStore(namespace="b").get("settings") is None


def test_database_uses_wal(tmp_path):
    from pinvault.core.db import connect

    SQLiteKeyValueStore(db_path=tmp_path / "vault.db")
    conn = connect(tmp_path / "vault.db")
    try:
        assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
    finally:
        conn.close()
