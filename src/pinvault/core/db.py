# Core - SQLite Connection Helper
#
# The vault database is always opened through `connect()`:
#
#   - WAL journal mode, so a crash mid-write never tears the record table
#   - busy_timeout, so a second backend on the same file waits instead of
#     failing with SQLITE_BUSY

import sqlite3
from pathlib import Path
from typing import Union

DEFAULT_BUSY_TIMEOUT_MS = 5000


def connect(
    db_path: Union[str, Path],
    *,
    row_factory: bool = False,
    busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
) -> sqlite3.Connection:
    """Open the vault database in WAL mode.

    Args:
        db_path: Path to the database file (created if missing).
        row_factory: If True, rows come back as sqlite3.Row.
        busy_timeout_ms: How long a write waits on another writer.
    """
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn
