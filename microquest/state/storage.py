"""
Tool: Snapshot Store
Purpose: Persist the whole application state as one versioned JSON document

Usage:
    python -m microquest.state.storage --show
    python -m microquest.state.storage --export backup.json
    python -m microquest.state.storage --import backup.json
    python -m microquest.state.storage --clear

The state lives in a single SQLite key-value table under the key
microquest_state_v{schema_version}. Bumping the schema version starts from a
fresh document; older keys are left alone.

Dependencies:
    - sqlite3 (stdlib)

Output:
    JSON results with success status
"""

import argparse
import json
import sqlite3
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from microquest import PROJECT_ROOT
from microquest.logging_config import get_logger

from . import snapshot_key
from .app_state import AppState

logger = get_logger(__name__)


class SnapshotStore:
    """Load and save AppState documents.

    Args:
        db_path: SQLite database file. Relative paths resolve against the
            project root.
        schema_version: Version suffix of the storage key
    """

    def __init__(self, db_path: Union[str, Path], schema_version: int = 1):
        path = Path(db_path)
        self.db_path = path if path.is_absolute() else PROJECT_ROOT / path
        self.schema_version = schema_version

    @property
    def key(self) -> str:
        return snapshot_key(self.schema_version)

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection, creating the table if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("""
            CREATE TABLE IF NOT EXISTS snapshots (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.commit()
        return conn

    def read_raw(self) -> Optional[str]:
        conn = self.get_connection()
        try:
            row = conn.execute("SELECT value FROM snapshots WHERE key = ?", (self.key,)).fetchone()
        finally:
            conn.close()
        return row["value"] if row else None

    def write_raw(self, value: str) -> None:
        conn = self.get_connection()
        try:
            conn.execute(
                """
                INSERT INTO snapshots (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (self.key, value, datetime.now().isoformat()),
            )
            conn.commit()
        finally:
            conn.close()

    def load(self) -> AppState:
        """Load the stored state. Missing or corrupt documents yield defaults."""
        try:
            raw = self.read_raw()
        except sqlite3.Error as e:
            logger.warning(f"Could not read snapshot from {self.db_path}: {e}, using defaults")
            return AppState()

        if raw is None:
            logger.debug(f"No snapshot under {self.key}, starting fresh")
            return AppState()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Snapshot {self.key} is corrupt: {e}, using defaults")
            return AppState()

        if not isinstance(data, dict):
            logger.warning(f"Snapshot {self.key} is not an object, using defaults")
            return AppState()

        return AppState.from_dict(data)

    def save(self, state: AppState) -> None:
        self.write_raw(json.dumps(state.to_dict(), ensure_ascii=False))

    def export_to(self, path: Union[str, Path], state: Optional[AppState] = None) -> dict[str, Any]:
        """Write the state (or the stored one) to a JSON file."""
        state = state if state is not None else self.load()
        target = Path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(json.dumps(state.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            return {"success": False, "error": f"Export failed: {e}"}

        logger.info(f"Exported snapshot to {target}")
        return {"success": True, "data": {"path": str(target)}}

    def import_from(self, path: Union[str, Path]) -> dict[str, Any]:
        """
        Replace the stored state with a JSON file's contents.

        The file must hold a JSON object. It fully replaces the current
        document; missing fields take their defaults.
        """
        source = Path(path)
        try:
            data = json.loads(source.read_text(encoding="utf-8"))
        except OSError as e:
            return {"success": False, "error": f"Could not read {source}: {e}"}
        except json.JSONDecodeError as e:
            return {"success": False, "error": f"Invalid JSON in {source.name}: {e}"}

        if not isinstance(data, dict):
            return {"success": False, "error": "Snapshot must be a JSON object"}

        state = AppState.from_dict(data)
        self.save(state)
        logger.info(f"Imported snapshot from {source}")
        return {"success": True, "data": {"state": state}}

    def clear(self) -> None:
        conn = self.get_connection()
        try:
            conn.execute("DELETE FROM snapshots WHERE key = ?", (self.key,))
            conn.commit()
        finally:
            conn.close()


def main():
    parser = argparse.ArgumentParser(description="Snapshot Store - inspect, export or import saved state")
    parser.add_argument("--db", help="Database path (defaults to the configured one)")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--show", action="store_true", help="Print the stored snapshot")
    group.add_argument("--export", metavar="PATH", help="Export the snapshot to a JSON file")
    group.add_argument("--import", dest="import_path", metavar="PATH", help="Replace the snapshot from a JSON file")
    group.add_argument("--clear", action="store_true", help="Delete the stored snapshot (next start is fresh)")

    args = parser.parse_args()

    from microquest.config import load_config

    storage = load_config().storage
    store = SnapshotStore(args.db or storage.db_path, storage.schema_version)

    if args.show:
        print(json.dumps(store.load().to_dict(), indent=2, ensure_ascii=False))
        return

    if args.clear:
        store.clear()
        print(f"OK: cleared {store.key}")
        return

    result = store.export_to(args.export) if args.export else store.import_from(args.import_path)
    if result["success"]:
        print(f"OK: {args.export or args.import_path}")
    else:
        print(f"ERROR: {result['error']}")
        sys.exit(1)


if __name__ == "__main__":
    main()
