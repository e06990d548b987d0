"""State - the application snapshot and its persistence

Components:
    app_state.py: AppState aggregate (user, friends, tasks, quest board)
    storage.py: SnapshotStore, a versioned SQLite key-value document store
"""

SNAPSHOT_KEY_PREFIX = "microquest_state_v"


def snapshot_key(schema_version: int) -> str:
    return f"{SNAPSHOT_KEY_PREFIX}{schema_version}"


__all__ = ["SNAPSHOT_KEY_PREFIX", "snapshot_key"]
