from pigmap.services.coordinator import Connection, LiveCoordinator, PublishResult
from pigmap.services.errors import (
    CoordinatorError,
    InvalidEventError,
    SnapshotPersistError,
)
from pigmap.services.events import NewComment, NewReport, UpdatedReport
from pigmap.services.snapshot_store import MemorySnapshotStore, build_snapshot_store

__all__ = [
    "Connection",
    "CoordinatorError",
    "InvalidEventError",
    "LiveCoordinator",
    "MemorySnapshotStore",
    "NewComment",
    "NewReport",
    "PublishResult",
    "SnapshotPersistError",
    "UpdatedReport",
    "build_snapshot_store",
]
