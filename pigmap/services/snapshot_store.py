"""Durable key-value stores for the coordinator's cache snapshot."""
from typing import Dict, Optional, Protocol

from pigmap.core.config import settings
from pigmap.services.redis_client import RedisSnapshotStore


class SnapshotStore(Protocol):
    async def get(self, key: str) -> Optional[str]:
        ...

    async def put(self, key: str, value: str) -> None:
        ...


class MemorySnapshotStore:
    """Process-local store; survives coordinator rebuilds, not restarts."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def put(self, key: str, value: str) -> None:
        self._data[key] = value


def build_snapshot_store(backend: Optional[str] = None) -> SnapshotStore:
    backend = (backend or settings.SNAPSHOT_BACKEND).lower()
    if backend == "redis":
        return RedisSnapshotStore()
    if backend == "memory":
        return MemorySnapshotStore()
    raise ValueError(f"Unknown SNAPSHOT_BACKEND: {backend!r}")
