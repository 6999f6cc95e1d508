import json
import os
import sys
import tempfile

import pytest

# Add project root to sys.path so tests can import pigmap regardless of how pytest is invoked
ROOT = os.path.dirname(os.path.dirname(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# Settings are read at import time; keep tests off Redis and the working tree.
_TMP = tempfile.mkdtemp(prefix="pigmap-tests-")
os.environ.setdefault("SNAPSHOT_BACKEND", "memory")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP}/pigmap.db")
os.environ.setdefault("MEDIA_DIR", os.path.join(_TMP, "media"))

from pigmap.db.schemas import Comment, Report  # noqa: E402
from pigmap.services.snapshot_store import MemorySnapshotStore  # noqa: E402


class FakeTransport:
    """Records every message; raises on the fail_on-th send (1-based) and after."""

    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.attempts = 0
        self.messages = []
        self.closed = False
        self.close_code = None

    async def send_text(self, data: str) -> None:
        self.attempts += 1
        if self.fail_on is not None and self.attempts >= self.fail_on:
            raise ConnectionResetError("peer went away")
        self.messages.append(json.loads(data))

    async def close(self, code: int = 1000) -> None:
        self.closed = True
        self.close_code = code

    def types(self):
        return [m["type"] for m in self.messages]


class FailingStore(MemorySnapshotStore):
    """Reads work; writes fail once fail_writes is set."""

    def __init__(self):
        super().__init__()
        self.fail_writes = False

    async def put(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise OSError("snapshot disk full")
        await super().put(key, value)


def make_report(report_id: str, **overrides) -> Report:
    data = {
        "id": report_id,
        "type": "cow",
        "latitude": 39.1,
        "longitude": -94.5,
        "timestamp": 1000,
    }
    data.update(overrides)
    return Report(**data)


def make_comment(comment_id: str, content: str = "seen near barn", **overrides) -> Comment:
    data = {"id": comment_id, "content": content, "timestamp": 2000}
    data.update(overrides)
    return Comment(**data)


@pytest.fixture
def transport_factory():
    return FakeTransport


@pytest.fixture
def memory_store():
    return MemorySnapshotStore()


@pytest.fixture
def failing_store():
    return FailingStore()


@pytest.fixture
def report_factory():
    return make_report


@pytest.fixture
def comment_factory():
    return make_comment


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path}/pigmap.db"


@pytest.fixture
def client(db_url, tmp_path):
    """TestClient over a fresh database and a fresh in-memory coordinator."""
    from fastapi.testclient import TestClient

    from pigmap.api.main import app
    from pigmap.core.config import settings
    from pigmap.db.database import configure_engine

    settings.SNAPSHOT_BACKEND = "memory"
    settings.MEDIA_DIR = str(tmp_path / "media")
    configure_engine(db_url)
    with TestClient(app) as test_client:
        yield test_client
