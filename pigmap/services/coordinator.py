"""
Live coordinator: single in-process fan-out point for report/comment events.

- Holds the most recent reports (newest first) and per-report comments, both
  capped at settings.CACHE_LIMIT, mirrored to a durable snapshot store.
- Each live connection is registered here; publish() applies the event to the
  cache, persists the snapshot, then pushes the event to every connection.
- A failed push removes that connection. No retries, no per-connection queue.
- publish() and subscribe() run one at a time under an asyncio.Lock, so every
  connection sees events in publish order.
"""
import asyncio
import json
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from pigmap.core.config import settings
from pigmap.db.schemas import Comment, Report
from pigmap.services.errors import InvalidEventError, SnapshotPersistError
from pigmap.services.events import (
    DomainEvent,
    NewComment,
    NewReport,
    UpdatedReport,
    initial_message,
    parse_event,
)
from pigmap.services.snapshot_store import SnapshotStore

logger = logging.getLogger("pigmap.coordinator")


class Transport(Protocol):
    """What the coordinator needs from a live connection (a Starlette WebSocket fits)."""

    async def send_text(self, data: str) -> None:
        ...

    async def close(self, code: int = 1000) -> None:
        ...


@dataclass(frozen=True)
class DeliveryResult:
    connection_id: str
    ok: bool
    error: Optional[str] = None


@dataclass
class Connection:
    transport: Transport
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    open: bool = True

    async def deliver(self, payload: str) -> DeliveryResult:
        try:
            await self.transport.send_text(payload)
        except Exception as exc:
            return DeliveryResult(self.id, ok=False, error=repr(exc))
        return DeliveryResult(self.id, ok=True)


@dataclass
class PublishResult:
    kind: str
    delivered: List[str] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)


class LiveCoordinator:
    """One per process: build at startup, load(), share via app.state, close() at shutdown."""

    def __init__(
        self,
        store: SnapshotStore,
        name: Optional[str] = None,
        limit: Optional[int] = None,
    ):
        self.name = name or settings.COORDINATOR_NAME
        self._store = store
        self._limit = limit or settings.CACHE_LIMIT
        self._key = f"pigmap:coordinator:{self.name}:snapshot"
        self._reports: List[Report] = []
        self._comments: Dict[str, List[Comment]] = {}
        self._connections: Dict[str, Connection] = {}
        self._lock = asyncio.Lock()
        self._dropped = 0

    # ── lifecycle ─────────────────────────────────────────────

    async def load(self) -> None:
        """Restore the cache from the durable snapshot, or write an empty one."""
        async with self._lock:
            raw = await self._store.get(self._key)
            if raw is None:
                await self._store.put(self._key, self._dump())
                logger.info("coordinator %s: no snapshot, starting empty", self.name)
                return
            try:
                self._restore(raw)
            except (AttributeError, TypeError, ValueError) as exc:
                logger.warning("coordinator %s: unreadable snapshot ignored: %s", self.name, exc)
                self._reports, self._comments = [], {}
                return
            logger.info(
                "coordinator %s: restored %d reports, %d comment threads",
                self.name,
                len(self._reports),
                len(self._comments),
            )

    async def close(self) -> None:
        """Close every live transport and forget the connections."""
        async with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
        for conn in connections:
            conn.open = False
            try:
                await conn.transport.close()
            except Exception as exc:
                logger.debug("close %s failed: %s", conn.id, exc)
        logger.info("coordinator %s closed (%d connections)", self.name, len(connections))

    # ── subscribers ───────────────────────────────────────────

    async def subscribe(self, transport: Transport) -> Connection:
        """
        Register a live connection. When the cache holds anything, the new
        connection alone gets one "initial" message with the full cache.
        """
        conn = Connection(transport)
        async with self._lock:
            self._connections[conn.id] = conn
            if self._reports or self._comments:
                payload = json.dumps(initial_message(self._reports, self._comments))
                await self._settle([await conn.deliver(payload)])
        logger.debug("connection %s subscribed (open=%s)", conn.id, conn.open)
        return conn

    def unsubscribe(self, conn: Connection) -> None:
        """Drop a connection after the transport closed. Unknown connections are ignored."""
        conn.open = False
        if self._connections.pop(conn.id, None) is not None:
            logger.debug("connection %s unsubscribed", conn.id)

    # ── publish ───────────────────────────────────────────────

    async def publish(self, event: DomainEvent | Mapping[str, Any]) -> PublishResult:
        """
        Apply, persist, broadcast.

        Raises InvalidEventError before touching state for malformed input, and
        SnapshotPersistError when the snapshot write fails; in that case the
        in-memory cache keeps the change and nothing is pushed.
        """
        if isinstance(event, Mapping):
            event = parse_event(event)
        elif not isinstance(event, (NewReport, UpdatedReport, NewComment)):
            raise InvalidEventError(f"Unsupported event: {type(event).__name__}")

        async with self._lock:
            outgoing = self._apply(event)
            try:
                await self._store.put(self._key, self._dump())
            except Exception as exc:
                logger.error("coordinator %s: snapshot write failed: %s", self.name, exc)
                raise SnapshotPersistError(str(exc)) from exc
            results = await self._broadcast(json.dumps(outgoing.to_message()))

        return PublishResult(
            kind=event.kind,
            delivered=[r.connection_id for r in results if r.ok],
            dropped=[r.connection_id for r in results if not r.ok],
        )

    def _apply(self, event: DomainEvent) -> DomainEvent:
        """Mutate the cache; returns the event to broadcast."""
        if isinstance(event, NewReport):
            self._reports.insert(0, event.report)
            del self._reports[self._limit:]
        elif isinstance(event, UpdatedReport):
            for i, cached in enumerate(self._reports):
                if cached.id == event.report.id:
                    merged = {**cached.model_dump(), **event.report.model_dump(exclude_none=True)}
                    # id and position never change after creation
                    merged.update(id=cached.id, latitude=cached.latitude, longitude=cached.longitude)
                    self._reports[i] = Report(**merged)
                    return UpdatedReport(self._reports[i])
            logger.debug("update for uncached report %s leaves the cache unchanged", event.report.id)
        elif isinstance(event, NewComment):
            thread = self._comments.setdefault(event.report_id, [])
            thread.insert(0, event.comment)
            del thread[self._limit:]
        else:
            raise InvalidEventError(f"Unsupported event: {type(event).__name__}")
        return event

    async def _broadcast(self, payload: str) -> List[DeliveryResult]:
        results = [await conn.deliver(payload) for conn in list(self._connections.values())]
        await self._settle(results)
        return results

    async def _settle(self, results: List[DeliveryResult]) -> None:
        """Remove every connection whose delivery failed and close its transport."""
        for result in results:
            if result.ok:
                continue
            conn = self._connections.pop(result.connection_id, None)
            if conn is None:
                continue
            conn.open = False
            self._dropped += 1
            logger.info("connection %s dropped: %s", result.connection_id, result.error)
            try:
                await conn.transport.close(code=1011)
            except Exception as exc:
                logger.debug("close %s failed: %s", conn.id, exc)

    # ── snapshot ──────────────────────────────────────────────

    def _dump(self) -> str:
        return json.dumps(
            {
                "reports": [r.to_wire() for r in self._reports],
                "comments": {
                    rid: [c.to_wire() for c in thread]
                    for rid, thread in self._comments.items()
                },
            }
        )

    def _restore(self, raw: str) -> None:
        data = json.loads(raw)
        reports = [Report.model_validate(r) for r in data.get("reports", [])]
        comments = {
            rid: [Comment.model_validate(c) for c in thread][: self._limit]
            for rid, thread in data.get("comments", {}).items()
        }
        self._reports = reports[: self._limit]
        self._comments = comments

    # ── read accessors ────────────────────────────────────────

    @property
    def reports(self) -> List[Report]:
        return list(self._reports)

    def comments_for(self, report_id: str) -> List[Comment]:
        return list(self._comments.get(report_id, []))

    def snapshot(self) -> Dict[str, Any]:
        return initial_message(self._reports, self._comments)

    def is_subscribed(self, conn: Connection) -> bool:
        return conn.id in self._connections

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    @property
    def dropped(self) -> int:
        return self._dropped
