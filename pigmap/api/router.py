"""
PigMap report API.

- GET  /reports                 : most recent reports (newest first)
- POST /reports                 : multipart: report JSON + optional media; returns the edit token once
- GET  /reports/{id}            : one report
- PUT  /reports/{id}            : edit type/count/description with the edit token
- GET  /reports/{id}/comments   : comments, newest first
- POST /reports/{id}/comments   : multipart: comment JSON + optional media
- GET  /region                  : map defaults for the requesting host

Every committed write is published to the live coordinator. When only the
coordinator's snapshot write fails the route answers 202 with live=false.
"""
import json
import logging
from typing import Optional, Type, TypeVar

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, Response, UploadFile
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from pigmap.api.deps import get_blob_store, get_coordinator
from pigmap.core.config import settings
from pigmap.db import repository
from pigmap.db.database import get_db
from pigmap.db.repository import EditTokenError, ReportNotFoundError
from pigmap.db.schemas import (
    Comment,
    CommentCreate,
    Report,
    ReportCreate,
    ReportCreatedOut,
    ReportUpdateRequest,
    WriteOut,
)
from pigmap.services.blob_store import LocalBlobStore, has_content
from pigmap.services.coordinator import LiveCoordinator
from pigmap.services.errors import SnapshotPersistError
from pigmap.services.events import DomainEvent, NewComment, NewReport, UpdatedReport

router = APIRouter()
logger = logging.getLogger("pigmap.api")

M = TypeVar("M", bound=BaseModel)

DEGRADED_WARNING = "Saved, but live updates may be briefly stale"


def error_message(exc: ValidationError) -> str:
    msg = exc.errors()[0]["msg"]
    return msg.removeprefix("Value error, ")


def _parse_form_json(raw: Optional[str], model: Type[M], invalid: str) -> M:
    try:
        payload = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        raise HTTPException(status_code=400, detail=invalid)
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=error_message(exc))


async def _publish(
    coordinator: LiveCoordinator, event: DomainEvent, response: Response
) -> Optional[str]:
    """Publish after commit; returns a warning when live fan-out is degraded."""
    try:
        await coordinator.publish(event)
    except SnapshotPersistError as exc:
        logger.warning("%s committed but not published live: %s", event.kind, exc)
        response.status_code = 202
        return DEGRADED_WARNING
    return None


@router.get("/reports", response_model=list[Report])
async def list_reports(
    limit: int = Query(settings.REPORTS_DEFAULT_LIMIT),
    db: AsyncSession = Depends(get_db),
):
    limit = min(max(1, limit), settings.REPORTS_MAX_LIMIT)
    return await repository.list_recent_reports(db, limit)


@router.post("/reports", status_code=201, response_model=ReportCreatedOut)
async def create_report(
    response: Response,
    report: Optional[str] = Form(None),
    media: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    coordinator: LiveCoordinator = Depends(get_coordinator),
    blobs: LocalBlobStore = Depends(get_blob_store),
):
    if not report:
        raise HTTPException(status_code=400, detail="Missing report data")
    data = _parse_form_json(report, ReportCreate, "Invalid report data")

    created, token = await repository.create_report(db, data)
    if has_content(media):
        url = await blobs.put(created.id, media)
        await repository.attach_report_media(db, created.id, url, media.content_type)
        created = created.model_copy(update={"media_url": url})

    warning = await _publish(coordinator, NewReport(created), response)
    return ReportCreatedOut(id=created.id, edit_token=token, live=warning is None, warning=warning)


@router.get("/reports/{report_id}", response_model=Report)
async def get_report(report_id: str, db: AsyncSession = Depends(get_db)):
    try:
        return await repository.get_report(db, report_id)
    except ReportNotFoundError:
        raise HTTPException(status_code=404, detail="Report not found")


@router.put("/reports/{report_id}", response_model=WriteOut)
async def update_report(
    report_id: str,
    body: ReportUpdateRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    coordinator: LiveCoordinator = Depends(get_coordinator),
):
    if not body.edit_token:
        raise HTTPException(status_code=401, detail="Edit token required")
    try:
        updated = await repository.update_report(db, report_id, body.edit_token, body.report)
    except ReportNotFoundError:
        raise HTTPException(status_code=404, detail="Report not found")
    except EditTokenError:
        raise HTTPException(status_code=403, detail="Invalid or expired token")

    warning = await _publish(coordinator, UpdatedReport(updated), response)
    return WriteOut(id=report_id, live=warning is None, warning=warning)


@router.get("/reports/{report_id}/comments", response_model=list[Comment])
async def list_comments(report_id: str, db: AsyncSession = Depends(get_db)):
    return await repository.list_comments(db, report_id)


@router.post("/reports/{report_id}/comments", status_code=201, response_model=WriteOut)
async def create_comment(
    report_id: str,
    response: Response,
    comment: Optional[str] = Form(None),
    media: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    coordinator: LiveCoordinator = Depends(get_coordinator),
    blobs: LocalBlobStore = Depends(get_blob_store),
):
    data = _parse_form_json(comment, CommentCreate, "Invalid comment data") if comment else CommentCreate()
    with_media = has_content(media)
    if not data.content and not with_media:
        raise HTTPException(status_code=400, detail="Comment text or media required")

    try:
        created = await repository.create_comment(db, report_id, data.content)
    except ReportNotFoundError:
        raise HTTPException(status_code=404, detail="Report not found")
    if with_media:
        url = await blobs.put(created.id, media)
        await repository.attach_comment_media(db, created.id, url, media.content_type)
        created = created.model_copy(update={"media_url": url})

    warning = await _publish(coordinator, NewComment(report_id, created), response)
    return WriteOut(id=created.id, live=warning is None, warning=warning)


@router.get("/region")
async def region(request: Request):
    return settings.region_for_host(request.headers.get("host"))
