"""
Report/comment persistence on top of the async session.

Functions take an AsyncSession and commit their own writes; they return the
wire schemas (pigmap.db.schemas) so routes can hand them straight to the
live coordinator.
"""
import logging
import time
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pigmap.core.config import settings
from pigmap.db import models
from pigmap.db.schemas import Comment, Report, ReportCreate, ReportUpdate

logger = logging.getLogger("pigmap.db")


class ReportNotFoundError(LookupError):
    """No report with the given id."""


class EditTokenError(PermissionError):
    """Edit token missing, not bound to the report, or expired."""


def now_ms() -> int:
    return int(time.time() * 1000)


def _report_out(row: models.Report, media_url: Optional[str]) -> Report:
    return Report(
        id=row.id,
        type=row.type,
        description=row.description or "",
        count=row.count,
        latitude=row.latitude,
        longitude=row.longitude,
        timestamp=row.timestamp,
        icon=row.icon,
        media_url=media_url,
    )


def _report_query():
    return select(models.Report, models.Media.url).outerjoin(
        models.Media, models.Media.report_id == models.Report.id
    )


async def create_report(
    session: AsyncSession, data: ReportCreate
) -> tuple[Report, str]:
    """Insert a report and its edit token in one transaction. Returns (report, token)."""
    created = now_ms()
    row = models.Report(
        id=str(uuid.uuid4()),
        type=data.type,
        description=data.description,
        count=data.count,
        latitude=data.latitude,
        longitude=data.longitude,
        timestamp=created,
        icon=data.icon or settings.DEFAULT_ICON,
    )
    token = models.EditToken(
        token=str(uuid.uuid4()),
        report_id=row.id,
        expires_at=created + settings.edit_token_ttl_ms(),
    )
    session.add(row)
    # flush the report first so the token's foreign key resolves
    await session.flush()
    session.add(token)
    await session.commit()
    logger.info("report %s created (%s)", row.id, row.type)
    return _report_out(row, None), token.token


async def attach_report_media(
    session: AsyncSession, report_id: str, url: str, content_type: Optional[str]
) -> None:
    session.add(models.Media(report_id=report_id, url=url, content_type=content_type))
    await session.commit()


async def list_recent_reports(session: AsyncSession, limit: int) -> list[Report]:
    stmt = (
        _report_query()
        .order_by(models.Report.timestamp.desc(), models.Report.created_at.desc())
        .limit(limit)
    )
    rows = (await session.execute(stmt)).all()
    return [_report_out(report, url) for report, url in rows]


async def get_report(session: AsyncSession, report_id: str) -> Report:
    row = (
        await session.execute(_report_query().where(models.Report.id == report_id))
    ).first()
    if row is None:
        raise ReportNotFoundError(report_id)
    return _report_out(row[0], row[1])


async def update_report(
    session: AsyncSession,
    report_id: str,
    edit_token: Optional[str],
    changes: ReportUpdate,
) -> Report:
    """Rewrite type/count/description after checking the edit token."""
    if not edit_token:
        raise EditTokenError("Edit token required")
    report = await session.get(models.Report, report_id)
    if report is None:
        raise ReportNotFoundError(report_id)
    token = (
        await session.execute(
            select(models.EditToken).where(
                models.EditToken.token == edit_token,
                models.EditToken.report_id == report_id,
                models.EditToken.expires_at > now_ms(),
            )
        )
    ).scalar_one_or_none()
    if token is None:
        raise EditTokenError("Invalid or expired token")

    for field, value in changes.model_dump(exclude_none=True).items():
        setattr(report, field, value)
    await session.commit()
    logger.info("report %s updated", report_id)
    return await get_report(session, report_id)


async def list_comments(session: AsyncSession, report_id: str) -> list[Comment]:
    stmt = (
        select(models.Comment, models.CommentMedia.url)
        .outerjoin(models.CommentMedia, models.CommentMedia.comment_id == models.Comment.id)
        .where(models.Comment.report_id == report_id)
        .order_by(models.Comment.timestamp.desc(), models.Comment.created_at.desc())
    )
    rows = (await session.execute(stmt)).all()
    return [
        Comment(
            id=c.id,
            report_id=c.report_id,
            content=c.content,
            timestamp=c.timestamp,
            media_url=url,
        )
        for c, url in rows
    ]


async def create_comment(session: AsyncSession, report_id: str, content: str) -> Comment:
    """Append a comment; the parent report must exist."""
    if await session.get(models.Report, report_id) is None:
        raise ReportNotFoundError(report_id)
    row = models.Comment(
        id=str(uuid.uuid4()),
        report_id=report_id,
        content=content,
        timestamp=now_ms(),
    )
    session.add(row)
    await session.commit()
    return Comment(id=row.id, report_id=report_id, content=content, timestamp=row.timestamp)


async def attach_comment_media(
    session: AsyncSession, comment_id: str, url: str, content_type: Optional[str]
) -> None:
    session.add(models.CommentMedia(comment_id=comment_id, url=url, content_type=content_type))
    await session.commit()
