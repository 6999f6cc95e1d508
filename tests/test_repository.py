import pytest
import pytest_asyncio
from sqlalchemy import update
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from pigmap.core.config import settings
from pigmap.db import models, repository
from pigmap.db.repository import EditTokenError, ReportNotFoundError
from pigmap.db.schemas import ReportCreate, ReportUpdate


@pytest_asyncio.fixture
async def session(db_url):
    engine = create_async_engine(db_url)
    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as s:
        yield s
    await engine.dispose()


def _new(**overrides):
    data = {"type": "cow", "latitude": 39.1, "longitude": -94.5, "description": "by the road"}
    data.update(overrides)
    return ReportCreate.model_validate(data)


@pytest.mark.asyncio
async def test_create_report_issues_token(session):
    report, token = await repository.create_report(session, _new())

    assert report.id and token and report.id != token
    assert report.icon == settings.DEFAULT_ICON
    stored = await session.get(models.EditToken, token)
    assert stored.report_id == report.id
    assert stored.expires_at - report.timestamp == settings.edit_token_ttl_ms()


@pytest.mark.asyncio
async def test_list_recent_reports_newest_first_with_media(session):
    first, _ = await repository.create_report(session, _new())
    await session.execute(
        update(models.Report).where(models.Report.id == first.id).values(timestamp=first.timestamp - 1000)
    )
    await session.commit()
    second, _ = await repository.create_report(session, _new(type="goat"))
    await repository.attach_report_media(session, first.id, "/media/a.jpg", "image/jpeg")

    reports = await repository.list_recent_reports(session, 10)

    assert [r.id for r in reports] == [second.id, first.id]
    assert reports[1].media_url == "/media/a.jpg"
    assert len(await repository.list_recent_reports(session, 1)) == 1


@pytest.mark.asyncio
async def test_update_with_token(session):
    report, token = await repository.create_report(session, _new())

    updated = await repository.update_report(
        session, report.id, token, ReportUpdate(type="horse", count=2)
    )

    assert updated.type == "horse"
    assert updated.count == 2
    assert updated.description == "by the road"
    assert updated.latitude == report.latitude


@pytest.mark.asyncio
async def test_update_rejects_bad_tokens(session):
    report, token = await repository.create_report(session, _new())
    other, other_token = await repository.create_report(session, _new())

    with pytest.raises(EditTokenError):
        await repository.update_report(session, report.id, None, ReportUpdate(count=2))
    with pytest.raises(EditTokenError):
        await repository.update_report(session, report.id, "nope", ReportUpdate(count=2))
    with pytest.raises(EditTokenError):
        await repository.update_report(session, report.id, other_token, ReportUpdate(count=2))
    with pytest.raises(ReportNotFoundError):
        await repository.update_report(session, "missing", token, ReportUpdate(count=2))


@pytest.mark.asyncio
async def test_expired_token(session):
    report, token = await repository.create_report(session, _new())
    await session.execute(
        update(models.EditToken).where(models.EditToken.token == token).values(expires_at=0)
    )
    await session.commit()

    with pytest.raises(EditTokenError):
        await repository.update_report(session, report.id, token, ReportUpdate(count=2))


@pytest.mark.asyncio
async def test_comments(session):
    report, _ = await repository.create_report(session, _new())
    first = await repository.create_comment(session, report.id, "seen near barn")
    second = await repository.create_comment(session, report.id, "still there")
    await repository.attach_comment_media(session, second.id, "/media/c.png", "image/png")

    comments = await repository.list_comments(session, report.id)

    assert {c.id for c in comments} == {first.id, second.id}
    assert comments[0].timestamp >= comments[1].timestamp
    by_id = {c.id: c for c in comments}
    assert by_id[second.id].media_url == "/media/c.png"
    assert by_id[first.id].report_id == report.id


@pytest.mark.asyncio
async def test_comment_needs_existing_report(session):
    with pytest.raises(ReportNotFoundError):
        await repository.create_comment(session, "missing", "hello")
