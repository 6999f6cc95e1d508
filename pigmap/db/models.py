from sqlalchemy import Column, BigInteger, Integer, Float, Text, ForeignKey, Index
from sqlalchemy.orm import DeclarativeBase
import time


def _now_ms() -> int:
    return int(time.time() * 1000)


class Base(DeclarativeBase):
    pass


class Report(Base):
    """
    One geotagged sighting. id and position are fixed at creation; type,
    count and description can be rewritten with a valid edit token.
    """
    __tablename__ = "reports"

    id = Column(Text, primary_key=True)
    type = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    count = Column(Integer, nullable=False, default=1)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    timestamp = Column(BigInteger, nullable=False)
    icon = Column(Text)
    created_at = Column(BigInteger, nullable=False, default=_now_ms)

    __table_args__ = (Index("idx_reports_timestamp", "timestamp"),)


class EditToken(Base):
    """Capability token bound 1:1 to a report; expires_at in epoch millis."""
    __tablename__ = "edit_tokens"

    token = Column(Text, primary_key=True)
    report_id = Column(Text, ForeignKey("reports.id"), nullable=False, unique=True)
    expires_at = Column(BigInteger, nullable=False)
    created_at = Column(BigInteger, nullable=False, default=_now_ms)


class Media(Base):
    __tablename__ = "media"

    id = Column(Integer, primary_key=True, autoincrement=True)
    report_id = Column(Text, ForeignKey("reports.id"), nullable=False)
    url = Column(Text, nullable=False)
    content_type = Column(Text)
    created_at = Column(BigInteger, nullable=False, default=_now_ms)

    __table_args__ = (Index("idx_media_report", "report_id"),)


class Comment(Base):
    """Append-only comment on a report."""
    __tablename__ = "comments"

    id = Column(Text, primary_key=True)
    report_id = Column(Text, ForeignKey("reports.id"), nullable=False)
    content = Column(Text, nullable=False, default="")
    timestamp = Column(BigInteger, nullable=False)
    created_at = Column(BigInteger, nullable=False, default=_now_ms)

    __table_args__ = (Index("idx_comments_report_time", "report_id", "timestamp"),)


class CommentMedia(Base):
    __tablename__ = "comment_media"

    id = Column(Integer, primary_key=True, autoincrement=True)
    comment_id = Column(Text, ForeignKey("comments.id"), nullable=False)
    url = Column(Text, nullable=False)
    content_type = Column(Text)
    created_at = Column(BigInteger, nullable=False, default=_now_ms)
