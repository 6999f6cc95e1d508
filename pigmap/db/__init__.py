from pigmap.db.database import AsyncSessionLocal, get_db
from pigmap.db.models import Base, Comment, CommentMedia, EditToken, Media, Report

__all__ = [
    "AsyncSessionLocal",
    "get_db",
    "Base",
    "Comment",
    "CommentMedia",
    "EditToken",
    "Media",
    "Report",
]
