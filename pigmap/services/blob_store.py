"""
Local-directory media store.

Files are named after the owning record (``<report_id>.<ext>``) and served
back by the StaticFiles mount at settings.MEDIA_BASE_URL.
"""
import asyncio
import logging
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from pigmap.core.config import settings

logger = logging.getLogger("pigmap.media")


def _extension(filename: Optional[str]) -> str:
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].lower()
        if ext.isalnum():
            return ext
    return "bin"


class LocalBlobStore:
    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None):
        self.root = Path(root or settings.MEDIA_DIR)
        self.base_url = (base_url or settings.MEDIA_BASE_URL).rstrip("/")

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    async def put(self, name: str, upload: UploadFile) -> str:
        """Store the upload under ``<name>.<ext>`` and return its public URL."""
        file_name = f"{name}.{_extension(upload.filename)}"
        data = await upload.read()
        path = self.ensure_root() / file_name
        await asyncio.to_thread(path.write_bytes, data)
        logger.info("stored %s (%d bytes, %s)", file_name, len(data), upload.content_type)
        return f"{self.base_url}/{file_name}"


def has_content(upload: Optional[UploadFile]) -> bool:
    """Browsers post an empty file part when nothing was picked."""
    return upload is not None and bool(upload.filename) and (upload.size is None or upload.size > 0)
