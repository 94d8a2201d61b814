"""
Blob storage for uploaded media.

The core only needs ``upload(filename, content, content_type) -> public_url``.
LocalBlobStore writes into UPLOAD_DIR and serves from MEDIA_BASE_URL; other
stores (S3, Drive, ...) implement the same method.
"""
import os
import re
import uuid
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Optional

from orderhub.core.settings import settings
from orderhub.logging_config import get_logger

logger = get_logger(__name__)


class BlobStoreError(Exception):
    """The store rejected or failed to write a file."""


class BlobStore(ABC):
    @abstractmethod
    def upload(self, filename: str, content: bytes, content_type: Optional[str] = None) -> str:
        """Store the bytes and return the public URL."""


def _safe_filename(filename: str) -> str:
    base = os.path.basename(filename or "file")
    name, ext = os.path.splitext(base)
    name = re.sub(r"[^A-Za-z0-9_-]+", "_", name).strip("_") or "file"
    ext = re.sub(r"[^A-Za-z0-9.]+", "", ext)[:10]
    return f"{uuid.uuid4().hex[:12]}_{name[:80]}{ext.lower()}"


class LocalBlobStore(BlobStore):
    """Writes files to a local directory."""

    def __init__(self, root_dir: str, base_url: str):
        self.root_dir = root_dir
        self.base_url = base_url.rstrip("/")

    def upload(self, filename: str, content: bytes, content_type: Optional[str] = None) -> str:
        stored_name = _safe_filename(filename)
        path = os.path.join(self.root_dir, stored_name)
        try:
            os.makedirs(self.root_dir, exist_ok=True)
            with open(path, "wb") as f:
                f.write(content)
        except OSError as e:
            raise BlobStoreError(f"Could not store file: {e.strerror or e}") from e
        logger.info(f"Saved {filename} locally to {path}")
        return f"{self.base_url}/{stored_name}"


@lru_cache
def get_blob_store() -> BlobStore:
    return LocalBlobStore(settings.UPLOAD_DIR, settings.MEDIA_BASE_URL)
