"""
Blob store for uploaded images.

Images live outside the database, addressed by a path string of the form
``/<namespace>/<uuid><ext>`` that is stored on the owning row.  The store
is not transactional: callers decide whether a failure
aborts their operation (writes) or is only logged (deletes).
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from app.config import settings

logger = logging.getLogger(__name__)

AD_NAMESPACE = "ads"
USER_NAMESPACE = "users"

_EXTENSIONS = {"image/jpeg": ".jpg", "image/jpg": ".jpg", "image/png": ".png"}
_MEDIA_TYPES = {".jpg": "image/jpeg", ".jpeg": "image/jpeg", ".png": "image/png"}


class BlobStorageError(Exception):
    """Raised when a blob cannot be written, read or removed."""


@dataclass
class ImageUpload:
    """An uploaded image as received from the transport layer."""

    data: bytes
    content_type: Optional[str]

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return _EXTENSIONS.get(self.content_type or "", "")


def media_type_for(path: str) -> str:
    """Content type to serve a stored blob with, derived from its extension."""
    return _MEDIA_TYPES.get(Path(path).suffix.lower(), "application/octet-stream")


class BlobStore(Protocol):
    def save(self, data: bytes, namespace: str, extension: str = "") -> str: ...

    def load(self, path: str) -> bytes: ...

    def delete(self, path: str) -> None: ...


class LocalBlobStore:
    """Filesystem-backed ``BlobStore`` rooted at *root*."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        relative = path.lstrip("/")
        target = (self.root / relative).resolve()
        if self.root.resolve() not in target.parents:
            raise BlobStorageError(f"Path escapes the storage root: {path}")
        return target

    def save(self, data: bytes, namespace: str, extension: str = "") -> str:
        name = f"{uuid.uuid4()}{extension}"
        directory = self.root / namespace
        try:
            directory.mkdir(parents=True, exist_ok=True)
            (directory / name).write_bytes(data)
        except OSError as exc:
            raise BlobStorageError(f"Could not save file: {exc}") from exc
        logger.info("Blob saved: %s/%s (%d bytes)", namespace, name, len(data))
        return f"/{namespace}/{name}"

    def load(self, path: str) -> bytes:
        if not path:
            raise BlobStorageError("Blob path is empty")
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except FileNotFoundError as exc:
            raise BlobStorageError(f"Blob not found: {path}") from exc
        except OSError as exc:
            raise BlobStorageError(f"Could not read blob {path}: {exc}") from exc

    def delete(self, path: str) -> None:
        if not path:
            return
        target = self._resolve(path)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise BlobStorageError(f"Could not delete blob {path}: {exc}") from exc
        logger.info("Blob deleted: %s", path)


def get_blob_store() -> BlobStore:
    """FastAPI dependency returning the configured blob store."""
    return LocalBlobStore(settings.UPLOAD_DIR)
