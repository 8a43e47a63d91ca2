"""
Blob lifecycle helpers shared by the ad and user services.

Writes are part of the operation: a failed save aborts it with
``ValidationError`` before anything is flushed.  Deletes are not: a
failed delete is logged and the caller carries on, leaving at worst an
orphaned file behind.
"""
import logging

from app.errors import ValidationError
from app.storage import BlobStorageError, BlobStore, ImageUpload

logger = logging.getLogger(__name__)


def store_image(blobs: BlobStore, image: ImageUpload, namespace: str) -> str:
    try:
        return blobs.save(image.data, namespace, image.extension)
    except BlobStorageError as exc:
        raise ValidationError(f"Could not save image: {exc}") from exc


def discard_image(blobs: BlobStore, path: str | None, owner: str) -> None:
    if not path:
        return
    try:
        blobs.delete(path)
    except BlobStorageError as exc:
        logger.error("Could not delete image %s of %s: %s", path, owner, exc)


def read_image(blobs: BlobStore, path: str | None, owner: str) -> bytes:
    """Return the blob at *path*, or ``b""`` when there is none or it is unreadable."""
    if not path:
        logger.warning("No image attached to %s", owner)
        return b""
    try:
        return blobs.load(path)
    except BlobStorageError as exc:
        logger.error("Could not read image %s of %s: %s", path, owner, exc)
        return b""
