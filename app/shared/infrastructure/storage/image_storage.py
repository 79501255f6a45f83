"""
Image storage for crop photos.

``LocalImageStorage`` writes photos below ``UPLOAD_DIR`` and hands out URLs
under ``UPLOAD_URL_PREFIX``, where the application serves them back.
``InMemoryImageStorage`` keeps the bytes in a dict for tests. Uploads are
driven through the retry orchestrator by the crop routes.
"""

import hashlib
from dataclasses import dataclass
from typing import Dict, Protocol

import anyio

from app.shared.core.exceptions import ExternalServiceError
from app.shared.utils.logging import get_logger

from ..database.document_store import new_object_id, utcnow_iso

logger = get_logger(__name__)

EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


@dataclass(frozen=True)
class StoredImage:
    id: str
    url: str
    filename: str
    content_type: str
    size: int
    checksum: str
    uploaded_at: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "url": self.url,
            "filename": self.filename,
            "contentType": self.content_type,
            "size": self.size,
            "checksum": self.checksum,
            "uploadedAt": self.uploaded_at,
        }


class ImageStorage(Protocol):
    async def save(self, folder: str, filename: str, content_type: str, content: bytes) -> StoredImage:
        ...


def _stored_image(image_id: str, url: str, filename: str, content_type: str, content: bytes) -> StoredImage:
    return StoredImage(
        id=image_id,
        url=url,
        filename=filename,
        content_type=content_type,
        size=len(content),
        checksum=hashlib.sha256(content).hexdigest(),
        uploaded_at=utcnow_iso(),
    )


class LocalImageStorage:
    """Photos written to the local filesystem, one file per image."""

    def __init__(self, root: str, url_prefix: str = "/uploads"):
        self.root = anyio.Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    async def save(self, folder: str, filename: str, content_type: str, content: bytes) -> StoredImage:
        image_id = new_object_id()
        name = f"{image_id}{EXTENSIONS.get(content_type or '', '')}"

        directory = self.root / folder
        try:
            await directory.mkdir(parents=True, exist_ok=True)
            await (directory / name).write_bytes(content)
        except OSError as e:
            logger.error(f"Image write failed: {e}", folder=folder, image_id=image_id)
            raise ExternalServiceError("Image storage write failed", service="image_storage") from e

        image = _stored_image(image_id, f"{self.url_prefix}/{folder}/{name}", filename, content_type, content)
        logger.info("Image stored", folder=folder, image_id=image_id, size=image.size)
        return image


class InMemoryImageStorage:
    def __init__(self, url_prefix: str = "/uploads"):
        self.url_prefix = url_prefix.rstrip("/")
        self.blobs: Dict[str, bytes] = {}

    async def save(self, folder: str, filename: str, content_type: str, content: bytes) -> StoredImage:
        image_id = new_object_id()
        self.blobs[image_id] = content
        return _stored_image(image_id, f"{self.url_prefix}/{folder}/{image_id}", filename, content_type, content)


def build_image_storage(backend: str, root: str, url_prefix: str) -> ImageStorage:
    if backend == "memory":
        return InMemoryImageStorage(url_prefix)
    return LocalImageStorage(root, url_prefix)
