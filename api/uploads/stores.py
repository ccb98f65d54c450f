"""
Artifact stores.

Both back-ends take the same request and return the same reference:
- DriveArtifactStore: <root>/<shipment name>/<item id - item name>/<file>
- ObjectKeyArtifactStore: flat key <prefix>/<shipment id>/<item id>_<ms>.<ext>

Only one is active per deployment (STORAGE_BACKEND). Neither retries.
"""

from __future__ import annotations

import logging
import mimetypes
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Protocol

from core import settings
from core.drive import DriveClient, DriveError
from core.errors import ProvisionerUnavailable, UnsupportedBackend
from core.object_store import ObjectStoreError, S3ObjectStore

from .provisioner import FolderProvisioner, sanitize_folder_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadRequest:
    shipment_id: str
    item_id: str
    content_type: str
    shipment_name: str = ""
    item_name: str = ""
    filename: str = ""


@dataclass(frozen=True)
class StoredArtifact:
    backend: str
    id: str
    name: str
    location: str

    def as_dict(self) -> dict[str, str]:
        return {"backend": self.backend, "id": self.id, "name": self.name, "location": self.location}


class ArtifactStore(Protocol):
    async def store(self, request: UploadRequest, data: bytes) -> StoredArtifact: ...


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def file_extension(filename: str, content_type: str) -> str:
    """
    Extension without the dot: from the filename first, then the content type.
    """
    suffix = PurePosixPath(filename or "").suffix.lower().lstrip(".")
    if suffix and suffix.isalnum():
        return suffix
    guessed = mimetypes.guess_extension((content_type or "").split(";")[0].strip())
    if guessed:
        return guessed.lstrip(".")
    return "bin"


def item_folder_name(item_id: str, item_name: str = "") -> str:
    item_id = (item_id or "").strip()
    item_name = (item_name or "").strip()
    return f"{item_id} - {item_name}" if item_name else item_id


class DriveArtifactStore:
    backend = "drive"

    def __init__(
        self,
        drive: DriveClient,
        *,
        root_folder_id: str,
        provisioner: FolderProvisioner | None = None,
        now_ms: Callable[[], int] = _epoch_ms,
    ) -> None:
        if not root_folder_id:
            raise UnsupportedBackend("DRIVE_ROOT_FOLDER_ID is not set.")
        self._drive = drive
        self._root_folder_id = root_folder_id
        self._provisioner = provisioner or FolderProvisioner(drive)
        self._now_ms = now_ms

    def folder_path(self, request: UploadRequest) -> list[str]:
        return [
            request.shipment_name or request.shipment_id,
            item_folder_name(request.item_id, request.item_name),
        ]

    async def store(self, request: UploadRequest, data: bytes) -> StoredArtifact:
        folder_ids = await self._provisioner.resolve_path(self.folder_path(request), self._root_folder_id)
        leaf_id = folder_ids[-1]

        name = (
            f"{sanitize_folder_name(request.item_id)}_{self._now_ms()}"
            f".{file_extension(request.filename, request.content_type)}"
        )
        try:
            meta = await self._drive.upload_file(leaf_id, name, data, request.content_type)
        except DriveError as e:
            raise ProvisionerUnavailable(f"Could not store the file: {e}") from e

        logger.info(
            "artifact_stored backend=drive folder=%s file=%s bytes=%s",
            leaf_id,
            meta["id"],
            len(data),
        )
        return StoredArtifact(
            backend=self.backend,
            id=str(meta["id"]),
            name=str(meta.get("name") or name),
            location=str(meta.get("webViewLink") or f"drive://{leaf_id}/{meta['id']}"),
        )


class ObjectKeyArtifactStore:
    backend = "s3"

    def __init__(
        self,
        objects: S3ObjectStore,
        *,
        prefix: str = "auditoria",
        now_ms: Callable[[], int] = _epoch_ms,
    ) -> None:
        self._objects = objects
        self._prefix = prefix.strip("/")
        self._now_ms = now_ms

    def object_key(self, request: UploadRequest) -> str:
        shipment = sanitize_folder_name(request.shipment_id)
        item = sanitize_folder_name(request.item_id)
        ext = file_extension(request.filename, request.content_type)
        key = f"{shipment}/{item}_{self._now_ms()}.{ext}"
        return f"{self._prefix}/{key}" if self._prefix else key

    async def store(self, request: UploadRequest, data: bytes) -> StoredArtifact:
        key = self.object_key(request)
        try:
            await self._objects.put(key, data, request.content_type)
        except ObjectStoreError as e:
            raise ProvisionerUnavailable(f"Could not store the file: {e}") from e

        logger.info("artifact_stored backend=s3 key=%s bytes=%s", key, len(data))
        return StoredArtifact(
            backend=self.backend,
            id=key,
            name=key.rsplit("/", 1)[-1],
            location=self._objects.url_for(key),
        )


def build_artifact_store() -> DriveArtifactStore | ObjectKeyArtifactStore:
    backend = settings.storage_backend()
    timeout_s = settings.http_timeout_seconds()

    if backend == "drive":
        drive = DriveClient(
            access_token=settings.drive_access_token(),
            base_url=settings.drive_base_url(),
            timeout_s=timeout_s,
        )
        return DriveArtifactStore(drive, root_folder_id=settings.drive_root_folder_id())

    if backend == "s3":
        objects = S3ObjectStore(
            bucket=settings.s3_bucket(),
            region=settings.aws_region(),
            timeout_s=timeout_s,
        )
        return ObjectKeyArtifactStore(objects, prefix=settings.s3_prefix())

    raise UnsupportedBackend(f"Unknown STORAGE_BACKEND '{backend}'. Use 'drive' or 's3'.")
