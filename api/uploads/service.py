"""
Upload "service layer".

This file contains logic that is independent of FastAPI's routing layer:
- Validate the form fields before any remote call
- Read file bytes with a size limit
- Resolve the shipment display name and hand the file to the active store
"""

from __future__ import annotations

from typing import Any

from fastapi import UploadFile

from catalog.service import Catalog
from core import settings
from core.errors import LengthRequired, MissingRequiredField, UploadTooLarge

from .stores import ArtifactStore, UploadRequest

READ_CHUNK_BYTES = 1024 * 1024  # 1 MiB


def require(value: str | None, field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise MissingRequiredField(field)
    return cleaned


def check_declared_size(content_length: str | None, max_bytes: int) -> None:
    """
    Reject on the declared request size before reading the body.
    Chunked bodies carry no size, so they are refused rather than spooled.
    The multipart envelope adds a few hundred bytes; the streamed read
    below is the exact check.
    """
    if not content_length:
        raise LengthRequired("Content-Length header is required for uploads.")
    try:
        declared = int(content_length)
    except ValueError as e:
        raise LengthRequired(f"Invalid Content-Length {content_length!r}.") from e
    if declared > max_bytes + 64 * 1024:
        raise UploadTooLarge(max_bytes)


async def read_upload_bytes(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read the upload into memory, stopping as soon as it exceeds `max_bytes`.
    """
    buf = bytearray()

    while True:
        chunk = await file.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise UploadTooLarge(max_bytes)

    return bytes(buf)


async def upload(
    *,
    store: ArtifactStore,
    catalog: Catalog,
    shipment_id: str | None,
    item_id: str | None,
    item_name: str | None,
    file: UploadFile | None,
) -> dict[str, Any]:
    shipment_id = require(shipment_id, "shipment_id")
    item_id = require(item_id, "item_id")
    if file is None:
        raise MissingRequiredField("file")

    if file.size is not None and file.size > settings.max_upload_bytes():
        raise UploadTooLarge(settings.max_upload_bytes())

    data = await read_upload_bytes(file, max_bytes=settings.max_upload_bytes())
    if not data:
        raise MissingRequiredField("file", "Uploaded file is empty.")

    request = UploadRequest(
        shipment_id=shipment_id,
        shipment_name=await catalog.group_name(shipment_id),
        item_id=item_id,
        item_name=(item_name or "").strip(),
        filename=file.filename or "",
        content_type=file.content_type or "application/octet-stream",
    )
    artifact = await store.store(request, data)
    return {"success": True, "artifactRef": artifact.as_dict()}
