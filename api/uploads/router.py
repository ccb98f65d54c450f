"""
FastAPI router for upload endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from catalog.router import get_catalog
from catalog.service import Catalog
from core.errors import UnsupportedBackend

from . import service
from .stores import ArtifactStore

router = APIRouter(prefix="/api")


def get_artifact_store(request: Request) -> ArtifactStore:
    store = getattr(request.app.state, "artifact_store", None)
    if store is None:
        raise UnsupportedBackend("Uploads are not configured on this server.")
    return store


@router.post("/upload")
async def upload(
    shipment_id: str | None = Form(default=None),
    item_id: str | None = Form(default=None),
    item_name: str | None = Form(default=None),
    file: UploadFile | None = File(default=None),
    store: ArtifactStore = Depends(get_artifact_store),
    catalog: Catalog = Depends(get_catalog),
) -> dict:
    """
    Store one audit file for an item of a shipment.
    """
    return await service.upload(
        store=store,
        catalog=catalog,
        shipment_id=shipment_id,
        item_id=item_id,
        item_name=item_name,
        file=file,
    )
