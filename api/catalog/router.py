"""
Catalog API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from core import settings

from . import schemas
from .service import Catalog

router = APIRouter(prefix="/api")


def get_catalog(request: Request) -> Catalog:
    return request.app.state.catalog


@router.get("/search", response_model=list[schemas.ItemResult])
async def search(
    q: str = Query(default="", max_length=200),
    shipment: str | None = Query(default=None, max_length=200),
    catalog: Catalog = Depends(get_catalog),
) -> list[dict]:
    return await catalog.search(q, group=shipment)


@router.get("/shipments", response_model=list[schemas.Shipment])
async def list_shipments(
    limit: int | None = Query(default=None, ge=1, le=100),
    catalog: Catalog = Depends(get_catalog),
) -> list[dict]:
    return await catalog.list_groups(limit=limit or settings.shipments_limit())


@router.post("/refresh")
async def refresh(catalog: Catalog = Depends(get_catalog)) -> dict:
    await catalog.refresh()
    return {"success": True}
