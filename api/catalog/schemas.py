"""
Pydantic schemas for catalog endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ItemResult(BaseModel):
    title: str
    subtitle: str = ""
    publicationName: str = ""
    variation: str = ""
    image: str = ""
    envio: str = ""
    quantity: str = ""
    agregados: list[str] = Field(default_factory=list)
    shipment: str = ""


class Shipment(BaseModel):
    id: str
    name: str
