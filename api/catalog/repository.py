"""
Catalog SQL (raw), database-backed variant.

Expected tables (created outside this service):
- shipments(id text, name text, created_at timestamptz)
- shipment_items(id bigserial, shipment_id text, item_id text, title text,
  publication_name text, variation text, image_url text, shipping_note text,
  quantity text, extras text[], position int)

Search uses ILIKE over the indexed columns only.
"""

from __future__ import annotations

from typing import Any

from core import db

from .mapping import UNKNOWN_IDENTIFIER, MappedRecord


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def record_from_row(row: dict[str, Any]) -> MappedRecord:
    extras = row.get("extras") or []
    return MappedRecord(
        identifier=str(row.get("item_id") or "").strip() or UNKNOWN_IDENTIFIER,
        display_name=str(row.get("title") or ""),
        publication_name=str(row.get("publication_name") or ""),
        variation=str(row.get("variation") or ""),
        image_ref=str(row.get("image_url") or ""),
        shipping_note=str(row.get("shipping_note") or "").strip() or UNKNOWN_IDENTIFIER,
        quantity="" if row.get("quantity") is None else str(row["quantity"]),
        extra_attachments=tuple(str(x).strip() for x in extras if x and str(x).strip()),
        group=str(row.get("shipment_id") or ""),
    )


async def search_items(query: str, *, shipment_id: str, limit: int = 100) -> list[MappedRecord]:
    pattern = "%" + _escape_like(query) + "%"
    rows = await db.fetch_all(
        """
        SELECT
          i.shipment_id,
          i.item_id,
          i.title,
          i.publication_name,
          i.variation,
          i.image_url,
          i.shipping_note,
          i.quantity,
          i.extras
        FROM shipment_items i
        WHERE i.shipment_id = $1
          AND (
            i.item_id ILIKE $2
            OR i.title ILIKE $2
            OR i.publication_name ILIKE $2
            OR i.variation ILIKE $2
          )
        ORDER BY i.position, i.id
        LIMIT $3
        """,
        shipment_id,
        pattern,
        limit,
    )
    return [record_from_row(r) for r in rows]


async def list_shipments(*, limit: int = 10) -> list[dict[str, Any]]:
    """
    Most recent shipments first.
    """
    return await db.fetch_all(
        """
        SELECT id, name
        FROM shipments
        ORDER BY created_at DESC, id DESC
        LIMIT $1
        """,
        limit,
    )


async def get_shipment(shipment_id: str) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        SELECT id, name
        FROM shipments
        WHERE id = $1
        LIMIT 1
        """,
        shipment_id,
    )
