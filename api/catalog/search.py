"""
In-memory search over a cache entry.

Case-insensitive substring match against every attribute of a record; no
ranking, results keep the dataset order. A blank query matches nothing.
"""

from __future__ import annotations

from typing import Any

from .cache import CacheEntry
from .mapping import MappedRecord


def normalize_query(query: str | None) -> str:
    return (query or "").strip().lower()


def matches(record: MappedRecord, needle: str) -> bool:
    return any(needle in value.lower() for value in record.searchable_values())


def search(entry: CacheEntry, query: str | None, *, group: str | None = None) -> list[MappedRecord]:
    needle = normalize_query(query)
    if not needle:
        return []

    group = (group or "").strip()
    return [
        record
        for record in entry.records
        if (not group or record.group == group) and matches(record, needle)
    ]


def to_projection(record: MappedRecord) -> dict[str, Any]:
    return {
        "title": record.identifier,
        "subtitle": record.display_name,
        "publicationName": record.publication_name,
        "variation": record.variation,
        "image": record.image_ref,
        "envio": record.shipping_note,
        "quantity": record.quantity,
        "agregados": list(record.extra_attachments),
        "shipment": record.group,
    }
