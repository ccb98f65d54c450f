"""
Catalog service (orchestration).

Two interchangeable backends answer the same questions:
- SheetCatalog: cached spreadsheet export, searched in memory
- DatabaseCatalog: live Postgres tables, searched with ILIKE

Exactly one is built at startup (see `build_catalog`) and lives on
`app.state.catalog` until shutdown.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from core import settings
from core.errors import MissingRequiredField, UnsupportedBackend
from core.sheets import SAMPLE_ROWS, SheetCsvSource, StaticSource

from . import repository, search as search_engine
from .cache import DatasetCache

logger = logging.getLogger(__name__)


class Catalog(Protocol):
    async def search(self, query: str, *, group: str | None = None) -> list[dict[str, Any]]: ...

    async def list_groups(self, *, limit: int = 10) -> list[dict[str, str]]: ...

    async def group_name(self, group_id: str) -> str: ...

    async def refresh(self) -> None: ...


class SheetCatalog:
    def __init__(self, cache: DatasetCache) -> None:
        self.cache = cache

    async def search(self, query: str, *, group: str | None = None) -> list[dict[str, Any]]:
        # Blank queries never touch the source.
        if not search_engine.normalize_query(query):
            return []
        entry = await self.cache.get()
        results = search_engine.search(entry, query, group=group)
        return [search_engine.to_projection(r) for r in results]

    async def list_groups(self, *, limit: int = 10) -> list[dict[str, str]]:
        entry = await self.cache.get()
        if not entry.group_identifier or limit <= 0:
            return []
        return [{"id": entry.group_identifier, "name": entry.group_identifier}]

    async def group_name(self, group_id: str) -> str:
        # The sheet only carries the stamp itself; it doubles as the name.
        return group_id

    async def refresh(self) -> None:
        self.cache.invalidate()


class DatabaseCatalog:
    def __init__(self, *, result_limit: int = 100) -> None:
        self.result_limit = result_limit

    async def search(self, query: str, *, group: str | None = None) -> list[dict[str, Any]]:
        needle = search_engine.normalize_query(query)
        if not needle:
            return []
        group = (group or "").strip()
        if not group:
            raise MissingRequiredField("shipment", "Select a shipment before searching.")
        records = await repository.search_items(needle, shipment_id=group, limit=self.result_limit)
        return [search_engine.to_projection(r) for r in records]

    async def list_groups(self, *, limit: int = 10) -> list[dict[str, str]]:
        rows = await repository.list_shipments(limit=limit)
        return [{"id": str(r["id"]), "name": str(r["name"] or r["id"])} for r in rows]

    async def group_name(self, group_id: str) -> str:
        row = await repository.get_shipment(group_id)
        if row is None or not row.get("name"):
            return group_id
        return str(row["name"])

    async def refresh(self) -> None:
        # Rows are read live; nothing to drop.
        return None


def build_catalog() -> SheetCatalog | DatabaseCatalog:
    backend = settings.catalog_backend()
    if backend == "postgres":
        return DatabaseCatalog()

    if backend != "sheet":
        raise UnsupportedBackend(f"Unknown CATALOG_BACKEND '{backend}'. Use 'sheet' or 'postgres'.")

    url = settings.sheet_csv_url()
    if url:
        source = SheetCsvSource(
            url,
            timeout_s=settings.http_timeout_seconds(),
            group_cell=settings.sheet_group_cell(),
        )
    else:
        logger.warning("sheet_csv_url_missing using_sample_data=true")
        source = StaticSource(SAMPLE_ROWS)

    return SheetCatalog(DatasetCache(source, ttl_s=settings.cache_ttl_seconds()))
