"""
Spreadsheet dataset source.

Fetches a published CSV export (Google Sheets `.../export?format=csv`) and
turns it into `RawRecord`s: ordered field-name -> string mappings whose
column order mirrors the sheet.

The header row is owned by business users and gets renamed; the column
order is fixed by the ingestion template. `RawRecord.at()` exposes that
order so the mapper can fall back to positions.
"""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

import httpx

from .errors import SourceUnavailable

logger = logging.getLogger(__name__)


class RawRecord(Mapping[str, str]):
    """
    Immutable, ordered row. Supports name lookup and positional lookup.
    """

    __slots__ = ("_keys", "_values")

    def __init__(self, pairs: Sequence[tuple[str, str]]) -> None:
        self._keys = tuple(k for k, _ in pairs)
        self._values = dict(pairs)

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"RawRecord({list(self.items())!r})"

    def at(self, index: int) -> str | None:
        """Value of the Nth column, or None when the row is shorter than that."""
        if index < 0 or index >= len(self._keys):
            return None
        return self._values[self._keys[index]]


@dataclass(frozen=True)
class SourceSnapshot:
    records: tuple[RawRecord, ...]
    group_identifier: str | None = None


class DatasetSource(Protocol):
    async def fetch(self) -> SourceSnapshot: ...


def _unique_headers(header: Sequence[str]) -> list[str]:
    """
    Blank headers become `_col<N>`; repeated ones get `_1`, `_2`... suffixes.
    Keeps every column addressable so positions never shift.
    """
    seen: dict[str, int] = {}
    out: list[str] = []
    for idx, raw in enumerate(header):
        name = raw if raw.strip() else f"_col{idx}"
        if name in seen:
            seen[name] += 1
            candidate = f"{name}_{seen[name]}"
            while candidate in seen:
                seen[name] += 1
                candidate = f"{name}_{seen[name]}"
            name = candidate
        seen.setdefault(name, 0)
        out.append(name)
    return out


def parse_csv(text: str) -> list[RawRecord]:
    """
    Parse CSV text with a header row. Blank lines are skipped; short rows are
    padded with "" and extra cells beyond the header are dropped.
    """
    # utf-8-sig exports carry a BOM that would otherwise stick to the first header.
    text = text.lstrip("\ufeff")
    reader = csv.reader(io.StringIO(text))
    try:
        header = next(reader)
    except StopIteration:
        return []

    keys = _unique_headers(header)
    records: list[RawRecord] = []
    for row in reader:
        if not any(cell.strip() for cell in row):
            continue
        cells = list(row[: len(keys)]) + [""] * (len(keys) - len(row))
        records.append(RawRecord(list(zip(keys, cells))))
    return records


def group_from_cell(records: Sequence[RawRecord], cell: tuple[int, int] | None) -> str | None:
    if cell is None:
        return None
    row, col = cell
    if row >= len(records):
        return None
    value = (records[row].at(col) or "").strip()
    return value or None


class SheetCsvSource:
    def __init__(
        self,
        url: str,
        *,
        timeout_s: float = 20.0,
        group_cell: tuple[int, int] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        url = (url or "").strip()
        if not url:
            raise ValueError("Sheet CSV url is empty.")
        self.url = url
        self.timeout_s = timeout_s
        self.group_cell = group_cell
        self._transport = transport

    async def fetch(self) -> SourceSnapshot:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                resp = await client.get(self.url)
        except httpx.HTTPError as e:
            raise SourceUnavailable(f"Could not reach the dataset source: {e}") from e

        if resp.status_code != 200:
            raise SourceUnavailable(
                f"Dataset source returned {resp.status_code}: {resp.text[:200]}"
            )

        try:
            records = parse_csv(resp.text)
        except csv.Error as e:
            raise SourceUnavailable(f"Dataset source returned malformed CSV: {e}") from e

        logger.debug("sheet_csv_fetched rows=%s", len(records))
        return SourceSnapshot(
            records=tuple(records),
            group_identifier=group_from_cell(records, self.group_cell),
        )


# Used when SHEET_CSV_URL is not configured, so the UI can be exercised locally.
SAMPLE_ROWS: list[list[tuple[str, str]]] = [
    [
        ("ITEM ID", "MLA123456"),
        ("Nombre", "Producto de Prueba 1"),
        ("Publicación", "Producto de prueba uno"),
        ("Variación", ""),
        ("Envío", "Full"),
        ("Cantidad", "3"),
        ("Inventario", "INV-001"),
    ],
    [
        ("ITEM ID", "MLA999999"),
        ("Nombre", "Producto de Prueba 2"),
        ("Publicación", "Producto de prueba dos"),
        ("Variación", "Rojo"),
        ("Envío", "Colecta"),
        ("Cantidad", "1"),
        ("Inventario", "INV-002"),
    ],
]


class StaticSource:
    def __init__(self, rows: Sequence[Sequence[tuple[str, str]]], group_identifier: str | None = None) -> None:
        self._records = tuple(RawRecord(list(r)) for r in rows)
        self._group_identifier = group_identifier

    async def fetch(self) -> SourceSnapshot:
        return SourceSnapshot(records=self._records, group_identifier=self._group_identifier)
