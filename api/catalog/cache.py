"""
Time-bounded cache in front of the dataset source.

One lock covers "check staleness, fetch if needed, swap", so a refresh is
either fully visible to other requests or not started yet. Entries are
frozen and replaced wholesale.

On a failed fetch the previous entry (if any) stays in place and the error
goes back to the caller; the next `get()` tries again.

`invalidate()` bumps a generation counter. A fetch that was already running
when the counter moved is discarded and the dataset is fetched again.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from core.sheets import DatasetSource

from .mapping import MappedRecord, map_record_with_gaps

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    records: tuple[MappedRecord, ...]
    fetched_at: float
    group_identifier: str | None = None


class DatasetCache:
    def __init__(
        self,
        source: DatasetSource,
        *,
        ttl_s: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._ttl_s = ttl_s
        self._clock = clock
        self._entry: CacheEntry | None = None
        self._generation = 0
        self._lock = asyncio.Lock()

    @property
    def ttl_s(self) -> float:
        return self._ttl_s

    def peek(self) -> CacheEntry | None:
        """Current entry without any freshness check or fetch."""
        return self._entry

    def _is_fresh(self, entry: CacheEntry | None, now: float) -> bool:
        return entry is not None and (now - entry.fetched_at) < self._ttl_s

    async def get(self) -> CacheEntry:
        async with self._lock:
            if self._is_fresh(self._entry, self._clock()):
                return self._entry  # type: ignore[return-value]

            while True:
                generation = self._generation
                entry = await self._fetch()
                if generation == self._generation:
                    self._entry = entry
                    return entry
                logger.info("dataset_fetch_superseded generation=%s", self._generation)

    def invalidate(self) -> None:
        self._generation += 1
        self._entry = None
        logger.info("cache_invalidated")

    async def _fetch(self) -> CacheEntry:
        started = self._clock()
        logger.info("dataset_fetch_started")
        try:
            snapshot = await self._source.fetch()
        except Exception:
            logger.warning(
                "dataset_fetch_failed keeping_previous=%s",
                self._entry is not None,
            )
            raise

        group = snapshot.group_identifier or ""
        records: list[MappedRecord] = []
        incomplete = 0
        for raw in snapshot.records:
            record, gaps = map_record_with_gaps(raw, group=group)
            if gaps:
                incomplete += 1
            records.append(record)

        if incomplete:
            logger.info("mapping_incomplete records=%s total=%s", incomplete, len(records))

        fetched_at = self._clock()
        logger.info(
            "dataset_fetch_complete records=%s group=%s elapsed_s=%.3f",
            len(records),
            snapshot.group_identifier,
            fetched_at - started,
        )
        return CacheEntry(
            records=tuple(records),
            fetched_at=fetched_at,
            group_identifier=snapshot.group_identifier,
        )
