"""
Folder provisioning: resolve a folder by (name, parent), creating it when
missing, one path segment at a time.

Nothing is cached between calls; the remote store is the source of truth.
Calls for the same (name, parent) inside this process are serialized so two
concurrent uploads for one shipment do not both create its folder. Other
processes can still race; duplicates they leave behind are reported as a
conflict and the oldest folder wins.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from core.drive import DriveError
from core.errors import MissingRequiredField, ProvisionerUnavailable

logger = logging.getLogger(__name__)

_DISALLOWED = re.compile(r"[^\w-]+")


def sanitize_folder_name(name: str | None) -> str:
    """
    Keep letters, digits, hyphen and underscore; every other run of
    characters becomes a single "_". Leading/trailing separators are dropped.
    """
    cleaned = _DISALLOWED.sub("_", (name or "").strip())
    return cleaned.strip("_")


class FolderStore(Protocol):
    async def find_folders(self, name: str, parent_id: str) -> list[dict[str, Any]]: ...

    async def create_folder(self, name: str, parent_id: str) -> dict[str, Any]: ...


@dataclass(frozen=True)
class Resolution:
    kind: Literal["found", "created", "conflict"]
    folder_id: str
    candidates: tuple[str, ...] = field(default_factory=tuple)


class _KeyedLocks:
    """asyncio.Lock per key, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._users: dict[tuple[str, str], int] = {}

    @asynccontextmanager
    async def hold(self, key: tuple[str, str]) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class FolderProvisioner:
    def __init__(self, store: FolderStore) -> None:
        self._store = store
        self._locks = _KeyedLocks()

    async def resolve(self, name: str, parent_id: str) -> Resolution:
        folder_name = sanitize_folder_name(name)
        if not folder_name:
            raise MissingRequiredField("name", f"Folder name {name!r} is empty after sanitizing.")
        if not parent_id:
            raise MissingRequiredField("parent", "Parent folder id is empty.")

        async with self._locks.hold((folder_name, parent_id)):
            try:
                existing = await self._store.find_folders(folder_name, parent_id)
                if len(existing) == 1:
                    folder_id = str(existing[0]["id"])
                    logger.debug("folder_found name=%s parent=%s id=%s", folder_name, parent_id, folder_id)
                    return Resolution("found", folder_id)

                if len(existing) > 1:
                    ids = tuple(str(f["id"]) for f in existing)
                    logger.warning(
                        "folder_conflict name=%s parent=%s ids=%s using=%s",
                        folder_name,
                        parent_id,
                        ",".join(ids),
                        ids[0],
                    )
                    return Resolution("conflict", ids[0], ids)

                created = await self._store.create_folder(folder_name, parent_id)
            except DriveError as e:
                raise ProvisionerUnavailable(f"Could not provision folder '{folder_name}': {e}") from e

        folder_id = str(created["id"])
        logger.info("folder_created name=%s parent=%s id=%s", folder_name, parent_id, folder_id)
        return Resolution("created", folder_id)

    async def resolve_or_create(self, name: str, parent_id: str) -> str:
        resolution = await self.resolve(name, parent_id)
        return resolution.folder_id

    async def resolve_path(self, segments: Sequence[str], root_id: str) -> list[str]:
        """
        Walk (and build) root -> segments[0] -> segments[1] ...
        Returns the folder id of every segment; the last one is the leaf.
        """
        ids: list[str] = []
        parent_id = root_id
        for segment in segments:
            parent_id = await self.resolve_or_create(segment, parent_id)
            ids.append(parent_id)
        return ids
