"""
Google Drive v3 HTTP client helpers.

Used endpoints:
- GET  /drive/v3/files                       -> {"files": [{"id", "name", "createdTime"}, ...]}
- POST /drive/v3/files                       -> folder metadata
- POST /upload/drive/v3/files?uploadType=multipart -> file metadata

Credential acquisition is not handled here: callers pass a bearer token.
"""

from __future__ import annotations

import json
import secrets
from typing import Any

import httpx

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


# Drive failures are explicit and separable from other runtime errors.
class DriveError(RuntimeError):
    pass


def _quote(value: str) -> str:
    """Escape a value for use inside a single-quoted Drive query literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def folder_query(name: str, parent_id: str) -> str:
    return (
        f"name = '{_quote(name)}' and "
        f"'{_quote(parent_id)}' in parents and "
        f"mimeType = '{FOLDER_MIME_TYPE}' and "
        "trashed = false"
    )


def _multipart_related(metadata: dict[str, Any], data: bytes, content_type: str) -> tuple[bytes, str]:
    boundary = f"==={secrets.token_hex(16)}==="
    head = (
        f"--{boundary}\r\n"
        "Content-Type: application/json; charset=UTF-8\r\n\r\n"
        f"{json.dumps(metadata)}\r\n"
        f"--{boundary}\r\n"
        f"Content-Type: {content_type}\r\n\r\n"
    ).encode("utf-8")
    tail = f"\r\n--{boundary}--\r\n".encode("utf-8")
    return head + data + tail, f"multipart/related; boundary={boundary}"


class DriveClient:
    def __init__(
        self,
        *,
        access_token: str,
        base_url: str = "https://www.googleapis.com",
        timeout_s: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        access_token = (access_token or "").strip()
        if not access_token:
            raise DriveError("Drive access token is empty.")
        self._headers = {"Authorization": f"Bearer {access_token}"}
        self._base_url = (base_url or "").strip().rstrip("/")
        self._timeout_s = timeout_s
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout_s,
            transport=self._transport,
        )

    async def _send(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            async with self._client() as client:
                resp = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise DriveError(f"Drive request failed: {e}") from e

        if resp.status_code >= 300:
            # Avoid dumping huge bodies; include a small snippet.
            raise DriveError(f"Drive request failed: {resp.status_code} {resp.text[:500]}")

        try:
            return resp.json()
        except ValueError as e:
            raise DriveError("Drive returned a non-JSON response.") from e

    async def find_folders(self, name: str, parent_id: str) -> list[dict[str, Any]]:
        """
        Non-trashed folders named exactly `name` directly under `parent_id`,
        oldest first.
        """
        data = await self._send(
            "GET",
            "/drive/v3/files",
            params={
                "q": folder_query(name, parent_id),
                "fields": "files(id, name, createdTime)",
                "orderBy": "createdTime",
                "spaces": "drive",
                "supportsAllDrives": "true",
                "includeItemsFromAllDrives": "true",
            },
        )
        files = data.get("files")
        if not isinstance(files, list):
            raise DriveError("Drive returned no file list.")
        # The query is already exact, but Drive name matching ignores some
        # unicode normalization; keep only byte-equal names.
        return [f for f in files if f.get("name") == name]

    async def create_folder(self, name: str, parent_id: str) -> dict[str, Any]:
        data = await self._send(
            "POST",
            "/drive/v3/files",
            params={"fields": "id, name, createdTime", "supportsAllDrives": "true"},
            json={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
        )
        if not data.get("id"):
            raise DriveError("Drive did not return an id for the new folder.")
        return data

    async def upload_file(
        self,
        parent_id: str,
        name: str,
        data: bytes,
        content_type: str,
    ) -> dict[str, Any]:
        body, multipart_type = _multipart_related(
            {"name": name, "parents": [parent_id]},
            data,
            content_type or "application/octet-stream",
        )
        meta = await self._send(
            "POST",
            "/upload/drive/v3/files",
            params={
                "uploadType": "multipart",
                "fields": "id, name, webViewLink",
                "supportsAllDrives": "true",
            },
            content=body,
            headers={"Content-Type": multipart_type},
        )
        if not meta.get("id"):
            raise DriveError("Drive did not return an id for the uploaded file.")
        return meta
