"""Shared fixtures: in-memory stand-ins for the remote stores."""

import asyncio
import itertools

import pytest

from core.drive import DriveError


class FakeDrive:
    """Folder tree + files kept in dicts. Mimics the DriveClient surface."""

    def __init__(self):
        self.folders: dict[str, dict] = {}
        self.files: list[dict] = []
        self.calls: list[tuple] = []
        self.fail = False
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)

    def _check(self):
        if self.fail:
            raise DriveError("Drive request failed: 503 backend error")

    def add_folder(self, name: str, parent_id: str) -> str:
        folder_id = f"f{next(self._ids)}"
        self.folders[folder_id] = {
            "id": folder_id,
            "name": name,
            "parent": parent_id,
            "createdTime": next(self._clock),
        }
        return folder_id

    def children(self, parent_id: str) -> list[dict]:
        return [f for f in self.folders.values() if f["parent"] == parent_id]

    async def find_folders(self, name: str, parent_id: str) -> list[dict]:
        self.calls.append(("find", name, parent_id))
        # Yield so concurrent callers interleave between "find" and "create".
        await asyncio.sleep(0)
        self._check()
        found = [f for f in self.children(parent_id) if f["name"] == name]
        return sorted(found, key=lambda f: f["createdTime"])

    async def create_folder(self, name: str, parent_id: str) -> dict:
        self.calls.append(("create", name, parent_id))
        await asyncio.sleep(0)
        self._check()
        return self.folders[self.add_folder(name, parent_id)]

    async def upload_file(self, parent_id: str, name: str, data: bytes, content_type: str) -> dict:
        self.calls.append(("upload", name, parent_id))
        self._check()
        file_id = f"file{next(self._ids)}"
        self.files.append(
            {"id": file_id, "name": name, "parent": parent_id, "data": data, "content_type": content_type}
        )
        return {"id": file_id, "name": name, "webViewLink": f"https://drive.example/{file_id}"}


class FakeS3Client:
    def __init__(self):
        self.objects: dict[str, dict] = {}

    def put_object(self, *, Bucket, Key, Body, ContentType):
        self.objects[Key] = {"bucket": Bucket, "body": Body, "content_type": ContentType}
        return {"ETag": '"etag"'}


@pytest.fixture
def fake_drive():
    return FakeDrive()


@pytest.fixture
def fake_s3_client():
    return FakeS3Client()
