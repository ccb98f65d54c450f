"""Tests for folder resolve-or-create."""

import asyncio

import pytest

from core.errors import MissingRequiredField, ProvisionerUnavailable
from uploads.provisioner import FolderProvisioner, sanitize_folder_name

ROOT = "root"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("ENV-2024_01", "ENV-2024_01"),
        ("  Envío 12  ", "Envío_12"),
        ("MLA1 - Silla/Roja", "MLA1_-_Silla_Roja"),
        ("a//b??c", "a_b_c"),
        ("../etc", "etc"),
        ("   ", ""),
        (None, ""),
    ],
)
def test_sanitize_folder_name(raw, expected):
    assert sanitize_folder_name(raw) == expected


@pytest.mark.asyncio
async def test_creates_missing_folder(fake_drive):
    provisioner = FolderProvisioner(fake_drive)

    resolution = await provisioner.resolve("ENV-1", ROOT)

    assert resolution.kind == "created"
    assert fake_drive.folders[resolution.folder_id]["parent"] == ROOT


@pytest.mark.asyncio
async def test_sequential_calls_are_idempotent(fake_drive):
    provisioner = FolderProvisioner(fake_drive)

    first = await provisioner.resolve_or_create("ENV-1", ROOT)
    second = await provisioner.resolve("ENV-1", ROOT)

    assert second.kind == "found"
    assert second.folder_id == first
    assert len(fake_drive.children(ROOT)) == 1


@pytest.mark.asyncio
async def test_name_is_sanitized_before_lookup(fake_drive):
    existing = fake_drive.add_folder("Envio_7", ROOT)
    provisioner = FolderProvisioner(fake_drive)

    assert await provisioner.resolve_or_create(" Envio 7 ", ROOT) == existing
    assert ("find", "Envio_7", ROOT) in fake_drive.calls


@pytest.mark.asyncio
async def test_existing_duplicates_report_conflict_and_use_oldest(fake_drive):
    oldest = fake_drive.add_folder("ENV-1", ROOT)
    newer = fake_drive.add_folder("ENV-1", ROOT)
    provisioner = FolderProvisioner(fake_drive)

    resolution = await provisioner.resolve("ENV-1", ROOT)

    assert resolution.kind == "conflict"
    assert resolution.folder_id == oldest
    assert resolution.candidates == (oldest, newer)
    assert not any(call[0] == "create" for call in fake_drive.calls)


@pytest.mark.asyncio
async def test_concurrent_calls_for_same_folder_create_it_once(fake_drive):
    provisioner = FolderProvisioner(fake_drive)

    ids = await asyncio.gather(*(provisioner.resolve_or_create("ENV-1", ROOT) for _ in range(5)))

    assert len(set(ids)) == 1
    assert len(fake_drive.children(ROOT)) == 1
    # Locks are released once every caller is done.
    assert len(provisioner._locks) == 0


@pytest.mark.asyncio
async def test_different_parents_do_not_share_folders(fake_drive):
    provisioner = FolderProvisioner(fake_drive)

    a = await provisioner.resolve_or_create("MLA1", "p1")
    b = await provisioner.resolve_or_create("MLA1", "p2")

    assert a != b


@pytest.mark.asyncio
async def test_resolve_path_builds_each_level(fake_drive):
    provisioner = FolderProvisioner(fake_drive)

    ids = await provisioner.resolve_path(["ENV-1", "MLA1 - Silla"], ROOT)

    assert len(ids) == 2
    assert fake_drive.folders[ids[0]]["name"] == "ENV-1"
    assert fake_drive.folders[ids[1]]["name"] == "MLA1_-_Silla"
    assert fake_drive.folders[ids[1]]["parent"] == ids[0]

    again = await provisioner.resolve_path(["ENV-1", "MLA1 - Silla"], ROOT)
    assert again == ids
    assert len(fake_drive.folders) == 2


@pytest.mark.asyncio
async def test_remote_failure_is_provisioner_unavailable(fake_drive):
    fake_drive.fail = True
    provisioner = FolderProvisioner(fake_drive)

    with pytest.raises(ProvisionerUnavailable):
        await provisioner.resolve_or_create("ENV-1", ROOT)
    assert len(provisioner._locks) == 0


@pytest.mark.asyncio
async def test_unusable_name_rejected_before_remote_call(fake_drive):
    provisioner = FolderProvisioner(fake_drive)

    with pytest.raises(MissingRequiredField):
        await provisioner.resolve_or_create("???", ROOT)
    assert fake_drive.calls == []
