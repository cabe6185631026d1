"""
Unit tests for single-file operations and the two-phase rename.

The interrupted-rename tests stop between phases on purpose: that is the
state a crash leaves behind, and it has to be visible.
"""

import pytest
import pytest_asyncio

from bucketfs.core.storage.errors import InvalidNameError, NotFoundError, RenamePhaseError
from bucketfs.core.storage.files import FileService
from bucketfs.core.storage.rename import RenamePhase, plan_rename


@pytest.fixture
def files(store, clock):
    return FileService(store, clock)


@pytest_asyncio.fixture
async def stored_file(store):
    await store.put(
        "docs/1000-old.txt",
        b"hello",
        content_type="text/plain",
        custom_metadata={"original-name": "old.txt", "user-id": "u-1"},
    )
    return "docs/1000-old.txt"


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------

class TestPlanRename:

    def test_keeps_timestamp_and_path(self):
        operation = plan_rename("docs/1000-old.txt", "new.txt")

        assert operation.new_key == "docs/1000-new.txt"
        assert operation.phase is RenamePhase.PLANNED
        assert operation.is_folder is False

    def test_root_file(self):
        assert plan_rename("1000-old.txt", "new.txt").new_key == "1000-new.txt"

    def test_key_without_timestamp(self):
        assert plan_rename("legacy.txt", "new.txt").new_key == "new.txt"

    def test_rejects_separator(self):
        with pytest.raises(InvalidNameError):
            plan_rename("1000-old.txt", "sub/new.txt")

    def test_file_service_rejects_marker(self, files):
        with pytest.raises(InvalidNameError):
            files.plan_rename("1-docs/.folder", "x")


# ---------------------------------------------------------------------------
# Two-phase rename
# ---------------------------------------------------------------------------

class TestRenameFile:

    @pytest.mark.asyncio
    async def test_full_rename(self, files, store, stored_file):
        operation = files.plan_rename(stored_file, "new.txt")

        await files.copy_phase(operation)
        await files.delete_phase(operation)

        assert store.keys() == ["docs/1000-new.txt"]
        moved = await store.get("docs/1000-new.txt")
        assert moved.body == b"hello"
        assert moved.content_type == "text/plain"
        assert moved.custom_metadata["original-name"] == "new.txt"
        assert moved.custom_metadata["user-id"] == "u-1"
        assert "renamed-at" in moved.custom_metadata

    @pytest.mark.asyncio
    async def test_interrupted_after_copy_leaves_both_keys(self, files, store, stored_file):
        operation = files.plan_rename(stored_file, "new.txt")

        await files.copy_phase(operation)

        assert operation.phase is RenamePhase.COPIED
        assert store.keys() == ["docs/1000-new.txt", "docs/1000-old.txt"]
        old = await store.get("docs/1000-old.txt")
        new = await store.get("docs/1000-new.txt")
        assert old.body == new.body

    @pytest.mark.asyncio
    async def test_delete_phase_requires_copy(self, files, store, stored_file):
        operation = files.plan_rename(stored_file, "new.txt")

        with pytest.raises(RenamePhaseError):
            await files.delete_phase(operation)

        assert store.keys() == [stored_file]

    @pytest.mark.asyncio
    async def test_copy_phase_cannot_repeat(self, files, stored_file):
        operation = files.plan_rename(stored_file, "new.txt")
        await files.copy_phase(operation)

        with pytest.raises(RenamePhaseError):
            await files.copy_phase(operation)

    @pytest.mark.asyncio
    async def test_missing_source(self, files, store):
        operation = files.plan_rename("1-missing.txt", "x.txt")

        with pytest.raises(NotFoundError):
            await files.copy_phase(operation)

        assert store.calls.get("put", 0) == 0

    @pytest.mark.asyncio
    async def test_same_name_keeps_the_file(self, files, store, stored_file):
        operation = files.plan_rename(stored_file, "old.txt")

        await files.copy_phase(operation)
        await files.delete_phase(operation)

        assert store.keys() == [stored_file]
        assert store.calls.get("delete", 0) == 0


# ---------------------------------------------------------------------------
# Fetch and delete
# ---------------------------------------------------------------------------

class TestFetchAndDelete:

    @pytest.mark.asyncio
    async def test_fetch(self, files, stored_file):
        obj = await files.fetch(stored_file)
        assert obj.body == b"hello"

    @pytest.mark.asyncio
    async def test_fetch_missing(self, files):
        with pytest.raises(NotFoundError):
            await files.fetch("nope")

    @pytest.mark.asyncio
    async def test_delete(self, files, store, stored_file):
        await files.delete_file(stored_file)
        assert store.keys() == []

    @pytest.mark.asyncio
    async def test_delete_missing(self, files, store):
        with pytest.raises(NotFoundError):
            await files.delete_file("nope")

        assert store.calls.get("delete", 0) == 0
