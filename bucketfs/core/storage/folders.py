"""
Folder simulation on a flat object store.

A folder is a zero-byte marker object at `<path>/<ts>-<name>/.folder`.
Its existence is the folder's existence. Per folder:

    absent --create--> present --rename--> present (new key)
                               --delete--> absent

What this engine deliberately does NOT do:
- check sibling names before creating (two "Photos" folders with different
  timestamps are legal; concurrent creates can produce exactly that)
- move children on rename, or delete them on delete. Files and sub-folders
  whose keys start with the old folder's path keep their keys and become
  orphans: their decoded path no longer matches any marker, so nothing
  in the folder tree leads to them.
"""

import logging
from datetime import datetime
from typing import Optional, Union

from .clock import Clock, to_iso, to_millis
from .errors import InvalidNameError, NotFoundError
from .keys import VirtualPath, decode_key, encode_key, is_folder_key, normalize_path, validate_name
from .models import FolderEntry
from .rename import RenameOperation, RenamePhase, plan_rename
from .store import ObjectStore

logger = logging.getLogger(__name__)


def folder_from_key(key: str, created_at: datetime) -> FolderEntry:
    """Materialize a FolderEntry from a marker key."""
    decoded = decode_key(key)
    return FolderEntry(
        key=key,
        path=decoded.path,
        name=decoded.display_name,
        stored_name=decoded.stored_name,
        created_at=created_at,
    )


class FolderService:
    """Create, rename and delete folder markers."""

    def __init__(self, store: ObjectStore, clock: Clock) -> None:
        self._store = store
        self._clock = clock

    async def create_folder(
        self,
        path: Union[str, VirtualPath, None],
        name: str,
        user_id: Optional[str] = None,
    ) -> FolderEntry:
        """
        Write a new marker under `path`.

        No collision check: creating "Docs" twice gives two markers with
        different timestamps, both listed.
        """
        validate_name(name)
        now = self._clock.now()
        key = encode_key(normalize_path(path), name, to_millis(now), is_folder=True)

        metadata = {
            "type": "folder",
            "folder-name": name,
            "created-at": to_iso(now),
        }
        if user_id:
            metadata["user-id"] = user_id

        await self._store.put(key, b"", content_type=None, custom_metadata=metadata)

        logger.info("Created folder", extra={"key": key, "user_id": user_id})

        return folder_from_key(key, created_at=now)

    def plan_rename(self, marker_key: str, new_name: str) -> RenameOperation:
        """Plan a folder rename. Only marker keys are accepted."""
        if not is_folder_key(marker_key):
            raise InvalidNameError("Invalid folder ID")
        return plan_rename(marker_key, new_name)

    async def copy_phase(self, operation: RenameOperation) -> RenameOperation:
        """
        Phase 1: write the new marker, keeping the original creation time.

        Children are not touched (see module docstring).
        """
        operation.require(RenamePhase.PLANNED)

        old = await self._store.head(operation.old_key)
        if old is None:
            raise NotFoundError(f"Folder not found: {operation.old_key}")

        if not operation.is_noop:
            now = to_iso(self._clock.now())
            metadata = dict(old.custom_metadata)
            metadata.update({
                "type": "folder",
                "folder-name": operation.new_name,
                "created-at": old.custom_metadata.get("created-at", now),
                "renamed-at": now,
            })
            await self._store.put(
                operation.new_key, b"", content_type=None, custom_metadata=metadata
            )

        operation.advance(RenamePhase.COPIED)
        logger.debug(
            "Folder rename copied",
            extra={"old_key": operation.old_key, "new_key": operation.new_key},
        )
        return operation

    async def delete_phase(self, operation: RenameOperation) -> RenameOperation:
        """Phase 2: drop the old marker."""
        operation.require(RenamePhase.COPIED)

        if not operation.is_noop:
            await self._store.delete(operation.old_key)

        operation.advance(RenamePhase.COMPLETED)
        logger.info(
            "Renamed folder",
            extra={"old_key": operation.old_key, "new_key": operation.new_key},
        )
        return operation

    async def delete_folder(self, marker_key: str) -> None:
        """Delete the marker only. Nested entries are orphaned, not removed."""
        if not is_folder_key(marker_key):
            raise InvalidNameError("Invalid folder ID")

        if await self._store.head(marker_key) is None:
            raise NotFoundError(f"Folder not found: {marker_key}")

        await self._store.delete(marker_key)
        logger.info("Deleted folder marker", extra={"key": marker_key})
