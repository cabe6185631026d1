"""
Single-file operations: fetch, delete, rename.

Each of these is one or two store calls against one key. Rename follows
the two-phase protocol in rename.py; the route calls both phases itself.
"""

import logging

from .clock import Clock, to_iso
from .errors import InvalidNameError, NotFoundError
from .keys import is_folder_key
from .rename import RenameOperation, RenamePhase, plan_rename
from .store import ObjectStore, StoredObject

logger = logging.getLogger(__name__)


class FileService:
    """Operations on file keys. Folder markers go through FolderService."""

    def __init__(self, store: ObjectStore, clock: Clock) -> None:
        self._store = store
        self._clock = clock

    async def fetch(self, key: str) -> StoredObject:
        """Return the object at `key` or raise NotFoundError."""
        obj = await self._store.get(key)
        if obj is None:
            raise NotFoundError(f"File not found: {key}")
        return obj

    async def delete_file(self, key: str) -> None:
        """Delete one object after confirming it exists."""
        if await self._store.head(key) is None:
            raise NotFoundError(f"File not found: {key}")

        await self._store.delete(key)
        logger.info("Deleted file", extra={"key": key})

    def plan_rename(self, key: str, new_name: str) -> RenameOperation:
        """Plan a file rename, keeping the timestamp prefix and parent path."""
        if is_folder_key(key):
            raise InvalidNameError("Use the folder rename for folder markers")
        return plan_rename(key, new_name)

    async def copy_phase(self, operation: RenameOperation) -> RenameOperation:
        """
        Phase 1: write the content under the new key.

        Content type and custom metadata travel with the copy; the
        original-name metadata is updated to the new name.
        """
        operation.require(RenamePhase.PLANNED)

        old = await self._store.get(operation.old_key)
        if old is None:
            raise NotFoundError(f"File not found: {operation.old_key}")

        if not operation.is_noop:
            metadata = dict(old.custom_metadata)
            metadata["original-name"] = operation.new_name
            metadata["renamed-at"] = to_iso(self._clock.now())

            await self._store.put(
                operation.new_key,
                old.body,
                content_type=old.content_type,
                custom_metadata=metadata,
            )

        operation.advance(RenamePhase.COPIED)
        logger.debug(
            "File rename copied",
            extra={
                "old_key": operation.old_key,
                "new_key": operation.new_key,
                "size_bytes": old.size,
            },
        )
        return operation

    async def delete_phase(self, operation: RenameOperation) -> RenameOperation:
        """Phase 2: delete the old key. After this only the new key exists."""
        operation.require(RenamePhase.COPIED)

        if not operation.is_noop:
            await self._store.delete(operation.old_key)

        operation.advance(RenamePhase.COMPLETED)
        logger.info(
            "Renamed file",
            extra={"old_key": operation.old_key, "new_key": operation.new_key},
        )
        return operation
