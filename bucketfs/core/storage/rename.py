"""
Two-phase rename.

The store has no rename. We write the entry under its new key, then delete
the old key. Those are two network calls with nothing tying them together:

    PLANNED --copy_phase--> COPIED --delete_phase--> COMPLETED

If the process dies between the phases both keys exist with the same
content. If it dies before the copy, only the old key exists. Nothing is
rolled back and nothing is retried; the caller re-issues the rename.

The operation object is handed back to the caller between phases on
purpose, so the intermediate state is visible (and testable) instead of
hidden behind a single call.
"""

from dataclasses import dataclass
from enum import Enum

from .errors import RenamePhaseError
from .keys import decode_key, encode_key, validate_name


class RenamePhase(Enum):
    PLANNED = "planned"
    COPIED = "copied"
    COMPLETED = "completed"


@dataclass
class RenameOperation:
    """An in-flight rename of one key."""
    old_key: str
    new_key: str
    new_name: str
    is_folder: bool
    phase: RenamePhase = RenamePhase.PLANNED

    @property
    def is_noop(self) -> bool:
        """Renaming to the same name: copying then deleting would lose the entry."""
        return self.old_key == self.new_key

    def require(self, expected: RenamePhase) -> None:
        if self.phase is not expected:
            raise RenamePhaseError(
                f"Rename of {self.old_key} is {self.phase.value}, expected {expected.value}"
            )

    def advance(self, to: RenamePhase) -> None:
        self.phase = to


def plan_rename(key: str, new_name: str) -> RenameOperation:
    """
    Work out the new key for an entry.

    Parent path and timestamp prefix are kept, only the display name
    changes. A key with no timestamp prefix renames to the bare name.
    """
    validate_name(new_name)
    decoded = decode_key(key)
    new_key = encode_key(decoded.path, new_name, decoded.timestamp, decoded.is_folder)
    return RenameOperation(
        old_key=key,
        new_key=new_key,
        new_name=new_name,
        is_folder=decoded.is_folder,
    )
