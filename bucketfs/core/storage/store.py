"""
The object store as the core sees it.

A flat key -> bytes service with five operations and a cursor-paginated
listing. No directories, no transactions, no conditional writes. A single
put or delete is atomic; sequences of calls are not.

The R2 client and the in-memory mock in infrastructure.storage both
satisfy this protocol. Core code only ever depends on the protocol.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol


@dataclass(frozen=True)
class ObjectSummary:
    """One row of a store listing."""
    key: str
    size: int
    uploaded_at: datetime


@dataclass
class ListResult:
    """
    One page of a store listing.

    `truncated` with no `cursor` is a malformed response; the listing
    engine refuses to guess how to continue.
    """
    entries: list[ObjectSummary] = field(default_factory=list)
    cursor: Optional[str] = None
    truncated: bool = False


@dataclass
class ObjectHead:
    """Metadata returned by head(), without the body."""
    size: int
    content_type: Optional[str] = None
    custom_metadata: dict[str, str] = field(default_factory=dict)
    etag: Optional[str] = None
    uploaded_at: Optional[datetime] = None


@dataclass
class StoredObject:
    """A full object as returned by get()."""
    key: str
    body: bytes
    content_type: Optional[str] = None
    custom_metadata: dict[str, str] = field(default_factory=dict)
    etag: Optional[str] = None
    uploaded_at: Optional[datetime] = None

    @property
    def size(self) -> int:
        return len(self.body)


class ObjectStore(Protocol):
    """
    Interface for the flat object store.

    get() and head() return None for an absent key instead of raising.
    Anything else that goes wrong raises the client's own error type.
    """

    async def list(
        self,
        prefix: Optional[str] = None,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> ListResult:
        """Return one page of keys in the store's natural order."""
        ...

    async def get(self, key: str) -> Optional[StoredObject]:
        """Fetch an object, or None if the key is absent."""
        ...

    async def head(self, key: str) -> Optional[ObjectHead]:
        """Fetch object metadata, or None if the key is absent."""
        ...

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> None:
        """Create or overwrite an object."""
        ...

    async def delete(self, key: str) -> None:
        """Delete an object. Deleting an absent key is not an error."""
        ...
