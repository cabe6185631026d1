"""
Domain models for the simulated filesystem.

These are request-scoped projections of what the object store holds.
Nothing here is persisted or cached: every listing rebuilds them from a
fresh walk of the store.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .keys import VirtualPath, path_to_str

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class ImageDimensions:
    """Pixel size of an image, as sniffed from its header bytes."""
    width: int
    height: int


@dataclass
class FolderEntry:
    """
    A folder, materialized from its marker object.

    There is no folder record anywhere else. If the marker key is gone,
    so is the folder, whatever keys still sit "inside" it.
    """
    key: str
    path: VirtualPath
    name: str
    stored_name: str
    created_at: datetime
    size: int = 0

    @property
    def path_str(self) -> str:
        return path_to_str(self.path)


@dataclass
class FileEntry:
    """A file as seen through its key and, optionally, its head() metadata."""
    key: str
    path: VirtualPath
    name: str
    stored_name: str
    size: int
    created_at: datetime
    url: str
    content_type: str = DEFAULT_CONTENT_TYPE
    dimensions: Optional[ImageDimensions] = None

    @property
    def path_str(self) -> str:
        return path_to_str(self.path)

    @property
    def width(self) -> Optional[int]:
        return self.dimensions.width if self.dimensions else None

    @property
    def height(self) -> Optional[int]:
        return self.dimensions.height if self.dimensions else None

    @property
    def extension(self) -> str:
        return extension_of(self.name)


@dataclass(frozen=True)
class Pagination:
    """Page window plus totals computed over the whole filtered set."""
    current_page: int
    total_records: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_records / self.limit) if self.limit else 0

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.current_page > 1

    @property
    def offset(self) -> int:
        return (self.current_page - 1) * self.limit


@dataclass
class ListingPage:
    """One page of a directory listing: folders first, then files."""
    folders: list[FolderEntry] = field(default_factory=list)
    files: list[FileEntry] = field(default_factory=list)
    pagination: Pagination = field(default_factory=lambda: Pagination(1, 0, 1))


@dataclass
class ImagePage:
    """One page of the image gallery listing."""
    images: list[FileEntry] = field(default_factory=list)
    pagination: Pagination = field(default_factory=lambda: Pagination(1, 0, 1))


def extension_of(name: str) -> str:
    """Lower-cased text after the last dot; "" when there is no dot."""
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def file_url(url_prefix: str, key: str) -> str:
    """Retrieval URL for a key under an API prefix like /api/files."""
    return f"{url_prefix.rstrip('/')}/{key}"
