"""
Request/response models for the file and image endpoints.

Field names on the wire follow what the existing frontend expects, which
is a mix of camelCase (pagination, rename) and snake_case (timestamps).
Python-side names are snake_case throughout; aliases handle the wire.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.storage.clock import to_iso
from ..core.storage.keys import path_to_str
from ..core.storage.models import FileEntry, FolderEntry, Pagination


class WireModel(BaseModel):
    """Accepts both alias and field name on input, emits aliases."""
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

class PaginationInfo(WireModel):
    current_page: int = Field(alias="currentPage")
    total_pages: int = Field(alias="totalPages")
    total_records: int = Field(alias="totalRecords", description="Matches after filtering, before paging")
    has_next_page: bool = Field(alias="hasNextPage")
    has_previous_page: bool = Field(alias="hasPreviousPage")
    limit: int


class FolderItem(WireModel):
    """A folder marker as shown in a listing."""
    id: str = Field(description="Marker key; pass back as fileId to rename/delete")
    key: str
    name: str = Field(description="Display name without timestamp prefix")
    original_name: str = Field(
        alias="originalName",
        description="Full stored path of the folder; pass back as `path` to list its contents",
    )
    path: str = Field(description="Parent virtual path, '' for root")
    size: int = 0
    url: Optional[str] = None
    type: str = "folder"
    created_at: str
    updated_at: str


class FileItem(WireModel):
    """A file as shown in a listing."""
    id: str
    key: str
    name: str
    original_name: str = Field(alias="originalName")
    path: str
    size: int
    url: str
    type: str = Field(description="Content type from object metadata")
    created_at: str
    updated_at: str
    width: Optional[int] = None
    height: Optional[int] = None


class FileListResponse(WireModel):
    files: list[FileItem]
    folders: list[FolderItem]
    pagination: PaginationInfo


class ImageItem(WireModel):
    id: str
    name: str
    size: int
    url: str
    type: str
    created_at: str
    width: Optional[int] = None
    height: Optional[int] = None


class ImageListResponse(WireModel):
    images: list[ImageItem]
    pagination: PaginationInfo


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

class UploadResponse(WireModel):
    message: str = "File uploaded successfully"
    id: str = Field(description="Object key of the stored file")
    name: str
    size: int
    url: str
    path: str
    width: Optional[int] = None
    height: Optional[int] = None


class ImageUploadResponse(WireModel):
    message: str = "Image uploaded successfully"
    file_name: str = Field(alias="fileName")
    url: str
    width: Optional[int] = None
    height: Optional[int] = None


class CreateFolderRequest(WireModel):
    name: str = Field(min_length=1)
    path: Optional[str] = Field(default="", description="Parent path; empty, '/' or null is root")


class CreateFolderResponse(WireModel):
    message: str = "Folder created successfully"
    name: str
    path: str
    key: str


class RenameRequest(WireModel):
    file_id: str = Field(alias="fileId", min_length=1)
    new_name: str = Field(alias="newName", min_length=1)
    is_folder: bool = Field(default=False, alias="isFolder")


class RenameResponse(WireModel):
    message: str
    old_path: str = Field(alias="oldPath")
    new_path: str = Field(alias="newPath")
    url: Optional[str] = None


class DeleteResponse(WireModel):
    message: str
    file_name: str = Field(alias="fileName")


class ErrorResponse(BaseModel):
    error: str = Field(description="Stable error code")
    detail: str


# ---------------------------------------------------------------------------
# Converters
# ---------------------------------------------------------------------------

def pagination_info(pagination: Pagination) -> PaginationInfo:
    return PaginationInfo(
        current_page=pagination.current_page,
        total_pages=pagination.total_pages,
        total_records=pagination.total_records,
        has_next_page=pagination.has_next_page,
        has_previous_page=pagination.has_previous_page,
        limit=pagination.limit,
    )


def folder_item(entry: FolderEntry) -> FolderItem:
    created = to_iso(entry.created_at)
    return FolderItem(
        id=entry.key,
        key=entry.key,
        name=entry.name,
        original_name=path_to_str(entry.path + (entry.stored_name,)),
        path=entry.path_str,
        created_at=created,
        updated_at=created,
    )


def file_item(entry: FileEntry) -> FileItem:
    created = to_iso(entry.created_at)
    return FileItem(
        id=entry.key,
        key=entry.key,
        name=entry.name,
        original_name=entry.stored_name,
        path=entry.path_str,
        size=entry.size,
        url=entry.url,
        type=entry.content_type,
        created_at=created,
        updated_at=created,
        width=entry.width,
        height=entry.height,
    )


def image_item(entry: FileEntry) -> ImageItem:
    return ImageItem(
        id=entry.key,
        name=entry.name,
        size=entry.size,
        url=entry.url,
        type=entry.content_type,
        created_at=to_iso(entry.created_at),
        width=entry.width,
        height=entry.height,
    )
