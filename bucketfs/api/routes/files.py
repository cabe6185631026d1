"""
File manager API endpoints.

Folders, paths and rename are all simulated on top of a flat R2 bucket
(see core.storage). These routes are thin: parse the request, call one
core service, shape the JSON the frontend expects.

Domain errors (not found, bad name, empty/oversized upload) propagate to
the app-level handlers in main.py, which turn them into
{"error": code, "detail": message} with the right status.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, File, Form, Query, Request, Response, UploadFile, status

from ...core.storage.errors import MissingFileError
from ...core.storage.keys import is_folder_key, normalize_path, path_to_str
from ...core.storage.listing import FileCategory
from ...core.storage.models import file_url
from ..dependencies import (
    FILES_URL_PREFIX,
    AuthenticatedUser,
    FileServiceDep,
    FolderServiceDep,
    ListingServiceDep,
    SettingsDep,
    UploadServiceDep,
)
from ..schemas import (
    CreateFolderRequest,
    CreateFolderResponse,
    DeleteResponse,
    ErrorResponse,
    FileListResponse,
    RenameRequest,
    RenameResponse,
    UploadResponse,
    file_item,
    folder_item,
    pagination_info,
)
from ..transfer import find_upload, object_response

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=FileListResponse,
    summary="List a folder",
    description="Folders first, then files, for one virtual path. Paginated.",
)
async def list_files(
    user_id: AuthenticatedUser,
    listing: ListingServiceDep,
    path: Annotated[Optional[str], Query(description="Virtual folder path; '/' is root")] = "/",
    search: Annotated[Optional[str], Query(description="Case-insensitive name filter")] = None,
    type: Annotated[Optional[FileCategory], Query(description="Restrict files to a category")] = None,
    page: Annotated[Optional[int], Query(description="1-based page number")] = 1,
    limit: Annotated[Optional[int], Query(description="Page size, capped by server config")] = None,
) -> FileListResponse:
    """
    One page of the folder at `path`.

    Only direct children are listed. `totalRecords` counts everything
    matching the filters, not just this page.
    """
    result = await listing.list_directory(
        path=path,
        search=search,
        type_filter=type,
        page=page,
        limit=limit,
    )

    return FileListResponse(
        files=[file_item(entry) for entry in result.files],
        folders=[folder_item(entry) for entry in result.folders],
        pagination=pagination_info(result.pagination),
    )


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

@router.post(
    "/upload",
    response_model=UploadResponse,
    response_model_exclude_none=True,
    summary="Upload a file",
    description="Multipart upload into a virtual folder. Images get their dimensions recorded.",
    responses={**ERROR_RESPONSES, 413: {"model": ErrorResponse}},
)
async def upload_file(
    request: Request,
    user_id: AuthenticatedUser,
    settings: SettingsDep,
    uploads: UploadServiceDep,
    file: Annotated[Optional[UploadFile], File(description="The file to store")] = None,
    path: Annotated[str, Form(description="Target folder path, empty for root")] = "",
) -> UploadResponse:
    """
    Store one file.

    Rejected, in this order: empty file, file over the size limit, name
    containing / or \\. Nothing is written when any check fails.
    """
    upload = await find_upload(request, file, settings.legacy_upload_field_scan)
    if upload is None:
        logger.warning("Upload request without a file part")
        raise MissingFileError("No file provided. Send it in the 'file' field.")

    logger.info(
        "File upload started",
        extra={
            "upload_filename": upload.filename,
            "content_type": upload.content_type,
            "path": path,
            "user_id": user_id,
        }
    )

    data = await upload.read()
    entry = await uploads.upload(
        data,
        display_name=upload.filename or "",
        path=path,
        size_bytes=len(data),
        content_type=upload.content_type,
        user_id=user_id,
    )

    return UploadResponse(
        id=entry.key,
        name=entry.name,
        size=entry.size,
        url=entry.url,
        path=entry.path_str,
        width=entry.width,
        height=entry.height,
    )


# ---------------------------------------------------------------------------
# Folders and rename
# ---------------------------------------------------------------------------

@router.post(
    "/create-folder",
    response_model=CreateFolderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a folder",
    responses=ERROR_RESPONSES,
)
async def create_folder(
    body: CreateFolderRequest,
    user_id: AuthenticatedUser,
    folders: FolderServiceDep,
) -> CreateFolderResponse:
    """
    Write a folder marker.

    Sibling names are not checked; creating the same name twice gives
    two folders.
    """
    entry = await folders.create_folder(body.path, body.name, user_id=user_id)

    return CreateFolderResponse(
        name=entry.name,
        path=path_to_str(normalize_path(body.path)),
        key=entry.key,
    )


@router.post(
    "/rename",
    response_model=RenameResponse,
    response_model_exclude_none=True,
    summary="Rename a file or folder",
    description="Copy to the new key, then delete the old one. Not atomic.",
    responses=ERROR_RESPONSES,
)
async def rename_entry(
    body: RenameRequest,
    user_id: AuthenticatedUser,
    files: FileServiceDep,
    folders: FolderServiceDep,
) -> RenameResponse:
    """
    Rename keeping the timestamp prefix and parent path.

    Both phases run here, in order. If the delete fails after the copy
    succeeded, both keys exist and the error is returned; calling rename
    again on the old key finishes the job.

    Renaming a folder renames its marker only. Anything stored under the
    old folder name stays where it is, unreachable from the folder tree.
    """
    service = folders if body.is_folder else files
    operation = service.plan_rename(body.file_id, body.new_name)

    await service.copy_phase(operation)
    await service.delete_phase(operation)

    if operation.is_folder:
        return RenameResponse(
            message="Folder renamed successfully",
            old_path=operation.old_key,
            new_path=operation.new_key,
        )

    return RenameResponse(
        message="File renamed successfully",
        old_path=operation.old_key,
        new_path=operation.new_key,
        url=file_url(FILES_URL_PREFIX, operation.new_key),
    )


# ---------------------------------------------------------------------------
# Retrieval and deletion
# ---------------------------------------------------------------------------

@router.get(
    "/download/{key:path}",
    summary="Download a file",
    description="Same bytes as GET /{key}, with content-disposition: attachment.",
    responses={404: {"model": ErrorResponse}},
)
async def download_file(
    key: str,
    user_id: AuthenticatedUser,
    files: FileServiceDep,
) -> Response:
    obj = await files.fetch(key)
    return object_response(obj, disposition="attachment", cacheable=False)


@router.get(
    "/{key:path}",
    summary="Get a file",
    responses={404: {"model": ErrorResponse}},
)
async def get_file(
    key: str,
    user_id: AuthenticatedUser,
    files: FileServiceDep,
) -> Response:
    """Raw bytes, cacheable for an hour."""
    obj = await files.fetch(key)
    return object_response(obj, disposition="inline", cacheable=True)


@router.delete(
    "/{key:path}",
    response_model=DeleteResponse,
    summary="Delete a file or folder marker",
    responses=ERROR_RESPONSES,
)
async def delete_entry(
    key: str,
    user_id: AuthenticatedUser,
    files: FileServiceDep,
    folders: FolderServiceDep,
) -> DeleteResponse:
    """
    Delete one key.

    A key ending in /.folder deletes that folder's marker. Its contents
    are left in the bucket, orphaned.
    """
    if is_folder_key(key):
        await folders.delete_folder(key)
        return DeleteResponse(message="Folder deleted successfully", file_name=key)

    await files.delete_file(key)
    return DeleteResponse(message="File deleted successfully", file_name=key)
