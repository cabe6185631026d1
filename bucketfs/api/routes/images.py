"""
Image gallery endpoints.

The gallery is a second view over the same bucket: every image file,
whatever virtual folder it sits in, newest first. Uploads from here go to
the root and must be image/*.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, File, Query, Request, Response, UploadFile

from ...core.storage.errors import MissingFileError
from ..dependencies import (
    AuthenticatedUser,
    FileServiceDep,
    ImageUploadServiceDep,
    ListingServiceDep,
    SettingsDep,
)
from ..schemas import (
    DeleteResponse,
    ErrorResponse,
    ImageListResponse,
    ImageUploadResponse,
    image_item,
    pagination_info,
)
from ..transfer import find_upload, object_response

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=ImageListResponse,
    summary="List images",
    description="All images across every folder, newest first.",
)
async def list_images(
    user_id: AuthenticatedUser,
    listing: ListingServiceDep,
    search: Annotated[Optional[str], Query(description="Case-insensitive name filter")] = None,
    page: Annotated[Optional[int], Query(description="1-based page number")] = 1,
    limit: Annotated[Optional[int], Query(description="Page size, capped by server config")] = None,
) -> ImageListResponse:
    result = await listing.list_images(search=search, page=page, limit=limit)

    return ImageListResponse(
        images=[image_item(entry) for entry in result.images],
        pagination=pagination_info(result.pagination),
    )


@router.post(
    "/upload",
    response_model=ImageUploadResponse,
    response_model_exclude_none=True,
    summary="Upload an image",
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
    },
)
async def upload_image(
    request: Request,
    user_id: AuthenticatedUser,
    settings: SettingsDep,
    uploads: ImageUploadServiceDep,
    file: Annotated[Optional[UploadFile], File(description="The image to store")] = None,
) -> ImageUploadResponse:
    """
    Store an image at the root.

    Same checks as a file upload, plus the content type must be image/*.
    """
    upload = await find_upload(request, file, settings.legacy_upload_field_scan)
    if upload is None:
        logger.warning("Image upload request without a file part")
        raise MissingFileError("No image provided. Send it in the 'file' field.")

    data = await upload.read()
    entry = await uploads.upload(
        data,
        display_name=upload.filename or "",
        size_bytes=len(data),
        content_type=upload.content_type,
        user_id=user_id,
    )

    logger.info(
        "Image uploaded",
        extra={"key": entry.key, "size_bytes": entry.size, "user_id": user_id},
    )

    return ImageUploadResponse(
        file_name=entry.key,
        url=entry.url,
        width=entry.width,
        height=entry.height,
    )


@router.get(
    "/{key:path}",
    summary="Get an image",
    responses={404: {"model": ErrorResponse}},
)
async def get_image(
    key: str,
    user_id: AuthenticatedUser,
    files: FileServiceDep,
) -> Response:
    obj = await files.fetch(key)
    return object_response(obj, disposition="inline", cacheable=True)


@router.delete(
    "/{key:path}",
    response_model=DeleteResponse,
    summary="Delete an image",
    responses={404: {"model": ErrorResponse}},
)
async def delete_image(
    key: str,
    user_id: AuthenticatedUser,
    files: FileServiceDep,
) -> DeleteResponse:
    await files.delete_file(key)
    return DeleteResponse(message="Image deleted successfully", file_name=key)
