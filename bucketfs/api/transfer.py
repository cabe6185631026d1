"""
Byte-level request/response helpers shared by the file and image routes.
"""

import logging
from typing import Optional
from urllib.parse import quote

from fastapi import Request, Response, UploadFile
from starlette.datastructures import UploadFile as StarletteUploadFile

from ..core.storage.keys import display_name_from_key
from ..core.storage.models import DEFAULT_CONTENT_TYPE
from ..core.storage.store import StoredObject

logger = logging.getLogger(__name__)

CACHE_CONTROL = "public, max-age=3600"
LEGACY_FILE_FIELDS = ("upload", "image")


def _filename_param(name: str) -> str:
    # same escaping as JavaScript's encodeURIComponent
    return quote(name, safe="!~*'()")


def object_response(
    obj: StoredObject,
    disposition: str = "inline",
    cacheable: bool = True,
) -> Response:
    """
    Raw bytes with etag, cache-control and content-disposition.

    Inline responses name the file only when we know its original name.
    Attachments always need a name, so they fall back to the key's
    display name.
    """
    headers = {}
    if obj.etag:
        headers["etag"] = f'"{obj.etag}"'
    if cacheable:
        headers["cache-control"] = CACHE_CONTROL

    original_name = obj.custom_metadata.get("original-name")
    if disposition == "attachment":
        filename = original_name or display_name_from_key(obj.key)
        headers["content-disposition"] = f'attachment; filename="{_filename_param(filename)}"'
    elif original_name:
        headers["content-disposition"] = f'inline; filename="{_filename_param(original_name)}"'

    return Response(
        content=obj.body,
        media_type=obj.content_type or DEFAULT_CONTENT_TYPE,
        headers=headers,
    )


async def find_upload(
    request: Request,
    file: Optional[UploadFile],
    legacy_scan: bool,
) -> Optional[StarletteUploadFile]:
    """
    The uploaded file part.

    Normally that's the `file` field and nothing else. Old clients sent
    other field names; with legacy_scan on we try those, then take the
    first file part of any name.
    """
    if file is not None:
        return file
    if not legacy_scan:
        return None

    form = await request.form()
    for field in LEGACY_FILE_FIELDS:
        value = form.get(field)
        if isinstance(value, StarletteUploadFile):
            logger.info("Upload found under legacy field", extra={"field": field})
            return value

    for field, value in form.multi_items():
        if isinstance(value, StarletteUploadFile):
            logger.info("Upload found by scanning form", extra={"field": field})
            return value

    return None
