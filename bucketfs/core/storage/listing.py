"""
Directory listing and pagination over a flat store.

Every call walks the whole store. There is no index and no cache, so a
listing is always consistent with the store at the time of the walk, and
totals always agree with what paging through the filtered set would
return. The cost is one full cursor walk per request.

Order of operations matters and is fixed:

    walk -> decode -> classify -> path filter -> search -> type filter
         -> folders + files -> count -> slice -> head() the page's files

Enrichment happens last and only for the files on the returned page, so
the number of head() calls is bounded by the page size, not the store.
"""

import asyncio
import logging
import re
from enum import Enum
from typing import Optional, Union

from .errors import MalformedStoreResponseError
from .folders import folder_from_key
from .keys import VirtualPath, decode_key, normalize_path
from .models import (
    DEFAULT_CONTENT_TYPE,
    FileEntry,
    FolderEntry,
    ImageDimensions,
    ImagePage,
    ListingPage,
    Pagination,
    extension_of,
    file_url,
)
from .store import ObjectStore, ObjectSummary

logger = logging.getLogger(__name__)


class FileCategory(Enum):
    """Coarse file types for the `type` filter."""
    IMAGE = "image"
    DOCUMENT = "document"
    OTHER = "other"


CATEGORY_EXTENSIONS: dict[FileCategory, frozenset[str]] = {
    FileCategory.IMAGE: frozenset({"jpg", "jpeg", "png", "gif", "webp", "bmp", "svg"}),
    FileCategory.DOCUMENT: frozenset({"pdf", "doc", "docx", "txt", "md", "rtf"}),
}

# the gallery also shows icons
GALLERY_EXTENSIONS = CATEGORY_EXTENSIONS[FileCategory.IMAGE] | {"ico"}

DEFAULT_IMAGE_CONTENT_TYPE = "image/jpeg"
ICON_DIMENSIONS = ImageDimensions(width=32, height=32)

_SIZE_IN_NAME = re.compile(r"(\d+)x(\d+)")


def category_of(name: str) -> FileCategory:
    extension = extension_of(name)
    for category, extensions in CATEGORY_EXTENSIONS.items():
        if extension in extensions:
            return category
    return FileCategory.OTHER


def matches_category(name: str, category: Optional[FileCategory]) -> bool:
    """No filter lets everything through, including unknown extensions."""
    if category is None:
        return True
    return category_of(name) is category


def matches_search(name: str, search: Optional[str]) -> bool:
    if not search:
        return True
    return search.lower() in name.lower()


def clamp_page(page: Optional[int]) -> int:
    return max(1, page or 1)


def clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    if not limit:
        limit = default
    return min(maximum, max(1, limit))


def parse_dimensions(metadata: dict[str, str]) -> Optional[ImageDimensions]:
    """Width/height custom metadata written at upload time, if any."""
    try:
        width = int(metadata["width"])
        height = int(metadata["height"])
    except (KeyError, TypeError, ValueError):
        return None
    return ImageDimensions(width=width, height=height)


async def walk_store(store: ObjectStore, batch_size: int = 1000) -> list[ObjectSummary]:
    """
    Read every key in the store, following cursors until exhausted.

    A truncated page without a cursor, or a cursor we've already seen,
    means we can't make progress. That's fatal to this request.
    """
    objects: list[ObjectSummary] = []
    seen_cursors: set[str] = set()
    cursor: Optional[str] = None
    calls = 0

    while True:
        result = await store.list(cursor=cursor, limit=batch_size)
        calls += 1
        objects.extend(result.entries)

        if not result.truncated:
            break
        if not result.cursor:
            raise MalformedStoreResponseError("Store listing truncated without a cursor")
        if result.cursor in seen_cursors:
            raise MalformedStoreResponseError(f"Store listing repeated cursor {result.cursor!r}")

        seen_cursors.add(result.cursor)
        cursor = result.cursor

    logger.debug("Walked store", extra={"objects": len(objects), "list_calls": calls})
    return objects


class ListingService:
    """Builds paginated directory and gallery listings from the store."""

    def __init__(
        self,
        store: ObjectStore,
        url_prefix: str = "/api/files",
        image_url_prefix: str = "/api/images",
        default_limit: int = 15,
        max_limit: int = 50,
        default_image_limit: int = 12,
        max_image_limit: int = 100,
        batch_size: int = 1000,
    ) -> None:
        self._store = store
        self._url_prefix = url_prefix
        self._image_url_prefix = image_url_prefix
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._default_image_limit = default_image_limit
        self._max_image_limit = max_image_limit
        self._batch_size = batch_size

    # -----------------------------------------------------------------------
    # Directory listing
    # -----------------------------------------------------------------------

    async def list_directory(
        self,
        path: Union[str, VirtualPath, None] = None,
        search: Optional[str] = None,
        type_filter: Optional[FileCategory] = None,
        page: Optional[int] = 1,
        limit: Optional[int] = None,
    ) -> ListingPage:
        """
        One page of the folder at `path`.

        Only direct children: a file at a/b/c.txt is not listed under "a".
        Folders come before files regardless of name or age; within each
        group the store's own key order is kept.
        """
        target = normalize_path(path)
        page = clamp_page(page)
        limit = clamp_limit(limit, self._default_limit, self._max_limit)

        folders: list[FolderEntry] = []
        files: list[FileEntry] = []

        for obj in await walk_store(self._store, self._batch_size):
            decoded = decode_key(obj.key)
            if decoded.path != target:
                continue
            if not matches_search(decoded.display_name, search):
                continue

            if decoded.is_folder:
                folders.append(folder_from_key(obj.key, created_at=obj.uploaded_at))
            elif matches_category(decoded.display_name, type_filter):
                files.append(self._file_entry(obj, self._url_prefix))

        items: list[Union[FolderEntry, FileEntry]] = [*folders, *files]
        pagination = Pagination(current_page=page, total_records=len(items), limit=limit)
        window = items[pagination.offset:pagination.offset + limit]

        page_folders = [item for item in window if isinstance(item, FolderEntry)]
        page_files = [item for item in window if isinstance(item, FileEntry)]
        await asyncio.gather(*(self._enrich(entry) for entry in page_files))

        logger.info(
            "Listed directory",
            extra={
                "path": "/".join(target),
                "search": search,
                "type": type_filter.value if type_filter else None,
                "page": page,
                "limit": limit,
                "total_records": pagination.total_records,
            },
        )

        return ListingPage(folders=page_folders, files=page_files, pagination=pagination)

    async def _enrich(self, entry: FileEntry) -> None:
        """
        Fill in content type and dimensions from head().

        Failure here degrades the entry instead of failing the listing.
        """
        try:
            head = await self._store.head(entry.key)
        except Exception as e:
            logger.warning(
                "Metadata fetch failed, using defaults",
                extra={"key": entry.key, "error": str(e)},
            )
            return

        if head is None:
            return

        entry.content_type = head.content_type or DEFAULT_CONTENT_TYPE
        if entry.content_type.startswith("image/"):
            entry.dimensions = parse_dimensions(head.custom_metadata)

    # -----------------------------------------------------------------------
    # Image gallery
    # -----------------------------------------------------------------------

    async def list_images(
        self,
        search: Optional[str] = None,
        page: Optional[int] = 1,
        limit: Optional[int] = None,
    ) -> ImagePage:
        """
        Every image in the store, whatever folder it is in, newest first.

        Uses the larger image page ceiling.
        """
        page = clamp_page(page)
        limit = clamp_limit(limit, self._default_image_limit, self._max_image_limit)

        images = [
            self._file_entry(obj, self._image_url_prefix)
            for obj in await walk_store(self._store, self._batch_size)
            if extension_of(obj.key) in GALLERY_EXTENSIONS
        ]
        images.sort(key=lambda entry: entry.created_at, reverse=True)
        images = [entry for entry in images if matches_search(entry.name, search)]

        pagination = Pagination(current_page=page, total_records=len(images), limit=limit)
        window = images[pagination.offset:pagination.offset + limit]
        await asyncio.gather(*(self._enrich_image(entry) for entry in window))

        logger.info(
            "Listed images",
            extra={"search": search, "page": page, "limit": limit, "total_records": len(images)},
        )

        return ImagePage(images=window, pagination=pagination)

    async def _enrich_image(self, entry: FileEntry) -> None:
        """
        Dimensions for the gallery, best effort.

        Stored metadata first, then a WxH pattern in the original name,
        then a fixed size for icons. SVGs scale, so they get none.
        """
        entry.content_type = DEFAULT_IMAGE_CONTENT_TYPE
        try:
            head = await self._store.head(entry.key)
        except Exception as e:
            logger.warning(
                "Image metadata fetch failed, using defaults",
                extra={"key": entry.key, "error": str(e)},
            )
            return

        if head is None:
            return

        entry.content_type = head.content_type or DEFAULT_IMAGE_CONTENT_TYPE
        if not entry.content_type.startswith("image/"):
            return

        dimensions = parse_dimensions(head.custom_metadata)
        if dimensions is None:
            original_name = head.custom_metadata.get("original-name", entry.name)
            match = _SIZE_IN_NAME.search(original_name)
            if match:
                dimensions = ImageDimensions(width=int(match.group(1)), height=int(match.group(2)))
            elif entry.extension == "ico":
                dimensions = ICON_DIMENSIONS
        entry.dimensions = dimensions

    # -----------------------------------------------------------------------

    def _file_entry(self, obj: ObjectSummary, url_prefix: str) -> FileEntry:
        decoded = decode_key(obj.key)
        return FileEntry(
            key=obj.key,
            path=decoded.path,
            name=decoded.display_name,
            stored_name=decoded.stored_name,
            size=obj.size,
            created_at=obj.uploaded_at,
            url=file_url(url_prefix, obj.key),
        )
