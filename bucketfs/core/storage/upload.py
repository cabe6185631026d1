"""
Upload pipeline: validate, name, sniff, put.

Preconditions are checked in a fixed order and each has its own error,
so a client can tell "empty" from "too big" from "bad name" without
parsing messages. Nothing touches the store until every check passes.

The key's timestamp prefix is the only thing keeping two uploads of
"photo.jpg" apart. Two uploads of the same name in the same folder in
the same millisecond get the same key, and the second put overwrites the
first. We don't prevent that; see test_upload for the reproduction.
"""

import logging
from typing import Optional, Union

from .clock import Clock, to_iso, to_millis
from .dimensions import sniff_file
from .errors import EmptyFileError, FileTooLargeError, UnsupportedMediaTypeError
from .keys import VirtualPath, encode_key, normalize_path, validate_name
from .models import DEFAULT_CONTENT_TYPE, FileEntry, file_url
from .store import ObjectStore

logger = logging.getLogger(__name__)

MiB = 1024 * 1024


class UploadService:
    """Turns an incoming byte buffer into a stored object and a FileEntry."""

    def __init__(
        self,
        store: ObjectStore,
        clock: Clock,
        max_size_bytes: int = 50 * MiB,
        url_prefix: str = "/api/files",
        images_only: bool = False,
    ) -> None:
        self._store = store
        self._clock = clock
        self._max_size_bytes = max_size_bytes
        self._url_prefix = url_prefix
        self._images_only = images_only

    def validate(self, display_name: str, size_bytes: int, content_type: Optional[str]) -> None:
        """Raise the first failing precondition, in the documented order."""
        if size_bytes == 0:
            raise EmptyFileError("File is empty")

        if size_bytes > self._max_size_bytes:
            raise FileTooLargeError(
                f"File too large. Maximum size is {self._max_size_bytes // MiB}MB"
            )

        validate_name(display_name)

        if self._images_only and not (content_type or "").startswith("image/"):
            raise UnsupportedMediaTypeError(
                f"Unsupported image type: {content_type or 'unknown'}"
            )

    async def upload(
        self,
        data: bytes,
        display_name: str,
        path: Union[str, VirtualPath, None] = None,
        size_bytes: Optional[int] = None,
        content_type: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> FileEntry:
        """
        Store `data` as `display_name` inside the folder at `path`.

        Dimensions are sniffed for image/* content types only. If sniffing
        finds nothing the upload goes ahead without them.
        """
        if size_bytes is None:
            size_bytes = len(data)

        self.validate(display_name, size_bytes, content_type)

        now = self._clock.now()
        virtual_path = normalize_path(path)
        key = encode_key(virtual_path, display_name, to_millis(now))

        metadata = {
            "original-name": display_name,
            "uploaded-at": to_iso(now),
        }
        if user_id:
            metadata["user-id"] = user_id

        dimensions = None
        if content_type and content_type.startswith("image/"):
            dimensions = sniff_file(data, display_name)
            if dimensions:
                metadata["width"] = str(dimensions.width)
                metadata["height"] = str(dimensions.height)
                logger.debug(
                    "Image dimensions detected",
                    extra={"key": key, "width": dimensions.width, "height": dimensions.height},
                )

        stored_type = content_type or DEFAULT_CONTENT_TYPE
        await self._store.put(key, data, content_type=stored_type, custom_metadata=metadata)

        logger.info(
            "Uploaded file",
            extra={
                "key": key,
                "size_bytes": size_bytes,
                "content_type": stored_type,
                "user_id": user_id,
            },
        )

        return FileEntry(
            key=key,
            path=virtual_path,
            name=display_name,
            stored_name=key.rsplit("/", 1)[-1],
            size=size_bytes,
            created_at=now,
            url=file_url(self._url_prefix, key),
            content_type=stored_type,
            dimensions=dimensions,
        )
