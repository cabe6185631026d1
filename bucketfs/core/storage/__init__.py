"""
Filesystem simulation over a flat object store.

Key codec, dimension sniffer, folder engine, listing engine and upload
pipeline. Framework-agnostic: talks to the store only through the
ObjectStore protocol and knows nothing about HTTP.
"""

from .clock import Clock, SystemClock
from .dimensions import sniff_dimensions, sniff_file
from .errors import (
    EmptyFileError,
    FileManagerError,
    FileTooLargeError,
    InvalidNameError,
    MalformedStoreResponseError,
    NotFoundError,
    RenamePhaseError,
    UnsupportedMediaTypeError,
)
from .files import FileService
from .folders import FolderService
from .keys import DecodedKey, decode_key, encode_key, normalize_path
from .listing import FileCategory, ListingService
from .models import FileEntry, FolderEntry, ImageDimensions, ImagePage, ListingPage, Pagination
from .rename import RenameOperation, RenamePhase
from .store import ListResult, ObjectHead, ObjectStore, ObjectSummary, StoredObject
from .upload import UploadService

__all__ = [
    "Clock",
    "SystemClock",
    "sniff_dimensions",
    "sniff_file",
    "EmptyFileError",
    "FileManagerError",
    "FileTooLargeError",
    "InvalidNameError",
    "MalformedStoreResponseError",
    "NotFoundError",
    "RenamePhaseError",
    "UnsupportedMediaTypeError",
    "FileService",
    "FolderService",
    "DecodedKey",
    "decode_key",
    "encode_key",
    "normalize_path",
    "FileCategory",
    "ListingService",
    "FileEntry",
    "FolderEntry",
    "ImageDimensions",
    "ImagePage",
    "ListingPage",
    "Pagination",
    "RenameOperation",
    "RenamePhase",
    "ListResult",
    "ObjectHead",
    "ObjectStore",
    "ObjectSummary",
    "StoredObject",
    "UploadService",
]
