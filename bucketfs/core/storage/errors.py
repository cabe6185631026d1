"""
Error taxonomy for the file manager core.

Every error carries a stable machine-readable code and the HTTP status
the API layer should answer with. The core itself never imports FastAPI;
the status is just an integer the app-level exception handler reads.
"""


class FileManagerError(Exception):
    """Base class for failures the caller can act on."""

    code: str = "file_manager_error"
    http_status: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(FileManagerError):
    """Key absent on get/head/delete."""
    code = "not_found"
    http_status = 404


class InvalidNameError(FileManagerError):
    """A supplied name contains a path separator or is blank."""
    code = "invalid_name"
    http_status = 400


class EmptyFileError(FileManagerError):
    """Upload of a zero-byte file."""
    code = "empty_file"
    http_status = 400


class FileTooLargeError(FileManagerError):
    """Upload exceeds the configured size ceiling."""
    code = "file_too_large"
    http_status = 413


class UnsupportedMediaTypeError(FileManagerError):
    """Image endpoint received something that is not an image."""
    code = "unsupported_media_type"
    http_status = 415


class RenamePhaseError(FileManagerError):
    """A rename phase was applied out of order."""
    code = "rename_phase"
    http_status = 409


class MalformedStoreResponseError(FileManagerError):
    """
    The store returned a listing we can't continue from.

    Fatal to the request. Never retried: the caller re-issues the whole
    operation if it wants to.
    """
    code = "malformed_store_response"
    http_status = 502


class MissingFileError(FileManagerError):
    """Upload request carried no file part."""
    code = "missing_file"
    http_status = 400
