"""
Key codec for the simulated filesystem.

The object store is flat. Folders and paths only exist in how we spell
keys:

    [<virtual/path>/]<timestampMillis>-<displayName>           a file
    [<virtual/path>/]<timestampMillis>-<displayName>/.folder   a folder marker

Everything here is pure string work, no I/O. Keys written by other tools
(no timestamp prefix) still decode; they just come back without a
timestamp.

Known ambiguity: a display name that itself starts with digits and a dash
("2024-report.pdf" uploaded without our prefix) decodes as timestamp 2024
and name "report.pdf". We don't try to guess.
"""

import re
from dataclasses import dataclass
from typing import Optional, Union

from .errors import InvalidNameError

FOLDER_MARKER = ".folder"
FOLDER_SUFFIX = "/" + FOLDER_MARKER

_TIMESTAMPED_NAME = re.compile(r"^(\d+)-(.+)$", re.DOTALL)
_SEPARATORS = ("/", "\\")

VirtualPath = tuple[str, ...]
ROOT: VirtualPath = ()


@dataclass(frozen=True)
class DecodedKey:
    """What a key says about the entry it names."""
    path: VirtualPath
    display_name: str
    timestamp: Optional[int]
    is_folder: bool

    @property
    def path_str(self) -> str:
        return path_to_str(self.path)

    @property
    def stored_name(self) -> str:
        """Last key segment as stored, timestamp prefix included."""
        if self.timestamp is None:
            return self.display_name
        return f"{self.timestamp}-{self.display_name}"


def normalize_path(raw: Union[str, VirtualPath, None]) -> VirtualPath:
    """
    Canonical form of a virtual path.

    None, "", "/" and "///" are all the root. Leading and trailing slashes
    are dropped and empty segments collapse, so "/a//b/" == "a/b".
    """
    if raw is None:
        return ROOT
    if isinstance(raw, tuple):
        segments = raw
    else:
        segments = tuple(raw.split("/"))
    return tuple(segment for segment in segments if segment)


def path_to_str(path: VirtualPath) -> str:
    """Join a normalized path with "/". Root is the empty string."""
    return "/".join(path)


def validate_name(name: str) -> str:
    """Reject names that would change the path structure of a key."""
    if not name or not name.strip():
        raise InvalidNameError("Name cannot be empty")
    if any(sep in name for sep in _SEPARATORS):
        raise InvalidNameError("Invalid name. Cannot contain / or \\")
    return name


def encode_key(
    path: Union[str, VirtualPath, None],
    display_name: str,
    timestamp: Optional[int],
    is_folder: bool = False,
) -> str:
    """
    Build the object key for an entry.

    A None timestamp produces a bare name; that only happens when renaming
    an entry whose key never had a prefix.
    """
    validate_name(display_name)
    segments = list(normalize_path(path))
    if timestamp is None:
        segments.append(display_name)
    else:
        segments.append(f"{timestamp}-{display_name}")
    key = "/".join(segments)
    if is_folder:
        key += FOLDER_SUFFIX
    return key


def decode_key(key: str) -> DecodedKey:
    """Parse a key back into (path, display name, timestamp, is_folder)."""
    is_folder = is_folder_key(key)
    body = key[: -len(FOLDER_SUFFIX)] if is_folder else key

    parts = body.split("/")
    last = parts.pop() if parts else body
    path = normalize_path(tuple(parts))

    match = _TIMESTAMPED_NAME.match(last)
    if match:
        return DecodedKey(
            path=path,
            display_name=match.group(2),
            timestamp=int(match.group(1)),
            is_folder=is_folder,
        )

    return DecodedKey(path=path, display_name=last, timestamp=None, is_folder=is_folder)


def is_folder_key(key: str) -> bool:
    return key.endswith(FOLDER_SUFFIX)


def display_name_from_key(key: str) -> str:
    """Human name for a key, used when no original-name metadata exists."""
    return decode_key(key).display_name
