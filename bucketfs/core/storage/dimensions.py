"""
Image dimension sniffing from raw header bytes.

We only need width and height, and only for display purposes, so each
parser reads the handful of fixed offsets its format puts them at instead
of decoding the image. That keeps uploads fast and avoids pulling an
imaging library into the request path.

Dispatch is by file extension, not magic bytes. A .png that is really a
JPEG gets the PNG parser, fails the signature check, and comes back with
no dimensions. That's acceptable: dimensions are a nicety, never a reason
to reject an upload.

Every parser:
- takes the whole buffer (a bare header is enough, see tests)
- checks bounds before every read
- returns None on anything it doesn't recognise
"""

import logging
from typing import Callable, Optional

from .models import ImageDimensions, extension_of

logger = logging.getLogger(__name__)

Parser = Callable[[bytes], Optional[ImageDimensions]]

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SOF_MARKERS = (0xC0, 0xC2)  # baseline, progressive


def _be16(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset:offset + 2], "big")


def _le16(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset:offset + 2], "little")


def _be32(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset:offset + 4], "big")


def _le32_signed(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset:offset + 4], "little", signed=True)


# ---------------------------------------------------------------------------
# Format parsers
# ---------------------------------------------------------------------------

def jpeg_dimensions(data: bytes) -> Optional[ImageDimensions]:
    """
    Find the first Start-Of-Frame marker and read its size fields.

    SOF layout after 0xFF 0xCn: length(2) precision(1) height(2) width(2).
    We scan byte by byte rather than walking segment lengths, so a stray
    0xFFC0 inside an earlier segment wins. Good enough for thumbnails.
    """
    limit = len(data) - 4
    i = 0
    while i < limit:
        if data[i] == 0xFF and data[i + 1] in JPEG_SOF_MARKERS:
            if i + 9 > len(data):
                return None
            return ImageDimensions(width=_be16(data, i + 7), height=_be16(data, i + 5))
        i += 1
    return None


def png_dimensions(data: bytes) -> Optional[ImageDimensions]:
    """IHDR is always the first chunk, so width/height sit at 16 and 20."""
    if len(data) < 24 or data[:8] != PNG_SIGNATURE:
        return None
    return ImageDimensions(width=_be32(data, 16), height=_be32(data, 20))


def gif_dimensions(data: bytes) -> Optional[ImageDimensions]:
    """Logical screen size, little-endian, right after GIF87a/GIF89a."""
    if len(data) < 10 or data[:3] != b"GIF":
        return None
    return ImageDimensions(width=_le16(data, 6), height=_le16(data, 8))


def webp_dimensions(data: bytes) -> Optional[ImageDimensions]:
    """
    Lossy (VP8) WebP only.

    Finds the first "VP8" tag after the RIFF header. If it belongs to a
    VP8L (lossless) or VP8X (extended) chunk we give up rather than read
    the wrong fields. Sizes are 14-bit values; the top two bits of each
    high byte are scaling flags and get masked off.
    """
    if len(data) < 20:
        return None

    for i in range(12, len(data) - 10):
        if data[i:i + 3] != b"VP8":
            continue
        if data[i + 3] != 0x20:
            return None
        width = ((data[i + 7] & 0x3F) << 8 | data[i + 6]) & 0x3FFF
        height = ((data[i + 9] & 0x3F) << 8 | data[i + 8]) & 0x3FFF
        return ImageDimensions(width=width, height=height)

    return None


def bmp_dimensions(data: bytes) -> Optional[ImageDimensions]:
    """
    BITMAPINFOHEADER width/height at 18 and 22.

    Height is negative for top-down bitmaps; the picture is the same size
    either way, so we report the absolute value.
    """
    if len(data) < 26 or data[:2] != b"BM":
        return None
    return ImageDimensions(
        width=abs(_le32_signed(data, 18)),
        height=abs(_le32_signed(data, 22)),
    )


def _unknown(data: bytes) -> Optional[ImageDimensions]:
    return None


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

PARSERS: dict[str, Parser] = {
    "jpg": jpeg_dimensions,
    "jpeg": jpeg_dimensions,
    "png": png_dimensions,
    "gif": gif_dimensions,
    "webp": webp_dimensions,
    "bmp": bmp_dimensions,
}


def parser_for(extension: str) -> Parser:
    """Parser for an extension; unknown extensions get one that returns None."""
    return PARSERS.get(extension.lower().lstrip("."), _unknown)


def sniff_dimensions(data: bytes, extension: str) -> Optional[ImageDimensions]:
    """
    Width/height of an image buffer, or None if we can't tell.

    Never raises. The upload pipeline calls this on user-supplied bytes and
    must carry on regardless of what they contain.
    """
    try:
        return parser_for(extension)(bytes(data))
    except Exception as e:
        logger.warning(
            "Dimension sniffing failed",
            extra={"extension": extension, "size_bytes": len(data), "error": str(e)},
        )
        return None


def sniff_file(data: bytes, filename: str) -> Optional[ImageDimensions]:
    """sniff_dimensions with the extension taken from a filename."""
    return sniff_dimensions(data, extension_of(filename))
