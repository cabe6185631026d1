"""
Unit tests for image dimension sniffing.

Each test builds the smallest header that carries the size fields. No
real image files are needed; that is the point of a header sniffer.
"""

import pytest

from bucketfs.core.storage.dimensions import (
    bmp_dimensions,
    gif_dimensions,
    jpeg_dimensions,
    parser_for,
    png_dimensions,
    sniff_dimensions,
    sniff_file,
    webp_dimensions,
)
from bucketfs.core.storage.models import ImageDimensions


def png_header(width: int, height: int) -> bytes:
    return (
        b"\x89PNG\r\n\x1a\n"
        + b"\x00\x00\x00\x0dIHDR"
        + width.to_bytes(4, "big")
        + height.to_bytes(4, "big")
    )


def gif_header(width: int, height: int) -> bytes:
    return b"GIF89a" + width.to_bytes(2, "little") + height.to_bytes(2, "little")


def jpeg_header(width: int, height: int, marker: int = 0xC0) -> bytes:
    return (
        b"\xff\xd8"
        + bytes([0xFF, marker])
        + b"\x00\x11\x08"
        + height.to_bytes(2, "big")
        + width.to_bytes(2, "big")
        + b"\x03"
    )


def webp_header(width: int, height: int, tag: bytes = b"VP8 ") -> bytes:
    return (
        b"RIFF" + b"\x00" * 4 + b"WEBP"
        + tag
        + b"\x00\x00"
        + width.to_bytes(2, "little")
        + height.to_bytes(2, "little")
        + b"\x00" * 8
    )


def bmp_header(width: int, height: int) -> bytes:
    return (
        b"BM" + b"\x00" * 16
        + width.to_bytes(4, "little", signed=True)
        + height.to_bytes(4, "little", signed=True)
    )


# ---------------------------------------------------------------------------
# Format parsers
# ---------------------------------------------------------------------------

class TestPng:

    def test_reads_ihdr(self):
        assert png_dimensions(png_header(100, 50)) == ImageDimensions(100, 50)

    def test_signature_only_is_none(self):
        assert png_dimensions(b"\x89PNG\r\n\x1a\n") is None

    def test_wrong_signature_is_none(self):
        assert png_dimensions(b"\x00" * 24) is None


class TestGif:

    def test_reads_logical_screen(self):
        assert gif_dimensions(gif_header(10, 20)) == ImageDimensions(10, 20)

    def test_too_short_is_none(self):
        assert gif_dimensions(b"GIF89a\x0a") is None


class TestJpeg:

    def test_baseline_sof(self):
        assert jpeg_dimensions(jpeg_header(640, 480)) == ImageDimensions(640, 480)

    def test_progressive_sof(self):
        assert jpeg_dimensions(jpeg_header(32, 16, marker=0xC2)) == ImageDimensions(32, 16)

    def test_no_sof_is_none(self):
        assert jpeg_dimensions(b"\xff\xd8\xff\xe0" + b"\x00" * 20) is None

    def test_sof_cut_off_is_none(self):
        """A marker too close to the end must not read past the buffer."""
        assert jpeg_dimensions(b"\xff\xd8\xff\xc0\x00\x11") is None


class TestWebp:

    def test_lossy_vp8(self):
        assert webp_dimensions(webp_header(300, 200)) == ImageDimensions(300, 200)

    def test_scaling_bits_are_masked(self):
        data = bytearray(webp_header(300, 200))
        data[19] |= 0xC0
        assert webp_dimensions(bytes(data)) == ImageDimensions(300, 200)

    @pytest.mark.parametrize("tag", [b"VP8L", b"VP8X"])
    def test_lossless_and_extended_are_none(self, tag):
        assert webp_dimensions(webp_header(300, 200, tag=tag)) is None

    def test_too_short_is_none(self):
        assert webp_dimensions(b"RIFF\x00\x00\x00\x00WEBP") is None


class TestBmp:

    def test_bottom_up(self):
        assert bmp_dimensions(bmp_header(64, 40)) == ImageDimensions(64, 40)

    def test_top_down_height_is_absolute(self):
        assert bmp_dimensions(bmp_header(64, -40)) == ImageDimensions(64, 40)

    def test_truncated_is_none(self):
        assert bmp_dimensions(b"BM" + b"\x00" * 10) is None


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

class TestDispatch:

    def test_extension_lookup_is_case_insensitive(self):
        assert parser_for(".PNG") is png_dimensions
        assert parser_for("jpeg") is parser_for("jpg")

    def test_unknown_extension_gives_none(self):
        assert sniff_dimensions(png_header(1, 1), "tiff") is None

    def test_dispatch_is_by_extension_not_content(self):
        """A JPEG named .png gets the PNG parser and no dimensions."""
        assert sniff_file(jpeg_header(10, 10), "photo.png") is None

    def test_sniff_file_uses_filename_extension(self):
        assert sniff_file(gif_header(10, 20), "anim.GIF") == ImageDimensions(10, 20)

    def test_empty_buffer_never_raises(self):
        for ext in ("jpg", "png", "gif", "webp", "bmp"):
            assert sniff_dimensions(b"", ext) is None
