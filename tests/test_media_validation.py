"""
Unit tests for upload and form field validation.
"""

import io
import math

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from utils.errors import UploadValidationError
from utils.media_validation import is_allowed_image, parse_dimension, read_photo_upload


def _upload(filename: str, data: bytes, content_type: str) -> UploadFile:
    return UploadFile(io.BytesIO(data), filename=filename, headers=Headers({"content-type": content_type}))


class TestIsAllowedImage:
    @pytest.mark.parametrize(
        "filename, content_type",
        [
            ("a.jpg", "image/jpeg"),
            ("a.JPEG", "image/jpeg"),
            ("a.png", "image/png"),
            ("a.gif", "image/gif"),
            ("a.webp", "image/webp"),
        ],
    )
    def test_accepted(self, filename, content_type):
        assert is_allowed_image(filename, content_type)

    @pytest.mark.parametrize(
        "filename, content_type",
        [
            ("a.txt", "text/plain"),
            ("a.png", "text/plain"),
            ("a.exe", "image/png"),
            ("noext", "image/png"),
            ("a.bmp", "image/bmp"),
            ("a.png", None),
        ],
    )
    def test_rejected(self, filename, content_type):
        assert not is_allowed_image(filename, content_type)


class TestReadPhotoUpload:
    async def test_valid_upload(self):
        photo = await read_photo_upload("photo_front", _upload("f.png", b"abc", "image/png"), max_bytes=10)

        assert photo.field == "photo_front"
        assert photo.data == b"abc"
        assert photo.content_type == "image/png"

    async def test_missing_or_empty_parts_count_as_absent(self):
        assert await read_photo_upload("photo_front", None, max_bytes=10) is None
        assert await read_photo_upload("photo_front", _upload("", b"", "application/octet-stream"), 10) is None
        assert await read_photo_upload("photo_front", _upload("f.png", b"", "image/png"), 10) is None

    async def test_too_large(self):
        with pytest.raises(UploadValidationError, match="larger than 10 bytes"):
            await read_photo_upload("photo_front", _upload("f.png", b"x" * 11, "image/png"), max_bytes=10)

    async def test_exactly_at_limit_is_accepted(self):
        photo = await read_photo_upload("photo_front", _upload("f.png", b"x" * 10, "image/png"), max_bytes=10)

        assert len(photo.data) == 10

    async def test_wrong_type(self):
        with pytest.raises(UploadValidationError, match="Only image files"):
            await read_photo_upload("photo_front", _upload("f.pdf", b"%PDF", "application/pdf"), max_bytes=10)


class TestParseDimension:
    def test_parses_decimal_strings(self):
        assert parse_dimension("height", " 1.25 ") == 1.25
        assert parse_dimension("height", "-2") == -2.0

    @pytest.mark.parametrize("raw", ["", "abc", "1,5", "nan", "inf"])
    def test_rejects_non_numbers(self, raw):
        with pytest.raises(UploadValidationError):
            parse_dimension("height", raw)

    def test_result_is_finite(self):
        assert math.isfinite(parse_dimension("width", "1e3"))
