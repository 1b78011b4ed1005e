"""Validation helpers for uploaded block photos and numeric form fields."""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from utils.errors import UploadValidationError

ALLOWED_IMAGE_TYPES = ("jpeg", "jpg", "png", "gif", "webp")


@dataclass
class PhotoUpload:
    """A validated photo read from a multipart part."""

    field: str
    filename: str
    content_type: str
    data: bytes


def is_allowed_image(filename: str, content_type: Optional[str]) -> bool:
    """Both the extension and the MIME type must name an allowed image type."""
    ext = Path(filename or "").suffix.lower().lstrip(".")
    mime = (content_type or "").lower().split(";", 1)[0].strip()
    return ext in ALLOWED_IMAGE_TYPES and any(kind in mime for kind in ALLOWED_IMAGE_TYPES)


async def read_photo_upload(field: str, upload: Optional[UploadFile], max_bytes: int) -> Optional[PhotoUpload]:
    """Read and validate one photo part.

    Browsers submit empty parts for file inputs left blank; those count as
    no upload and return None.

    Raises:
        UploadValidationError: If the file is not an allowed image or is too large.
    """
    if upload is None or not upload.filename:
        return None

    data = await upload.read(max_bytes + 1)
    if not data:
        return None
    if len(data) > max_bytes:
        raise UploadValidationError(
            f"File {upload.filename!r} is larger than {max_bytes} bytes."
        )
    if not is_allowed_image(upload.filename, upload.content_type):
        raise UploadValidationError("Only image files are allowed!")

    return PhotoUpload(
        field=field,
        filename=upload.filename,
        content_type=upload.content_type or "application/octet-stream",
        data=data,
    )


def parse_dimension(name: str, raw: str) -> float:
    """Parse a decimal form value into a finite float.

    Raises:
        UploadValidationError: If `raw` is not a finite number.
    """
    try:
        value = float(raw.strip())
    except (AttributeError, ValueError) as exc:
        raise UploadValidationError(f"Field {name!r} must be a number") from exc
    if not math.isfinite(value):
        raise UploadValidationError(f"Field {name!r} must be a number")
    return value
