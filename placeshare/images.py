"""
Validation of uploaded place and user images.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from placeshare.errors import ValidationError

logger = logging.getLogger(__name__)

# Pillow format name -> file extension used when storing.
ALLOWED_FORMATS = {
    "PNG": "png",
    "JPEG": "jpeg",
}
ALLOWED_CONTENT_TYPES = {"image/png", "image/jpeg", "image/jpg"}


@dataclass
class CheckedImage:
    data: bytes
    extension: str


def check_image(
    data: bytes, content_type: str | None, max_bytes: int
) -> CheckedImage:
    """
    Verifies an upload is a PNG or JPEG image no larger than ``max_bytes``.

    Args:
        data (bytes): Raw upload bytes.
        content_type (str | None): Content type declared by the client.
        max_bytes (int): Size limit.

    Returns:
        CheckedImage: The bytes with the extension detected from the content.

    Raises:
        ValidationError: If the upload is missing, too large, or not a PNG/JPEG.
    """
    if not data:
        raise ValidationError("An image is required.")
    if len(data) > max_bytes:
        raise ValidationError(f"Image exceeds the {max_bytes} byte limit.")
    if content_type and content_type.lower() not in ALLOWED_CONTENT_TYPES:
        raise ValidationError("Invalid mime type!")

    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
            img.verify()
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
    ) as exc:
        logger.info("Rejected upload that is not a readable image: %s", exc)
        raise ValidationError("Invalid mime type!") from exc

    extension = ALLOWED_FORMATS.get(fmt or "")
    if extension is None:
        raise ValidationError("Invalid mime type!")
    return CheckedImage(data=data, extension=extension)
