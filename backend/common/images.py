"""
Helpers for base64 image payloads sent by the frontend.

Clients may send either bare base64 or a full data URL
(`data:image/png;base64,....`).
"""

import base64
import binascii
from typing import Tuple

from backend.common.errors import ValidationError

DEFAULT_MIME_TYPE = "image/jpeg"


def split_data_url(image_data: str) -> Tuple[str, str]:
    """
    Separate the MIME type from the base64 payload.

    Args:
        image_data (str): Bare base64 or a data URL.

    Returns:
        tuple: (mime_type, base64_payload). Bare base64 is assumed to be JPEG.
    """
    if image_data.startswith("data:") and "," in image_data:
        header, payload = image_data.split(",", 1)
        mime_type = header[len("data:"):].split(";", 1)[0] or DEFAULT_MIME_TYPE
        return mime_type, payload
    return DEFAULT_MIME_TYPE, image_data


def decode_image(image_data: str) -> Tuple[str, bytes]:
    """
    Decode a base64 image into raw bytes.

    Raises:
        ValidationError: If the payload is not valid base64, or is empty.
    """
    mime_type, payload = split_data_url(image_data)
    try:
        image_bytes = base64.b64decode("".join(payload.split()), validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Image must be base64 encoded")
    if not image_bytes:
        raise ValidationError("Image required")
    return mime_type, image_bytes


def to_data_url(image_data: str) -> str:
    """Return the image as a data URL, adding a JPEG header to bare base64."""
    mime_type, payload = split_data_url(image_data)
    return f"data:{mime_type};base64,{payload}"
