from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass

# data:image/<jpeg|jpg|png|gif|webp>;base64,<payload>
DATA_URL_RE = re.compile(r"^data:image/(jpeg|jpg|png|gif|webp);base64,", re.IGNORECASE)

SUPPORTED_FORMATS = "JPEG, PNG, GIF, WebP"


class ImageFormatError(ValueError):
    pass


@dataclass(frozen=True)
class EncodedImage:
    mime_type: str
    data: bytes

    @property
    def size_kb(self) -> float:
        return len(self.data) / 1024

    def to_data_url(self) -> str:
        return to_data_url(self.data, self.mime_type)


def b64_text(data: bytes) -> str:
    return base64.b64encode(data).decode("utf-8")


def to_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{b64_text(data)}"


def is_data_url(value: object) -> bool:
    return isinstance(value, str) and bool(DATA_URL_RE.match(value))


def decode_data_url(value: str) -> EncodedImage:
    """
    Validates the data-URL envelope and decodes its base64 payload.
    Raises ImageFormatError with a user-facing message when either step fails.
    """
    if not value or not isinstance(value, str):
        raise ImageFormatError("No image data provided")

    m = DATA_URL_RE.match(value)
    if not m:
        raise ImageFormatError(f"Invalid image format. Supported: {SUPPORTED_FORMATS}")

    subtype = m.group(1).lower()
    if subtype == "jpg":
        subtype = "jpeg"

    payload = re.sub(r"\s+", "", value[m.end():])
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ImageFormatError("Image data is not valid base64")

    if not data:
        raise ImageFormatError("No image data provided")

    return EncodedImage(mime_type=f"image/{subtype}", data=data)
