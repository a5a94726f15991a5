from __future__ import annotations

import base64
import mimetypes
from pathlib import Path
from typing import Optional, Union

MAX_FILE_BYTES = 10 * 1024 * 1024


class ImageValidationError(ValueError):
    """A picked file cannot be used; the message is meant for the user."""


def validate_image(size_bytes: int, mime_type: Optional[str], max_bytes: int = MAX_FILE_BYTES) -> None:
    if not mime_type or not mime_type.lower().startswith("image/"):
        raise ImageValidationError("Please select an image file")
    if size_bytes > max_bytes:
        raise ImageValidationError(f"File size must be less than {max_bytes // (1024 * 1024)}MB")


def guess_mime_type(filename: Union[str, Path, None]) -> Optional[str]:
    if not filename:
        return None
    mime, _ = mimetypes.guess_type(str(filename))
    return mime


def encode_image(data: bytes, mime_type: str) -> str:
    """Raw image bytes -> data:<mime>;base64,<payload>"""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('utf-8')}"


def load_image_bytes(
    data: bytes,
    mime_type: Optional[str] = None,
    filename: Optional[str] = None,
    max_bytes: int = MAX_FILE_BYTES,
) -> str:
    """In-memory image (drag-drop, paste, camera frame) -> data URL."""
    mime_type = mime_type or guess_mime_type(filename)
    validate_image(len(data), mime_type, max_bytes=max_bytes)
    return encode_image(data, mime_type)


def load_image_file(path: Union[str, Path], max_bytes: int = MAX_FILE_BYTES) -> str:
    """
    Image file on disk -> data URL.
    Type and size are checked from metadata before the file is read.
    """
    path = Path(path)
    if not path.is_file():
        raise ImageValidationError(f"File not found: {path}")

    validate_image(path.stat().st_size, guess_mime_type(path), max_bytes=max_bytes)
    return encode_image(path.read_bytes(), guess_mime_type(path))
