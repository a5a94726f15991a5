"""
Single-frame camera capture.

CameraCapture owns the video device for the lifetime of a `with` block and
releases it on every way out: normal exit, exceptions, close(), and garbage
collection of an instance that was never closed.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import cv2

from ecoscan_client.ingestion import encode_image

logger = logging.getLogger(__name__)

JPEG_QUALITY = 90
WARMUP_FRAMES = 3


class CameraError(RuntimeError):
    pass


class CameraCapture:
    def __init__(self, device_index: int = 0, opener: Optional[Callable[[int], "cv2.VideoCapture"]] = None):
        self.device_index = device_index
        self._opener = opener or cv2.VideoCapture
        self._device = None

    @property
    def is_open(self) -> bool:
        return self._device is not None

    def open(self) -> "CameraCapture":
        if self._device is not None:
            return self
        device = self._opener(self.device_index)
        if not device.isOpened():
            device.release()
            raise CameraError(
                f"Unable to access camera {self.device_index}. Please check permissions or use file upload."
            )
        self._device = device
        logger.info(f"Camera {self.device_index} opened")
        return self

    def close(self) -> None:
        device, self._device = self._device, None
        if device is not None:
            device.release()
            logger.info(f"Camera {self.device_index} released")

    def capture(self) -> bytes:
        """Grabs one frame and returns it JPEG-encoded."""
        if self._device is None:
            raise CameraError("Camera is not open")

        # First frames from many webcams are dark while exposure settles
        for _ in range(WARMUP_FRAMES):
            self._device.grab()

        ok, frame = self._device.read()
        if not ok or frame is None:
            raise CameraError("Failed to capture a frame from the camera")

        ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), JPEG_QUALITY])
        if not ok:
            raise CameraError("Failed to encode the captured frame")
        return buf.tobytes()

    def __enter__(self) -> "CameraCapture":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __del__(self):
        if getattr(self, "_device", None) is not None:
            self.close()


def capture_photo(device_index: int = 0) -> str:
    """Acquire the camera, take one picture, release it. Returns a data URL."""
    with CameraCapture(device_index) as camera:
        jpeg = camera.capture()
    return encode_image(jpeg, "image/jpeg")
