import numpy as np
import pytest

from ecoscan_client import camera
from ecoscan_client.camera import CameraCapture, CameraError


class FakeDevice:
    """Stands in for cv2.VideoCapture."""

    instances = []

    def __init__(self, index, opened=True, frame_ok=True):
        self.index = index
        self.opened = opened
        self.frame_ok = frame_ok
        self.released = 0
        FakeDevice.instances.append(self)

    def isOpened(self):
        return self.opened

    def grab(self):
        return True

    def read(self):
        if not self.frame_ok:
            return False, None
        return True, np.full((48, 64, 3), 127, dtype=np.uint8)

    def release(self):
        self.released += 1


@pytest.fixture(autouse=True)
def reset_instances():
    FakeDevice.instances = []


def test_capture_releases_device_on_exit():
    with CameraCapture(0, opener=FakeDevice) as cam:
        jpeg = cam.capture()
        device = FakeDevice.instances[0]
        assert device.released == 0

    assert jpeg[:2] == b"\xff\xd8"
    assert device.released == 1
    assert not cam.is_open


def test_device_released_when_capture_fails():
    with pytest.raises(CameraError):
        with CameraCapture(0, opener=lambda i: FakeDevice(i, frame_ok=False)) as cam:
            cam.capture()

    assert FakeDevice.instances[0].released == 1


def test_device_released_on_caller_error():
    with pytest.raises(KeyError):
        with CameraCapture(0, opener=FakeDevice):
            raise KeyError("cancelled")

    assert FakeDevice.instances[0].released == 1


def test_unavailable_camera_is_released_and_reported():
    with pytest.raises(CameraError, match="Unable to access camera"):
        CameraCapture(2, opener=lambda i: FakeDevice(i, opened=False)).open()

    assert FakeDevice.instances[0].released == 1


def test_close_is_idempotent():
    cam = CameraCapture(0, opener=FakeDevice).open()
    cam.close()
    cam.close()

    assert FakeDevice.instances[0].released == 1


def test_capture_requires_open_device():
    with pytest.raises(CameraError):
        CameraCapture(0, opener=FakeDevice).capture()


def test_capture_photo_returns_data_url(monkeypatch):
    monkeypatch.setattr(camera.cv2, "VideoCapture", FakeDevice)

    url = camera.capture_photo(1)

    assert url.startswith("data:image/jpeg;base64,")
    assert FakeDevice.instances[0].index == 1
    assert FakeDevice.instances[0].released == 1
