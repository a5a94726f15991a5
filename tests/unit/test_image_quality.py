import io

from PIL import Image

from conftest import make_image
from ecoscan.core.image_quality import (
    BLUR_WARNING,
    COMPRESS_WARNING,
    LOW_RES_WARNING,
    UNKNOWN_WARNING,
    assess_quality,
    should_reject,
)
from ecoscan.schemas.analysis import ImageQualityReport


def test_detailed_image_is_good():
    report = assess_quality(make_image((320, 240)))

    assert report.quality == "good"
    assert report.confidence == 90
    assert report.warnings == []
    assert report.metadata.width == 320
    assert report.metadata.height == 240
    assert report.metadata.format == "png"


def test_flat_image_is_tagged_blur():
    report = assess_quality(make_image((320, 240), kind="flat"))

    assert report.quality == "blur"
    assert report.confidence == 50
    assert report.warnings == [BLUR_WARNING]


def test_dark_image_is_tagged_blur():
    img = Image.effect_noise((320, 240), 8).point(lambda v: v // 8).convert("RGB")
    buf = io.BytesIO()
    img.save(buf, format="PNG")

    assert assess_quality(buf.getvalue()).quality == "blur"


def test_small_image_is_poor_with_capped_confidence():
    report = assess_quality(make_image((120, 120)))

    assert report.quality == "poor"
    assert report.confidence == 60
    assert report.warnings == [LOW_RES_WARNING]


def test_small_blurry_image_stays_blur():
    report = assess_quality(make_image((100, 100), kind="flat"))

    assert report.quality == "blur"
    assert report.confidence == 50
    assert report.warnings == [BLUR_WARNING, LOW_RES_WARNING]


def test_huge_image_only_gets_a_compression_note():
    report = assess_quality(make_image((4001, 200), fmt="JPEG"))

    assert report.quality == "good"
    assert report.confidence == 90
    assert report.warnings == [COMPRESS_WARNING]
    assert report.metadata.format == "jpeg"


def test_alpha_channel_is_ignored():
    img = Image.effect_noise((300, 300), 64).convert("RGBA")
    buf = io.BytesIO()
    img.save(buf, format="PNG")

    assert assess_quality(buf.getvalue()).quality == "good"


def test_corrupt_bytes_are_a_soft_failure():
    report = assess_quality(b"definitely not an image")

    assert report.quality == "unknown"
    assert report.confidence == 75
    assert report.warnings == [UNKNOWN_WARNING]
    assert report.metadata is None


def test_truncated_image_is_a_soft_failure():
    data = make_image((320, 240), fmt="JPEG")

    assert assess_quality(data[: len(data) // 3]).quality == "unknown"


def test_reject_boundary():
    def report(quality, confidence):
        return ImageQualityReport(quality=quality, confidence=confidence, warnings=[])

    assert should_reject(report("blur", 39))
    assert not should_reject(report("blur", 40))
    assert not should_reject(report("poor", 10))
    assert not should_reject(report("unknown", 0))
