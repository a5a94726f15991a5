"""
Cheap statistical image-quality check.

The "blur" tag is an approximation: a dark channel (mean < 50) or a flat one
(stddev < 20) is treated as low detail, which is typical of out-of-focus or
badly lit captures. It is not real blur detection, and a sharp photo of a dark
or uniform object can be tagged "blur" too.
"""

import io
import logging

from PIL import Image, ImageStat, UnidentifiedImageError

from ecoscan.schemas.analysis import ImageMetadata, ImageQualityReport

logger = logging.getLogger(__name__)

MIN_CHANNEL_MEAN = 50
MIN_CHANNEL_STDDEV = 20
MIN_DIMENSION = 200
MAX_DIMENSION = 4000

# Below this a blurry image is rejected before calling the model
BLUR_REJECT_CONFIDENCE = 40

BLUR_WARNING = "Image appears blurry. Please upload a clearer photo."
LOW_RES_WARNING = "Image resolution is too low. Use a higher quality photo."
COMPRESS_WARNING = "Image will be compressed for processing."
UNKNOWN_WARNING = "Could not analyze image quality"


def _color_bands(img: Image.Image) -> Image.Image:
    # Alpha says nothing about focus; grayscale and RGB are measured as-is.
    if img.mode in ("L", "RGB"):
        return img
    if img.mode in ("LA", "La"):
        return img.convert("L")
    return img.convert("RGB")


def unknown_report() -> ImageQualityReport:
    return ImageQualityReport(quality="unknown", confidence=75, warnings=[UNKNOWN_WARNING], metadata=None)


def skipped_report() -> ImageQualityReport:
    """Neutral report used when the quality check is switched off."""
    return ImageQualityReport(quality="unknown", confidence=75, warnings=[], metadata=None)


def assess_quality(image_bytes: bytes) -> ImageQualityReport:
    """
    Returns a quality tier, confidence and warnings for the decoded image.
    Never raises: an unreadable image yields the "unknown" report.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            img.load()
            width, height = img.size
            fmt = (img.format or "").lower() or None
            stats = ImageStat.Stat(_color_bands(img))
            means, stddevs = stats.mean, stats.stddev
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        logger.warning(f"Image quality analysis failed: {e}")
        return unknown_report()

    is_blurry = any(
        mean < MIN_CHANNEL_MEAN or std < MIN_CHANNEL_STDDEV
        for mean, std in zip(means, stddevs)
    )
    is_too_small = width < MIN_DIMENSION or height < MIN_DIMENSION
    is_too_large = width > MAX_DIMENSION or height > MAX_DIMENSION

    quality = "good"
    confidence = 90
    warnings = []

    if is_blurry:
        quality = "blur"
        confidence = 50
        warnings.append(BLUR_WARNING)

    if is_too_small:
        if quality != "blur":
            quality = "poor"
        confidence = min(confidence, 60)
        warnings.append(LOW_RES_WARNING)

    if is_too_large:
        warnings.append(COMPRESS_WARNING)

    return ImageQualityReport(
        quality=quality,
        confidence=confidence,
        warnings=warnings,
        metadata=ImageMetadata(width=width, height=height, format=fmt),
    )


def should_reject(report: ImageQualityReport) -> bool:
    return report.quality == "blur" and report.confidence < BLUR_REJECT_CONFIDENCE
