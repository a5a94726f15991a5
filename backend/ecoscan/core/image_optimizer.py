import io
import logging

from PIL import Image, UnidentifiedImageError

from ecoscan.core.images import EncodedImage

logger = logging.getLogger(__name__)

DEFAULT_MAX_KB = 4000
MAX_LONG_EDGE = 1920
START_QUALITY = 85
QUALITY_STEP = 10
QUALITY_FLOOR = 40


def _fit_long_edge(img: Image.Image, max_edge: int = MAX_LONG_EDGE) -> Image.Image:
    """Shrinks so the longer side is at most max_edge. Never upscales."""
    width, height = img.size
    longest = max(width, height)
    if longest <= max_edge:
        return img
    scale = max_edge / longest
    size = (max(1, round(width * scale)), max(1, round(height * scale)))
    return img.resize(size, Image.LANCZOS)


def _encode_jpeg(img: Image.Image, quality: int) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=quality, optimize=True, progressive=True)
    return buf.getvalue()


def optimize_image(image: EncodedImage, max_kb: int = DEFAULT_MAX_KB) -> EncodedImage:
    """
    Re-encodes an oversized image as JPEG until it fits max_kb.

    Quality walks down from 85 in steps of 10 and stops at the floor; the last
    attempt is returned even if it is still over budget. Any decode/encode
    failure returns the original image unchanged.
    """
    logger.info(f"Original image: {len(image.data) / 1024:.2f} KB")

    if image.size_kb <= max_kb:
        return image

    try:
        with Image.open(io.BytesIO(image.data)) as src:
            src.load()
            logger.info(f"Original dimensions: {src.size[0]}x{src.size[1]}")
            img = _fit_long_edge(src.convert("RGB"))

        quality = START_QUALITY
        optimized = image.data
        used_quality = quality
        while len(optimized) / 1024 > max_kb and quality > QUALITY_FLOOR:
            optimized = _encode_jpeg(img, quality)
            used_quality = quality
            quality -= QUALITY_STEP
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        logger.warning(f"Image optimization failed, using original: {e}")
        return image

    logger.info(f"Optimized image: {len(optimized) / 1024:.2f} KB (quality: {used_quality})")
    return EncodedImage(mime_type="image/jpeg", data=optimized)
