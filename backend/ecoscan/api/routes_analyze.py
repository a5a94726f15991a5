import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from ecoscan.core import gemini
from ecoscan.core.analysis import AnalysisParseError, interpret_reply
from ecoscan.core.config import settings
from ecoscan.core.errors import RelayError
from ecoscan.core.gate import evaluate
from ecoscan.core.image_optimizer import optimize_image
from ecoscan.core.image_quality import assess_quality, should_reject, skipped_report
from ecoscan.core.images import ImageFormatError, decode_data_url
from ecoscan.core.prompts import build_request
from ecoscan.schemas.analysis import (
    AnalysisMetadata,
    AnalyzeRequest,
    AnalyzeResponse,
    ErrorResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sustainability", tags=["sustainability"])

GENERIC_FAILURE_DETAILS = (
    "Failed to analyze product sustainability. Please ensure you uploaded a clear image "
    "of the product and try again."
)


def _relay_error_from_gemini(e: gemini.GeminiError) -> RelayError:
    """
    Maps an upstream failure to a fixed user-facing error.
    Provider bodies stay in the logs.
    """
    if isinstance(e, gemini.GeminiAuthError):
        return RelayError(
            500,
            "Server configuration error",
            "The analysis service is not configured correctly. Please contact the administrator.",
        )

    if isinstance(e, gemini.GeminiRateLimitError):
        headers = {}
        if e.retry_after_seconds is not None:
            headers["Retry-After"] = str(e.retry_after_seconds)
        return RelayError(
            429,
            "Rate limit exceeded",
            "Too many requests. Please try again in a few moments.",
            extra={"retryAfterSeconds": e.retry_after_seconds},
            headers=headers or None,
        )

    if isinstance(e, gemini.GeminiBadRequestError):
        return RelayError(
            400,
            "Invalid request",
            "The image could not be processed. Please try with a different, clearer image.",
        )

    if isinstance(e, gemini.GeminiPayloadTooLargeError):
        return RelayError(
            413,
            "Image too large",
            "Please use an image under 5MB. Try compressing your image first.",
        )

    if isinstance(e, gemini.GeminiTimeoutError):
        return RelayError(
            504,
            "Request timeout",
            "The AI service is taking too long to respond. Please try again with a smaller or clearer image.",
        )

    if isinstance(e, gemini.GeminiEmptyReplyError):
        return RelayError(502, "AI response could not be interpreted", "Analysis failed. Please try again.")

    if isinstance(e, gemini.GeminiUnavailableError):
        return RelayError(
            503,
            "Service unavailable",
            "Unable to connect to AI service. Please try again later.",
        )

    return RelayError(
        500,
        "Analysis failed",
        GENERIC_FAILURE_DETAILS,
        extra={"technicalDetails": e.message if settings.is_development else None},
    )


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def analyze(req: AnalyzeRequest):
    # 1) Input validation (no external call on failure)
    if not req.image:
        raise RelayError(400, "Image is required", "Please upload a valid product image")

    if not settings.api_configured:
        logger.error("GEMINI_API_KEY not configured")
        raise RelayError(500, "Server configuration error", "API key not found. Please contact administrator.")

    try:
        image = decode_data_url(req.image)
    except ImageFormatError as e:
        raise RelayError(400, "Invalid image format", str(e))

    if len(image.data) > settings.MAX_UPLOAD_BYTES:
        raise RelayError(
            413,
            "Payload too large",
            f"Image file is too large. Please use an image under {settings.max_upload_label}.",
        )

    logger.info("Starting image analysis...")

    # 2) Quality estimate + hard gate
    quality = assess_quality(image.data) if settings.ENABLE_QUALITY_CHECK else skipped_report()
    logger.info(f"Image quality analysis: {quality.model_dump()}")

    if should_reject(quality):
        raise RelayError(
            400,
            "Image quality too poor",
            "The uploaded image is too blurry or unclear. Please upload a clearer, well-lit image "
            "with visible product details and labels.",
            extra={
                "imageQuality": quality.quality,
                "confidence": quality.confidence,
                "warnings": list(quality.warnings),
            },
        )

    # 3) Shrink to the transport budget
    if settings.ENABLE_IMAGE_OPTIMIZATION:
        logger.info("Optimizing image...")
        image = optimize_image(image, max_kb=settings.OPTIMIZE_MAX_KB)
    logger.info(f"Image size: {image.size_kb:.2f} KB")

    # 4) One call to the model
    payload = build_request(image, quality.quality, req.prompt)
    try:
        logger.info("Calling Gemini API...")
        raw_text = await gemini.generate_analysis(payload)
    except gemini.GeminiError as e:
        logger.error(f"Sustainability analysis error: {type(e).__name__}: {e.message}")
        raise _relay_error_from_gemini(e)

    # 5) Parse + validate
    logger.info("AI response received, parsing...")
    try:
        analysis = interpret_reply(raw_text, quality, include_raw=settings.RETURN_DEBUG)
    except AnalysisParseError as e:
        logger.error(f"{e}; raw reply starts with: {raw_text[:200]!r}")
        raise RelayError(
            502,
            "AI response could not be interpreted",
            "Analysis failed. Please try again.",
            extra={"technicalDetails": str(e) if settings.is_development else None},
        )

    analysis = analysis.model_copy(
        update={
            "metadata": AnalysisMetadata(
                analyzed_at=datetime.now(timezone.utc).isoformat(),
                image_quality=quality.quality,
                confidence=analysis.confidence,
                warnings=list(quality.warnings),
            )
        }
    )

    logger.info(
        f"Analysis complete: productName={analysis.product_name!r} "
        f"score={analysis.sustainability_score} confidence={analysis.confidence} "
        f"imageQuality={analysis.image_quality} alternatives={len(analysis.alternatives)}"
    )

    # 6) Unknown product / low confidence
    decision = evaluate(analysis)
    if not decision.is_result:
        logger.info(f"Analysis gated: {decision.outcome.value}")
        raise RelayError(
            422,
            decision.title,
            decision.message,
            extra={
                "outcome": decision.outcome.value,
                "suggestions": decision.suggestions,
                "productName": analysis.product_name,
                "confidence": analysis.confidence,
                "imageQuality": analysis.image_quality,
            },
        )

    return AnalyzeResponse(success=True, analysis=analysis, image_quality=quality)
