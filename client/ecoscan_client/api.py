from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Union

import httpx

from ecoscan.schemas.analysis import AnalyzeResponse
from ecoscan_client.ingestion import ImageValidationError, guess_mime_type, load_image_file, validate_image

logger = logging.getLogger(__name__)

DEFAULT_BACKEND_URL = os.environ.get("ECOSCAN_BACKEND_URL", "http://localhost:5000")
ANALYZE_PATH = "/api/sustainability/analyze"
REQUEST_TIMEOUT_SECONDS = 60.0
MAX_REQUEST_BYTES = 5 * 1024 * 1024

ANALYSIS_PROMPT = """Analyze this product image for sustainability. Provide a comprehensive environmental impact assessment.

CRITICAL INSTRUCTIONS:
1. If you cannot clearly identify the product (blurry, unclear, no visible labels/branding, or an ambiguous object), respond with:
{
  "productName": "Unknown",
  "reason": "Specific explanation, e.g. 'Image is too blurry', 'No product labels visible'"
}

2. If you CAN identify the product, provide:
   - Product name as a generic category (e.g. "Plastic Water Bottle", "Cotton T-Shirt", "LED Bulb")
   - Sustainability score (0-100) and your confidence (0-100)
   - Visible eco certifications
   - Environmental metrics
   - 3-4 greener alternatives

ALTERNATIVES:
- Use GENERIC names for the eco-friendly category ("Bamboo Toothbrush", not "Colgate Bamboo Toothbrush")
- No brand names, no ASINs, no "buyLink" or URLs: shopping links are generated automatically
- Each alternative: {"name", "description", "score", "price" (price range in INR)}"""

NOT_IDENTIFIED_OUTCOMES = {"unknown_product", "low_confidence"}


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ProductNotIdentifiedError(ApiError):
    """The relay answered, but with guidance instead of a result."""

    def __init__(self, message: str, outcome: str, suggestions: List[str], status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code)
        self.outcome = outcome
        self.suggestions = suggestions

    @property
    def is_unknown_product(self) -> bool:
        return self.outcome == "unknown_product"


def _decoded_size(data_url: str) -> int:
    """Byte size of the base64 payload without decoding it."""
    payload = data_url.split(",", 1)[1] if "," in data_url else data_url
    payload = payload.strip()
    return len(payload) * 3 // 4 - payload[-2:].count("=")


def _error_from_response(resp: httpx.Response) -> ApiError:
    try:
        body = resp.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    status = resp.status_code
    if body.get("outcome") in NOT_IDENTIFIED_OUTCOMES:
        return ProductNotIdentifiedError(
            body.get("details") or body.get("error") or "Unable to identify the product",
            outcome=body["outcome"],
            suggestions=list(body.get("suggestions") or []),
            status_code=status,
        )
    if status == 429:
        return ApiError("Rate limit exceeded. Please try again in a few minutes.", status)
    if status == 413:
        return ApiError("Image too large. Please use an image under 5MB.", status)
    if status == 504:
        return ApiError("Request timeout. The server is taking too long to respond. Please try again.", status)
    if body.get("error"):
        message = body["error"]
        if body.get("details"):
            message = f"{message}: {body['details']}"
        return ApiError(message, status)
    return ApiError("Failed to analyze sustainability. Please try again.", status)


class SustainabilityClient:
    """
    Talks to the relay. One request per analysis, never retried.

        with SustainabilityClient() as client:
            result = client.analyze_file("bottle.jpg")
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BACKEND_URL,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._http = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "SustainabilityClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def health(self) -> dict:
        resp = self._http.get("/health")
        resp.raise_for_status()
        return resp.json()

    def analyze_file(self, path: Union[str, Path]) -> AnalyzeResponse:
        path = Path(path)
        if path.is_file():
            # Request-level ceiling: stop before encoding or touching the network
            validate_image(path.stat().st_size, guess_mime_type(path), max_bytes=MAX_REQUEST_BYTES)
        return self.analyze_data_url(load_image_file(path))

    def analyze_data_url(self, data_url: str, prompt: str = ANALYSIS_PROMPT) -> AnalyzeResponse:
        if _decoded_size(data_url) > MAX_REQUEST_BYTES:
            raise ImageValidationError("Image too large. Please use an image under 5MB.")

        logger.info(f"Sending analysis request to: {self.base_url}{ANALYZE_PATH}")
        logger.info(f"Image size: {len(data_url) / 1024:.2f} KB")

        try:
            resp = self._http.post(ANALYZE_PATH, json={"image": data_url, "prompt": prompt})
        except httpx.TimeoutException:
            raise ApiError("Request timeout. The server is taking too long to respond. Please try again.")
        except httpx.TransportError:
            raise ApiError(f"Cannot connect to server. Please ensure the backend is running at {self.base_url}")

        if resp.status_code != 200:
            error = _error_from_response(resp)
            logger.error(f"Sustainability analysis error: {resp.status_code} {error.message}")
            raise error

        return AnalyzeResponse.model_validate(resp.json())
