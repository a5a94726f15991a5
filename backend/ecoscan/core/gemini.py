import json
import logging
import re
from typing import Any, Dict, Optional

import httpx

from ecoscan.core.config import settings

logger = logging.getLogger(__name__)

# Service endpoint for Gemini API (v1beta)
API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class GeminiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


class GeminiAuthError(GeminiError):
    pass


class GeminiRateLimitError(GeminiError):
    def __init__(self, message: str, retry_after_seconds: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after_seconds = retry_after_seconds


class GeminiBadRequestError(GeminiError):
    pass


class GeminiPayloadTooLargeError(GeminiError):
    pass


class GeminiTimeoutError(GeminiError):
    pass


class GeminiUnavailableError(GeminiError):
    pass


class GeminiRequestError(GeminiError):
    """Any other upstream failure, including a reply we cannot read."""


class GeminiEmptyReplyError(GeminiRequestError):
    """The call succeeded but carried no candidate text (e.g. a safety block)."""


def _redact_key(s: str) -> str:
    """
    Redact 'key=...' in URLs or text so we never leak API keys in logs/responses.
    """
    if not s:
        return s
    return re.sub(r"(key=)([^&\s]+)", r"\1REDACTED", s)


def _model_path(name: str) -> str:
    name = (name or "").strip()
    return name if name.startswith("models/") else f"models/{name}"


def _retry_after(resp: httpx.Response) -> Optional[int]:
    raw = resp.headers.get("retry-after")
    if not raw:
        return None
    try:
        return max(0, int(float(raw)))
    except ValueError:
        return None


def _raise_for_status(resp: httpx.Response) -> None:
    status = resp.status_code
    if status < 400:
        return

    body = _redact_key(resp.text)[:2000]
    logger.error(f"Gemini API error: {status}\nBODY:\n{body}")

    if status in (401, 403):
        raise GeminiAuthError("Gemini rejected the API credentials", status_code=status, body=body)
    if status == 429:
        raise GeminiRateLimitError(
            "Gemini rate limit exceeded",
            retry_after_seconds=_retry_after(resp),
            status_code=status,
            body=body,
        )
    if status == 400:
        raise GeminiBadRequestError("Gemini could not process the request", status_code=status, body=body)
    if status == 413:
        raise GeminiPayloadTooLargeError("Image payload too large for Gemini", status_code=status, body=body)
    if status in (502, 503):
        raise GeminiUnavailableError("Gemini is temporarily unavailable", status_code=status, body=body)
    raise GeminiRequestError(f"Gemini request failed: {status}", status_code=status, body=body)


def _reply_text(data: Dict[str, Any]) -> str:
    try:
        parts = data["candidates"][0]["content"]["parts"]
        return "".join(p.get("text", "") for p in parts)
    except (KeyError, IndexError, TypeError, AttributeError):
        logger.error(f"Unexpected Gemini response shape; raw={json.dumps(data)[:2000]}")
        raise GeminiEmptyReplyError("Gemini returned no usable candidate")


async def generate_analysis(
    payload: Dict[str, Any],
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """
    Sends one generateContent request and returns the model's raw reply text.

    - Exactly one call: no retries, GEMINI_TIMEOUT_SECONDS is the only bound
    - Upstream failures are raised as GeminiError subclasses
    - Redacts the API key from anything that gets logged or raised
    """
    api_key = settings.GEMINI_API_KEY.strip()
    if not api_key:
        raise GeminiAuthError("GEMINI_API_KEY is not set")

    url = f"{API_BASE}/{_model_path(settings.GEMINI_MODEL)}:generateContent"
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=settings.GEMINI_TIMEOUT_SECONDS)

    try:
        resp = await client.post(url, params={"key": api_key}, json=payload)
    except httpx.TimeoutException as e:
        raise GeminiTimeoutError(f"Gemini request timed out: {type(e).__name__}")
    except httpx.NetworkError as e:
        raise GeminiUnavailableError(f"Unable to reach Gemini: {_redact_key(str(e))}")
    finally:
        if owns_client:
            await client.aclose()

    _raise_for_status(resp)

    try:
        data = resp.json()
    except ValueError:
        raise GeminiRequestError("Gemini returned a non-JSON body", status_code=resp.status_code)

    return _reply_text(data)
