"""
Turns the model's free-form reply into a ProductAnalysis.

interpret_reply() is the whole pipeline: parse (with fallback extraction),
then build a fresh, fully-populated record from whatever fields survived.
Nothing here mutates its inputs and nothing here is random, so the same
reply and quality report always give the same analysis.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Dict, Iterator, List, Mapping, Optional

from ecoscan.core.platforms import generate_platform_links
from ecoscan.schemas.analysis import Alternative, ImageQualityReport, ProductAnalysis

logger = logging.getLogger(__name__)

UNKNOWN_PRODUCT_NAME = "Unknown Product"

# Fallbacks for every field the model may omit or get wrong.
# confidence and imageQuality are not here: they come from the quality report.
FIELD_DEFAULTS: Dict[str, Any] = {
    "productName": UNKNOWN_PRODUCT_NAME,
    "sustainabilityScore": 50,
    "ecoLabels": [],
    "recyclability": "Recyclability information not available",
    "carbonFootprint": "Moderate carbon impact estimated",
    "waterFootprint": "Moderate water usage estimated",
    "materialComposition": "Mixed materials detected",
    "lifespan": "Average product lifespan expected",
    "energyProduction": "Not applicable",
}

TEXT_FIELDS = {
    "recyclability": "recyclability",
    "carbonFootprint": "carbon_footprint",
    "waterFootprint": "water_footprint",
    "materialComposition": "material_composition",
    "lifespan": "lifespan",
    "energyProduction": "energy_production",
}

MODEL_QUALITY_TAGS = {"good", "poor", "blur"}

# Alternatives without their own score get this one when the product itself scores low
DEFAULT_ALTERNATIVE_SCORE = 80
LOW_SCORE_THRESHOLD = 60

STRING_ALTERNATIVE_DESCRIPTION = "Eco-friendly alternative with better sustainability"
OBJECT_ALTERNATIVE_NAME = "Alternative Product"
OBJECT_ALTERNATIVE_DESCRIPTION = "Eco-friendly alternative"

FALLBACK_ALTERNATIVES = [
    {
        "name": "Locally manufactured alternative",
        "description": "Support local businesses and reduce transportation emissions",
        "score": 85,
    },
    {
        "name": "Certified organic option",
        "description": "Look for products with organic certifications",
        "score": 88,
    },
    {
        "name": "Refurbished/Second-hand",
        "description": "Extend product lifecycle by choosing pre-owned",
        "score": 92,
    },
]


class AnalysisParseError(ValueError):
    """The model reply could not be read as a JSON object."""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _balanced_objects(text: str) -> Iterator[str]:
    """
    Yields top-level {...} substrings whose braces balance, left to right.
    Braces inside JSON strings are ignored. An unterminated '{' is skipped and
    scanning resumes just after it.
    """
    pos = 0
    while pos < len(text):
        depth = 0
        start = -1
        in_string = False
        escaped = False
        for i in range(pos, len(text)):
            ch = text[i]
            if depth == 0:
                if ch == "{":
                    start, depth = i, 1
                continue
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
            elif ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    yield text[start:i + 1]
        if depth == 0:
            return
        pos = start + 1


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        obj = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    return obj if isinstance(obj, dict) else None


def parse_model_reply(text: Optional[str]) -> Dict[str, Any]:
    """
    Strict JSON first, then a ```json fenced block, then the first balanced
    object embedded in prose. Raises AnalysisParseError if all of them fail.
    """
    if not text or not text.strip():
        raise AnalysisParseError("AI response was empty")

    obj = _loads_object(text.strip())
    if obj is not None:
        return obj

    logger.warning("AI response is not plain JSON, attempting to extract an embedded object")

    fenced = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", text, re.DOTALL | re.IGNORECASE)
    if fenced:
        obj = _loads_object(fenced.group(1))
        if obj is not None:
            return obj

    for candidate in _balanced_objects(text):
        obj = _loads_object(candidate)
        if obj is not None:
            return obj

    raise AnalysisParseError("AI response could not be interpreted as JSON")


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, value))


def _as_number(value: Any) -> Optional[int]:
    """int/float/numeric string -> rounded int; anything else -> None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = float(value)
    elif isinstance(value, str):
        try:
            num = float(value.strip().rstrip("%"))
        except ValueError:
            return None
    else:
        return None
    if math.isnan(num) or math.isinf(num):
        return None
    return int(round(num))


def _as_score(value: Any) -> Optional[int]:
    num = _as_number(value)
    return None if num is None else clamp(num)


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _as_labels(value: Any) -> List[str]:
    if not isinstance(value, list):
        return list(FIELD_DEFAULTS["ecoLabels"])
    return [label.strip() for label in value if isinstance(label, str) and label.strip()]


# ---------------------------------------------------------------------------
# Alternatives
# ---------------------------------------------------------------------------

def _fallback_score(product_score: int) -> Optional[int]:
    return DEFAULT_ALTERNATIVE_SCORE if product_score < LOW_SCORE_THRESHOLD else None


def _make_alternative(name: str, description: str, score: Optional[int], price: Optional[str] = None) -> Alternative:
    # Links are always rebuilt from the name; whatever the model sent is ignored
    return Alternative(
        name=name,
        description=description,
        score=score,
        price=price,
        platform_links=generate_platform_links(name),
    )


def _normalize_alternative(entry: Any, product_score: int) -> Optional[Alternative]:
    if isinstance(entry, str):
        name = _as_text(entry)
        if not name:
            return None
        return _make_alternative(name, STRING_ALTERNATIVE_DESCRIPTION, _fallback_score(product_score))

    if isinstance(entry, Mapping):
        score = _as_score(entry.get("score"))
        return _make_alternative(
            _as_text(entry.get("name")) or OBJECT_ALTERNATIVE_NAME,
            _as_text(entry.get("description")) or OBJECT_ALTERNATIVE_DESCRIPTION,
            score if score is not None else _fallback_score(product_score),
            price=_as_text(entry.get("price")),
        )

    return None


def fallback_alternatives() -> List[Alternative]:
    return [_make_alternative(a["name"], a["description"], a["score"]) for a in FALLBACK_ALTERNATIVES]


def normalize_alternatives(value: Any, product_score: int) -> List[Alternative]:
    """
    Any input shape -> non-empty list of complete Alternative records.
    Unusable entries are dropped; if none survive the fixed fallback list is used.
    """
    if not isinstance(value, list):
        return fallback_alternatives()
    alternatives = [
        alt for alt in (_normalize_alternative(entry, product_score) for entry in value) if alt is not None
    ]
    return alternatives or fallback_alternatives()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_analysis(
    raw: Mapping[str, Any],
    quality: ImageQualityReport,
    raw_model_output: Optional[str] = None,
) -> ProductAnalysis:
    """
    Builds a complete ProductAnalysis from a parsed reply.
    Never fails: missing or wrong-shaped fields take their defaults and
    numeric fields are clamped to 0-100.
    """
    score = _as_score(raw.get("sustainabilityScore"))
    if score is None:
        score = FIELD_DEFAULTS["sustainabilityScore"]

    confidence = _as_score(raw.get("confidence"))
    if confidence is None:
        confidence = clamp(quality.confidence)

    image_quality = raw.get("imageQuality")
    if not (isinstance(image_quality, str) and image_quality.lower() in MODEL_QUALITY_TAGS):
        image_quality = quality.quality

    fields = {
        attr: _as_text(raw.get(key)) or FIELD_DEFAULTS[key]
        for key, attr in TEXT_FIELDS.items()
    }

    return ProductAnalysis(
        product_name=_as_text(raw.get("productName")) or FIELD_DEFAULTS["productName"],
        sustainability_score=score,
        confidence=confidence,
        image_quality=image_quality.lower(),
        eco_labels=_as_labels(raw.get("ecoLabels")),
        alternatives=normalize_alternatives(raw.get("alternatives"), score),
        warnings=list(quality.warnings) if quality.warnings else None,
        reason=_as_text(raw.get("reason")),
        raw_model_output=raw_model_output,
        **fields,
    )


def interpret_reply(
    text: Optional[str],
    quality: ImageQualityReport,
    include_raw: bool = False,
) -> ProductAnalysis:
    """RawModelReply -> ProductAnalysis, or AnalysisParseError."""
    raw = parse_model_reply(text)
    return validate_analysis(raw, quality, raw_model_output=text if include_raw else None)
