from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional

from ecoscan.schemas.analysis import ProductAnalysis

LOW_CONFIDENCE_THRESHOLD = 50

UNKNOWN_EXACT_NAMES = {"unidentified product", "unclear"}

UNKNOWN_PRODUCT_TITLE = "Unable to identify product"
UNKNOWN_PRODUCT_MESSAGE = (
    "Unable to identify the product from the image. Please ensure the image shows "
    "clear product labels, branding, or packaging."
)
UNKNOWN_PRODUCT_SUGGESTIONS = [
    "Take a photo with better lighting",
    "Ensure product labels and text are visible and in focus",
    "Position the product against a plain, uncluttered background",
    "Try capturing the product from a different angle showing brand/label",
    "Make sure the image is not blurry or distorted",
    "Include the full product packaging in the frame",
]

LOW_CONFIDENCE_TITLE = "Low confidence in product identification"
LOW_CONFIDENCE_MESSAGE = (
    "Low confidence in product identification. The image quality or content is "
    "insufficient for accurate analysis."
)
LOW_CONFIDENCE_SUGGESTIONS = [
    "Upload a clearer, higher resolution image",
    "Ensure the product is well-lit and in focus",
    "Make sure product labels and branding are visible",
    "Try a different angle that shows the product more clearly",
]


class Outcome(str, enum.Enum):
    RESULT = "result"
    UNKNOWN_PRODUCT = "unknown_product"
    LOW_CONFIDENCE = "low_confidence"


@dataclass(frozen=True)
class GateDecision:
    outcome: Outcome
    analysis: ProductAnalysis
    title: Optional[str] = None
    message: Optional[str] = None
    suggestions: List[str] = field(default_factory=list)

    @property
    def is_result(self) -> bool:
        return self.outcome is Outcome.RESULT


def is_unknown_product(product_name: Optional[str]) -> bool:
    name = (product_name or "").strip().lower()
    return "unknown" in name or name in UNKNOWN_EXACT_NAMES


def is_low_confidence(confidence: Optional[int]) -> bool:
    return confidence is not None and confidence < LOW_CONFIDENCE_THRESHOLD


def evaluate(analysis: ProductAnalysis) -> GateDecision:
    """
    Decides whether an analysis is shown or replaced by guidance.
    Unknown product wins over low confidence; the analysis itself is never changed.
    """
    if is_unknown_product(analysis.product_name):
        return GateDecision(
            outcome=Outcome.UNKNOWN_PRODUCT,
            analysis=analysis,
            title=UNKNOWN_PRODUCT_TITLE,
            message=analysis.reason or UNKNOWN_PRODUCT_MESSAGE,
            suggestions=list(UNKNOWN_PRODUCT_SUGGESTIONS),
        )

    if is_low_confidence(analysis.confidence):
        return GateDecision(
            outcome=Outcome.LOW_CONFIDENCE,
            analysis=analysis,
            title=LOW_CONFIDENCE_TITLE,
            message=LOW_CONFIDENCE_MESSAGE,
            suggestions=list(LOW_CONFIDENCE_SUGGESTIONS),
        )

    return GateDecision(outcome=Outcome.RESULT, analysis=analysis)
