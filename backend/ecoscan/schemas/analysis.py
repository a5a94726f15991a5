from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

QualityTag = Literal["good", "poor", "blur", "unknown"]
Platform = Literal["flipkart", "amazon", "meesho"]


class WireModel(BaseModel):
    """
    Base for everything that crosses the wire.
    Python side uses snake_case; JSON side uses camelCase (both accepted on input).
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenWireModel(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class AnalyzeRequest(WireModel):
    image: Optional[str] = None
    prompt: Optional[str] = None


class ImageMetadata(FrozenWireModel):
    width: int
    height: int
    format: Optional[str] = None


class ImageQualityReport(FrozenWireModel):
    quality: QualityTag
    confidence: int
    warnings: List[str] = []
    metadata: Optional[ImageMetadata] = None


class PlatformLink(FrozenWireModel):
    platform: Platform
    url: str
    display_name: str


class Alternative(FrozenWireModel):
    name: str
    description: str
    score: Optional[int] = None
    price: Optional[str] = None        # e.g. "₹500-₹1500", free text from the model
    platform_links: List[PlatformLink]


class AnalysisMetadata(FrozenWireModel):
    analyzed_at: str
    image_quality: QualityTag
    confidence: int
    warnings: List[str] = []


class ProductAnalysis(FrozenWireModel):
    product_name: str
    sustainability_score: int
    confidence: int
    image_quality: QualityTag
    eco_labels: List[str]
    recyclability: str
    carbon_footprint: str
    water_footprint: str
    material_composition: str
    lifespan: str
    energy_production: str
    alternatives: List[Alternative]
    warnings: Optional[List[str]] = None
    reason: Optional[str] = None       # model's explanation when it could not identify the product
    metadata: Optional[AnalysisMetadata] = None
    raw_model_output: Optional[str] = None


class AnalyzeResponse(WireModel):
    success: bool = True
    analysis: ProductAnalysis
    image_quality: ImageQualityReport


class ErrorResponse(WireModel):
    error: str
    details: Optional[str] = None
    image_quality: Optional[QualityTag] = None
    confidence: Optional[int] = None
    warnings: Optional[List[str]] = None
    outcome: Optional[str] = None
    suggestions: Optional[List[str]] = None
