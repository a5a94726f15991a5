from typing import Any, Dict, Optional

from ecoscan.core.config import settings
from ecoscan.core.images import EncodedImage, b64_text

SUSTAINABILITY_SYSTEM_PROMPT = """You are an expert environmental analyst specializing in product sustainability assessment.

Analyze product images carefully and provide comprehensive sustainability evaluations. Consider:
- Material composition and recyclability
- Manufacturing impact and carbon footprint
- Water usage and resource depletion
- Product lifespan and durability
- End-of-life disposal options
- Certifications and eco-labels visible in the image
- Energy consumption (if applicable)

IMAGE QUALITY:
- Evaluate the image quality (blur, lighting, clarity)
- If the image is blurry, dark, or unclear, say so through "imageQuality" and "confidence"
- If you cannot identify the product, set "productName" to "Unknown" and explain why in "reason"

ALTERNATIVES:
- Provide 3-4 greener alternatives as GENERIC product categories (e.g. "Bamboo Toothbrush")
- Never use brand names, model numbers or ASINs
- Never include URLs, "buyLink" or any shopping link; the system generates those itself

RESPONSE FORMAT (a single JSON object, nothing else):
{
  "productName": "string (generic product category)",
  "sustainabilityScore": number (0-100),
  "confidence": number (0-100),
  "imageQuality": "good" | "poor" | "blur",
  "reason": "string, only when the product cannot be identified",
  "ecoLabels": ["strings, empty if none visible"],
  "recyclability": "string",
  "carbonFootprint": "string with estimates",
  "waterFootprint": "string with estimates",
  "materialComposition": "string",
  "lifespan": "string",
  "energyProduction": "string or 'Not applicable'",
  "alternatives": [
    {
      "name": "Generic Eco-Friendly Product Category",
      "description": "why it is better",
      "score": number (75-95),
      "price": "price range"
    }
  ]
}"""


def default_user_prompt(image_quality: str) -> str:
    return (
        "Analyze this product for a comprehensive sustainability assessment.\n"
        f"Image quality detected as: {image_quality}.\n"
        "Provide a detailed environmental impact analysis with generic greener alternatives."
    )


def build_request(
    image: EncodedImage,
    image_quality: str,
    prompt: Optional[str] = None,
) -> Dict[str, Any]:
    """
    generateContent body: fixed system instructions, then one user turn
    carrying the prompt text and the inline image.
    """
    user_text = (prompt or "").strip() or default_user_prompt(image_quality)

    return {
        "systemInstruction": {"parts": [{"text": SUSTAINABILITY_SYSTEM_PROMPT}]},
        "contents": [
            {
                "role": "user",
                "parts": [
                    {"text": user_text},
                    {
                        "inline_data": {
                            "mime_type": image.mime_type,
                            "data": b64_text(image.data),
                        }
                    },
                ],
            }
        ],
        "generationConfig": {
            "response_mime_type": "application/json",
            "temperature": settings.GEMINI_TEMPERATURE,
            "maxOutputTokens": settings.GEMINI_MAX_OUTPUT_TOKENS,
        },
    }
