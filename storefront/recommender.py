"""
Hair photo analysis and product recommendations.

The customer uploads a photo; Claude describes the hair (type, colour,
condition, texture) and picks 3-5 products from the live catalog. The
reply must be a single JSON object; recommended ids that are not in the
catalog we sent are dropped.
"""

from __future__ import annotations
import json
import re
from typing import Any, Dict, List, Optional

import anthropic
from anthropic import AsyncAnthropic

from storefront.catalog import MENS_CATEGORY, is_doux_product, list_products
from storefront.config import StorefrontConfig
from storefront.errors import AIServiceError, StorefrontError
from storefront.logger import get_logger
from storefront.square_client import CommerceClient

logger = get_logger("recommender")

USER_INSTRUCTION = (
    "Please analyze this hair photo with specific color naming and recommend "
    "3-5 products with strong personalized buy-action reasons."
)
DEFAULT_REASON = (
    "Great fit for your routine and a strong add-to-cart pick to start seeing results this week."
)
BUY_HOOK = "Great add-to-cart pick to start seeing results this week."
DOUX_FALLBACK_REASON = (
    "Strong match for your hair goals and a great add-to-cart pick to start seeing results this week."
)
DOUX_FALLBACK_LIMIT = 4
DESCRIPTION_LIMIT = 240

_BUY_HOOK_PATTERN = re.compile(
    r"(add-to-cart|add to cart|start seeing results|this week|pick|shop|grab|routine)", re.I
)
_DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

DOUX_INSTRUCTION = (
    "\n- The customer selected The Doux focus. Recommend only The Doux products from the "
    "catalog and prioritize a complete routine (cleanse + treat + style)."
)

RESPONSE_FORMAT = """{
  "analysis": {
    "hairType": "description of hair type and density",
    "hairColor": "description of color, treatments, and tone",
    "condition": "assessment of moisture, damage, and specific concerns",
    "texture": "fine/medium/coarse and porosity"
  },
  "recommendedProductIds": [
    {
      "id": "product_id_here",
      "reason": "Personalized explanation of why this product helps their specific hair"
    }
  ]
}"""


def build_system_prompt(store_name: str, catalog: List[Dict[str, Any]], doux_focus: bool = False) -> str:
    doux_instruction = DOUX_INSTRUCTION if doux_focus else ""
    return f"""You are the lead stylist at {store_name}, an expert hair stylist with decades of salon and color experience.

You are analyzing a photo of someone's hair and recommending products from your curated shop inventory.

PRIMARY GOAL:
- Give a warm, confidence-building professional assessment.
- Convert that confidence into clear purchase intent with recommendations that feel exciting, specific, and worth adding to cart today.

TONE & VOICE (CRITICAL):
- Warm, uplifting, friendly stylist voice. Never clinical or harsh.
- Lead with at least one genuine compliment.
- Never shame the customer or describe them negatively.
- Use concern words only in soft, supportive framing, e.g. "could benefit from extra hydration" not "your hair is damaged."
- Frame products as upgrades that unlock better results, not fixes for "bad" hair.

ANALYSIS INSTRUCTIONS:
1) Hair Type: Identify straight (Type 1), wavy (Type 2), curly (Type 3), or coily (Type 4), with subtype when visible and density (fine/medium/thick) in positive wording.
2) Hair Color: Be highly specific. Distinguish black/dark brown/medium brown/light brown/blonde/red/copper/auburn/orange/fashion shades. If color looks warm, call out warm terms directly (copper, orange, golden, red-orange) rather than defaulting to brown. Note roots vs mids/ends and natural vs color-treated traits when visible.
3) Condition: Note where extra care would improve results, using encouraging language and no blunt negatives.
4) Texture: Identify fine/medium/coarse and porosity if visible; celebrate natural texture.

PRODUCT RECOMMENDATION INSTRUCTIONS:
- Select 3-5 products from the catalog below that best match this person's hair and goals.
- Use exact product IDs from the catalog.
- Recommendation reasons must be personalized and conversion-focused:
  - Mention a specific visible outcome (shine, softness, definition, volume, smoothness, color longevity, scalp comfort, hold, etc.).
  - Include a usage cue (when/how they would use it) so it feels easy to start.
  - End with a gentle buy-action hook (e.g., "great add-to-cart pick to start seeing results this week").
- Keep reasons concise (1-2 sentences each), energetic, and not repetitive.
- Recommend a balanced routine when possible (care + styling, not all from one function).
- Do not invent products or IDs.
- Never infer or mention ethnicity, race, or protected traits from the photo.
{doux_instruction}

STRICT OUTPUT RULES:
- Return valid JSON only, no markdown, no extra keys, no commentary outside JSON.
- If uncertain, make the best professional estimate from the photo and catalog.

PRODUCT CATALOG:
{json.dumps(catalog, indent=2)}

RESPONSE FORMAT:
{RESPONSE_FORMAT}"""


def compact_catalog(products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """The fields Claude needs, with descriptions collapsed and clipped."""
    return [
        {
            "id": p["id"],
            "name": p["name"],
            "brand": p["brand"],
            "description": " ".join((p.get("description") or "").split())[:DESCRIPTION_LIMIT],
            "price": p["price"],
            "category": p["category"],
        }
        for p in products
    ]


def select_products(products: List[Dict[str, Any]], mens_mode: bool, doux_focus: bool) -> List[Dict[str, Any]]:
    if mens_mode:
        return [p for p in products if p.get("category") == MENS_CATEGORY]
    relevant = [p for p in products if p.get("category") != MENS_CATEGORY]
    if doux_focus:
        doux_only = [p for p in relevant if is_doux_product(p)]
        if doux_only:
            return doux_only
    return relevant


def image_source(image: str) -> Dict[str, str]:
    """Anthropic base64 image block source; media type sniffed from a data: URL."""
    media_type = "image/jpeg"
    for kind in ("png", "webp", "gif"):
        if image.startswith(f"data:image/{kind}"):
            media_type = f"image/{kind}"
            break
    return {
        "type": "base64",
        "media_type": media_type,
        "data": _DATA_URL_PREFIX.sub("", image, count=1),
    }


def parse_analysis(text: str) -> Dict[str, Any]:
    """First {...} block in the reply (markdown fences tolerated)."""
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise ValueError("No JSON found in response")
    parsed = json.loads(match.group(0))
    if not isinstance(parsed, dict):
        raise ValueError("Analysis is not a JSON object")
    return parsed


def with_buy_hook(reason: Any) -> str:
    reason = reason.strip() if isinstance(reason, str) else ""
    reason = reason or DEFAULT_REASON
    if _BUY_HOOK_PATTERN.search(reason):
        return reason
    return f"{reason} {BUY_HOOK}"


def match_recommendations(analysis: Dict[str, Any], products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    by_id = {p["id"]: p for p in products}
    recommendations = []
    for rec in analysis.get("recommendedProductIds") or []:
        if not isinstance(rec, dict):
            continue
        product = by_id.get(rec.get("id"))
        if product is None:
            continue
        recommendations.append({"product": product, "reason": with_buy_hook(rec.get("reason"))})
    return recommendations


async def analyze_hair(
    ai_client: AsyncAnthropic,
    commerce: CommerceClient,
    config: StorefrontConfig,
    image: Optional[str],
    mens_mode: bool = False,
    doux_focus: bool = False,
) -> Dict[str, Any]:
    if not image:
        raise StorefrontError("No image provided")

    doux_focus = bool(doux_focus) and not mens_mode
    products = select_products(await list_products(commerce), mens_mode, doux_focus)
    system_prompt = build_system_prompt(config.store_name, compact_catalog(products), doux_focus)

    try:
        message = await ai_client.messages.create(
            model=config.ai_model,
            max_tokens=config.ai_max_tokens,
            system=system_prompt,
            messages=[{
                "role": "user",
                "content": [
                    {"type": "image", "source": image_source(image)},
                    {"type": "text", "text": USER_INSTRUCTION},
                ],
            }],
        )
    except anthropic.APIError as e:
        logger.error("Claude API error: %s", e)
        raise AIServiceError("AI analysis failed. Please try again.")

    text = ""
    if message.content and getattr(message.content[0], "type", None) == "text":
        text = message.content[0].text

    try:
        analysis = parse_analysis(text)
    except ValueError:
        logger.error("Failed to parse Claude response: %s", text[:500])
        raise AIServiceError("Failed to parse AI analysis. Please try again.")

    recommendations = match_recommendations(analysis, products)
    if doux_focus and not recommendations:
        recommendations = [
            {"product": p, "reason": DOUX_FALLBACK_REASON}
            for p in [p for p in products if is_doux_product(p)][:DOUX_FALLBACK_LIMIT]
        ]

    logger.info("Hair analysis: %d recommendations (mens=%s, doux=%s)", len(recommendations), mens_mode, doux_focus)
    return {"analysis": analysis.get("analysis"), "recommendations": recommendations}
