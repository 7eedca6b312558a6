"""
Builds the product_variations JSON for a variable product: one block per
attribute, one option per declared value.
"""

import json
from typing import Any, Dict, List, Optional

from .aggregator import OptionImageMatcher, low_stock_threshold, option_stock, price_adjustments
from .inference import AttributeInferenceClient
from .records import AttributeSpec, ParentProduct

BOOLEAN_NAME_KEYWORDS = [
    "yes", "no", "on", "off", "enable", "disable",
    "include", "exclude", "add", "remove", "optional",
]
BOOLEAN_VALUE_PAIRS = [
    ("yes", "no"), ("on", "off"), ("include", "exclude"),
    ("add", "remove"), ("enable", "disable"), ("with", "without"),
]
IMAGE_NAME_KEYWORDS = [
    "color", "colour", "material", "finish", "pattern",
    "style", "design", "appearance", "look",
]


def variation_type_from_pattern(attr_name: str, values: List[str]) -> Optional[str]:
    """Keyword guess at how an attribute is presented; None if undecided."""
    name = attr_name.lower()
    if any(kw in name for kw in BOOLEAN_NAME_KEYWORDS):
        return "boolean"

    if len(values) == 2:
        lowered = [v.lower().strip() for v in values]
        if any(a in lowered and b in lowered for a, b in BOOLEAN_VALUE_PAIRS):
            return "boolean"

    if any(kw in name for kw in IMAGE_NAME_KEYWORDS):
        return "image"
    return None


async def infer_variation_type(product_name: str, attr: AttributeSpec,
                               inference: Optional[AttributeInferenceClient] = None) -> str:
    """Pattern match first, then the AI service, else a plain dropdown."""
    guess = variation_type_from_pattern(attr.name, attr.values)
    if guess:
        return guess
    if inference is not None:
        answer = await inference.infer_variation_type(product_name, attr.name, attr.values)
        if answer:
            return answer
    return "dropdown"


def build_options(parent: ParentProduct, attr: AttributeSpec,
                  adjustments: Dict[str, Dict[str, float]],
                  stock: Dict[str, Dict[str, Optional[int]]],
                  images: OptionImageMatcher) -> List[Dict[str, Any]]:
    default = (attr.default or attr.values[0]).lower().strip()
    options = []
    for i, value in enumerate(attr.values):
        quantity = stock.get(attr.key, {}).get(value)
        options.append({
            "option_name": value,
            "option_value": value,
            "price_adjustment": adjustments.get(attr.key, {}).get(value, 0),
            "image_url": images.image_for(attr.index, value),
            "is_default": value.lower().strip() == default,
            "sort_order": i,
            "stock_quantity": quantity,  # None = unlimited / not managed
            "low_stock_threshold": low_stock_threshold(quantity),
            "is_available": quantity is None or quantity > 0,
        })
    return options


async def build_variation_blocks(parent: ParentProduct,
                                 inference: Optional[AttributeInferenceClient] = None
                                 ) -> List[Dict[str, Any]]:
    """
    Variation blocks for every attribute of ``parent``.

    Expects each variation's attribute_values to be resolved already.
    """
    adjustments = price_adjustments(parent)
    stock = option_stock(parent)
    images = OptionImageMatcher(parent)

    blocks = []
    for sort_order, attr in enumerate(parent.attributes):
        options = build_options(parent, attr, adjustments, stock, images)
        if any(opt["image_url"] for opt in options):
            variation_type = "image"
        else:
            variation_type = await infer_variation_type(parent.name, attr, inference)

        for opt in options:
            # dropdowns and booleans never carry images
            if variation_type != "image" or not opt["image_url"]:
                del opt["image_url"]

        blocks.append({
            "variation_type": variation_type,
            "name": attr.name,
            "is_required": True,
            "tracks_stock": True,
            "sort_order": sort_order,
            "options": options,
        })
    return blocks


def variations_json(blocks: List[Dict[str, Any]]) -> str:
    return json.dumps(blocks, separators=(",", ":"), ensure_ascii=False)
