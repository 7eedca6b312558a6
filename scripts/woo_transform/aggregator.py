"""
Per-option aggregation across the variations of a variable product.

Price adjustments are measured against the cheapest variation, stock follows
the "Option C" policy (minimum per option, unlimited wins), and variation
images are matched to the one attribute option they most plausibly show.
"""

import math
import re
from typing import Dict, List, Optional, Tuple

from .records import ParentProduct, VariationProduct, compact_number, parse_int, parse_price, split_list

COLOR_KEYWORDS = ["black", "blue", "gray", "grey", "green", "olive", "orange", "red", "yellow", "white"]
COLOR_ATTRIBUTE_MARKERS = ("color", "colour")

# Scores for image → attribute matching
VALUE_WORD_SCORE = 1
COLOR_SCORE = 5
NAME_WORD_SCORE = 2
DIRECT_FIELD_SCORE = 2


# ============================================================================
# PRICES
# ============================================================================

def positive_prices(variations: List[VariationProduct]) -> List[float]:
    return [p for p in (parse_price(v.regular_price) for v in variations) if p > 0]


def base_price(variations: List[VariationProduct]) -> float:
    """Cheapest positive variation price, or 0 when none has a price."""
    prices = positive_prices(variations)
    return min(prices) if prices else 0.0


def min_sale_price(variations: List[VariationProduct]) -> Optional[float]:
    sales = [p for p in (parse_price(v.sale_price) for v in variations) if p > 0]
    return min(sales) if sales else None


def has_sale_price(variations: List[VariationProduct]) -> bool:
    return min_sale_price(variations) is not None


def round_cents(value: float) -> float:
    """Round to 2 decimals with halves going up (0.125 -> 0.13)."""
    return math.floor(value * 100 + 0.5) / 100


def price_adjustments(parent: ParentProduct) -> Dict[str, Dict[str, float]]:
    """
    attribute key -> option value -> mean price delta over the cheapest variation.

    Only variations with a positive price and a resolved value for the
    attribute contribute. Deltas are averaged and rounded to 2 decimals.
    """
    adjustments: Dict[str, Dict[str, float]] = {}
    prices = positive_prices(parent.variations)
    if not prices:
        return adjustments
    cheapest = min(prices)

    for attr in parent.attributes:
        deltas: Dict[str, List[float]] = {}
        for variation in parent.variations:
            value = (variation.attribute_values or {}).get(attr.key)
            if not value:
                continue
            price = parse_price(variation.regular_price)
            if price > 0:
                deltas.setdefault(value, []).append(price - cheapest)

        adjustments[attr.key] = {
            value: compact_number(round_cents(sum(ds) / len(ds)))
            for value, ds in deltas.items()
        }
    return adjustments


# ============================================================================
# STOCK
# ============================================================================

def resolve_stock(stock: str, in_stock: str) -> Optional[int]:
    """
    Stock of a single variation; None means unmanaged (unlimited).

    Empty stock with "In stock?" = 1 is unlimited, empty stock otherwise is 0,
    and an unparseable number counts as 0.
    """
    stock = (stock or "").strip()
    if not stock:
        return None if (in_stock or "").strip() == "1" else 0
    parsed = parse_int(stock)
    return parsed if parsed is not None else 0


def aggregate_stock(stocks: List[Optional[int]]) -> Optional[int]:
    """Option C: unlimited if any contributor is unlimited, else the minimum."""
    if not stocks or any(s is None for s in stocks):
        return None
    return min(stocks)


def option_stock(parent: ParentProduct) -> Dict[str, Dict[str, Optional[int]]]:
    """attribute key -> option value -> aggregated stock."""
    table: Dict[str, Dict[str, Optional[int]]] = {}
    for attr in parent.attributes:
        per_option: Dict[str, List[Optional[int]]] = {}
        for variation in parent.variations:
            value = (variation.attribute_values or {}).get(attr.key)
            if not value:
                continue
            per_option.setdefault(value, []).append(
                resolve_stock(variation.stock, variation.in_stock)
            )
        table[attr.key] = {value: aggregate_stock(stocks) for value, stocks in per_option.items()}
    return table


def total_stock(variations: List[VariationProduct], unlimited: int = 999999) -> int:
    """
    Sum of variation stock. A single unmanaged variation makes the whole
    product report ``unlimited`` instead.
    """
    total = 0
    for variation in variations:
        stock = resolve_stock(variation.stock, variation.in_stock)
        if stock is None:
            return unlimited
        total += stock
    return total


def low_stock_threshold(stock: Optional[int]) -> Optional[int]:
    return None if stock is None else math.floor(stock * 0.2)


# ============================================================================
# IMAGES
# ============================================================================

def normalize_for_matching(value: str) -> str:
    """'Large universal flight plate #A' -> 'largeuniversalflightplatea'"""
    return re.sub(r'[^a-z0-9]', '', (value or "").lower())


def score_image(image_url: str, attr_name: str, attr_value: str, direct: bool) -> int:
    """How strongly an image URL suggests it depicts ``attr_value``."""
    url = image_url.lower()
    value = attr_value.lower().strip()
    name = attr_name.lower()
    score = 0

    for word in value.split():
        if len(word) > 2 and word in url:
            score += VALUE_WORD_SCORE

    if any(marker in name for marker in COLOR_ATTRIBUTE_MARKERS):
        if any(color in value and color in url for color in COLOR_KEYWORDS):
            score += COLOR_SCORE

    for word in name.split():
        if len(word) > 2 and word in url:
            score += NAME_WORD_SCORE

    if direct:
        score += DIRECT_FIELD_SCORE
    return score


class OptionImageMatcher:
    """
    Assigns variation images to attribute options.

    Each variation's first image goes to the single best-scoring attribute of
    that variation, and only if the score is positive. The first variation to
    claim an (attribute, option) pair keeps it.
    """

    def __init__(self, parent: ParentProduct):
        self.parent = parent
        # (attribute index, lowercased option) -> image url, in claim order
        self.claims: Dict[Tuple[int, str], str] = {}
        self.parent_images = split_list(parent.source_value("Images"))
        for variation in parent.variations:
            self._claim(variation)

    def _claim(self, variation: VariationProduct) -> None:
        if not variation.attribute_values:
            return
        images = variation.image_urls()
        if not images:
            return
        image = images[0]

        best: Optional[Tuple[int, str]] = None
        best_score = 0
        for attr in self.parent.attributes:
            direct = variation.direct_value(attr.index)
            value = direct or variation.attribute_values.get(attr.key, "")
            if not value.strip():
                continue
            score = score_image(image, attr.name, value, direct=bool(direct))
            if score > best_score:
                best_score = score
                best = (attr.index, value)

        if best is None or best_score <= 0:
            return
        index, value = best
        key = (index, value.lower().strip())
        if key not in self.claims:
            self.claims[key] = image

    def image_for(self, attr_index: int, option: str) -> Optional[str]:
        """Image for an option: claimed exactly, by normalized or partial value, or from the parent."""
        if not option:
            return None
        wanted = option.lower().strip()
        wanted_normalized = normalize_for_matching(option)

        exact = self.claims.get((attr_index, wanted))
        if exact:
            return exact

        for (index, claimed), image in self.claims.items():
            if index != attr_index:
                continue
            if normalize_for_matching(claimed) == wanted_normalized:
                return image
            if claimed in wanted or wanted in claimed:
                return image

        pattern = re.compile(rf'\b{re.escape(wanted)}\b')
        for image in self.parent_images:
            if pattern.search(image.lower()):
                return image
        return None
