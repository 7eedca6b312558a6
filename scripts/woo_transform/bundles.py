"""
Frequently-bought-together add-ons.

Builds a product's optional bundle items from three sources:

    1. its own Cross-sells field
    2. every other product that lists it in Cross-sells (reverse lookup)
    3. product/<slug> links inside its HTML description

and then drops candidates that look like main products rather than add-ons.
"""

import json
import logging
import re
from dataclasses import asdict, dataclass
from typing import List, Optional

from .catalog import CatalogIndex
from .config import BundleRules
from .records import SourceRow, cell, parse_price, split_list

log = logging.getLogger(__name__)

PRODUCT_LINK_PATTERN = re.compile(r'(?:^|/|\s)product/([^/"\s?]+)', re.IGNORECASE)


@dataclass
class BundleItem:
    item_sku: str
    quantity: int = 1
    item_type: str = "optional"  # "required" | "optional"
    is_configurable: bool = False
    price_adjustment: float = 0
    sort_order: int = 0


def _slugify(text: str) -> str:
    return re.sub(r'[^a-z0-9]+', '-', text.lower()).strip('-')


class BundleResolver:
    """Resolves and filters add-on SKUs against a read-only catalog index."""

    def __init__(self, index: CatalogIndex, rules: Optional[BundleRules] = None):
        self.index = index
        self.rules = rules or BundleRules()

    # ------------------------------------------------------------------
    # Slug / SKU lookup
    # ------------------------------------------------------------------

    def find_product(self, slug: str) -> Optional[SourceRow]:
        """
        Find a catalog row for a URL slug or SKU.

        Tries an exact SKU match, then SKU containment either way, then the
        configured aliases, then the product name as a slug (containment, or
        at least two shared significant words).
        """
        slug = (slug or "").strip().lower()
        if not slug:
            return None

        exact = self.index.get(slug)
        if exact is not None:
            return exact

        for row in self.index.rows:
            sku = cell(row, "SKU").lower()
            if sku and (sku in slug or slug in sku):
                return row

        for alias in self.rules.slug_aliases:
            if not any(trigger in slug for trigger in alias.triggers):
                continue
            for row in self.index.rows:
                sku = cell(row, "SKU").lower()
                name = cell(row, "Name").lower()
                if (sku in alias.sku_equals
                        or any(part in sku for part in alias.sku_contains)
                        or any(part in name for part in alias.name_contains)):
                    return row

        slug_words = [w for w in slug.split("-") if len(w) > 2]
        for row in self.index.rows:
            name = cell(row, "Name").lower()
            if not name:
                continue
            name_slug = _slugify(name)
            if name_slug and (name_slug in slug or slug in name_slug):
                return row
            name_words = [w for w in re.split(r'[\s-]+', name) if len(w) > 2]
            shared = [w for w in slug_words if any(nw in w or w in nw for nw in name_words)]
            if len(shared) >= self.rules.min_shared_slug_words:
                return row
        return None

    def description_links(self, description: str) -> List[str]:
        """SKUs of catalog products linked as product/<slug> in a description."""
        skus: List[str] = []
        if not description:
            return skus
        for m in PRODUCT_LINK_PATTERN.finditer(description):
            slug = m.group(1).lower().strip()
            if not slug:
                continue
            product = self.find_product(slug)
            if product is None:
                log.debug(f"Description link product/{slug} matches no catalog product")
                continue
            sku = cell(product, "SKU")
            if sku and sku not in skus:
                skus.append(sku)
        return skus

    # ------------------------------------------------------------------
    # Candidates and filtering
    # ------------------------------------------------------------------

    def candidates(self, cross_sells: str, product_sku: str, description: str) -> List[str]:
        """Union of the three sources, first-seen order, no duplicates."""
        skus: List[str] = []

        def add(sku: str):
            if sku and sku not in skus:
                skus.append(sku)

        for sku in split_list(cross_sells):
            add(sku)
        for sku in self.index.cross_selling(product_sku):
            add(sku)
        for sku in self.description_links(description):
            add(sku)
        return skus

    def is_addon(self, sku: str) -> bool:
        product = self.find_product(sku)
        if product is None:
            return False

        rules = self.rules
        price = parse_price(cell(product, "Regular price"))
        ptype = cell(product, "Type").lower()
        name = cell(product, "Name").lower()
        sku_lower = sku.lower()

        if ptype == "variable":
            return False
        if price > rules.max_price:
            return False
        if price == 0:
            return False
        if any(marker in name for marker in rules.config_name_markers):
            return False
        if rules.config_sku_marker in sku_lower and rules.plate_keyword not in sku_lower:
            return False
        if price > rules.main_product_price_floor:
            if any(keyword in name for keyword in rules.main_product_keywords):
                return False
            if (any(keyword in name for keyword in rules.bracket_keywords)
                    and rules.plate_keyword not in name):
                return False
        return True

    def resolve(self, cross_sells: str, product_sku: str, description: str) -> List[BundleItem]:
        kept = [
            sku for sku in self.candidates(cross_sells, product_sku, description)
            if self.is_addon(sku)
        ]
        return [BundleItem(item_sku=sku, sort_order=i) for i, sku in enumerate(kept)]

    def bundle_items_json(self, cross_sells: str, product_sku: str, description: str) -> str:
        items = self.resolve(cross_sells, product_sku, description)
        if not items:
            return ""
        return json.dumps([asdict(item) for item in items], separators=(",", ":"), ensure_ascii=False)

    def is_bundle(self, cross_sells: str, description: str) -> bool:
        return bool((cross_sells or "").strip()) or bool(self.description_links(description))
