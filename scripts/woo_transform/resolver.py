"""
Variation attribute resolution.

Works out which option of each parent attribute a variation represents. The
methods run from most to least reliable:

    1. direct   - the variation row's own 'Attribute N value(s)' cells
    2. sku      - option text found in the variation SKU
    3. name     - option text found in the variation name, minus the parent name
    4. ai       - the optional inference service

Each method returns a partial mapping. Mappings are merged left to right and a
value found earlier is never replaced; resolution stops as soon as every
attribute has a value.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .inference import AttributeInferenceClient
from .records import AttributeSpec, ParentProduct, VariationProduct
from .stats import TransformStats

log = logging.getLogger(__name__)

Mapping = Dict[str, str]
Attempt = Callable[[VariationProduct, ParentProduct], Mapping]


def _longest_first(values: List[str]) -> List[str]:
    # "Olive Green" must win over "Green"
    return sorted(values, key=len, reverse=True)


def match_direct_fields(variation: VariationProduct, parent: ParentProduct) -> Mapping:
    """Use the attribute values WordPress stored on the variation row itself."""
    matches: Mapping = {}
    for attr in parent.attributes:
        raw = variation.direct_value(attr.index)
        if not raw:
            continue
        value = raw.replace("\\,", ",")
        if "," in value:
            value = value.split(",")[0]
        value = value.strip().lower()
        if not value:
            continue

        option = next((v for v in attr.values if v.strip().lower() == value), None)
        if option is None:
            option = next(
                (v for v in attr.values
                 if v.strip() and (v.strip().lower() in value or value in v.strip().lower())),
                None,
            )
        if option is not None:
            matches[attr.key] = option
    return matches


def match_sku(variation: VariationProduct, parent: ParentProduct) -> Mapping:
    """Find option text inside the variation SKU (hyphens/underscores as spaces)."""
    if not variation.sku:
        return {}
    sku = re.sub(r'[-_]', ' ', variation.sku.lower())
    matches: Mapping = {}

    for attr in parent.attributes:
        for value in _longest_first(attr.values):
            normalized = value.lower().replace("-", " ")
            if normalized in sku:
                matches[attr.key] = value
                break
            words = normalized.split()
            if len(words) > 1 and all(word in sku for word in words):
                matches[attr.key] = value
                break
    return matches


def match_name(variation: VariationProduct, parent: ParentProduct) -> Mapping:
    """Find option text in what is left of the variation name after the parent name."""
    if not variation.name:
        return {}
    remaining = variation.name.replace(parent.name, "", 1).strip() if parent.name else variation.name
    if not remaining:
        return {}
    remaining = remaining.lower()
    matches: Mapping = {}

    for attr in parent.attributes:
        for value in _longest_first(attr.values):
            value_lower = value.lower()
            words = value_lower.split()
            whole_words = bool(words) and all(
                re.search(rf'\b{re.escape(word)}\b', remaining) for word in words
            )
            if value_lower in remaining or whole_words:
                matches[attr.key] = value
                break
    return matches


# Ordered cascade of synchronous heuristics; AI runs after these.
HEURISTIC_ATTEMPTS: Tuple[Tuple[str, Attempt], ...] = (
    ("direct", match_direct_fields),
    ("sku", match_sku),
    ("name", match_name),
)


def is_complete(matches: Mapping, attributes: List[AttributeSpec]) -> bool:
    return all(matches.get(attr.key) for attr in attributes)


def merge_missing(into: Mapping, partial: Optional[Mapping]) -> None:
    """Fill gaps in ``into`` from ``partial``; existing values are kept."""
    for key, value in (partial or {}).items():
        if value and not into.get(key):
            into[key] = value


@dataclass
class Resolution:
    values: Mapping = field(default_factory=dict)
    method: str = ""  # completing method; "" if incomplete, "none" if no attributes


def resolve_heuristically(variation: VariationProduct, parent: ParentProduct) -> Resolution:
    if not parent.attributes:
        return Resolution({}, "none")
    matches: Mapping = {}
    for method, attempt in HEURISTIC_ATTEMPTS:
        merge_missing(matches, attempt(variation, parent))
        if is_complete(matches, parent.attributes):
            return Resolution(matches, method)
    return Resolution(matches)


class VariationResolver:
    """Runs the cascade and records which method settled each variation."""

    def __init__(self, inference: Optional[AttributeInferenceClient] = None,
                 stats: Optional[TransformStats] = None):
        self.inference = inference
        self.stats = stats or TransformStats()

    async def resolve(self, variation: VariationProduct, parent: ParentProduct) -> Mapping:
        """Resolve and store the variation's attribute mapping (once)."""
        if variation.attribute_values is not None:
            return variation.attribute_values

        resolution = resolve_heuristically(variation, parent)

        if not resolution.method and self.inference is not None:
            guessed = await self.inference.infer_attributes(variation, parent)
            if guessed:
                merge_missing(resolution.values, guessed)
                self.stats.ai_inferences += 1
                if is_complete(resolution.values, parent.attributes):
                    resolution.method = "ai"

        self._count(resolution, variation, parent)
        variation.attribute_values = resolution.values
        variation.resolved_by = resolution.method
        return resolution.values

    def _count(self, resolution: Resolution, variation: VariationProduct,
               parent: ParentProduct) -> None:
        if resolution.method == "direct":
            self.stats.direct_matches += 1
        elif resolution.method == "sku":
            self.stats.sku_parses += 1
        elif resolution.method == "name":
            self.stats.name_parses += 1
        elif not resolution.method:
            self.stats.incomplete_variations += 1
            missing = [a.name for a in parent.attributes if not resolution.values.get(a.key)]
            log.warning(
                f"Variation {variation.label} of {parent.sku}: "
                f"could not resolve {', '.join(missing)}"
            )
