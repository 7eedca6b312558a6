"""
Product records for the WordPress → store transformer.

Holds the in-memory model built from a WooCommerce export: variable parents
with their attribute specs, and the variation rows attached to them.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

# A raw CSV row, column name -> string value. Never mutated after parsing.
SourceRow = Mapping[str, str]

MAX_ATTRIBUTES = 3

_LEADING_NUMBER = re.compile(r'^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)')
_LEADING_INT = re.compile(r'^\s*([-+]?\d+)')


def cell(row: SourceRow, column: str) -> str:
    """Trimmed value of a column, empty string when absent."""
    value = row.get(column)
    if value is None:
        return ""
    return str(value).strip()


def parse_price(value: Optional[str]) -> float:
    """
    Parse a price the lenient way WooCommerce exports need.

    Reads the leading number ("12.50 USD" -> 12.5); anything unparseable is 0.
    """
    if not value:
        return 0.0
    m = _LEADING_NUMBER.match(value)
    if not m:
        return 0.0
    try:
        return float(m.group(1))
    except ValueError:
        return 0.0


def parse_int(value: Optional[str]) -> Optional[int]:
    """Leading integer of a string, or None if there is none."""
    if not value:
        return None
    m = _LEADING_INT.match(value)
    return int(m.group(1)) if m else None


def format_number(value: float) -> str:
    """Render a number without a trailing .0 (10.0 -> '10', 12.5 -> '12.5')."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def compact_number(value: float):
    """Number for JSON output: ints stay ints so 2.0 serializes as 2."""
    return int(value) if float(value).is_integer() else value


@dataclass
class AttributeSpec:
    """A named axis of variation declared on a variable product."""
    name: str
    values: List[str]
    index: int  # 1, 2 or 3
    default: Optional[str] = None
    visible: bool = True

    @property
    def key(self) -> str:
        return f"attribute{self.index}"


@dataclass
class VariationProduct:
    """A purchasable child row of a variable product."""
    sku: str
    parent_sku: str
    name: str = ""
    id: str = ""
    regular_price: str = "0"
    sale_price: str = ""
    stock: str = ""
    in_stock: str = ""
    images: str = ""
    row: SourceRow = field(default_factory=dict, repr=False)
    # attribute key -> option value, assigned once by the resolver
    attribute_values: Optional[Dict[str, str]] = None
    resolved_by: str = ""

    @classmethod
    def from_row(cls, row: SourceRow) -> "VariationProduct":
        return cls(
            id=cell(row, "ID"),
            sku=cell(row, "SKU"),
            name=cell(row, "Name"),
            regular_price=cell(row, "Regular price") or "0",
            sale_price=cell(row, "Sale price"),
            stock=cell(row, "Stock"),
            in_stock=cell(row, "In stock?"),
            parent_sku=cell(row, "Parent"),
            images=cell(row, "Images"),
            row=row,
        )

    @property
    def label(self) -> str:
        """Identifier for log lines."""
        return self.sku or self.name or "(unnamed variation)"

    def direct_value(self, index: int) -> str:
        """Raw 'Attribute N value(s)' cell from the variation's own row."""
        return cell(self.row, f"Attribute {index} value(s)")

    def image_urls(self) -> List[str]:
        return split_list(self.images)


@dataclass
class ParentProduct:
    """A variable product: sold only through its variations."""
    sku: str
    name: str
    row: SourceRow = field(repr=False)
    id: str = ""
    attributes: List[AttributeSpec] = field(default_factory=list)
    variations: List[VariationProduct] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: SourceRow) -> "ParentProduct":
        return cls(
            id=cell(row, "ID"),
            sku=cell(row, "SKU"),
            name=cell(row, "Name"),
            row=row,
            attributes=extract_attributes(row),
        )

    def add_variation(self, variation: VariationProduct) -> None:
        self.variations.append(variation)

    def source_value(self, column: str) -> str:
        return cell(self.row, column)


# ============================================================================
# ATTRIBUTE EXTRACTION
# ============================================================================

def split_list(value: str, sep: str = ",") -> List[str]:
    """Split a delimited cell into trimmed, non-empty parts."""
    if not value:
        return []
    return [part.strip() for part in value.split(sep) if part.strip()]


def parse_attribute_values(raw: str) -> List[str]:
    """
    Parse an 'Attribute N value(s)' cell into an ordered, de-duplicated list.

    Pipe-separated lists are split on '|'. Otherwise the cell is split on
    commas, except that a comma escaped as '\\,' belongs to the value
    ("General\\, Civil" stays one value).
    """
    raw = (raw or "").strip()
    if not raw:
        return []

    values: List[str] = []
    if "|" in raw:
        values = [v.strip() for v in raw.split("|") if v.strip()]
    else:
        current = ""
        for part in raw.split(","):
            part = part.strip()
            if not current:
                current = part
            elif current.endswith("\\"):
                current = current[:-1] + "," + part
            else:
                values.append(current)
                current = part
        if current:
            values.append(current)

    cleaned: List[str] = []
    for value in values:
        value = value.replace("\\,", ",").strip()
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned


def _is_visible(raw: str) -> bool:
    if not raw:
        return True
    return raw != "0" and raw.lower() != "false"


def extract_attributes(row: SourceRow) -> List[AttributeSpec]:
    """
    Read up to three attribute specs from a variable product row.

    If any attribute is flagged visible the hidden ones are dropped; when all
    are hidden they are all kept.
    """
    found: List[AttributeSpec] = []
    for i in range(1, MAX_ATTRIBUTES + 1):
        name = cell(row, f"Attribute {i} name")
        values = parse_attribute_values(cell(row, f"Attribute {i} value(s)"))
        if not name or not values:
            continue
        found.append(AttributeSpec(
            name=name,
            values=values,
            index=i,
            default=cell(row, f"Attribute {i} default") or None,
            visible=_is_visible(cell(row, f"Attribute {i} visible")),
        ))

    if any(attr.visible for attr in found):
        return [attr for attr in found if attr.visible]
    return found
