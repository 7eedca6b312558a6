"""
Source column → output field mapping shared by simple and variable products.
"""

import json
import logging
import re
from typing import Callable, Dict, List, Tuple

import pandas as pd
from bs4 import BeautifulSoup

from .records import SourceRow, cell, split_list

log = logging.getLogger(__name__)

# ============================================================================
# CATEGORIES
# ============================================================================

VALID_CATEGORIES = [
    "flight-sim",
    "sim-racing",
    "cockpits",
    "monitor-stands",
    "accessories",
    "conversion-kits",
    "services",
    "individual-parts",
    "racing-flight-seats",
    "refurbished",
]

# First match wins, checked against the lowercased category text.
CATEGORY_RULES: List[Tuple[str, Callable[[str], bool]]] = [
    ("sim-racing", lambda c: "sim racing" in c),
    ("flight-sim", lambda c: "flight sim" in c),
    ("accessories", lambda c: "accessories" in c),
    ("cockpits", lambda c: "cockpit" in c),
    ("monitor-stands", lambda c: "monitor stand" in c or "stand" in c),
    ("conversion-kits", lambda c: "conversion kit" in c),
    ("services", lambda c: "service" in c),
    ("individual-parts", lambda c: "individual part" in c),
    ("racing-flight-seats", lambda c: ("racing" in c or "flight" in c) and "seat" in c),
    ("refurbished", lambda c: "refurbished" in c),
]


def _title_caps(text: str) -> str:
    """SIM RACING -> Sim Racing; words already in mixed case are left alone."""
    words = []
    for word in text.split(" "):
        if len(word) > 1 and word == word.upper():
            word = word[0] + word[1:].lower()
        words.append(word)
    return " ".join(words)


def slugify(text: str) -> str:
    return re.sub(r'[^a-z0-9]+', '-', text.lower()).strip('-')


def map_category(categories: str) -> Tuple[str, bool]:
    """
    Map a WooCommerce Categories cell to a store category slug.

    Only the first category is used, and of a hierarchy ("FLIGHT SIM > Flight
    Sim Accessories") the most specific part. Returns (slug, known).
    """
    first = (categories or "").split(",")[0].strip()
    if not first:
        return "", True
    parts = [p.strip() for p in first.split(">")]
    category = _title_caps(parts[-1])
    lowered = category.lower()

    for slug, rule in CATEGORY_RULES:
        if rule(lowered):
            return slug, True

    slug = slugify(category)
    if slug in VALID_CATEGORIES:
        return slug, True
    log.warning(f'Unknown category: "{category}" -> "{slug}" (will be flagged during import)')
    return slug, False


# ============================================================================
# SIMPLE FIELDS
# ============================================================================

def map_tags(tags: str) -> str:
    return "|".join(split_list(tags))


def map_status(row: SourceRow) -> str:
    return "active" if cell(row, "Published") == "1" else "draft"


def flag(value: bool) -> str:
    return "true" if value else "false"


def to_iso_date(value: str) -> str:
    """WooCommerce date -> ISO-8601 UTC with milliseconds, '' if unparseable."""
    if not value or not value.strip():
        return ""
    ts = pd.to_datetime(value.strip(), errors="coerce")
    if pd.isna(ts):
        log.warning(f"Unparseable date: {value!r}")
        return ""
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts.strftime("%Y-%m-%dT%H:%M:%S") + f".{ts.microsecond // 1000:03d}Z"


def images_json(images: str) -> str:
    urls = split_list(images)
    if not urls:
        return ""
    return json.dumps(
        [
            {"image_url": url, "alt_text": "", "is_primary": i == 0, "sort_order": i}
            for i, url in enumerate(urls)
        ],
        separators=(",", ":"),
        ensure_ascii=False,
    )


# ============================================================================
# DESCRIPTIONS
# ============================================================================

FUSION_SHORTCODE = re.compile(
    r'\[fusion_(?:text|title|button|separator)[^\]]*\](.*?)\[/fusion_(?:text|title|button|separator)\]',
    re.IGNORECASE | re.DOTALL,
)


def decode_escapes(text: str) -> str:
    """Literal backslash sequences from the export (\\n, \\r\\n, \\t) -> real whitespace."""
    text = text.replace("\\r\\n", "\r\n")
    text = text.replace("\\n", "\n")
    text = text.replace("\\r", "\r")
    return text.replace("\\t", "\t")


def clean_whitespace(text: str) -> str:
    text = re.sub(r'[ \t]+', ' ', text)
    text = re.sub(r'\n[ \t]+', '\n', text)
    text = re.sub(r'[ \t]+\n', '\n', text)
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


def looks_like_html(text: str) -> bool:
    return any(tag in text for tag in ("<p", "<div", "<span"))


def html_to_text(html: str, max_length: int = 5000) -> str:
    """
    Plain text from a WordPress description.

    Fusion Builder shortcode bodies are kept (and nothing else when present),
    markup is stripped, entities decoded and whitespace collapsed.
    """
    if not html:
        return ""
    text = decode_escapes(html)

    bodies = [m.group(1).strip() for m in FUSION_SHORTCODE.finditer(text) if m.group(1)]
    if bodies:
        text = "\n\n".join(bodies)

    if "<" in text or "&" in text:
        soup = BeautifulSoup(text, "html.parser")
        for tag in soup(["script", "style"]):
            tag.decompose()
        text = soup.get_text()
    text = text.replace("\xa0", " ")

    text = re.sub(r'\[/?fusion_[^\]]+\]', '', text, flags=re.IGNORECASE)
    text = clean_whitespace(text)

    if len(text) > max_length:
        text = text[:max_length] + "..."
    return text


def clean_extracted_text(text: str) -> str:
    return clean_whitespace(decode_escapes(text))


# ============================================================================
# PASS-THROUGH
# ============================================================================

# output field -> source column; nothing else from the source row is copied
PASSTHROUGH_FIELDS: Dict[str, str] = {
    "weight_lbs": "Weight (lbs)",
    "length_in": "Length (in)",
    "width_in": "Width (in)",
    "height_in": "Height (in)",
    "tax_class": "Tax class",
    "shipping_class": "Shipping class",
    "brands": "Brands",
    "gtin_upc_ean_isbn": "GTIN, UPC, EAN, or ISBN",
    "published": "Published",
    "visibility_in_catalog": "Visibility in catalog",
    "tax_status": "Tax status",
    "backorders_allowed": "Backorders allowed?",
    "sold_individually": "Sold individually?",
    "allow_customer_reviews": "Allow customer reviews?",
    "purchase_note": "Purchase note",
    "low_stock_amount": "Low stock amount",
}


def passthrough_fields(row: SourceRow) -> Dict[str, str]:
    return {field: cell(row, column) for field, column in PASSTHROUGH_FIELDS.items()}


def package_fields(row: SourceRow) -> Dict[str, str]:
    weight = cell(row, "Weight (lbs)")
    length = cell(row, "Length (in)")
    width = cell(row, "Width (in)")
    height = cell(row, "Height (in)")
    return {
        "package_weight": weight,
        "package_weight_unit": "lbs" if weight else "",
        "package_length": length,
        "package_width": width,
        "package_height": height,
        "package_dimension_unit": "in" if (length or width or height) else "",
    }


def sale_dates(row: SourceRow) -> Dict[str, str]:
    return {
        "sale_start_date": to_iso_date(cell(row, "Date sale price starts")),
        "sale_end_date": to_iso_date(cell(row, "Date sale price ends")),
    }
