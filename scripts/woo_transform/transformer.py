"""
WordPress → store catalog transformation.

Turns classified export rows into output rows: one per simple product and one
per variable product, the latter carrying its variations as embedded JSON.
"""

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from .aggregator import base_price, has_sale_price, min_sale_price, total_stock
from .bundles import BundleResolver
from .catalog import CatalogResult, classify_rows, load_rows
from .config import TransformConfig
from .emitter import write_rows
from .fields import (
    clean_extracted_text,
    flag,
    html_to_text,
    images_json,
    looks_like_html,
    map_category,
    map_status,
    map_tags,
    package_fields,
    passthrough_fields,
    sale_dates,
)
from .inference import AttributeInferenceClient
from .records import ParentProduct, SourceRow, cell, format_number, parse_int, parse_price
from .resolver import VariationResolver
from .stats import TransformStats
from .variations import build_variation_blocks, variations_json

log = logging.getLogger(__name__)

OutputRow = Dict[str, str]


class CatalogTransformer:
    """
    Transforms a classified catalog into output rows.

    Variable products are processed ``batch_size`` at a time, which bounds
    the number of AI calls in flight; the variations of one product resolve
    concurrently. Simple products need no network calls and run in sequence.
    """

    def __init__(self, result: CatalogResult, config: Optional[TransformConfig] = None,
                 inference: Optional[AttributeInferenceClient] = None):
        self.result = result
        self.config = config or TransformConfig()
        self.stats: TransformStats = result.stats
        self.inference = inference
        self.resolver = VariationResolver(inference, self.stats)
        self.bundles = BundleResolver(result.index, self.config.bundles)

    async def transform(self) -> List[OutputRow]:
        outputs: Dict[int, OutputRow] = {}
        parents = [(i, p) for i, p in enumerate(self.result.products) if isinstance(p, ParentProduct)]
        simples = [(i, p) for i, p in enumerate(self.result.products) if not isinstance(p, ParentProduct)]

        log.info("Transforming products...")
        batch_size = max(1, self.config.batch_size)
        for start in range(0, len(parents), batch_size):
            batch = parents[start:start + batch_size]
            rows = await asyncio.gather(*(self.transform_variable(p) for _, p in batch))
            for (position, _), row in zip(batch, rows):
                outputs[position] = row

        for position, row in simples:
            outputs[position] = await self.transform_simple(row)

        if self.inference is not None:
            self.stats.ai_failures = self.inference.failures
        ordered = [outputs[i] for i in sorted(outputs)]
        self.stats.products_written = len(ordered)
        return ordered

    # ------------------------------------------------------------------
    # Shared fields
    # ------------------------------------------------------------------

    async def describe(self, html: str) -> str:
        if not html:
            return ""
        if self.config.ai_descriptions and self.inference is not None and looks_like_html(html):
            text = await self.inference.extract_text(html)
            if text:
                return clean_extracted_text(text)
            log.warning("AI description extraction failed, falling back to markup stripping")
        return html_to_text(html, self.config.description_max_length)

    def category(self, row: SourceRow) -> str:
        slug, known = map_category(cell(row, "Categories"))
        if not known:
            self.stats.unknown_categories += 1
        return slug

    async def common_fields(self, row: SourceRow, sku: str) -> OutputRow:
        cross_sells = cell(row, "Cross-sells")
        description = cell(row, "Description")
        fields: OutputRow = {
            "type": "simple",  # variations travel as JSON
            "status": map_status(row),
            "description": await self.describe(description),
            "short_description": await self.describe(cell(row, "Short description")),
            "featured": flag(cell(row, "Is featured?") == "1"),
            **sale_dates(row),
            "categories": self.category(row),
            "tags": map_tags(cell(row, "Tags")),
            **passthrough_fields(row),
            "product_images": images_json(cell(row, "Images")),
            "product_bundle_items": self.bundles.bundle_items_json(cross_sells, sku, description),
            "is_bundle": flag(self.bundles.is_bundle(cross_sells, description)),
            "region": self.config.region,
            **package_fields(row),
            "tariff_code": "",
        }
        return fields

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    async def transform_variable(self, parent: ParentProduct) -> OutputRow:
        if not parent.variations:
            log.warning(f'Variable product "{parent.sku}" has no variations!')
        else:
            log.info(f"Transforming variable product: {parent.sku} ({len(parent.variations)} variations)")
        if not parent.attributes:
            log.warning(f'Variable product "{parent.sku}" has no attributes; its variations will be empty')

        await asyncio.gather(*(self.resolver.resolve(v, parent) for v in parent.variations))
        blocks = await build_variation_blocks(parent, self.inference)

        variations = parent.variations
        sale = min_sale_price(variations)
        stock = total_stock(variations, self.config.unlimited_stock)

        row: OutputRow = {
            "sku": parent.sku,
            "name": parent.name,
            "regular_price": format_number(base_price(variations)),
            "sale_price": format_number(sale) if sale is not None else "",
            "is_on_sale": flag(has_sale_price(variations)),
            "stock": str(stock),
            "in_stock": "1" if stock > 0 else "0",
        }
        row.update(await self.common_fields(parent.row, parent.sku))
        row["product_variations"] = variations_json(blocks)
        return row

    async def transform_simple(self, source: SourceRow) -> OutputRow:
        stock_text = cell(source, "Stock")
        in_stock = cell(source, "In stock?")
        if not stock_text:
            if in_stock == "1":
                stock, in_stock_value = str(self.config.unlimited_stock), "1"
            else:
                stock, in_stock_value = "0", "0"
        else:
            stock = stock_text
            in_stock_value = in_stock or ("1" if (parse_int(stock_text) or 0) > 0 else "0")

        sku = cell(source, "SKU")
        sale_price = cell(source, "Sale price")
        row: OutputRow = {
            "sku": sku,
            "name": cell(source, "Name"),
            "regular_price": cell(source, "Regular price") or "0",
            "sale_price": sale_price,
            "is_on_sale": flag(parse_price(sale_price) > 0),
            "stock": stock,
            "in_stock": in_stock_value,
        }
        row.update(await self.common_fields(source, sku))
        return row


# ============================================================================
# ENTRY POINTS
# ============================================================================

async def transform_rows(rows: List[SourceRow], config: Optional[TransformConfig] = None,
                         inference: Optional[AttributeInferenceClient] = None,
                         stats: Optional[TransformStats] = None) -> List[OutputRow]:
    """Classify and transform already-parsed rows."""
    result = classify_rows(rows, stats)
    return await CatalogTransformer(result, config, inference).transform()


async def transform_file(input_path: Union[str, Path], output_path: Union[str, Path],
                         config: Optional[TransformConfig] = None,
                         inference: Optional[AttributeInferenceClient] = None,
                         stats: Optional[TransformStats] = None) -> TransformStats:
    """Read a WooCommerce export, transform it and write the import CSV."""
    stats = stats or TransformStats()
    rows = load_rows(input_path)
    output_rows = await transform_rows(rows, config, inference, stats)
    write_rows(output_rows, output_path)
    return stats


def default_output_path(input_path: Union[str, Path]) -> Path:
    path = Path(input_path)
    return path.with_name(f"{path.stem}_transformed{path.suffix or '.csv'}")
