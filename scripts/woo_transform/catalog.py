"""
Row ingestion and hierarchy building for WooCommerce product exports.

Classifies every export row by its Type, builds variable parents, attaches
variations to them (including variations listed before their parent), and
exposes a read-only index of the whole catalog for cross-sell lookups.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from .exceptions import InvalidInputError, MissingColumnsError
from .records import ParentProduct, SourceRow, VariationProduct, cell, split_list
from .stats import TransformStats

log = logging.getLogger(__name__)

REQUIRED_COLUMNS: Tuple[str, ...] = (
    "Type",
    "SKU",
    "Name",
    "Parent",
    "Regular price",
    "Sale price",
    "Stock",
    "In stock?",
    "Images",
    "Cross-sells",
    "Description",
    "Categories",
    "Tags",
)


# ============================================================================
# INGESTION
# ============================================================================

def load_rows(filepath: Union[str, Path]) -> List[SourceRow]:
    """
    Load a WooCommerce export into a list of raw string rows.

    Every cell is read as text and blanks stay empty strings, so prices and
    SKUs like "007" survive untouched.
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    try:
        df = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
            low_memory=False,
        )
    except pd.errors.EmptyDataError as e:
        raise InvalidInputError(str(path), "file is empty") from e
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise InvalidInputError(str(path), str(e)) from e

    df.columns = [str(c).strip() for c in df.columns]
    validate_columns(df.columns, source=str(path))

    rows = df.to_dict("records")
    log.info(f"Parsed {len(rows)} rows from {path.name}")
    return rows


def validate_columns(columns: Iterable[str], required: Sequence[str] = REQUIRED_COLUMNS,
                     source: str = "") -> None:
    present = set(columns)
    missing = [c for c in required if c not in present]
    if missing:
        raise MissingColumnsError(missing, source)


# ============================================================================
# CATALOG INDEX
# ============================================================================

class CatalogIndex:
    """
    Read-only view of every source row, used for reverse cross-sell lookups
    and slug resolution. Passed explicitly to whatever needs it.
    """

    def __init__(self, rows: Sequence[SourceRow]):
        self.rows: Tuple[SourceRow, ...] = tuple(rows)
        self._by_sku: Dict[str, SourceRow] = {}
        for row in self.rows:
            sku = cell(row, "SKU").lower()
            if sku and sku not in self._by_sku:
                self._by_sku[sku] = row

    def __len__(self) -> int:
        return len(self.rows)

    def get(self, sku: str) -> Optional[SourceRow]:
        """Exact, case-insensitive SKU lookup."""
        return self._by_sku.get((sku or "").strip().lower())

    def cross_selling(self, sku: str) -> List[str]:
        """SKUs of every product whose Cross-sells field lists ``sku``."""
        target = (sku or "").strip().lower()
        if not target:
            return []
        found = []
        for row in self.rows:
            listed = [s.lower() for s in split_list(cell(row, "Cross-sells"))]
            if target in listed:
                other = cell(row, "SKU")
                if other and other.lower() != target and other not in found:
                    found.append(other)
        return found


# ============================================================================
# CLASSIFICATION
# ============================================================================

@dataclass
class CatalogResult:
    """Everything the transformer needs after classification."""
    parents: Dict[str, ParentProduct]
    simple_products: List[SourceRow]
    # parents and simple rows interleaved in source order
    products: List[Union[ParentProduct, SourceRow]]
    index: CatalogIndex
    stats: TransformStats
    dropped_variations: List[SourceRow] = field(default_factory=list)

    @property
    def variation_count(self) -> int:
        return sum(len(p.variations) for p in self.parents.values())


class ProductClassifier:
    """
    Partitions export rows into simple products, variable parents and their
    variations.

    Variations can precede their parent in an export, so any variation whose
    parent is not known yet is queued and retried once every row has been seen.
    """

    def __init__(self, stats: Optional[TransformStats] = None):
        self.stats = stats or TransformStats()
        self.parents: Dict[str, ParentProduct] = {}
        self.simple_products: List[SourceRow] = []
        self.products: List[Union[ParentProduct, SourceRow]] = []
        self._orphans: List[SourceRow] = []

    def classify(self, rows: Sequence[SourceRow]) -> CatalogResult:
        self.stats.total_rows = len(rows)

        for row in rows:
            ptype = cell(row, "Type").lower()
            if ptype == "variable":
                self._add_parent(row)
            elif ptype == "variation":
                self._add_variation(row)
            elif ptype == "simple":
                self.simple_products.append(row)
                self.products.append(row)
                self.stats.simple_products += 1
            elif ptype == "grouped":
                log.error(
                    f"Grouped product found (SKU: {cell(row, 'SKU') or 'N/A'}, "
                    f"Name: {cell(row, 'Name') or 'Unknown'}). "
                    "Grouped products are not supported and will be skipped."
                )
                self.stats.grouped_skipped += 1
            else:
                self.stats.ignored_rows += 1

        log.info(f"Found {len(self.parents)} variable products")
        log.info(f"Found {len(self.simple_products)} simple products")
        log.info(f"Found {self.stats.variations_processed} variation products")

        dropped = self._resolve_orphans()

        if self.stats.grouped_skipped:
            log.warning(f"Skipped {self.stats.grouped_skipped} grouped products")

        return CatalogResult(
            parents=self.parents,
            simple_products=self.simple_products,
            products=self.products,
            index=CatalogIndex(rows),
            stats=self.stats,
            dropped_variations=dropped,
        )

    def _add_parent(self, row: SourceRow) -> None:
        sku = cell(row, "SKU")
        if not sku:
            log.warning(f"Skipping variable product without SKU ({cell(row, 'Name') or 'Unknown'})")
            self.stats.variable_without_sku += 1
            return
        if sku in self.parents:
            log.warning(f"Duplicate variable product SKU {sku}; keeping the first occurrence")
            self.stats.duplicate_parents += 1
            return

        parent = ParentProduct.from_row(row)
        if not parent.attributes:
            log.warning(f"Variable product {sku} declares no attributes")
        self.parents[sku] = parent
        self.products.append(parent)
        self.stats.variable_products += 1

    def _add_variation(self, row: SourceRow) -> None:
        parent_sku = cell(row, "Parent")
        if not parent_sku:
            log.warning(f"Skipping variation without Parent SKU ({cell(row, 'SKU') or 'no-sku'})")
            self.stats.variations_without_parent += 1
            return

        parent = self.parents.get(parent_sku)
        if parent is None:
            # parent may still be further down the file
            self._orphans.append(row)
            return

        parent.add_variation(VariationProduct.from_row(row))
        self.stats.variations_processed += 1

    def _resolve_orphans(self) -> List[SourceRow]:
        """Second pass over variations whose parent was not known yet."""
        if not self._orphans:
            return []

        log.info(f"Processing {len(self._orphans)} orphaned variations...")
        still_orphaned = []
        for row in self._orphans:
            parent = self.parents.get(cell(row, "Parent"))
            if parent is None:
                still_orphaned.append(row)
                log.debug(
                    f"Variation {cell(row, 'SKU') or 'no-sku'} dropped: "
                    f"parent {cell(row, 'Parent')} not found"
                )
                continue
            parent.add_variation(VariationProduct.from_row(row))
            self.stats.variations_processed += 1
            self.stats.orphans_resolved += 1

        self._orphans = []
        if self.stats.orphans_resolved:
            log.info(f"Processed {self.stats.orphans_resolved} orphaned variations")
        if still_orphaned:
            log.warning(f"{len(still_orphaned)} variations still orphaned (parent not found)")
        self.stats.orphans_dropped += len(still_orphaned)
        return still_orphaned


def classify_rows(rows: Sequence[SourceRow], stats: Optional[TransformStats] = None) -> CatalogResult:
    return ProductClassifier(stats).classify(rows)
