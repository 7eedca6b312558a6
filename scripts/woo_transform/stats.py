"""Run statistics, so every dropped or degraded record is accounted for."""

from dataclasses import dataclass
from typing import List


@dataclass
class TransformStats:
    total_rows: int = 0
    variable_products: int = 0
    simple_products: int = 0
    variations_processed: int = 0
    orphans_resolved: int = 0
    orphans_dropped: int = 0
    variations_without_parent: int = 0
    variable_without_sku: int = 0
    duplicate_parents: int = 0
    grouped_skipped: int = 0
    ignored_rows: int = 0
    direct_matches: int = 0
    sku_parses: int = 0
    name_parses: int = 0
    ai_inferences: int = 0
    ai_failures: int = 0
    incomplete_variations: int = 0
    unknown_categories: int = 0
    products_written: int = 0

    # (field, label, always shown)
    _LABELS = (
        ("total_rows", "Total rows read", True),
        ("variable_products", "Variable products", True),
        ("simple_products", "Simple products", True),
        ("variations_processed", "Variations processed", True),
        ("orphans_resolved", "Orphaned variations resolved", False),
        ("orphans_dropped", "Orphaned variations dropped", False),
        ("variations_without_parent", "Variations without Parent SKU", False),
        ("variable_without_sku", "Variable products without SKU", False),
        ("duplicate_parents", "Duplicate variable SKUs skipped", False),
        ("grouped_skipped", "Grouped products skipped", False),
        ("ignored_rows", "Rows of other types ignored", False),
        ("direct_matches", "Direct attribute matches", True),
        ("sku_parses", "SKU parses", True),
        ("name_parses", "Name parses", True),
        ("ai_inferences", "AI inferences", True),
        ("ai_failures", "AI calls failed", False),
        ("incomplete_variations", "Variations left incomplete", False),
        ("unknown_categories", "Unknown categories", False),
        ("products_written", "Products written", True),
    )

    @property
    def dropped_records(self) -> int:
        return (
            self.orphans_dropped
            + self.variations_without_parent
            + self.variable_without_sku
            + self.duplicate_parents
            + self.grouped_skipped
        )

    def summary_lines(self) -> List[str]:
        lines = []
        for name, label, always in self._LABELS:
            value = getattr(self, name)
            if always or value:
                lines.append(f"  {label + ':':36} {value:,}")
        return lines
