"""
WordPress / WooCommerce → Store Catalog Transformer

Converts a WooCommerce product export (variable parents, variations, simple
products and their cross-sells) into the store's CSV import format, with
variations, images and optional add-ons embedded as JSON.

Usage:
    python scripts/run_wp_transform.py CSVs/wc-product-export.csv
"""

from .catalog import CatalogIndex, ProductClassifier, load_rows
from .config import BundleRules, InferenceConfig, TransformConfig
from .exceptions import EmptyOutputError, InvalidInputError, MissingColumnsError, TransformError
from .inference import AttributeInferenceClient
from .resolver import VariationResolver
from .bundles import BundleResolver
from .transformer import CatalogTransformer, transform_file, transform_rows
from .emitter import write_rows

__version__ = "1.0.0"
__all__ = [
    "AttributeInferenceClient",
    "BundleResolver",
    "BundleRules",
    "CatalogIndex",
    "CatalogTransformer",
    "EmptyOutputError",
    "InferenceConfig",
    "InvalidInputError",
    "MissingColumnsError",
    "ProductClassifier",
    "TransformConfig",
    "TransformError",
    "VariationResolver",
    "load_rows",
    "transform_file",
    "transform_rows",
    "write_rows",
]
