"""
Transformer configuration.

Defaults reproduce the output of the legacy migration; every tunable the
bundle filter relies on is exposed so another catalog can adjust it.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv


# ============================================================================
# BUNDLE FILTER DEFAULTS
# ============================================================================

MAX_ADDON_PRICE = 150.0
MAIN_PRODUCT_PRICE_FLOOR = 50.0
MAIN_PRODUCT_KEYWORDS: Tuple[str, ...] = ("cockpit", "seat", "chassis", "frame")
BRACKET_KEYWORDS: Tuple[str, ...] = ("bracket", "mount")
PLATE_KEYWORD = "plate"


@dataclass(frozen=True)
class SlugAlias:
    """A hard-coded slug → product lookup for links the fuzzy matcher misses."""
    triggers: Tuple[str, ...]  # slug fragments that activate the alias
    sku_equals: Tuple[str, ...] = ()
    sku_contains: Tuple[str, ...] = ()
    name_contains: Tuple[str, ...] = ()


DEFAULT_SLUG_ALIASES: Tuple[SlugAlias, ...] = (
    SlugAlias(triggers=("vp-plate-j",), sku_equals=("platej",)),
    SlugAlias(
        triggers=("plate-a", "large-universal-flight-plate"),
        sku_contains=("plate-a",),
        name_contains=("plate a", "large universal flight plate"),
    ),
)


@dataclass
class BundleRules:
    """Heuristics deciding which cross-sell candidates are real add-ons."""
    max_price: float = MAX_ADDON_PRICE
    main_product_price_floor: float = MAIN_PRODUCT_PRICE_FLOOR
    main_product_keywords: Tuple[str, ...] = MAIN_PRODUCT_KEYWORDS
    bracket_keywords: Tuple[str, ...] = BRACKET_KEYWORDS
    plate_keyword: str = PLATE_KEYWORD
    # "config " keeps the trailing space so names like "configurable" survive
    config_name_markers: Tuple[str, ...] = ("configuration", "config ")
    config_sku_marker: str = "config"
    slug_aliases: Tuple[SlugAlias, ...] = DEFAULT_SLUG_ALIASES
    min_shared_slug_words: int = 2


@dataclass
class InferenceConfig:
    """Settings for the optional AI collaborator."""
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    timeout: float = 60.0
    max_retries: int = 3
    backoff_base: float = 1.0  # seconds; doubles on every retry
    temperature: float = 0.3

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


@dataclass
class TransformConfig:
    """Top-level configuration for a transformation run."""
    batch_size: int = 20
    region: str = "us"
    unlimited_stock: int = 999999
    description_max_length: int = 5000
    ai_descriptions: bool = False
    inference: InferenceConfig = field(default_factory=InferenceConfig)
    bundles: BundleRules = field(default_factory=BundleRules)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "TransformConfig":
        """
        Build a config from the process environment.

        A .env file (explicit path or the nearest one found) is loaded first;
        variables already set in the environment win.
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        inference = InferenceConfig(
            api_key=os.getenv("OPENAI_API_KEY") or None,
            model=os.getenv("WP_TRANSFORM_MODEL", InferenceConfig.model),
        )
        batch_size = int(os.getenv("WP_TRANSFORM_BATCH_SIZE", "20") or 20)
        return cls(batch_size=max(1, batch_size), inference=inference)
