#!/usr/bin/env python3
"""
WordPress → Store CSV Transformer

Transforms a WooCommerce product export into the store's CSV import format.

Usage:
    python scripts/run_wp_transform.py CSVs/wc-product-export.csv
    python scripts/run_wp_transform.py CSVs/wc-product-export.csv outputs/products.csv --no-ai

Options:
    INPUT               WooCommerce product export CSV
    OUTPUT              Output CSV (default: INPUT with a _transformed suffix)
    --batch-size N      Variable products transformed concurrently (default: 20)
    --no-ai             Disable AI inference even if OPENAI_API_KEY is set
    --ai-descriptions   Use AI to turn HTML descriptions into plain text
    --model NAME        OpenAI model for inference
    --env-file PATH     .env file to load before reading the environment
    --verbose           Debug logging
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import TransformConfig
from .exceptions import TransformError
from .inference import AttributeInferenceClient
from .stats import TransformStats
from .transformer import default_output_path, transform_file

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Transform a WooCommerce product export into the store's CSV import format"
    )
    parser.add_argument("input", help="WooCommerce product export CSV file")
    parser.add_argument("output", nargs="?", help="Output CSV (default: <input>_transformed.csv)")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Variable products transformed concurrently (default: 20)",
    )
    parser.add_argument(
        "--no-ai",
        action="store_true",
        help="Disable AI inference even if OPENAI_API_KEY is set",
    )
    parser.add_argument(
        "--ai-descriptions",
        action="store_true",
        help="Use AI to extract plain text from HTML descriptions",
    )
    parser.add_argument("--model", help="OpenAI model used for inference")
    parser.add_argument("--env-file", help=".env file to load")
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show debug output",
    )
    return parser


def print_stats(stats: TransformStats, output_path: Path) -> None:
    print()
    print("-" * 70)
    print("TRANSFORMATION STATISTICS")
    print("-" * 70)
    for line in stats.summary_lines():
        print(line)
    if stats.dropped_records:
        print()
        print(f"  Records dropped: {stats.dropped_records} (see warnings above)")
    print()
    print(f"Output written to: {output_path}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stdout,
    )

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"ERROR: Input file not found: {input_path}")
        return 1
    output_path = Path(args.output) if args.output else default_output_path(input_path)

    config = TransformConfig.from_env(args.env_file)
    if args.batch_size is not None:
        config.batch_size = max(1, args.batch_size)
    if args.model:
        config.inference.model = args.model
    config.ai_descriptions = args.ai_descriptions

    print("=" * 70)
    print("WordPress → Store CSV Transformation")
    print("=" * 70)
    print(f"Input:  {input_path}")
    print(f"Output: {output_path}")
    ai_on = config.inference.enabled and not args.no_ai
    print(f"AI:     {'enabled (' + config.inference.model + ')' if ai_on else 'disabled'}")
    print()

    if args.no_ai:
        log.info("AI inference disabled (--no-ai)")
        inference = None
    else:
        inference = AttributeInferenceClient.from_config(config.inference)
    stats = TransformStats()
    try:
        asyncio.run(transform_file(input_path, output_path, config, inference, stats))
    except TransformError as e:
        print(f"\nERROR: Transformation failed: {e}")
        return 1

    print_stats(stats, output_path)
    print()
    print("=" * 70)
    print("TRANSFORMATION COMPLETE")
    print("=" * 70)
    return 0


if __name__ == "__main__":
    sys.exit(main())
