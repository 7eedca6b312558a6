#!/usr/bin/env python3
"""
WordPress → Store CSV Transformer runner.

Usage:
    python scripts/run_wp_transform.py CSVs/wc-product-export.csv [OUTPUT.csv] [--no-ai]

See woo_transform/cli.py for all options.
"""

import sys
from pathlib import Path

# Add this directory to the path so the package imports without installing
sys.path.insert(0, str(Path(__file__).parent))

from woo_transform.cli import main


if __name__ == "__main__":
    sys.exit(main())
