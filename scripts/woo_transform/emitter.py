"""
Output CSV writer.

The header is the union of every field any row produced, with the required
import columns first and the rest in alphabetical order.
"""

import csv
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Union

from .exceptions import EmptyOutputError

log = logging.getLogger(__name__)

LEADING_COLUMNS = ["sku", "name", "regular_price"]


def build_header(rows: Sequence[Mapping[str, str]]) -> List[str]:
    keys = set()
    for row in rows:
        keys.update(row.keys())
    leading = [k for k in LEADING_COLUMNS if k in keys]
    return leading + sorted(keys - set(LEADING_COLUMNS))


def _text(value) -> str:
    if value is None or value is False:
        return ""
    return str(value)


def write_rows(rows: Sequence[Mapping[str, str]], output_path: Union[str, Path]) -> Path:
    """
    Write output rows as CSV. Missing fields are written empty.

    Raises EmptyOutputError before touching the file when there is nothing
    to write.
    """
    if not rows:
        raise EmptyOutputError()

    header = build_header(rows)
    path = Path(output_path)
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=header, restval="", lineterminator="\n")
        writer.writeheader()
        for row in rows:
            record: Dict[str, str] = {key: _text(value) for key, value in row.items()}
            writer.writerow(record)

    log.info(f"Wrote {len(rows)} rows ({len(header)} columns) to {path}")
    return path
