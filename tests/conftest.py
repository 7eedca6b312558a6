"""Shared test fixtures and utilities for the transformer test suite."""

import csv
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

# Add scripts directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "scripts"))

from woo_transform.config import InferenceConfig
from woo_transform.inference import AttributeInferenceClient


EXPORT_COLUMNS = [
    "ID", "Type", "SKU", "Name", "Published", "Is featured?",
    "Visibility in catalog", "Short description", "Description",
    "Date sale price starts", "Date sale price ends", "Tax status", "Tax class",
    "In stock?", "Stock", "Low stock amount", "Backorders allowed?",
    "Sold individually?", "Weight (lbs)", "Length (in)", "Width (in)",
    "Height (in)", "Allow customer reviews?", "Purchase note", "Sale price",
    "Regular price", "Categories", "Tags", "Shipping class", "Images",
    "Parent", "Cross-sells", "Brands",
    "Attribute 1 name", "Attribute 1 value(s)", "Attribute 1 visible", "Attribute 1 default",
    "Attribute 2 name", "Attribute 2 value(s)", "Attribute 2 visible", "Attribute 2 default",
    "Attribute 3 name", "Attribute 3 value(s)", "Attribute 3 visible", "Attribute 3 default",
]


def make_row(**fields):
    """Build an export row with every column present.

    Columns whose names are not valid identifiers go through ``columns``.
    """
    columns = fields.pop("columns", {})
    row = {name: "" for name in EXPORT_COLUMNS}
    row.update(fields)
    row.update(columns)
    return row


def variable(sku, name, attributes=(), **columns):
    """Variable product row. ``attributes`` is a list of (name, values) pairs."""
    row = make_row(Type="variable", SKU=sku, Name=name, Published="1")
    for i, (attr_name, values) in enumerate(attributes, start=1):
        row[f"Attribute {i} name"] = attr_name
        row[f"Attribute {i} value(s)"] = values
        row[f"Attribute {i} visible"] = "1"
    row.update(columns)
    return row


def variation(parent, sku, price="", stock="", in_stock="1", name="", **columns):
    row = make_row(
        Type="variation", Parent=parent, SKU=sku, Name=name, Published="1",
        columns={"Regular price": price, "Stock": stock, "In stock?": in_stock},
    )
    row.update(columns)
    return row


def simple(sku, name, price="", stock="", in_stock="1", **columns):
    row = make_row(
        Type="simple", SKU=sku, Name=name, Published="1",
        columns={"Regular price": price, "Stock": stock, "In stock?": in_stock},
    )
    row.update(columns)
    return row


def write_export(path, rows, columns=None):
    columns = columns or EXPORT_COLUMNS
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    return path


def read_output(path):
    with open(path, encoding="utf-8", newline="") as f:
        return list(csv.DictReader(f))


class FakeCompletions:
    """Stands in for ``client.chat.completions``; replies are consumed in order."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, BaseException):
            raise reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])


class FakeOpenAI:
    def __init__(self, replies=()):
        self.completions = FakeCompletions(replies)
        self.chat = SimpleNamespace(completions=self.completions)


@pytest.fixture
def round_trip_rows():
    """The Widget example: two colours, one unlimited."""
    return [
        variable("P1", "Widget", [("Color", "Red,Blue")]),
        variation("P1", "P1-RED", price="10", stock="5"),
        variation("P1", "P1-BLUE", price="12", stock="", in_stock="1"),
    ]


@pytest.fixture
def export_csv(tmp_path, round_trip_rows):
    """Write the round-trip rows as a WooCommerce export."""
    return write_export(tmp_path / "wc-product-export.csv", round_trip_rows)


@pytest.fixture
def inference_config():
    return InferenceConfig(api_key="test-key", timeout=5.0, max_retries=3, backoff_base=0)


@pytest.fixture
def make_inference(inference_config):
    """Factory for an inference client backed by a scripted fake."""

    def factory(*replies):
        fake = FakeOpenAI(replies)
        return AttributeInferenceClient(inference_config, client=fake), fake

    return factory
