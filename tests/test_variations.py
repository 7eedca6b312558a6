"""Test variation type detection and variation block building."""

import asyncio
import json

from conftest import variable, variation
from woo_transform.records import AttributeSpec, ParentProduct, VariationProduct
from woo_transform.variations import (
    build_variation_blocks,
    infer_variation_type,
    variation_type_from_pattern,
    variations_json,
)


class TestVariationType:
    """Tests for how an attribute is presented."""

    def test_boolean_by_name(self):
        assert variation_type_from_pattern("Include Stand", ["Yes", "No"]) == "boolean"

    def test_boolean_by_value_pair(self):
        assert variation_type_from_pattern("Heater", ["With", "Without"]) == "boolean"

    def test_image_by_name(self):
        assert variation_type_from_pattern("Colour", ["Red", "Blue"]) == "image"

    def test_undecided(self):
        assert variation_type_from_pattern("Size", ["S", "M", "L"]) is None

    def test_falls_back_to_dropdown(self):
        attr = AttributeSpec(name="Size", values=["S", "M"], index=1)
        assert asyncio.run(infer_variation_type("Seat", attr)) == "dropdown"

    def test_asks_ai_when_undecided(self, make_inference):
        inference, fake = make_inference("image")
        attr = AttributeSpec(name="Plate", values=["A", "B"], index=1)
        assert asyncio.run(infer_variation_type("Panel", attr, inference)) == "image"
        assert len(fake.completions.calls) == 1


class TestBlocks:
    """Tests for the product_variations JSON blocks."""

    def _parent(self, attributes, children, **columns):
        parent = ParentProduct.from_row(variable("P1", "Widget", attributes, **columns))
        for values, kwargs in children:
            v = VariationProduct.from_row(variation("P1", **kwargs))
            v.attribute_values = values
            parent.add_variation(v)
        return parent

    def test_block_shape(self):
        parent = self._parent(
            [("Size", "Small,Large")],
            [
                ({"attribute1": "Small"}, {"sku": "W-S", "price": "10", "stock": "10"}),
                ({"attribute1": "Large"}, {"sku": "W-L", "price": "15", "stock": ""}),
            ],
        )
        parent.attributes[0].default = "Large"
        blocks = asyncio.run(build_variation_blocks(parent))
        assert len(blocks) == 1
        block = blocks[0]
        assert block["variation_type"] == "dropdown"
        assert block["name"] == "Size"
        assert block["is_required"] is True
        small, large = block["options"]
        assert small == {
            "option_name": "Small",
            "option_value": "Small",
            "price_adjustment": 0,
            "is_default": False,
            "sort_order": 0,
            "stock_quantity": 10,
            "low_stock_threshold": 2,
            "is_available": True,
        }
        assert large["price_adjustment"] == 5
        assert large["stock_quantity"] is None
        assert large["is_available"] is True
        assert large["is_default"] is True

    def test_unmatched_option_defaults(self):
        parent = self._parent(
            [("Size", "Small,Large")],
            [({"attribute1": "Small"}, {"sku": "W-S", "price": "10", "stock": "0", "in_stock": "0"})],
        )
        small, large = asyncio.run(build_variation_blocks(parent))[0]["options"]
        assert small["is_default"] is True
        assert small["is_available"] is False
        assert large["price_adjustment"] == 0
        assert large["stock_quantity"] is None

    def test_image_options(self):
        parent = self._parent(
            [("Color", "Black,White")],
            [
                ({"attribute1": "Black"}, {"sku": "W-B", "price": "10", "Images": "https://x/black.jpg"}),
                ({"attribute1": "White"}, {"sku": "W-W", "price": "10", "Images": "https://x/IMG_2.jpg"}),
            ],
        )
        block = asyncio.run(build_variation_blocks(parent))[0]
        assert block["variation_type"] == "image"
        black, white = block["options"]
        assert black["image_url"] == "https://x/black.jpg"
        assert "image_url" not in white

    def test_serialized_compactly(self):
        parent = self._parent([("Size", "S")], [({"attribute1": "S"}, {"sku": "W-S", "price": "3"})])
        text = variations_json(asyncio.run(build_variation_blocks(parent)))
        assert ", " not in text
        assert json.loads(text)[0]["options"][0]["option_name"] == "S"
