"""Test price, stock and image aggregation across variations."""

from conftest import variable, variation
from woo_transform.aggregator import (
    OptionImageMatcher,
    aggregate_stock,
    base_price,
    low_stock_threshold,
    min_sale_price,
    normalize_for_matching,
    option_stock,
    price_adjustments,
    resolve_stock,
    score_image,
    total_stock,
)
from woo_transform.records import ParentProduct, VariationProduct


def build_parent(attributes, children, name="Widget", **columns):
    """Parent with variations whose attribute values are already resolved.

    ``children`` is a list of (values, variation kwargs) pairs.
    """
    parent = ParentProduct.from_row(variable("P1", name, attributes, **columns))
    for values, kwargs in children:
        v = VariationProduct.from_row(variation("P1", **kwargs))
        v.attribute_values = values
        parent.add_variation(v)
    return parent


class TestPrices:
    """Tests for base price and per-option adjustments."""

    def test_base_price_ignores_zero_and_invalid(self):
        variations = [
            VariationProduct(sku="a", parent_sku="P", regular_price="0"),
            VariationProduct(sku="b", parent_sku="P", regular_price="abc"),
            VariationProduct(sku="c", parent_sku="P", regular_price="15"),
            VariationProduct(sku="d", parent_sku="P", regular_price="12.5"),
        ]
        assert base_price(variations) == 12.5
        assert base_price(variations[:2]) == 0

    def test_min_sale_price(self):
        variations = [
            VariationProduct(sku="a", parent_sku="P", sale_price=""),
            VariationProduct(sku="b", parent_sku="P", sale_price="8"),
            VariationProduct(sku="c", parent_sku="P", sale_price="7.5"),
        ]
        assert min_sale_price(variations) == 7.5
        assert min_sale_price(variations[:1]) is None

    def test_adjustments_are_mean_deltas(self):
        parent = build_parent(
            [("Color", "Red,Blue"), ("Size", "S,L")],
            [
                ({"attribute1": "Red", "attribute2": "S"}, {"sku": "R-S", "price": "10"}),
                ({"attribute1": "Red", "attribute2": "L"}, {"sku": "R-L", "price": "14"}),
                ({"attribute1": "Blue", "attribute2": "S"}, {"sku": "B-S", "price": "11"}),
                ({"attribute1": "Blue", "attribute2": "L"}, {"sku": "B-L", "price": "15"}),
            ],
        )
        adjustments = price_adjustments(parent)
        assert adjustments["attribute1"] == {"Red": 2, "Blue": 3}
        assert adjustments["attribute2"] == {"S": 0.5, "L": 4.5}
        # the cheapest variation's options all have a delta of zero or more
        assert min(adjustments["attribute2"].values()) >= 0

    def test_adjustments_rounded(self):
        parent = build_parent(
            [("Color", "Red,Blue")],
            [
                ({"attribute1": "Red"}, {"sku": "R1", "price": "10"}),
                ({"attribute1": "Blue"}, {"sku": "B1", "price": "10.333"}),
            ],
        )
        assert price_adjustments(parent)["attribute1"]["Blue"] == 0.33

    def test_adjustments_round_half_up(self):
        parent = build_parent(
            [("Color", "Red,Blue")],
            [
                ({"attribute1": "Red"}, {"sku": "R1", "price": "10"}),
                ({"attribute1": "Blue"}, {"sku": "B1", "price": "10"}),
                ({"attribute1": "Blue"}, {"sku": "B2", "price": "10.25"}),
            ],
        )
        assert price_adjustments(parent)["attribute1"]["Blue"] == 0.13

    def test_no_prices(self):
        parent = build_parent([("Color", "Red")], [({"attribute1": "Red"}, {"sku": "R1", "price": ""})])
        assert price_adjustments(parent) == {}


class TestStock:
    """Tests for the unlimited-wins stock policy."""

    def test_resolve_stock(self):
        assert resolve_stock("5", "1") == 5
        assert resolve_stock("", "1") is None
        assert resolve_stock("", "0") == 0
        assert resolve_stock("lots", "1") == 0

    def test_aggregate_stock(self):
        assert aggregate_stock([5, 3]) == 3
        assert aggregate_stock([5, None]) is None
        assert aggregate_stock([]) is None

    def test_option_stock_is_minimum(self):
        parent = build_parent(
            [("Color", "Red,Blue")],
            [
                ({"attribute1": "Red"}, {"sku": "R1", "stock": "5"}),
                ({"attribute1": "Red"}, {"sku": "R2", "stock": "2"}),
                ({"attribute1": "Blue"}, {"sku": "B1", "stock": "", "in_stock": "1"}),
                ({"attribute1": "Blue"}, {"sku": "B2", "stock": "4"}),
            ],
        )
        assert option_stock(parent) == {"attribute1": {"Red": 2, "Blue": None}}

    def test_total_stock(self):
        limited = [
            VariationProduct(sku="a", parent_sku="P", stock="5"),
            VariationProduct(sku="b", parent_sku="P", stock="", in_stock="0"),
            VariationProduct(sku="c", parent_sku="P", stock="3"),
        ]
        assert total_stock(limited) == 8
        unlimited = limited + [VariationProduct(sku="d", parent_sku="P", stock="", in_stock="1")]
        assert total_stock(unlimited, unlimited=999999) == 999999

    def test_low_stock_threshold(self):
        assert low_stock_threshold(10) == 2
        assert low_stock_threshold(4) == 0
        assert low_stock_threshold(None) is None

    def test_low_stock_threshold_floors_backorders(self):
        assert low_stock_threshold(-3) == -1


class TestImages:
    """Tests for matching variation images to options."""

    def test_normalize(self):
        assert normalize_for_matching("Large universal flight plate #A") == "largeuniversalflightplatea"

    def test_score_color_bonus(self):
        url = "https://cdn.example.com/panel-black.jpg"
        assert score_image(url, "Color", "Black", direct=False) == 6
        assert score_image(url, "Color", "Black", direct=True) == 8
        assert score_image(url, "Size", "Large", direct=False) == 0

    def test_first_claim_wins(self):
        parent = build_parent(
            [("Color", "Black,White")],
            [
                ({"attribute1": "Black"}, {"sku": "B1", "Images": "https://x/black-1.jpg"}),
                ({"attribute1": "Black"}, {"sku": "B2", "Images": "https://x/black-2.jpg"}),
            ],
        )
        matcher = OptionImageMatcher(parent)
        assert matcher.image_for(1, "Black") == "https://x/black-1.jpg"
        assert matcher.image_for(1, "White") is None

    def test_unrelated_image_not_claimed(self):
        parent = build_parent(
            [("Size", "Small,Large")],
            [({"attribute1": "Small"}, {"sku": "S1", "Images": "https://x/IMG_0001.jpg"})],
        )
        assert OptionImageMatcher(parent).claims == {}

    def test_direct_value_claims(self):
        parent = build_parent(
            [("Size", "Small,Large")],
            [({"attribute1": "Small"}, {"sku": "S1", "Images": "https://x/IMG_0001.jpg",
                                        "Attribute 1 value(s)": "Small"})],
        )
        assert OptionImageMatcher(parent).image_for(1, "Small") == "https://x/IMG_0001.jpg"

    def test_parent_image_fallback(self):
        parent = build_parent(
            [("Color", "Red,Blue")],
            [],
            Images="https://x/panel.jpg, https://x/panel-blue.jpg",
        )
        matcher = OptionImageMatcher(parent)
        assert matcher.image_for(1, "Blue") == "https://x/panel-blue.jpg"
        assert matcher.image_for(1, "Red") is None
