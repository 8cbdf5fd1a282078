import pytest

from reprice.client.variants import (
    build_variant_options,
    default_selection,
    format_variant,
    make_option,
    parse_variant,
    strip_brand_prefix,
)
from tests.factories import make_listing


class TestFormatVariant:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("8 GB / 128GB", "8/128"),
            ("6/128", "6/128"),
            ("6gb/256gb", "6/256"),
            ("128GB", "128GB"),
            ("Midnight Blue", "Midnight Blue"),
            ("N/A", None),
            ("   ", None),
            (None, None),
        ],
    )
    def test_format(self, raw, expected):
        assert format_variant(raw) == expected


class TestParseVariant:
    def test_ram_and_storage(self):
        assert parse_variant("8/128") == (8, 128)

    def test_storage_only(self):
        assert parse_variant("256 GB") == (None, 256)

    def test_unparseable(self):
        assert parse_variant("Midnight Blue") == (None, None)
        assert parse_variant(None) == (None, None)


class TestLabels:
    def test_label_forms(self):
        assert make_option("8/128", 1).label == "8GB RAM / 128GB"
        assert make_option("256GB", 1).label == "256GB"
        assert make_option("Midnight Blue", 1).label == "Midnight Blue"

    def test_strip_brand_prefix(self):
        assert strip_brand_prefix("Apple iPhone 13", "Apple") == "iPhone 13"
        assert strip_brand_prefix("iPhone 13", "Apple") == "iPhone 13"


class TestBuildVariantOptions:
    def test_filters_dedupes_and_sorts(self):
        listings = [
            make_listing(variant="6/256", price=46000),
            make_listing(variant="6/128", price=42000),
            make_listing(variant="6 GB / 128 GB", price=43000),
            make_listing(model="iPhone 13", variant="4/128", price=31000),
            make_listing(brand="Samsung", model="iPhone 13 Pro", variant="8/512", price=1),
            make_listing(variant="6/512", price=0),
        ]

        options = build_variant_options(listings, "Apple", "Apple iPhone 13 Pro")

        assert [(o.key, o.price) for o in options] == [("6/128", 43000), ("6/256", 46000)]

    def test_current_variant_always_offered(self):
        options = build_variant_options(
            [make_listing(variant="6/256", price=46000)],
            "Apple", "iPhone 13 Pro", current_variant="6/1024", current_price=70000,
        )
        assert [o.key for o in options] == ["6/256", "6/1024"]
        assert options[1].price == 70000

    def test_current_variant_not_duplicated(self):
        options = build_variant_options(
            [make_listing(variant="6/128", price=42000)],
            "Apple", "iPhone 13 Pro", current_variant="6 GB/128 GB", current_price=1,
        )
        assert len(options) == 1
        assert options[0].price == 42000


class TestDefaultSelection:
    def test_prefers_current_variant(self):
        options = [make_option("6/128", 1), make_option("6/256", 2)]
        assert default_selection(options, "6/256") == "6/256"

    def test_single_option_is_preselected(self):
        assert default_selection([make_option("6/128", 1)]) == "6/128"

    def test_ambiguous_requires_choice(self):
        options = [make_option("6/128", 1), make_option("6/256", 2)]
        assert default_selection(options) is None
