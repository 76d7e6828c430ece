"""Tests for RecordNormalizer."""

import pytest

from quotemaker_firestoredb.utils.record_normalizer import FIELD_ALIASES, RecordNormalizer, fold_key, normalize


class TestProductNormalization:
    """Product rows from spreadsheets and Firestore."""

    def test_aliases_resolve_to_canonical_fields(self):
        record = normalize(
            "product",
            {"Price List Name": "Retail", "ProductCategory": "Yarn", "Price": "12.5", "Can Be Sold In KG": "yes"},
        )

        assert record["PriceListName"] == "Retail"
        assert record["Category"] == "Yarn"
        assert record["Rate"] == 12.5
        assert record["BundledSalesKG"] is True

    def test_missing_fields_get_sentinels(self):
        record = normalize("product", {"Product": "Yarn"})

        assert record["Length"] == 0.0
        assert record["Brand"] == ""
        assert record["Currency"] == "USD"
        assert record["BundledSalesKG"] is False

    def test_first_non_empty_alias_wins(self):
        record = normalize("product", {"PriceListName": "  ", "PriceList": "Wholesale", "Price List Name": "Retail"})

        assert record["PriceListName"] == "Wholesale"

    def test_unparseable_number_falls_through(self):
        assert normalize("product", {"Rate": "n/a", "Price": "3"})["Rate"] == 3.0
        assert normalize("product", {"Rate": "n/a"})["Rate"] == 0.0

    def test_thousands_separator_is_accepted(self):
        assert normalize("product", {"Rate": "1,250.50"})["Rate"] == 1250.5

    @pytest.mark.parametrize("raw,expected", [("true", True), ("Y", True), ("1", True), ("no", False), ("", False)])
    def test_boolean_strings(self, raw, expected):
        assert normalize("product", {"BundledSalesKG": raw})["BundledSalesKG"] is expected

    def test_unknown_fields_are_dropped(self):
        record = normalize("product", {"Product": "Yarn", "internalNote": "x"})

        assert set(record) == set(FIELD_ALIASES["product"])

    def test_header_spacing_and_case_are_ignored(self):
        assert fold_key("Price List Name") == fold_key("price_list_name") == "pricelistname"
        assert normalize("product", {"price_list_name": "Retail"})["PriceListName"] == "Retail"


class TestOtherKinds:
    def test_client_aliases(self):
        record = normalize("client", {"Client Name": "Jane", "company": "Acme", "E-mail": "jane@acme.test"})

        assert record["clientName"] == "Jane"
        assert record["companyName"] == "Acme"
        assert record["email"] == "jane@acme.test"

    def test_quote_items_become_a_tuple(self):
        record = normalize("quote", {"quoteId": "q1", "lineItems": [{"sku": "a"}], "grandTotal": "10"})

        assert record["id"] == "q1"
        assert record["items"] == ({"sku": "a"},)
        assert record["total"] == 10.0

    def test_nested_value_is_not_used_for_text_field(self):
        assert normalize("color", {"colorname": {"en": "red"}, "name": "Red"})["colorname"] == "Red"

    def test_unknown_kind_raises(self):
        with pytest.raises(ValueError):
            normalize("invoice", {"id": "x"})

    def test_none_input_gives_all_sentinels(self):
        record = normalize("style", None)

        assert record == {"id": "", "stylename": "", "description": ""}

    def test_partial_row_keeps_only_supplied_fields(self):
        record = normalize("client", {"id": "c1", "E-mail": "jane@acme.test", "phone": "  ", "junk": 1}, fill_missing=False)

        assert record == {"id": "c1", "email": "jane@acme.test"}


class TestIdempotence:
    @pytest.mark.parametrize(
        "kind,raw",
        [
            ("product", {"Product Name": "Yarn", "Price": "2", "CanBeSoldInKG": "y", "Size": "30"}),
            ("client", {"name": "Jane", "mobile": 555}),
            ("order", {"orderId": "o1", "lineItems": [1, 2], "customerName": "Jane"}),
        ],
    )
    def test_normalizing_twice_changes_nothing(self, kind, raw):
        once = RecordNormalizer.normalize(kind, raw)

        assert RecordNormalizer.normalize(kind, once) == once

    def test_normalize_many(self):
        records = RecordNormalizer.normalize_many("salesperson", [{"Sales Person": "Ann"}, {"salesman": "Bob"}])

        assert [record["name"] for record in records] == ["Ann", "Bob"]
