# tests/test_pricing.py
import pytest

from order_backoffice.database.repositories.catalog_repo import Product, ProductVariant, SupplierOffer
from order_backoffice.modules.orders.errors import InvalidManualPrice
from order_backoffice.modules.orders.pricing import (
    build_line_item,
    parse_manual_price,
    pick_best_supplier,
    resolve_price,
    resolve_variant,
    supplier_options,
)


def _plain_product(offers=(), **kw):
    return Product(
        product_id=kw.pop("product_id", "P"),
        name=kw.pop("name", "Kabl"),
        purchase_price=kw.pop("purchase_price", 12.0),
        sale_price=kw.pop("sale_price", 30.0),
        supplier_offers=tuple(offers),
        **kw,
    )


def test_cheapest_supplier_wins_without_explicit_choice():
    product = _plain_product([SupplierOffer("A", 10.0), SupplierOffer("B", 8.0)])
    price = resolve_price(product)
    assert price.purchase == 8.0
    assert price.sale == 30.0
    # two candidates and none chosen: nothing is recorded
    assert price.supplier_id is None


def test_explicit_supplier_price_is_used():
    product = _plain_product([SupplierOffer("A", 10.0), SupplierOffer("B", 8.0)])
    price = resolve_price(product, supplier_id="A")
    assert price.purchase == 10.0
    assert price.supplier_id == "A"


def test_unknown_explicit_supplier_falls_back_to_cheapest():
    product = _plain_product([SupplierOffer("A", 10.0), SupplierOffer("B", 8.0)])
    assert resolve_price(product, supplier_id="Z").purchase == 8.0


def test_single_offer_records_its_supplier():
    product = _plain_product([SupplierOffer("A", 35.0)])
    price = resolve_price(product)
    assert price.purchase == 35.0
    assert price.supplier_id == "A"


def test_ties_keep_first_seen_offer():
    options = supplier_options(_plain_product([SupplierOffer("A", 5.0), SupplierOffer("B", 5.0)]))
    assert pick_best_supplier(options).supplier_id == "A"


def test_duplicate_supplier_offers_collapse_to_first():
    product = _plain_product([SupplierOffer("A", 9.0), SupplierOffer("A", 1.0), SupplierOffer("B", 7.0)])
    options = supplier_options(product, supplier_names={"A": "Alfa"})
    assert [(o.supplier_id, o.price) for o in options] == [("A", 9.0), ("B", 7.0)]
    assert options[0].supplier_name == "Alfa"


def test_no_offers_falls_back_to_product_purchase_price():
    assert resolve_price(_plain_product()).purchase == 12.0


def test_manual_override_with_comma_decimal():
    product = _plain_product([SupplierOffer("A", 10.0)])
    price = resolve_price(product, manual_sale_price="15,50")
    assert price.sale == 15.5
    assert price.manual is True


@pytest.mark.parametrize("raw", ["", "   ", "abc", "-1", "nan", "inf"])
def test_invalid_manual_override_is_rejected(raw):
    with pytest.raises(InvalidManualPrice):
        parse_manual_price(raw)


def test_manual_zero_is_allowed():
    assert parse_manual_price("0") == 0.0


def test_variant_resolution_order(catalog):
    lamp = catalog.get_product("P1")
    assert resolve_variant(lamp, "v-black").id == "v-black"
    assert resolve_variant(lamp, "missing").id == "v-white"   # default
    assert resolve_variant(lamp).id == "v-white"
    assert resolve_variant(catalog.get_product("P2")) is None


def test_variant_offers_and_prices(catalog):
    lamp = catalog.get_product("P1")
    white = resolve_price(lamp, "v-white")
    black = resolve_price(lamp, "v-black")
    assert (white.purchase, white.sale, white.supplier_id) == (950.0, 2500.0, "S1")
    assert (black.purchase, black.sale, black.supplier_id) == (1050.0, 2700.0, "S2")


def test_variant_without_offers_uses_variant_purchase_price():
    product = _plain_product(
        variants=(ProductVariant("v1", "mala", 3.0, 7.0, is_default=True),),
    )
    price = resolve_price(product, "v1")
    assert (price.purchase, price.sale) == (3.0, 7.0)


def test_build_line_item_snapshots_title(catalog):
    item = build_line_item(catalog.get_product("P1"), variant_id="v-black", quantity=2)
    assert item.title == "Stona lampa - crna"
    assert item.variant_label == "Stona lampa - crna"
    assert item.variant_id == "v-black"
    assert item.quantity == 2
    assert item.sale_total == 5400.0
    assert item.manual_sale_price is False


def test_build_line_item_without_variant(catalog):
    item = build_line_item(catalog.get_product("P3"), manual_sale_price="100")
    assert item.title == "Stalak"
    assert item.variant_id is None
    assert item.supplier_id == "S1"
    assert item.sale_price == 100.0
    assert item.manual_sale_price is True
