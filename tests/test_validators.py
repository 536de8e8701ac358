# tests/test_validators.py
import pytest

from order_backoffice.modules.orders.entities import ShippingMode, Stage, TransportMode
from order_backoffice.modules.orders.errors import ValidationError
from order_backoffice.modules.orders.validators import (
    OrderFormValues,
    parse_item_field,
    parse_order_field,
    parse_profit_percent,
    parse_quantity,
    parse_transport_cost,
    validate_order_form,
)


def _form(**kw):
    values = dict(
        customer_name="Marko Markovic",
        phone="0601234567",
        address="Bulevar 1, Novi Sad",
        transport_cost="350",
        transport_mode="Kol",
        note="Pozvati pre slanja",
    )
    values.update(kw)
    return OrderFormValues(**values)


@pytest.mark.parametrize("raw,expected", [("3", 3), (" 12 ", 12), (2, 2)])
def test_quantity_ok(raw, expected):
    assert parse_quantity(raw) == expected


@pytest.mark.parametrize("raw", ["0", "-2", "1.5", "x", "", None])
def test_quantity_rejected(raw):
    with pytest.raises(ValidationError):
        parse_quantity(raw)


def test_transport_blank_clears_unless_required():
    assert parse_transport_cost("") is None
    with pytest.raises(ValidationError):
        parse_transport_cost("", required=True)
    assert parse_transport_cost("12,5") == 12.5
    with pytest.raises(ValidationError):
        parse_transport_cost("-1")


def test_percent_parsing():
    assert parse_profit_percent("") is None
    assert parse_profit_percent("33,3") == pytest.approx(33.3)
    with pytest.raises(ValidationError):
        parse_profit_percent("101")
    with pytest.raises(ValidationError):
        parse_profit_percent("pola")


def test_order_field_edits():
    assert parse_order_field("customer_name", "  Ana  ") == {"customer_name": "Ana"}
    assert parse_order_field("note", "  ") == {"note": None}
    assert parse_order_field("transport_mode", "joe") == {"transport_mode": TransportMode.JOE}
    with pytest.raises(ValidationError) as exc:
        parse_order_field("phone", "1")
    assert exc.value.field == "phone"
    with pytest.raises(ValidationError):
        parse_order_field("stage", "stiglo")


def test_invalid_number_is_not_coerced_to_zero():
    with pytest.raises(ValidationError):
        parse_item_field("purchase_price", "abc")


def test_sale_price_edit_marks_manual():
    assert parse_item_field("sale_price", "15,50") == {"sale_price": 15.5, "manual_sale_price": True}
    assert parse_item_field("purchase_price", "3") == {"purchase_price": 3.0}


def test_valid_form_defaults():
    clean = validate_order_form(_form(my_profit_percent=""))
    assert clean.my_profit_percent == 100.0
    assert clean.transport_cost == 350.0
    assert clean.transport_mode is TransportMode.KOL
    assert clean.stage is Stage.PORUCENO
    assert clean.shipping_mode is None


@pytest.mark.parametrize("changes,field", [
    ({"customer_name": "Al"}, "customer_name"),
    ({"phone": "061"}, "phone"),
    ({"address": "Ul."}, "address"),
    ({"transport_cost": ""}, "transport_cost"),
    ({"transport_mode": ""}, "transport_mode"),
    ({"note": "  "}, "note"),
    ({"my_profit_percent": "150"}, "my_profit_percent"),
    ({"shipping_mode": "Aks"}, "shipping_owner"),
    ({"shipping_owner": "Pera"}, "shipping_mode"),
    ({"shipping_mode": "Fedex", "shipping_owner": "Pera"}, "shipping_mode"),
    ({"shipping_mode": "Bex", "shipping_owner": "Ra", "shipping_owner_starting_amount": "-5"},
     "shipping_owner_starting_amount"),
])
def test_form_errors(changes, field):
    with pytest.raises(ValidationError) as exc:
        validate_order_form(_form(**changes))
    assert exc.value.field == field


def test_pickup_form():
    clean = validate_order_form(_form(pickup=True, address="", transport_mode="Joe",
                                      shipping_mode="Aks", shipping_owner="Pera"))
    assert clean.pickup
    assert clean.shipping_mode is None and clean.shipping_owner is None

    with pytest.raises(ValidationError) as exc:
        validate_order_form(_form(pickup=True, transport_mode="Smg"))
    assert exc.value.field == "transport_mode"


def test_shipping_pair():
    clean = validate_order_form(_form(shipping_mode="bex", shipping_owner=" Firma doo ",
                                      shipping_owner_starting_amount="1000,5"))
    assert clean.shipping_mode is ShippingMode.BEX
    assert clean.shipping_owner == "Firma doo"
    assert clean.shipping_owner_starting_amount == 1000.5
