"""
modules/orders/validators.py

Edit-boundary parsing: raw operator input -> typed values, or ValidationError.
Numbers accept comma or dot as the decimal separator. Nothing is coerced to 0.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ...constants import DEFAULT_PROFIT_PERCENT
from ...utils.validators import min_length, non_empty, try_parse_float, try_parse_int
from .entities import (
    PICKUP_TRANSPORT_MODES,
    ShippingMode,
    Stage,
    TransportMode,
)
from .errors import ValidationError


def parse_quantity(raw) -> int:
    ok, qty = try_parse_int(raw)
    if not ok or qty is None or qty < 1:
        raise ValidationError("Quantity must be 1 or more.", field="quantity")
    return qty


def parse_price(raw, field: str = "price") -> float:
    ok, value = try_parse_float(raw)
    if not ok or value is None or value < 0:
        raise ValidationError("Price must be 0 or more.", field=field)
    return value


def parse_transport_cost(raw, *, required: bool = False) -> Optional[float]:
    if raw is None or str(raw).strip() == "":
        if required:
            raise ValidationError("Transport cost is required (0 or more).", field="transport_cost")
        return None
    ok, value = try_parse_float(raw)
    if not ok or value is None or value < 0:
        raise ValidationError("Transport cost must be 0 or more.", field="transport_cost")
    return value


def parse_profit_percent(raw) -> Optional[float]:
    """Blank -> None (derivations then use the default); otherwise 0..100."""
    if raw is None or str(raw).strip() == "":
        return None
    ok, value = try_parse_float(raw)
    if not ok or value is None or not (0 <= value <= 100):
        raise ValidationError("Profit percent must be between 0 and 100.", field="my_profit_percent")
    return value


def parse_text(raw, field: str, *, min_len: int = 2, label: str | None = None) -> str:
    text = ("" if raw is None else str(raw)).strip()
    if not min_length(text, min_len):
        raise ValidationError(f"{label or 'This field'} must have at least {min_len} characters.", field=field)
    return text


def parse_optional_text(raw) -> Optional[str]:
    text = ("" if raw is None else str(raw)).strip()
    return text or None


# ---------------------------------------------------------------------------
# Quick edits on an existing order
# ---------------------------------------------------------------------------

def parse_order_field(field: str, raw) -> dict[str, Any]:
    """Return the `with_fields` changes for one order-level quick edit."""
    if field == "customer_name":
        return {"customer_name": parse_text(raw, field, label="Customer name")}
    if field == "phone":
        return {"phone": parse_text(raw, field, label="Phone")}
    if field == "address":
        return {"address": parse_text(raw, field, label="Address")}
    if field == "transport_cost":
        return {"transport_cost": parse_transport_cost(raw)}
    if field == "transport_mode":
        return {"transport_mode": TransportMode.parse(raw)}
    if field == "my_profit_percent":
        return {"my_profit_percent": parse_profit_percent(raw)}
    if field == "note":
        return {"note": parse_optional_text(raw)}
    raise ValidationError(f"Unknown order field: {field}", field=field)


def parse_item_field(field: str, raw) -> dict[str, Any]:
    """Return the `with_fields` changes for one line item quick edit."""
    if field == "quantity":
        return {"quantity": parse_quantity(raw)}
    if field in ("purchase_price", "sale_price"):
        changes: dict[str, Any] = {field: parse_price(raw, field)}
        if field == "sale_price":
            changes["manual_sale_price"] = True
        return changes
    if field == "title":
        return {"title": parse_text(raw, field, label="Title")}
    if field == "variant_label":
        return {"variant_label": parse_optional_text(raw)}
    raise ValidationError(f"Unknown item field: {field}", field=field)


def parse_shipping(pickup: bool, mode_raw, owner_raw) -> tuple[Optional[ShippingMode], Optional[str]]:
    """
    Shipping mode and owner travel together: one without the other is an
    error. Pickup orders carry neither.
    """
    if pickup:
        return None, None
    mode = ShippingMode.parse(mode_raw)
    if mode_raw not in (None, "") and mode is None:
        raise ValidationError("Unknown shipping mode.", field="shipping_mode")
    owner = parse_optional_text(owner_raw)
    if mode is not None and owner is None:
        raise ValidationError("Choose whose account the money goes to.", field="shipping_owner")
    if owner is not None and mode is None:
        raise ValidationError("Choose a shipping mode.", field="shipping_mode")
    if owner is not None and len(owner) < 2:
        if mode is ShippingMode.POSTA:
            raise ValidationError("Enter the recipient name.", field="shipping_owner")
        raise ValidationError("Enter the account the money goes to.", field="shipping_owner")
    return mode, owner


# ---------------------------------------------------------------------------
# Full order form (create / edit all)
# ---------------------------------------------------------------------------

@dataclass
class OrderFormValues:
    """Raw form input, as typed."""
    customer_name: str = ""
    phone: str = ""
    address: str = ""
    pickup: bool = False
    transport_cost: str | float | None = None
    transport_mode: str | None = None
    shipping_mode: str | None = None
    shipping_owner: str | None = None
    shipping_owner_starting_amount: str | float | None = None
    my_profit_percent: str | float | None = DEFAULT_PROFIT_PERCENT
    stage: str | Stage = Stage.PORUCENO
    note: str = ""
    send_email: bool = True


@dataclass(frozen=True)
class CleanOrderForm:
    customer_name: str
    phone: str
    address: str
    pickup: bool
    transport_cost: float
    transport_mode: TransportMode
    shipping_mode: Optional[ShippingMode]
    shipping_owner: Optional[str]
    shipping_owner_starting_amount: Optional[float]
    my_profit_percent: float
    stage: Stage
    note: str
    send_email: bool


def validate_order_form(values: OrderFormValues) -> CleanOrderForm:
    """Validate the whole order form; raises the first ValidationError found."""
    name = parse_text(values.customer_name, "customer_name", min_len=3, label="Customer name")
    pickup = bool(values.pickup)
    address = (values.address or "").strip()
    if not pickup and len(address) < 5:
        raise ValidationError("Address is required.", field="address")
    phone = parse_text(values.phone, "phone", min_len=5, label="Phone")

    transport_cost = parse_transport_cost(values.transport_cost, required=True)
    mode = TransportMode.parse(values.transport_mode)
    if mode is None:
        raise ValidationError("Choose a transport mode.", field="transport_mode")
    if pickup and mode not in PICKUP_TRANSPORT_MODES:
        raise ValidationError("For pickup choose Kol or Joe.", field="transport_mode")

    shipping_mode, owner = parse_shipping(pickup, values.shipping_mode, values.shipping_owner)

    starting = values.shipping_owner_starting_amount
    starting_amount = None
    if starting not in (None, ""):
        ok, starting_amount = try_parse_float(starting)
        if not ok or starting_amount is None or starting_amount < 0:
            raise ValidationError("Starting amount must be 0 or more.", field="shipping_owner_starting_amount")

    percent = parse_profit_percent(values.my_profit_percent)
    note = (values.note or "").strip()
    if not non_empty(note):
        raise ValidationError("Note is required.", field="note")

    try:
        stage = Stage.parse(values.stage)
    except ValidationError:
        stage = Stage.PORUCENO

    return CleanOrderForm(
        customer_name=name,
        phone=phone,
        address=address,
        pickup=pickup,
        transport_cost=transport_cost if transport_cost is not None else 0.0,
        transport_mode=mode,
        shipping_mode=shipping_mode,
        shipping_owner=owner,
        shipping_owner_starting_amount=starting_amount,
        my_profit_percent=percent if percent is not None else DEFAULT_PROFIT_PERCENT,
        stage=stage,
        note=note,
        send_email=bool(values.send_email),
    )

