"""
modules/orders/entities.py

Order and line item value objects plus the closed enumerations they use.

Orders are immutable; every change goes through a `with_*` constructor so the
invariants below are re-checked at each construction point:
  - at least one line item
  - quantity >= 1, all money >= 0
  - profit percent in [0, 100] (or unset)
  - a shipment number whenever stage == poslato
"""
from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Optional

from .errors import EmptyOrderError, TransitionBlocked, ValidationError


class Stage(str, Enum):
    PORUCENO = "poruceno"
    NA_STANJU = "na_stanju"
    POSLATO = "poslato"
    STIGLO = "stiglo"
    LEGLE_PARE = "legle_pare"
    VRACENO = "vraceno"

    @classmethod
    def parse(cls, value: "Stage | str | None") -> "Stage":
        if isinstance(value, Stage):
            return value
        s = str(value or "").strip().lower()
        try:
            return cls(s)
        except ValueError:
            raise ValidationError(f"Unknown stage: {value!r}", field="stage") from None


class TransportMode(str, Enum):
    KOL = "Kol"
    JOE = "Joe"
    SMG = "Smg"

    @classmethod
    def parse(cls, value: "TransportMode | str | None") -> Optional["TransportMode"]:
        """Case-insensitive; blank or unknown values mean "no mode"."""
        if isinstance(value, TransportMode):
            return value
        s = str(value or "").strip().lower()
        for mode in cls:
            if mode.value.lower() == s:
                return mode
        return None


PICKUP_TRANSPORT_MODES = (TransportMode.KOL, TransportMode.JOE)


class ShippingMode(str, Enum):
    POSTA = "Posta"
    AKS = "Aks"
    BEX = "Bex"

    @classmethod
    def parse(cls, value: "ShippingMode | str | None") -> Optional["ShippingMode"]:
        if isinstance(value, ShippingMode):
            return value
        s = str(value or "").strip().lower()
        for mode in cls:
            if mode.value.lower() == s:
                return mode
        return None

    @property
    def uses_account(self) -> bool:
        """Aks/Bex pay out to a registered account; Posta pays to a person's name."""
        return self in (ShippingMode.AKS, ShippingMode.BEX)


class OrderScope(str, Enum):
    DEFAULT = "default"
    KALABA = "kalaba"


@dataclass(frozen=True)
class SessionContext:
    """Auth token + order collection, threaded through every store call."""
    token: str
    scope: OrderScope = OrderScope.DEFAULT

    def __post_init__(self):
        object.__setattr__(self, "scope", OrderScope(self.scope))


def new_item_id() -> str:
    return uuid.uuid4().hex[:12]


def _check_money(value: float | None, label: str, field_name: str) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
        raise ValidationError(f"{label} must be 0 or more.", field=field_name)


@dataclass(frozen=True)
class OrderItem:
    product_id: str | None
    title: str
    quantity: int
    purchase_price: float
    sale_price: float
    variant_id: str | None = None
    variant_label: str | None = None
    supplier_id: str | None = None
    manual_sale_price: bool = False
    id: str = field(default_factory=new_item_id)

    def __post_init__(self):
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise ValidationError("Quantity must be 1 or more.", field="quantity")
        _check_money(self.purchase_price, "Purchase price", "purchase_price")
        _check_money(self.sale_price, "Sale price", "sale_price")
        if not (self.title or "").strip():
            raise ValidationError("Item title is required.", field="title")

    @property
    def sale_total(self) -> float:
        return self.sale_price * self.quantity

    @property
    def purchase_total(self) -> float:
        return self.purchase_price * self.quantity

    def with_fields(self, **changes: Any) -> "OrderItem":
        return replace(self, **changes)

    def to_payload(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "variantId": self.variant_id,
            "variantLabel": self.variant_label,
            "supplierId": self.supplier_id,
            "title": self.title,
            "kolicina": self.quantity,
            "nabavnaCena": self.purchase_price,
            "prodajnaCena": self.sale_price,
            "manualProdajna": self.manual_sale_price,
        }


@dataclass(frozen=True)
class Order:
    stage: Stage
    items: tuple[OrderItem, ...]
    customer_name: str
    phone: str
    address: str = ""
    pickup: bool = False
    transport_cost: float | None = None
    transport_mode: TransportMode | None = None
    shipping_mode: ShippingMode | None = None
    shipping_owner: str | None = None
    shipment_number: str | None = None
    my_profit_percent: float | None = None
    return_settled: bool = False
    note: str | None = None
    id: str | None = None
    created_at: int = 0
    sort_index: int | None = None

    def __post_init__(self):
        object.__setattr__(self, "stage", Stage.parse(self.stage))
        object.__setattr__(self, "items", tuple(self.items))
        if self.transport_mode is not None and not isinstance(self.transport_mode, TransportMode):
            object.__setattr__(self, "transport_mode", TransportMode.parse(self.transport_mode))
        if self.shipping_mode is not None and not isinstance(self.shipping_mode, ShippingMode):
            object.__setattr__(self, "shipping_mode", ShippingMode.parse(self.shipping_mode))

        if not self.items:
            raise EmptyOrderError()
        _check_money(self.transport_cost, "Transport cost", "transport_cost")
        p = self.my_profit_percent
        if p is not None and (isinstance(p, bool) or not isinstance(p, (int, float)) or not (0 <= p <= 100)):
            raise ValidationError("Profit percent must be between 0 and 100.", field="my_profit_percent")
        if self.stage is Stage.POSLATO and not (self.shipment_number or "").strip():
            raise TransitionBlocked("A shipment number is required for a shipped order.")

    # ---- derived ----------------------------------------------------------

    @property
    def title(self) -> str:
        return self.items[0].title

    @property
    def effective_sort_key(self) -> int:
        return self.sort_index if self.sort_index is not None else self.created_at

    def item(self, item_id: str) -> OrderItem:
        for it in self.items:
            if it.id == item_id:
                return it
        raise ValidationError(f"Item {item_id!r} is not part of this order.", field="items")

    # ---- "with" constructors ---------------------------------------------

    def with_fields(self, **changes: Any) -> "Order":
        return replace(self, **changes)

    def with_stage(self, stage: Stage, shipment_number: str | None) -> "Order":
        return replace(self, stage=stage, shipment_number=shipment_number)

    def with_items(self, items: Iterable[OrderItem]) -> "Order":
        return replace(self, items=tuple(items))

    def with_item_added(self, item: OrderItem) -> "Order":
        return self.with_items(self.items + (item,))

    def with_item_removed(self, item_id: str) -> "Order":
        self.item(item_id)
        return self.with_items(it for it in self.items if it.id != item_id)

    def with_item_updated(self, item_id: str, **changes: Any) -> "Order":
        self.item(item_id)
        return self.with_items(
            it.with_fields(**changes) if it.id == item_id else it for it in self.items
        )

    def with_pickup(self, pickup: bool) -> "Order":
        if pickup:
            return replace(self, pickup=True, transport_cost=0.0, transport_mode=None)
        return replace(self, pickup=False)

    def with_sort_index(self, sort_index: int | None) -> "Order":
        return replace(self, sort_index=sort_index)

    # ---- wire payload (full replace) --------------------------------------

    def to_payload(self) -> dict:
        return {
            "id": self.id,
            "stage": self.stage.value,
            "title": self.title,
            "customerName": self.customer_name,
            "phone": self.phone,
            "address": self.address,
            "pickup": self.pickup,
            "transportCost": self.transport_cost,
            "transportMode": self.transport_mode.value if self.transport_mode else None,
            "slanjeMode": self.shipping_mode.value if self.shipping_mode else None,
            "slanjeOwner": self.shipping_owner,
            "brojPosiljke": self.shipment_number,
            "myProfitPercent": self.my_profit_percent,
            "povratVracen": self.return_settled,
            "napomena": self.note,
            "kreiranoAt": self.created_at,
            "sortIndex": self.sort_index,
            "items": [it.to_payload() for it in self.items],
        }
