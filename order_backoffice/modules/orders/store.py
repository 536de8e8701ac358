"""
The two collaborators the order core talks to. OrdersRepo and CatalogRepo
satisfy them; tests substitute in-memory fakes.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from ...database.repositories.catalog_repo import Product
    from ...database.repositories.orders_repo import OrderListQuery, OrderPage, ShippingOwners
    from .entities import Order, SessionContext


class OrderStore(Protocol):
    def get(self, ctx: "SessionContext", order_id: str) -> Optional["Order"]: ...

    def list_orders(self, ctx: "SessionContext", query: "OrderListQuery | None" = None) -> "OrderPage": ...

    def create(self, ctx: "SessionContext", order: "Order") -> "Order": ...

    def update(self, ctx: "SessionContext", order: "Order") -> None: ...

    def delete(self, ctx: "SessionContext", order_id: str) -> None: ...

    def reorder(self, ctx: "SessionContext", order_ids: list[str], base: int) -> None: ...

    def shipping_owners(self, ctx: "SessionContext") -> "ShippingOwners": ...

    def has_shipping_account(self, ctx: "SessionContext", value: str) -> bool: ...

    def upsert_shipping_account(self, ctx: "SessionContext", value: str, starting_amount: float) -> None: ...


class CatalogSource(Protocol):
    def get_product(self, product_id: str) -> Optional["Product"]: ...

    def supplier_names(self) -> dict[str, str]: ...
