# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures)
# - Every test gets a fresh in-memory SQLite DB with the schema applied
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON
# - Remote failures are simulated with FakeOrderStore.fail_with
# ---------------------------------------------------------------------

from __future__ import annotations

import math
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from order_backoffice.database import get_connection
from order_backoffice.database.repositories import (
    CatalogRepo,
    OrderPage,
    OrdersRepo,
    Pagination,
    Product,
    ProductVariant,
    ShippingAccount,
    ShippingOwners,
    Supplier,
    SupplierOffer,
)
from order_backoffice.modules.orders.calculations import list_totals
from order_backoffice.modules.orders.entities import Order, OrderItem, SessionContext, Stage
from order_backoffice.modules.orders.errors import NotificationFailure


# ---------- Qt: let pytest-qt own the app ----------
@pytest.fixture(autouse=True)
def _qt_app(qapp):
    return qapp


# ---------- Database ----------
@pytest.fixture()
def conn():
    con = get_connection(":memory:")
    try:
        yield con
    finally:
        con.close()


@pytest.fixture()
def ctx() -> SessionContext:
    return SessionContext(token="test-token")


@pytest.fixture()
def orders_repo(conn) -> OrdersRepo:
    return OrdersRepo(conn)


@pytest.fixture()
def catalog(conn) -> CatalogRepo:
    """
    Seeded catalog:
      P1 "Lampa" (kp "Stona lampa"): variants bela (default) / crna, offers per variant
      P2 "Kabl": no variants, offers from S1 (10) and S2 (8)
      P3 "Stalak": no variants, single offer from S1
    """
    repo = CatalogRepo(conn)
    repo.add_supplier(Supplier("S1", "Alfa"))
    repo.add_supplier(Supplier("S2", "Beta"))
    repo.add_product(Product(
        product_id="P1",
        name="Lampa",
        kp_name="Stona lampa",
        purchase_price=900.0,
        sale_price=2000.0,
        variants=(
            ProductVariant("v-white", "bela", 1000.0, 2500.0, is_default=True),
            ProductVariant("v-black", "crna", 1100.0, 2700.0),
        ),
        supplier_offers=(
            SupplierOffer("S1", 950.0, "v-white"),
            SupplierOffer("S2", 1050.0, "v-black"),
        ),
    ), created_at=1)
    repo.add_product(Product(
        product_id="P2",
        name="Kabl",
        purchase_price=12.0,
        sale_price=30.0,
        supplier_offers=(SupplierOffer("S1", 10.0), SupplierOffer("S2", 8.0)),
    ), created_at=2)
    repo.add_product(Product(
        product_id="P3",
        name="Stalak",
        purchase_price=40.0,
        sale_price=90.0,
        supplier_offers=(SupplierOffer("S1", 35.0),),
    ), created_at=3)
    return repo


# ---------- Order factories ----------
@pytest.fixture()
def make_item():
    def _make(title="Kabl", quantity=1, purchase_price=10.0, sale_price=30.0, **kw) -> OrderItem:
        return OrderItem(
            product_id=kw.pop("product_id", "P2"),
            title=title,
            quantity=quantity,
            purchase_price=purchase_price,
            sale_price=sale_price,
            **kw,
        )
    return _make


@pytest.fixture()
def make_order(make_item):
    counter = {"n": 0}

    def _make(items=None, **kw) -> Order:
        counter["n"] += 1
        defaults = dict(
            stage=Stage.PORUCENO,
            customer_name="Marko Markovic",
            phone="0601234567",
            address="Bulevar 1, Novi Sad",
            transport_cost=5.0,
            id=f"o{counter['n']}",
            created_at=1_000 * counter["n"],
        )
        defaults.update(kw)
        return Order(items=items if items is not None else (make_item(),), **defaults)
    return _make


# ---------- Fakes ----------
class FakeOrderStore:
    """In-memory OrderStore; set `fail_with` to make every write raise it."""

    def __init__(self, orders=()):
        self.orders: dict[str, Order] = {o.id: o for o in orders}
        self.accounts: dict[str, ShippingAccount] = {}
        self.calls: list[str] = []
        self.reorders: list[tuple[list[str], int]] = []
        self.fail_with: Exception | None = None
        self._seq = 0

    def _write(self, op: str) -> None:
        self.calls.append(op)
        if self.fail_with is not None:
            raise self.fail_with

    def get(self, ctx, order_id):
        return self.orders.get(order_id)

    def list_orders(self, ctx, query=None):
        self.calls.append("list")
        if self.fail_with is not None:
            raise self.fail_with
        rows = sorted(self.orders.values(), key=lambda o: (o.effective_sort_key, o.created_at), reverse=True)
        if query is not None and query.stages:
            rows = [o for o in rows if o.stage in query.stages]
        page = query.page if query else 1
        size = query.page_size if query else 20
        total_pages = max(1, math.ceil(len(rows) / size))
        sums = list_totals(rows)
        return OrderPage(
            items=rows[(page - 1) * size: page * size],
            pagination=Pagination(page=page, page_size=size, total=len(rows), total_pages=total_pages),
            totals={
                "nabavno": sums.total_purchase,
                "transport": sums.transport,
                "prodajno": sums.total_sale,
                "profit": sums.profit,
                "povrat": sums.return_amount,
            },
        )

    def create(self, ctx, order):
        self._write("create")
        self._seq += 1
        stored = order.with_fields(id=f"new{self._seq}", created_at=order.created_at or 50_000 + self._seq)
        self.orders[stored.id] = stored
        return stored

    def update(self, ctx, order):
        self._write("update")
        self.orders[order.id] = order

    def delete(self, ctx, order_id):
        self._write("delete")
        self.orders.pop(order_id, None)

    def reorder(self, ctx, order_ids, base):
        self._write("reorder")
        self.reorders.append((list(order_ids), base))
        for i, oid in enumerate(order_ids):
            self.orders[oid] = self.orders[oid].with_sort_index(base - i)

    def shipping_owners(self, ctx):
        return ShippingOwners(posta=[], accounts=list(self.accounts.values()))

    def has_shipping_account(self, ctx, value):
        return (value or "").strip().lower() in self.accounts

    def upsert_shipping_account(self, ctx, value, starting_amount):
        self._write("upsert_account")
        self.accounts[value.strip().lower()] = ShippingAccount(value=value.strip(), starting_amount=starting_amount)


class FakeNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    def send(self, payload):
        if self.fail:
            raise NotificationFailure("The order was saved, but the e-mail could not be sent.")
        self.sent.append(payload)


@pytest.fixture()
def fake_store():
    return FakeOrderStore()


@pytest.fixture()
def store_factory():
    return FakeOrderStore


@pytest.fixture()
def notifier():
    return FakeNotifier()


@pytest.fixture()
def failing_notifier():
    return FakeNotifier(fail=True)
