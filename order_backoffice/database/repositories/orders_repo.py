# order_backoffice/database/repositories/orders_repo.py
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
import math
import sqlite3
import uuid
from typing import Optional

from ...modules.orders.calculations import list_totals
from ...modules.orders.entities import (
    Order,
    OrderItem,
    SessionContext,
    ShippingMode,
    Stage,
)
from ...constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...utils.helpers import now_ms

_log = logging.getLogger(__name__)


class DomainError(Exception):
    """Domain-level error the controller/UI can surface (toast/snackbar)."""
    pass


@dataclass(frozen=True)
class OrderListQuery:
    search: str = ""
    stages: tuple[Stage, ...] = ()
    returned_only: bool = False
    unreturned_only: bool = False
    pickup_only: bool = False
    date_from: int | None = None   # epoch ms, inclusive
    date_to: int | None = None     # epoch ms, inclusive
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class Pagination:
    page: int
    page_size: int
    total: int
    total_pages: int


@dataclass(frozen=True)
class OrderPage:
    items: list[Order]
    pagination: Pagination
    totals: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ShippingAccount:
    value: str
    starting_amount: float


@dataclass(frozen=True)
class ShippingOwners:
    """Known payout targets: Posta recipient names and Aks/Bex accounts."""
    posta: list[str]
    accounts: list[ShippingAccount]


def _clamp_page_size(page_size, default: int = DEFAULT_PAGE_SIZE, upper: int = MAX_PAGE_SIZE) -> int:
    try:
        size = int(page_size)
    except (TypeError, ValueError):
        return default
    return max(1, min(upper, size))


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    text = value.strip()
    return text or None


class OrdersRepo:
    """
    Order persistence, one collection per session scope.

    Every call takes the SessionContext; a blank token is rejected and rows of
    another scope are invisible. Updates are full replaces: header row and the
    complete item list are rewritten in one transaction.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---------------------------- TX helper ----------------------------

    @contextmanager
    def _immediate_tx(self):
        self.conn.execute("BEGIN IMMEDIATE")
        try:
            yield
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

    @staticmethod
    def _check_session(ctx: SessionContext) -> str:
        if ctx is None or not (ctx.token or "").strip():
            raise DomainError("Not signed in.")
        return ctx.scope.value

    # ---------------------------- Reads ----------------------------

    def get(self, ctx: SessionContext, order_id: str) -> Optional[Order]:
        scope = self._check_session(ctx)
        row = self.conn.execute(
            "SELECT * FROM orders WHERE order_id=? AND scope=?", (order_id, scope)
        ).fetchone()
        return self._hydrate(row) if row else None

    def list_orders(self, ctx: SessionContext, query: OrderListQuery | None = None) -> OrderPage:
        """
        Filtered, paged listing ordered by (sort_index or created_at) DESC,
        then created_at DESC. Totals cover the whole filtered set, not just
        the returned page.
        """
        scope = self._check_session(ctx)
        q = query or OrderListQuery()
        page = max(1, int(q.page or 1))
        page_size = _clamp_page_size(q.page_size)

        where = ["o.scope = ?"]
        params: list = [scope]

        if q.stages:
            marks = ",".join("?" for _ in q.stages)
            where.append(f"o.stage IN ({marks})")
            params.extend(Stage.parse(s).value for s in q.stages)
        if q.returned_only:
            where.append("o.return_settled = 1")
        elif q.unreturned_only:
            where.append("o.return_settled = 0")
        if q.pickup_only:
            where.append("o.pickup = 1")
        if q.date_from is not None:
            where.append("o.created_at >= ?")
            params.append(int(q.date_from))
        if q.date_to is not None:
            where.append("o.created_at <= ?")
            params.append(int(q.date_to))

        needle = (q.search or "").strip().lower()
        if needle:
            like = f"%{needle}%"
            where.append(
                """(
                    LOWER(o.title) LIKE ? OR LOWER(o.customer_name) LIKE ?
                    OR LOWER(o.address) LIKE ? OR LOWER(o.phone) LIKE ?
                    OR EXISTS (
                        SELECT 1 FROM order_items i
                        WHERE i.order_id = o.order_id
                          AND (LOWER(i.title) LIKE ? OR LOWER(COALESCE(i.variant_label, '')) LIKE ?)
                    )
                )"""
            )
            params.extend([like] * 6)

        sql = f"""
            SELECT o.* FROM orders o
            WHERE {' AND '.join(where)}
            ORDER BY COALESCE(o.sort_index, o.created_at) DESC, o.created_at DESC
        """
        matched = [self._hydrate(r) for r in self.conn.execute(sql, params).fetchall()]

        total = len(matched)
        total_pages = max(1, math.ceil(total / page_size))
        start = (page - 1) * page_size
        sums = list_totals(matched)
        return OrderPage(
            items=matched[start:start + page_size],
            pagination=Pagination(page=page, page_size=page_size, total=total, total_pages=total_pages),
            totals={
                "nabavno": sums.total_purchase,
                "transport": sums.transport,
                "prodajno": sums.total_sale,
                "profit": sums.profit,
                "povrat": sums.return_amount,
            },
        )

    def shipping_owners(self, ctx: SessionContext) -> ShippingOwners:
        scope = self._check_session(ctx)
        posta = [
            r["shipping_owner"]
            for r in self.conn.execute(
                """
                SELECT shipping_owner, MAX(created_at) AS last_used FROM orders
                WHERE scope=? AND shipping_mode=? AND shipping_owner IS NOT NULL
                GROUP BY shipping_owner ORDER BY last_used DESC
                """,
                (scope, ShippingMode.POSTA.value),
            ).fetchall()
        ]
        accounts = [
            ShippingAccount(value=r["value"], starting_amount=float(r["starting_amount"]))
            for r in self.conn.execute(
                "SELECT value, starting_amount FROM shipping_accounts WHERE scope=? "
                "ORDER BY value COLLATE NOCASE",
                (scope,),
            ).fetchall()
        ]
        return ShippingOwners(posta=posta, accounts=accounts)

    def has_shipping_account(self, ctx: SessionContext, value: str) -> bool:
        scope = self._check_session(ctx)
        row = self.conn.execute(
            "SELECT 1 FROM shipping_accounts WHERE scope=? AND lookup_key=?",
            (scope, (value or "").strip().lower()),
        ).fetchone()
        return row is not None

    # ---------------------------- Writes ----------------------------

    def create(self, ctx: SessionContext, order: Order) -> Order:
        """
        Insert a new order and return it as stored (id and created_at assigned,
        text fields trimmed).
        """
        scope = self._check_session(ctx)
        stored = self._normalize(order).with_fields(
            id=uuid.uuid4().hex,
            created_at=order.created_at or now_ms(),
        )
        with self._immediate_tx():
            self._insert_header(scope, stored)
            self._write_items(stored)
        _log.info("Order %s created in scope %s", stored.id, scope)
        return stored

    def update(self, ctx: SessionContext, order: Order) -> None:
        """Full replace of an existing order (header + items)."""
        scope = self._check_session(ctx)
        if not order.id:
            raise DomainError("Cannot update an order without an id.")
        stored = self._normalize(order)
        with self._immediate_tx():
            cur = self.conn.execute(
                """
                UPDATE orders SET
                    stage=?, title=?, customer_name=?, phone=?, address=?, pickup=?,
                    transport_cost=?, transport_mode=?, shipping_mode=?, shipping_owner=?,
                    shipment_number=?, my_profit_percent=?, return_settled=?, note=?,
                    sort_index=?, updated_at=?
                WHERE order_id=? AND scope=?
                """,
                (*self._header_values(stored), stored.sort_index, now_ms(), stored.id, scope),
            )
            if cur.rowcount == 0:
                raise DomainError("Order not found.")
            self.conn.execute("DELETE FROM order_items WHERE order_id=?", (stored.id,))
            self._write_items(stored)

    def delete(self, ctx: SessionContext, order_id: str) -> None:
        scope = self._check_session(ctx)
        with self._immediate_tx():
            self.conn.execute("DELETE FROM orders WHERE order_id=? AND scope=?", (order_id, scope))

    def reorder(self, ctx: SessionContext, order_ids: list[str], base: int) -> None:
        """Persist a manual ordering: sort_index = base - position."""
        scope = self._check_session(ctx)
        with self._immediate_tx():
            for index, order_id in enumerate(order_ids):
                self.conn.execute(
                    "UPDATE orders SET sort_index=? WHERE order_id=? AND scope=?",
                    (int(base) - index, order_id, scope),
                )

    def upsert_shipping_account(self, ctx: SessionContext, value: str, starting_amount: float) -> None:
        scope = self._check_session(ctx)
        text = (value or "").strip()
        if not text:
            raise DomainError("Account name cannot be empty.")
        if starting_amount is None or not math.isfinite(starting_amount) or starting_amount < 0:
            raise DomainError("Starting amount must be 0 or more.")
        with self._immediate_tx():
            self.conn.execute(
                """
                INSERT INTO shipping_accounts(scope, lookup_key, value, starting_amount, created_at)
                VALUES (?,?,?,?,?)
                ON CONFLICT(scope, lookup_key)
                DO UPDATE SET value=excluded.value, starting_amount=excluded.starting_amount
                """,
                (scope, text.lower(), text, float(starting_amount), now_ms()),
            )

    # ---------------------------- Internals ----------------------------

    @staticmethod
    def _normalize(order: Order) -> Order:
        items = [
            it.with_fields(
                title=it.title.strip(),
                variant_label=_clean_text(it.variant_label),
            )
            for it in order.items
        ]
        return order.with_fields(
            customer_name=order.customer_name.strip(),
            phone=order.phone.strip(),
            address=(order.address or "").strip(),
            shipping_owner=_clean_text(order.shipping_owner),
            shipment_number=_clean_text(order.shipment_number),
            note=_clean_text(order.note),
            items=tuple(items),
        )

    @staticmethod
    def _header_values(o: Order) -> tuple:
        return (
            o.stage.value,
            o.title,
            o.customer_name,
            o.phone,
            o.address,
            int(o.pickup),
            o.transport_cost,
            o.transport_mode.value if o.transport_mode else None,
            o.shipping_mode.value if o.shipping_mode else None,
            o.shipping_owner,
            o.shipment_number,
            o.my_profit_percent,
            int(o.return_settled),
            o.note,
        )

    def _insert_header(self, scope: str, o: Order) -> None:
        self.conn.execute(
            """
            INSERT INTO orders(
                stage, title, customer_name, phone, address, pickup,
                transport_cost, transport_mode, shipping_mode, shipping_owner,
                shipment_number, my_profit_percent, return_settled, note,
                order_id, scope, created_at, sort_index
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
            """,
            (*self._header_values(o), o.id, scope, o.created_at, o.sort_index),
        )

    def _write_items(self, o: Order) -> None:
        for pos, it in enumerate(o.items):
            self.conn.execute(
                """
                INSERT INTO order_items(
                    order_id, item_id, position, product_id, variant_id, variant_label,
                    supplier_id, title, quantity, purchase_price, sale_price, manual_sale_price
                ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?)
                """,
                (
                    o.id, it.id, pos, it.product_id, it.variant_id, it.variant_label,
                    it.supplier_id, it.title, it.quantity, it.purchase_price,
                    it.sale_price, int(it.manual_sale_price),
                ),
            )

    def _hydrate(self, r: sqlite3.Row) -> Order:
        items = tuple(
            OrderItem(
                id=i["item_id"],
                product_id=i["product_id"],
                variant_id=i["variant_id"],
                variant_label=i["variant_label"],
                supplier_id=i["supplier_id"],
                title=i["title"],
                quantity=int(i["quantity"]),
                purchase_price=float(i["purchase_price"]),
                sale_price=float(i["sale_price"]),
                manual_sale_price=bool(i["manual_sale_price"]),
            )
            for i in self.conn.execute(
                "SELECT * FROM order_items WHERE order_id=? ORDER BY position",
                (r["order_id"],),
            ).fetchall()
        )
        return Order(
            id=r["order_id"],
            stage=r["stage"],
            items=items,
            customer_name=r["customer_name"],
            phone=r["phone"],
            address=r["address"] or "",
            pickup=bool(r["pickup"]),
            transport_cost=None if r["transport_cost"] is None else float(r["transport_cost"]),
            transport_mode=r["transport_mode"],
            shipping_mode=r["shipping_mode"],
            shipping_owner=r["shipping_owner"],
            shipment_number=r["shipment_number"],
            my_profit_percent=None if r["my_profit_percent"] is None else float(r["my_profit_percent"]),
            return_settled=bool(r["return_settled"]),
            note=r["note"],
            created_at=int(r["created_at"]),
            sort_index=None if r["sort_index"] is None else int(r["sort_index"]),
        )
