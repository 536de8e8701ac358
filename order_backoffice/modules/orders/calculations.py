"""
modules/orders/calculations.py

Pure money derivations for one order and for a list of orders.

    profit        = sale total - purchase total - transport
    my profit     = profit * percent / 100          (percent defaults to 100)
    profit share  = my profit * PROFIT_SPLIT_RATIO
    povrat        = purchase total + transport + profit share

Negative profit is kept as is (never clamped); callers flag it.
Nothing here reads or writes state, and nothing is rounded.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Mapping

from ...constants import DEFAULT_PROFIT_PERCENT, PROFIT_SPLIT_RATIO
from .entities import Order, OrderItem

__all__ = [
    "OrderTotals",
    "ListTotals",
    "line_sale_total",
    "line_purchase_total",
    "resolve_profit_percent",
    "order_totals",
    "list_totals",
    "totals_reconcile",
]


@dataclass(frozen=True)
class OrderTotals:
    total_qty: int
    total_sale: float
    total_purchase: float
    transport: float
    profit: float
    my_profit_percent: float
    my_profit: float
    profit_share: float
    profit_share_percent: float
    return_amount: float

    @property
    def is_loss(self) -> bool:
        return self.profit < 0


@dataclass(frozen=True)
class ListTotals:
    count: int = 0
    total_qty: int = 0
    total_sale: float = 0.0
    total_purchase: float = 0.0
    transport: float = 0.0
    profit: float = 0.0
    my_profit: float = 0.0
    profit_share: float = 0.0
    return_amount: float = 0.0


def line_sale_total(item: OrderItem) -> float:
    return item.sale_price * item.quantity


def line_purchase_total(item: OrderItem) -> float:
    return item.purchase_price * item.quantity


def resolve_profit_percent(value) -> float:
    """The order's percent if it is a finite number, else DEFAULT_PROFIT_PERCENT."""
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return float(value)
    return DEFAULT_PROFIT_PERCENT


def order_totals(order: Order) -> OrderTotals:
    total_qty = 0
    total_sale = 0.0
    total_purchase = 0.0
    for item in order.items:
        total_qty += item.quantity
        total_sale += line_sale_total(item)
        total_purchase += line_purchase_total(item)

    transport = order.transport_cost if order.transport_cost is not None else 0.0
    profit = total_sale - total_purchase - transport
    percent = resolve_profit_percent(order.my_profit_percent)
    my_profit = profit * percent / 100
    share = my_profit * PROFIT_SPLIT_RATIO
    return OrderTotals(
        total_qty=total_qty,
        total_sale=total_sale,
        total_purchase=total_purchase,
        transport=transport,
        profit=profit,
        my_profit_percent=percent,
        my_profit=my_profit,
        profit_share=share,
        profit_share_percent=percent * PROFIT_SPLIT_RATIO,
        return_amount=total_purchase + transport + share,
    )


def list_totals(orders: Iterable[Order]) -> ListTotals:
    """Running totals for a list: exactly the sum of the per-order figures."""
    count = total_qty = 0
    sale = purchase = transport = profit = my_profit = share = povrat = 0.0
    for order in orders:
        t = order_totals(order)
        count += 1
        total_qty += t.total_qty
        sale += t.total_sale
        purchase += t.total_purchase
        transport += t.transport
        profit += t.profit
        my_profit += t.my_profit
        share += t.profit_share
        povrat += t.return_amount
    return ListTotals(
        count=count,
        total_qty=total_qty,
        total_sale=sale,
        total_purchase=purchase,
        transport=transport,
        profit=profit,
        my_profit=my_profit,
        profit_share=share,
        return_amount=povrat,
    )


# Keys of the server-side list aggregate -> ListTotals attribute.
SERVER_TOTAL_KEYS = {
    "nabavno": "total_purchase",
    "transport": "transport",
    "prodajno": "total_sale",
    "profit": "profit",
    "povrat": "return_amount",
}


def totals_reconcile(client: ListTotals, server: Mapping[str, float], *, rel_tol: float = 1e-9, abs_tol: float = 1e-6) -> list[str]:
    """
    Compare client-side sums with a server aggregate.

    Returns the server keys that drift beyond float tolerance (empty list when
    everything reconciles). Keys missing from the server payload are skipped.
    """
    drift = []
    for key, attr in SERVER_TOTAL_KEYS.items():
        if key not in server:
            continue
        if not math.isclose(float(server[key]), getattr(client, attr), rel_tol=rel_tol, abs_tol=abs_tol):
            drift.append(key)
    return drift
