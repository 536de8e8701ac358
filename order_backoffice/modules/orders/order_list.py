"""
modules/orders/order_list.py

The order list: filters, paged loading, manual drag ordering, and list-level
stage/return edits.

Ordering: effective key (sort_index if set, else created_at) descending, then
created_at descending. A drag assigns sort_index = base - position to the
whole visible list, so the new order is strict without renumbering anything
on the server.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
import logging
from typing import Iterable, Optional

from PySide6.QtCore import QObject, Signal

from ...constants import LIST_PAGE_SIZE
from ...database.repositories.orders_repo import OrderListQuery
from ...utils.helpers import day_end_ms, day_start_ms, now_ms, parse_iso_date
from .calculations import ListTotals, list_totals, totals_reconcile
from .coordinator import MutationCoordinator, StateSlot
from .entities import Order, SessionContext, Stage
from .errors import (
    ConfirmationRequired,
    RemoteFailure,
    TransitionBlocked,
    ValidationError,
)
from .stages import apply_transition, ensure_delete_allowed, normalize_stage_filters, plan_transition
from .store import OrderStore

_log = logging.getLogger(__name__)

REORDER_KEY = "list:reorder"


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

def resolve_date_range(
    date_from: str | None,
    date_to: str | None,
    today: date | None = None,
) -> tuple[int | None, int | None]:
    """
    ISO day strings -> inclusive epoch-ms bounds. With only a start day the
    range runs to the end of today. Unparseable days are ignored.
    """
    start = parse_iso_date(date_from)
    end = parse_iso_date(date_to)
    if start is not None and end is None:
        end = today or date.today()
    return (
        day_start_ms(start) if start else None,
        day_end_ms(end) if end else None,
    )


@dataclass(frozen=True)
class ListFilters:
    search: str = ""
    stages: tuple[Stage, ...] = ()
    returned_only: bool = False
    unreturned_only: bool = False
    pickup_only: bool = False
    date_from: str | None = None
    date_to: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "stages", tuple(normalize_stage_filters(self.stages)))
        if self.returned_only and self.unreturned_only:
            object.__setattr__(self, "unreturned_only", False)

    def to_query(self, page: int, page_size: int = LIST_PAGE_SIZE, today: date | None = None) -> OrderListQuery:
        date_from, date_to = resolve_date_range(self.date_from, self.date_to, today)
        return OrderListQuery(
            search=self.search.strip(),
            stages=self.stages,
            returned_only=self.returned_only,
            unreturned_only=self.unreturned_only,
            pickup_only=self.pickup_only,
            date_from=date_from,
            date_to=date_to,
            page=page,
            page_size=page_size,
        )

    def keeps_stage(self, stage: Stage) -> bool:
        return not self.stages or stage in self.stages

    def keeps_return_state(self, settled: bool) -> bool:
        if self.returned_only:
            return settled
        if self.unreturned_only:
            return not settled
        return True


# ---------------------------------------------------------------------------
# Pure list operations
# ---------------------------------------------------------------------------

def sort_orders(orders: Iterable[Order]) -> list[Order]:
    return sorted(orders, key=lambda o: (o.effective_sort_key, o.created_at), reverse=True)


def merge_page(existing: Iterable[Order], incoming: Iterable[Order]) -> list[Order]:
    """De-duplicate by id (fresh copy wins) and re-sort."""
    by_id: dict[str, Order] = {}
    for order in existing:
        by_id[order.id] = order
    for order in incoming:
        by_id[order.id] = order
    return sort_orders(by_id.values())


def move_order(orders: list[Order], source_id: str, target_id: str) -> list[Order]:
    """Take the dragged order out and drop it at the target's position."""
    ids = [o.id for o in orders]
    if source_id not in ids or target_id not in ids:
        raise ValidationError("Both orders must be in the loaded list.", field="order")
    result = list(orders)
    to_index = ids.index(target_id)
    moved = result.pop(ids.index(source_id))
    result.insert(to_index, moved)
    return result


def assign_sort_indexes(orders: list[Order], base: int) -> list[Order]:
    return [o.with_sort_index(base - i) for i, o in enumerate(orders)]


def replace_order(orders: list[Order], updated: Order) -> list[Order]:
    return [updated if o.id == updated.id else o for o in orders]


def find_order(orders: Iterable[Order], order_id: str) -> Order:
    for o in orders:
        if o.id == order_id:
            return o
    raise ValidationError(f"Order {order_id!r} is not loaded.", field="order")


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class OrderListController(QObject):
    loadingChanged = Signal(bool)
    pageLoaded = Signal(int)              # page number
    loadFailed = Signal(str)
    validationFailed = Signal(str, str)   # field, message
    shipmentNumberRequested = Signal(str)  # order id
    totalsDrifted = Signal(list)          # server keys that do not reconcile

    def __init__(
        self,
        ctx: SessionContext,
        store: OrderStore,
        *,
        filters: ListFilters | None = None,
        page_size: int = LIST_PAGE_SIZE,
        coordinator: MutationCoordinator | None = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.ctx = ctx
        self.store = store
        self.filters = filters or ListFilters()
        self.page_size = page_size
        self.coordinator = coordinator or MutationCoordinator(self)
        self.slot = StateSlot([], self)
        self.page = 0
        self.total_pages = 1
        self.total = 0
        self.server_totals: dict[str, float] = {}
        self._loading = False

    # ---------------- state ----------------

    @property
    def orders(self) -> list[Order]:
        return self.slot.value

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def has_more(self) -> bool:
        return self.total_pages > self.page

    def totals(self) -> ListTotals:
        return list_totals(self.orders)

    # ---------------- loading ----------------

    def set_filters(self, filters: ListFilters) -> None:
        self.filters = filters
        self.load_first_page()

    def load_first_page(self) -> bool:
        self.page = 0
        self.total_pages = 1
        self.server_totals = {}
        self.slot.set([])
        return self._fetch(1)

    def load_more(self) -> bool:
        """Fetch the next page; False when a load is pending or nothing is left."""
        if self._loading or not self.has_more:
            return False
        return self._fetch(self.page + 1)

    def _set_loading(self, value: bool) -> None:
        self._loading = value
        self.loadingChanged.emit(value)

    def _fetch(self, page: int) -> bool:
        if self._loading:
            return False
        self._set_loading(True)
        try:
            result = self.store.list_orders(self.ctx, self.filters.to_query(page, self.page_size))
        except Exception as e:
            _log.exception("Loading order page %s failed", page)
            self.loadFailed.emit("Loading orders failed.")
            raise RemoteFailure("Loading orders failed.") from e
        finally:
            self._set_loading(False)

        self.page = result.pagination.page
        self.total_pages = result.pagination.total_pages
        self.total = result.pagination.total
        self.server_totals = dict(result.totals)
        self.slot.set(merge_page(self.orders, result.items))
        self.pageLoaded.emit(self.page)
        if not self.has_more:
            self.reconcile_totals()
        return True

    def reconcile_totals(self) -> list[str]:
        if not self.server_totals:
            return []
        drift = totals_reconcile(self.totals(), self.server_totals)
        if drift:
            _log.warning("List totals drift from server aggregate on %s", ", ".join(drift))
            self.totalsDrifted.emit(drift)
        return drift

    # ---------------- mutations ----------------

    def _reject(self, e: Exception) -> None:
        _log.debug("List edit rejected: %s", e)
        self.validationFailed.emit(getattr(e, "field", None) or "", str(e))

    def reorder(self, source_id: str, target_id: str) -> list[Order]:
        """Drag source onto target; optimistic, restored on store failure."""
        if source_id == target_id:
            return self.orders
        try:
            moved = move_order(self.orders, source_id, target_id)
        except ValidationError as e:
            self._reject(e)
            raise
        base = now_ms()
        return self.coordinator.apply(
            self.slot,
            lambda _orders: assign_sort_indexes(moved, base),
            lambda orders: self.store.reorder(self.ctx, [o.id for o in orders], base),
            key=REORDER_KEY,
            op="reorder",
            failure_message="Saving the new order of the list failed.",
        )

    def _update_one(self, order_id: str, change, *, keep, success_message: str) -> list[Order]:
        """
        Apply `change` to one loaded order and persist it. When `keep(order)`
        is False the order leaves the visible list (it no longer matches the
        filters) but is still saved, and `total` drops by one.
        """
        updated: dict[str, Order] = {}
        dropped = False

        def transform(orders: list[Order]) -> list[Order]:
            nonlocal dropped
            current = find_order(orders, order_id)
            new = change(current)
            if new is current:
                return orders
            updated["order"] = new
            if keep(new):
                return replace_order(orders, new)
            dropped = True
            return [o for o in orders if o.id != order_id]

        result = self.coordinator.apply(
            self.slot,
            transform,
            lambda _orders: self.store.update(self.ctx, updated["order"]),
            key=f"order:{order_id}",
            op="update",
            success_message=success_message,
        )
        if dropped:
            self.total = max(0, self.total - 1)
        return result

    def change_stage(self, order_id: str, target: Stage | str, shipment_number: str | None = None) -> list[Order] | None:
        """
        Stage change from the list. Returns None when poslato still needs a
        shipment number (shipmentNumberRequested is emitted instead).
        """
        try:
            order = find_order(self.orders, order_id)
            plan = plan_transition(order, target, shipment_number)
            if plan.deferred:
                if shipment_number is not None:
                    raise TransitionBlocked("Enter the shipment number.")
                self.shipmentNumberRequested.emit(order_id)
                return None
            return self._update_one(
                order_id,
                lambda o: apply_transition(o, plan.target, plan.shipment_number),
                keep=lambda o: self.filters.keeps_stage(o.stage),
                success_message="Stage updated.",
            )
        except (ValidationError, TransitionBlocked) as e:
            self._reject(e)
            raise

    def toggle_return_settled(self, order_id: str) -> list[Order]:
        try:
            find_order(self.orders, order_id)
        except ValidationError as e:
            self._reject(e)
            raise
        return self._update_one(
            order_id,
            lambda o: o.with_fields(return_settled=not o.return_settled),
            keep=lambda o: self.filters.keeps_return_state(o.return_settled),
            success_message="Saved.",
        )

    def delete(self, order_id: str, confirmation: str | None = None) -> list[Order]:
        try:
            ensure_delete_allowed(find_order(self.orders, order_id), confirmation)
        except (ValidationError, ConfirmationRequired) as e:
            self._reject(e)
            raise
        result = self.coordinator.apply(
            self.slot,
            lambda orders: [o for o in orders if o.id != order_id],
            lambda _orders: self.store.delete(self.ctx, order_id),
            key=f"order:{order_id}",
            op="delete",
            success_message="Order deleted.",
            failure_message="Deleting the order failed.",
        )
        self.total = max(0, self.total - 1)
        return result
