"""
Controller for one open order (the detail page).

Every edit follows the same path: parse the raw input at the edit boundary,
then hand a transform to the MutationCoordinator, which shows the new order
right away and rolls it back if the store rejects the update.
"""
from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import Optional

from PySide6.QtCore import QObject, Signal

from .coordinator import MutationCoordinator, StateSlot
from .entities import Order, SessionContext, Stage
from .errors import (
    ConfirmationRequired,
    TransitionBlocked,
    ValidationError,
)
from .pricing import build_line_item
from .stages import apply_transition, ensure_delete_allowed, plan_transition
from .store import CatalogSource, OrderStore
from .validators import (
    OrderFormValues,
    parse_item_field,
    parse_order_field,
    parse_quantity,
    validate_order_form,
)

_log = logging.getLogger(__name__)


class OrderController(QObject):
    # field name ("" when not field-specific), message
    validationFailed = Signal(str, str)
    # order id; the view asks the operator for the shipment number
    shipmentNumberRequested = Signal(str)
    deleted = Signal(str)

    def __init__(
        self,
        ctx: SessionContext,
        store: OrderStore,
        order: Order,
        *,
        catalog: CatalogSource | None = None,
        coordinator: MutationCoordinator | None = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.ctx = ctx
        self.store = store
        self.catalog = catalog
        self.coordinator = coordinator or MutationCoordinator(self)
        self.slot = StateSlot(order, self)
        self._awaiting_shipment = False

    @property
    def order(self) -> Order:
        return self.slot.value

    @property
    def awaiting_shipment_number(self) -> bool:
        return self._awaiting_shipment

    def _key(self) -> str:
        return f"order:{self.order.id}"

    @contextmanager
    def _edit_boundary(self):
        try:
            yield
        except (ValidationError, TransitionBlocked, ConfirmationRequired) as e:
            _log.debug("Edit rejected: %s", e)
            self.validationFailed.emit(getattr(e, "field", None) or "", str(e))
            raise

    def _commit(self, transform, *, op: str = "update", success_message: str | None = None) -> Order:
        return self.coordinator.apply(
            self.slot,
            transform,
            lambda order: self.store.update(self.ctx, order),
            key=self._key(),
            op=op,
            success_message=success_message,
        )

    # ---------------- quick edits ----------------

    def save_field(self, field: str, raw) -> Order:
        """Inline edit of one order-level field (name, phone, transport, percent, ...)."""
        with self._edit_boundary():
            changes = parse_order_field(field, raw)
            return self._commit(lambda o: o.with_fields(**changes), success_message="Saved.")

    def save_item_field(self, item_id: str, field: str, raw) -> Order:
        with self._edit_boundary():
            changes = parse_item_field(field, raw)
            return self._commit(lambda o: o.with_item_updated(item_id, **changes), success_message="Item saved.")

    def save_form(self, values: OrderFormValues) -> Order:
        """Edit-all: customer, delivery, transport and percent in one update. Stage is left alone."""
        with self._edit_boundary():
            clean = validate_order_form(values)
            changes = dict(
                customer_name=clean.customer_name,
                phone=clean.phone,
                address=clean.address,
                pickup=clean.pickup,
                transport_cost=clean.transport_cost,
                transport_mode=clean.transport_mode,
                shipping_mode=clean.shipping_mode,
                shipping_owner=clean.shipping_owner,
                my_profit_percent=clean.my_profit_percent,
                note=clean.note,
            )
            return self._commit(lambda o: o.with_fields(**changes), success_message="Order saved.")

    def toggle_pickup(self) -> Order:
        return self._commit(lambda o: o.with_pickup(not o.pickup), success_message="Saved.")

    def toggle_return_settled(self) -> Order:
        return self._commit(
            lambda o: o.with_fields(return_settled=not o.return_settled),
            success_message="Saved.",
        )

    # ---------------- items ----------------

    def add_item(
        self,
        product_id: str,
        *,
        variant_id: str | None = None,
        supplier_id: str | None = None,
        quantity=1,
        manual_sale_price=None,
    ) -> Order:
        with self._edit_boundary():
            if self.catalog is None:
                raise ValidationError("The product catalog is not available.", field="product")
            product = self.catalog.get_product(product_id)
            if product is None:
                raise ValidationError("Choose a product.", field="product")
            item = build_line_item(
                product,
                variant_id=variant_id,
                supplier_id=supplier_id,
                quantity=parse_quantity(quantity),
                manual_sale_price=manual_sale_price,
            )
            return self._commit(lambda o: o.with_item_added(item), success_message="Item added.")

    def remove_item(self, item_id: str) -> Order:
        """Removing the last item raises EmptyOrderError; the order is left as it was."""
        with self._edit_boundary():
            return self._commit(lambda o: o.with_item_removed(item_id), success_message="Item removed.")

    # ---------------- stages ----------------

    def request_stage_change(self, target: Stage | str) -> Order | None:
        """
        Change stage directly. Moving to poslato is two-step: this only
        announces that a shipment number is needed and returns None.
        """
        with self._edit_boundary():
            plan = plan_transition(self.order, target)
            if plan.deferred:
                self._awaiting_shipment = True
                self.shipmentNumberRequested.emit(self.order.id or "")
                return None
            return self._commit(lambda o: apply_transition(o, target), success_message="Stage updated.")

    def submit_shipment_number(self, shipment_number: str | None) -> Order:
        """Commit stage poslato and the shipment number together."""
        with self._edit_boundary():
            number = (shipment_number or "").strip()
            if not number:
                raise TransitionBlocked("Enter the shipment number.")
            order = self._commit(
                lambda o: apply_transition(o, Stage.POSLATO, number),
                success_message="Shipment number saved.",
            )
            self._awaiting_shipment = False
            return order

    def cancel_shipment(self) -> None:
        self._awaiting_shipment = False

    # ---------------- delete ----------------

    def delete(self, confirmation: str | None = None) -> None:
        with self._edit_boundary():
            ensure_delete_allowed(self.order, confirmation)
        order_id = self.order.id
        self.coordinator.run(
            lambda: self.store.delete(self.ctx, order_id),
            key=self._key(),
            op="delete",
            success_message="Order deleted.",
            failure_message="Deleting the order failed.",
        )
        self.deleted.emit(order_id or "")
