"""
New-order flow: a free-form draft of line items plus the create form.

The draft may be empty while the operator works; the one-item rule is
checked on submit. After the store accepts the order the e-mail is sent
once; an e-mail failure only produces a warning.
"""
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, Signal

from ...database.repositories.catalog_repo import Product
from .coordinator import MutationCoordinator
from .entities import Order, OrderItem, SessionContext
from .errors import EmptyOrderError, NotificationFailure, TransitionBlocked, ValidationError
from .notifications import SmtpOrderNotifier, build_order_email
from .pricing import build_line_item
from .store import CatalogSource, OrderStore
from .validators import CleanOrderForm, OrderFormValues, parse_quantity, validate_order_form

_log = logging.getLogger(__name__)

DRAFT_KEY = "draft"
EMAIL_FAILED_MESSAGE = "The order was saved, but the e-mail could not be sent."


class OrderDraft:
    """Line items collected before the order exists."""

    def __init__(self):
        self._items: list[OrderItem] = []

    @property
    def items(self) -> tuple[OrderItem, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def add(
        self,
        product: Product,
        *,
        variant_id: str | None = None,
        supplier_id: str | None = None,
        quantity=1,
        manual_sale_price=None,
    ) -> OrderItem:
        item = build_line_item(
            product,
            variant_id=variant_id,
            supplier_id=supplier_id,
            quantity=parse_quantity(quantity),
            manual_sale_price=manual_sale_price,
        )
        self._items.append(item)
        return item

    def remove(self, item_id: str) -> None:
        before = len(self._items)
        self._items = [it for it in self._items if it.id != item_id]
        if len(self._items) == before:
            raise ValidationError(f"Item {item_id!r} is not in the draft.", field="items")

    def clear(self) -> None:
        self._items.clear()

    @property
    def sale_total(self) -> float:
        return sum(it.sale_total for it in self._items)

    @property
    def purchase_total(self) -> float:
        return sum(it.purchase_total for it in self._items)

    def to_order(self, form: CleanOrderForm) -> Order:
        if not self._items:
            raise EmptyOrderError("Add at least one item.")
        return Order(
            stage=form.stage,
            items=tuple(self._items),
            customer_name=form.customer_name,
            phone=form.phone,
            address=form.address,
            pickup=form.pickup,
            transport_cost=form.transport_cost,
            transport_mode=form.transport_mode,
            shipping_mode=form.shipping_mode,
            shipping_owner=form.shipping_owner,
            my_profit_percent=form.my_profit_percent,
            note=form.note,
        )


class OrderDraftController(QObject):
    created = Signal(object)            # the stored Order
    warning = Signal(str)               # e-mail problems and similar soft failures
    validationFailed = Signal(str, str)  # field, message

    def __init__(
        self,
        ctx: SessionContext,
        store: OrderStore,
        catalog: CatalogSource,
        *,
        notifier: SmtpOrderNotifier | None = None,
        coordinator: MutationCoordinator | None = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.ctx = ctx
        self.store = store
        self.catalog = catalog
        self.notifier = notifier
        self.coordinator = coordinator or MutationCoordinator(self)
        self.draft = OrderDraft()

    def add_item(self, product_id: str, **kwargs) -> OrderItem:
        try:
            product = self.catalog.get_product(product_id)
            if product is None:
                raise ValidationError("Choose a product.", field="product")
            return self.draft.add(product, **kwargs)
        except ValidationError as e:
            self.validationFailed.emit(e.field or "", str(e))
            raise

    def remove_item(self, item_id: str) -> None:
        self.draft.remove(item_id)

    def submit(self, values: OrderFormValues) -> Order:
        """
        Validate, register a new Aks/Bex account if needed, create the order,
        then send the e-mail when asked to. Returns the stored order.
        """
        try:
            if not len(self.draft):
                raise EmptyOrderError("Add at least one item.")
            form = validate_order_form(values)
            order = self.draft.to_order(form)
            needs_account = self._needs_new_account(form)
            if needs_account and form.shipping_owner_starting_amount is None:
                raise ValidationError(
                    "Enter the starting amount for the new account.",
                    field="shipping_owner_starting_amount",
                )
        except (ValidationError, TransitionBlocked) as e:
            _log.debug("Order form rejected: %s", e)
            self.validationFailed.emit(getattr(e, "field", None) or "", str(e))
            raise

        if needs_account:
            self.coordinator.run(
                lambda: self.store.upsert_shipping_account(
                    self.ctx, form.shipping_owner, form.shipping_owner_starting_amount
                ),
                key=DRAFT_KEY,
                op="create",
                failure_message="Saving the shipping account failed.",
            )

        stored = self.coordinator.run(
            lambda: self.store.create(self.ctx, order),
            key=DRAFT_KEY,
            op="create",
            success_message="Order saved.",
            failure_message="Saving the order failed.",
        )
        self.draft.clear()

        if form.send_email and self.notifier is not None:
            self._notify(stored)

        self.created.emit(stored)
        return stored

    def _needs_new_account(self, form: CleanOrderForm) -> bool:
        if form.shipping_mode is None or not form.shipping_mode.uses_account:
            return False
        return not self.store.has_shipping_account(self.ctx, form.shipping_owner or "")

    def _notify(self, order: Order) -> None:
        """The order is already stored; any e-mail problem only becomes a warning."""
        try:
            payload = build_order_email(order, self.catalog.supplier_names())
            self.notifier.send(payload)
        except NotificationFailure as e:
            _log.warning("Order %s saved without e-mail: %s", order.id, e)
            self.warning.emit(str(e))
        except Exception:
            _log.warning("Order %s saved; building the e-mail failed", order.id, exc_info=True)
            self.warning.emit(EMAIL_FAILED_MESSAGE)
