"""
Orders module package exports.

Always available (pure, no Qt and no database access):
- entities: Order, OrderItem, Stage, TransportMode, ShippingMode, OrderScope, SessionContext
- errors: OrderError and its subclasses
- calculations: order_totals, list_totals
- stages: plan_transition, apply_transition, ensure_delete_allowed
- pricing: resolve_price, build_line_item

The Qt pieces live in their own modules and are imported explicitly:
- coordinator: StateSlot, MutationCoordinator
- controller: OrderController
- draft: OrderDraft, OrderDraftController
- order_list: ListFilters, OrderListController
- model: OrdersTableModel
- notifications: SmtpOrderNotifier
"""

from .errors import (
    OrderError,
    ValidationError,
    InvalidManualPrice,
    EmptyOrderError,
    TransitionBlocked,
    ConfirmationRequired,
    MutationInFlight,
    RemoteFailure,
    NotificationFailure,
)
from .entities import (
    Order,
    OrderItem,
    OrderScope,
    SessionContext,
    ShippingMode,
    Stage,
    TransportMode,
)
from .calculations import ListTotals, OrderTotals, list_totals, order_totals
from .stages import apply_transition, ensure_delete_allowed, plan_transition
# pricing pulls in the catalog repo; keep it last
from .pricing import build_line_item, resolve_price

__all__ = [
    "OrderError",
    "ValidationError",
    "InvalidManualPrice",
    "EmptyOrderError",
    "TransitionBlocked",
    "ConfirmationRequired",
    "MutationInFlight",
    "RemoteFailure",
    "NotificationFailure",
    "Order",
    "OrderItem",
    "OrderScope",
    "SessionContext",
    "ShippingMode",
    "Stage",
    "TransportMode",
    "ListTotals",
    "OrderTotals",
    "list_totals",
    "order_totals",
    "apply_transition",
    "ensure_delete_allowed",
    "plan_transition",
    "build_line_item",
    "resolve_price",
]
