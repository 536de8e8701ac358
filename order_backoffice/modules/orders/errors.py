from __future__ import annotations


# ----------------------------
# Order domain errors (friendly)
# ----------------------------
class OrderError(Exception):
    """Base class for order domain errors; the message is safe to show to the operator."""


class ValidationError(OrderError):
    """Bad operator input; rejected before any mutation is attempted."""
    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.field = field


class InvalidManualPrice(ValidationError):
    """Manual sale price override is not a finite number >= 0."""
    def __init__(self, message: str = "Manual sale price must be a number (0 or more).", *, field: str | None = "manual_sale_price"):
        super().__init__(message, field=field)


class EmptyOrderError(ValidationError):
    """An order would be left (or submitted) without line items."""
    def __init__(self, message: str = "An order must keep at least one item.", *, field: str | None = "items"):
        super().__init__(message, field=field)


class TransitionBlocked(OrderError):
    """A stage precondition is unmet (e.g. missing shipment number); the stage did not change."""


class ConfirmationRequired(OrderError):
    """Deleting this order needs the typed confirmation phrase."""


class MutationInFlight(OrderError):
    """Another mutation against the same order is still pending."""


class RemoteFailure(OrderError):
    """The store call failed; local state was rolled back before this was raised."""


class NotificationFailure(OrderError):
    """The best-effort e-mail could not be sent; nothing is rolled back."""
