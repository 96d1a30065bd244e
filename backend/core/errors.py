"""
Error taxonomy for the order-processing flow.

Every failure the order, promotion and inventory services raise is an
``AppError``. The API layer maps each class to an HTTP status and the
standard ``{success, message, error}`` envelope; nothing below the routers
knows about HTTP.

    ValidationError   400  missing/malformed input
    NotFoundError     404  entity absent
    ConflictError     400  client must adjust and resubmit (stock, promotions)
    InternalError     500  unexpected database/runtime failure
"""


class AppError(Exception):
    """Base class for client-visible failures."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"code": self.code, **{k: str(v) for k, v in self.context.items()}}


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class ConflictError(AppError):
    status_code = 400
    code = "conflict"


class InternalError(AppError):
    status_code = 500
    code = "internal_error"


# ── Not found ─────────────────────────────────────────────────────────────


class CustomerNotFound(NotFoundError):
    code = "customer_not_found"


class ProductNotFound(NotFoundError):
    code = "product_not_found"


class OrderNotFound(NotFoundError):
    code = "order_not_found"


class SourceNotFound(NotFoundError):
    code = "source_not_found"


class PromotionNotFound(NotFoundError):
    code = "promotion_not_found"


# ── Promotion rejections ──────────────────────────────────────────────────


class PromotionRejected(ConflictError):
    """Selected promotion cannot be applied to this order."""

    code = "promotion_rejected"


class PromotionInactive(PromotionRejected):
    code = "promotion_inactive"


class PromotionExcluded(PromotionRejected):
    code = "promotion_excluded"


class PromotionIneligible(PromotionRejected):
    code = "promotion_ineligible"


class PromotionConditionsUnmet(PromotionRejected):
    code = "promotion_conditions_unmet"


# ── Inventory ─────────────────────────────────────────────────────────────


class InsufficientInventory(ConflictError):
    code = "insufficient_inventory"


class BatchQuantityMismatch(ConflictError):
    code = "batch_quantity_mismatch"


class SerialUnavailable(ConflictError):
    code = "serial_unavailable"


class InventoryRecordMissing(ConflictError):
    code = "inventory_record_missing"


# ── Workflow ──────────────────────────────────────────────────────────────


class InvalidStateTransition(ConflictError):
    status_code = 409
    code = "invalid_state_transition"
