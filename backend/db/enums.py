"""
Closed vocabularies shared by models, services and routers.

Status columns are only ever written through these enums; the CHECK
constraints in db/models.py are generated from the same values.
"""

from enum import Enum


class TrackingType(str, Enum):
    """How individual units of a product are identified in stock."""

    NONE = "none"
    BATCH = "batch"
    SERIAL = "serial"


class OrderStatus(str, Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def awaiting_decision(cls) -> tuple["ApprovalStatus", ...]:
        return (cls.PENDING, cls.SUBMITTED)


class ApprovalAction(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class SerialStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    SOLD = "sold"
    RETURNED = "returned"
    DAMAGED = "damaged"


class MovementType(str, Enum):
    SALE = "SALE"
    FREE_GIFT = "FREE_GIFT"
    SALE_REVERSAL = "SALE_REVERSAL"


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


class BenefitType(str, Enum):
    FREE_PRODUCT = "FREE_PRODUCT"


class OutboxStatus(str, Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


class OutboxEventType(str, Enum):
    ORDER_NOTIFICATION = "order.notification"
    APPROVAL_REQUESTED = "order.approval_requested"
    PROMOTION_APPLIED = "promotion.applied"


class WorkflowStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    APPROVED = "approved"
    REJECTED = "rejected"


def check_in(column: str, enum_cls: type[Enum]) -> str:
    """SQL fragment for a CHECK constraint restricting column to enum values."""
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"
