"""
Order side effects: notifications, approval workflows, promotion usage.

These run after the order transaction has committed (delivered through the
outbox), except ``close_approval_workflow`` which is part of the
approve/reject transaction itself.
"""

import json
import uuid
from datetime import datetime
from decimal import Decimal

import structlog
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.errors import OrderNotFound
from db.enums import ApprovalAction, WorkflowStatus
from db.models import (
    ApprovalRequest,
    ApprovalWorkflow,
    Notification,
    Order,
    PromotionTracking,
    User,
    WorkflowStep,
)

logger = structlog.get_logger()

REQUEST_TYPE_ORDER_APPROVAL = "ORDER_APPROVAL"

_TITLES = {
    "created": "New Order Created",
    "updated": "Order Updated",
    "approved": "Order Approved",
    "rejected": "Order Rejected",
    "approval_requested": "Order Approval Required",
}


def approval_priority(total_amount) -> str:
    """Workflow priority from the order total."""
    settings = get_settings()
    total = Decimal(str(total_amount or 0))
    if total >= Decimal(str(settings.approval_priority_urgent)):
        return "urgent"
    if total >= Decimal(str(settings.approval_priority_high)):
        return "high"
    if total >= Decimal(str(settings.approval_priority_medium)):
        return "medium"
    return "low"


async def notify_order_event(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    order_id: uuid.UUID,
    order_number: str,
    event_kind: str,
    acting_user_id: uuid.UUID,
) -> Notification:
    title = _TITLES.get(event_kind, "Order Update")
    notification = Notification(
        user_id=user_id,
        title=title,
        message=f"Order {order_number} {event_kind.replace('_', ' ')}",
        category="order",
        reference_type="order",
        reference_id=order_id,
        created_by=acting_user_id,
    )
    db.add(notification)
    await db.flush()
    logger.info("notifications.order_event", order_number=order_number, event_kind=event_kind, user_id=str(user_id))
    return notification


async def record_promotion_usage(
    db: AsyncSession,
    *,
    promotion_id: uuid.UUID,
    order_id: uuid.UUID,
    user_id: uuid.UUID,
) -> PromotionTracking:
    tracking = PromotionTracking(
        promotion_id=promotion_id,
        order_id=order_id,
        action_type="APPLIED",
        action_date=datetime.utcnow(),
        user_id=user_id,
        comments="Promotion applied to order",
    )
    db.add(tracking)
    await db.flush()
    return tracking


async def _approvers(db: AsyncSession, requester: User | None) -> list[uuid.UUID]:
    ids = []
    if requester is not None and requester.parent_id:
        ids.append(requester.parent_id)
    result = await db.execute(
        select(User.user_id).where(User.is_active.is_(True), User.role.ilike("%manager%"))
    )
    ids.extend(result.scalars().all())
    return list(dict.fromkeys(ids))


async def open_workflow(db: AsyncSession, order_id: uuid.UUID) -> ApprovalWorkflow | None:
    result = await db.execute(
        select(ApprovalWorkflow).where(
            ApprovalWorkflow.reference_type == "order",
            ApprovalWorkflow.reference_id == order_id,
            or_(
                ApprovalWorkflow.status == WorkflowStatus.PENDING.value,
                ApprovalWorkflow.status == WorkflowStatus.IN_PROGRESS.value,
            ),
        )
    )
    return result.scalars().first()


async def open_approval_request(
    db: AsyncSession,
    *,
    requester_id: uuid.UUID,
    request_type: str,
    reference_id: uuid.UUID,
    created_by: uuid.UUID,
    log_inst: int,
) -> ApprovalWorkflow:
    """
    Open the approval request + two-step workflow for an order.

    Idempotent per order: an already open workflow is returned untouched.
    Supervisors and managers are notified, and so is the creator.
    """
    order = await db.get(Order, reference_id)
    if order is None:
        raise OrderNotFound("Order not found", order_id=reference_id)

    existing = await open_workflow(db, order.order_id)
    if existing is not None:
        return existing

    summary = {
        "order_number": order.order_number,
        "customer_id": str(order.customer_id),
        "total_amount": str(order.total_amount),
        "order_date": order.order_date.isoformat() if order.order_date else None,
    }
    db.add(
        ApprovalRequest(
            requester_id=requester_id,
            request_type=request_type,
            reference_id=order.order_id,
            request_data=json.dumps(summary),
            status="P",
            created_by=created_by,
            log_inst=log_inst,
        )
    )

    requester = await db.get(User, requester_id)
    manager_id = requester.parent_id if requester is not None else None
    workflow = ApprovalWorkflow(
        reference_type="order",
        reference_id=order.order_id,
        reference_number=order.order_number,
        requester_id=requester_id,
        priority=approval_priority(order.total_amount),
        status=WorkflowStatus.PENDING.value,
        request_data=summary,
        created_by=created_by,
        steps=[
            WorkflowStep(step_order=1, step_name="Supervisor Approval", assigned_role="Supervisor", assigned_user_id=manager_id),
            WorkflowStep(step_order=2, step_name="Manager Approval", assigned_role="Manager"),
        ],
    )
    db.add(workflow)
    await db.flush()

    for approver_id in await _approvers(db, requester):
        await notify_order_event(
            db,
            user_id=approver_id,
            order_id=order.order_id,
            order_number=order.order_number,
            event_kind="approval_requested",
            acting_user_id=created_by,
        )
    await notify_order_event(
        db,
        user_id=created_by,
        order_id=order.order_id,
        order_number=order.order_number,
        event_kind="created",
        acting_user_id=created_by,
    )

    logger.info(
        "approvals.workflow_opened",
        order_number=order.order_number,
        priority=workflow.priority,
    )
    return workflow


async def close_approval_workflow(
    db: AsyncSession,
    order: Order,
    action: ApprovalAction,
    actor_id: uuid.UUID,
    comments: str | None = None,
) -> ApprovalWorkflow | None:
    """Mirror an approve/reject decision onto the order's open workflow and requests."""
    now = datetime.utcnow()
    approved = action == ApprovalAction.APPROVED

    result = await db.execute(
        select(ApprovalRequest).where(
            ApprovalRequest.request_type == REQUEST_TYPE_ORDER_APPROVAL,
            ApprovalRequest.reference_id == order.order_id,
            ApprovalRequest.status == "P",
        )
    )
    for request in result.scalars().all():
        request.status = "A" if approved else "R"
        request.updated_at = now
        request.log_inst = (request.log_inst or 0) + 1

    workflow = await open_workflow(db, order.order_id)
    if workflow is None:
        return None

    workflow.updated_at = now
    if approved:
        workflow.status = WorkflowStatus.APPROVED.value
        workflow.final_approved_by = actor_id
        workflow.final_approved_at = now
    else:
        workflow.status = WorkflowStatus.REJECTED.value
        workflow.rejected_by = actor_id
        workflow.rejected_at = now
        workflow.rejection_reason = comments or "Rejected"

    for step in workflow.steps:
        if step.status == "pending":
            step.status = "completed" if approved else "rejected"
            step.updated_at = now

    logger.info("approvals.workflow_closed", order_number=order.order_number, status=workflow.status)
    return workflow
