"""
Order Service — Create, update, approve and delete orders atomically.

One order write is one unit of work (a SAVEPOINT inside the request
transaction, bounded by ``order_transaction_timeout_seconds``):

  1. Resolve customer (404 if absent), salesperson, optional van source
  2. Apply the selected promotion, if any (specific rejection reasons)
  3. Money: subtotal = Σ qty × price; discount from the promotion (capped at
     subtotal); total = subtotal − discount + tax + shipping. The header
     amounts are spread over paid lines in whole cents, so Σ line totals
     == total
  4. Order number: kept on update, caller-supplied, or generated
  5. Lines fully replaced on update: previous consumption is reversed,
     then every line (and every free gift) consumes inventory again
  6. Side effects (notification, approval workflow, promotion usage) are
     written to the outbox and delivered after commit

Routers commit; nothing here calls ``db.commit()``.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.errors import (
    InternalError,
    InvalidStateTransition,
    NotFoundError,
    OrderNotFound,
    SourceNotFound,
    ValidationError,
)
from core.money import ZERO, allocate, to_money
from db.enums import (
    ApprovalAction,
    ApprovalStatus,
    MovementType,
    OrderStatus,
    OutboxEventType,
)
from db.models import Customer, Order, OrderItem, VanInventory
from inventory.ledger import (
    BatchAllocation,
    SaleReference,
    TrackingDetail,
    allocate_free_gift,
    apply_line_consumption,
    reverse_order_consumption,
)
from notifications.handlers import REQUEST_TYPE_ORDER_APPROVAL, close_approval_workflow
from notifications.outbox import enqueue_event
from orders.numbering import generate_order_number
from promotions.evaluator import AppliedPromotion, apply_selected_promotion
from promotions.service import build_context, line_input, load_customer, load_products, load_promotion

logger = structlog.get_logger()


@dataclass
class OrderLineInput:
    product_id: uuid.UUID
    quantity: int
    unit_price: Decimal | None = None
    notes: str | None = None
    batches: list[BatchAllocation] = field(default_factory=list)
    serials: list[str] = field(default_factory=list)


@dataclass
class OrderInput:
    """Caller-supplied order fields. ``items=None`` on update keeps the current lines."""

    customer_id: uuid.UUID | None = None
    items: list[OrderLineInput] | None = None
    order_id: uuid.UUID | None = None
    order_number: str | None = None
    salesperson_id: uuid.UUID | None = None
    currency_id: uuid.UUID | None = None
    promotion_id: uuid.UUID | None = None
    van_inventory_id: uuid.UUID | None = None
    depot_id: uuid.UUID | None = None
    route_id: uuid.UUID | None = None
    channel: str | None = None
    order_date: date | None = None
    delivery_date: date | None = None
    status: OrderStatus | None = None
    approval_status: ApprovalStatus | None = None
    priority: str | None = None
    order_type: str | None = None
    payment_method: str | None = None
    payment_terms: str | None = None
    tax_amount: Decimal | None = None
    shipping_amount: Decimal | None = None
    notes: str | None = None
    shipping_address: str | None = None
    is_active: str | None = None


@dataclass
class OrderResult:
    order: Order
    created: bool
    applied_promotion: AppliedPromotion | None = None


@dataclass
class OrderFilters:
    search: str | None = None
    salesperson_id: uuid.UUID | None = None
    customer_id: uuid.UUID | None = None
    status: str | None = None
    is_active: str | None = None
    route_ids: list[uuid.UUID] = field(default_factory=list)

    def applied(self) -> dict:
        return {
            "search": self.search,
            "salesperson_id": str(self.salesperson_id) if self.salesperson_id else None,
            "customer_id": str(self.customer_id) if self.customer_id else None,
            "status": self.status,
            "is_active": self.is_active,
            "route_ids": [str(r) for r in self.route_ids],
        }


# ── Reads ─────────────────────────────────────────────────────────────────


async def _lock_order(db: AsyncSession, *criteria) -> Order | None:
    result = await db.execute(select(Order).where(*criteria).with_for_update())
    return result.scalar_one_or_none()


async def get_order(db: AsyncSession, order_id: uuid.UUID) -> Order:
    """Fresh copy of an order with its lines and lookups."""
    result = await db.execute(
        select(Order).where(Order.order_id == order_id).execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFound("Order not found", order_id=order_id)
    return order


async def get_order_items(db: AsyncSession, order_id: uuid.UUID) -> list[OrderItem]:
    order = await get_order(db, order_id)
    if not order.items:
        raise NotFoundError("No items found for this order", order_id=order_id)
    return list(order.items)


def promotion_summary(order: Order) -> dict | None:
    """Rebuild the applied-promotion block from the stored promotion and free-gift lines."""
    if order.promotion is None:
        return None
    return {
        "promotion_id": str(order.promotion.promotion_id),
        "promotion_code": order.promotion.code,
        "promotion_name": order.promotion.name,
        "discount_amount": float(order.discount_amount or 0),
        "free_products": [
            {
                "product_id": str(item.product_id),
                "product_name": item.product_name,
                "quantity": item.quantity,
            }
            for item in order.items
            if item.is_free_gift
        ],
    }


def _filtered(query, filters: OrderFilters):
    if filters.search:
        term = f"%{filters.search.strip()}%"
        query = query.where(
            or_(
                Order.order_number.ilike(term),
                Order.status.ilike(term),
                Order.notes.ilike(term),
                Customer.name.ilike(term),
            )
        )
    if filters.salesperson_id:
        query = query.where(Order.salesperson_id == filters.salesperson_id)
    if filters.customer_id:
        query = query.where(Order.customer_id == filters.customer_id)
    if filters.status:
        query = query.where(Order.status == filters.status)
    if filters.is_active:
        query = query.where(Order.is_active == filters.is_active)
    if filters.route_ids:
        query = query.where(Customer.route_id.in_(filters.route_ids))
    return query


async def list_orders(
    db: AsyncSession,
    filters: OrderFilters,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Order], int]:
    base = _filtered(select(Order).join(Customer, Customer.customer_id == Order.customer_id), filters)
    total = await db.scalar(select(func.count()).select_from(base.subquery()))
    result = await db.execute(
        base.order_by(Order.created_at.desc(), Order.order_number.desc()).offset((page - 1) * limit).limit(limit)
    )
    return list(result.scalars().all()), int(total or 0)


async def order_stats(db: AsyncSession, filters: OrderFilters) -> dict:
    today = date.today()
    month_start = datetime(today.year, today.month, 1)
    joined = select(Order).join(Customer, Customer.customer_id == Order.customer_id)

    async def count(*criteria) -> int:
        query = _filtered(joined.where(*criteria) if criteria else joined, filters)
        return int(await db.scalar(select(func.count()).select_from(query.subquery())) or 0)

    stats = {
        "total_orders": await count(),
        "active_orders": await count(Order.is_active == "Y"),
        "inactive_orders": await count(Order.is_active == "N"),
        "orders_this_month": await count(Order.created_at >= month_start),
        "filters_applied": filters.applied(),
    }

    if filters.route_ids:
        customers_in_routes = await db.scalar(
            select(func.count(Customer.customer_id)).where(Customer.route_id.in_(filters.route_ids))
        )
        totals = _filtered(joined, filters).subquery()
        row = (
            await db.execute(select(func.coalesce(func.sum(totals.c.total_amount), 0), func.count()).select_from(totals))
        ).one()
        order_value = to_money(row[0])
        order_count = int(row[1] or 0)
        stats["route_statistics"] = {
            "route_ids": [str(r) for r in filters.route_ids],
            "customers_in_routes": int(customers_in_routes or 0),
            "total_order_value": float(order_value),
            "average_order_value": float(to_money(order_value / order_count)) if order_count else 0.0,
        }
    return stats


# ── Writes ────────────────────────────────────────────────────────────────


def _require_actor(actor_id: uuid.UUID | None) -> uuid.UUID:
    if actor_id is None:
        raise ValidationError("Acting user is required")
    return actor_id


async def _run_bounded(db: AsyncSession, coro, what: str):
    timeout = get_settings().order_transaction_timeout_seconds
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError as exc:
        # The cancelled unit of work may have stopped mid-flush.
        await db.rollback()
        logger.error("orders.transaction_timeout", operation=what, timeout_seconds=timeout)
        raise InternalError(f"Order {what} timed out after {timeout} seconds") from exc


def _validate_lines(items: list[OrderLineInput]) -> None:
    for item in items:
        if item.quantity is None or item.quantity <= 0:
            raise ValidationError("Line quantity must be a positive integer", product_id=item.product_id)
        if item.unit_price is not None and to_money(item.unit_price) < 0:
            raise ValidationError("Unit price cannot be negative", product_id=item.product_id)


def _non_negative(value, label: str) -> Decimal | None:
    if value is None:
        return None
    amount = to_money(value)
    if amount < 0:
        raise ValidationError(f"{label} cannot be negative")
    return amount


def _caller_approval_status(value: ApprovalStatus | None) -> str | None:
    if value is None:
        return None
    if value not in ApprovalStatus.awaiting_decision():
        raise ValidationError("approval_status can only be set to pending or submitted; use approve-or-reject")
    return value.value


async def _load_van(db: AsyncSession, van_inventory_id: uuid.UUID | None) -> VanInventory | None:
    if van_inventory_id is None:
        return None
    van = await db.get(VanInventory, van_inventory_id)
    if van is None:
        raise SourceNotFound("Van inventory not found", van_inventory_id=van_inventory_id)
    return van


def _join_notes(*parts: str | None) -> str | None:
    text = " | ".join(p for p in parts if p)
    return text or None


async def _build_lines(
    db: AsyncSession,
    order: Order,
    items: list[OrderLineInput],
    products: dict,
    applied: AppliedPromotion | None,
    discount: Decimal,
    tax: Decimal,
    shipping: Decimal,
    van: VanInventory | None,
    actor_id: uuid.UUID,
) -> None:
    settings = get_settings()
    priced = [line_input(products[i.product_id], i.quantity, i.unit_price) for i in items]
    weights = [p.value for p in priced]
    discount_shares = allocate(discount, weights)
    tax_shares = allocate(tax, weights)
    shipping_shares = allocate(shipping, weights)

    reference = SaleReference(
        order_id=order.order_id,
        order_number=order.order_number,
        customer_id=order.customer_id,
        acting_user_id=actor_id,
    )

    line_number = 0
    for item, price, discount_share, tax_share, shipping_share in zip(
        items, priced, discount_shares, tax_shares, shipping_shares
    ):
        product = products[item.product_id]
        consumption = await apply_line_consumption(
            db,
            product,
            item.quantity,
            tracking_detail=TrackingDetail(batches=list(item.batches), serials=list(item.serials)),
            reference=reference,
            source=van,
        )
        line_number += 1
        gross = to_money(price.unit_price * consumption.consumed_qty)
        order.items.append(
            OrderItem(
                line_number=line_number,
                product_id=product.product_id,
                product_name=product.name,
                unit=product.unit or "pcs",
                quantity=consumption.consumed_qty,
                unit_price=price.unit_price,
                discount_amount=discount_share,
                tax_amount=tax_share,
                total_amount=gross - discount_share + tax_share + shipping_share,
                notes=_join_notes(item.notes, consumption.notes),
                is_free_gift=False,
            )
        )

    if applied is None or not applied.free_products:
        return

    gift_products = await load_products(db, [fp.product_id for fp in applied.free_products])
    gift_reference = SaleReference(
        order_id=order.order_id,
        order_number=order.order_number,
        customer_id=order.customer_id,
        acting_user_id=actor_id,
        movement_type=MovementType.FREE_GIFT,
    )
    for gift in applied.free_products:
        product = gift_products[gift.product_id]
        stock_notes = None
        if settings.free_gifts_consume_inventory:
            detail = await allocate_free_gift(db, product, gift.quantity)
            consumption = await apply_line_consumption(
                db,
                product,
                gift.quantity,
                tracking_detail=detail,
                reference=gift_reference,
                source=van,
            )
            stock_notes = consumption.notes
        line_number += 1
        order.items.append(
            OrderItem(
                line_number=line_number,
                product_id=product.product_id,
                product_name=product.name,
                unit=product.unit or "pcs",
                quantity=gift.quantity,
                unit_price=ZERO,
                discount_amount=ZERO,
                tax_amount=ZERO,
                total_amount=ZERO,
                notes=_join_notes(f"Free gift from promotion: {applied.promotion_name}", stock_notes),
                is_free_gift=True,
            )
        )


def _reallocate_charges(order: Order, tax: Decimal, shipping: Decimal) -> None:
    """Spread changed header tax and shipping over the existing paid lines."""
    paid = [i for i in order.items if not i.is_free_gift]
    weights = [to_money(i.unit_price * i.quantity) for i in paid]
    for item, weight, tax_share, shipping_share in zip(
        paid, weights, allocate(tax, weights), allocate(shipping, weights)
    ):
        item.tax_amount = tax_share
        item.total_amount = weight - to_money(item.discount_amount) + tax_share + shipping_share


def _enqueue_side_effects(
    db: AsyncSession,
    order: Order,
    actor_id: uuid.UUID,
    *,
    event_kind: str,
    request_approval: bool,
    applied: AppliedPromotion | None,
) -> None:
    enqueue_event(
        db,
        OutboxEventType.ORDER_NOTIFICATION,
        order.order_id,
        {
            "user_id": order.salesperson_id,
            "order_id": order.order_id,
            "order_number": order.order_number,
            "event_kind": event_kind,
            "acting_user_id": actor_id,
        },
    )
    if request_approval:
        enqueue_event(
            db,
            OutboxEventType.APPROVAL_REQUESTED,
            order.order_id,
            {
                "requester_id": order.salesperson_id,
                "request_type": REQUEST_TYPE_ORDER_APPROVAL,
                "reference_id": order.order_id,
                "created_by": actor_id,
                "log_inst": order.log_inst,
            },
        )
    if applied is not None and event_kind == "created":
        enqueue_event(
            db,
            OutboxEventType.PROMOTION_APPLIED,
            order.order_id,
            {"promotion_id": applied.promotion_id, "order_id": order.order_id, "user_id": actor_id},
        )


async def _write_order(
    db: AsyncSession,
    data: OrderInput,
    existing: Order | None,
    actor_id: uuid.UUID,
) -> OrderResult:
    settings = get_settings()
    creating = existing is None
    items = data.items

    if creating:
        if data.customer_id is None:
            raise ValidationError("customer_id is required")
        if not items:
            raise ValidationError("At least one order item is required")
    elif items is not None and not items:
        items = None
    if items is not None:
        _validate_lines(items)

    tax_input = _non_negative(data.tax_amount, "Tax amount")
    shipping_input = _non_negative(data.shipping_amount, "Shipping amount")
    approval_status = _caller_approval_status(data.approval_status)

    customer = await load_customer(db, data.customer_id or existing.customer_id)
    salesperson_id = data.salesperson_id or (existing.salesperson_id if existing else None) or actor_id
    van_id = data.van_inventory_id or (existing.van_inventory_id if existing else None)
    van = await _load_van(db, van_id)
    order_date = data.order_date or (existing.order_date if existing else None) or date.today()

    applied: AppliedPromotion | None = None
    products: dict = {}
    if items is not None:
        products = await load_products(db, [i.product_id for i in items])
        priced = [line_input(products[i.product_id], i.quantity, i.unit_price) for i in items]
        if data.promotion_id is not None:
            ctx = build_context(
                customer,
                order_date=order_date,
                salesperson_id=salesperson_id,
                depot_id=data.depot_id,
                route_id=data.route_id,
                channel=data.channel,
            )
            promotion = await load_promotion(db, data.promotion_id)
            applied = apply_selected_promotion(promotion, ctx, priced, promotion_id=data.promotion_id)
        subtotal = to_money(sum((p.value for p in priced), ZERO))
        discount = min(applied.discount_amount, subtotal) if applied else ZERO
        promotion_id = applied.promotion_id if applied else None
    else:
        if data.promotion_id is not None and data.promotion_id != existing.promotion_id:
            raise ValidationError("Changing the promotion requires the order items")
        subtotal = to_money(existing.subtotal)
        discount = to_money(existing.discount_amount)
        promotion_id = existing.promotion_id

    if tax_input is not None:
        tax = tax_input
    else:
        tax = to_money(existing.tax_amount) if existing else ZERO
    if shipping_input is not None:
        shipping = shipping_input
    else:
        shipping = to_money(existing.shipping_amount) if existing else ZERO
    total = subtotal - discount + tax + shipping

    now = datetime.utcnow()
    reset_approval = False
    if creating:
        if data.order_number:
            order_number = data.order_number
        else:
            order_number = await generate_order_number(db)
        order = Order(
            order_id=uuid.uuid4(),
            order_number=order_number,
            customer_id=customer.customer_id,
            salesperson_id=salesperson_id,
            approval_status=approval_status or ApprovalStatus.PENDING.value,
            status=(data.status or OrderStatus.DRAFT).value,
            is_active=data.is_active or "Y",
            created_by=actor_id,
            created_at=now,
            log_inst=1,
            items=[],
        )
        db.add(order)
    else:
        order = existing
        material = (
            items is not None
            or customer.customer_id != order.customer_id
            or to_money(order.tax_amount) != tax
            or to_money(order.shipping_amount) != shipping
            or to_money(order.total_amount) != total
        )
        if (
            material
            and settings.reset_approval_on_material_change
            and order.approval_status == ApprovalStatus.APPROVED.value
        ):
            reset_approval = True
            order.approval_status = ApprovalStatus.PENDING.value
            order.status = OrderStatus.DRAFT.value
            order.approved_by = None
            order.approved_at = None
        elif approval_status is not None:
            order.approval_status = approval_status
        if data.status is not None and not reset_approval:
            order.status = data.status.value
        if data.is_active is not None:
            order.is_active = data.is_active
        order.customer_id = customer.customer_id
        order.salesperson_id = salesperson_id
        order.updated_by = actor_id
        order.updated_at = now
        order.log_inst = (order.log_inst or 0) + 1

    order.currency_id = data.currency_id or order.currency_id
    order.promotion_id = promotion_id
    order.van_inventory_id = van.van_inventory_id if van is not None else None
    order.order_date = order_date
    order.delivery_date = data.delivery_date or order.delivery_date
    order.priority = data.priority or order.priority or "medium"
    order.order_type = data.order_type or order.order_type or "regular"
    order.payment_method = data.payment_method or order.payment_method or "credit"
    order.payment_terms = data.payment_terms or order.payment_terms or "Net 30"
    if data.notes is not None:
        order.notes = data.notes
    if data.shipping_address is not None:
        order.shipping_address = data.shipping_address
    order.subtotal = subtotal
    order.discount_amount = discount
    order.tax_amount = tax
    order.shipping_amount = shipping
    order.total_amount = total

    if items is not None:
        if not creating:
            await reverse_order_consumption(
                db, order.order_id, actor_id, f"Order {order.order_number} updated: lines replaced"
            )
            order.items.clear()
            await db.flush()
        await _build_lines(db, order, items, products, applied, discount, tax, shipping, van, actor_id)
    elif tax_input is not None or shipping_input is not None:
        _reallocate_charges(order, tax, shipping)

    _enqueue_side_effects(
        db,
        order,
        actor_id,
        event_kind="created" if creating else "updated",
        request_approval=creating or reset_approval,
        applied=applied,
    )
    await db.flush()

    logger.info(
        "orders.created" if creating else "orders.updated",
        order_number=order.order_number,
        customer_id=str(order.customer_id),
        total_amount=str(total),
        promotion=applied.promotion_code if applied else None,
        approval_reset=reset_approval,
    )
    return OrderResult(order=order, created=creating, applied_promotion=applied)


async def save_order(
    db: AsyncSession,
    data: OrderInput,
    *,
    actor_id: uuid.UUID | None,
) -> OrderResult:
    """
    Create an order, or update it when ``order_id`` / ``order_number`` names an existing one.

    All-or-nothing: any failure rolls the savepoint back, leaving no order,
    line, movement or stock change behind.
    """
    actor = _require_actor(actor_id)

    async def unit_of_work() -> OrderResult:
        existing = None
        if data.order_id is not None:
            existing = await _lock_order(db, Order.order_id == data.order_id)
            if existing is None:
                raise OrderNotFound("Order not found", order_id=data.order_id)
        elif data.order_number:
            existing = await _lock_order(db, Order.order_number == data.order_number)

        async with db.begin_nested():
            result = await _write_order(db, data, existing, actor)
        result.order = await get_order(db, result.order.order_id)
        return result

    return await _run_bounded(db, unit_of_work(), "save")


async def update_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    data: OrderInput,
    *,
    actor_id: uuid.UUID | None,
) -> OrderResult:
    data.order_id = order_id
    data.order_number = None
    return await save_order(db, data, actor_id=actor_id)


async def approve_or_reject_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    action: ApprovalAction,
    *,
    actor_id: uuid.UUID | None,
    comments: str | None = None,
    approved_by: uuid.UUID | None = None,
) -> Order:
    """pending/submitted → approved (confirmed) or rejected (cancelled)."""
    actor = _require_actor(actor_id)
    if not isinstance(action, ApprovalAction):
        try:
            action = ApprovalAction(action)
        except ValueError as exc:
            raise ValidationError("Action must be either 'approved' or 'rejected'") from exc

    async def unit_of_work() -> Order:
        order = await _lock_order(db, Order.order_id == order_id)
        if order is None:
            raise OrderNotFound("Order not found", order_id=order_id)
        if order.approval_status not in {s.value for s in ApprovalStatus.awaiting_decision()}:
            raise InvalidStateTransition(
                f"Order is already {order.approval_status}",
                order_id=order_id,
                approval_status=order.approval_status,
            )

        decider = approved_by or actor
        now = datetime.utcnow()
        async with db.begin_nested():
            if action == ApprovalAction.APPROVED:
                order.approval_status = ApprovalStatus.APPROVED.value
                order.status = OrderStatus.CONFIRMED.value
            else:
                order.approval_status = ApprovalStatus.REJECTED.value
                order.status = OrderStatus.CANCELLED.value
                order.rejection_reason = comments or "Rejected"
                await reverse_order_consumption(db, order.order_id, actor, f"Order {order.order_number} rejected")
            order.approved_by = decider
            order.approved_at = now
            if comments:
                order.notes = f"{order.notes or ''}\n\nApproval Comments: {comments}".lstrip("\n")
            order.updated_by = actor
            order.updated_at = now
            order.log_inst = (order.log_inst or 0) + 1

            await close_approval_workflow(db, order, action, decider, comments)

            recipients = dict.fromkeys([order.created_by, order.salesperson_id])
            for user_id in recipients:
                enqueue_event(
                    db,
                    OutboxEventType.ORDER_NOTIFICATION,
                    order.order_id,
                    {
                        "user_id": user_id,
                        "order_id": order.order_id,
                        "order_number": order.order_number,
                        "event_kind": action.value,
                        "acting_user_id": decider,
                    },
                )
            await db.flush()

        logger.info("orders.approval_decided", order_number=order.order_number, action=action.value)
        return await get_order(db, order_id)

    return await _run_bounded(db, unit_of_work(), "approval")


async def delete_order(db: AsyncSession, order_id: uuid.UUID, *, actor_id: uuid.UUID | None) -> str:
    """Delete an order and its lines, returning what it consumed to stock first."""
    actor = _require_actor(actor_id)
    order = await _lock_order(db, Order.order_id == order_id)
    if order is None:
        raise OrderNotFound("Order not found", order_id=order_id)

    order_number = order.order_number
    async with db.begin_nested():
        await reverse_order_consumption(db, order.order_id, actor, f"Order {order_number} deleted")
        await db.delete(order)
        await db.flush()
    logger.info("orders.deleted", order_number=order_number)
    return order_number
