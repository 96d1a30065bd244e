"""
Orders Router — Order capture and approval endpoints.

  POST   /api/v1/orders                         create (or upsert by id / order_number)
  GET    /api/v1/orders                         paginated list + stats
  GET    /api/v1/orders/{id}                    single order with lines
  GET    /api/v1/orders/{id}/items              lines only
  PUT    /api/v1/orders/{id}                    full update (lines replaced)
  DELETE /api/v1/orders/{id}                    delete order + lines
  POST   /api/v1/orders/{id}/approve-or-reject  approval decision

Inventory consumption, promotions and order numbering live in orders.service;
this module only maps HTTP ⇄ service calls and commits.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_actor_id, get_current_user, get_db
from api.responses import Envelope, paginate
from core.errors import ValidationError
from db.enums import ApprovalStatus, OrderStatus
from inventory.ledger import BatchAllocation
from orders import service
from orders.service import OrderFilters, OrderInput, OrderLineInput

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class BatchIn(BaseModel):
    batch_lot_id: UUID
    quantity: int = Field(..., gt=0)


class OrderItemIn(BaseModel):
    product_id: UUID
    quantity: int = Field(..., gt=0)
    unit_price: Decimal | None = Field(None, ge=0)
    notes: str | None = None
    batches: list[BatchIn] = []
    serials: list[str] = []


class OrderUpdate(BaseModel):
    customer_id: UUID | None = None
    salesperson_id: UUID | None = None
    currency_id: UUID | None = None
    promotion_id: UUID | None = None
    van_inventory_id: UUID | None = None
    depot_id: UUID | None = None
    route_id: UUID | None = None
    channel: str | None = None
    order_date: date | None = None
    delivery_date: date | None = None
    status: OrderStatus | None = None
    approval_status: ApprovalStatus | None = None
    priority: Literal["low", "medium", "high", "urgent"] | None = None
    order_type: str | None = None
    payment_method: str | None = None
    payment_terms: str | None = None
    tax_amount: Decimal | None = Field(None, ge=0)
    shipping_amount: Decimal | None = Field(None, ge=0)
    notes: str | None = None
    shipping_address: str | None = None
    is_active: Literal["Y", "N"] | None = None
    items: list[OrderItemIn] | None = None


class OrderCreate(OrderUpdate):
    """Create, or update when ``id`` / ``order_number`` matches an existing order."""

    id: UUID | None = None
    order_number: str | None = None


class ApprovalDecision(BaseModel):
    action: str
    comments: str | None = None
    approved_by: UUID | None = None


class PartyBrief(BaseModel):
    name: str
    model_config = {"from_attributes": True}


class CustomerBrief(PartyBrief):
    customer_id: UUID
    code: str


class SalespersonBrief(PartyBrief):
    user_id: UUID
    email: str


class OrderItemResponse(BaseModel):
    item_id: UUID
    order_id: UUID
    line_number: int
    product_id: UUID
    product_name: str | None
    unit: str | None
    quantity: int
    unit_price: float
    discount_amount: float
    tax_amount: float
    total_amount: float
    notes: str | None
    is_free_gift: bool

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    order_id: UUID
    order_number: str
    customer_id: UUID
    salesperson_id: UUID
    currency_id: UUID | None
    promotion_id: UUID | None
    van_inventory_id: UUID | None
    order_date: date
    delivery_date: date | None
    status: str
    approval_status: str
    priority: str
    order_type: str
    payment_method: str
    payment_terms: str
    subtotal: float
    discount_amount: float
    tax_amount: float
    shipping_amount: float
    total_amount: float
    notes: str | None
    shipping_address: str | None
    approved_by: UUID | None
    approved_at: datetime | None
    rejection_reason: str | None
    is_active: str
    created_by: UUID
    created_at: datetime
    updated_by: UUID | None
    updated_at: datetime | None
    log_inst: int
    customer: CustomerBrief | None = None
    salesperson: SalespersonBrief | None = None
    items: list[OrderItemResponse] = []
    promotion_applied: dict | None = None

    model_config = {"from_attributes": True}


# ─── Helpers ────────────────────────────────────────────────────────────────


def _serialize(order) -> OrderResponse:
    response = OrderResponse.model_validate(order)
    response.promotion_applied = service.promotion_summary(order)
    return response


def _to_input(body: OrderUpdate) -> OrderInput:
    items = None
    if body.items is not None:
        items = [
            OrderLineInput(
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
                notes=item.notes,
                batches=[BatchAllocation(batch_lot_id=b.batch_lot_id, quantity=b.quantity) for b in item.batches],
                serials=list(item.serials),
            )
            for item in body.items
        ]
    return OrderInput(
        customer_id=body.customer_id,
        items=items,
        order_id=getattr(body, "id", None),
        order_number=getattr(body, "order_number", None),
        salesperson_id=body.salesperson_id,
        currency_id=body.currency_id,
        promotion_id=body.promotion_id,
        van_inventory_id=body.van_inventory_id,
        depot_id=body.depot_id,
        route_id=body.route_id,
        channel=body.channel,
        order_date=body.order_date,
        delivery_date=body.delivery_date,
        status=body.status,
        approval_status=body.approval_status,
        priority=body.priority,
        order_type=body.order_type,
        payment_method=body.payment_method,
        payment_terms=body.payment_terms,
        tax_amount=body.tax_amount,
        shipping_amount=body.shipping_amount,
        notes=body.notes,
        shipping_address=body.shipping_address,
        is_active=body.is_active,
    )


_ACTIVE_FLAGS = {
    "y": "Y",
    "yes": "Y",
    "true": "Y",
    "1": "Y",
    "active": "Y",
    "n": "N",
    "no": "N",
    "false": "N",
    "0": "N",
    "inactive": "N",
}


def _parse_is_active(value: str | None) -> str | None:
    if value is None or value.strip() == "":
        return None
    flag = _ACTIVE_FLAGS.get(value.strip().lower())
    if flag is None:
        raise ValidationError("is_active must be Y or N", is_active=value)
    return flag


def _parse_route_ids(route_id: UUID | None, route_ids: str | None) -> list[UUID]:
    ids = [route_id] if route_id else []
    for raw in (route_ids or "").split(","):
        raw = raw.strip()
        if not raw:
            continue
        try:
            ids.append(UUID(raw))
        except ValueError as exc:
            raise ValidationError("route_ids must be a comma-separated list of UUIDs", route_ids=route_ids) from exc
    return list(dict.fromkeys(ids))


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.post("", response_model=Envelope[OrderResponse], status_code=status.HTTP_201_CREATED)
async def create_order(
    body: OrderCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
    actor_id: UUID = Depends(get_actor_id),
):
    """Create an order, or update the one named by ``id`` / ``order_number``."""
    result = await service.save_order(db, _to_input(body), actor_id=actor_id)
    data = _serialize(result.order)
    await db.commit()

    if not result.created:
        response.status_code = status.HTTP_200_OK
    message = "Order created successfully" if result.created else "Order updated successfully"
    return Envelope(message=message, data=data)


@router.get("", response_model=Envelope[list[OrderResponse]])
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = None,
    salesperson_id: UUID | None = None,
    customer_id: UUID | None = None,
    status_filter: str | None = Query(None, alias="status"),
    is_active: str | None = None,
    route_id: UUID | None = None,
    route_ids: str | None = None,
    db: AsyncSession = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    """List orders with filters, pagination and summary stats."""
    filters = OrderFilters(
        search=search or None,
        salesperson_id=salesperson_id,
        customer_id=customer_id,
        status=status_filter or None,
        is_active=_parse_is_active(is_active),
        route_ids=_parse_route_ids(route_id, route_ids),
    )
    orders, total = await service.list_orders(db, filters, page=page, limit=limit)
    stats = await service.order_stats(db, filters)
    return Envelope(
        message="Orders retrieved successfully",
        data=[_serialize(o) for o in orders],
        pagination=paginate(page, limit, total),
        stats=stats,
    )


@router.get("/{order_id}", response_model=Envelope[OrderResponse])
async def get_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    order = await service.get_order(db, order_id)
    return Envelope(message="Order retrieved successfully", data=_serialize(order))


@router.get("/{order_id}/items", response_model=Envelope[list[OrderItemResponse]])
async def get_order_items(
    order_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    items = await service.get_order_items(db, order_id)
    return Envelope(
        message="Order items retrieved successfully",
        data=[OrderItemResponse.model_validate(i) for i in items],
    )


@router.put("/{order_id}", response_model=Envelope[OrderResponse])
async def update_order(
    order_id: UUID,
    body: OrderUpdate,
    db: AsyncSession = Depends(get_db),
    actor_id: UUID = Depends(get_actor_id),
):
    """Full update. Supplying ``items`` replaces every line."""
    result = await service.update_order(db, order_id, _to_input(body), actor_id=actor_id)
    data = _serialize(result.order)
    await db.commit()
    return Envelope(message="Order updated successfully", data=data)


@router.delete("/{order_id}", response_model=Envelope[dict])
async def delete_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor_id: UUID = Depends(get_actor_id),
):
    order_number = await service.delete_order(db, order_id, actor_id=actor_id)
    await db.commit()
    return Envelope(
        message="Order deleted successfully",
        data={"order_id": str(order_id), "order_number": order_number},
    )


@router.post("/{order_id}/approve-or-reject", response_model=Envelope[OrderResponse])
async def approve_or_reject_order(
    order_id: UUID,
    body: ApprovalDecision,
    db: AsyncSession = Depends(get_db),
    actor_id: UUID = Depends(get_actor_id),
):
    order = await service.approve_or_reject_order(
        db,
        order_id,
        body.action,
        actor_id=actor_id,
        comments=body.comments,
        approved_by=body.approved_by,
    )
    data = _serialize(order)
    await db.commit()
    return Envelope(message=f"Order {order.approval_status} successfully", data=data)
