"""
Inventory Router — Stock counters and the stock-movement audit trail.
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from api.responses import Envelope, paginate
from db.enums import MovementType
from db.models import InventoryStock, StockMovement

router = APIRouter(prefix="/api/v1/inventory", tags=["inventory"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class StockResponse(BaseModel):
    id: UUID
    product_id: UUID
    location_id: UUID | None
    batch_lot_id: UUID | None
    serial_number_id: UUID | None
    current_stock: int
    available_stock: int
    updated_at: datetime

    model_config = {"from_attributes": True}


class MovementResponse(BaseModel):
    movement_id: UUID
    product_id: UUID
    batch_lot_id: UUID | None
    serial_number_id: UUID | None
    van_inventory_id: UUID | None
    movement_type: str
    reference_type: str
    reference_id: UUID
    from_location_id: UUID | None
    to_location_id: UUID | None
    quantity: int
    movement_date: datetime
    remarks: str | None
    reversal_of_id: UUID | None
    created_by: UUID

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/stock", response_model=Envelope[list[StockResponse]])
async def list_stock(
    product_id: UUID | None = None,
    location_id: UUID | None = None,
    batch_lot_id: UUID | None = None,
    serial_number_id: UUID | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    """Stock rows, filtered by product / location / batch / serial."""
    query = select(InventoryStock)
    if product_id:
        query = query.where(InventoryStock.product_id == product_id)
    if location_id:
        query = query.where(InventoryStock.location_id == location_id)
    if batch_lot_id:
        query = query.where(InventoryStock.batch_lot_id == batch_lot_id)
    if serial_number_id:
        query = query.where(InventoryStock.serial_number_id == serial_number_id)
    query = query.order_by(InventoryStock.product_id, InventoryStock.id).offset(skip).limit(limit)
    result = await db.execute(query)
    rows = result.scalars().all()
    return Envelope(message="Inventory retrieved successfully", data=[StockResponse.model_validate(r) for r in rows])


@router.get("/movements", response_model=Envelope[list[MovementResponse]])
async def list_movements(
    product_id: UUID | None = None,
    movement_type: MovementType | None = None,
    reference_type: str | None = None,
    reference_id: UUID | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    """Stock-movement history, newest first."""
    query = select(StockMovement)
    if product_id:
        query = query.where(StockMovement.product_id == product_id)
    if movement_type:
        query = query.where(StockMovement.movement_type == movement_type.value)
    if reference_type:
        query = query.where(StockMovement.reference_type == reference_type.upper())
    if reference_id:
        query = query.where(StockMovement.reference_id == reference_id)

    total = await db.scalar(select(func.count()).select_from(query.subquery()))
    result = await db.execute(
        query.order_by(StockMovement.movement_date.desc()).offset((page - 1) * limit).limit(limit)
    )
    movements = result.scalars().all()
    return Envelope(
        message="Stock movements retrieved successfully",
        data=[MovementResponse.model_validate(m) for m in movements],
        pagination=paginate(page, limit, int(total or 0)),
    )
