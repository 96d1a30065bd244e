"""
Promotions Router — Preview which promotions an order would qualify for.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from api.responses import Envelope
from promotions.service import CalculationLine, CalculationRequest, calculate_promotions

router = APIRouter(prefix="/api/v1/promotions", tags=["promotions"])


class CalculationLineIn(BaseModel):
    product_id: UUID
    quantity: int = Field(..., gt=0)
    unit_price: Decimal | None = Field(None, ge=0)


class PromotionCalculationRequest(BaseModel):
    customer_id: UUID
    items: list[CalculationLineIn] = Field(..., min_length=1)
    order_date: date | None = None
    depot_id: UUID | None = None
    salesperson_id: UUID | None = None
    route_id: UUID | None = None
    platform: str | None = None


class FreeProductOut(BaseModel):
    product_id: UUID
    product_name: str | None
    product_code: str | None
    quantity: int
    gift_limit: int


class PromotionCandidate(BaseModel):
    promotion_id: UUID
    promotion_code: str
    promotion_name: str
    level_number: int | None
    matched_quantity: int
    matched_value: float
    discount_type: str | None
    discount_rate: float
    discount_amount: float
    free_products: list[FreeProductOut] = []


@router.post("/calculate", response_model=Envelope[list[PromotionCandidate]])
async def calculate(
    body: PromotionCalculationRequest,
    db: AsyncSession = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    """Every applicable promotion for the given order, best discount first."""
    request = CalculationRequest(
        customer_id=body.customer_id,
        lines=[CalculationLine(product_id=i.product_id, quantity=i.quantity, unit_price=i.unit_price) for i in body.items],
        order_date=body.order_date,
        depot_id=body.depot_id,
        salesperson_id=body.salesperson_id or _user_uuid(user),
        route_id=body.route_id,
        channel=body.platform,
    )
    applied = await calculate_promotions(db, request)
    data = [PromotionCandidate.model_validate(a.to_dict()) for a in applied]
    message = f"Found {len(data)} applicable promotion(s)" if data else "No applicable promotions"
    return Envelope(message=message, data=data)


def _user_uuid(user: dict) -> UUID | None:
    raw = user.get("user_id")
    try:
        return UUID(str(raw)) if raw else None
    except ValueError:
        return None
