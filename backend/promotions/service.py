"""
Promotion lookups and the "calculate promotions" helper.

Loads promotion rows (scopes, conditions, levels and benefits eager-loaded
through the model relationships, also for rows already in the session) and hands them to the pure evaluator.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.errors import CustomerNotFound, ProductNotFound, ValidationError
from core.money import to_money
from db.models import Customer, Product, Promotion
from promotions.evaluator import (
    AppliedPromotion,
    EvaluationContext,
    LineInput,
    rank_candidates,
)

logger = structlog.get_logger()


@dataclass
class CalculationLine:
    product_id: uuid.UUID
    quantity: int
    unit_price: Decimal | None = None


@dataclass
class CalculationRequest:
    customer_id: uuid.UUID
    lines: list[CalculationLine] = field(default_factory=list)
    order_date: date | None = None
    depot_id: uuid.UUID | None = None
    salesperson_id: uuid.UUID | None = None
    route_id: uuid.UUID | None = None
    channel: str | None = None


def build_context(
    customer: Customer,
    *,
    order_date: date,
    salesperson_id: uuid.UUID | None = None,
    depot_id: uuid.UUID | None = None,
    route_id: uuid.UUID | None = None,
    channel: str | None = None,
) -> EvaluationContext:
    """Context for the evaluator; customer's own depot/route fill the gaps."""
    category = customer.category
    return EvaluationContext(
        customer_id=customer.customer_id,
        order_date=order_date,
        depot_id=depot_id or customer.depot_id,
        salesperson_id=salesperson_id,
        route_id=route_id or customer.route_id,
        channel=channel,
        customer_category_id=customer.customer_category_id,
        customer_category_code=category.category_code if category is not None else None,
        customer_type=customer.type,
    )


def line_input(product: Product, quantity: int, unit_price: Decimal | None) -> LineInput:
    price = to_money(product.unit_price if unit_price is None else unit_price)
    return LineInput(
        product_id=product.product_id,
        quantity=quantity,
        unit_price=price,
        category_id=product.category_id,
    )


async def load_customer(db: AsyncSession, customer_id: uuid.UUID) -> Customer:
    result = await db.execute(
        select(Customer)
        .options(selectinload(Customer.category))
        .where(Customer.customer_id == customer_id)
        .execution_options(populate_existing=True)
    )
    customer = result.scalar_one_or_none()
    if customer is None:
        raise CustomerNotFound("Customer not found", customer_id=customer_id)
    return customer


async def load_products(db: AsyncSession, product_ids: list[uuid.UUID]) -> dict[uuid.UUID, Product]:
    """Fetch products by id; any missing id raises ProductNotFound."""
    wanted = set(product_ids)
    if not wanted:
        return {}
    result = await db.execute(select(Product).where(Product.product_id.in_(wanted)))
    products = {p.product_id: p for p in result.scalars().all()}
    missing = wanted - products.keys()
    if missing:
        first = sorted(str(m) for m in missing)[0]
        raise ProductNotFound(f"Product {first} not found", product_id=first)
    return products


async def load_promotion(db: AsyncSession, promotion_id: uuid.UUID) -> Promotion | None:
    result = await db.execute(
        select(Promotion)
        .where(Promotion.promotion_id == promotion_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def load_active_promotions(db: AsyncSession, on_date: date) -> list[Promotion]:
    """Active-flag and date-window filter in SQL; channel/scope checks stay in the evaluator."""
    result = await db.execute(
        select(Promotion)
        .where(
            Promotion.is_active.is_(True),
            Promotion.start_date <= on_date,
            Promotion.end_date >= on_date,
        )
        .order_by(Promotion.code)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def calculate_promotions(db: AsyncSession, request: CalculationRequest) -> list[AppliedPromotion]:
    """Informational: every promotion the order would qualify for, best first."""
    if not request.lines:
        raise ValidationError("At least one order line is required")
    for line in request.lines:
        if line.quantity <= 0:
            raise ValidationError("Line quantity must be positive", product_id=line.product_id)

    customer = await load_customer(db, request.customer_id)
    products = await load_products(db, [line.product_id for line in request.lines])
    order_date = request.order_date or date.today()

    ctx = build_context(
        customer,
        order_date=order_date,
        salesperson_id=request.salesperson_id,
        depot_id=request.depot_id,
        route_id=request.route_id,
        channel=request.channel,
    )
    lines = [line_input(products[line.product_id], line.quantity, line.unit_price) for line in request.lines]
    promotions = await load_active_promotions(db, order_date)
    ranked = rank_candidates(promotions, ctx, lines)

    logger.info(
        "promotions.calculated",
        customer_id=str(customer.customer_id),
        candidates=len(promotions),
        applicable=len(ranked),
    )
    return ranked
