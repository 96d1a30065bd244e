"""
Promotion Evaluator — Which offers apply to an order, and for how much.

Pure functions over already-loaded Promotion rows; no database access, so
the same inputs always produce the same result.

Algorithm (per promotion):
  1. Active on the order date (is_active, start_date ≤ date ≤ end_date)
     and, when a channel is given, configured for that channel
  2. Customer not in the exclusion list
  3. Eligible by default when no scoping dimension is configured, otherwise
     the order must match at least one depot / salesperson / route /
     customer category
  4. Conditions in sequence order: sum qty + value of lines whose product
     or product category is targeted; skip when below min_value/min_quantity
  5. Levels highest-threshold-first: first threshold ≤ matched value wins
  6. Discount = value × pct / 100 (PERCENTAGE) or flat amount (FIXED_AMOUNT)
  7. Free-product benefits of the winning level, capped by gift_limit
  8. First satisfied condition ends evaluation of that promotion
"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from core.errors import (
    PromotionConditionsUnmet,
    PromotionExcluded,
    PromotionInactive,
    PromotionIneligible,
    PromotionNotFound,
)
from core.money import ZERO, to_money
from db.enums import BenefitType, DiscountType
from db.models import Promotion, PromotionCondition, PromotionLevel


@dataclass(frozen=True)
class LineInput:
    """One priced order line as the evaluator sees it."""

    product_id: uuid.UUID
    quantity: int
    unit_price: Decimal
    category_id: uuid.UUID | None = None

    @property
    def value(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class EvaluationContext:
    customer_id: uuid.UUID
    order_date: date
    depot_id: uuid.UUID | None = None
    salesperson_id: uuid.UUID | None = None
    route_id: uuid.UUID | None = None
    channel: str | None = None
    customer_category_id: uuid.UUID | None = None
    customer_category_code: str | None = None
    customer_type: str | None = None


@dataclass
class FreeProduct:
    product_id: uuid.UUID
    product_name: str | None
    product_code: str | None
    quantity: int
    gift_limit: int = 0

    def to_dict(self) -> dict:
        return {
            "product_id": str(self.product_id),
            "product_name": self.product_name,
            "product_code": self.product_code,
            "quantity": self.quantity,
            "gift_limit": self.gift_limit,
        }


@dataclass
class AppliedPromotion:
    """Outcome of a promotion that matched an order."""

    promotion_id: uuid.UUID
    promotion_code: str
    promotion_name: str
    condition_id: uuid.UUID | None
    level_id: uuid.UUID | None
    level_number: int | None
    matched_quantity: int
    matched_value: Decimal
    discount_type: str | None
    discount_rate: Decimal
    discount_amount: Decimal
    free_products: list[FreeProduct] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "promotion_id": str(self.promotion_id),
            "promotion_code": self.promotion_code,
            "promotion_name": self.promotion_name,
            "condition_id": str(self.condition_id) if self.condition_id else None,
            "level_id": str(self.level_id) if self.level_id else None,
            "level_number": self.level_number,
            "matched_quantity": self.matched_quantity,
            "matched_value": float(self.matched_value),
            "discount_type": self.discount_type,
            "discount_rate": float(self.discount_rate),
            "discount_amount": float(self.discount_amount),
            "free_products": [fp.to_dict() for fp in self.free_products],
        }


@dataclass
class ConditionMatch:
    condition: PromotionCondition
    quantity: int
    value: Decimal
    matched_lines: int

    @property
    def satisfied(self) -> bool:
        return (
            self.matched_lines > 0
            and self.value >= to_money(self.condition.min_value)
            and self.quantity >= (self.condition.min_quantity or 0)
        )


# ── Individual checks ─────────────────────────────────────────────────────


def is_active_on(promotion: Promotion, on_date: date) -> bool:
    if not promotion.is_active:
        return False
    return promotion.start_date <= on_date <= promotion.end_date


def matches_channel(promotion: Promotion, channel: str | None) -> bool:
    """A channel filter only applies when the order names a channel."""
    if not channel:
        return True
    wanted = channel.strip().lower()
    return any(c.is_active and c.channel_type.strip().lower() == wanted for c in promotion.channels)


def is_excluded(promotion: Promotion, customer_id: uuid.UUID) -> bool:
    return any(e.is_excluded and e.customer_id == customer_id for e in promotion.exclusions)


def is_eligible(promotion: Promotion, ctx: EvaluationContext) -> bool:
    depots = [d.depot_id for d in promotion.depots if d.is_active]
    salespersons = [s.salesperson_id for s in promotion.salespersons if s.is_active]
    routes = [r.route_id for r in promotion.routes if r.is_active]
    categories = [c for c in promotion.customer_categories if c.is_active]

    if not (depots or salespersons or routes or categories):
        return True

    if ctx.depot_id and ctx.depot_id in depots:
        return True
    if ctx.salesperson_id and ctx.salesperson_id in salespersons:
        return True
    if ctx.route_id and ctx.route_id in routes:
        return True

    codes = {c for c in (ctx.customer_category_code, ctx.customer_type) if c}
    for scoped in categories:
        if ctx.customer_category_id and scoped.customer_category_id == ctx.customer_category_id:
            return True
        if scoped.category is not None and scoped.category.category_code in codes:
            return True
    return False


def active_conditions(promotion: Promotion) -> list[PromotionCondition]:
    return sorted(
        (c for c in promotion.conditions if c.is_active),
        key=lambda c: c.sequence or 0,
    )


def match_condition(condition: PromotionCondition, lines: Sequence[LineInput]) -> ConditionMatch:
    targets = [t for t in condition.products if t.is_active]
    product_ids = {t.product_id for t in targets if t.product_id}
    category_ids = {t.category_id for t in targets if t.category_id}

    quantity = 0
    value = ZERO
    matched = 0
    for line in lines:
        if line.product_id in product_ids or (line.category_id and line.category_id in category_ids):
            quantity += line.quantity
            value += line.value
            matched += 1
    return ConditionMatch(condition=condition, quantity=quantity, value=to_money(value), matched_lines=matched)


def select_level(promotion: Promotion, value: Decimal) -> PromotionLevel | None:
    levels = sorted(
        (lv for lv in promotion.levels if lv.is_active),
        key=lambda lv: (to_money(lv.threshold_value), lv.level_number or 0),
        reverse=True,
    )
    for level in levels:
        if to_money(level.threshold_value) <= value:
            return level
    return None


def compute_discount(level: PromotionLevel, value: Decimal) -> Decimal:
    rate = Decimal(str(level.discount_value or 0))
    if level.discount_type == DiscountType.PERCENTAGE.value:
        return to_money(value * rate / Decimal(100))
    if level.discount_type == DiscountType.FIXED_AMOUNT.value:
        return to_money(rate)
    return ZERO


def collect_free_products(level: PromotionLevel) -> list[FreeProduct]:
    gifts = []
    for benefit in level.benefits:
        if not benefit.is_active or benefit.benefit_type != BenefitType.FREE_PRODUCT.value:
            continue
        if benefit.product_id is None:
            continue
        quantity = int(benefit.benefit_value or 0)
        limit = int(benefit.gift_limit or 0)
        if limit > 0:
            quantity = min(quantity, limit)
        if quantity <= 0:
            continue
        product = benefit.product
        gifts.append(
            FreeProduct(
                product_id=benefit.product_id,
                product_name=product.name if product is not None else None,
                product_code=product.code if product is not None else None,
                quantity=quantity,
                gift_limit=limit,
            )
        )
    return gifts


def _applied(promotion: Promotion, match: ConditionMatch, level: PromotionLevel) -> AppliedPromotion:
    return AppliedPromotion(
        promotion_id=promotion.promotion_id,
        promotion_code=promotion.code,
        promotion_name=promotion.name,
        condition_id=match.condition.condition_id,
        level_id=level.level_id,
        level_number=level.level_number,
        matched_quantity=match.quantity,
        matched_value=match.value,
        discount_type=level.discount_type,
        discount_rate=Decimal(str(level.discount_value or 0)),
        discount_amount=compute_discount(level, match.value),
        free_products=collect_free_products(level),
    )


# ── Entry points ──────────────────────────────────────────────────────────


def evaluate_promotion(
    promotion: Promotion,
    ctx: EvaluationContext,
    lines: Sequence[LineInput],
) -> AppliedPromotion | None:
    """Silent variant: None whenever the promotion does not apply."""
    if not is_active_on(promotion, ctx.order_date) or not matches_channel(promotion, ctx.channel):
        return None
    if is_excluded(promotion, ctx.customer_id) or not is_eligible(promotion, ctx):
        return None

    for condition in active_conditions(promotion):
        match = match_condition(condition, lines)
        if not match.satisfied:
            continue
        level = select_level(promotion, match.value)
        if level is None:
            continue
        return _applied(promotion, match, level)
    return None


def apply_selected_promotion(
    promotion: Promotion | None,
    ctx: EvaluationContext,
    lines: Sequence[LineInput],
    *,
    promotion_id: uuid.UUID | None = None,
) -> AppliedPromotion:
    """
    Strict variant used when the caller explicitly picked a promotion.

    Raises a specific PromotionRejected subclass describing why it cannot be
    applied, so the client can re-prompt.
    """
    if promotion is None:
        raise PromotionNotFound("Selected promotion not found", promotion_id=promotion_id)

    if not is_active_on(promotion, ctx.order_date):
        raise PromotionInactive(
            f"Promotion {promotion.name} is not active or has expired",
            promotion_id=promotion.promotion_id,
        )
    if not matches_channel(promotion, ctx.channel):
        raise PromotionIneligible(
            f"Promotion {promotion.name} is not available on channel {ctx.channel}",
            promotion_id=promotion.promotion_id,
        )
    if is_excluded(promotion, ctx.customer_id):
        raise PromotionExcluded(
            f"Customer is excluded from promotion {promotion.name}",
            promotion_id=promotion.promotion_id,
        )
    if not is_eligible(promotion, ctx):
        raise PromotionIneligible(
            f"Customer does not qualify for promotion {promotion.name}",
            promotion_id=promotion.promotion_id,
        )

    conditions = active_conditions(promotion)
    if not conditions:
        raise PromotionConditionsUnmet(
            "Promotion has no conditions defined",
            promotion_id=promotion.promotion_id,
        )

    first_shortfall: ConditionMatch | None = None
    threshold_miss = False
    for condition in conditions:
        match = match_condition(condition, lines)
        if not match.satisfied:
            if first_shortfall is None and match.matched_lines > 0:
                first_shortfall = match
            continue
        level = select_level(promotion, match.value)
        if level is None:
            threshold_miss = True
            continue
        return _applied(promotion, match, level)

    if threshold_miss:
        raise PromotionConditionsUnmet(
            "Order does not meet promotion threshold",
            promotion_id=promotion.promotion_id,
        )
    if first_shortfall is not None:
        minimum = to_money(first_shortfall.condition.min_value)
        raise PromotionConditionsUnmet(
            f"Order value {first_shortfall.value} does not meet minimum {minimum}",
            promotion_id=promotion.promotion_id,
        )
    raise PromotionConditionsUnmet(
        "Order does not contain any products covered by this promotion",
        promotion_id=promotion.promotion_id,
    )


def rank_candidates(
    promotions: Iterable[Promotion],
    ctx: EvaluationContext,
    lines: Sequence[LineInput],
) -> list[AppliedPromotion]:
    """Every applicable promotion, best discount first (ties by code)."""
    applied = [a for a in (evaluate_promotion(p, ctx, lines) for p in promotions) if a is not None]
    applied.sort(key=lambda a: (-a.discount_amount, a.promotion_code, str(a.promotion_id)))
    return applied
