"""
FieldSales Database Models

Sales-force-automation schema: customers, orders, promotions, inventory.
Primary keys are UUIDs (GUID type below); all money columns are NUMERIC
and handled as Decimal in Python.

Tables:
  Master data (1-8):
  1. users                          - Salespeople, supervisors, approvers
  2. customer_categories            - Customer segmentation codes
  3. depots                         - Distribution depots
  4. routes                         - Sales routes served from a depot
  5. currencies                     - Order currencies
  6. customers                      - Outlets that place orders
  7. product_categories             - Product grouping
  8. products                       - Catalog (+ tracking_type: none/batch/serial)

  Inventory (9-16):
  9.  locations                     - Warehouses and vans
  10. batch_lots                    - Lot/expiry tracked receipts
  11. product_batches               - Batch-level secondary stock per product
  12. serial_numbers                - One row per serialized unit
  13. inventory_stock               - Stock counters per product/location/batch/serial
  14. van_inventory                 - Van load assigned to a salesperson
  15. van_inventory_items           - Quantities loaded on a van
  16. stock_movements               - Append-only inventory audit trail

  Orders (17-19):
  17. orders                        - Order header
  18. order_items                   - Order lines (+ free-gift lines)
  19. order_number_sequences        - Per-prefix order number counter

  Promotions (20-31):
  20. promotions                    - Time-bounded offers
  21-26. promotion_* scoping        - depots, salespersons, routes, customer
                                      categories, channels, customer exclusions
  27. promotion_conditions          - Minimum qty/value thresholds
  28. promotion_condition_products  - Products/categories a condition counts
  29. promotion_levels              - Threshold → discount tiers
  30. promotion_benefits            - Free products per level
  31. promotion_tracking            - Promotion usage log

  Workflow (32-36):
  32. notifications                 - In-app user notifications
  33. approval_requests             - Generic approval requests
  34. approval_workflows            - Multi-step sign-off per order
  35. workflow_steps                - Steps of an approval workflow
  36. outbox_events                 - Post-commit side effects awaiting delivery
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    types,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship

from db.enums import (
    ApprovalStatus,
    MovementType,
    OrderStatus,
    OutboxStatus,
    SerialStatus,
    TrackingType,
    WorkflowStatus,
    check_in,
)
from db.session import Base


class GUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses PostgreSQL UUID when available, stores as CHAR(36) on SQLite.
    """

    impl = types.String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(types.String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if dialect.name == "postgresql":
            return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        return str(value) if isinstance(value, uuid.UUID) else value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))


def UUID(as_uuid=True):
    return GUID()


def Money():
    return Numeric(18, 2)


# ─── 1. Users ───────────────────────────────────────────────────────────────


class User(Base):
    __tablename__ = "users"

    user_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    role = Column(String(100), nullable=False, default="Salesperson")
    parent_id = Column(UUID(as_uuid=True), ForeignKey("users.user_id"), nullable=True)  # manager
    depot_id = Column(UUID(as_uuid=True), ForeignKey("depots.depot_id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


# ─── 2-5. Reference data ────────────────────────────────────────────────────


class CustomerCategory(Base):
    __tablename__ = "customer_categories"

    customer_category_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    category_code = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)


class Depot(Base):
    __tablename__ = "depots"

    depot_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)


class Route(Base):
    __tablename__ = "routes"

    route_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    depot_id = Column(UUID(as_uuid=True), ForeignKey("depots.depot_id"), nullable=True)
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)


class Currency(Base):
    __tablename__ = "currencies"

    currency_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(3), nullable=False, unique=True)
    name = Column(String(100), nullable=False)


# ─── 6. Customers ───────────────────────────────────────────────────────────


class Customer(Base):
    __tablename__ = "customers"

    customer_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    type = Column(String(50))
    customer_category_id = Column(
        UUID(as_uuid=True), ForeignKey("customer_categories.customer_category_id"), nullable=True
    )
    channel = Column(String(50))
    route_id = Column(UUID(as_uuid=True), ForeignKey("routes.route_id"), nullable=True)
    depot_id = Column(UUID(as_uuid=True), ForeignKey("depots.depot_id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_customers_route", "route_id"),
        Index("ix_customers_name", "name"),
    )

    category = relationship("CustomerCategory", lazy="selectin")


# ─── 7-8. Products ──────────────────────────────────────────────────────────


class ProductCategory(Base):
    __tablename__ = "product_categories"

    category_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False, unique=True)


class Product(Base):
    __tablename__ = "products"

    product_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(100), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    category_id = Column(UUID(as_uuid=True), ForeignKey("product_categories.category_id"), nullable=True)
    tracking_type = Column(String(10), nullable=False, default=TrackingType.NONE.value)
    unit = Column(String(20), nullable=False, default="pcs")
    unit_price = Column(Money(), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("unit_price >= 0", name="ck_product_price_positive"),
        CheckConstraint(check_in("tracking_type", TrackingType), name="ck_product_tracking_type"),
    )


# ─── 9-16. Inventory ────────────────────────────────────────────────────────


class Location(Base):
    __tablename__ = "locations"

    location_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    location_type = Column(String(20), nullable=False, default="warehouse")  # warehouse, van
    depot_id = Column(UUID(as_uuid=True), ForeignKey("depots.depot_id"), nullable=True)


class BatchLot(Base):
    __tablename__ = "batch_lots"

    batch_lot_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.product_id"), nullable=False)
    batch_number = Column(String(100), nullable=False)
    manufacturing_date = Column(Date)
    expiry_date = Column(Date)
    quantity = Column(Integer, nullable=False, default=0)
    remaining_quantity = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("product_id", "batch_number", name="uq_batch_number_per_product"),
        CheckConstraint("remaining_quantity >= 0", name="ck_batch_remaining_positive"),
    )


class ProductBatch(Base):
    __tablename__ = "product_batches"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.product_id"), nullable=False)
    batch_lot_id = Column(UUID(as_uuid=True), ForeignKey("batch_lots.batch_lot_id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_product_batch_qty_positive"),)


class SerialNumber(Base):
    __tablename__ = "serial_numbers"

    serial_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.product_id"), nullable=False)
    serial_number = Column(String(100), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default=SerialStatus.AVAILABLE.value)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.customer_id"), nullable=True)
    location_id = Column(UUID(as_uuid=True), ForeignKey("locations.location_id"), nullable=True)
    sold_date = Column(DateTime)
    updated_by = Column(UUID(as_uuid=True))
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_serial_numbers_product_status", "product_id", "status"),
        CheckConstraint(check_in("status", SerialStatus), name="ck_serial_status"),
    )


class InventoryStock(Base):
    __tablename__ = "inventory_stock"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.product_id"), nullable=False)
    location_id = Column(UUID(as_uuid=True), ForeignKey("locations.location_id"), nullable=True)
    batch_lot_id = Column(UUID(as_uuid=True), ForeignKey("batch_lots.batch_lot_id"), nullable=True)
    serial_number_id = Column(UUID(as_uuid=True), ForeignKey("serial_numbers.serial_id"), nullable=True)
    current_stock = Column(Integer, nullable=False, default=0)
    available_stock = Column(Integer, nullable=False, default=0)
    updated_by = Column(UUID(as_uuid=True))
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_inventory_stock_product", "product_id", "location_id"),
        Index("ix_inventory_stock_batch", "product_id", "batch_lot_id"),
        Index("ix_inventory_stock_serial", "product_id", "serial_number_id"),
        CheckConstraint("current_stock >= 0", name="ck_inventory_stock_current_positive"),
        CheckConstraint("available_stock >= 0", name="ck_inventory_stock_available_positive"),
    )


class VanInventory(Base):
    __tablename__ = "van_inventory"

    van_inventory_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    salesperson_id = Column(UUID(as_uuid=True), ForeignKey("users.user_id"), nullable=False)
    location_id = Column(UUID(as_uuid=True), ForeignKey("locations.location_id"), nullable=True)
    status = Column(String(20), nullable=False, default="loaded")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    items = relationship("VanInventoryItem", back_populates="van_inventory", lazy="selectin")


class VanInventoryItem(Base):
    __tablename__ = "van_inventory_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    van_inventory_id = Column(UUID(as_uuid=True), ForeignKey("van_inventory.van_inventory_id"), nullable=False)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.product_id"), nullable=False)
    batch_lot_id = Column(UUID(as_uuid=True), ForeignKey("batch_lots.batch_lot_id"), nullable=True)
    serial_number_id = Column(UUID(as_uuid=True), ForeignKey("serial_numbers.serial_id"), nullable=True)
    quantity = Column(Integer, nullable=False, default=0)

    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_van_item_qty_positive"),)

    van_inventory = relationship("VanInventory", back_populates="items")


class StockMovement(Base):
    """Append-only: rows are never updated or deleted. Reversals point back via reversal_of_id."""

    __tablename__ = "stock_movements"

    movement_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.product_id"), nullable=False)
    batch_lot_id = Column(UUID(as_uuid=True), ForeignKey("batch_lots.batch_lot_id"), nullable=True)
    serial_number_id = Column(UUID(as_uuid=True), ForeignKey("serial_numbers.serial_id"), nullable=True)
    inventory_stock_id = Column(UUID(as_uuid=True), ForeignKey("inventory_stock.id"), nullable=True)
    van_inventory_id = Column(UUID(as_uuid=True), ForeignKey("van_inventory.van_inventory_id"), nullable=True)
    van_inventory_item_id = Column(UUID(as_uuid=True), ForeignKey("van_inventory_items.id"), nullable=True)
    movement_type = Column(String(20), nullable=False)
    reference_type = Column(String(20), nullable=False)
    reference_id = Column(UUID(as_uuid=True), nullable=False)
    from_location_id = Column(UUID(as_uuid=True), ForeignKey("locations.location_id"), nullable=True)
    to_location_id = Column(UUID(as_uuid=True), ForeignKey("locations.location_id"), nullable=True)
    quantity = Column(Integer, nullable=False)
    movement_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    remarks = Column(Text)
    reversal_of_id = Column(UUID(as_uuid=True), ForeignKey("stock_movements.movement_id"), nullable=True)
    created_by = Column(UUID(as_uuid=True), nullable=False)

    __table_args__ = (
        Index("ix_stock_movements_reference", "reference_type", "reference_id"),
        Index("ix_stock_movements_product_date", "product_id", "movement_date"),
        CheckConstraint("quantity > 0", name="ck_stock_movement_qty_positive"),
        CheckConstraint(check_in("movement_type", MovementType), name="ck_stock_movement_type"),
    )


# ─── 17-19. Orders ──────────────────────────────────────────────────────────


class Order(Base):
    __tablename__ = "orders"

    order_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_number = Column(String(50), nullable=False, unique=True)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.customer_id"), nullable=False)
    salesperson_id = Column(UUID(as_uuid=True), ForeignKey("users.user_id"), nullable=False)
    currency_id = Column(UUID(as_uuid=True), ForeignKey("currencies.currency_id"), nullable=True)
    promotion_id = Column(UUID(as_uuid=True), ForeignKey("promotions.promotion_id"), nullable=True)
    van_inventory_id = Column(UUID(as_uuid=True), ForeignKey("van_inventory.van_inventory_id"), nullable=True)
    order_date = Column(Date, nullable=False)
    delivery_date = Column(Date)
    status = Column(String(20), nullable=False, default=OrderStatus.DRAFT.value)
    priority = Column(String(20), nullable=False, default="medium")
    order_type = Column(String(20), nullable=False, default="regular")
    payment_method = Column(String(20), nullable=False, default="credit")
    payment_terms = Column(String(50), nullable=False, default="Net 30")
    subtotal = Column(Money(), nullable=False, default=0)
    discount_amount = Column(Money(), nullable=False, default=0)
    tax_amount = Column(Money(), nullable=False, default=0)
    shipping_amount = Column(Money(), nullable=False, default=0)
    total_amount = Column(Money(), nullable=False, default=0)
    notes = Column(Text)
    shipping_address = Column(Text)
    approval_status = Column(String(20), nullable=False, default=ApprovalStatus.PENDING.value)
    approved_by = Column(UUID(as_uuid=True), ForeignKey("users.user_id"), nullable=True)
    approved_at = Column(DateTime)
    rejection_reason = Column(Text)
    is_active = Column(String(1), nullable=False, default="Y")
    created_by = Column(UUID(as_uuid=True), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_by = Column(UUID(as_uuid=True))
    updated_at = Column(DateTime)
    log_inst = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        Index("ix_orders_customer", "customer_id"),
        Index("ix_orders_salesperson", "salesperson_id"),
        Index("ix_orders_created_at", "created_at"),
        CheckConstraint(check_in("status", OrderStatus), name="ck_order_status"),
        CheckConstraint(check_in("approval_status", ApprovalStatus), name="ck_order_approval_status"),
        CheckConstraint("is_active IN ('Y', 'N')", name="ck_order_is_active"),
        CheckConstraint(
            "subtotal >= 0 AND discount_amount >= 0 AND tax_amount >= 0 "
            "AND shipping_amount >= 0 AND total_amount >= 0",
            name="ck_order_amounts_positive",
        ),
    )

    customer = relationship("Customer", lazy="selectin")
    salesperson = relationship("User", foreign_keys=[salesperson_id], lazy="selectin")
    currency = relationship("Currency", lazy="selectin")
    promotion = relationship("Promotion", lazy="selectin")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.line_number",
        lazy="selectin",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    item_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey("orders.order_id", ondelete="CASCADE"), nullable=False)
    line_number = Column(Integer, nullable=False)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.product_id"), nullable=False)
    product_name = Column(String(255))
    unit = Column(String(20), default="pcs")
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Money(), nullable=False, default=0)
    discount_amount = Column(Money(), nullable=False, default=0)
    tax_amount = Column(Money(), nullable=False, default=0)
    total_amount = Column(Money(), nullable=False, default=0)
    notes = Column(Text)
    is_free_gift = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_order_items_order", "order_id"),
        CheckConstraint("quantity > 0", name="ck_order_item_qty_positive"),
        CheckConstraint("unit_price >= 0", name="ck_order_item_price_positive"),
    )

    order = relationship("Order", back_populates="items")


class OrderNumberSequence(Base):
    """Single row per prefix; updated under a row lock to hand out order numbers."""

    __tablename__ = "order_number_sequences"

    prefix = Column(String(20), primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


# ─── 20-31. Promotions ──────────────────────────────────────────────────────


class Promotion(Base):
    __tablename__ = "promotions"

    promotion_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    type = Column(String(50))
    description = Column(Text)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_promotions_dates", "start_date", "end_date"),
        CheckConstraint("end_date >= start_date", name="ck_promo_dates_valid"),
    )

    depots = relationship("PromotionDepot", cascade="all, delete-orphan", lazy="selectin")
    salespersons = relationship("PromotionSalesperson", cascade="all, delete-orphan", lazy="selectin")
    routes = relationship("PromotionRoute", cascade="all, delete-orphan", lazy="selectin")
    customer_categories = relationship("PromotionCustomerCategory", cascade="all, delete-orphan", lazy="selectin")
    channels = relationship("PromotionChannel", cascade="all, delete-orphan", lazy="selectin")
    exclusions = relationship("PromotionCustomerExclusion", cascade="all, delete-orphan", lazy="selectin")
    conditions = relationship(
        "PromotionCondition",
        cascade="all, delete-orphan",
        order_by="PromotionCondition.sequence",
        lazy="selectin",
    )
    levels = relationship(
        "PromotionLevel",
        cascade="all, delete-orphan",
        order_by="PromotionLevel.threshold_value.desc()",
        lazy="selectin",
    )


class PromotionDepot(Base):
    __tablename__ = "promotion_depots"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    promotion_id = Column(UUID(as_uuid=True), ForeignKey("promotions.promotion_id"), nullable=False)
    depot_id = Column(UUID(as_uuid=True), ForeignKey("depots.depot_id"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)


class PromotionSalesperson(Base):
    __tablename__ = "promotion_salespersons"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    promotion_id = Column(UUID(as_uuid=True), ForeignKey("promotions.promotion_id"), nullable=False)
    salesperson_id = Column(UUID(as_uuid=True), ForeignKey("users.user_id"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)


class PromotionRoute(Base):
    __tablename__ = "promotion_routes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    promotion_id = Column(UUID(as_uuid=True), ForeignKey("promotions.promotion_id"), nullable=False)
    route_id = Column(UUID(as_uuid=True), ForeignKey("routes.route_id"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)


class PromotionCustomerCategory(Base):
    __tablename__ = "promotion_customer_categories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    promotion_id = Column(UUID(as_uuid=True), ForeignKey("promotions.promotion_id"), nullable=False)
    customer_category_id = Column(
        UUID(as_uuid=True), ForeignKey("customer_categories.customer_category_id"), nullable=False
    )
    is_active = Column(Boolean, nullable=False, default=True)

    category = relationship("CustomerCategory", lazy="selectin")


class PromotionChannel(Base):
    __tablename__ = "promotion_channels"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    promotion_id = Column(UUID(as_uuid=True), ForeignKey("promotions.promotion_id"), nullable=False)
    channel_type = Column(String(50), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)


class PromotionCustomerExclusion(Base):
    __tablename__ = "promotion_customer_exclusions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    promotion_id = Column(UUID(as_uuid=True), ForeignKey("promotions.promotion_id"), nullable=False)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.customer_id"), nullable=False)
    is_excluded = Column(Boolean, nullable=False, default=True)


class PromotionCondition(Base):
    __tablename__ = "promotion_conditions"

    condition_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    promotion_id = Column(UUID(as_uuid=True), ForeignKey("promotions.promotion_id"), nullable=False)
    sequence = Column(Integer, nullable=False, default=1)
    min_quantity = Column(Integer, nullable=False, default=0)
    min_value = Column(Money(), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    products = relationship("PromotionConditionProduct", cascade="all, delete-orphan", lazy="selectin")


class PromotionConditionProduct(Base):
    __tablename__ = "promotion_condition_products"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    condition_id = Column(UUID(as_uuid=True), ForeignKey("promotion_conditions.condition_id"), nullable=False)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.product_id"), nullable=True)
    category_id = Column(UUID(as_uuid=True), ForeignKey("product_categories.category_id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "product_id IS NOT NULL OR category_id IS NOT NULL",
            name="ck_condition_product_target",
        ),
    )


class PromotionLevel(Base):
    __tablename__ = "promotion_levels"

    level_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    promotion_id = Column(UUID(as_uuid=True), ForeignKey("promotions.promotion_id"), nullable=False)
    level_number = Column(Integer, nullable=False, default=1)
    threshold_value = Column(Money(), nullable=False, default=0)
    discount_type = Column(String(20), nullable=False)
    discount_value = Column(Numeric(18, 4), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("discount_type IN ('PERCENTAGE', 'FIXED_AMOUNT')", name="ck_level_discount_type"),
        CheckConstraint("discount_value >= 0", name="ck_level_discount_positive"),
    )

    benefits = relationship("PromotionBenefit", cascade="all, delete-orphan", lazy="selectin")


class PromotionBenefit(Base):
    __tablename__ = "promotion_benefits"

    benefit_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    level_id = Column(UUID(as_uuid=True), ForeignKey("promotion_levels.level_id"), nullable=False)
    benefit_type = Column(String(20), nullable=False, default="FREE_PRODUCT")
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.product_id"), nullable=True)
    benefit_value = Column(Integer, nullable=False, default=0)
    gift_limit = Column(Integer, nullable=False, default=0)  # 0 = unlimited
    is_active = Column(Boolean, nullable=False, default=True)

    product = relationship("Product", lazy="selectin")


class PromotionTracking(Base):
    __tablename__ = "promotion_tracking"

    tracking_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    promotion_id = Column(UUID(as_uuid=True), ForeignKey("promotions.promotion_id"), nullable=False)
    order_id = Column(UUID(as_uuid=True), nullable=True)
    action_type = Column(String(20), nullable=False, default="APPLIED")
    action_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    user_id = Column(UUID(as_uuid=True), nullable=False)
    comments = Column(Text)


# ─── 32-36. Workflow ────────────────────────────────────────────────────────


class Notification(Base):
    __tablename__ = "notifications"

    notification_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    category = Column(String(50), nullable=False, default="order")
    reference_type = Column(String(50))
    reference_id = Column(UUID(as_uuid=True))
    is_read = Column(Boolean, nullable=False, default=False)
    created_by = Column(UUID(as_uuid=True), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (Index("ix_notifications_user", "user_id", "is_read"),)


class ApprovalRequest(Base):
    __tablename__ = "approval_requests"

    request_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    requester_id = Column(UUID(as_uuid=True), ForeignKey("users.user_id"), nullable=False)
    request_type = Column(String(50), nullable=False)
    reference_id = Column(UUID(as_uuid=True))
    request_data = Column(Text)
    status = Column(String(1), nullable=False, default="P")  # P, A, R
    created_by = Column(UUID(as_uuid=True), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime)
    log_inst = Column(Integer, nullable=False, default=1)

    __table_args__ = (Index("ix_approval_requests_reference", "request_type", "reference_id"),)


class ApprovalWorkflow(Base):
    __tablename__ = "approval_workflows"

    workflow_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    reference_type = Column(String(50), nullable=False, default="order")
    reference_id = Column(UUID(as_uuid=True), nullable=False)
    reference_number = Column(String(50), nullable=False)
    requester_id = Column(UUID(as_uuid=True), nullable=False)
    priority = Column(String(10), nullable=False, default="medium")
    status = Column(String(20), nullable=False, default=WorkflowStatus.PENDING.value)
    request_data = Column(JSON)
    final_approved_by = Column(UUID(as_uuid=True))
    final_approved_at = Column(DateTime)
    rejected_by = Column(UUID(as_uuid=True))
    rejected_at = Column(DateTime)
    rejection_reason = Column(Text)
    created_by = Column(UUID(as_uuid=True), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime)

    __table_args__ = (
        Index("ix_approval_workflows_reference", "reference_type", "reference_id"),
        CheckConstraint(check_in("status", WorkflowStatus), name="ck_workflow_status"),
        CheckConstraint("priority IN ('low', 'medium', 'high', 'urgent')", name="ck_workflow_priority"),
    )

    steps = relationship(
        "WorkflowStep",
        back_populates="workflow",
        cascade="all, delete-orphan",
        order_by="WorkflowStep.step_order",
        lazy="selectin",
    )


class WorkflowStep(Base):
    __tablename__ = "workflow_steps"

    step_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workflow_id = Column(UUID(as_uuid=True), ForeignKey("approval_workflows.workflow_id"), nullable=False)
    step_order = Column(Integer, nullable=False)
    step_name = Column(String(100), nullable=False)
    assigned_role = Column(String(100))
    assigned_user_id = Column(UUID(as_uuid=True))
    status = Column(String(20), nullable=False, default="pending")  # pending, completed, rejected
    updated_at = Column(DateTime)

    workflow = relationship("ApprovalWorkflow", back_populates="steps")


class OutboxEvent(Base):
    """Side effect recorded in the order transaction, delivered after commit."""

    __tablename__ = "outbox_events"

    event_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_type = Column(String(50), nullable=False)
    aggregate_type = Column(String(50), nullable=False, default="order")
    aggregate_id = Column(UUID(as_uuid=True), nullable=False)
    payload = Column(JSON, nullable=False)
    status = Column(String(20), nullable=False, default=OutboxStatus.PENDING.value)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    processed_at = Column(DateTime)

    __table_args__ = (
        Index("ix_outbox_status_created", "status", "created_at"),
        CheckConstraint(check_in("status", OutboxStatus), name="ck_outbox_status"),
    )
