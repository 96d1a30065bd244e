"""
Initial schema - master data, inventory, orders

Revision ID: 001
Revises: None
Create Date: 2026-03-02
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _pk(name: str) -> sa.Column:
    return sa.Column(name, UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()"))


def _fk(name: str, target: str, nullable: bool = True, **kwargs) -> sa.Column:
    return sa.Column(name, UUID(as_uuid=True), sa.ForeignKey(target, **kwargs), nullable=nullable)


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    # 1. Depots
    op.create_table(
        "depots",
        _pk("depot_id"),
        sa.Column("code", sa.String(50), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )

    # 2. Users
    op.create_table(
        "users",
        _pk("user_id"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("role", sa.String(100), nullable=False, server_default="Salesperson"),
        _fk("parent_id", "users.user_id"),
        _fk("depot_id", "depots.depot_id"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    # 3. Reference data
    op.create_table(
        "customer_categories",
        _pk("customer_category_id"),
        sa.Column("category_code", sa.String(50), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "routes",
        _pk("route_id"),
        _fk("depot_id", "depots.depot_id"),
        sa.Column("code", sa.String(50), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "currencies",
        _pk("currency_id"),
        sa.Column("code", sa.String(3), nullable=False, unique=True),
        sa.Column("name", sa.String(100), nullable=False),
    )

    # 4. Customers
    op.create_table(
        "customers",
        _pk("customer_id"),
        sa.Column("code", sa.String(50), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(50)),
        _fk("customer_category_id", "customer_categories.customer_category_id"),
        sa.Column("channel", sa.String(50)),
        _fk("route_id", "routes.route_id"),
        _fk("depot_id", "depots.depot_id"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_customers_route", "customers", ["route_id"])
    op.create_index("ix_customers_name", "customers", ["name"])

    # 5. Products
    op.create_table(
        "product_categories",
        _pk("category_id"),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
    )
    op.create_table(
        "products",
        _pk("product_id"),
        sa.Column("code", sa.String(100), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        _fk("category_id", "product_categories.category_id"),
        sa.Column("tracking_type", sa.String(10), nullable=False, server_default="none"),
        sa.Column("unit", sa.String(20), nullable=False, server_default="pcs"),
        sa.Column("unit_price", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("unit_price >= 0", name="ck_product_price_positive"),
        sa.CheckConstraint("tracking_type IN ('none', 'batch', 'serial')", name="ck_product_tracking_type"),
    )

    # 6. Locations, batches, serials
    op.create_table(
        "locations",
        _pk("location_id"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("location_type", sa.String(20), nullable=False, server_default="warehouse"),
        _fk("depot_id", "depots.depot_id"),
    )
    op.create_table(
        "batch_lots",
        _pk("batch_lot_id"),
        _fk("product_id", "products.product_id", nullable=False),
        sa.Column("batch_number", sa.String(100), nullable=False),
        sa.Column("manufacturing_date", sa.Date),
        sa.Column("expiry_date", sa.Date),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("remaining_quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("product_id", "batch_number", name="uq_batch_number_per_product"),
        sa.CheckConstraint("remaining_quantity >= 0", name="ck_batch_remaining_positive"),
    )
    op.create_table(
        "product_batches",
        _pk("id"),
        _fk("product_id", "products.product_id", nullable=False),
        _fk("batch_lot_id", "batch_lots.batch_lot_id", nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.CheckConstraint("quantity >= 0", name="ck_product_batch_qty_positive"),
    )
    op.create_table(
        "serial_numbers",
        _pk("serial_id"),
        _fk("product_id", "products.product_id", nullable=False),
        sa.Column("serial_number", sa.String(100), nullable=False, unique=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="available"),
        _fk("customer_id", "customers.customer_id"),
        _fk("location_id", "locations.location_id"),
        sa.Column("sold_date", sa.DateTime),
        sa.Column("updated_by", UUID(as_uuid=True)),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('available', 'reserved', 'sold', 'returned', 'damaged')", name="ck_serial_status"
        ),
    )
    op.create_index("ix_serial_numbers_product_status", "serial_numbers", ["product_id", "status"])

    # 7. Stock counters
    op.create_table(
        "inventory_stock",
        _pk("id"),
        _fk("product_id", "products.product_id", nullable=False),
        _fk("location_id", "locations.location_id"),
        _fk("batch_lot_id", "batch_lots.batch_lot_id"),
        _fk("serial_number_id", "serial_numbers.serial_id"),
        sa.Column("current_stock", sa.Integer, nullable=False, server_default="0"),
        sa.Column("available_stock", sa.Integer, nullable=False, server_default="0"),
        sa.Column("updated_by", UUID(as_uuid=True)),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("current_stock >= 0", name="ck_inventory_stock_current_positive"),
        sa.CheckConstraint("available_stock >= 0", name="ck_inventory_stock_available_positive"),
    )
    op.create_index("ix_inventory_stock_product", "inventory_stock", ["product_id", "location_id"])
    op.create_index("ix_inventory_stock_batch", "inventory_stock", ["product_id", "batch_lot_id"])
    op.create_index("ix_inventory_stock_serial", "inventory_stock", ["product_id", "serial_number_id"])

    # 8. Vans
    op.create_table(
        "van_inventory",
        _pk("van_inventory_id"),
        _fk("salesperson_id", "users.user_id", nullable=False),
        _fk("location_id", "locations.location_id"),
        sa.Column("status", sa.String(20), nullable=False, server_default="loaded"),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        "van_inventory_items",
        _pk("id"),
        _fk("van_inventory_id", "van_inventory.van_inventory_id", nullable=False),
        _fk("product_id", "products.product_id", nullable=False),
        _fk("batch_lot_id", "batch_lots.batch_lot_id"),
        _fk("serial_number_id", "serial_numbers.serial_id"),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="0"),
        sa.CheckConstraint("quantity >= 0", name="ck_van_item_qty_positive"),
    )

    # 9. Stock movements (append-only)
    op.create_table(
        "stock_movements",
        _pk("movement_id"),
        _fk("product_id", "products.product_id", nullable=False),
        _fk("batch_lot_id", "batch_lots.batch_lot_id"),
        _fk("serial_number_id", "serial_numbers.serial_id"),
        _fk("inventory_stock_id", "inventory_stock.id"),
        _fk("van_inventory_id", "van_inventory.van_inventory_id"),
        _fk("van_inventory_item_id", "van_inventory_items.id"),
        sa.Column("movement_type", sa.String(20), nullable=False),
        sa.Column("reference_type", sa.String(20), nullable=False),
        sa.Column("reference_id", UUID(as_uuid=True), nullable=False),
        _fk("from_location_id", "locations.location_id"),
        _fk("to_location_id", "locations.location_id"),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("movement_date", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("remarks", sa.Text),
        _fk("reversal_of_id", "stock_movements.movement_id"),
        sa.Column("created_by", UUID(as_uuid=True), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_stock_movement_qty_positive"),
        sa.CheckConstraint(
            "movement_type IN ('SALE', 'FREE_GIFT', 'SALE_REVERSAL')", name="ck_stock_movement_type"
        ),
    )
    op.create_index("ix_stock_movements_reference", "stock_movements", ["reference_type", "reference_id"])
    op.create_index("ix_stock_movements_product_date", "stock_movements", ["product_id", "movement_date"])

    # 10. Promotions
    op.create_table(
        "promotions",
        _pk("promotion_id"),
        sa.Column("code", sa.String(50), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(50)),
        sa.Column("description", sa.Text),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("end_date >= start_date", name="ck_promo_dates_valid"),
    )
    op.create_index("ix_promotions_dates", "promotions", ["start_date", "end_date"])

    for table, column, target in (
        ("promotion_depots", "depot_id", "depots.depot_id"),
        ("promotion_salespersons", "salesperson_id", "users.user_id"),
        ("promotion_routes", "route_id", "routes.route_id"),
        ("promotion_customer_categories", "customer_category_id", "customer_categories.customer_category_id"),
    ):
        op.create_table(
            table,
            _pk("id"),
            _fk("promotion_id", "promotions.promotion_id", nullable=False),
            _fk(column, target, nullable=False),
            sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        )

    op.create_table(
        "promotion_channels",
        _pk("id"),
        _fk("promotion_id", "promotions.promotion_id", nullable=False),
        sa.Column("channel_type", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "promotion_customer_exclusions",
        _pk("id"),
        _fk("promotion_id", "promotions.promotion_id", nullable=False),
        _fk("customer_id", "customers.customer_id", nullable=False),
        sa.Column("is_excluded", sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "promotion_conditions",
        _pk("condition_id"),
        _fk("promotion_id", "promotions.promotion_id", nullable=False),
        sa.Column("sequence", sa.Integer, nullable=False, server_default="1"),
        sa.Column("min_quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("min_value", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "promotion_condition_products",
        _pk("id"),
        _fk("condition_id", "promotion_conditions.condition_id", nullable=False),
        _fk("product_id", "products.product_id"),
        _fk("category_id", "product_categories.category_id"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.CheckConstraint("product_id IS NOT NULL OR category_id IS NOT NULL", name="ck_condition_product_target"),
    )
    op.create_table(
        "promotion_levels",
        _pk("level_id"),
        _fk("promotion_id", "promotions.promotion_id", nullable=False),
        sa.Column("level_number", sa.Integer, nullable=False, server_default="1"),
        sa.Column("threshold_value", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("discount_type", sa.String(20), nullable=False),
        sa.Column("discount_value", sa.Numeric(18, 4), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.CheckConstraint("discount_type IN ('PERCENTAGE', 'FIXED_AMOUNT')", name="ck_level_discount_type"),
        sa.CheckConstraint("discount_value >= 0", name="ck_level_discount_positive"),
    )
    op.create_table(
        "promotion_benefits",
        _pk("benefit_id"),
        _fk("level_id", "promotion_levels.level_id", nullable=False),
        sa.Column("benefit_type", sa.String(20), nullable=False, server_default="FREE_PRODUCT"),
        _fk("product_id", "products.product_id"),
        sa.Column("benefit_value", sa.Integer, nullable=False, server_default="0"),
        sa.Column("gift_limit", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "promotion_tracking",
        _pk("tracking_id"),
        _fk("promotion_id", "promotions.promotion_id", nullable=False),
        sa.Column("order_id", UUID(as_uuid=True)),
        sa.Column("action_type", sa.String(20), nullable=False, server_default="APPLIED"),
        sa.Column("action_date", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("comments", sa.Text),
    )

    # 11. Orders
    op.create_table(
        "orders",
        _pk("order_id"),
        sa.Column("order_number", sa.String(50), nullable=False, unique=True),
        _fk("customer_id", "customers.customer_id", nullable=False),
        _fk("salesperson_id", "users.user_id", nullable=False),
        _fk("currency_id", "currencies.currency_id"),
        _fk("promotion_id", "promotions.promotion_id"),
        _fk("van_inventory_id", "van_inventory.van_inventory_id"),
        sa.Column("order_date", sa.Date, nullable=False),
        sa.Column("delivery_date", sa.Date),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("priority", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("order_type", sa.String(20), nullable=False, server_default="regular"),
        sa.Column("payment_method", sa.String(20), nullable=False, server_default="credit"),
        sa.Column("payment_terms", sa.String(50), nullable=False, server_default="Net 30"),
        sa.Column("subtotal", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("discount_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("tax_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("shipping_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text),
        sa.Column("shipping_address", sa.Text),
        sa.Column("approval_status", sa.String(20), nullable=False, server_default="pending"),
        _fk("approved_by", "users.user_id"),
        sa.Column("approved_at", sa.DateTime),
        sa.Column("rejection_reason", sa.Text),
        sa.Column("is_active", sa.String(1), nullable=False, server_default="Y"),
        sa.Column("created_by", UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_by", UUID(as_uuid=True)),
        sa.Column("updated_at", sa.DateTime),
        sa.Column("log_inst", sa.Integer, nullable=False, server_default="1"),
        sa.CheckConstraint(
            "status IN ('draft', 'confirmed', 'processing', 'shipped', 'delivered', 'cancelled')",
            name="ck_order_status",
        ),
        sa.CheckConstraint(
            "approval_status IN ('pending', 'submitted', 'approved', 'rejected')",
            name="ck_order_approval_status",
        ),
        sa.CheckConstraint("is_active IN ('Y', 'N')", name="ck_order_is_active"),
        sa.CheckConstraint(
            "subtotal >= 0 AND discount_amount >= 0 AND tax_amount >= 0 "
            "AND shipping_amount >= 0 AND total_amount >= 0",
            name="ck_order_amounts_positive",
        ),
    )
    op.create_index("ix_orders_customer", "orders", ["customer_id"])
    op.create_index("ix_orders_salesperson", "orders", ["salesperson_id"])
    op.create_index("ix_orders_created_at", "orders", ["created_at"])

    op.create_table(
        "order_items",
        _pk("item_id"),
        _fk("order_id", "orders.order_id", nullable=False, ondelete="CASCADE"),
        sa.Column("line_number", sa.Integer, nullable=False),
        _fk("product_id", "products.product_id", nullable=False),
        sa.Column("product_name", sa.String(255)),
        sa.Column("unit", sa.String(20), server_default="pcs"),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("unit_price", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("discount_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("tax_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text),
        sa.Column("is_free_gift", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.CheckConstraint("quantity > 0", name="ck_order_item_qty_positive"),
        sa.CheckConstraint("unit_price >= 0", name="ck_order_item_price_positive"),
    )
    op.create_index("ix_order_items_order", "order_items", ["order_id"])

    op.create_table(
        "order_number_sequences",
        sa.Column("prefix", sa.String(20), primary_key=True),
        sa.Column("last_value", sa.Integer, nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    # 12. Notifications, approvals, outbox
    op.create_table(
        "notifications",
        _pk("notification_id"),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("category", sa.String(50), nullable=False, server_default="order"),
        sa.Column("reference_type", sa.String(50)),
        sa.Column("reference_id", UUID(as_uuid=True)),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_by", UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user", "notifications", ["user_id", "is_read"])

    op.create_table(
        "approval_requests",
        _pk("request_id"),
        _fk("requester_id", "users.user_id", nullable=False),
        sa.Column("request_type", sa.String(50), nullable=False),
        sa.Column("reference_id", UUID(as_uuid=True)),
        sa.Column("request_data", sa.Text),
        sa.Column("status", sa.String(1), nullable=False, server_default="P"),
        sa.Column("created_by", UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime),
        sa.Column("log_inst", sa.Integer, nullable=False, server_default="1"),
    )
    op.create_index("ix_approval_requests_reference", "approval_requests", ["request_type", "reference_id"])

    op.create_table(
        "approval_workflows",
        _pk("workflow_id"),
        sa.Column("reference_type", sa.String(50), nullable=False, server_default="order"),
        sa.Column("reference_id", UUID(as_uuid=True), nullable=False),
        sa.Column("reference_number", sa.String(50), nullable=False),
        sa.Column("requester_id", UUID(as_uuid=True), nullable=False),
        sa.Column("priority", sa.String(10), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("request_data", sa.JSON),
        sa.Column("final_approved_by", UUID(as_uuid=True)),
        sa.Column("final_approved_at", sa.DateTime),
        sa.Column("rejected_by", UUID(as_uuid=True)),
        sa.Column("rejected_at", sa.DateTime),
        sa.Column("rejection_reason", sa.Text),
        sa.Column("created_by", UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime),
        sa.CheckConstraint(
            "status IN ('pending', 'in_progress', 'approved', 'rejected')", name="ck_workflow_status"
        ),
        sa.CheckConstraint("priority IN ('low', 'medium', 'high', 'urgent')", name="ck_workflow_priority"),
    )
    op.create_index("ix_approval_workflows_reference", "approval_workflows", ["reference_type", "reference_id"])

    op.create_table(
        "workflow_steps",
        _pk("step_id"),
        _fk("workflow_id", "approval_workflows.workflow_id", nullable=False),
        sa.Column("step_order", sa.Integer, nullable=False),
        sa.Column("step_name", sa.String(100), nullable=False),
        sa.Column("assigned_role", sa.String(100)),
        sa.Column("assigned_user_id", UUID(as_uuid=True)),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("updated_at", sa.DateTime),
    )

    op.create_table(
        "outbox_events",
        _pk("event_id"),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("aggregate_type", sa.String(50), nullable=False, server_default="order"),
        sa.Column("aggregate_id", UUID(as_uuid=True), nullable=False),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("processed_at", sa.DateTime),
        sa.CheckConstraint("status IN ('pending', 'processed', 'failed')", name="ck_outbox_status"),
    )
    op.create_index("ix_outbox_status_created", "outbox_events", ["status", "created_at"])


def downgrade() -> None:
    tables = [
        "outbox_events",
        "workflow_steps",
        "approval_workflows",
        "approval_requests",
        "notifications",
        "order_number_sequences",
        "order_items",
        "orders",
        "promotion_tracking",
        "promotion_benefits",
        "promotion_levels",
        "promotion_condition_products",
        "promotion_conditions",
        "promotion_customer_exclusions",
        "promotion_channels",
        "promotion_customer_categories",
        "promotion_routes",
        "promotion_salespersons",
        "promotion_depots",
        "promotions",
        "stock_movements",
        "van_inventory_items",
        "van_inventory",
        "inventory_stock",
        "serial_numbers",
        "product_batches",
        "batch_lots",
        "locations",
        "products",
        "product_categories",
        "customers",
        "currencies",
        "routes",
        "customer_categories",
        "users",
        "depots",
    ]
    for table in tables:
        op.drop_table(table)
