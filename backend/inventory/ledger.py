"""
Inventory Ledger — Validate and apply stock decrements for order lines.

Runs inside the caller's open transaction. Every row that is about to be
decremented is read FOR UPDATE and checked before anything is written, so a
failing line leaves no partial mutation behind.

Tracking strategies (product.tracking_type):
  none    one inventory_stock row per product(+location); decrement by qty
  batch   caller-supplied (batch_lot_id, qty) pairs summing to the line qty;
          decrements batch_lots.remaining_quantity, product_batches.quantity
          and the (product, batch) inventory_stock row
  serial  caller-supplied serial numbers, one per unit; each goes
          available → sold and its (product, serial) stock row drops by 1

An optional van source is checked and decremented in every strategy.
No counter is ever allowed below zero; the whole line is rejected instead.

Outputs:
  - stock_movements: one row per batch, per serial, or per untracked line
  - SALE_REVERSAL movements (reversal_of_id → original) when an order's
    consumption is released on update, delete or reject
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import (
    BatchQuantityMismatch,
    InsufficientInventory,
    InventoryRecordMissing,
    SerialUnavailable,
    ValidationError,
)
from db.enums import MovementType, SerialStatus, TrackingType
from db.models import (
    BatchLot,
    InventoryStock,
    Product,
    ProductBatch,
    SerialNumber,
    StockMovement,
    VanInventory,
    VanInventoryItem,
)

logger = structlog.get_logger()

REFERENCE_TYPE_ORDER = "ORDER"


@dataclass
class BatchAllocation:
    batch_lot_id: uuid.UUID
    quantity: int


@dataclass
class TrackingDetail:
    """Which batches or serials a line draws from. Empty for untracked products."""

    batches: list[BatchAllocation] = field(default_factory=list)
    serials: list[str] = field(default_factory=list)


@dataclass
class SaleReference:
    order_id: uuid.UUID
    order_number: str
    customer_id: uuid.UUID
    acting_user_id: uuid.UUID
    movement_type: MovementType = MovementType.SALE


@dataclass
class ConsumptionResult:
    consumed_qty: int
    movements: list[StockMovement]
    notes: str | None = None


# ── Row access ────────────────────────────────────────────────────────────


async def _lock_stock_row(
    db: AsyncSession,
    product_id: uuid.UUID,
    *,
    location_id: uuid.UUID | None = None,
    batch_lot_id: uuid.UUID | None = None,
    serial_number_id: uuid.UUID | None = None,
) -> InventoryStock | None:
    query = select(InventoryStock).where(InventoryStock.product_id == product_id)
    if serial_number_id is not None:
        query = query.where(InventoryStock.serial_number_id == serial_number_id)
    elif batch_lot_id is not None:
        query = query.where(InventoryStock.batch_lot_id == batch_lot_id)
    else:
        query = query.where(
            InventoryStock.batch_lot_id.is_(None),
            InventoryStock.serial_number_id.is_(None),
        )
        if location_id is not None:
            query = query.where(InventoryStock.location_id == location_id)
    query = query.order_by(InventoryStock.available_stock.desc()).limit(1).with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def _lock_van_item(
    db: AsyncSession,
    van: VanInventory,
    product_id: uuid.UUID,
    *,
    batch_lot_id: uuid.UUID | None = None,
    serial_number_id: uuid.UUID | None = None,
) -> VanInventoryItem:
    result = await db.execute(
        select(VanInventoryItem)
        .where(
            VanInventoryItem.van_inventory_id == van.van_inventory_id,
            VanInventoryItem.product_id == product_id,
        )
        .with_for_update()
    )
    items = result.scalars().all()
    exact = [
        i
        for i in items
        if (batch_lot_id is None or i.batch_lot_id == batch_lot_id)
        and (serial_number_id is None or i.serial_number_id == serial_number_id)
    ]
    generic = [i for i in items if i.batch_lot_id is None and i.serial_number_id is None]
    candidates = exact or generic
    if not candidates:
        raise InsufficientInventory(
            "Product is not loaded on the van",
            product_id=product_id,
            van_inventory_id=van.van_inventory_id,
        )
    return max(candidates, key=lambda i: i.quantity)


def _require_stock(row: InventoryStock, quantity: int, product: Product, label: str) -> None:
    if row.current_stock < quantity or row.available_stock < quantity:
        raise InsufficientInventory(
            f"Insufficient stock for {product.name}{label}. "
            f"Available: {min(row.current_stock, row.available_stock)}, Requested: {quantity}",
            product_id=product.product_id,
        )


def _require_van(item: VanInventoryItem | None, quantity: int, product: Product) -> None:
    if item is not None and item.quantity < quantity:
        raise InsufficientInventory(
            f"Insufficient van stock for {product.name}. Available: {item.quantity}, Requested: {quantity}",
            product_id=product.product_id,
        )


def _decrement_stock(row: InventoryStock, quantity: int, user_id: uuid.UUID) -> None:
    row.current_stock -= quantity
    row.available_stock -= quantity
    row.updated_by = user_id
    row.updated_at = datetime.utcnow()


def _remark(ref: SaleReference) -> str:
    if ref.movement_type == MovementType.FREE_GIFT:
        return f"Free gift via order {ref.order_number}"
    return f"Sold via order {ref.order_number}"


def _movement(
    product: Product,
    quantity: int,
    ref: SaleReference,
    remarks: str,
    *,
    stock_row: InventoryStock | None = None,
    van: VanInventory | None = None,
    van_item: VanInventoryItem | None = None,
    batch_lot_id: uuid.UUID | None = None,
    serial_number_id: uuid.UUID | None = None,
) -> StockMovement:
    from_location = van.location_id if van is not None else (stock_row.location_id if stock_row else None)
    return StockMovement(
        product_id=product.product_id,
        batch_lot_id=batch_lot_id,
        serial_number_id=serial_number_id,
        inventory_stock_id=stock_row.id if stock_row is not None else None,
        van_inventory_id=van.van_inventory_id if van is not None else None,
        van_inventory_item_id=van_item.id if van_item is not None else None,
        movement_type=ref.movement_type.value,
        reference_type=REFERENCE_TYPE_ORDER,
        reference_id=ref.order_id,
        from_location_id=from_location,
        to_location_id=None,
        quantity=quantity,
        movement_date=datetime.utcnow(),
        remarks=remarks,
        created_by=ref.acting_user_id,
    )


# ── Strategies ────────────────────────────────────────────────────────────


async def _consume_untracked(
    db: AsyncSession,
    product: Product,
    quantity: int,
    ref: SaleReference,
    source: VanInventory | None,
) -> ConsumptionResult:
    location_id = source.location_id if source is not None else None
    row = await _lock_stock_row(db, product.product_id, location_id=location_id)
    if row is None:
        raise InventoryRecordMissing(
            f"No inventory record for product {product.name}",
            product_id=product.product_id,
        )
    _require_stock(row, quantity, product, "")
    van_item = await _lock_van_item(db, source, product.product_id) if source is not None else None
    _require_van(van_item, quantity, product)

    _decrement_stock(row, quantity, ref.acting_user_id)
    if van_item is not None:
        van_item.quantity -= quantity

    movement = _movement(
        product,
        quantity,
        ref,
        _remark(ref),
        stock_row=row,
        van=source,
        van_item=van_item,
    )
    db.add(movement)
    return ConsumptionResult(consumed_qty=quantity, movements=[movement])


async def _consume_batches(
    db: AsyncSession,
    product: Product,
    quantity: int,
    batches: list[BatchAllocation],
    ref: SaleReference,
    source: VanInventory | None,
) -> ConsumptionResult:
    if not batches:
        raise ValidationError(f"Batch selection is required for {product.name}", product_id=product.product_id)
    if any(b.quantity <= 0 for b in batches):
        raise ValidationError("Batch quantities must be positive", product_id=product.product_id)
    if len({b.batch_lot_id for b in batches}) != len(batches):
        raise ValidationError("Each batch may only appear once per line", product_id=product.product_id)
    batch_total = sum(b.quantity for b in batches)
    if batch_total != quantity:
        raise BatchQuantityMismatch(
            f"Total batch quantity ({batch_total}) does not match ordered quantity ({quantity}) "
            f"for {product.name}",
            product_id=product.product_id,
        )

    # Lock and validate every row first; mutate only once all checks pass.
    plan = []
    for alloc in batches:
        lot = (
            await db.execute(select(BatchLot).where(BatchLot.batch_lot_id == alloc.batch_lot_id).with_for_update())
        ).scalar_one_or_none()
        if lot is None or lot.product_id != product.product_id:
            raise InventoryRecordMissing(
                f"Batch {alloc.batch_lot_id} not found for {product.name}",
                batch_lot_id=alloc.batch_lot_id,
            )
        if lot.remaining_quantity < alloc.quantity:
            raise InsufficientInventory(
                f"Insufficient quantity in batch {lot.batch_number}. "
                f"Available: {lot.remaining_quantity}, Requested: {alloc.quantity}",
                batch_lot_id=lot.batch_lot_id,
            )

        product_batch = (
            await db.execute(
                select(ProductBatch)
                .where(
                    ProductBatch.product_id == product.product_id,
                    ProductBatch.batch_lot_id == lot.batch_lot_id,
                    ProductBatch.is_active.is_(True),
                )
                .with_for_update()
            )
        ).scalars().first()
        if product_batch is not None and product_batch.quantity < alloc.quantity:
            raise InsufficientInventory(
                f"Insufficient product batch quantity in batch {lot.batch_number}. "
                f"Available: {product_batch.quantity}, Requested: {alloc.quantity}",
                batch_lot_id=lot.batch_lot_id,
            )

        row = await _lock_stock_row(db, product.product_id, batch_lot_id=lot.batch_lot_id)
        if row is None:
            raise InventoryRecordMissing(
                f"No inventory record for {product.name} batch {lot.batch_number}",
                batch_lot_id=lot.batch_lot_id,
            )
        _require_stock(row, alloc.quantity, product, f" in batch {lot.batch_number}")

        van_item = None
        if source is not None:
            van_item = await _lock_van_item(db, source, product.product_id, batch_lot_id=lot.batch_lot_id)
        plan.append((alloc, lot, product_batch, row, van_item))

    # Several batches may draw from the same generic van item.
    if source is not None:
        per_item: dict[uuid.UUID, int] = {}
        for alloc, _, _, _, van_item in plan:
            per_item[van_item.id] = per_item.get(van_item.id, 0) + alloc.quantity
        for _, _, _, _, van_item in plan:
            _require_van(van_item, per_item[van_item.id], product)

    movements = []
    for alloc, lot, product_batch, row, van_item in plan:
        lot.remaining_quantity -= alloc.quantity
        if product_batch is not None:
            product_batch.quantity -= alloc.quantity
        _decrement_stock(row, alloc.quantity, ref.acting_user_id)
        if van_item is not None:
            van_item.quantity -= alloc.quantity

        movement = _movement(
            product,
            alloc.quantity,
            ref,
            _remark(ref) + f" - Batch: {lot.batch_number}",
            stock_row=row,
            van=source,
            van_item=van_item,
            batch_lot_id=lot.batch_lot_id,
        )
        db.add(movement)
        movements.append(movement)
        logger.info(
            "inventory.batch_consumed",
            product_id=str(product.product_id),
            batch_number=lot.batch_number,
            quantity=alloc.quantity,
            order_number=ref.order_number,
        )

    notes = "Batches: " + ", ".join(f"{lot.batch_number} x{alloc.quantity}" for alloc, lot, *_ in plan)
    return ConsumptionResult(consumed_qty=batch_total, movements=movements, notes=notes)


async def _consume_serials(
    db: AsyncSession,
    product: Product,
    quantity: int,
    serials: list[str],
    ref: SaleReference,
    source: VanInventory | None,
) -> ConsumptionResult:
    if len(serials) != quantity:
        raise ValidationError(
            f"Number of serial numbers ({len(serials)}) does not match ordered quantity ({quantity}) "
            f"for {product.name}",
            product_id=product.product_id,
        )
    if len(set(serials)) != len(serials):
        raise SerialUnavailable("Duplicate serial numbers in order line", product_id=product.product_id)

    plan = []
    for value in serials:
        serial = (
            await db.execute(select(SerialNumber).where(SerialNumber.serial_number == value).with_for_update())
        ).scalar_one_or_none()
        if serial is None or serial.product_id != product.product_id:
            raise SerialUnavailable(f"Serial number {value} not found for {product.name}", serial_number=value)
        if serial.status != SerialStatus.AVAILABLE.value:
            raise SerialUnavailable(f"Serial number {value} is not available (status: {serial.status})", serial_number=value)

        row = await _lock_stock_row(db, product.product_id, serial_number_id=serial.serial_id)
        if row is None:
            raise InventoryRecordMissing(f"No inventory record for serial {value}", serial_number=value)
        _require_stock(row, 1, product, f" serial {value}")

        van_item = None
        if source is not None:
            van_item = await _lock_van_item(db, source, product.product_id, serial_number_id=serial.serial_id)
        plan.append((serial, row, van_item))

    # Several serials may draw from the same generic van item.
    if source is not None:
        per_item: dict[uuid.UUID, int] = {}
        for _, _, van_item in plan:
            per_item[van_item.id] = per_item.get(van_item.id, 0) + 1
        for _, _, van_item in plan:
            _require_van(van_item, per_item[van_item.id], product)

    now = datetime.utcnow()
    movements = []
    for serial, row, van_item in plan:
        serial.status = SerialStatus.SOLD.value
        serial.customer_id = ref.customer_id
        serial.sold_date = now
        serial.updated_by = ref.acting_user_id
        _decrement_stock(row, 1, ref.acting_user_id)
        if van_item is not None:
            van_item.quantity -= 1

        movement = _movement(
            product,
            1,
            ref,
            _remark(ref) + f" - Serial: {serial.serial_number}",
            stock_row=row,
            van=source,
            van_item=van_item,
            serial_number_id=serial.serial_id,
        )
        db.add(movement)
        movements.append(movement)

    logger.info(
        "inventory.serials_consumed",
        product_id=str(product.product_id),
        count=len(plan),
        order_number=ref.order_number,
    )
    return ConsumptionResult(
        consumed_qty=len(plan),
        movements=movements,
        notes="Serials: " + ", ".join(serials),
    )


# ── Public API ────────────────────────────────────────────────────────────


async def apply_line_consumption(
    db: AsyncSession,
    product: Product,
    requested_qty: int,
    *,
    tracking_detail: TrackingDetail | None,
    reference: SaleReference,
    source: VanInventory | None = None,
) -> ConsumptionResult:
    """Consume stock for one order line using the product's tracking strategy."""
    if requested_qty <= 0:
        raise ValidationError("Quantity must be positive", product_id=product.product_id)
    detail = tracking_detail or TrackingDetail()
    tracking = product.tracking_type or TrackingType.NONE.value

    if tracking == TrackingType.BATCH.value:
        return await _consume_batches(db, product, requested_qty, detail.batches, reference, source)
    if tracking == TrackingType.SERIAL.value:
        return await _consume_serials(db, product, requested_qty, detail.serials, reference, source)
    return await _consume_untracked(db, product, requested_qty, reference, source)


async def allocate_free_gift(db: AsyncSession, product: Product, quantity: int) -> TrackingDetail:
    """
    Pick stock for a free-gift line the caller did not allocate.

    Batch products draw first-expiring-first (FEFO); serial products take
    the first available serials by number.
    """
    tracking = product.tracking_type or TrackingType.NONE.value

    if tracking == TrackingType.BATCH.value:
        result = await db.execute(
            select(BatchLot)
            .where(BatchLot.product_id == product.product_id, BatchLot.remaining_quantity > 0)
            .order_by(BatchLot.expiry_date.is_(None), BatchLot.expiry_date, BatchLot.batch_number)
            .with_for_update()
        )
        allocations = []
        needed = quantity
        for lot in result.scalars().all():
            if needed <= 0:
                break
            take = min(lot.remaining_quantity, needed)
            allocations.append(BatchAllocation(batch_lot_id=lot.batch_lot_id, quantity=take))
            needed -= take
        if needed > 0:
            raise InsufficientInventory(
                f"Insufficient stock for free gift {product.name}. Requested: {quantity}",
                product_id=product.product_id,
            )
        return TrackingDetail(batches=allocations)

    if tracking == TrackingType.SERIAL.value:
        result = await db.execute(
            select(SerialNumber)
            .where(
                SerialNumber.product_id == product.product_id,
                SerialNumber.status == SerialStatus.AVAILABLE.value,
            )
            .order_by(SerialNumber.serial_number)
            .limit(quantity)
            .with_for_update()
        )
        serials = [s.serial_number for s in result.scalars().all()]
        if len(serials) < quantity:
            raise InsufficientInventory(
                f"Insufficient serialized stock for free gift {product.name}. "
                f"Available: {len(serials)}, Requested: {quantity}",
                product_id=product.product_id,
            )
        return TrackingDetail(serials=serials)

    return TrackingDetail()


async def reverse_order_consumption(
    db: AsyncSession,
    order_id: uuid.UUID,
    acting_user_id: uuid.UUID,
    reason: str,
) -> int:
    """
    Give back everything an order consumed. Returns the number of movements reversed.

    Each original movement gets exactly one SALE_REVERSAL counterpart; running
    this twice is a no-op the second time.
    """
    result = await db.execute(
        select(StockMovement)
        .where(
            StockMovement.reference_type == REFERENCE_TYPE_ORDER,
            StockMovement.reference_id == order_id,
        )
        .order_by(StockMovement.movement_date)
    )
    movements = result.scalars().all()
    reversed_ids = {m.reversal_of_id for m in movements if m.reversal_of_id is not None}
    pending = [
        m
        for m in movements
        if m.movement_type in (MovementType.SALE.value, MovementType.FREE_GIFT.value) and m.movement_id not in reversed_ids
    ]

    now = datetime.utcnow()
    for original in pending:
        qty = original.quantity
        if original.inventory_stock_id is not None:
            row = (
                await db.execute(
                    select(InventoryStock).where(InventoryStock.id == original.inventory_stock_id).with_for_update()
                )
            ).scalar_one_or_none()
            if row is not None:
                row.current_stock += qty
                row.available_stock += qty
                row.updated_by = acting_user_id
                row.updated_at = now

        if original.batch_lot_id is not None:
            lot = (
                await db.execute(
                    select(BatchLot).where(BatchLot.batch_lot_id == original.batch_lot_id).with_for_update()
                )
            ).scalar_one_or_none()
            if lot is not None:
                lot.remaining_quantity += qty
            product_batch = (
                await db.execute(
                    select(ProductBatch)
                    .where(
                        ProductBatch.product_id == original.product_id,
                        ProductBatch.batch_lot_id == original.batch_lot_id,
                        ProductBatch.is_active.is_(True),
                    )
                    .with_for_update()
                )
            ).scalars().first()
            if product_batch is not None:
                product_batch.quantity += qty

        if original.serial_number_id is not None:
            serial = await db.get(SerialNumber, original.serial_number_id, with_for_update=True)
            if serial is not None:
                serial.status = SerialStatus.AVAILABLE.value
                serial.customer_id = None
                serial.sold_date = None
                serial.updated_by = acting_user_id

        if original.van_inventory_item_id is not None:
            van_item = await db.get(VanInventoryItem, original.van_inventory_item_id, with_for_update=True)
            if van_item is not None:
                van_item.quantity += qty

        db.add(
            StockMovement(
                product_id=original.product_id,
                batch_lot_id=original.batch_lot_id,
                serial_number_id=original.serial_number_id,
                inventory_stock_id=original.inventory_stock_id,
                van_inventory_id=original.van_inventory_id,
                van_inventory_item_id=original.van_inventory_item_id,
                movement_type=MovementType.SALE_REVERSAL.value,
                reference_type=REFERENCE_TYPE_ORDER,
                reference_id=order_id,
                from_location_id=None,
                to_location_id=original.from_location_id,
                quantity=qty,
                movement_date=now,
                remarks=reason,
                reversal_of_id=original.movement_id,
                created_by=acting_user_id,
            )
        )

    if pending:
        logger.info("inventory.consumption_reversed", order_id=str(order_id), movements=len(pending), reason=reason)
    return len(pending)
