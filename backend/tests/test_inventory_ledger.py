"""
Unit Tests — Inventory ledger (untracked, batch, serial consumption).
"""

import uuid

import pytest
from sqlalchemy import func, select

from core.errors import (
    BatchQuantityMismatch,
    InsufficientInventory,
    SerialUnavailable,
    ValidationError,
)
from db.models import (
    BatchLot,
    InventoryStock,
    Location,
    ProductBatch,
    SerialNumber,
    StockMovement,
    VanInventory,
    VanInventoryItem,
)
from inventory.ledger import (
    BatchAllocation,
    SaleReference,
    TrackingDetail,
    allocate_free_gift,
    apply_line_consumption,
    reverse_order_consumption,
)


def _ref(seeded_db, order_id=None):
    return SaleReference(
        order_id=order_id or uuid.uuid4(),
        order_number="ORD-99999",
        customer_id=seeded_db["customer"].customer_id,
        acting_user_id=seeded_db["admin_id"],
    )


async def _stock(db, product_id, **criteria):
    query = select(InventoryStock).where(InventoryStock.product_id == product_id)
    for column, value in criteria.items():
        query = query.where(getattr(InventoryStock, column) == value)
    result = await db.execute(query.execution_options(populate_existing=True))
    return result.scalars().first()


async def _movement_count(db):
    return await db.scalar(select(func.count()).select_from(StockMovement))


@pytest.mark.asyncio
class TestUntracked:
    async def test_decrements_stock_and_writes_one_movement(self, test_db, seeded_db):
        widget = seeded_db["widget"]
        result = await apply_line_consumption(test_db, widget, 5, tracking_detail=None, reference=_ref(seeded_db))
        await test_db.flush()

        row = await _stock(test_db, widget.product_id)
        assert row.current_stock == 45
        assert row.available_stock == 45
        assert result.consumed_qty == 5
        assert len(result.movements) == 1
        assert result.movements[0].movement_type == "SALE"
        assert result.movements[0].reference_type == "ORDER"
        assert await _movement_count(test_db) == 1

    async def test_rejects_instead_of_going_negative(self, test_db, seeded_db):
        widget = seeded_db["widget"]
        with pytest.raises(InsufficientInventory, match="Available: 50, Requested: 60"):
            await apply_line_consumption(test_db, widget, 60, tracking_detail=None, reference=_ref(seeded_db))

        row = await _stock(test_db, widget.product_id)
        assert row.current_stock == 50
        assert await _movement_count(test_db) == 0


@pytest.mark.asyncio
class TestBatch:
    async def test_split_across_batches(self, test_db, seeded_db):
        vaccine, lot_a, lot_b = seeded_db["vaccine"], seeded_db["lot_a"], seeded_db["lot_b"]
        detail = TrackingDetail(
            batches=[BatchAllocation(lot_a.batch_lot_id, 3), BatchAllocation(lot_b.batch_lot_id, 1)]
        )
        result = await apply_line_consumption(test_db, vaccine, 4, tracking_detail=detail, reference=_ref(seeded_db))
        await test_db.flush()

        assert lot_a.remaining_quantity == 0
        assert lot_b.remaining_quantity == 0
        assert (await _stock(test_db, vaccine.product_id, batch_lot_id=lot_a.batch_lot_id)).current_stock == 0
        product_batches = (await test_db.execute(select(ProductBatch))).scalars().all()
        assert all(pb.quantity == 0 for pb in product_batches)
        assert len(result.movements) == 2
        assert result.notes == "Batches: LOT-A x3, LOT-B x1"

    async def test_insufficient_second_batch_rejects_whole_line(self, test_db, seeded_db):
        """(3, 2) split where LOT-B only holds 1: nothing may change."""
        vaccine, lot_a, lot_b = seeded_db["vaccine"], seeded_db["lot_a"], seeded_db["lot_b"]
        detail = TrackingDetail(
            batches=[BatchAllocation(lot_a.batch_lot_id, 3), BatchAllocation(lot_b.batch_lot_id, 2)]
        )
        with pytest.raises(InsufficientInventory, match="LOT-B"):
            await apply_line_consumption(test_db, vaccine, 5, tracking_detail=detail, reference=_ref(seeded_db))

        await test_db.flush()
        assert lot_a.remaining_quantity == 3
        assert lot_b.remaining_quantity == 1
        assert (await _stock(test_db, vaccine.product_id, batch_lot_id=lot_a.batch_lot_id)).current_stock == 3
        assert await _movement_count(test_db) == 0

    async def test_batch_total_must_match_quantity(self, test_db, seeded_db):
        vaccine, lot_a = seeded_db["vaccine"], seeded_db["lot_a"]
        detail = TrackingDetail(batches=[BatchAllocation(lot_a.batch_lot_id, 2)])
        with pytest.raises(BatchQuantityMismatch, match="does not match ordered quantity"):
            await apply_line_consumption(test_db, vaccine, 3, tracking_detail=detail, reference=_ref(seeded_db))

    async def test_batch_selection_required(self, test_db, seeded_db):
        with pytest.raises(ValidationError):
            await apply_line_consumption(
                test_db, seeded_db["vaccine"], 1, tracking_detail=None, reference=_ref(seeded_db)
            )


@pytest.mark.asyncio
class TestSerial:
    async def test_serials_sold_once_and_bound_to_customer(self, test_db, seeded_db):
        phone = seeded_db["phone"]
        detail = TrackingDetail(serials=["SN-001", "SN-002"])
        result = await apply_line_consumption(test_db, phone, 2, tracking_detail=detail, reference=_ref(seeded_db))
        await test_db.flush()

        sold = (
            await test_db.execute(select(SerialNumber).where(SerialNumber.serial_number.in_(["SN-001", "SN-002"])))
        ).scalars().all()
        assert {s.status for s in sold} == {"sold"}
        assert {s.customer_id for s in sold} == {seeded_db["customer"].customer_id}
        assert all(s.sold_date is not None for s in sold)
        assert len(result.movements) == 2
        assert result.notes == "Serials: SN-001, SN-002"

        with pytest.raises(SerialUnavailable, match="SN-001"):
            await apply_line_consumption(
                test_db,
                phone,
                1,
                tracking_detail=TrackingDetail(serials=["SN-001"]),
                reference=_ref(seeded_db),
            )

    async def test_serial_count_must_match_quantity(self, test_db, seeded_db):
        with pytest.raises(ValidationError, match="does not match ordered quantity"):
            await apply_line_consumption(
                test_db,
                seeded_db["phone"],
                2,
                tracking_detail=TrackingDetail(serials=["SN-001"]),
                reference=_ref(seeded_db),
            )

    async def test_unknown_serial(self, test_db, seeded_db):
        with pytest.raises(SerialUnavailable, match="not found"):
            await apply_line_consumption(
                test_db,
                seeded_db["phone"],
                1,
                tracking_detail=TrackingDetail(serials=["SN-404"]),
                reference=_ref(seeded_db),
            )


@pytest.mark.asyncio
class TestFreeGiftAllocation:
    async def test_batches_allocated_first_expiry_first(self, test_db, seeded_db):
        detail = await allocate_free_gift(test_db, seeded_db["vaccine"], 4)
        assert [(b.batch_lot_id, b.quantity) for b in detail.batches] == [
            (seeded_db["lot_a"].batch_lot_id, 3),
            (seeded_db["lot_b"].batch_lot_id, 1),
        ]

    async def test_batches_exhausted(self, test_db, seeded_db):
        with pytest.raises(InsufficientInventory):
            await allocate_free_gift(test_db, seeded_db["vaccine"], 5)

    async def test_first_available_serials(self, test_db, seeded_db):
        detail = await allocate_free_gift(test_db, seeded_db["phone"], 2)
        assert detail.serials == ["SN-001", "SN-002"]


@pytest.mark.asyncio
class TestReversal:
    async def test_reversal_restores_stock_once(self, test_db, seeded_db):
        order_id = uuid.uuid4()
        widget, phone = seeded_db["widget"], seeded_db["phone"]
        await apply_line_consumption(test_db, widget, 7, tracking_detail=None, reference=_ref(seeded_db, order_id))
        await apply_line_consumption(
            test_db,
            phone,
            1,
            tracking_detail=TrackingDetail(serials=["SN-003"]),
            reference=_ref(seeded_db, order_id),
        )
        await test_db.flush()

        reversed_count = await reverse_order_consumption(test_db, order_id, seeded_db["admin_id"], "test")
        await test_db.flush()
        assert reversed_count == 2

        row = await _stock(test_db, widget.product_id)
        assert row.current_stock == 50
        serial = (
            await test_db.execute(select(SerialNumber).where(SerialNumber.serial_number == "SN-003"))
        ).scalar_one()
        assert serial.status == "available"
        assert serial.customer_id is None

        reversals = (
            await test_db.execute(select(StockMovement).where(StockMovement.movement_type == "SALE_REVERSAL"))
        ).scalars().all()
        assert len(reversals) == 2
        assert all(r.reversal_of_id is not None for r in reversals)

        assert await reverse_order_consumption(test_db, order_id, seeded_db["admin_id"], "again") == 0


async def _van(db, seeded_db, *items):
    """A loaded van; ``items`` are (product key, quantity, batch lot key or None)."""
    location = Location(name="Van 7", location_type="van")
    db.add(location)
    await db.flush()
    van = VanInventory(salesperson_id=seeded_db["salesperson_id"], location_id=location.location_id)
    db.add(van)
    await db.flush()

    loaded = []
    for product_key, quantity, lot_key in items:
        item = VanInventoryItem(
            van_inventory_id=van.van_inventory_id,
            product_id=seeded_db[product_key].product_id,
            batch_lot_id=seeded_db[lot_key].batch_lot_id if lot_key else None,
            quantity=quantity,
        )
        db.add(item)
        loaded.append(item)
    await db.flush()
    return van, loaded


@pytest.mark.asyncio
class TestVanSource:
    async def test_untracked_draws_from_van_location(self, test_db, seeded_db):
        widget = seeded_db["widget"]
        van, (item,) = await _van(test_db, seeded_db, ("widget", 5, None))
        test_db.add(
            InventoryStock(product_id=widget.product_id, location_id=van.location_id, current_stock=5, available_stock=5)
        )
        await test_db.flush()

        result = await apply_line_consumption(
            test_db, widget, 3, tracking_detail=None, reference=_ref(seeded_db), source=van
        )
        await test_db.flush()

        assert item.quantity == 2
        assert (await _stock(test_db, widget.product_id, location_id=van.location_id)).current_stock == 2
        assert (await _stock(test_db, widget.product_id, location_id=seeded_db["warehouse"].location_id)).current_stock == 50
        movement = result.movements[0]
        assert movement.van_inventory_id == van.van_inventory_id
        assert movement.van_inventory_item_id == item.id
        assert movement.from_location_id == van.location_id

    async def test_untracked_short_van_rejects(self, test_db, seeded_db):
        widget = seeded_db["widget"]
        van, (item,) = await _van(test_db, seeded_db, ("widget", 2, None))
        test_db.add(
            InventoryStock(product_id=widget.product_id, location_id=van.location_id, current_stock=5, available_stock=5)
        )
        await test_db.flush()

        with pytest.raises(InsufficientInventory, match="Insufficient van stock"):
            await apply_line_consumption(
                test_db, widget, 3, tracking_detail=None, reference=_ref(seeded_db), source=van
            )
        assert item.quantity == 2
        assert await _movement_count(test_db) == 0

    async def test_product_not_on_van(self, test_db, seeded_db):
        van, _ = await _van(test_db, seeded_db, ("keychain", 5, None))
        detail = TrackingDetail(batches=[BatchAllocation(seeded_db["lot_a"].batch_lot_id, 1)])
        with pytest.raises(InsufficientInventory, match="not loaded on the van"):
            await apply_line_consumption(
                test_db, seeded_db["vaccine"], 1, tracking_detail=detail, reference=_ref(seeded_db), source=van
            )
        assert seeded_db["lot_a"].remaining_quantity == 3

    async def test_batches_on_shared_generic_item_are_checked_together(self, test_db, seeded_db):
        vaccine, lot_a, lot_b = seeded_db["vaccine"], seeded_db["lot_a"], seeded_db["lot_b"]
        van, (item,) = await _van(test_db, seeded_db, ("vaccine", 3, None))
        detail = TrackingDetail(
            batches=[BatchAllocation(lot_a.batch_lot_id, 3), BatchAllocation(lot_b.batch_lot_id, 1)]
        )

        with pytest.raises(InsufficientInventory, match="Available: 3, Requested: 4"):
            await apply_line_consumption(
                test_db, vaccine, 4, tracking_detail=detail, reference=_ref(seeded_db), source=van
            )

        await test_db.flush()
        assert item.quantity == 3
        assert lot_a.remaining_quantity == 3
        assert lot_b.remaining_quantity == 1
        assert await _movement_count(test_db) == 0

    async def test_batches_use_matching_van_items(self, test_db, seeded_db):
        vaccine, lot_a, lot_b = seeded_db["vaccine"], seeded_db["lot_a"], seeded_db["lot_b"]
        van, (item_a, item_b) = await _van(
            test_db, seeded_db, ("vaccine", 3, "lot_a"), ("vaccine", 1, "lot_b")
        )
        detail = TrackingDetail(
            batches=[BatchAllocation(lot_a.batch_lot_id, 2), BatchAllocation(lot_b.batch_lot_id, 1)]
        )

        result = await apply_line_consumption(
            test_db, vaccine, 3, tracking_detail=detail, reference=_ref(seeded_db), source=van
        )
        await test_db.flush()

        assert (item_a.quantity, item_b.quantity) == (1, 0)
        assert {m.van_inventory_item_id for m in result.movements} == {item_a.id, item_b.id}

    async def test_serials_on_shared_generic_item_are_checked_together(self, test_db, seeded_db):
        van, (item,) = await _van(test_db, seeded_db, ("phone", 1, None))
        detail = TrackingDetail(serials=["SN-001", "SN-002"])

        with pytest.raises(InsufficientInventory, match="Available: 1, Requested: 2"):
            await apply_line_consumption(
                test_db, seeded_db["phone"], 2, tracking_detail=detail, reference=_ref(seeded_db), source=van
            )

        assert item.quantity == 1
        statuses = (
            await test_db.execute(select(SerialNumber.status).where(SerialNumber.serial_number.in_(["SN-001", "SN-002"])))
        ).scalars().all()
        assert set(statuses) == {"available"}

    async def test_serial_from_van(self, test_db, seeded_db):
        van, (item,) = await _van(test_db, seeded_db, ("phone", 2, None))
        await apply_line_consumption(
            test_db,
            seeded_db["phone"],
            1,
            tracking_detail=TrackingDetail(serials=["SN-003"]),
            reference=_ref(seeded_db),
            source=van,
        )
        await test_db.flush()
        assert item.quantity == 1

    async def test_reversal_returns_units_to_the_van(self, test_db, seeded_db):
        order_id = uuid.uuid4()
        van, (item,) = await _van(test_db, seeded_db, ("phone", 2, None))
        await apply_line_consumption(
            test_db,
            seeded_db["phone"],
            1,
            tracking_detail=TrackingDetail(serials=["SN-001"]),
            reference=_ref(seeded_db, order_id),
            source=van,
        )
        await test_db.flush()
        assert item.quantity == 1

        await reverse_order_consumption(test_db, order_id, seeded_db["admin_id"], "order deleted")
        await test_db.flush()
        assert item.quantity == 2
