import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from pydantic import ValidationError
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError

from atelier.core.exceptions import (
    InsufficientStockError, LedgerValidationError, NotFoundError, PersistenceError,
)
from atelier.db.models import AuditLog, MovementType, Product, StockMovement
from atelier.schemas.inventory import MovementReason, StockAdjustment, StockStatus
from atelier.services.inventory import (
    apply_movement, classify_stock, export_inventory_csv, get_inventory, get_inventory_stats, list_movements,
)


async def movement_count(db_session, product_id):
    result = await db_session.execute(
        select(func.count(StockMovement.id)).where(StockMovement.product_id == product_id)
    )
    return result.scalar()


async def stock_of(db_session, product_id):
    result = await db_session.execute(select(Product.stock_quantity).where(Product.id == product_id))
    return result.scalar_one()


def test_classify_stock():
    assert classify_stock(5, 5) == StockStatus.LOW_STOCK
    assert classify_stock(0, 5) == StockStatus.OUT_OF_STOCK
    assert classify_stock(6, 5) == StockStatus.IN_STOCK
    assert classify_stock(0, 0) == StockStatus.OUT_OF_STOCK
    assert classify_stock(1, 0) == StockStatus.IN_STOCK


@pytest.mark.asyncio
async def test_stock_in_updates_counter_and_ledger(db_session, admin_user, make_product):
    product = await make_product(stock_quantity=5)

    updated, movement = await apply_movement(
        db_session,
        product.id,
        StockAdjustment(type=MovementType.IN, quantity=10, reason=MovementReason.RECEIVED),
        actor_id=admin_user.id,
    )

    assert updated.stock_quantity == 15
    assert await stock_of(db_session, product.id) == 15
    assert await movement_count(db_session, product.id) == 1
    assert movement.type == MovementType.IN
    assert movement.quantity == 10
    assert movement.previous_quantity == 5
    assert movement.new_quantity == 15
    assert movement.created_by_id == admin_user.id

    audit = await db_session.execute(select(AuditLog).where(AuditLog.action == "STOCK_MOVEMENT"))
    assert audit.scalar_one().entity_id == product.id


@pytest.mark.asyncio
async def test_stock_out_decrements(db_session, admin_user, make_product):
    product = await make_product(stock_quantity=5)

    updated, _ = await apply_movement(
        db_session,
        product.id,
        StockAdjustment(type=MovementType.OUT, quantity=5, reason=MovementReason.SOLD),
        actor_id=admin_user.id,
    )

    assert updated.stock_quantity == 0


@pytest.mark.asyncio
async def test_stock_out_beyond_available_is_rejected(db_session, admin_user, make_product):
    product = await make_product(stock_quantity=3)

    with pytest.raises(InsufficientStockError, match="Only 3 units available"):
        await apply_movement(
            db_session,
            product.id,
            StockAdjustment(type=MovementType.OUT, quantity=4, reason=MovementReason.DAMAGED),
            actor_id=admin_user.id,
        )

    assert await stock_of(db_session, product.id) == 3
    assert await movement_count(db_session, product.id) == 0


@pytest.mark.asyncio
async def test_adjustment_sets_counted_level(db_session, admin_user, make_product):
    product = await make_product(stock_quantity=12)

    updated, movement = await apply_movement(
        db_session,
        product.id,
        StockAdjustment(type=MovementType.ADJUSTMENT, quantity=9, reason=MovementReason.ADJUSTMENT, notes="Annual count"),
        actor_id=admin_user.id,
    )

    assert updated.stock_quantity == 9
    assert movement.previous_quantity == 12
    assert movement.new_quantity == 9
    assert movement.notes == "Annual count"


@pytest.mark.asyncio
async def test_movement_on_missing_product(db_session, admin_user):
    with pytest.raises(NotFoundError):
        await apply_movement(
            db_session,
            9999,
            StockAdjustment(type=MovementType.IN, quantity=1, reason=MovementReason.RECEIVED),
            actor_id=admin_user.id,
        )


@pytest.mark.asyncio
async def test_unvalidated_command_is_rejected_before_mutation(db_session, admin_user, make_product):
    product = await make_product(stock_quantity=5)

    zero = StockAdjustment.model_construct(type=MovementType.IN, quantity=0, reason=MovementReason.RECEIVED, notes=None)
    with pytest.raises(LedgerValidationError):
        await apply_movement(db_session, product.id, zero, actor_id=admin_user.id)

    no_reason = StockAdjustment.model_construct(type=MovementType.IN, quantity=2, reason="", notes=None)
    with pytest.raises(LedgerValidationError):
        await apply_movement(db_session, product.id, no_reason, actor_id=admin_user.id)

    assert await stock_of(db_session, product.id) == 5
    assert await movement_count(db_session, product.id) == 0


def test_adjustment_schema_rejects_bad_input():
    with pytest.raises(ValidationError):
        StockAdjustment(type="IN", quantity=0, reason="received")
    with pytest.raises(ValidationError):
        StockAdjustment(type="IN", quantity=3, reason="")
    with pytest.raises(ValidationError):
        StockAdjustment(type="SIDEWAYS", quantity=3, reason="received")


@pytest.mark.asyncio
async def test_failed_commit_leaves_nothing_behind(db_session, admin_user, make_product, monkeypatch):
    product = await make_product(stock_quantity=5)

    async def failing_commit():
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(db_session, "commit", failing_commit)

    with pytest.raises(PersistenceError):
        await apply_movement(
            db_session,
            product.id,
            StockAdjustment(type=MovementType.IN, quantity=10, reason=MovementReason.RECEIVED),
            actor_id=admin_user.id,
        )

    assert await stock_of(db_session, product.id) == 5
    assert await movement_count(db_session, product.id) == 0


@pytest.mark.asyncio
async def test_inventory_filters(db_session, category, make_product):
    await make_product(name="Sold Out Study", stock_quantity=0, category_id=category.id)
    await make_product(name="Quiet Harbour", stock_quantity=2, low_stock_threshold=5)
    await make_product(name="Red Field", stock_quantity=20, low_stock_threshold=5, category_id=category.id)

    out = await get_inventory(db_session, stock=StockStatus.OUT_OF_STOCK)
    low = await get_inventory(db_session, stock=StockStatus.LOW_STOCK)
    in_stock = await get_inventory(db_session, stock=StockStatus.IN_STOCK)
    paintings = await get_inventory(db_session, category="Paintings")
    searched = await get_inventory(db_session, search="harb")

    assert [i.name for i in out] == ["Sold Out Study"]
    assert [i.name for i in low] == ["Quiet Harbour"]
    assert [i.name for i in in_stock] == ["Red Field"]
    assert [i.name for i in paintings] == ["Red Field", "Sold Out Study"]
    assert [i.name for i in searched] == ["Quiet Harbour"]
    assert paintings[0].category.name == "Paintings"


@pytest.mark.asyncio
async def test_inventory_stats(db_session, admin_user, make_product):
    await make_product(stock_quantity=0, price=Decimal("500.00"))
    await make_product(stock_quantity=3, low_stock_threshold=5, price=Decimal("100.00"))
    busy = await make_product(stock_quantity=10, low_stock_threshold=5, price=Decimal("250.00"))

    await apply_movement(
        db_session,
        busy.id,
        StockAdjustment(type=MovementType.IN, quantity=2, reason=MovementReason.RETURNED),
        actor_id=admin_user.id,
    )
    db_session.add(StockMovement(
        product_id=busy.id,
        type=MovementType.IN,
        quantity=1,
        reason="received",
        previous_quantity=9,
        new_quantity=10,
        created_at=datetime.utcnow() - timedelta(days=30),
    ))
    await db_session.commit()

    stats = await get_inventory_stats(db_session)

    assert stats.total_products == 3
    assert stats.out_of_stock_items == 1
    assert stats.low_stock_items == 1
    assert stats.total_value == Decimal("3300.00")
    assert stats.recent_changes == 1


@pytest.mark.asyncio
async def test_list_movements_newest_first(db_session, admin_user, make_product):
    product = await make_product(stock_quantity=5)
    for quantity in (1, 2, 3):
        await apply_movement(
            db_session,
            product.id,
            StockAdjustment(type=MovementType.IN, quantity=quantity, reason=MovementReason.RECEIVED),
            actor_id=admin_user.id,
        )

    movements = await list_movements(db_session, product_id=product.id)

    assert [m.quantity for m in movements] == [3, 2, 1]
    assert movements[0].created_by == "Gallery Admin"
    assert movements[0].new_quantity == 11


@pytest.mark.asyncio
async def test_export_csv(db_session, make_product):
    await make_product(name="Red Field", sku="RF-1", stock_quantity=0, price=Decimal("80"))

    csv_text = export_inventory_csv(await get_inventory(db_session))
    lines = csv_text.strip().splitlines()

    assert lines[0] == "id,name,sku,category,stock_quantity,low_stock_threshold,status,price"
    assert lines[1].endswith("Red Field,RF-1,,0,5,out-of-stock,80.00")


@pytest.mark.asyncio
async def test_count_of_zero_is_recorded_as_out(db_session, admin_user, make_product):
    product = await make_product(stock_quantity=4)

    with pytest.raises(ValidationError):
        StockAdjustment(type=MovementType.ADJUSTMENT, quantity=0, reason=MovementReason.ADJUSTMENT)

    updated, movement = await apply_movement(
        db_session,
        product.id,
        StockAdjustment(type=MovementType.OUT, quantity=4, reason=MovementReason.ADJUSTMENT, notes="Counted none"),
        actor_id=admin_user.id,
    )

    assert updated.stock_quantity == 0
    assert classify_stock(updated.stock_quantity, updated.low_stock_threshold) == StockStatus.OUT_OF_STOCK
    assert movement.new_quantity == 0
