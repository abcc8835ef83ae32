# test_concurrency.py
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from app.db import SessionLocal
from app.models.core import Ingredient, InventoryMovement, MovementType, Order, OrderStatus, Sale
from app.services import inventory, settlement
from app.services.concurrency import run_in_transaction
from app.services.errors import ConcurrencyConflict, InsufficientStock, InvalidInput
from app.services.inventory import apply_movement
from app.services.orders import create_order


def test_retries_conflicts_then_succeeds(db):
    calls = []

    def op():
        calls.append(1)
        if len(calls) < 3:
            raise StaleDataError("row changed underneath us")
        return "ok"

    assert run_in_transaction(db, op, attempts=3, backoff_base=0) == "ok"
    assert len(calls) == 3


def test_gives_up_with_concurrency_conflict(db):
    calls = []

    def op():
        calls.append(1)
        raise OperationalError("UPDATE ingredient", {}, Exception("database is locked"))

    with pytest.raises(ConcurrencyConflict) as ei:
        run_in_transaction(db, op, attempts=2, backoff_base=0)
    assert len(calls) == 2
    assert ei.value.details == {"attempts": 2}
    assert isinstance(ei.value.__cause__, OperationalError)


def test_business_errors_are_not_retried(db, make_ingredient):
    ing = make_ingredient("Aguacate", stock="3")
    calls = []

    def op():
        calls.append(1)
        db.get(Ingredient, ing.id).stock = Decimal("99")
        db.flush()
        raise InvalidInput("nope")

    with pytest.raises(InvalidInput):
        run_in_transaction(db, op, attempts=3, backoff_base=0)
    assert len(calls) == 1
    db.refresh(ing)
    assert ing.stock == Decimal("3")


def test_stale_stock_write_is_detected(db, make_ingredient):
    ing = make_ingredient("Pepinillos", stock="10")

    other = SessionLocal()
    try:
        stale = other.get(Ingredient, ing.id)
        # someone else commits first
        fresh = db.get(Ingredient, ing.id)
        fresh.stock = Decimal("4")
        db.commit()

        stale.stock = Decimal(stale.stock) - 3
        with pytest.raises(StaleDataError):
            other.commit()
        other.rollback()
    finally:
        other.close()

    db.refresh(ing)
    assert ing.stock == Decimal("4")


def _set_stock_elsewhere(ingredient_id, stock):
    other = SessionLocal()
    try:
        other.get(Ingredient, ingredient_id).stock = Decimal(stock)
        other.commit()
    finally:
        other.close()


def _racing_compute_delta(monkeypatch, ingredient_id, stock):
    """Commit a stock change from another session right after the first read."""
    real = inventory.compute_delta
    seen = []

    def _compute(move_type, qty, current_stock):
        seen.append(current_stock)
        if len(seen) == 1:
            _set_stock_elsewhere(ingredient_id, stock)
        return real(move_type, qty, current_stock)

    monkeypatch.setattr(inventory, "compute_delta", _compute)
    return seen


def test_exit_rereads_stock_after_concurrent_write_and_rejects(db, admin_actor, make_ingredient, monkeypatch):
    ing = make_ingredient("Chorizo", stock="5")
    seen = _racing_compute_delta(monkeypatch, ing.id, "2")

    with pytest.raises(InsufficientStock) as ei:
        apply_movement(db, ing.id, "OUT", 4, None, admin_actor)

    assert seen == [Decimal("5"), Decimal("2")]
    assert ei.value.details["available"] == 2.0
    db.refresh(ing)
    assert ing.stock == Decimal("2")
    assert db.query(InventoryMovement).filter(InventoryMovement.ingredient_id == ing.id).count() == 0


def test_entry_rereads_stock_after_concurrent_write(db, admin_actor, make_ingredient, monkeypatch):
    ing = make_ingredient("Maiz tierno", stock="5")
    seen = _racing_compute_delta(monkeypatch, ing.id, "2")

    mv = apply_movement(db, ing.id, "IN", 3, "compra", admin_actor)

    assert len(seen) == 2
    assert (mv.before_stock, mv.after_stock) == (Decimal("2"), Decimal("5"))
    db.refresh(ing)
    assert ing.stock == Decimal("5")


@pytest.fixture()
def shared_cheese_order(db, admin_actor, make_ingredient, make_product):
    cheese = make_ingredient("Queso doble crema", stock="10")
    burger = make_product("Quesuda", recipe=[(cheese.id, "2")])
    extra = make_product("Extra queso", price="3000", recipe=[(cheese.id, "1")])
    order = create_order(
        db, label="Mesa 9", order_type="DINE_IN",
        items=[{"id": burger.id, "name": burger.name, "price": "18000", "qty": 2}],
        additions=[{"id": extra.id, "name": extra.name, "price": "3000", "qty": 1}],
        actor=admin_actor,
    )
    # cheese usage: 2 x 2 + 1 x 1 = 5
    return cheese, order


def _racing_lock(monkeypatch, actor, qty):
    """Another cashier consumes the shared ingredient right after settlement locks it."""
    real = settlement.lock_ingredient
    calls = []

    def _lock(db, ingredient_id):
        ing = real(db, ingredient_id)
        calls.append(ingredient_id)
        if len(calls) == 1:
            other = SessionLocal()
            try:
                apply_movement(other, ingredient_id, "OUT", qty, "merma", actor)
            finally:
                other.close()
        return ing

    monkeypatch.setattr(settlement, "lock_ingredient", _lock)
    return calls


def _out_movements(db, ingredient_id):
    return (
        db.query(InventoryMovement)
        .filter(InventoryMovement.ingredient_id == ingredient_id, InventoryMovement.type == MovementType.OUT)
        .order_by(InventoryMovement.created_at.asc())
        .all()
    )


def test_settlement_retries_when_shared_ingredient_changes(db, admin_actor, shared_cheese_order, monkeypatch):
    cheese, order = shared_cheese_order
    calls = _racing_lock(monkeypatch, admin_actor, 4)

    res = settlement.close_and_settle(db, order.id, "CASH", admin_actor)

    assert calls == [cheese.id, cheese.id]
    db.refresh(cheese)
    assert cheese.stock == Decimal("1")
    sale_moves = [m for m in _out_movements(db, cheese.id) if m.note.startswith("Venta")]
    assert len(sale_moves) == 1
    assert (sale_moves[0].before_stock, sale_moves[0].after_stock) == (Decimal("6"), Decimal("1"))
    assert sale_moves[0].note == f"Venta #{res.sale.ticket_number}"
    assert db.query(Sale).filter(Sale.order_id == order.id).count() == 1
    assert db.get(Order, order.id, populate_existing=True).status == OrderStatus.CLOSED


def test_settlement_rejects_when_shared_ingredient_runs_out(db, admin_actor, shared_cheese_order, monkeypatch):
    cheese, order = shared_cheese_order
    _racing_lock(monkeypatch, admin_actor, 8)

    with pytest.raises(InsufficientStock) as ei:
        settlement.close_and_settle(db, order.id, "CASH", admin_actor)

    assert ei.value.details["available"] == 2.0
    assert ei.value.details["required"] == 5.0
    db.refresh(cheese)
    assert cheese.stock == Decimal("2")
    assert [m.note for m in _out_movements(db, cheese.id)] == ["merma"]
    assert db.query(Sale).filter(Sale.order_id == order.id).count() == 0
    assert db.get(Order, order.id, populate_existing=True).status == OrderStatus.OPEN
