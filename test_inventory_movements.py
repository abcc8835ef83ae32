# test_inventory_movements.py
from decimal import Decimal

import pytest

from app.models.core import InventoryMovement, MovementType
from app.services.errors import InsufficientStock, InvalidInput, InvalidQuantity, NotFound, PermissionDenied
from app.services.inventory import apply_movement, compute_delta, list_movements, low_stock


def _movements(db, ingredient_id):
    return db.query(InventoryMovement).filter(InventoryMovement.ingredient_id == ingredient_id).all()


def test_compute_delta():
    assert compute_delta(MovementType.IN, Decimal("2"), Decimal("10")) == Decimal("2")
    assert compute_delta(MovementType.OUT, Decimal("2"), Decimal("10")) == Decimal("-2")
    assert compute_delta(MovementType.ADJUSTMENT, Decimal("4"), Decimal("10")) == Decimal("-6")
    assert compute_delta(MovementType.ADJUSTMENT, Decimal("12.5"), Decimal("10")) == Decimal("2.5")


def test_entry_adds_stock_and_writes_ledger(db, admin_actor, make_ingredient):
    ing = make_ingredient("Pan brioche", stock="4")

    mv = apply_movement(db, ing.id, "IN", 6, "compra", admin_actor)

    assert mv.type == MovementType.IN
    assert mv.qty == Decimal("6")
    assert mv.delta == Decimal("6")
    assert mv.before_stock == Decimal("4")
    assert mv.after_stock == Decimal("10")
    assert mv.created_by == admin_actor.user_id
    db.refresh(ing)
    assert ing.stock == Decimal("10")


def test_adjustment_sets_absolute_stock(db, admin_actor, make_ingredient):
    ing = make_ingredient("Tomate", stock="8")

    mv = apply_movement(db, ing.id, MovementType.ADJUSTMENT, 5, None, admin_actor)

    assert mv.delta == Decimal("-3")
    assert mv.after_stock == Decimal("5")
    db.refresh(ing)
    assert ing.stock == Decimal("5")


def test_adjustment_to_zero_is_allowed(db, admin_actor, make_ingredient):
    ing = make_ingredient("Lechuga", stock="3")
    mv = apply_movement(db, ing.id, "ADJUSTMENT", 0, "conteo", admin_actor)
    assert mv.delta == Decimal("-3")
    assert mv.after_stock == 0


def test_exit_beyond_stock_is_rejected_and_nothing_changes(db, admin_actor, make_ingredient):
    ing = make_ingredient("Queso", stock="2")

    with pytest.raises(InsufficientStock) as ei:
        apply_movement(db, ing.id, "OUT", 3, None, admin_actor)

    assert "Queso" in str(ei.value)
    assert ei.value.details["available"] == 2.0
    assert ei.value.details["required"] == 3.0
    db.refresh(ing)
    assert ing.stock == Decimal("2")
    assert _movements(db, ing.id) == []


def test_exit_of_exact_stock_reaches_zero(db, admin_actor, make_ingredient):
    ing = make_ingredient("Tocineta", stock="2.5")
    mv = apply_movement(db, ing.id, "OUT", "2.5", None, admin_actor)
    assert mv.after_stock == 0


@pytest.mark.parametrize("move_type", ["IN", "OUT"])
def test_zero_entry_or_exit_is_rejected(db, admin_actor, make_ingredient, move_type):
    ing = make_ingredient(f"Cebolla {move_type}", stock="5")
    with pytest.raises(InvalidQuantity):
        apply_movement(db, ing.id, move_type, 0, None, admin_actor)
    assert _movements(db, ing.id) == []


@pytest.mark.parametrize("bad", [-1, "-0.5", "abc", float("nan"), float("inf"), None, True])
def test_bad_quantities_are_rejected(db, admin_actor, make_ingredient, bad):
    ing = make_ingredient("Salsa", stock="5")
    with pytest.raises(InvalidQuantity):
        apply_movement(db, ing.id, "ADJUSTMENT", bad, None, admin_actor)
    db.refresh(ing)
    assert ing.stock == Decimal("5")


def test_actor_without_capability_is_denied(db, cashier_actor, make_ingredient):
    ing = make_ingredient("Papas", stock="5")
    with pytest.raises(PermissionDenied):
        apply_movement(db, ing.id, "IN", 1, None, cashier_actor)
    db.refresh(ing)
    assert ing.stock == Decimal("5")


def test_unknown_ingredient(db, admin_actor):
    with pytest.raises(NotFound):
        apply_movement(db, "does-not-exist", "IN", 1, None, admin_actor)


def test_ledger_chains_and_matches_stock(db, admin_actor, make_ingredient):
    ing = make_ingredient("Carne", stock="0")
    apply_movement(db, ing.id, "IN", 10, None, admin_actor)
    apply_movement(db, ing.id, "OUT", 4, None, admin_actor)
    apply_movement(db, ing.id, "ADJUSTMENT", 7, None, admin_actor)
    apply_movement(db, ing.id, "OUT", "0.5", None, admin_actor)

    rows = list_movements(db, ing.id)
    assert len(rows) == 4
    for mv in rows:
        assert mv.after_stock == mv.before_stock + mv.delta
        assert mv.after_stock >= 0
    chain = list(reversed(rows))
    assert chain[0].before_stock == 0
    for prev, cur in zip(chain, chain[1:]):
        assert cur.before_stock == prev.after_stock
    db.refresh(ing)
    assert ing.stock == Decimal("6.5")
    assert rows[0].after_stock == ing.stock


def test_low_stock_lists_ingredients_at_or_below_minimum(db, admin_actor, make_ingredient):
    at_min = make_ingredient("Mostaza", stock="5", min_stock="5")
    above = make_ingredient("Ketchup", stock="6", min_stock="5")
    below = make_ingredient("Mayonesa", stock="1", min_stock="5")

    ids = {i.id for i in low_stock(db)}
    assert at_min.id in ids
    assert below.id in ids
    assert above.id not in ids


def test_unknown_movement_type_is_invalid_input(db, admin_actor, make_ingredient):
    ing = make_ingredient("Pimienta", stock="5")
    with pytest.raises(InvalidInput) as ei:
        apply_movement(db, ing.id, "TRANSFER", 1, None, admin_actor)
    assert ei.value.details["field"] == "type"
    assert _movements(db, ing.id) == []
