"""
Inventory movement engine.

Invariants:
- Ingredient.stock changes only through InventoryMovement rows written here.
- Every movement satisfies after_stock == before_stock + delta and after_stock >= 0.
- The ingredient row is locked and version-checked for the read-modify-write,
  so two concurrent movements on one ingredient serialize (no lost update).
- ADJUSTMENT takes the absolute target stock; a negative target is rejected,
  never clamped to zero.
"""

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from app.models.core import Ingredient, InventoryMovement, MovementType
from app.services.capabilities import Actor
from app.services.concurrency import lock_for_update, run_in_transaction
from app.services.errors import InsufficientStock, InvalidInput, InvalidQuantity, NotFound, PermissionDenied
from app.util.numbers import parse_qty

logger = logging.getLogger(__name__)


def compute_delta(move_type: MovementType, qty: Decimal, current_stock: Decimal) -> Decimal:
    if move_type == MovementType.IN:
        return qty
    if move_type == MovementType.OUT:
        return -qty
    return qty - current_stock


def lock_ingredient(db: Session, ingredient_id: str) -> Ingredient:
    ing = lock_for_update(db.query(Ingredient).filter(Ingredient.id == ingredient_id)).first()
    if ing is None:
        raise NotFound("Ingredient", ingredient_id)
    return ing


def record_movement(
    db: Session,
    ing: Ingredient,
    move_type: MovementType,
    qty: Decimal,
    delta: Decimal,
    *,
    note: str | None,
    created_by: str,
) -> InventoryMovement:
    """Apply delta to a locked ingredient and append the ledger row. No commit."""
    before = Decimal(ing.stock or 0)
    after = before + delta
    if after < 0:
        raise InsufficientStock(ing.id, ing.name, available=before, required=-delta)

    ing.stock = after
    mv = InventoryMovement(
        ingredient_id=ing.id,
        type=move_type,
        qty=qty,
        delta=delta,
        before_stock=before,
        after_stock=after,
        note=note or "",
        created_by=created_by,
    )
    db.add(mv)
    db.flush()
    return mv


def apply_movement(
    db: Session,
    ingredient_id: str,
    move_type: MovementType | str,
    qty,
    note: str | None,
    actor: Actor,
) -> InventoryMovement:
    if not actor.can_adjust_inventory:
        raise PermissionDenied("Not allowed to adjust inventory", details={"user_id": actor.user_id})

    try:
        move_type = MovementType(move_type)
    except ValueError:
        raise InvalidInput(
            f"Unknown movement type: {move_type!r}", details={"field": "type", "value": str(move_type)},
        ) from None
    qty = parse_qty(qty)
    if move_type in (MovementType.IN, MovementType.OUT) and qty == 0:
        raise InvalidQuantity(
            f"qty must be greater than zero for {move_type.value} movements",
            details={"field": "qty", "value": 0, "type": move_type.value},
        )

    def _op() -> InventoryMovement:
        ing = lock_ingredient(db, ingredient_id)
        delta = compute_delta(move_type, qty, Decimal(ing.stock or 0))
        return record_movement(db, ing, move_type, qty, delta, note=note, created_by=actor.user_id)

    try:
        mv = run_in_transaction(db, _op)
    except InsufficientStock as exc:
        logger.warning("Rejected %s movement on %s: %s", move_type.value, ingredient_id, exc.details)
        raise

    logger.info(
        "Inventory %s on %s: qty=%s delta=%s stock %s -> %s",
        move_type.value, ingredient_id, mv.qty, mv.delta, mv.before_stock, mv.after_stock,
    )
    return mv


def list_movements(db: Session, ingredient_id: str | None = None, limit: int = 100) -> list[InventoryMovement]:
    q = db.query(InventoryMovement)
    if ingredient_id:
        q = q.filter(InventoryMovement.ingredient_id == ingredient_id)
    return q.order_by(InventoryMovement.created_at.desc()).limit(limit).all()


def low_stock(db: Session) -> list[Ingredient]:
    return (
        db.query(Ingredient)
        .filter(Ingredient.is_active.is_(True), Ingredient.stock <= Ingredient.min_stock)
        .order_by(Ingredient.name.asc())
        .all()
    )
