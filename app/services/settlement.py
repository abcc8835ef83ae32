"""
Order settlement: close an open order into an immutable, ticketed sale.

Everything below happens in one transaction, or not at all:
- the shared ticket counter is incremented (a failed settlement burns no number)
- recipe usage is deducted from stock, one OUT movement per ingredient
  (only when the actor may adjust inventory)
- the Sale and its line snapshot are written
- the order flips OPEN -> CLOSED, which is terminal

A missing recipe degrades to a warning; insufficient stock aborts the sale.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.orm import Session

from app.models.common import utcnow
from app.models.core import (
    MovementType, Order, OrderStatus, PayMethod, Sale, SaleLine, TicketCounter,
)
from app.services.capabilities import Actor
from app.services.concurrency import lock_for_update, run_in_transaction
from app.services.errors import EmptyOrder, InvalidInput, NotFound, OrderNotOpen
from app.services.inventory import lock_ingredient, record_movement
from app.services.orders import DEFAULT_LABEL, compute_total
from app.services.recipes import Usage, resolve_usage
from app.util.numbers import q3

logger = logging.getLogger(__name__)

TICKET_COUNTER = "tickets"

MISSING_RECIPES = "MISSING_RECIPES"
INVENTORY_NOT_ADJUSTED = "INVENTORY_NOT_ADJUSTED"
LOW_STOCK = "LOW_STOCK"


@dataclass
class SettlementWarning:
    code: str
    message: str
    items: list[str] = field(default_factory=list)


@dataclass
class SettlementResult:
    sale: Sale
    warnings: list[SettlementWarning] = field(default_factory=list)

    def has_warning(self, code: str) -> bool:
        return any(w.code == code for w in self.warnings)


def next_ticket_number(db: Session) -> int:
    """Lock-and-increment the shared counter. Must run inside the sale's transaction."""
    counter = lock_for_update(db.query(TicketCounter).filter(TicketCounter.name == TICKET_COUNTER)).first()
    if counter is None:
        counter = TicketCounter(name=TICKET_COUNTER, value=0)
        db.add(counter)
    counter.value = int(counter.value or 0) + 1
    db.flush()
    return counter.value


def current_ticket_number(db: Session) -> int:
    counter = db.get(TicketCounter, TICKET_COUNTER, populate_existing=True)
    return int(counter.value) if counter else 0


def _load_open_order(db: Session, order_id: str) -> Order:
    order = lock_for_update(db.query(Order).filter(Order.id == order_id)).first()
    if order is None:
        raise NotFound("Order", order_id)
    if order.status != OrderStatus.OPEN:
        raise OrderNotOpen(order.id, order.status.value)
    if not order.lines:
        raise EmptyOrder(order.id)
    return order


def _deduct(db: Session, usage: Usage, ticket_number: int, actor: Actor) -> list[str]:
    """Deduct usage from stock; returns names of ingredients left at/below minimum."""
    low: list[str] = []
    for ingredient_id, raw_qty in usage.by_ingredient.items():
        qty = q3(raw_qty)
        if qty <= 0:
            continue
        ing = lock_ingredient(db, ingredient_id)
        record_movement(
            db, ing, MovementType.OUT, qty, -qty,
            note=f"Venta #{ticket_number}", created_by=actor.user_id,
        )
        if Decimal(ing.stock) <= Decimal(ing.min_stock or 0):
            low.append(ing.name)
    return low


def close_and_settle(db: Session, order_id: str, pay_method: PayMethod | str, actor: Actor) -> SettlementResult:
    try:
        pay_method = PayMethod(pay_method)
    except ValueError:
        raise InvalidInput(
            f"Unknown payment method: {pay_method!r}", details={"field": "pay_method", "value": str(pay_method)},
        ) from None

    def _op() -> SettlementResult:
        order = _load_open_order(db, order_id)
        warnings: list[SettlementWarning] = []

        usage = resolve_usage(db, order.lines)
        if usage.missing_recipes:
            warnings.append(SettlementWarning(
                MISSING_RECIPES,
                f"Sale saved, but recipes are missing for: {', '.join(usage.missing_recipes)}",
                list(usage.missing_recipes),
            ))

        ticket_number = next_ticket_number(db)

        if actor.can_adjust_inventory:
            low = _deduct(db, usage, ticket_number, actor)
            if low:
                warnings.append(SettlementWarning(LOW_STOCK, f"At or below minimum stock: {', '.join(low)}", low))
        else:
            warnings.append(SettlementWarning(
                INVENTORY_NOT_ADJUSTED, "Inventory was not adjusted: user may not adjust inventory",
            ))

        sale = Sale(
            order_id=order.id,
            label=(order.label or "").strip() or DEFAULT_LABEL,
            order_type=order.order_type,
            pay_method=pay_method,
            total=compute_total(order.lines),
            ticket_number=ticket_number,
            created_by=actor.user_id,
            lines=[
                SaleLine(kind=l.kind, position=l.position, product_id=l.product_id, name=l.name, price=l.price, qty=l.qty)
                for l in order.lines
            ],
        )
        db.add(sale)

        now = utcnow()
        order.status = OrderStatus.CLOSED
        order.closed_at = now
        order.updated_at = now
        db.flush()
        return SettlementResult(sale=sale, warnings=warnings)

    result = run_in_transaction(db, _op)

    logger.info(
        "Order %s settled as ticket #%d (%s, total=%s)",
        order_id, result.sale.ticket_number, pay_method.value, result.sale.total,
    )
    for w in result.warnings:
        logger.warning("Settlement of order %s: %s", order_id, w.message)
    return result
