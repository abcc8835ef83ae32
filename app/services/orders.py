from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from app.models.core import LineKind, Order, OrderLine, OrderStatus, OrderType
from app.services.capabilities import Actor
from app.services.concurrency import lock_for_update, run_in_transaction
from app.services.errors import InvalidInput, InvalidQuantity, NotFound, OrderNotOpen
from app.util.numbers import parse_qty

DEFAULT_LABEL = "(sin nombre)"


def compute_total(lines: Iterable) -> Decimal:
    return sum((Decimal(l.price) * Decimal(l.qty) for l in lines), Decimal(0)).quantize(Decimal("0.01"))


def _build_lines(items: Iterable[dict], additions: Iterable[dict]) -> list[OrderLine]:
    out: list[OrderLine] = []
    pos = 0
    for kind, rows in ((LineKind.ITEM, items), (LineKind.ADDITION, additions)):
        for row in rows:
            qty = parse_qty(row.get("qty"))
            if qty == 0:
                raise InvalidQuantity("line qty must be greater than zero", details={"product_id": row.get("id")})
            price = parse_qty(row.get("price"), field="price")
            out.append(OrderLine(
                kind=kind, position=pos, product_id=row["id"], name=row["name"], price=price, qty=qty,
            ))
            pos += 1
    return out


def _visible(order: Order, actor: Actor) -> bool:
    return actor.can_view_all_orders or order.created_by == actor.user_id


def create_order(
    db: Session,
    *,
    label: str,
    order_type: OrderType | str,
    items: Iterable[dict],
    additions: Iterable[dict],
    actor: Actor,
) -> Order:
    label = (label or "").strip()
    if not label:
        raise InvalidInput("label (customer name) is required", details={"field": "label"})
    lines = _build_lines(items, additions)
    o = Order(
        status=OrderStatus.OPEN,
        label=label,
        order_type=OrderType(order_type),
        created_by=actor.user_id,
        lines=lines,
        total=compute_total(lines),
    )
    db.add(o)
    db.commit()
    db.refresh(o)
    return o


def get_order(db: Session, order_id: str, actor: Actor) -> Order:
    o = db.get(Order, order_id)
    if o is None or not _visible(o, actor):
        raise NotFound("Order", order_id)
    return o


def sync_order(
    db: Session,
    order_id: str,
    *,
    label: str | None,
    order_type: OrderType | str,
    items: Iterable[dict],
    additions: Iterable[dict],
    actor: Actor,
) -> Order:
    """Replace an open order's lines; the total is recomputed, created_by is left alone."""
    order_type = OrderType(order_type)
    items, additions = list(items), list(additions)

    def _op() -> Order:
        o = lock_for_update(db.query(Order).filter(Order.id == order_id)).first()
        if o is None or not _visible(o, actor):
            raise NotFound("Order", order_id)
        if o.status != OrderStatus.OPEN:
            raise OrderNotOpen(o.id, o.status.value)
        lines = _build_lines(items, additions)
        o.label = (label or "").strip() or DEFAULT_LABEL
        o.order_type = order_type
        o.lines = lines
        o.total = compute_total(lines)
        db.flush()
        return o

    return run_in_transaction(db, _op)


def list_open_orders(db: Session, actor: Actor) -> list[Order]:
    q = db.query(Order).filter(Order.status == OrderStatus.OPEN)
    if not actor.can_view_all_orders:
        q = q.filter(Order.created_by == actor.user_id)
    return q.order_by(Order.created_at.desc()).all()
