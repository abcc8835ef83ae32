from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import get_actor
from app.models.core import PAY_METHOD_LABELS, LineKind, Order, Sale
from app.schemas.orders import CloseIn, OrderIn, OrderOut, OrderSyncIn, SaleOut, SettlementOut
from app.services import orders as orders_svc
from app.services.capabilities import Actor
from app.services.settlement import close_and_settle

router = APIRouter(prefix="/orders", tags=["orders"])


def _lines_out(lines, kind: LineKind) -> list[dict]:
    return [
        {"id": l.product_id, "name": l.name, "price": float(l.price), "qty": float(l.qty)}
        for l in lines if l.kind == kind
    ]


def order_out(o: Order) -> OrderOut:
    return OrderOut(
        id=o.id,
        status=o.status.value,
        label=o.label,
        order_type=o.order_type.value,
        items=_lines_out(o.lines, LineKind.ITEM),
        additions=_lines_out(o.lines, LineKind.ADDITION),
        total=float(o.total),
        created_by=o.created_by,
        created_at=o.created_at,
        closed_at=o.closed_at,
    )


def sale_out(s: Sale) -> SaleOut:
    return SaleOut(
        id=s.id,
        order_id=s.order_id,
        label=s.label,
        order_type=s.order_type.value,
        items=_lines_out(s.lines, LineKind.ITEM),
        additions=_lines_out(s.lines, LineKind.ADDITION),
        total=float(s.total),
        pay_method=s.pay_method.value,
        pay_method_label=PAY_METHOD_LABELS[s.pay_method],
        ticket_number=s.ticket_number,
        created_by=s.created_by,
        created_at=s.created_at,
    )


@router.get("/", response_model=list[OrderOut])
def list_open_orders(db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    """Open orders; cashiers only see the ones they opened."""
    return [order_out(o) for o in orders_svc.list_open_orders(db, actor)]


@router.post("/", response_model=OrderOut)
def create_order(body: OrderIn, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    o = orders_svc.create_order(
        db,
        label=body.label,
        order_type=body.order_type,
        items=[l.model_dump() for l in body.items],
        additions=[l.model_dump() for l in body.additions],
        actor=actor,
    )
    return order_out(o)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return order_out(orders_svc.get_order(db, order_id, actor))


@router.put("/{order_id}", response_model=OrderOut)
def sync_order(order_id: str, body: OrderSyncIn, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    o = orders_svc.sync_order(
        db,
        order_id,
        label=body.label,
        order_type=body.order_type,
        items=[l.model_dump() for l in body.items],
        additions=[l.model_dump() for l in body.additions],
        actor=actor,
    )
    return order_out(o)


@router.post("/{order_id}/close", response_model=SettlementOut)
def close_order(order_id: str, body: CloseIn, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    res = close_and_settle(db, order_id, body.pay_method, actor)
    return SettlementOut(
        sale=sale_out(res.sale),
        warnings=[{"code": w.code, "message": w.message, "items": w.items} for w in res.warnings],
    )
