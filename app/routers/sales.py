from datetime import date
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import REPORTS_VIEW, require_perm
from app.models.core import Sale
from app.routers.orders import sale_out
from app.schemas.orders import SaleOut
from app.services.sales import sales_between, today

router = APIRouter(prefix="/sales", tags=["sales"])


@router.get("/", response_model=list[SaleOut])
def list_sales(start: date | None = None, end: date | None = None, db: Session = Depends(get_db), sub: str = Depends(require_perm(REPORTS_VIEW))):
    """Sales created between start and end (inclusive, business days); defaults to today."""
    end = end or today()
    start = start or end
    if start > end:
        raise HTTPException(422, detail="start must not be after end")
    return [sale_out(s) for s in sales_between(db, start, end)]


@router.get("/{sale_id}", response_model=SaleOut)
def get_sale(sale_id: str, db: Session = Depends(get_db), sub: str = Depends(require_perm(REPORTS_VIEW))):
    s = db.get(Sale, sale_id)
    if not s:
        raise HTTPException(404, detail="sale not found")
    return sale_out(s)
