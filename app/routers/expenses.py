from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import EXPENSES_EDIT, require_perm
from app.models.core import Expense, ExpenseCategory
from app.schemas.expenses import ExpenseIn, ExpenseOut
from app.services.sales import expenses_between, today
from app.util.numbers import parse_qty

router = APIRouter(prefix="/expenses", tags=["expenses"])


def expense_out(e: Expense) -> ExpenseOut:
    return ExpenseOut(
        id=e.id,
        description=e.description,
        amount=float(e.amount),
        category=e.category.value,
        subcategory=e.subcategory,
        employee_name=e.employee_name,
        note=e.note,
        created_by=e.created_by,
        created_at=e.created_at,
    )


@router.get("/", response_model=list[ExpenseOut])
def list_expenses(start: date | None = None, end: date | None = None, db: Session = Depends(get_db), sub: str = Depends(require_perm(EXPENSES_EDIT))):
    end = end or today()
    start = start or end.replace(day=1)
    return [expense_out(e) for e in expenses_between(db, start, end)]


@router.post("/", response_model=ExpenseOut)
def create_expense(body: ExpenseIn, db: Session = Depends(get_db), sub: str = Depends(require_perm(EXPENSES_EDIT))):
    e = Expense(
        description=body.description.strip(),
        amount=parse_qty(body.amount, field="amount"),
        category=ExpenseCategory(body.category),
        subcategory=body.subcategory,
        employee_name=body.employee_name,
        note=body.note,
        created_by=sub,
    )
    if body.created_at:
        e.created_at = body.created_at
    db.add(e); db.commit(); db.refresh(e)
    return expense_out(e)
