from datetime import datetime
from pydantic import BaseModel
from typing import Optional, Literal

ExpenseCategoryLiteral = Literal[
    "NOMINA", "ARRIENDO", "PROVEEDORES", "INSUMOS", "SERVICIOS", "IMPREVISTOS", "EXTRAS",
]

class ExpenseIn(BaseModel):
    description: str
    amount: float
    category: ExpenseCategoryLiteral
    subcategory: Optional[str] = None
    employee_name: Optional[str] = None
    note: Optional[str] = None
    # back-dating allowed; defaults to now
    created_at: Optional[datetime] = None

class ExpenseOut(ExpenseIn):
    id: str
    created_by: str
    created_at: datetime
