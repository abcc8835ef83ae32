from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional, Literal

OrderTypeLiteral = Literal["DINE_IN", "TAKEAWAY"]
PayMethodLiteral = Literal["CASH", "NEQUI", "TRANSFER"]

class LineIn(BaseModel):
    id: str           # product id
    name: str
    price: float
    qty: float

class OrderIn(BaseModel):
    label: str
    order_type: OrderTypeLiteral = "DINE_IN"
    items: list[LineIn] = Field(default_factory=list)
    additions: list[LineIn] = Field(default_factory=list)

class OrderSyncIn(BaseModel):
    label: Optional[str] = None
    order_type: OrderTypeLiteral = "DINE_IN"
    items: list[LineIn] = Field(default_factory=list)
    additions: list[LineIn] = Field(default_factory=list)

class OrderOut(BaseModel):
    id: str
    status: str
    label: str
    order_type: OrderTypeLiteral
    items: list[LineIn]
    additions: list[LineIn]
    total: float
    created_by: str
    created_at: datetime
    closed_at: Optional[datetime] = None

class CloseIn(BaseModel):
    pay_method: PayMethodLiteral

class SaleOut(BaseModel):
    id: str
    order_id: str
    label: str
    order_type: OrderTypeLiteral
    items: list[LineIn]
    additions: list[LineIn]
    total: float
    pay_method: PayMethodLiteral
    pay_method_label: str
    ticket_number: int
    created_by: str
    created_at: datetime

class WarningOut(BaseModel):
    code: str
    message: str
    items: list[str] = []

class SettlementOut(BaseModel):
    sale: SaleOut
    warnings: list[WarningOut] = []
