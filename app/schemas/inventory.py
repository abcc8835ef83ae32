from datetime import datetime
from pydantic import BaseModel
from typing import Optional, Literal

MovementTypeLiteral = Literal["IN", "OUT", "ADJUSTMENT"]

class MovementIn(BaseModel):
    ingredient_id: str
    type: MovementTypeLiteral
    # IN/OUT: amount moved; ADJUSTMENT: the counted (absolute) stock
    qty: float
    note: Optional[str] = None

class MovementOut(BaseModel):
    id: str
    ingredient_id: str
    type: MovementTypeLiteral
    qty: float
    delta: float
    before_stock: float
    after_stock: float
    note: Optional[str] = None
    created_by: str
    created_at: datetime

class RecipeItemIn(BaseModel):
    ingredient_id: str
    qty: float

class RecipeIn(BaseModel):
    items: list[RecipeItemIn]

class RecipeItemOut(RecipeItemIn):
    pass

class RecipeOut(BaseModel):
    product_id: str
    items: list[RecipeItemOut]
    missing_ingredients: list[str] = []
