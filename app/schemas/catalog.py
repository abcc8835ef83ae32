from pydantic import BaseModel
from typing import Optional, Literal

IngredientUnitLiteral = Literal["UNIT", "G", "ML", "PORTION"]

class ProductIn(BaseModel):
    name: str
    price: float
    cost: Optional[float] = None
    category: Optional[str] = None
    sku: Optional[str] = None
    is_active: bool = True

class ProductOut(ProductIn):
    id: str
    is_addition: bool = False

class IngredientIn(BaseModel):
    name: str
    unit: IngredientUnitLiteral = "UNIT"
    min_stock: float = 0
    cost_per_unit: Optional[float] = None
    category: Optional[str] = None
    is_active: bool = True

class IngredientOut(IngredientIn):
    id: str
    stock: float

class ProductPatch(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = None
    cost: Optional[float] = None
    category: Optional[str] = None
    sku: Optional[str] = None
    is_active: Optional[bool] = None

class IngredientPatch(BaseModel):
    # no stock here: it only moves through /inventory/movements
    name: Optional[str] = None
    unit: Optional[IngredientUnitLiteral] = None
    min_stock: Optional[float] = None
    cost_per_unit: Optional[float] = None
    category: Optional[str] = None
    is_active: Optional[bool] = None
