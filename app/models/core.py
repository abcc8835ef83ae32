from sqlalchemy import (
    String, ForeignKey, Boolean, Numeric, Enum, Text, DateTime, Integer
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from enum import Enum as PyEnum
from datetime import datetime
from decimal import Decimal
from app.db import Base
from app.models.common import IdMixin, TSMMixin, utcnow

# ── Enums ───────────────────────────────────────────────────────────────────
class OrderType(PyEnum):
    DINE_IN = "DINE_IN"    # "aqui"
    TAKEAWAY = "TAKEAWAY"  # "llevar"

class OrderStatus(PyEnum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"

class LineKind(PyEnum):
    ITEM = "ITEM"
    ADDITION = "ADDITION"

class PayMethod(PyEnum):
    CASH = "CASH"
    NEQUI = "NEQUI"
    TRANSFER = "TRANSFER"

PAY_METHOD_LABELS = {
    PayMethod.CASH: "Efectivo",
    PayMethod.NEQUI: "Nequi",
    PayMethod.TRANSFER: "Transferencia",
}

class IngredientUnit(PyEnum):
    UNIT = "UNIT"        # unidad
    G = "G"
    ML = "ML"
    PORTION = "PORTION"  # porcion

class MovementType(PyEnum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"

class ExpenseCategory(PyEnum):
    NOMINA = "NOMINA"
    ARRIENDO = "ARRIENDO"
    PROVEEDORES = "PROVEEDORES"
    INSUMOS = "INSUMOS"
    SERVICIOS = "SERVICIOS"
    IMPREVISTOS = "IMPREVISTOS"
    EXTRAS = "EXTRAS"

# rent, utilities and payroll count as fixed monthly costs for goals
FIXED_EXPENSE_CATEGORIES = frozenset({
    ExpenseCategory.ARRIENDO, ExpenseCategory.SERVICIOS, ExpenseCategory.NOMINA,
})

# products in this category are offered as add-ons on the POS screen
ADDITIONS_CATEGORY = "adiciones"

# ── Identity ────────────────────────────────────────────────────────────────
class User(Base, IdMixin, TSMMixin):
    __tablename__ = "user"
    name: Mapped[str] = mapped_column(String(160))
    mobile: Mapped[str | None] = mapped_column(String(20), unique=True)
    email: Mapped[str | None] = mapped_column(String(160))
    pass_hash: Mapped[str] = mapped_column(String(200))
    active: Mapped[bool] = mapped_column(Boolean, default=True)

class Role(Base, IdMixin, TSMMixin):
    __tablename__ = "role"
    code: Mapped[str] = mapped_column(String(50), unique=True)  # ADMIN | CASHIER | ...

class Permission(Base, IdMixin, TSMMixin):
    __tablename__ = "permission"
    code: Mapped[str] = mapped_column(String(60), unique=True)  # e.g. INVENTORY_ADJUST, ORDERS_VIEW_ALL
    description: Mapped[str | None] = mapped_column(Text)

class RolePermission(Base, TSMMixin):
    __tablename__ = "role_permission"
    role_id: Mapped[str] = mapped_column(String(36), ForeignKey("role.id"), primary_key=True)
    permission_id: Mapped[str] = mapped_column(String(36), ForeignKey("permission.id"), primary_key=True)

class UserRole(Base, TSMMixin):
    __tablename__ = "user_role"
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id"), primary_key=True)
    role_id: Mapped[str] = mapped_column(String(36), ForeignKey("role.id"), primary_key=True)

# ── Catalog ─────────────────────────────────────────────────────────────────
class Product(Base, IdMixin, TSMMixin):
    __tablename__ = "product"
    name: Mapped[str] = mapped_column(String(160))
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    category: Mapped[str | None] = mapped_column(String(80))
    sku: Mapped[str | None] = mapped_column(String(60))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

class Ingredient(Base, IdMixin, TSMMixin):
    __tablename__ = "ingredient"
    name: Mapped[str] = mapped_column(String(160))
    unit: Mapped[IngredientUnit] = mapped_column(Enum(IngredientUnit))
    stock: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=0)
    min_stock: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=0)
    cost_per_unit: Mapped[Decimal | None] = mapped_column(Numeric(12, 4))
    category: Mapped[str | None] = mapped_column(String(80))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    # optimistic lock: concurrent stock writes raise StaleDataError
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

class Recipe(Base, TSMMixin):
    __tablename__ = "recipe"
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("product.id"), primary_key=True)
    items: Mapped[list["RecipeItem"]] = relationship(
        back_populates="recipe", cascade="all, delete-orphan", order_by="RecipeItem.position",
    )

class RecipeItem(Base, IdMixin, TSMMixin):
    __tablename__ = "recipe_item"
    # no FK to ingredient: dangling references are tolerated and reported
    recipe_id: Mapped[str] = mapped_column(String(36), ForeignKey("recipe.product_id"))
    ingredient_id: Mapped[str] = mapped_column(String(36))
    qty: Mapped[Decimal] = mapped_column(Numeric(12, 3))
    position: Mapped[int] = mapped_column(Integer, default=0)
    recipe: Mapped[Recipe] = relationship(back_populates="items")

# ── Orders / sales ──────────────────────────────────────────────────────────
class Order(Base, IdMixin, TSMMixin):
    __tablename__ = "order"
    status: Mapped[OrderStatus] = mapped_column(Enum(OrderStatus), default=OrderStatus.OPEN)
    label: Mapped[str] = mapped_column(String(160))
    order_type: Mapped[OrderType] = mapped_column(Enum(OrderType), default=OrderType.DINE_IN)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    created_by: Mapped[str] = mapped_column(String(36), ForeignKey("user.id"))
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    lines: Mapped[list["OrderLine"]] = relationship(
        back_populates="order", cascade="all, delete-orphan",
        order_by="OrderLine.position",
    )
    __mapper_args__ = {"version_id_col": version}

class OrderLine(Base, IdMixin):
    __tablename__ = "order_line"
    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("order.id"))
    kind: Mapped[LineKind] = mapped_column(Enum(LineKind), default=LineKind.ITEM)
    position: Mapped[int] = mapped_column(Integer, default=0)
    product_id: Mapped[str] = mapped_column(String(36))
    name: Mapped[str] = mapped_column(String(160))   # snapshot
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2))  # snapshot
    qty: Mapped[Decimal] = mapped_column(Numeric(12, 3))
    order: Mapped[Order] = relationship(back_populates="lines")

class Sale(Base, IdMixin):
    __tablename__ = "sale"
    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("order.id"), unique=True)
    label: Mapped[str] = mapped_column(String(160))
    order_type: Mapped[OrderType] = mapped_column(Enum(OrderType))
    pay_method: Mapped[PayMethod] = mapped_column(Enum(PayMethod))
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    ticket_number: Mapped[int] = mapped_column(Integer, unique=True)
    created_by: Mapped[str] = mapped_column(String(36), ForeignKey("user.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    lines: Mapped[list["SaleLine"]] = relationship(
        back_populates="sale", cascade="all, delete-orphan",
        order_by="SaleLine.position",
    )

class SaleLine(Base, IdMixin):
    __tablename__ = "sale_line"
    sale_id: Mapped[str] = mapped_column(String(36), ForeignKey("sale.id"))
    kind: Mapped[LineKind] = mapped_column(Enum(LineKind))
    position: Mapped[int] = mapped_column(Integer, default=0)
    product_id: Mapped[str] = mapped_column(String(36))
    name: Mapped[str] = mapped_column(String(160))
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    qty: Mapped[Decimal] = mapped_column(Numeric(12, 3))
    sale: Mapped[Sale] = relationship(back_populates="lines")

class TicketCounter(Base, TSMMixin):
    __tablename__ = "ticket_counter"
    name: Mapped[str] = mapped_column(String(40), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, default=0)  # last issued ticket number
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

# ── Inventory ledger ────────────────────────────────────────────────────────
class InventoryMovement(Base, IdMixin):
    __tablename__ = "inventory_movement"
    ingredient_id: Mapped[str] = mapped_column(String(36), ForeignKey("ingredient.id"))
    type: Mapped[MovementType] = mapped_column(Enum(MovementType))
    qty: Mapped[Decimal] = mapped_column(Numeric(12, 3))          # as requested
    delta: Mapped[Decimal] = mapped_column(Numeric(12, 3))        # as applied
    before_stock: Mapped[Decimal] = mapped_column(Numeric(12, 3))
    after_stock: Mapped[Decimal] = mapped_column(Numeric(12, 3))
    note: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

# ── Expenses ────────────────────────────────────────────────────────────────
class Expense(Base, IdMixin):
    __tablename__ = "expense"
    description: Mapped[str] = mapped_column(String(200))
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    category: Mapped[ExpenseCategory] = mapped_column(Enum(ExpenseCategory))
    subcategory: Mapped[str | None] = mapped_column(String(80))
    employee_name: Mapped[str | None] = mapped_column(String(160))
    note: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
