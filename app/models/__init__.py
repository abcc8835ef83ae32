# Importing the module registers tables with Base for create_all()
from .core import (  # noqa: F401
    # Enums
    OrderType, OrderStatus, LineKind, PayMethod, IngredientUnit,
    MovementType, ExpenseCategory,

    # Identity & RBAC
    User, Role, Permission, RolePermission, UserRole,

    # Catalog
    Product, Ingredient, Recipe, RecipeItem,

    # Orders / sales
    Order, OrderLine, Sale, SaleLine, TicketCounter,

    # Inventory ledger
    InventoryMovement,

    # Expenses
    Expense,
)

# Optional: make star-imports predictable
__all__ = [
    # Enums
    "OrderType", "OrderStatus", "LineKind", "PayMethod", "IngredientUnit",
    "MovementType", "ExpenseCategory",

    # Identity & RBAC
    "User", "Role", "Permission", "RolePermission", "UserRole",

    # Catalog
    "Product", "Ingredient", "Recipe", "RecipeItem",

    # Orders / sales
    "Order", "OrderLine", "Sale", "SaleLine", "TicketCounter",

    # Inventory ledger
    "InventoryMovement",

    # Expenses
    "Expense",
]
