# app/services/errors.py

from decimal import Decimal
from typing import Dict, Optional


class PosError(Exception):
    """Base exception for everything the POS services raise on purpose"""

    error_code = "POS_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict] = None):
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict:
        """Convert exception to dictionary for API responses"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class NotFound(PosError):
    error_code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found", details={"entity": entity, "id": entity_id})


class InvalidInput(PosError):
    error_code = "INVALID_INPUT"


class InvalidQuantity(InvalidInput):
    error_code = "INVALID_QUANTITY"


class EmptyOrder(InvalidInput):
    error_code = "EMPTY_ORDER"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} has no items", details={"order_id": order_id})


class OrderNotOpen(InvalidInput):
    error_code = "ORDER_NOT_OPEN"

    def __init__(self, order_id: str, status: str):
        self.order_id = order_id
        self.status = status
        super().__init__(
            f"Order {order_id} is {status.lower()}, only open orders can be changed",
            details={"order_id": order_id, "status": status},
        )


class InsufficientStock(PosError):
    """Raised when a movement or settlement would take an ingredient below zero"""

    error_code = "INSUFFICIENT_STOCK"

    def __init__(self, ingredient_id: str, ingredient_name: str, available: Decimal, required: Decimal):
        self.ingredient_id = ingredient_id
        self.ingredient_name = ingredient_name
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient stock: {ingredient_name}",
            details={
                "ingredient_id": ingredient_id,
                "ingredient_name": ingredient_name,
                "available": float(available),
                "required": float(required),
                "shortage": float(required - available),
            },
        )


class ConcurrencyConflict(PosError):
    error_code = "CONCURRENCY_CONFLICT"

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            "The operation collided with a concurrent change, please try again",
            details={"attempts": attempts},
        )


class PermissionDenied(PosError):
    error_code = "PERMISSION_DENIED"
