from pydantic import BaseModel
from typing import Optional

class FoodCostOut(BaseModel):
    total_cost: float
    total_revenue: float
    food_cost_pct: float
    gross_profit: float
    missing_cost_items: int

class RevenueGoalOut(BaseModel):
    monthly: float
    weekly: float
    daily: float

class TopProductOut(BaseModel):
    product_id: str
    name: str
    qty: float
    revenue: float

class DayTotalOut(BaseModel):
    date: str
    total: float
    tickets: int

class SummaryOut(BaseModel):
    start: str
    end: str
    total: float
    tickets: int
    average_ticket: float
    food_cost: FoodCostOut
    top_products: list[TopProductOut]
    best_days: list[DayTotalOut]
    daily_totals: list[DayTotalOut]

class GoalOut(BaseModel):
    food_cost_pct: float
    fixed_monthly: float
    target_profit: float
    food_cost_fallback: bool
    fixed_monthly_fallback: bool
    note: str
    # None when the inputs make the goal meaningless (food cost outside (0, 1), no open days)
    break_even: Optional[RevenueGoalOut] = None
    profit_goal: Optional[RevenueGoalOut] = None
