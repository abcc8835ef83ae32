"""
Food-cost, break-even and sales-goal calculators.

Pure functions over already-loaded rows; nothing here touches the session.
Sales/lines/recipes are duck-typed so ORM rows and plain objects both work:

- recipe: .product_id, .items -> [.ingredient_id, .qty]
- line:   .product_id, .name, .price, .qty
- sale:   .total, .created_at, .lines
- expense: .category, .amount
"""

from dataclasses import dataclass
from datetime import date, timezone, tzinfo
from typing import Iterable, Mapping

from app.models.core import FIXED_EXPENSE_CATEGORIES, ExpenseCategory
from app.util.numbers import money


@dataclass
class FoodCostStats:
    total_cost: float
    total_revenue: float
    food_cost_pct: float
    gross_profit: float
    missing_cost_items: int


@dataclass
class RevenueGoal:
    monthly: float
    weekly: float
    daily: float


@dataclass
class GoalInputs:
    food_cost_pct: float
    fixed_monthly: float
    food_cost_fallback: bool
    fixed_monthly_fallback: bool
    note: str


def product_unit_costs(recipes: Iterable, ingredient_costs: Mapping[str, float | None]) -> dict[str, float]:
    """
    product_id -> cost of one unit.

    Products absent from the result have unknown cost: no recipe, or a recipe
    with at least one ingredient that has no cost_per_unit.
    """
    out: dict[str, float] = {}
    for recipe in recipes:
        cost = 0.0
        known = True
        for item in recipe.items:
            unit_cost = ingredient_costs.get(item.ingredient_id)
            if unit_cost is None:
                known = False
                break
            cost += float(unit_cost) * float(item.qty)
        if known:
            out[recipe.product_id] = cost
    return out


def food_cost(lines: Iterable, unit_costs: Mapping[str, float]) -> FoodCostStats:
    total_cost = 0.0
    total_revenue = 0.0
    missing = 0
    for l in lines:
        qty = float(l.qty)
        total_revenue += qty * float(l.price)
        cost = unit_costs.get(l.product_id)
        if cost is None:
            missing += 1
        else:
            total_cost += cost * qty
    pct = total_cost / total_revenue if total_revenue > 0 else 0.0
    return FoodCostStats(
        total_cost=money(total_cost),
        total_revenue=money(total_revenue),
        food_cost_pct=round(pct, 4),
        gross_profit=money(total_revenue - total_cost),
        missing_cost_items=missing,
    )


def sales_goal(
    fixed_monthly: float,
    target_profit: float,
    food_cost_pct: float,
    days_open: int,
    days_per_week: int,
) -> RevenueGoal | None:
    """Revenue needed to cover fixed costs plus target profit; None when not computable."""
    c = float(food_cost_pct)
    if c <= 0 or c >= 1 or days_open <= 0 or days_per_week < 0:
        return None
    monthly = (float(fixed_monthly) + float(target_profit)) / (1 - c)
    daily = monthly / days_open
    return RevenueGoal(monthly=money(monthly), weekly=money(daily * days_per_week), daily=money(daily))


def break_even(fixed_monthly: float, food_cost_pct: float, days_open: int, days_per_week: int) -> RevenueGoal | None:
    return sales_goal(fixed_monthly, 0, food_cost_pct, days_open, days_per_week)


def goal_inputs(
    food_cost_pct: float,
    fixed_monthly: float,
    fallback_food_cost: float,
    fallback_fixed_monthly: float,
) -> GoalInputs:
    """Swap in the configured estimates when there is no real data behind a figure."""
    fc_fallback = not food_cost_pct
    fixed_fallback = not fixed_monthly
    if fc_fallback and fixed_fallback:
        note = f"Using estimates: food cost {fallback_food_cost:.0%} and base fixed costs."
    elif fc_fallback:
        note = f"No recent sales: estimated food cost {fallback_food_cost:.0%}."
    elif fixed_fallback:
        note = "No fixed expenses recorded this month: using base fixed costs."
    else:
        note = ""
    return GoalInputs(
        food_cost_pct=float(fallback_food_cost if fc_fallback else food_cost_pct),
        fixed_monthly=float(fallback_fixed_monthly if fixed_fallback else fixed_monthly),
        food_cost_fallback=fc_fallback,
        fixed_monthly_fallback=fixed_fallback,
        note=note,
    )


def unit_goal(units_per_day: float, avg_unit_price: float, days_open: int, days_per_week: int) -> RevenueGoal | None:
    """Revenue implied by selling N units a day at an average price."""
    if units_per_day <= 0 or avg_unit_price <= 0:
        return None
    daily = float(units_per_day) * float(avg_unit_price)
    return RevenueGoal(
        monthly=money(daily * max(days_open, 0)),
        weekly=money(daily * max(days_per_week, 0)),
        daily=money(daily),
    )


def fixed_monthly_costs(expenses: Iterable) -> float:
    total = 0.0
    for e in expenses:
        if ExpenseCategory(e.category) in FIXED_EXPENSE_CATEGORIES:
            total += float(e.amount or 0)
    return money(total)


def sales_summary(sales: Iterable) -> dict:
    sales = list(sales)
    total = sum(float(s.total or 0) for s in sales)
    count = len(sales)
    return {
        "total": money(total),
        "tickets": count,
        "average_ticket": money(total / count) if count else 0.0,
    }


def top_products(sales: Iterable, n: int = 5) -> list[dict]:
    stats: dict[str, dict] = {}
    for s in sales:
        for l in s.lines:
            row = stats.setdefault(l.product_id, {"product_id": l.product_id, "name": l.name, "qty": 0.0, "revenue": 0.0})
            row["qty"] += float(l.qty)
            row["revenue"] += float(l.qty) * float(l.price)
    ranked = sorted(stats.values(), key=lambda r: r["qty"], reverse=True)[:n]
    for r in ranked:
        r["revenue"] = money(r["revenue"])
    return ranked


def _day(ts, tz: tzinfo | None) -> date:
    if tz is not None:
        # sqlite hands back naive values; they were written in UTC
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        ts = ts.astimezone(tz)
    return ts.date()


def daily_totals(sales: Iterable, tz: tzinfo | None = None) -> list[dict]:
    """Revenue and ticket count per calendar day, oldest first."""
    days: dict[date, dict] = {}
    for s in sales:
        if s.created_at is None:
            continue
        d = _day(s.created_at, tz)
        row = days.setdefault(d, {"date": d.isoformat(), "total": 0.0, "tickets": 0})
        row["total"] += float(s.total or 0)
        row["tickets"] += 1
    out = [days[d] for d in sorted(days)]
    for r in out:
        r["total"] = money(r["total"])
    return out


def best_days(sales: Iterable, n: int = 5, tz: tzinfo | None = None) -> list[dict]:
    return sorted(daily_totals(sales, tz), key=lambda r: r["total"], reverse=True)[:n]
