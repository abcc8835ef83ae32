# test_costing.py
from datetime import datetime, timezone
from types import SimpleNamespace as NS
from zoneinfo import ZoneInfo

import pytest

from app.services import costing


def _recipe(product_id, *items):
    return NS(product_id=product_id, items=[NS(ingredient_id=i, qty=q) for i, q in items])


def _line(product_id, price, qty, name=None):
    return NS(product_id=product_id, name=name or product_id, price=price, qty=qty)


def _sale(total, created_at, lines=()):
    return NS(total=total, created_at=created_at, lines=list(lines))


def test_unit_costs_skip_recipes_with_uncosted_ingredients():
    recipes = [
        _recipe("burger", ("bun", 1), ("meat", 0.15)),
        _recipe("fries", ("potato", 0.2), ("oil", 0.01)),
    ]
    costs = costing.product_unit_costs(recipes, {"bun": 800, "meat": 30000, "potato": 4000, "oil": None})
    assert costs == {"burger": pytest.approx(5300)}


def test_food_cost_counts_unknown_items_in_revenue_only():
    lines = [_line("burger", 20000, 2), _line("soda", 5000, 1)]
    stats = costing.food_cost(lines, {"burger": 5300})

    assert stats.total_revenue == 45000
    assert stats.total_cost == 10600
    assert stats.missing_cost_items == 1
    assert stats.food_cost_pct == pytest.approx(10600 / 45000, abs=1e-4)
    assert stats.gross_profit == 34400


def test_food_cost_without_revenue_is_zero():
    stats = costing.food_cost([], {})
    assert stats.food_cost_pct == 0
    assert stats.total_revenue == 0


def test_sales_goal():
    g = costing.sales_goal(3_000_000, 2_000_000, 0.5, 25, 6)
    assert g.monthly == 10_000_000
    assert g.daily == 400_000
    assert g.weekly == 2_400_000


@pytest.mark.parametrize("c, days_open, per_week", [
    (0, 26, 6), (-0.1, 26, 6), (1, 26, 6), (1.2, 26, 6), (0.35, 0, 6), (0.35, -1, 6), (0.35, 26, -1),
])
def test_sales_goal_not_computable(c, days_open, per_week):
    assert costing.sales_goal(3_205_000, 2_000_000, c, days_open, per_week) is None


def test_break_even_is_goal_without_profit():
    be = costing.break_even(3_500_000, 0.3, 25, 6)
    assert be == costing.sales_goal(3_500_000, 0, 0.3, 25, 6)
    assert be.monthly == 5_000_000


def test_goal_inputs_fallbacks():
    both = costing.goal_inputs(0, 0, 0.35, 3_205_000)
    assert (both.food_cost_pct, both.fixed_monthly) == (0.35, 3_205_000)
    assert both.food_cost_fallback and both.fixed_monthly_fallback
    assert "35%" in both.note

    only_fc = costing.goal_inputs(0, 4_000_000, 0.35, 3_205_000)
    assert only_fc.food_cost_fallback and not only_fc.fixed_monthly_fallback
    assert only_fc.fixed_monthly == 4_000_000

    real = costing.goal_inputs(0.28, 4_000_000, 0.35, 3_205_000)
    assert not real.food_cost_fallback and not real.fixed_monthly_fallback
    assert real.note == ""
    assert real.food_cost_pct == 0.28


def test_unit_goal():
    g = costing.unit_goal(10, 18000, 26, 6)
    assert (g.daily, g.weekly, g.monthly) == (180_000, 1_080_000, 4_680_000)
    assert costing.unit_goal(0, 18000, 26, 6) is None
    assert costing.unit_goal(10, 0, 26, 6) is None


def test_fixed_monthly_costs_only_counts_rent_utilities_payroll():
    expenses = [
        NS(category="ARRIENDO", amount=1_500_000),
        NS(category="SERVICIOS", amount=400_000),
        NS(category="NOMINA", amount=1_300_000),
        NS(category="PROVEEDORES", amount=900_000),
        NS(category="EXTRAS", amount=50_000),
    ]
    assert costing.fixed_monthly_costs(expenses) == 3_200_000


def test_sales_summary_and_rankings():
    d1 = datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)
    d2 = datetime(2026, 3, 3, 18, 0, tzinfo=timezone.utc)
    sales = [
        _sale(40000, d1, [_line("burger", 20000, 2, "Burger")]),
        _sale(10000, d1, [_line("soda", 5000, 2, "Soda")]),
        _sale(25000, d2, [_line("soda", 5000, 3, "Soda"), _line("burger", 20000, 0.5, "Burger")]),
    ]

    summary = costing.sales_summary(sales)
    assert summary == {"total": 75000, "tickets": 3, "average_ticket": 25000}
    assert costing.sales_summary([]) == {"total": 0, "tickets": 0, "average_ticket": 0}

    top = costing.top_products(sales)
    assert [t["name"] for t in top] == ["Soda", "Burger"]
    assert top[0]["qty"] == 5 and top[0]["revenue"] == 25000

    daily = costing.daily_totals(sales)
    assert daily == [
        {"date": "2026-03-02", "total": 50000, "tickets": 2},
        {"date": "2026-03-03", "total": 25000, "tickets": 1},
    ]
    assert costing.best_days(sales, n=1) == [daily[0]]


def test_daily_totals_use_business_timezone():
    # 02:00 UTC is still the previous evening in Bogota
    late = datetime(2026, 3, 3, 2, 0)
    sales = [_sale(1000, late)]
    assert costing.daily_totals(sales, tz=ZoneInfo("America/Bogota"))[0]["date"] == "2026-03-02"
    assert costing.daily_totals(sales)[0]["date"] == "2026-03-03"
