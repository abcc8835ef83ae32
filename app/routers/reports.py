from dataclasses import asdict
from datetime import date, timedelta
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, selectinload

from app.config import settings
from app.db import get_db
from app.deps import REPORTS_VIEW, require_perm
from app.models.core import Ingredient, Recipe
from app.schemas.reports import GoalOut, RevenueGoalOut, SummaryOut
from app.services import costing
from app.services.sales import business_tz, expenses_between, sales_between, today

router = APIRouter(prefix="/reports", tags=["reports"])


def _unit_costs(db: Session) -> dict[str, float]:
    ingredient_costs = {
        i.id: (float(i.cost_per_unit) if i.cost_per_unit is not None else None)
        for i in db.query(Ingredient).all()
    }
    recipes = db.query(Recipe).options(selectinload(Recipe.items)).all()
    return costing.product_unit_costs(recipes, ingredient_costs)


def _food_cost(db: Session, sales) -> costing.FoodCostStats:
    return costing.food_cost((l for s in sales for l in s.lines), _unit_costs(db))


def _goal(g: costing.RevenueGoal | None) -> RevenueGoalOut | None:
    return RevenueGoalOut(**asdict(g)) if g else None


@router.get("/summary", response_model=SummaryOut)
def summary(start: date | None = None, end: date | None = None, db: Session = Depends(get_db), sub: str = Depends(require_perm(REPORTS_VIEW))):
    end = end or today()
    start = start or end
    if start > end:
        raise HTTPException(422, detail="start must not be after end")
    sales = sales_between(db, start, end)
    tz = business_tz()
    return SummaryOut(
        start=start.isoformat(),
        end=end.isoformat(),
        **costing.sales_summary(sales),
        food_cost=asdict(_food_cost(db, sales)),
        top_products=costing.top_products(sales),
        best_days=costing.best_days(sales, tz=tz),
        daily_totals=costing.daily_totals(sales, tz=tz),
    )


@router.get("/goal", response_model=GoalOut)
def dashboard_goal(db: Session = Depends(get_db), sub: str = Depends(require_perm(REPORTS_VIEW))):
    """
    Break-even and profit goal for the dashboard.

    Food cost comes from the last 30 days of sales, fixed costs from this
    month's rent/utilities/payroll expenses. Either one falls back to the
    configured estimate when there is no data, and the response says so.
    """
    now = today()
    sales = sales_between(db, now - timedelta(days=29), now)
    expenses = expenses_between(db, now.replace(day=1), now)

    inputs = costing.goal_inputs(
        _food_cost(db, sales).food_cost_pct,
        costing.fixed_monthly_costs(expenses),
        settings.FALLBACK_FOOD_COST,
        settings.FALLBACK_FIXED_MONTHLY,
    )
    return GoalOut(
        **asdict(inputs),
        target_profit=settings.TARGET_PROFIT,
        break_even=_goal(costing.break_even(
            inputs.fixed_monthly, inputs.food_cost_pct, settings.DAYS_OPEN, settings.DAYS_OPEN_WEEK,
        )),
        profit_goal=_goal(costing.sales_goal(
            inputs.fixed_monthly, settings.TARGET_PROFIT, inputs.food_cost_pct,
            settings.DAYS_OPEN, settings.DAYS_OPEN_WEEK,
        )),
    )


@router.get("/sales_goal", response_model=RevenueGoalOut | None)
def sales_goal(
    food_cost_pct: float,
    fixed_monthly: float = settings.FALLBACK_FIXED_MONTHLY,
    target_profit: float = settings.TARGET_PROFIT,
    days_open: int = settings.DAYS_OPEN,
    days_per_week: int = settings.DAYS_OPEN_WEEK,
    sub: str = Depends(require_perm(REPORTS_VIEW)),
):
    """null when the inputs make the goal meaningless"""
    return _goal(costing.sales_goal(fixed_monthly, target_profit, food_cost_pct, days_open, days_per_week))


@router.get("/unit_goal", response_model=RevenueGoalOut | None)
def unit_goal(
    units_per_day: float,
    avg_unit_price: float,
    days_open: int = settings.DAYS_OPEN,
    days_per_week: int = settings.DAYS_OPEN_WEEK,
    sub: str = Depends(require_perm(REPORTS_VIEW)),
):
    return _goal(costing.unit_goal(units_per_day, avg_unit_price, days_open, days_per_week))
