from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session, selectinload

from app.config import settings
from app.models.core import Expense, Sale


def business_tz() -> ZoneInfo:
    return ZoneInfo(settings.BUSINESS_TZ)


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """[start 00:00, end+1 00:00) in business time, expressed in UTC."""
    tz = business_tz()
    lo = datetime.combine(start, time.min, tzinfo=tz).astimezone(timezone.utc)
    hi = datetime.combine(end + timedelta(days=1), time.min, tzinfo=tz).astimezone(timezone.utc)
    return lo, hi


def today() -> date:
    return datetime.now(business_tz()).date()


def sales_between(db: Session, start: date, end: date) -> list[Sale]:
    lo, hi = day_bounds(start, end)
    return (
        db.query(Sale)
        .options(selectinload(Sale.lines))
        .filter(Sale.created_at >= lo, Sale.created_at < hi)
        .order_by(Sale.created_at.desc())
        .all()
    )


def expenses_between(db: Session, start: date, end: date) -> list[Expense]:
    lo, hi = day_bounds(start, end)
    return (
        db.query(Expense)
        .filter(Expense.created_at >= lo, Expense.created_at < hi)
        .order_by(Expense.created_at.desc())
        .all()
    )
