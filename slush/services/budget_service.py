import logging
from dataclasses import dataclass
from datetime import date, datetime

from slush.calculator import compute_week_delta, compute_weekly_allowance
from slush.db.database import get_db, to_db_date
from slush.db.models import Budget
from slush.errors import require_positive
from slush.services.expense_service import total_spent
from slush.weeks import week_bounds

logger = logging.getLogger(__name__)

# The budget table holds at most this one row.
CURRENT_BUDGET_ID = 1


@dataclass(frozen=True, slots=True)
class WeekSummary:
    week_offset: int
    start: datetime
    end: datetime
    allowance: float
    spent: float
    delta: float

    @property
    def over_budget(self) -> bool:
        return self.delta < 0


async def save_budget(monthly_amount: float, start_date: date) -> Budget:
    require_positive("Monthly budget", monthly_amount)
    db = await get_db()
    await db.execute(
        """INSERT INTO budget (id, monthly_amount, start_date) VALUES (?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            monthly_amount = excluded.monthly_amount,
            start_date = excluded.start_date""",
        (CURRENT_BUDGET_ID, monthly_amount, to_db_date(start_date)),
    )
    await db.commit()
    logger.info("Budget set to %.2f/month from %s", monthly_amount, start_date, extra={"operation": "save_budget"})
    return Budget(id=CURRENT_BUDGET_ID, monthly_amount=float(monthly_amount), start_date=start_date)


async def get_current_budget() -> Budget | None:
    db = await get_db()
    cursor = await db.execute("SELECT * FROM budget WHERE id = ?", (CURRENT_BUDGET_ID,))
    row = await cursor.fetchone()
    if row:
        return Budget(
            id=row["id"],
            monthly_amount=row["monthly_amount"],
            start_date=date.fromisoformat(row["start_date"]),
        )
    return None


async def get_monthly_recurring_total() -> float:
    db = await get_db()
    cursor = await db.execute(
        """SELECT COALESCE(SUM(amount), 0.0) FROM recurring_expenses
        WHERE is_active = 1 AND frequency = 'MONTHLY'"""
    )
    row = await cursor.fetchone()
    return row[0]


async def weekly_allowance() -> float | None:
    """None when no budget is configured, which is distinct from a zero allowance."""
    budget = await get_current_budget()
    if budget is None:
        return None
    recurring = await get_monthly_recurring_total()
    return compute_weekly_allowance(budget.monthly_amount, recurring)


async def week_summary(week_offset: int = 0, now: datetime | None = None) -> WeekSummary | None:
    allowance = await weekly_allowance()
    if allowance is None:
        return None
    start, end = week_bounds(week_offset, now)
    spent = await total_spent(start, end, exclude_slush_fund=True, exclude_monthly_recurring=True)
    return WeekSummary(
        week_offset=week_offset,
        start=start,
        end=end,
        allowance=allowance,
        spent=spent,
        delta=compute_week_delta(allowance, spent),
    )
