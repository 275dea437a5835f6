"""Slush fund ledger.

Only manual deposits and withdrawals are stored. The automatic part of the
balance (weekly over/under spending) is derived from expense totals each time
it is asked for, and spending paid from the slush fund is read from the
expenses table.
"""

import logging
from datetime import datetime

from slush.db.database import get_db, to_db_timestamp
from slush.db.models import SlushFundTransaction
from slush.errors import require_nonzero
from slush.services.budget_service import get_current_budget, weekly_allowance
from slush.services.expense_service import total_slush_fund_spent, total_spent
from slush.weeks import local_now, week_end, week_offset_of, week_start

logger = logging.getLogger(__name__)


def _row_to_transaction(row) -> SlushFundTransaction:
    return SlushFundTransaction(
        id=row["id"],
        amount=row["amount"],
        timestamp=datetime.fromisoformat(row["timestamp"]),
        description=row["description"],
    )


async def add_transaction(
    amount: float,
    description: str | None = None,
    timestamp: datetime | None = None,
) -> SlushFundTransaction:
    require_nonzero("Slush fund transaction amount", amount)
    timestamp = timestamp or local_now()
    db = await get_db()
    cursor = await db.execute(
        "INSERT INTO slush_fund_transactions (amount, timestamp, description) VALUES (?, ?, ?)",
        (amount, to_db_timestamp(timestamp), description),
    )
    await db.commit()
    logger.info("Manual slush fund %s of %.2f", "deposit" if amount > 0 else "withdrawal", abs(amount))
    return SlushFundTransaction(id=cursor.lastrowid, amount=amount, timestamp=timestamp, description=description)


async def delete_transaction(transaction_id: int) -> bool:
    db = await get_db()
    cursor = await db.execute("DELETE FROM slush_fund_transactions WHERE id = ?", (transaction_id,))
    await db.commit()
    if cursor.rowcount == 0:
        logger.warning("Delete of unknown slush fund transaction %d ignored", transaction_id)
        return False
    return True


async def get_transactions(start: datetime | None = None, end: datetime | None = None) -> list[SlushFundTransaction]:
    db = await get_db()
    query = "SELECT * FROM slush_fund_transactions WHERE 1 = 1"
    params: list[str] = []
    if start:
        query += " AND timestamp >= ?"
        params.append(to_db_timestamp(start))
    if end:
        query += " AND timestamp <= ?"
        params.append(to_db_timestamp(end))
    query += " ORDER BY timestamp DESC, id DESC"
    cursor = await db.execute(query, params)
    return [_row_to_transaction(row) for row in await cursor.fetchall()]


async def manual_balance(until: datetime | None = None) -> float:
    db = await get_db()
    query = "SELECT COALESCE(SUM(amount), 0.0) FROM slush_fund_transactions"
    params: list[str] = []
    if until:
        query += " WHERE timestamp <= ?"
        params.append(to_db_timestamp(until))
    cursor = await db.execute(query, params)
    row = await cursor.fetchone()
    return row[0]


async def automatic_balance(now: datetime | None = None) -> float:
    """Sum of week deltas for every completed week since the budget started.

    The current week is still open and does not count. Every week uses today's
    allowance since budget history is not kept.
    """
    budget = await get_current_budget()
    if budget is None:
        return 0.0
    now = now or local_now()
    first_offset = week_offset_of(budget.start_date, now)
    weeks = -first_offset
    if weeks <= 0:
        return 0.0
    allowance = await weekly_allowance()
    spent = await total_spent(
        week_start(first_offset, now),
        week_end(-1, now),
        exclude_slush_fund=True,
        exclude_monthly_recurring=True,
    )
    return weeks * allowance - spent


async def slush_fund_balance(now: datetime | None = None) -> float:
    now = now or local_now()
    manual = await manual_balance(until=now)
    automatic = await automatic_balance(now)
    drawn = await total_slush_fund_spent(until=now)
    return manual + automatic - drawn
