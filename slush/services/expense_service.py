import logging
from datetime import datetime

import aiosqlite

from slush.categories import ExpenseCategory
from slush.db.database import get_db, to_db_timestamp
from slush.db.models import Expense
from slush.errors import require_positive
from slush.weeks import week_bounds

logger = logging.getLogger(__name__)

_UPDATABLE = {
    "amount",
    "category",
    "category_custom_name",
    "timestamp",
    "description",
    "is_from_slush_fund",
}


def row_to_expense(row: aiosqlite.Row) -> Expense:
    return Expense(
        id=row["id"],
        amount=row["amount"],
        category=ExpenseCategory[row["category"]],
        category_custom_name=row["category_custom_name"],
        timestamp=datetime.fromisoformat(row["timestamp"]),
        description=row["description"],
        is_from_slush_fund=bool(row["is_from_slush_fund"]),
        is_recurring=bool(row["is_recurring"]),
        recurring_expense_id=row["recurring_expense_id"],
    )


async def insert_expense_row(db: aiosqlite.Connection, expense: Expense) -> int:
    """Insert without committing, so callers can group it with other writes."""
    require_positive("Expense amount", expense.amount)
    cursor = await db.execute(
        """INSERT INTO expenses
        (amount, category, category_custom_name, timestamp, description,
         is_from_slush_fund, is_recurring, recurring_expense_id)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            expense.amount,
            expense.category.name,
            expense.category_custom_name,
            to_db_timestamp(expense.timestamp),
            expense.description,
            expense.is_from_slush_fund,
            expense.is_recurring,
            expense.recurring_expense_id,
        ),
    )
    assert cursor.lastrowid is not None
    return cursor.lastrowid


async def save_expense(expense: Expense) -> int:
    db = await get_db()
    expense_id = await insert_expense_row(db, expense)
    await db.commit()
    logger.debug("Saved expense %.2f (%s)", expense.amount, expense.category.name, extra={"expense_id": expense_id})
    return expense_id


async def get_expense_by_id(expense_id: int) -> Expense | None:
    db = await get_db()
    cursor = await db.execute("SELECT * FROM expenses WHERE id = ?", (expense_id,))
    row = await cursor.fetchone()
    return row_to_expense(row) if row else None


async def get_expenses(
    start: datetime | None = None,
    end: datetime | None = None,
    category: ExpenseCategory | None = None,
) -> list[Expense]:
    db = await get_db()
    query = "SELECT * FROM expenses WHERE 1 = 1"
    params: list[str] = []
    if start:
        query += " AND timestamp >= ?"
        params.append(to_db_timestamp(start))
    if end:
        query += " AND timestamp <= ?"
        params.append(to_db_timestamp(end))
    if category:
        query += " AND category = ?"
        params.append(category.name)
    query += " ORDER BY timestamp DESC, id DESC"
    cursor = await db.execute(query, params)
    rows = await cursor.fetchall()
    return [row_to_expense(row) for row in rows]


async def get_week_expenses(
    week_offset: int = 0,
    category: ExpenseCategory | None = None,
    now: datetime | None = None,
) -> list[Expense]:
    start, end = week_bounds(week_offset, now)
    return await get_expenses(start, end, category)


async def get_recurring_generated_expenses() -> list[Expense]:
    db = await get_db()
    cursor = await db.execute("SELECT * FROM expenses WHERE is_recurring = 1 ORDER BY timestamp DESC")
    return [row_to_expense(row) for row in await cursor.fetchall()]


async def get_slush_fund_expenses() -> list[Expense]:
    db = await get_db()
    cursor = await db.execute("SELECT * FROM expenses WHERE is_from_slush_fund = 1 ORDER BY timestamp DESC")
    return [row_to_expense(row) for row in await cursor.fetchall()]


async def update_expense(expense_id: int, **fields) -> bool:
    fields = {k: v for k, v in fields.items() if k in _UPDATABLE}
    if not fields:
        return False
    if "amount" in fields:
        require_positive("Expense amount", fields["amount"])
    if isinstance(fields.get("category"), ExpenseCategory):
        fields["category"] = fields["category"].name
    if isinstance(fields.get("timestamp"), datetime):
        fields["timestamp"] = to_db_timestamp(fields["timestamp"])
    db = await get_db()
    set_clause = ", ".join(f"{k} = ?" for k in fields)
    values = [*fields.values(), expense_id]
    cursor = await db.execute(f"UPDATE expenses SET {set_clause} WHERE id = ?", values)
    await db.commit()
    if cursor.rowcount == 0:
        logger.warning("Update of unknown expense ignored", extra={"expense_id": expense_id})
        return False
    return True


async def delete_expense(expense_id: int) -> bool:
    db = await get_db()
    cursor = await db.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))
    await db.commit()
    if cursor.rowcount == 0:
        logger.warning("Delete of unknown expense ignored", extra={"expense_id": expense_id})
        return False
    return True


async def total_spent(
    start: datetime,
    end: datetime,
    exclude_slush_fund: bool = False,
    exclude_monthly_recurring: bool = False,
) -> float:
    db = await get_db()
    query = "SELECT COALESCE(SUM(amount), 0.0) FROM expenses WHERE timestamp >= ? AND timestamp <= ?"
    if exclude_slush_fund:
        query += " AND is_from_slush_fund = 0"
    if exclude_monthly_recurring:
        # Monthly templates are already taken out of the weekly allowance.
        query += """ AND NOT (is_recurring = 1 AND recurring_expense_id IN (
            SELECT id FROM recurring_expenses WHERE frequency = 'MONTHLY'))"""
    cursor = await db.execute(query, (to_db_timestamp(start), to_db_timestamp(end)))
    row = await cursor.fetchone()
    return row[0]


async def total_slush_fund_spent(until: datetime | None = None) -> float:
    db = await get_db()
    query = "SELECT COALESCE(SUM(amount), 0.0) FROM expenses WHERE is_from_slush_fund = 1"
    params: list[str] = []
    if until:
        query += " AND timestamp <= ?"
        params.append(to_db_timestamp(until))
    cursor = await db.execute(query, params)
    row = await cursor.fetchone()
    return row[0]
