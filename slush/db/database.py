from datetime import date, datetime
from zoneinfo import ZoneInfo

import aiosqlite

from slush.config import settings

SCHEMA = """
CREATE TABLE IF NOT EXISTS budget (
    id INTEGER PRIMARY KEY CHECK(id = 1),
    monthly_amount REAL NOT NULL CHECK(monthly_amount > 0),
    start_date DATE NOT NULL
);

CREATE TABLE IF NOT EXISTS recurring_expenses (
    id INTEGER PRIMARY KEY,
    amount REAL NOT NULL CHECK(amount > 0),
    category TEXT NOT NULL CHECK(category IN (
        'RENT', 'SUBSCRIPTION', 'GROCERY', 'MEDICAL', 'NECESSITY',
        'ENTERTAINMENT', 'DINING', 'TRAVEL', 'NON_NECESSITY_GOODS', 'OTHER'
    )),
    category_custom_name TEXT,
    description TEXT,
    frequency TEXT NOT NULL CHECK(frequency IN ('WEEKLY', 'BI_WEEKLY', 'MONTHLY', 'ANNUALLY')),
    start_date DATE NOT NULL,
    next_due_date DATE NOT NULL CHECK(next_due_date >= start_date),
    is_active BOOLEAN NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS expenses (
    id INTEGER PRIMARY KEY,
    amount REAL NOT NULL CHECK(amount > 0),
    category TEXT NOT NULL CHECK(category IN (
        'RENT', 'SUBSCRIPTION', 'GROCERY', 'MEDICAL', 'NECESSITY',
        'ENTERTAINMENT', 'DINING', 'TRAVEL', 'NON_NECESSITY_GOODS', 'OTHER'
    )),
    category_custom_name TEXT,
    timestamp TIMESTAMP NOT NULL,
    description TEXT,
    is_from_slush_fund BOOLEAN NOT NULL DEFAULT 0,
    is_recurring BOOLEAN NOT NULL DEFAULT 0,
    recurring_expense_id INTEGER REFERENCES recurring_expenses(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS slush_fund_transactions (
    id INTEGER PRIMARY KEY,
    amount REAL NOT NULL CHECK(amount != 0),
    timestamp TIMESTAMP NOT NULL,
    description TEXT
);

CREATE INDEX IF NOT EXISTS idx_expenses_timestamp ON expenses(timestamp);
CREATE INDEX IF NOT EXISTS idx_expenses_recurring ON expenses(recurring_expense_id);
CREATE INDEX IF NOT EXISTS idx_recurring_active_due ON recurring_expenses(is_active, next_due_date);
CREATE INDEX IF NOT EXISTS idx_slush_fund_timestamp ON slush_fund_transactions(timestamp);
"""

_db: aiosqlite.Connection | None = None


def to_db_date(value: date) -> str:
    return value.isoformat()


def to_db_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        # Stored timestamps are naive local wall-clock time.
        local = ZoneInfo(settings.timezone) if settings.timezone else None
        value = value.astimezone(local).replace(tzinfo=None)
    # Fixed width so string comparison in SQL is chronological.
    return value.isoformat(sep="T", timespec="microseconds")


async def get_db() -> aiosqlite.Connection:
    global _db
    if _db is None:
        _db = await aiosqlite.connect(settings.db_path)
        _db.row_factory = aiosqlite.Row
        await _db.execute("PRAGMA journal_mode=WAL")
        await _db.execute("PRAGMA foreign_keys=ON")
    return _db


async def close_db():
    global _db
    if _db is not None:
        await _db.close()
        _db = None


async def init_db():
    db = await get_db()
    await db.executescript(SCHEMA)
    await db.commit()
