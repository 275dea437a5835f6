import logging
from dataclasses import replace
from datetime import date, datetime, time

import aiosqlite

from slush.calculator import AnnualPayment, pay_annual_expense_from_slush_fund
from slush.categories import ExpenseCategory
from slush.db.database import get_db, to_db_date
from slush.db.models import Expense, RecurringExpense
from slush.errors import require_positive
from slush.recurrence import (
    RecurrenceFrequency,
    due_templates,
    is_due,
    sort_templates,
    total_by_frequency,
)
from slush.services.expense_service import insert_expense_row
from slush.services.slush_fund_service import slush_fund_balance
from slush.weeks import local_now

logger = logging.getLogger(__name__)


def _row_to_recurring(row: aiosqlite.Row) -> RecurringExpense:
    return RecurringExpense(
        id=row["id"],
        amount=row["amount"],
        category=ExpenseCategory[row["category"]],
        category_custom_name=row["category_custom_name"],
        description=row["description"],
        frequency=RecurrenceFrequency[row["frequency"]],
        start_date=date.fromisoformat(row["start_date"]),
        next_due_date=date.fromisoformat(row["next_due_date"]),
        is_active=bool(row["is_active"]),
    )


async def _fetch(query: str, params: tuple = ()) -> list[RecurringExpense]:
    db = await get_db()
    cursor = await db.execute(query, params)
    rows = await cursor.fetchall()
    return [_row_to_recurring(row) for row in rows]


async def add_recurring_expense(
    amount: float,
    category: ExpenseCategory,
    frequency: RecurrenceFrequency,
    start_date: date,
    description: str | None = None,
    category_custom_name: str | None = None,
) -> RecurringExpense:
    require_positive("Recurring expense amount", amount)
    db = await get_db()
    cursor = await db.execute(
        """INSERT INTO recurring_expenses
        (amount, category, category_custom_name, description, frequency,
         start_date, next_due_date, is_active)
        VALUES (?, ?, ?, ?, ?, ?, ?, 1)""",
        (
            amount,
            category.name,
            category_custom_name,
            description,
            frequency.name,
            to_db_date(start_date),
            to_db_date(start_date),
        ),
    )
    await db.commit()
    logger.debug("Added %s recurring expense %.2f", frequency.name, amount, extra={"template_id": cursor.lastrowid})
    return RecurringExpense(
        id=cursor.lastrowid,
        amount=float(amount),
        category=category,
        category_custom_name=category_custom_name,
        description=description,
        frequency=frequency,
        start_date=start_date,
        next_due_date=start_date,
    )


async def get_recurring_expense(template_id: int) -> RecurringExpense | None:
    found = await _fetch("SELECT * FROM recurring_expenses WHERE id = ?", (template_id,))
    return found[0] if found else None


async def list_recurring_expenses() -> list[RecurringExpense]:
    return sort_templates(await _fetch("SELECT * FROM recurring_expenses ORDER BY id"))


async def get_active_recurring_expenses() -> list[RecurringExpense]:
    return await _fetch("SELECT * FROM recurring_expenses WHERE is_active = 1 ORDER BY next_due_date, id")


async def get_due_recurring_expenses(as_of: date | None = None) -> list[RecurringExpense]:
    as_of = as_of or local_now().date()
    return due_templates(await get_active_recurring_expenses(), as_of)


async def get_recurring_by_frequency(frequency: RecurrenceFrequency) -> list[RecurringExpense]:
    return await _fetch(
        "SELECT * FROM recurring_expenses WHERE is_active = 1 AND frequency = ? ORDER BY next_due_date, id",
        (frequency.name,),
    )


async def get_annual_recurring_expenses() -> list[RecurringExpense]:
    return await get_recurring_by_frequency(RecurrenceFrequency.ANNUALLY)


async def get_total_by_frequency(frequency: RecurrenceFrequency) -> float:
    return total_by_frequency(await get_active_recurring_expenses(), frequency)


async def _write_template(db: aiosqlite.Connection, template: RecurringExpense) -> None:
    await db.execute(
        """UPDATE recurring_expenses SET
            amount = ?, category = ?, category_custom_name = ?, description = ?,
            frequency = ?, start_date = ?, next_due_date = ?, is_active = ?
        WHERE id = ?""",
        (
            template.amount,
            template.category.name,
            template.category_custom_name,
            template.description,
            template.frequency.name,
            to_db_date(template.start_date),
            to_db_date(template.next_due_date),
            template.is_active,
            template.id,
        ),
    )
    await db.commit()


async def update_recurring_expense(
    template_id: int,
    amount: float,
    category: ExpenseCategory,
    frequency: RecurrenceFrequency,
    start_date: date,
    description: str | None = None,
    category_custom_name: str | None = None,
) -> RecurringExpense | None:
    """Edit a template, keeping its schedule position and pause state."""
    require_positive("Recurring expense amount", amount)
    existing = await get_recurring_expense(template_id)
    if existing is None:
        logger.warning("Update of unknown recurring expense ignored", extra={"template_id": template_id})
        return None
    updated = replace(
        existing,
        amount=float(amount),
        category=category,
        category_custom_name=category_custom_name,
        description=description,
        frequency=frequency,
        start_date=start_date,
        next_due_date=max(existing.next_due_date, start_date),
    )
    await _write_template(await get_db(), updated)
    return updated


async def delete_recurring_expense(template_id: int) -> bool:
    db = await get_db()
    cursor = await db.execute("DELETE FROM recurring_expenses WHERE id = ?", (template_id,))
    await db.commit()
    if cursor.rowcount == 0:
        logger.warning("Delete of unknown recurring expense ignored", extra={"template_id": template_id})
        return False
    return True


async def set_active(template_id: int, active: bool) -> RecurringExpense | None:
    existing = await get_recurring_expense(template_id)
    if existing is None:
        logger.warning("Pause/resume of unknown recurring expense ignored", extra={"template_id": template_id})
        return None
    updated = replace(existing, is_active=active)
    await _write_template(await get_db(), updated)
    logger.info("Recurring expense %s", "resumed" if active else "paused", extra={"template_id": template_id})
    return updated


async def toggle_active(template_id: int) -> RecurringExpense | None:
    existing = await get_recurring_expense(template_id)
    if existing is None:
        logger.warning("Toggle of unknown recurring expense ignored", extra={"template_id": template_id})
        return None
    return await set_active(template_id, not existing.is_active)


async def _advance(db: aiosqlite.Connection, template: RecurringExpense) -> bool:
    # Guarded on the old due date so a stale snapshot cannot fire twice.
    cursor = await db.execute(
        "UPDATE recurring_expenses SET next_due_date = ? WHERE id = ? AND next_due_date = ? AND is_active = 1",
        (to_db_date(template.following_due_date()), template.id, to_db_date(template.next_due_date)),
    )
    return cursor.rowcount == 1


def _generated_expense(template: RecurringExpense, amount: float, when: datetime, from_slush_fund: bool) -> Expense:
    return Expense(
        id=None,
        amount=amount,
        category=template.category,
        category_custom_name=template.category_custom_name,
        timestamp=when,
        description=template.description,
        is_from_slush_fund=from_slush_fund,
        is_recurring=True,
        recurring_expense_id=template.id,
    )


async def fire_recurring_expense(template: RecurringExpense) -> Expense | None:
    """Create the expense for the template's current due date and advance it.

    Both writes commit together. Returns None if the stored template no longer
    matches the snapshot (already fired, paused or deleted).
    """
    db = await get_db()
    expense = _generated_expense(
        template, template.amount, datetime.combine(template.next_due_date, time.min), from_slush_fund=False
    )
    try:
        expense_id = await insert_expense_row(db, expense)
        if not await _advance(db, template):
            await db.rollback()
            logger.warning("Recurring expense changed before firing; skipped", extra={"template_id": template.id})
            return None
    except Exception:
        await db.rollback()
        raise
    await db.commit()
    logger.info(
        "Fired recurring expense due %s",
        template.next_due_date,
        extra={"template_id": template.id, "expense_id": expense_id, "operation": "fire"},
    )
    return replace(expense, id=expense_id)


async def process_due_recurring_expenses(as_of: date | None = None) -> list[Expense]:
    """Fire every due template until it is caught up with ``as_of``.

    Annual templates are left alone; they are settled with pay_annual_expense.
    """
    as_of = as_of or local_now().date()
    fired: list[Expense] = []
    for template in await get_due_recurring_expenses(as_of):
        if template.frequency is RecurrenceFrequency.ANNUALLY:
            continue
        current = template
        while is_due(current, as_of):
            expense = await fire_recurring_expense(current)
            if expense is None:
                break
            fired.append(expense)
            current = replace(current, next_due_date=current.following_due_date())
    return fired


async def pay_annual_expense(template_id: int, now: datetime | None = None) -> AnnualPayment | None:
    """Mark an annual expense paid, drawing from the slush fund first.

    The drawn part is recorded as a slush-fund expense and any remainder as a
    regular expense in the current week.
    """
    template = await get_recurring_expense(template_id)
    if template is None:
        logger.warning("Payment of unknown recurring expense ignored", extra={"template_id": template_id})
        return None
    if template.frequency is not RecurrenceFrequency.ANNUALLY:
        raise ValueError(f"Recurring expense {template_id} is {template.frequency.display_name}, not annual.")
    if not template.is_active:
        raise ValueError(f"Recurring expense {template_id} is paused.")

    now = now or local_now()
    balance = await slush_fund_balance(now)
    payment = pay_annual_expense_from_slush_fund(template.amount, balance)

    db = await get_db()
    try:
        if payment.drawn_from_slush_fund > 0:
            await insert_expense_row(
                db, _generated_expense(template, payment.drawn_from_slush_fund, now, from_slush_fund=True)
            )
        if payment.remainder > 0:
            await insert_expense_row(db, _generated_expense(template, payment.remainder, now, from_slush_fund=False))
        if not await _advance(db, template):
            await db.rollback()
            logger.warning("Annual expense changed before payment; skipped", extra={"template_id": template_id})
            return None
    except Exception:
        await db.rollback()
        raise
    await db.commit()
    logger.info(
        "Paid annual expense: %.2f from slush fund, %.2f as weekly expense",
        payment.drawn_from_slush_fund,
        payment.remainder,
        extra={"template_id": template_id, "operation": "pay_annual"},
    )
    return payment
