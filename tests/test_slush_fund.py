from datetime import date, datetime

import pytest

from slush.categories import ExpenseCategory
from slush.db.models import Expense
from slush.errors import InvalidAmountError
from slush.recurrence import RecurrenceFrequency
from slush.services.budget_service import save_budget
from slush.services.expense_service import save_expense
from slush.services.recurring_service import add_recurring_expense, process_due_recurring_expenses
from slush.services.slush_fund_service import (
    add_transaction,
    automatic_balance,
    delete_transaction,
    get_transactions,
    manual_balance,
    slush_fund_balance,
)

# Wednesday of the third week of January 2024.
NOW = datetime(2024, 1, 17, 12, 0)


async def _spend(amount, when, from_slush=False):
    await save_expense(
        Expense(id=None, amount=amount, category=ExpenseCategory.DINING, timestamp=when, is_from_slush_fund=from_slush)
    )


async def _budget():
    await save_budget(2000.0, date(2024, 1, 1))
    await add_recurring_expense(865.0, ExpenseCategory.RENT, RecurrenceFrequency.MONTHLY, date(2024, 1, 1))


async def test_manual_transactions():
    deposit = await add_transaction(200.0, "bonus", datetime(2024, 1, 3))
    await add_transaction(-50.0, "transfer out", datetime(2024, 1, 10))
    assert deposit.id is not None
    assert await manual_balance() == 150.0

    txs = await get_transactions()
    assert [t.amount for t in txs] == [-50.0, 200.0]
    assert len(await get_transactions(start=datetime(2024, 1, 5))) == 1


async def test_zero_transaction_rejected():
    with pytest.raises(InvalidAmountError):
        await add_transaction(0.0)


async def test_delete_transaction():
    tx = await add_transaction(20.0)
    assert await delete_transaction(tx.id) is True
    assert await delete_transaction(tx.id) is False
    assert await manual_balance() == 0.0


async def test_no_budget_no_automatic_component():
    await _spend(30.0, datetime(2024, 1, 3))
    assert await automatic_balance(NOW) == 0.0


async def test_automatic_balance_counts_completed_weeks_only():
    await _budget()
    await _spend(200.0, datetime(2024, 1, 2, 19, 0))
    await _spend(300.0, datetime(2024, 1, 12, 19, 0))
    # Current week is still open.
    await _spend(1000.0, datetime(2024, 1, 16, 19, 0))

    allowance = (2000.0 - 865.0) / 4.3
    assert await automatic_balance(NOW) == pytest.approx(2 * allowance - 500.0)


async def test_budget_starting_this_week_has_no_history():
    await save_budget(2000.0, date(2024, 1, 15))
    assert await automatic_balance(NOW) == 0.0


async def test_balance_combines_manual_automatic_and_slush_spending():
    await _budget()
    await _spend(200.0, datetime(2024, 1, 2, 19, 0))
    await _spend(300.0, datetime(2024, 1, 12, 19, 0))
    await _spend(20.0, datetime(2024, 1, 9, 19, 0), from_slush=True)
    await add_transaction(100.0, timestamp=datetime(2024, 1, 5))

    allowance = (2000.0 - 865.0) / 4.3
    expected = 100.0 + (2 * allowance - 500.0) - 20.0
    assert await slush_fund_balance(NOW) == pytest.approx(expected)


async def test_fired_monthly_template_does_not_drain_fund():
    await _budget()
    await process_due_recurring_expenses(date(2024, 1, 14))

    allowance = (2000.0 - 865.0) / 4.3
    assert await automatic_balance(NOW) == pytest.approx(2 * allowance)


async def test_fired_weekly_template_counts_against_fund():
    await _budget()
    await add_recurring_expense(25.0, ExpenseCategory.GROCERY, RecurrenceFrequency.WEEKLY, date(2024, 1, 1))
    await process_due_recurring_expenses(date(2024, 1, 14))

    allowance = (2000.0 - 865.0) / 4.3
    assert await automatic_balance(NOW) == pytest.approx(2 * allowance - 50.0)


async def test_balance_ignores_activity_after_now():
    await add_transaction(100.0, timestamp=datetime(2024, 1, 5))
    await add_transaction(70.0, timestamp=datetime(2024, 1, 20))
    await _spend(20.0, datetime(2024, 1, 9, 19, 0), from_slush=True)
    await _spend(45.0, datetime(2024, 1, 21, 19, 0), from_slush=True)

    assert await manual_balance(until=NOW) == 100.0
    assert await slush_fund_balance(NOW) == pytest.approx(80.0)
    assert await slush_fund_balance(datetime(2024, 1, 31)) == pytest.approx(105.0)
