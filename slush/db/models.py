from dataclasses import dataclass
from datetime import date, datetime

from slush.categories import ExpenseCategory, category_display_name
from slush.recurrence import RecurrenceFrequency, next_occurrence


@dataclass(frozen=True, slots=True)
class Budget:
    id: int | None
    monthly_amount: float
    start_date: date


@dataclass(frozen=True, slots=True)
class Expense:
    id: int | None
    amount: float
    category: ExpenseCategory
    timestamp: datetime
    category_custom_name: str | None = None
    description: str | None = None
    is_from_slush_fund: bool = False
    is_recurring: bool = False
    recurring_expense_id: int | None = None

    @property
    def category_display_name(self) -> str:
        return category_display_name(self.category, self.category_custom_name)


@dataclass(frozen=True, slots=True)
class RecurringExpense:
    id: int | None
    amount: float
    category: ExpenseCategory
    frequency: RecurrenceFrequency
    start_date: date
    next_due_date: date
    is_active: bool = True
    description: str | None = None
    category_custom_name: str | None = None

    @property
    def category_display_name(self) -> str:
        return category_display_name(self.category, self.category_custom_name)

    def following_due_date(self) -> date:
        return next_occurrence(self.next_due_date, self.frequency)


@dataclass(frozen=True, slots=True)
class SlushFundTransaction:
    id: int | None
    amount: float
    timestamp: datetime
    description: str | None = None
