from __future__ import annotations

import calendar
from collections.abc import Iterable
from datetime import date, timedelta
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from slush.db.models import RecurringExpense


class RecurrenceFrequency(Enum):
    WEEKLY = "Weekly"
    BI_WEEKLY = "Bi-weekly"
    MONTHLY = "Monthly"
    ANNUALLY = "Annually"

    @property
    def display_name(self) -> str:
        return self.value

    @classmethod
    def from_display_name(cls, name: str) -> RecurrenceFrequency | None:
        normalized = name.strip().lower()
        for frequency in cls:
            if frequency.value.lower() == normalized:
                return frequency
        return None


# Listing order, not period length.
FREQUENCY_RANK: dict[RecurrenceFrequency, int] = {
    RecurrenceFrequency.MONTHLY: 0,
    RecurrenceFrequency.WEEKLY: 1,
    RecurrenceFrequency.BI_WEEKLY: 2,
    RecurrenceFrequency.ANNUALLY: 3,
}


def _add_months(d: date, months: int) -> date:
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def next_occurrence(current_due_date: date, frequency: RecurrenceFrequency) -> date:
    """Return the due date that follows ``current_due_date``.

    Month and year steps keep the day of month and clamp to the last day of a
    shorter target month, so Jan 31 -> Feb 29 (leap) and Feb 29 -> Feb 28.
    """
    match frequency:
        case RecurrenceFrequency.WEEKLY:
            return current_due_date + timedelta(days=7)
        case RecurrenceFrequency.BI_WEEKLY:
            return current_due_date + timedelta(days=14)
        case RecurrenceFrequency.MONTHLY:
            return _add_months(current_due_date, 1)
        case RecurrenceFrequency.ANNUALLY:
            return _add_months(current_due_date, 12)
    raise ValueError(f"Unknown frequency: {frequency!r}")


def is_due(template: RecurringExpense, as_of: date) -> bool:
    return template.is_active and template.next_due_date <= as_of


def due_templates(templates: Iterable[RecurringExpense], as_of: date) -> list[RecurringExpense]:
    due = [t for t in templates if is_due(t, as_of)]
    return sorted(due, key=lambda t: t.next_due_date)


def total_by_frequency(templates: Iterable[RecurringExpense], frequency: RecurrenceFrequency) -> float:
    return sum((t.amount for t in templates if t.is_active and t.frequency is frequency), 0.0)


def sort_templates(templates: Iterable[RecurringExpense]) -> list[RecurringExpense]:
    return sorted(templates, key=lambda t: (FREQUENCY_RANK[t.frequency], t.next_due_date))
