from dataclasses import replace
from datetime import date

from slush.categories import ExpenseCategory
from slush.db.models import RecurringExpense
from slush.recurrence import (
    RecurrenceFrequency,
    due_templates,
    next_occurrence,
    sort_templates,
    total_by_frequency,
)


def _template(**overrides) -> RecurringExpense:
    defaults = dict(
        id=1,
        amount=50.0,
        category=ExpenseCategory.SUBSCRIPTION,
        frequency=RecurrenceFrequency.MONTHLY,
        start_date=date(2024, 1, 1),
        next_due_date=date(2024, 1, 1),
    )
    defaults.update(overrides)
    return RecurringExpense(**defaults)


def test_weekly_and_biweekly():
    assert next_occurrence(date(2024, 1, 8), RecurrenceFrequency.WEEKLY) == date(2024, 1, 15)
    assert next_occurrence(date(2024, 1, 8), RecurrenceFrequency.BI_WEEKLY) == date(2024, 1, 22)
    assert next_occurrence(date(2024, 12, 28), RecurrenceFrequency.WEEKLY) == date(2025, 1, 4)


def test_four_weeks_equals_two_biweeks_in_days():
    start = date(2024, 3, 5)
    weekly = start
    for _ in range(4):
        weekly = next_occurrence(weekly, RecurrenceFrequency.WEEKLY)
    biweekly = next_occurrence(next_occurrence(start, RecurrenceFrequency.BI_WEEKLY), RecurrenceFrequency.BI_WEEKLY)
    assert (weekly - start).days == (biweekly - start).days == 28


def test_monthly_clamps_to_month_end():
    assert next_occurrence(date(2024, 1, 31), RecurrenceFrequency.MONTHLY) == date(2024, 2, 29)
    assert next_occurrence(date(2024, 1, 30), RecurrenceFrequency.MONTHLY) == date(2024, 2, 29)
    assert next_occurrence(date(2023, 1, 30), RecurrenceFrequency.MONTHLY) == date(2023, 2, 28)
    assert next_occurrence(date(2024, 3, 31), RecurrenceFrequency.MONTHLY) == date(2024, 4, 30)


def test_monthly_preserves_day_and_rolls_year():
    assert next_occurrence(date(2024, 1, 15), RecurrenceFrequency.MONTHLY) == date(2024, 2, 15)
    assert next_occurrence(date(2024, 12, 15), RecurrenceFrequency.MONTHLY) == date(2025, 1, 15)


def test_annually_leap_day_clamps():
    assert next_occurrence(date(2024, 2, 29), RecurrenceFrequency.ANNUALLY) == date(2025, 2, 28)
    assert next_occurrence(date(2023, 6, 10), RecurrenceFrequency.ANNUALLY) == date(2024, 6, 10)


def test_due_templates_excludes_paused():
    active = _template(id=1, next_due_date=date(2024, 1, 1))
    paused = replace(active, id=2, is_active=False)
    assert due_templates([active, paused], date(2024, 2, 1)) == [active]


def test_due_templates_includes_today_and_orders_by_due_date():
    later = _template(id=1, next_due_date=date(2024, 1, 10))
    earlier = _template(id=2, next_due_date=date(2024, 1, 3))
    future = _template(id=3, next_due_date=date(2024, 1, 11))
    assert due_templates([later, future, earlier], date(2024, 1, 10)) == [earlier, later]


def test_total_by_frequency_skips_paused_and_other_frequencies():
    templates = [
        _template(id=1, amount=800.0),
        _template(id=2, amount=15.0),
        _template(id=3, amount=50.0),
        _template(id=4, amount=99.0, is_active=False),
        _template(id=5, amount=20.0, frequency=RecurrenceFrequency.WEEKLY),
    ]
    assert total_by_frequency(templates, RecurrenceFrequency.MONTHLY) == 865.0
    assert total_by_frequency(templates, RecurrenceFrequency.WEEKLY) == 20.0
    assert total_by_frequency([], RecurrenceFrequency.ANNUALLY) == 0.0


def test_sort_by_frequency_rank():
    templates = [
        _template(id=1, frequency=RecurrenceFrequency.ANNUALLY, next_due_date=date(2024, 1, 2)),
        _template(id=2, frequency=RecurrenceFrequency.WEEKLY, next_due_date=date(2024, 3, 1)),
        _template(id=3, frequency=RecurrenceFrequency.MONTHLY, next_due_date=date(2024, 9, 1)),
        _template(id=4, frequency=RecurrenceFrequency.BI_WEEKLY, next_due_date=date(2024, 1, 1)),
    ]
    ordered = [t.frequency for t in sort_templates(templates)]
    assert ordered == [
        RecurrenceFrequency.MONTHLY,
        RecurrenceFrequency.WEEKLY,
        RecurrenceFrequency.BI_WEEKLY,
        RecurrenceFrequency.ANNUALLY,
    ]


def test_sort_same_frequency_by_due_date():
    a = _template(id=1, frequency=RecurrenceFrequency.WEEKLY, next_due_date=date(2024, 1, 15))
    b = _template(id=2, frequency=RecurrenceFrequency.WEEKLY, next_due_date=date(2024, 1, 8))
    assert [t.id for t in sort_templates([a, b])] == [2, 1]


def test_following_due_date_does_not_mutate():
    t = _template(next_due_date=date(2024, 1, 31))
    assert t.following_due_date() == date(2024, 2, 29)
    assert t.next_due_date == date(2024, 1, 31)


def test_frequency_display_names():
    assert RecurrenceFrequency.BI_WEEKLY.display_name == "Bi-weekly"
    assert RecurrenceFrequency.from_display_name("bi-WEEKLY") is RecurrenceFrequency.BI_WEEKLY
    assert RecurrenceFrequency.from_display_name("daily") is None
