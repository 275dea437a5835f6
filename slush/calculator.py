"""Weekly allowance and slush-fund arithmetic.

All functions are pure. Negative results are valid outputs: a negative
allowance means the recurring commitments already exceed the monthly budget.
No currency rounding happens here.
"""

from dataclasses import dataclass

# Approximate weeks per month; kept at exactly 4.3 for compatibility with stored history.
WEEKS_PER_MONTH = 4.3


@dataclass(frozen=True, slots=True)
class AnnualPayment:
    drawn_from_slush_fund: float
    remainder: float
    new_slush_fund_balance: float


def compute_weekly_allowance(monthly_amount: float, monthly_recurring_total: float) -> float:
    available = monthly_amount - monthly_recurring_total
    return available / WEEKS_PER_MONTH


def compute_week_delta(weekly_allowance: float, spent_excluding_slush_fund: float) -> float:
    """Positive delta goes into the slush fund, negative comes out of it."""
    return weekly_allowance - spent_excluding_slush_fund


def pay_annual_expense_from_slush_fund(expense_amount: float, slush_fund_balance: float) -> AnnualPayment:
    # A balance at or below zero is never drawn further negative.
    drawn = min(expense_amount, slush_fund_balance) if slush_fund_balance > 0 else 0.0
    drawn = max(drawn, 0.0)
    return AnnualPayment(
        drawn_from_slush_fund=drawn,
        remainder=expense_amount - drawn,
        new_slush_fund_balance=slush_fund_balance - drawn,
    )
