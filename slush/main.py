import asyncio
import logging
from datetime import datetime

from slush.config import settings
from slush.currency import format_amount
from slush.db.database import close_db, init_db
from slush.logging import setup_logging
from slush.services.budget_service import week_summary
from slush.services.recurring_service import get_annual_recurring_expenses, process_due_recurring_expenses
from slush.services.slush_fund_service import slush_fund_balance
from slush.weeks import local_now

logger = logging.getLogger(__name__)


async def run_daily(now: datetime | None = None) -> dict:
    """Fire due recurring expenses and report where the current week stands."""
    now = now or local_now()
    fired = await process_due_recurring_expenses(now.date())
    report: dict = {"fired": len(fired), "annual_due": [], "week": None}

    for template in await get_annual_recurring_expenses():
        if template.next_due_date <= now.date():
            report["annual_due"].append(template.id)
            logger.info(
                "Annual expense due %s: %s",
                template.next_due_date,
                format_amount(template.amount),
                extra={"template_id": template.id},
            )

    summary = await week_summary(0, now)
    if summary is None:
        logger.warning("No budget configured; weekly allowance unavailable")
        return report

    report["week"] = summary
    report["slush_fund"] = await slush_fund_balance(now)
    logger.info(
        "Week of %s: spent %s of %s (%s %s)",
        summary.start.date(),
        format_amount(summary.spent),
        format_amount(summary.allowance),
        "over by" if summary.over_budget else "under by",
        format_amount(abs(summary.delta)),
        extra={"week_offset": 0},
    )
    return report


async def main():
    await init_db()
    logger.info("Starting slush daily run")
    try:
        await run_daily()
    finally:
        await close_db()
        logger.info("Shutdown complete")


def run() -> None:
    setup_logging(level=logging.DEBUG if settings.debug else logging.INFO)
    asyncio.run(main())


if __name__ == "__main__":
    run()
