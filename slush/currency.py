from slush.config import settings


def format_amount(amount: float, symbol: str | None = None) -> str:
    sym = settings.currency_symbol if symbol is None else symbol
    sign = "-" if amount < 0 else ""
    return f"{sign}{sym}{abs(amount):,.2f}"
