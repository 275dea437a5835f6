class InvalidAmountError(ValueError):
    def __init__(self, field: str, amount: float, rule: str = "positive") -> None:
        self.field = field
        self.amount = amount
        super().__init__(f"{field} must be {rule}, got {amount!r}.")


def require_positive(field: str, amount: float) -> float:
    if amount is None or amount <= 0:
        raise InvalidAmountError(field, amount)
    return float(amount)


def require_nonzero(field: str, amount: float) -> float:
    if amount is None or amount == 0:
        raise InvalidAmountError(field, amount, rule="non-zero")
    return float(amount)
