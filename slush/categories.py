from enum import Enum


class ExpenseCategory(Enum):
    RENT = "Rent"
    SUBSCRIPTION = "Subscription"
    GROCERY = "Grocery"
    MEDICAL = "Medical"
    NECESSITY = "Necessity"
    ENTERTAINMENT = "Entertainment"
    DINING = "Dining"
    TRAVEL = "Travel"
    NON_NECESSITY_GOODS = "Non-necessity Goods"
    OTHER = "Other"

    @property
    def display_name(self) -> str:
        return self.value

    @classmethod
    def from_display_name(cls, name: str) -> "ExpenseCategory":
        """Match a display name case-insensitively. Unknown names fall under OTHER."""
        normalized = name.strip().lower()
        for category in cls:
            if category.value.lower() == normalized:
                return category
        return cls.OTHER


def get_display_names() -> list[str]:
    return [c.display_name for c in ExpenseCategory]


def category_display_name(category: ExpenseCategory, custom_name: str | None = None) -> str:
    if category is ExpenseCategory.OTHER and custom_name and custom_name.strip():
        return custom_name
    return category.display_name
