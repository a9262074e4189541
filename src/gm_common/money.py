"""Integer money utilities.

All prices, amounts and balances are int in the smallest currency unit (RUB).
No float, no Decimal.
"""


def validate_price(price: int) -> None:
    """Listing prices are non-negative integers."""
    if price < 0:
        raise ValueError(f"Price must be >= 0, got {price}")


def amount_to_display(amount: int) -> str:
    """Group thousands with spaces: 1500 -> '1 500 ₽', -1200 -> '-1 200 ₽'."""
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(amount):,}".replace(",", " ")
    return f"{sign}{grouped} ₽"
