from decimal import Decimal, InvalidOperation
from typing import Iterable

ZERO = Decimal("0.00")
TWO_DP = Decimal("0.01")


def to_money(value) -> Decimal:
    """Exact Decimal rounded to 2 dp. Floats are refused to keep sums exact."""
    if isinstance(value, float):
        raise TypeError("money amounts must not be floats")
    try:
        return Decimal(value).quantize(TWO_DP)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc


def sum_money(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO).quantize(TWO_DP)


def format_currency(amount: Decimal, currency: str = "SEK") -> str:
    """Display form used by the dashboard, e.g. ``1 092,00 SEK``."""
    grouped = f"{to_money(amount):,.2f}"
    # sv-SE grouping: space for thousands, comma for decimals
    grouped = grouped.replace(",", " ").replace(".", ",")
    return f"{grouped} {currency}"
