"""Display formatting for amounts and percentages.

These helpers only render values: they never change the numeric result of a
split beyond quantizing it to the requested number of digits.
"""

from decimal import ROUND_HALF_UP, Decimal

from .calculator import as_decimal

CURRENCY_SYMBOLS = {
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}


def currency_symbol(currency: str) -> str:
    """Get the display symbol for a currency code, or the code itself."""
    return CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")


def _quantize(amount: Decimal, precision: int) -> Decimal:
    return amount.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP)


def format_currency_with_precision(
    amount: Decimal | int | float | str, precision: int = 2, currency: str = "INR"
) -> str:
    """
    Format an amount as currency with a fixed number of decimal digits.

    Examples:
        Decimal("3.34") -> "₹3.34"
        Decimal("-1234.5") with currency "USD" -> "-$1,234.50"
    """
    value = _quantize(as_decimal(amount), precision)
    sign = "-" if value < 0 else ""
    return f"{sign}{currency_symbol(currency)}{abs(value):,.{precision}f}"


def format_currency(amount: Decimal | int | float | str, currency: str = "INR") -> str:
    """Format an amount as currency with two decimal digits."""
    return format_currency_with_precision(amount, precision=2, currency=currency)


def format_percentage(value: Decimal | int | float | str, decimal_places: int = 2) -> str:
    """Format a percentage, e.g. 33.333 -> "33.33%"."""
    return f"{_quantize(as_decimal(value), decimal_places):.{decimal_places}f}%"


def format_money(
    amount: Decimal | int | float | str,
    use_color: bool = True,
    precision: int = 2,
    currency: str = "INR",
) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: (₹85.02)
    Positive amounts have spaces:      ₹85.02
    The spaces ensure decimal points align in tables.
    """
    value = _quantize(as_decimal(amount), precision)
    symbol = currency_symbol(currency)
    digits = f"{abs(value):,.{precision}f}"
    if value < 0:
        if use_color:
            return f"({symbol}[red]{digits}[/red])"
        return f"({symbol}{digits})"
    if use_color:
        return f" [green]{symbol}{digits}[/green] "
    return f" {symbol}{digits} "
