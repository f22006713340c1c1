"""Tests for display formatting."""

from decimal import Decimal

from split_ledger.calculator import calculate_splits
from split_ledger.format import (
    format_currency,
    format_currency_with_precision,
    format_money,
    format_percentage,
)
from split_ledger.models import Participant, SplitOptions


class TestFormatCurrency:
    def test_default_currency(self):
        assert format_currency(Decimal("3.34")) == "₹3.34"

    def test_thousands_separator(self):
        assert format_currency(Decimal("1234567.5"), currency="USD") == "$1,234,567.50"

    def test_negative(self):
        assert format_currency(Decimal("-12"), currency="EUR") == "-€12.00"

    def test_unknown_currency_uses_code(self):
        assert format_currency(Decimal("5"), currency="chf") == "CHF 5.00"

    def test_precision(self):
        assert format_currency_with_precision(Decimal("0.335"), 3, "USD") == "$0.335"
        assert format_currency_with_precision(Decimal("1500"), 0, "JPY") == "¥1,500"

    def test_round_trips_split_output(self):
        """Formatting never changes the calculated amounts."""
        options = SplitOptions(
            total_amount=Decimal("10.00"),
            participants=[Participant(user_id=f"u{i}", name=f"U{i}") for i in range(3)],
        )

        for split in calculate_splits(options):
            text = format_currency_with_precision(split.amount, 2, "USD")
            assert Decimal(text.lstrip("$").replace(",", "")) == split.amount


class TestFormatPercentage:
    def test_two_places(self):
        assert format_percentage(Decimal("33.333")) == "33.33%"

    def test_custom_places(self):
        assert format_percentage(Decimal("12.5"), decimal_places=0) == "13%"


class TestFormatMoney:
    def test_positive_aligned(self):
        assert format_money(Decimal("85.02"), use_color=False, currency="USD") == " $85.02 "

    def test_negative_parentheses(self):
        assert format_money(Decimal("-85.02"), use_color=False, currency="USD") == "($85.02)"

    def test_colored(self):
        assert format_money(Decimal("-1"), currency="USD") == "($[red]1.00[/red])"
        assert format_money(Decimal("1"), currency="USD") == " [green]$1.00[/green] "
