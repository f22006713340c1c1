"""Display aggregates for a split set."""

from collections.abc import Iterable
from decimal import Decimal

from .calculator import as_decimal, to_minor_units
from .models import Split, SplitSummary


def summarize_splits(
    splits: Iterable[Split],
    total: Decimal | int | float | str,
    precision: int = 2,
) -> SplitSummary:
    """Summarize a split set against the total it was meant to cover."""
    split_list = list(splits)
    total_split = sum((split.amount for split in split_list), Decimal("0"))
    difference = as_decimal(total) - total_split

    return SplitSummary(
        total_split=total_split,
        difference=difference,
        adjusted_count=sum(1 for split in split_list if split.is_adjusted),
        is_balanced=to_minor_units(difference, precision) == 0,
    )
