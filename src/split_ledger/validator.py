"""Consistency checks for computed split sets."""

import logging
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation

from .calculator import to_minor_units
from .models import Split

logger = logging.getLogger(__name__)

# One minor unit of slack absorbs a caller rounding the input total itself
TOLERANCE_UNITS = 1


def validate_splits(
    splits: Iterable[Split],
    total: Decimal | int | float | str,
    precision: int = 2,
    allow_negative: bool = False,
) -> bool:
    """
    Check that a split set adds up to the total.

    This is a pure predicate: it never raises and never mutates the splits.

    Args:
        splits: Split set to check
        total: Requested total amount
        precision: Number of decimal digits of the minor unit
        allow_negative: Accept negative shares

    Returns:
        True if the shares sum to the total within one minor unit
    """
    try:
        split_list = list(splits)
        total_units = to_minor_units(total, precision)
        split_units = [to_minor_units(split.amount, precision) for split in split_list]
    except (InvalidOperation, TypeError, ValueError) as e:
        logger.debug(f"Split set is not numerically valid: {e}")
        return False

    if not allow_negative and any(units < 0 for units in split_units):
        return False

    residual = abs(total_units - sum(split_units))
    if residual > TOLERANCE_UNITS:
        logger.debug(f"Split set is off by {residual} minor units")
        return False

    return True
