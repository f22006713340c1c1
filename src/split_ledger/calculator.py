"""Core split calculation: partition an amount exactly among participants."""

import logging
from decimal import ROUND_HALF_UP, Decimal

from .exceptions import InvalidSplitInputError
from .models import RoundingStrategy, Split, SplitOptions

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
PERCENTAGE_PLACES = Decimal("0.01")


def as_decimal(value: Decimal | int | float | str) -> Decimal:
    """Coerce a numeric value to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def to_minor_units(amount: Decimal | int | float | str, precision: int) -> int:
    """
    Convert an amount to integer minor units (cents at precision 2).
    Uses ROUND_HALF_UP for consistency.

    Args:
        amount: Amount in major units
        precision: Number of decimal digits of the minor unit

    Returns:
        Amount in minor units (integer)
    """
    scaled = as_decimal(amount).scaleb(precision)
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(units: int, precision: int) -> Decimal:
    """Convert integer minor units back to a Decimal with ``precision`` digits."""
    return Decimal(units).scaleb(-precision)


def _round_robin(units: list[int], adjusted: list[bool], remaining: int, step: int):
    """Hand out whole rounds in participant order, then a final partial round."""
    while remaining:
        # A share already at zero can't give up another unit
        eligible = [i for i, share in enumerate(units) if step > 0 or share > 0]
        rounds = remaining // len(eligible)
        if step < 0:
            rounds = min(rounds, min(units[i] for i in eligible))
        if rounds == 0:
            eligible, rounds = eligible[:remaining], 1

        for i in eligible:
            units[i] += step * rounds
            adjusted[i] = True
        remaining -= rounds * len(eligible)


def _level(units: list[int], adjusted: list[bool], remaining: int, step: int):
    """Lower the highest shares (step -1) or raise the lowest (step +1) by layers."""
    while remaining:
        edge = max(units) if step < 0 else min(units)
        tied = [i for i, share in enumerate(units) if share == edge]
        if step < 0:
            gap = edge - max((share for share in units if share < edge), default=0)
        else:
            upper = min((share for share in units if share > edge), default=None)
            gap = remaining if upper is None else upper - edge
        layers = min(remaining // len(tied), gap)
        if layers == 0:
            tied, layers = tied[:remaining], 1

        for i in tied:
            units[i] += step * layers
            adjusted[i] = True
        remaining -= layers * len(tied)


def distribute_remainder(
    units: list[int], diff: int, strategy: RoundingStrategy = "distribute"
) -> tuple[list[int], list[bool]]:
    """
    Move ``diff`` minor units onto the shares.

    The result is the same as moving one unit at a time:
    - distribute: round-robin from the first participant
    - largest: always the largest share, earliest participant on ties
    - smallest: always the smallest share, earliest participant on ties

    Shares at zero never give up a unit. Whole rounds and layers are applied
    in one step, so the cost does not grow with the size of the residual.

    Args:
        units: Shares in minor units, in participant order
        diff: Signed residual (requested total - current sum)
        strategy: ``distribute`` (round-robin), ``largest`` or ``smallest``

    Returns:
        Tuple of (adjusted shares, per-participant adjusted flags)
    """
    adjusted_units = list(units)
    adjusted = [False] * len(units)
    if diff == 0:
        return adjusted_units, adjusted
    if not units:
        raise InvalidSplitInputError("Cannot distribute a remainder among no one")

    step = 1 if diff > 0 else -1
    remaining = abs(diff)
    if step < 0 and remaining > sum(share for share in units if share > 0):
        raise InvalidSplitInputError("No share left to absorb the rounding residual")

    if strategy == "largest" and step > 0:
        idx = max(range(len(units)), key=lambda i: (units[i], -i))
        adjusted_units[idx] += remaining
        adjusted[idx] = True
    elif strategy == "smallest" and step < 0:
        for idx in sorted(
            (i for i, share in enumerate(units) if share > 0),
            key=lambda i: (units[i], i),
        ):
            taken = min(remaining, adjusted_units[idx])
            adjusted_units[idx] -= taken
            adjusted[idx] = True
            remaining -= taken
            if not remaining:
                break
    elif strategy in ("largest", "smallest"):
        _level(adjusted_units, adjusted, remaining, step)
    else:
        _round_robin(adjusted_units, adjusted, remaining, step)

    logger.debug(
        f"Distributed {diff:+d} minor units using '{strategy}' "
        f"across {sum(adjusted)} participant(s)"
    )

    return adjusted_units, adjusted


def _validate_options(options: SplitOptions, total_units: int):
    """Refuse inputs no split can be computed for."""
    if options.total_amount <= 0:
        raise InvalidSplitInputError(
            f"Total amount must be positive, got {options.total_amount}"
        )
    if total_units <= 0:
        raise InvalidSplitInputError(
            f"Total amount {options.total_amount} rounds to zero "
            f"at precision {options.precision}"
        )
    if not options.participants:
        raise InvalidSplitInputError("At least one participant is required")

    user_ids = [p.user_id for p in options.participants]
    if len(set(user_ids)) != len(user_ids):
        raise InvalidSplitInputError(f"Duplicate participant IDs in {user_ids}")

    if options.split_type == "percentage":
        for user_id, pct in (options.custom_percentages or {}).items():
            if pct < 0 or pct > HUNDRED:
                raise InvalidSplitInputError(
                    f"Percentage for {user_id} must be between 0 and 100, got {pct}"
                )
    elif options.split_type == "custom":
        for user_id, amount in (options.custom_amounts or {}).items():
            if amount < 0:
                raise InvalidSplitInputError(
                    f"Custom amount for {user_id} must not be negative, got {amount}"
                )


def _initial_units(options: SplitOptions, total_units: int) -> list[int]:
    """Compute each participant's share before remainder distribution."""
    user_ids = [p.user_id for p in options.participants]

    if options.split_type == "equal":
        share = total_units // len(user_ids)
        return [share] * len(user_ids)

    if options.split_type == "percentage":
        percentages = options.custom_percentages or {}
        _warn_unknown_keys(percentages, user_ids, "percentage")
        return [
            to_minor_units(
                options.total_amount * percentages.get(user_id, Decimal("0")) / HUNDRED,
                options.precision,
            )
            for user_id in user_ids
        ]

    amounts = options.custom_amounts or {}
    _warn_unknown_keys(amounts, user_ids, "custom amount")
    return [
        to_minor_units(amounts.get(user_id, Decimal("0")), options.precision)
        for user_id in user_ids
    ]


def _warn_unknown_keys(values: dict[str, Decimal], user_ids: list[str], label: str):
    for user_id in values:
        if user_id not in user_ids:
            logger.warning(f"Ignoring {label} for non-participant {user_id}")


def calculate_splits(options: SplitOptions) -> list[Split]:
    """
    Split an amount among participants so the shares add up exactly.

    Each share is computed in minor units at ``options.precision``; the
    residual against the requested total (floor leftovers for equal splits,
    rounding drift for percentages, caller mismatch for custom amounts) is
    then moved onto the shares by :func:`distribute_remainder`.

    Args:
        options: Amount, ordered participants, strategy and rounding policy

    Returns:
        One Split per participant, in participant order

    Raises:
        InvalidSplitInputError: If the total is not positive, there are no
            participants, or the per-participant inputs are out of range
    """
    total_units = to_minor_units(options.total_amount, options.precision)
    _validate_options(options, total_units)

    units = _initial_units(options, total_units)
    residual = total_units - sum(units)
    units, adjusted = distribute_remainder(units, residual, options.rounding_strategy)

    # Final verification
    assert sum(units) == total_units, "Remainder distribution failed"

    splits = [
        Split(
            user_id=participant.user_id,
            amount=from_minor_units(share, options.precision),
            percentage=(Decimal(share) * HUNDRED / Decimal(total_units)).quantize(
                PERCENTAGE_PLACES, rounding=ROUND_HALF_UP
            ),
            is_adjusted=was_adjusted,
        )
        for participant, share, was_adjusted in zip(
            options.participants, units, adjusted, strict=True
        )
    ]

    if residual:
        logger.info(
            f"Applied rounding adjustment of {residual:+d} minor units "
            f"to a {options.split_type} split of {options.total_amount}"
        )

    return splits
