"""Aggregate stored expenses and settlements into per-group user balances.

The records handed in are a snapshot fetched from storage with no
transactional guarantee: they may be partially populated, duplicated, or
reflect different points in time for different groups. Bad records are
skipped and logged; everything else is still aggregated.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from decimal import Decimal
from typing import Any, TypeVar

from pydantic import ValidationError

from .exceptions import MalformedRecordError
from .models import Group, GroupBalance, Settlement, SharedExpense, UserBalance

logger = logging.getLogger(__name__)

ExpenseRecord = SharedExpense | Mapping[str, Any]
SettlementRecord = Settlement | Mapping[str, Any]
RecordT = TypeVar("RecordT", SharedExpense, Settlement)


def _record_id(record: Any) -> str | None:
    if isinstance(record, Mapping):
        value = record.get("id")
        return str(value) if value is not None else None
    return getattr(record, "id", None)


def _parse_expense(record: ExpenseRecord) -> SharedExpense:
    """Validate a raw or model expense record."""
    if isinstance(record, SharedExpense):
        expense = record
    else:
        try:
            expense = SharedExpense.model_validate(record)
        except ValidationError as e:
            raise MalformedRecordError(
                _record_id(record), f"{e.error_count()} invalid field(s)"
            ) from e

    if expense.amount <= 0:
        raise MalformedRecordError(expense.id, f"non-positive amount {expense.amount}")
    if not expense.paid_by:
        raise MalformedRecordError(expense.id, "missing payer")
    for split in expense.splits:
        if not split.user_id:
            raise MalformedRecordError(expense.id, "split without participant")
    return expense


def _parse_settlement(record: SettlementRecord) -> Settlement:
    """Validate a raw or model settlement record."""
    if isinstance(record, Settlement):
        settlement = record
    else:
        try:
            settlement = Settlement.model_validate(record)
        except ValidationError as e:
            raise MalformedRecordError(
                _record_id(record), f"{e.error_count()} invalid field(s)"
            ) from e

    if settlement.amount <= 0:
        raise MalformedRecordError(
            settlement.id, f"non-positive amount {settlement.amount}"
        )
    if not settlement.from_user or not settlement.to_user:
        raise MalformedRecordError(settlement.id, "missing payer or payee")
    if settlement.from_user == settlement.to_user:
        raise MalformedRecordError(settlement.id, "payer and payee are the same user")
    return settlement


def _check_members(record_id: str, group: Group | None, user_ids: Iterable[str]):
    """Reject records naming people outside the group."""
    if group is None:
        return
    for user_id in user_ids:
        if not group.has_member(user_id):
            raise MalformedRecordError(record_id, f"unknown participant {user_id}")


def _expense_fingerprint(expense: SharedExpense) -> tuple:
    """The fields of an expense that affect balances."""
    return (
        expense.group_id,
        expense.amount,
        expense.paid_by,
        tuple((split.user_id, split.amount) for split in expense.splits),
    )


def _settlement_fingerprint(settlement: Settlement) -> tuple:
    """The fields of a settlement that affect balances."""
    return (
        settlement.group_id,
        settlement.from_user,
        settlement.to_user,
        settlement.amount,
    )


def _unique_by_id(
    records: list[RecordT], fingerprint: Callable[[RecordT], tuple], kind: str
) -> tuple[list[RecordT], int]:
    """
    Collapse records sharing an ID.

    Identical copies count once. Copies that disagree are all dropped, since
    there is no telling which one is right.

    Returns:
        Tuple of (unique records, number of IDs dropped as conflicting)
    """
    by_id: dict[str, list[RecordT]] = {}
    for record in records:
        by_id.setdefault(record.id, []).append(record)

    unique = []
    conflicts = 0
    for record_id, copies in by_id.items():
        first = fingerprint(copies[0])
        if any(fingerprint(copy) != first for copy in copies[1:]):
            error = MalformedRecordError(record_id, f"{len(copies)} conflicting copies")
            logger.warning(f"Skipping {kind}: {error}")
            conflicts += 1
            continue
        if len(copies) > 1:
            logger.debug(f"Counting duplicate {kind} {record_id} once")
        unique.append(copies[0])
    return unique, conflicts


def _index_groups(
    groups: Iterable[Group] | Mapping[str, Group] | None, user_id: str
) -> dict[str, Group] | None:
    """Index the groups the user belongs to, or None when groups are unknown."""
    if groups is None:
        return None
    values = groups.values() if isinstance(groups, Mapping) else groups
    return {group.id: group for group in values if group.has_member(user_id)}


def compute_user_balance(
    user_id: str,
    expenses: Iterable[ExpenseRecord],
    settlements: Iterable[SettlementRecord],
    groups: Iterable[Group] | Mapping[str, Group] | None = None,
    require_membership: bool = True,
) -> UserBalance | None:
    """
    Compute how much a user has paid and owes, per group and overall.

    Per group:
    - paid: full amount of every expense the user paid for
    - owed: the user's own split share of every expense
    - a settlement from the user reduces owed, one to the user reduces paid
    - net = paid - owed (positive means the user is owed money)

    Args:
        user_id: The user to compute the balance for
        expenses: Shared expense records (models or raw mappings)
        settlements: Settlement records (models or raw mappings)
        groups: Optional groups; when given, only groups the user belongs to
            are counted
        require_membership: With groups given, treat records naming
            non-members as malformed

    Returns:
        The user's balance, or None when no record involves the user
    """
    user_groups = _index_groups(groups, user_id)
    balances: dict[str, GroupBalance] = {}

    def balance_for(group_id: str) -> GroupBalance:
        if group_id not in balances:
            group = user_groups.get(group_id) if user_groups is not None else None
            balances[group_id] = GroupBalance(
                group_id=group_id,
                group_name=group.name if group else group_id,
            )
        return balances[group_id]

    def members_of(group_id: str) -> Group | None:
        if not require_membership or not user_groups:
            return None
        return user_groups.get(group_id)

    parsed_expenses = []
    skipped = 0
    for record in expenses:
        try:
            parsed_expenses.append(_parse_expense(record))
        except MalformedRecordError as e:
            logger.warning(f"Skipping expense: {e}")
            skipped += 1

    unique_expenses, conflicts = _unique_by_id(
        parsed_expenses, _expense_fingerprint, "expense"
    )
    skipped += conflicts
    for expense in unique_expenses:
        if user_groups is not None and expense.group_id not in user_groups:
            continue
        try:
            _check_members(
                expense.id,
                members_of(expense.group_id),
                [expense.paid_by, *(split.user_id for split in expense.splits)],
            )
        except MalformedRecordError as e:
            logger.warning(f"Skipping expense: {e}")
            skipped += 1
            continue

        share = expense.get_split(user_id)
        is_payer = expense.paid_by == user_id
        if not is_payer and share is None:
            continue

        balance = balance_for(expense.group_id)
        if is_payer:
            balance.paid += expense.amount
        if share is not None:
            balance.owed += share.amount

    parsed_settlements = []
    for record in settlements:
        try:
            parsed_settlements.append(_parse_settlement(record))
        except MalformedRecordError as e:
            logger.warning(f"Skipping settlement: {e}")
            skipped += 1

    unique_settlements, conflicts = _unique_by_id(
        parsed_settlements, _settlement_fingerprint, "settlement"
    )
    skipped += conflicts
    for settlement in unique_settlements:
        if user_groups is not None and settlement.group_id not in user_groups:
            continue
        try:
            _check_members(
                settlement.id,
                members_of(settlement.group_id),
                [settlement.from_user, settlement.to_user],
            )
        except MalformedRecordError as e:
            logger.warning(f"Skipping settlement: {e}")
            skipped += 1
            continue

        if settlement.from_user == user_id:
            balance_for(settlement.group_id).owed -= settlement.amount
        elif settlement.to_user == user_id:
            balance_for(settlement.group_id).paid -= settlement.amount

    if skipped:
        logger.info(f"Skipped {skipped} malformed record(s) for user {user_id}")

    if not balances:
        logger.debug(f"No balance data for user {user_id}")
        return None

    for balance in balances.values():
        balance.net = balance.paid - balance.owed

    total_paid = sum((b.paid for b in balances.values()), Decimal("0"))
    total_owed = sum((b.owed for b in balances.values()), Decimal("0"))

    return UserBalance(
        user_id=user_id,
        total_owed=total_owed,
        total_paid=total_paid,
        net_balance=total_paid - total_owed,
        group_balances=dict(sorted(balances.items())),
    )
