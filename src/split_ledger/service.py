"""Service layer that composes storage, caching and the split engine.

This module provides a higher-level API over the database and the pure
calculation functions: it resolves group members into participants, persists
computed splits, and feeds stored records to the balance aggregator.
"""

import logging
from datetime import datetime
from decimal import Decimal

from . import cache as ledger_cache
from .balances import compute_user_balance
from .cache import TTLCache
from .calculator import calculate_splits, from_minor_units, to_minor_units
from .config import Settings
from .db import Database
from .exceptions import (
    ExpenseNotFoundError,
    GroupNotFoundError,
    InvalidSplitInputError,
    NotGroupMemberError,
    SettlementNotFoundError,
    SplitValidationError,
)
from .models import (
    ExpenseSplit,
    Group,
    GroupMember,
    RoundingStrategy,
    Settlement,
    SharedExpense,
    Split,
    SplitOptions,
    SplitType,
    UserBalance,
)
from .validator import validate_splits

logger = logging.getLogger(__name__)


class LedgerService:
    """Service for managing groups, shared expenses and settlements."""

    def __init__(
        self, settings: Settings, database: Database, cache: TTLCache | None = None
    ):
        """Initialize the ledger service."""
        self.settings = settings
        self.db = database
        self.cache = cache or TTLCache(
            ttl=settings.expense_cache_ttl_seconds,
            max_size=settings.cache_max_size,
        )

    # ========================================================================
    # Groups
    # ========================================================================

    def create_group(
        self, name: str, created_by: GroupMember, members: list[GroupMember] | None = None
    ) -> Group:
        """
        Create a group. The creator is added as admin.

        Args:
            name: Group name
            created_by: The member creating the group
            members: Additional members

        Returns:
            The saved group
        """
        creator = created_by.model_copy(update={"role": "admin"})
        all_members = [creator] + [
            m for m in members or [] if m.user_id != creator.user_id
        ]
        group = Group(name=name, created_by=creator.user_id, members=all_members)
        self.db.save_group(group)
        self.cache.invalidate_prefix("userGroups:")

        logger.info(f"Created group '{name}' ({group.id}) with {len(all_members)} members")
        return group

    def get_group(self, group_id: str) -> Group:
        """Get a group, from cache when fresh."""
        key = ledger_cache.group_key(group_id)
        group = self.cache.get(key)
        if group is None:
            group = self.db.get_group(group_id)
            if group is None:
                raise GroupNotFoundError(group_id)
            self.cache.set(key, group, ttl=self.settings.group_cache_ttl_seconds)
        return group

    def get_groups_for_user(self, user_id: str) -> list[Group]:
        """Get the groups a user belongs to."""
        key = ledger_cache.user_groups_key(user_id)
        groups = self.cache.get(key)
        if groups is None:
            groups = self.db.get_groups_for_user(user_id)
            self.cache.set(key, groups, ttl=self.settings.group_cache_ttl_seconds)
        return groups

    def add_member(self, group_id: str, member: GroupMember) -> Group:
        """Add a member to a group."""
        self.get_group(group_id)
        self.db.add_member(group_id, member)
        self._invalidate_group(group_id)

        logger.info(f"Added {member.user_id} to group {group_id}")
        return self.get_group(group_id)

    def remove_member(self, group_id: str, user_id: str) -> Group:
        """Remove a member from a group."""
        group = self.get_group(group_id)
        if not group.has_member(user_id):
            raise NotGroupMemberError(user_id, group_id)
        self.db.remove_member(group_id, user_id)
        self._invalidate_group(group_id)

        logger.info(f"Removed {user_id} from group {group_id}")
        return self.get_group(group_id)

    def leave_group(self, group_id: str, user_id: str):
        """Remove the current user from a group."""
        self.remove_member(group_id, user_id)

    def _invalidate_group(self, group_id: str):
        self.cache.delete(ledger_cache.group_key(group_id))
        self.cache.invalidate_prefix("userGroups:")

    # ========================================================================
    # Expenses
    # ========================================================================

    def add_expense(
        self,
        group_id: str,
        description: str,
        amount: Decimal,
        paid_by: str,
        participant_ids: list[str] | None = None,
        split_type: SplitType = "equal",
        custom_amounts: dict[str, Decimal] | None = None,
        custom_percentages: dict[str, Decimal] | None = None,
        rounding_strategy: RoundingStrategy | None = None,
        category: str | None = None,
        date: datetime | None = None,
    ) -> SharedExpense:
        """
        Split an expense among group members and save it.

        The payer's own split is stored as already paid.

        Args:
            group_id: Group the expense belongs to
            description: What the expense was for
            amount: Total amount paid, rounded half-up to the configured precision
            paid_by: User ID of the payer
            participant_ids: Members sharing the expense (default: all members)
            split_type: ``equal``, ``percentage`` or ``custom``
            custom_amounts: Per-member amounts for ``custom`` splits
            custom_percentages: Per-member percentages for ``percentage`` splits
            rounding_strategy: Override of the configured rounding strategy
            category: Optional category label
            date: Expense date (default: now)

        Returns:
            The saved expense with its splits

        Raises:
            NotGroupMemberError: If the payer or a participant is not a member
            InvalidSplitInputError: If the split cannot be computed
        """
        group = self.get_group(group_id)
        if not group.has_member(paid_by):
            raise NotGroupMemberError(paid_by, group_id)

        if participant_ids is None:
            participant_ids = [m.user_id for m in group.members]
        participants = []
        for user_id in participant_ids:
            member = group.get_member(user_id)
            if member is None:
                raise NotGroupMemberError(user_id, group_id)
            participants.append(member.to_participant())

        # Stored totals are whole minor units so the splits add up to them
        precision = self.settings.default_precision
        amount = from_minor_units(to_minor_units(amount, precision), precision)

        options = SplitOptions(
            total_amount=amount,
            participants=participants,
            split_type=split_type,
            custom_amounts=custom_amounts,
            custom_percentages=custom_percentages,
            precision=precision,
            rounding_strategy=rounding_strategy
            or self.settings.default_rounding_strategy,
        )
        splits = calculate_splits(options)

        expense_date = date or datetime.now()
        expense = SharedExpense(
            group_id=group_id,
            date=expense_date,
            amount=amount,
            description=description,
            paid_by=paid_by,
            category=category,
            splits=self._to_expense_splits(splits, paid_by, expense_date),
        )
        self.save_expense(expense)
        return expense

    def save_expense(self, expense: SharedExpense) -> str:
        """Validate and save an expense whose splits are already computed."""
        if not expense.splits:
            raise InvalidSplitInputError(f"Expense {expense.id} has no splits")
        split_view = [
            Split(user_id=s.user_id, amount=s.amount, percentage=Decimal("0"))
            for s in expense.splits
        ]
        if not validate_splits(
            split_view, expense.amount, precision=self.settings.default_precision
        ):
            raise SplitValidationError(
                f"Splits of expense {expense.id} do not add up to {expense.amount}"
            )

        expense_id = self.db.save_expense(expense)
        self.cache.delete(ledger_cache.group_expenses_key(expense.group_id))

        logger.info(
            f"Saved expense '{expense.description}' ({expense_id}) "
            f"of {expense.amount} split {len(expense.splits)} ways"
        )
        return expense_id

    @staticmethod
    def _to_expense_splits(
        splits: list[Split], paid_by: str, paid_date: datetime
    ) -> list[ExpenseSplit]:
        return [
            ExpenseSplit(
                user_id=split.user_id,
                amount=split.amount,
                is_adjusted=split.is_adjusted,
                is_paid=split.user_id == paid_by,
                paid_date=paid_date if split.user_id == paid_by else None,
            )
            for split in splits
        ]

    def get_group_expenses(self, group_id: str) -> list[SharedExpense]:
        """Get a group's expenses, from cache when fresh."""
        key = ledger_cache.group_expenses_key(group_id)
        expenses = self.cache.get(key)
        if expenses is None:
            expenses = self.db.get_expenses_for_group(group_id)
            self.cache.set(key, expenses, ttl=self.settings.expense_cache_ttl_seconds)
        return expenses

    def delete_expense(self, group_id: str, expense_id: str):
        """Delete an expense and its splits."""
        expense = self.db.get_expense(expense_id)
        if expense is None or expense.group_id != group_id:
            raise ExpenseNotFoundError(expense_id)

        self.db.delete_expense(expense_id)
        self.cache.delete(ledger_cache.group_expenses_key(group_id))

        logger.info(f"Deleted expense {expense_id} from group {group_id}")

    # ========================================================================
    # Settlements
    # ========================================================================

    def record_settlement(
        self,
        group_id: str,
        from_user: str,
        to_user: str,
        amount: Decimal,
        related_expense_ids: list[str] | None = None,
        notes: str | None = None,
        date: datetime | None = None,
    ) -> Settlement:
        """
        Record a payment between two group members.

        The payer's splits on the related expenses are marked as paid.

        Raises:
            NotGroupMemberError: If either party is not a group member
            InvalidSplitInputError: If the amount is not positive or both
                parties are the same user
            ExpenseNotFoundError: If a related expense is not in this group
        """
        group = self.get_group(group_id)
        for user_id in (from_user, to_user):
            if not group.has_member(user_id):
                raise NotGroupMemberError(user_id, group_id)
        if from_user == to_user:
            raise InvalidSplitInputError("A settlement needs two different users")
        if amount <= 0:
            raise InvalidSplitInputError(
                f"Settlement amount must be positive, got {amount}"
            )
        for expense_id in related_expense_ids or []:
            expense = self.db.get_expense(expense_id)
            if expense is None or expense.group_id != group_id:
                raise ExpenseNotFoundError(expense_id)

        settlement = Settlement(
            group_id=group_id,
            from_user=from_user,
            to_user=to_user,
            amount=amount,
            date=date or datetime.now(),
            related_expense_ids=related_expense_ids or [],
            notes=notes,
        )
        self.db.save_settlement(settlement)
        marked = self.db.mark_splits_paid(
            settlement.related_expense_ids, from_user, settlement.date
        )
        self.cache.delete(ledger_cache.group_settlements_key(group_id))
        if marked:
            self.cache.delete(ledger_cache.group_expenses_key(group_id))

        logger.info(
            f"Recorded settlement {settlement.id}: {from_user} -> {to_user} "
            f"{amount} ({marked} split(s) marked paid)"
        )
        return settlement

    def get_group_settlements(self, group_id: str) -> list[Settlement]:
        """Get a group's settlements, from cache when fresh."""
        key = ledger_cache.group_settlements_key(group_id)
        settlements = self.cache.get(key)
        if settlements is None:
            settlements = self.db.get_settlements_for_group(group_id)
            self.cache.set(
                key, settlements, ttl=self.settings.settlement_cache_ttl_seconds
            )
        return settlements

    def delete_settlement(self, group_id: str, settlement_id: str):
        """Delete a settlement."""
        if not any(s.id == settlement_id for s in self.get_group_settlements(group_id)):
            raise SettlementNotFoundError(settlement_id)

        self.db.delete_settlement(settlement_id)
        self.cache.delete(ledger_cache.group_settlements_key(group_id))

        logger.info(f"Deleted settlement {settlement_id} from group {group_id}")

    # ========================================================================
    # Balances
    # ========================================================================

    def get_user_balance(self, user_id: str) -> UserBalance | None:
        """
        Compute a user's balance across all their groups.

        Returns:
            The balance, or None when the user has no activity in any group
        """
        groups = self.get_groups_for_user(user_id)
        expenses: list[SharedExpense] = []
        settlements: list[Settlement] = []
        for group in groups:
            expenses.extend(self.get_group_expenses(group.id))
            settlements.extend(self.get_group_settlements(group.id))

        # Former members stay in the expense history after leaving a group
        return compute_user_balance(
            user_id, expenses, settlements, groups=groups, require_membership=False
        )
