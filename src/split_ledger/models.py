"""Pydantic domain models for split-ledger."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SplitType = Literal["equal", "percentage", "custom"]
RoundingStrategy = Literal["distribute", "largest", "smallest"]


def new_id() -> str:
    """Generate a new opaque record identifier."""
    return uuid.uuid4().hex


# ============================================================================
# Split Models
# ============================================================================


class Participant(BaseModel):
    """A person taking part in a split."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    name: str
    email: str | None = None


class SplitOptions(BaseModel):
    """Everything needed to split one amount among participants.

    Participant order is significant: it decides who absorbs leftover minor
    units first under the ``distribute`` strategy and breaks ties under
    ``largest`` / ``smallest``.
    """

    total_amount: Decimal
    participants: list[Participant]
    split_type: SplitType = "equal"
    custom_amounts: dict[str, Decimal] | None = None
    custom_percentages: dict[str, Decimal] | None = None
    precision: int = Field(default=2, ge=0, le=6)
    rounding_strategy: RoundingStrategy = "distribute"


class Split(BaseModel):
    """One participant's share of a split amount."""

    user_id: str
    amount: Decimal
    percentage: Decimal  # display only
    is_adjusted: bool = False  # absorbed part of the rounding remainder


class SplitSummary(BaseModel):
    """Aggregate facts about a split set."""

    total_split: Decimal
    difference: Decimal  # requested total - total_split
    adjusted_count: int
    is_balanced: bool


# ============================================================================
# Ledger Models
# ============================================================================


class GroupMember(BaseModel):
    """A member of an expense-sharing group."""

    user_id: str
    name: str
    email: str | None = None
    role: Literal["admin", "member"] = "member"
    joined_at: datetime = Field(default_factory=datetime.now)

    def to_participant(self) -> Participant:
        """Convert to a split participant."""
        return Participant(user_id=self.user_id, name=self.name, email=self.email)


class Group(BaseModel):
    """An expense-sharing group."""

    id: str = Field(default_factory=new_id)
    name: str
    created_by: str
    created_at: datetime = Field(default_factory=datetime.now)
    members: list[GroupMember] = Field(default_factory=list)

    def has_member(self, user_id: str) -> bool:
        """Check whether a user belongs to this group."""
        return any(member.user_id == user_id for member in self.members)

    def get_member(self, user_id: str) -> GroupMember | None:
        """Get a member by user ID."""
        for member in self.members:
            if member.user_id == user_id:
                return member
        return None


class ExpenseSplit(BaseModel):
    """A persisted share of a shared expense."""

    user_id: str
    amount: Decimal
    is_adjusted: bool = False
    is_paid: bool = False
    paid_date: datetime | None = None


class SharedExpense(BaseModel):
    """An expense paid by one member and shared by several."""

    id: str = Field(default_factory=new_id)
    group_id: str
    date: datetime = Field(default_factory=datetime.now)
    amount: Decimal
    description: str
    paid_by: str
    category: str | None = None
    splits: list[ExpenseSplit] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)

    def get_split(self, user_id: str) -> ExpenseSplit | None:
        """Get a user's split, if they take part in this expense."""
        for split in self.splits:
            if split.user_id == user_id:
                return split
        return None


class Settlement(BaseModel):
    """A payment from one group member to another."""

    id: str = Field(default_factory=new_id)
    group_id: str
    from_user: str
    to_user: str
    amount: Decimal
    date: datetime = Field(default_factory=datetime.now)
    related_expense_ids: list[str] = Field(default_factory=list)
    notes: str | None = None


# ============================================================================
# Balance Models
# ============================================================================


class GroupBalance(BaseModel):
    """A user's position within one group. Positive net = user is owed."""

    group_id: str
    group_name: str
    owed: Decimal = Decimal("0")
    paid: Decimal = Decimal("0")
    net: Decimal = Decimal("0")


class UserBalance(BaseModel):
    """A user's position across all groups."""

    user_id: str
    total_owed: Decimal
    total_paid: Decimal
    net_balance: Decimal
    group_balances: dict[str, GroupBalance] = Field(default_factory=dict)
