"""Tests for SQLite persistence."""

from datetime import datetime
from decimal import Decimal

import pytest

from split_ledger.db import Database
from split_ledger.models import (
    ExpenseSplit,
    Group,
    GroupMember,
    Settlement,
    SharedExpense,
)


@pytest.fixture
def db(tmp_path):
    """Create a temporary database."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def group(db):
    group = Group(
        name="Flat",
        created_by="alice",
        members=[
            GroupMember(user_id="alice", name="Alice", role="admin"),
            GroupMember(user_id="bob", name="Bob"),
        ],
    )
    db.save_group(group)
    return group


def make_expense(group_id: str, amount: str = "0.30") -> SharedExpense:
    return SharedExpense(
        group_id=group_id,
        date=datetime(2025, 3, 1, 12, 0),
        amount=Decimal(amount),
        description="Stamps",
        paid_by="alice",
        splits=[
            ExpenseSplit(user_id="bob", amount=Decimal("0.15"), is_adjusted=True),
            ExpenseSplit(user_id="alice", amount=Decimal("0.15"), is_paid=True),
        ],
    )


class TestDatabase:
    """Tests for the Database class."""

    def test_amounts_stay_exact(self, db, group):
        expense = make_expense(group.id)
        db.save_expense(expense)

        loaded = db.get_expense(expense.id)

        assert loaded.amount == Decimal("0.30")
        assert str(loaded.splits[0].amount) == "0.15"

    def test_split_order_preserved(self, db, group):
        expense = make_expense(group.id)
        db.save_expense(expense)

        loaded = db.get_expense(expense.id)

        assert [s.user_id for s in loaded.splits] == ["bob", "alice"]
        assert [s.is_paid for s in loaded.splits] == [False, True]
        assert [s.is_adjusted for s in loaded.splits] == [True, False]

    def test_groups_for_user(self, db, group):
        assert [g.id for g in db.get_groups_for_user("bob")] == [group.id]
        assert db.get_groups_for_user("zoe") == []

    def test_remove_member(self, db, group):
        assert db.remove_member(group.id, "bob")
        assert not db.remove_member(group.id, "bob")
        assert [m.user_id for m in db.get_group(group.id).members] == ["alice"]

    def test_missing_group(self, db):
        assert db.get_group("nope") is None

    def test_mark_splits_paid_only_unpaid(self, db, group):
        expense = make_expense(group.id)
        db.save_expense(expense)

        marked = db.mark_splits_paid([expense.id], "bob", datetime(2025, 3, 2))

        assert marked == 1
        assert db.mark_splits_paid([expense.id], "bob", datetime(2025, 3, 3)) == 0
        assert db.get_expense(expense.id).splits[0].paid_date == datetime(2025, 3, 2)

    def test_settlement_round_trip(self, db, group):
        expense = make_expense(group.id)
        db.save_expense(expense)
        settlement = Settlement(
            group_id=group.id,
            from_user="bob",
            to_user="alice",
            amount=Decimal("0.15"),
            date=datetime(2025, 3, 2),
            related_expense_ids=[expense.id],
        )
        db.save_settlement(settlement)

        loaded = db.get_settlements_for_group(group.id)[0]

        assert loaded.amount == Decimal("0.15")
        assert loaded.related_expense_ids == [expense.id]

        assert db.delete_settlement(settlement.id)
        assert db.get_settlements_for_group(group.id) == []
