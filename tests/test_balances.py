"""Tests for the balance aggregator."""

import logging
import random
from datetime import datetime
from decimal import Decimal

import pytest

from split_ledger.balances import compute_user_balance
from split_ledger.models import (
    ExpenseSplit,
    Group,
    GroupMember,
    Settlement,
    SharedExpense,
)


# Helper functions for tests
def make_expense(
    id: str, group_id: str, amount: str, paid_by: str, shares: dict[str, str]
) -> SharedExpense:
    """Create a SharedExpense with the given per-user shares."""
    return SharedExpense(
        id=id,
        group_id=group_id,
        date=datetime(2025, 1, 15),
        amount=Decimal(amount),
        description=f"Expense {id}",
        paid_by=paid_by,
        splits=[
            ExpenseSplit(user_id=user_id, amount=Decimal(share))
            for user_id, share in shares.items()
        ],
    )


def make_settlement(
    id: str, group_id: str, from_user: str, to_user: str, amount: str
) -> Settlement:
    """Create a Settlement."""
    return Settlement(
        id=id,
        group_id=group_id,
        from_user=from_user,
        to_user=to_user,
        amount=Decimal(amount),
        date=datetime(2025, 1, 20),
    )


def make_group(id: str, name: str, user_ids: list[str]) -> Group:
    """Create a Group with the given members."""
    return Group(
        id=id,
        name=name,
        created_by=user_ids[0],
        members=[GroupMember(user_id=u, name=u.title()) for u in user_ids],
    )


@pytest.fixture
def trip_expenses():
    """Alice paid dinner, Bob paid the taxi, Carol paid a museum in another group."""
    return [
        make_expense("e1", "trip", "90.00", "alice", {"alice": "30", "bob": "30", "carol": "30"}),
        make_expense("e2", "trip", "20.00", "bob", {"alice": "10", "bob": "10"}),
        make_expense("e3", "flat", "50.00", "carol", {"alice": "25", "carol": "25"}),
    ]


class TestComputeUserBalance:
    """Tests for per-group and overall balances."""

    def test_payer_balance(self, trip_expenses):
        """The payer is owed the other participants' shares."""
        balance = compute_user_balance("alice", trip_expenses, [])

        trip = balance.group_balances["trip"]
        assert trip.paid == Decimal("90.00")
        assert trip.owed == Decimal("40")
        assert trip.net == Decimal("50.00")

        flat = balance.group_balances["flat"]
        assert flat.paid == Decimal("0")
        assert flat.owed == Decimal("25")
        assert flat.net == Decimal("-25")

        assert balance.total_paid == Decimal("90.00")
        assert balance.total_owed == Decimal("65")
        assert balance.net_balance == Decimal("25.00")

    def test_participant_balance(self, trip_expenses):
        balance = compute_user_balance("bob", trip_expenses, [])

        assert list(balance.group_balances) == ["trip"]
        trip = balance.group_balances["trip"]
        assert trip.paid == Decimal("20.00")
        assert trip.owed == Decimal("40")
        assert trip.net == Decimal("-20.00")

    def test_settlement_from_user_reduces_owed(self, trip_expenses):
        settlements = [make_settlement("s1", "trip", "bob", "alice", "20.00")]

        balance = compute_user_balance("bob", trip_expenses, settlements)

        trip = balance.group_balances["trip"]
        assert trip.owed == Decimal("20.00")
        assert trip.net == Decimal("0.00")

    def test_settlement_to_user_reduces_paid(self, trip_expenses):
        settlements = [make_settlement("s1", "trip", "bob", "alice", "20.00")]

        balance = compute_user_balance("alice", trip_expenses, settlements)

        trip = balance.group_balances["trip"]
        assert trip.paid == Decimal("70.00")
        assert trip.net == Decimal("30.00")

    def test_settlement_between_others_ignored(self, trip_expenses):
        settlements = [make_settlement("s1", "trip", "bob", "carol", "5.00")]

        balance = compute_user_balance("alice", trip_expenses, settlements)

        assert balance.group_balances["trip"].net == Decimal("50.00")

    def test_settlement_only_activity_counts(self):
        """A settlement alone is enough activity for a balance."""
        settlements = [make_settlement("s1", "trip", "bob", "alice", "20.00")]

        balance = compute_user_balance("bob", [], settlements)

        assert balance is not None
        assert balance.group_balances["trip"].owed == Decimal("-20.00")

    def test_net_equals_paid_minus_owed(self, trip_expenses):
        settlements = [
            make_settlement("s1", "trip", "bob", "alice", "20.00"),
            make_settlement("s2", "flat", "alice", "carol", "25.00"),
        ]

        for user_id in ("alice", "bob", "carol"):
            balance = compute_user_balance(user_id, trip_expenses, settlements)
            for group_balance in balance.group_balances.values():
                assert group_balance.net == group_balance.paid - group_balance.owed
            assert balance.net_balance == balance.total_paid - balance.total_owed

    def test_group_balances_sum_to_zero(self, trip_expenses):
        """Within a group, everyone's nets cancel out."""
        total = sum(
            compute_user_balance(u, trip_expenses, []).group_balances["trip"].net
            for u in ("alice", "bob", "carol")
        )

        assert total == Decimal("0")

    def test_order_independent(self, trip_expenses):
        """Shuffled records give the same balance."""
        settlements = [
            make_settlement("s1", "trip", "bob", "alice", "20.00"),
            make_settlement("s2", "flat", "alice", "carol", "12.50"),
            make_settlement("s3", "trip", "carol", "alice", "30.00"),
        ]
        expected = compute_user_balance("alice", trip_expenses, settlements)

        rng = random.Random(42)
        for _ in range(10):
            expenses = list(trip_expenses)
            shuffled_settlements = list(settlements)
            rng.shuffle(expenses)
            rng.shuffle(shuffled_settlements)

            assert compute_user_balance("alice", expenses, shuffled_settlements) == expected


class TestNoData:
    """Tests for the no-data state."""

    def test_no_records(self):
        assert compute_user_balance("alice", [], []) is None

    def test_no_qualifying_records(self, trip_expenses):
        """Records not involving the user are not activity."""
        assert compute_user_balance("dave", trip_expenses, []) is None

    def test_no_group_memberships(self, trip_expenses):
        groups = [make_group("trip", "Trip", ["alice", "bob", "carol"])]

        assert compute_user_balance("dave", trip_expenses, [], groups=groups) is None

    def test_settled_is_not_no_data(self):
        """Perfectly settled is a zero balance, not None."""
        expenses = [make_expense("e1", "trip", "20.00", "alice", {"alice": "10", "bob": "10"})]
        settlements = [make_settlement("s1", "trip", "bob", "alice", "10")]

        balance = compute_user_balance("bob", expenses, settlements)

        assert balance is not None
        assert balance.net_balance == Decimal("0")


class TestGroups:
    """Tests for group filtering and names."""

    def test_group_names_used(self, trip_expenses):
        groups = [
            make_group("trip", "Lisbon Trip", ["alice", "bob", "carol"]),
            make_group("flat", "Flat Share", ["carol", "alice"]),
        ]

        balance = compute_user_balance("alice", trip_expenses, [], groups=groups)

        assert balance.group_balances["trip"].group_name == "Lisbon Trip"
        assert balance.group_balances["flat"].group_name == "Flat Share"

    def test_group_id_used_without_groups(self, trip_expenses):
        balance = compute_user_balance("alice", trip_expenses, [])

        assert balance.group_balances["trip"].group_name == "trip"

    def test_groups_as_mapping(self, trip_expenses):
        groups = {"trip": make_group("trip", "Trip", ["alice", "bob", "carol"])}

        balance = compute_user_balance("alice", trip_expenses, [], groups=groups)

        assert list(balance.group_balances) == ["trip"]

    def test_non_member_groups_excluded(self, trip_expenses):
        """Only groups the user belongs to are counted."""
        groups = [
            make_group("trip", "Trip", ["alice", "bob", "carol"]),
            make_group("flat", "Flat", ["carol", "dave"]),
        ]

        balance = compute_user_balance("alice", trip_expenses, [], groups=groups)

        assert list(balance.group_balances) == ["trip"]

    def test_unknown_participant_skipped(self, trip_expenses, caplog):
        """With membership required, records naming strangers are malformed."""
        groups = [make_group("trip", "Trip", ["alice", "bob"])]

        with caplog.at_level(logging.WARNING):
            balance = compute_user_balance("alice", trip_expenses, [], groups=groups)

        # e1 includes carol, who is not a member
        assert balance.group_balances["trip"].paid == Decimal("0")
        assert balance.group_balances["trip"].owed == Decimal("10")
        assert "unknown participant carol" in caplog.text

    def test_membership_not_required(self, trip_expenses):
        groups = [make_group("trip", "Trip", ["alice", "bob"])]

        balance = compute_user_balance(
            "alice", trip_expenses, [], groups=groups, require_membership=False
        )

        assert balance.group_balances["trip"].paid == Decimal("90.00")


class TestMalformedRecords:
    """Malformed records are skipped without aborting aggregation."""

    def test_raw_records_accepted(self):
        expenses = [
            {
                "id": "e1",
                "group_id": "trip",
                "amount": "30.00",
                "description": "Lunch",
                "paid_by": "alice",
                "splits": [
                    {"user_id": "alice", "amount": "15.00"},
                    {"user_id": "bob", "amount": "15.00"},
                ],
            }
        ]
        settlements = [
            {
                "id": "s1",
                "group_id": "trip",
                "from_user": "bob",
                "to_user": "alice",
                "amount": "5",
            }
        ]

        balance = compute_user_balance("alice", expenses, settlements)

        assert balance.group_balances["trip"].net == Decimal("10.00")

    def test_missing_amount_skipped(self, trip_expenses, caplog):
        broken = {
            "id": "bad",
            "group_id": "trip",
            "description": "No amount",
            "paid_by": "alice",
            "splits": [{"user_id": "alice", "amount": "5"}],
        }

        with caplog.at_level(logging.WARNING):
            balance = compute_user_balance("alice", [broken, *trip_expenses], [])

        assert balance.group_balances["trip"].paid == Decimal("90.00")
        assert "Malformed record bad" in caplog.text

    def test_non_positive_amount_skipped(self, trip_expenses):
        broken = make_expense("bad", "trip", "0", "alice", {"alice": "0"})

        balance = compute_user_balance("alice", [*trip_expenses, broken], [])

        assert balance.group_balances["trip"].paid == Decimal("90.00")

    def test_split_without_participant_skipped(self, trip_expenses):
        broken = make_expense("bad", "trip", "10", "alice", {"": "10"})

        balance = compute_user_balance("alice", [*trip_expenses, broken], [])

        assert balance.group_balances["trip"].paid == Decimal("90.00")

    def test_self_settlement_skipped(self, trip_expenses):
        settlements = [make_settlement("s1", "trip", "alice", "alice", "10")]

        balance = compute_user_balance("alice", trip_expenses, settlements)

        assert balance.group_balances["trip"].net == Decimal("50.00")

    def test_garbage_settlement_skipped(self, trip_expenses):
        settlements = [{"id": "s1", "from_user": "bob"}, "not a record"]

        balance = compute_user_balance("alice", trip_expenses, settlements)

        assert balance.group_balances["trip"].net == Decimal("50.00")

    def test_duplicate_records_counted_once(self, trip_expenses):
        settlement = make_settlement("s1", "trip", "bob", "alice", "20.00")

        balance = compute_user_balance(
            "alice", trip_expenses + trip_expenses[:1], [settlement, settlement]
        )

        trip = balance.group_balances["trip"]
        assert trip.paid == Decimal("70.00")
        assert trip.owed == Decimal("40")

    def test_only_malformed_records_is_no_data(self):
        assert compute_user_balance("alice", [{"id": "x"}], [{"id": "y"}]) is None

    def test_conflicting_duplicates_dropped(self, trip_expenses, caplog):
        """Copies of one ID that disagree are all skipped."""
        first = make_expense("x", "trip", "10.00", "alice", {"alice": "5", "bob": "5"})
        second = make_expense("x", "trip", "20.00", "alice", {"alice": "10", "bob": "10"})

        with caplog.at_level(logging.WARNING):
            balance = compute_user_balance("alice", [*trip_expenses, first, second], [])

        assert balance.group_balances["trip"].paid == Decimal("90.00")
        assert "Malformed record x: 2 conflicting copies" in caplog.text

    def test_conflicting_settlements_dropped(self, trip_expenses):
        settlements = [
            make_settlement("s1", "trip", "bob", "alice", "10.00"),
            make_settlement("s1", "trip", "bob", "alice", "20.00"),
        ]

        balance = compute_user_balance("alice", trip_expenses, settlements)

        assert balance.group_balances["trip"].paid == Decimal("90.00")

    def test_duplicates_are_order_independent(self, trip_expenses):
        """Shuffled input with duplicate IDs gives the same balance."""
        expenses = [
            *trip_expenses,
            make_expense("x", "trip", "10.00", "alice", {"alice": "5", "bob": "5"}),
            make_expense("x", "trip", "20.00", "alice", {"alice": "10", "bob": "10"}),
            trip_expenses[1],
        ]
        settlements = [
            make_settlement("s1", "trip", "bob", "alice", "10.00"),
            make_settlement("s1", "trip", "bob", "alice", "15.00"),
            make_settlement("s2", "trip", "carol", "alice", "5.00"),
            make_settlement("s2", "trip", "carol", "alice", "5.00"),
        ]
        expected = compute_user_balance("alice", expenses, settlements)

        rng = random.Random(3)
        for _ in range(20):
            rng.shuffle(expenses)
            rng.shuffle(settlements)

            assert compute_user_balance("alice", expenses, settlements) == expected
