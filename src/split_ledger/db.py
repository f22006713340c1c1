"""SQLite database operations for split-ledger."""

import sqlite3
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from .models import ExpenseSplit, Group, GroupMember, Settlement, SharedExpense


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS groups (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                created_by TEXT NOT NULL,
                created_at TIMESTAMP NOT NULL
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS group_members (
                group_id TEXT NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                email TEXT,
                role TEXT NOT NULL,
                joined_at TIMESTAMP NOT NULL,
                PRIMARY KEY (group_id, user_id)
            )
        """
        )

        # Amounts are stored as decimal text to keep them exact
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expenses (
                id TEXT PRIMARY KEY,
                group_id TEXT NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
                date TIMESTAMP NOT NULL,
                amount TEXT NOT NULL,
                description TEXT NOT NULL,
                paid_by TEXT NOT NULL,
                category TEXT,
                created_at TIMESTAMP NOT NULL
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expense_splits (
                expense_id TEXT NOT NULL REFERENCES expenses(id) ON DELETE CASCADE,
                position INTEGER NOT NULL,
                user_id TEXT NOT NULL,
                amount TEXT NOT NULL,
                is_adjusted INTEGER NOT NULL DEFAULT 0,
                is_paid INTEGER NOT NULL DEFAULT 0,
                paid_date TIMESTAMP,
                PRIMARY KEY (expense_id, user_id)
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS settlements (
                id TEXT PRIMARY KEY,
                group_id TEXT NOT NULL REFERENCES groups(id) ON DELETE CASCADE,
                from_user TEXT NOT NULL,
                to_user TEXT NOT NULL,
                amount TEXT NOT NULL,
                date TIMESTAMP NOT NULL,
                notes TEXT
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS settlement_expenses (
                settlement_id TEXT NOT NULL
                    REFERENCES settlements(id) ON DELETE CASCADE,
                expense_id TEXT NOT NULL,
                PRIMARY KEY (settlement_id, expense_id)
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Group operations
    # ========================================================================

    def save_group(self, group: Group) -> str:
        """Save a group and its members."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO groups (id, name, created_by, created_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET name = excluded.name
            """,
            (group.id, group.name, group.created_by, group.created_at.isoformat()),
        )
        for member in group.members:
            self._upsert_member(cursor, group.id, member)
        self.conn.commit()
        return group.id

    def _upsert_member(self, cursor: sqlite3.Cursor, group_id: str, member: GroupMember):
        cursor.execute(
            """
            INSERT INTO group_members (group_id, user_id, name, email, role, joined_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(group_id, user_id) DO UPDATE SET
                name = excluded.name,
                email = excluded.email,
                role = excluded.role
            """,
            (
                group_id,
                member.user_id,
                member.name,
                member.email,
                member.role,
                member.joined_at.isoformat(),
            ),
        )

    def get_group(self, group_id: str) -> Group | None:
        """Get a group with its members."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT id, name, created_by, created_at FROM groups WHERE id = ?",
            (group_id,),
        )
        row = cursor.fetchone()
        if not row:
            return None

        return Group(
            id=row["id"],
            name=row["name"],
            created_by=row["created_by"],
            created_at=datetime.fromisoformat(row["created_at"]),
            members=self._get_members(group_id),
        )

    def _get_members(self, group_id: str) -> list[GroupMember]:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT user_id, name, email, role, joined_at
            FROM group_members
            WHERE group_id = ?
            ORDER BY joined_at, rowid
            """,
            (group_id,),
        )
        return [
            GroupMember(
                user_id=row["user_id"],
                name=row["name"],
                email=row["email"],
                role=row["role"],
                joined_at=datetime.fromisoformat(row["joined_at"]),
            )
            for row in cursor.fetchall()
        ]

    def get_groups_for_user(self, user_id: str) -> list[Group]:
        """Get all groups a user is a member of."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT g.id FROM groups g
            JOIN group_members m ON m.group_id = g.id
            WHERE m.user_id = ?
            ORDER BY g.created_at
            """,
            (user_id,),
        )
        group_ids = [row["id"] for row in cursor.fetchall()]
        return [group for gid in group_ids if (group := self.get_group(gid))]

    def add_member(self, group_id: str, member: GroupMember):
        """Add or update a group member."""
        cursor = self.conn.cursor()
        self._upsert_member(cursor, group_id, member)
        self.conn.commit()

    def remove_member(self, group_id: str, user_id: str) -> bool:
        """Remove a group member. Returns True if a row was deleted."""
        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM group_members WHERE group_id = ? AND user_id = ?",
            (group_id, user_id),
        )
        self.conn.commit()
        return cursor.rowcount > 0

    # ========================================================================
    # Expense operations
    # ========================================================================

    def save_expense(self, expense: SharedExpense) -> str:
        """Save an expense together with its splits."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO expenses (
                id, group_id, date, amount, description, paid_by,
                category, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                expense.id,
                expense.group_id,
                expense.date.isoformat(),
                str(expense.amount),
                expense.description,
                expense.paid_by,
                expense.category,
                expense.created_at.isoformat(),
            ),
        )
        cursor.executemany(
            """
            INSERT INTO expense_splits (
                expense_id, position, user_id, amount, is_adjusted, is_paid, paid_date
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    expense.id,
                    position,
                    split.user_id,
                    str(split.amount),
                    int(split.is_adjusted),
                    int(split.is_paid),
                    split.paid_date.isoformat() if split.paid_date else None,
                )
                for position, split in enumerate(expense.splits)
            ],
        )
        self.conn.commit()
        return expense.id

    def _get_splits(self, expense_id: str) -> list[ExpenseSplit]:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT user_id, amount, is_adjusted, is_paid, paid_date
            FROM expense_splits
            WHERE expense_id = ?
            ORDER BY position
            """,
            (expense_id,),
        )
        return [
            ExpenseSplit(
                user_id=row["user_id"],
                amount=Decimal(row["amount"]),
                is_adjusted=bool(row["is_adjusted"]),
                is_paid=bool(row["is_paid"]),
                paid_date=_parse_datetime(row["paid_date"]),
            )
            for row in cursor.fetchall()
        ]

    def _row_to_expense(self, row: sqlite3.Row) -> SharedExpense:
        return SharedExpense(
            id=row["id"],
            group_id=row["group_id"],
            date=datetime.fromisoformat(row["date"]),
            amount=Decimal(row["amount"]),
            description=row["description"],
            paid_by=row["paid_by"],
            category=row["category"],
            splits=self._get_splits(row["id"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def get_expense(self, expense_id: str) -> SharedExpense | None:
        """Get an expense with its splits."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM expenses WHERE id = ?", (expense_id,))
        row = cursor.fetchone()
        return self._row_to_expense(row) if row else None

    def get_expenses_for_group(self, group_id: str) -> list[SharedExpense]:
        """Get all expenses of a group, newest first."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT * FROM expenses WHERE group_id = ? ORDER BY date DESC, rowid DESC",
            (group_id,),
        )
        return [self._row_to_expense(row) for row in cursor.fetchall()]

    def delete_expense(self, expense_id: str) -> bool:
        """Delete an expense and its splits. Returns True if it existed."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM expense_splits WHERE expense_id = ?", (expense_id,))
        cursor.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))
        deleted = cursor.rowcount > 0
        self.conn.commit()
        return deleted

    def mark_splits_paid(
        self, expense_ids: list[str], user_id: str, paid_date: datetime
    ) -> int:
        """Mark a user's splits on the given expenses as paid."""
        if not expense_ids:
            return 0
        cursor = self.conn.cursor()
        cursor.executemany(
            """
            UPDATE expense_splits SET is_paid = 1, paid_date = ?
            WHERE expense_id = ? AND user_id = ? AND is_paid = 0
            """,
            [(paid_date.isoformat(), eid, user_id) for eid in expense_ids],
        )
        self.conn.commit()
        return cursor.rowcount

    # ========================================================================
    # Settlement operations
    # ========================================================================

    def save_settlement(self, settlement: Settlement) -> str:
        """Save a settlement and the expenses it relates to."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO settlements (
                id, group_id, from_user, to_user, amount, date, notes
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                settlement.id,
                settlement.group_id,
                settlement.from_user,
                settlement.to_user,
                str(settlement.amount),
                settlement.date.isoformat(),
                settlement.notes,
            ),
        )
        cursor.executemany(
            """
            INSERT OR IGNORE INTO settlement_expenses (settlement_id, expense_id)
            VALUES (?, ?)
            """,
            [(settlement.id, eid) for eid in settlement.related_expense_ids],
        )
        self.conn.commit()
        return settlement.id

    def get_settlements_for_group(self, group_id: str) -> list[Settlement]:
        """Get all settlements of a group, newest first."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, group_id, from_user, to_user, amount, date, notes
            FROM settlements
            WHERE group_id = ?
            ORDER BY date DESC, rowid DESC
            """,
            (group_id,),
        )
        rows = cursor.fetchall()
        return [
            Settlement(
                id=row["id"],
                group_id=row["group_id"],
                from_user=row["from_user"],
                to_user=row["to_user"],
                amount=Decimal(row["amount"]),
                date=datetime.fromisoformat(row["date"]),
                related_expense_ids=self._get_related_expense_ids(row["id"]),
                notes=row["notes"],
            )
            for row in rows
        ]

    def _get_related_expense_ids(self, settlement_id: str) -> list[str]:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT expense_id FROM settlement_expenses
            WHERE settlement_id = ?
            ORDER BY rowid
            """,
            (settlement_id,),
        )
        return [row["expense_id"] for row in cursor.fetchall()]

    def delete_settlement(self, settlement_id: str) -> bool:
        """Delete a settlement. Returns True if it existed."""
        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM settlement_expenses WHERE settlement_id = ?", (settlement_id,)
        )
        cursor.execute("DELETE FROM settlements WHERE id = ?", (settlement_id,))
        deleted = cursor.rowcount > 0
        self.conn.commit()
        return deleted
