"""Custom exceptions for split-ledger."""


class SplitLedgerError(Exception):
    """Base exception for all split-ledger errors."""

    pass


class ConfigurationError(SplitLedgerError):
    """Raised when configuration is invalid or missing."""

    pass


class InvalidSplitInputError(SplitLedgerError, ValueError):
    """Raised when a split cannot be computed from the given options."""

    pass


class SplitValidationError(SplitLedgerError):
    """Raised when a split set does not add up to the expense amount."""

    pass


class MalformedRecordError(SplitLedgerError):
    """Raised for a stored expense or settlement missing required data."""

    def __init__(self, record_id: str | None, reason: str):
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"Malformed record {record_id or '<unknown>'}: {reason}")


class NotFoundError(SplitLedgerError):
    """Base class for lookups that found nothing."""

    pass


class GroupNotFoundError(NotFoundError):
    """Raised when a group does not exist."""

    def __init__(self, group_id: str):
        self.group_id = group_id
        super().__init__(f"Group {group_id} not found")


class ExpenseNotFoundError(NotFoundError):
    """Raised when an expense does not exist in the given group."""

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense {expense_id} not found")


class SettlementNotFoundError(NotFoundError):
    """Raised when a settlement does not exist in the given group."""

    def __init__(self, settlement_id: str):
        self.settlement_id = settlement_id
        super().__init__(f"Settlement {settlement_id} not found")


class NotGroupMemberError(SplitLedgerError):
    """Raised when a user referenced by an operation is not in the group."""

    def __init__(self, user_id: str, group_id: str):
        self.user_id = user_id
        self.group_id = group_id
        super().__init__(f"User {user_id} is not a member of group {group_id}")
