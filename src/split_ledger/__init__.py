"""split-ledger - Fair group expense splitting and balance settlement."""

__version__ = "0.1.0"

from .balances import compute_user_balance
from .cache import TTLCache
from .calculator import (
    calculate_splits,
    distribute_remainder,
    from_minor_units,
    to_minor_units,
)
from .config import Settings, load_settings
from .db import Database
from .exceptions import InvalidSplitInputError, SplitLedgerError
from .format import format_currency, format_currency_with_precision
from .models import (
    ExpenseSplit,
    Group,
    GroupBalance,
    GroupMember,
    Participant,
    Settlement,
    SharedExpense,
    Split,
    SplitOptions,
    SplitSummary,
    UserBalance,
)
from .service import LedgerService
from .summary import summarize_splits
from .validator import validate_splits

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "TTLCache",
    "LedgerService",
    "InvalidSplitInputError",
    "SplitLedgerError",
    "ExpenseSplit",
    "Group",
    "GroupBalance",
    "GroupMember",
    "Participant",
    "Settlement",
    "SharedExpense",
    "Split",
    "SplitOptions",
    "SplitSummary",
    "UserBalance",
    "calculate_splits",
    "distribute_remainder",
    "from_minor_units",
    "to_minor_units",
    "validate_splits",
    "summarize_splits",
    "compute_user_balance",
    "format_currency",
    "format_currency_with_precision",
]
