"""Household Ledger - personal and household finance tracking with split accounting."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .db import Database
from .households import HouseholdDirectory
from .models import (
    ShareInput,
    SplitMode,
    SplitShare,
    Transaction,
    TransactionDraft,
    TransactionUpdate,
)
from .money import approx_equal, round2
from .split.allocator import allocate
from .split.batch import BatchResult
from .split.service import LedgerService
from .state import LedgerState

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "HouseholdDirectory",
    "ShareInput",
    "SplitMode",
    "SplitShare",
    "Transaction",
    "TransactionDraft",
    "TransactionUpdate",
    "approx_equal",
    "round2",
    "allocate",
    "BatchResult",
    "LedgerService",
    "LedgerState",
]
