"""TripSplit - Track shared trip expenses and settle who owes whom."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .db import Database, GroupRepository
from .debts import calculate_debts, compute_balances, to_cents
from .models import Debt, Group, Person, Transaction
from .service import GroupService

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "GroupRepository",
    "calculate_debts",
    "compute_balances",
    "to_cents",
    "Debt",
    "Group",
    "Person",
    "Transaction",
    "GroupService",
]
