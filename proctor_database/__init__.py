"""
Consumption ledger for proctor codes.

One record per (window, session); see `ReplayGuard` for the contract.
"""

from .db_manager import SqliteReplayGuard
from .guard import ReplayGuard, StorageFailure
from .memory import InMemoryReplayGuard
from .setup_database import setup_database

__all__ = [
    "InMemoryReplayGuard",
    "ReplayGuard",
    "SqliteReplayGuard",
    "StorageFailure",
    "setup_database",
]
