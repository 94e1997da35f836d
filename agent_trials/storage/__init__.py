"""
Storage layer for Agent Trials.

Handles:
- Test case definitions
- Append-only test run history (in memory or SQLite)
"""

from .base import TestCaseStore, TestRunStore
from .memory import InMemoryStore
from .sqlite import SQLiteStore

__all__ = [
    "TestCaseStore",
    "TestRunStore",
    "InMemoryStore",
    "SQLiteStore",
]
