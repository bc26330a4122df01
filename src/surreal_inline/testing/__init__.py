"""
Testing utilities for surreal-inline.

Provides ``MemoryExecutor``, an in-memory ``DDLExecutor`` recording every
statement, to test entity hierarchies and migrations without a database.
"""

from .memory import MemoryExecutor, MemoryTransaction

__all__ = ["MemoryExecutor", "MemoryTransaction"]
