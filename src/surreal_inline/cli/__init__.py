"""
surreal-inline Command Line Interface.

Provides:
- migrate: Create missing tables and run inline migrations
- status: Show applied, pending and orphaned migrations
- order: Show table creation order
"""

from .commands import cli

__all__ = ["cli"]
