"""
Configuration dataclasses for surreal-inline.

Provides immutable containers for the SurrealDB connection settings and for
the options understood by the migrator.
"""

from __future__ import annotations

from dataclasses import dataclass

from .utils import validate_identifier

# Default name of the ledger table and of its migration-name column.
DEFAULT_LEDGER_TABLE = "schema_migrations"
DEFAULT_LEDGER_COLUMN = "name"


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Immutable configuration for a SurrealDB connection.

    Attributes:
        url: The URL of the SurrealDB instance.
        user: The username for authentication.
        password: The password for authentication.
        namespace: The namespace to use.
        database: The database to use.
        timeout: Request timeout in seconds.
    """

    url: str
    user: str
    password: str
    namespace: str
    database: str
    timeout: float = 30.0


@dataclass(frozen=True)
class MigratorOptions:
    """
    Options understood by the migrator.

    Attributes:
        table: Name of the ledger table recording applied migrations.
        column: Column of the ledger table that holds the migration name.
        target: Migration to migrate to. ``None`` means the latest pending one,
            ``"zero"`` means undo everything.
    """

    table: str = DEFAULT_LEDGER_TABLE
    column: str = DEFAULT_LEDGER_COLUMN
    target: str | None = None

    def __post_init__(self) -> None:
        validate_identifier(self.table, "ledger table name")
        validate_identifier(self.column, "ledger column name")


__all__ = ["ConnectionConfig", "MigratorOptions", "DEFAULT_LEDGER_TABLE", "DEFAULT_LEDGER_COLUMN"]
