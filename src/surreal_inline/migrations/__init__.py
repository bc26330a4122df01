"""
Inline migrations.

Migrations are declared on entities, tracked in a ledger table and applied
forward or reverse by the ``Migrator``.

Usage:
    vendor.migration("20110228_1115_add_timestamps", "Add timestamp fields", Change([...]))

    # Apply pending migrations
    await Migrator(registry, model, executor).run()

    # Undo everything
    await Migrator(registry, model, executor, MigratorOptions(target=MIGRATE_ZERO)).run()
"""

from .ledger import Ledger, LedgerRecord
from .migration import MIGRATION_NAME_PATTERN, Change, FunctionBody, InlineMigration, MigrationBody, UpDown
from .migrator import MIGRATE_ZERO, MigrationPlan, MigrationStatus, Migrator, resolve_plan
from .operations import (
    AddField,
    AlterField,
    CreateIndex,
    DataMigration,
    DropField,
    DropIndex,
    Operation,
    RawSQL,
)

__all__ = [
    # Migrations
    "MIGRATION_NAME_PATTERN",
    "InlineMigration",
    "MigrationBody",
    "Change",
    "UpDown",
    "FunctionBody",
    # Ledger and migrator
    "Ledger",
    "LedgerRecord",
    "MIGRATE_ZERO",
    "MigrationPlan",
    "MigrationStatus",
    "Migrator",
    "resolve_plan",
    # Operations
    "Operation",
    "AddField",
    "DropField",
    "AlterField",
    "CreateIndex",
    "DropIndex",
    "DataMigration",
    "RawSQL",
]
