"""
The migrator: decides which inline migrations to run, and runs them.

Migrations are gathered from an entity and all of its descendants, merged
into one list sorted by name, and split into applied and pending according
to the ledger. A target then selects the steps and their direction:

    target        direction   steps
    None          forward     every pending migration
    "zero"        reverse     every applied migration, latest first
    pending name  forward     pending migrations up to and including it
    applied name  reverse     applied migrations after it, latest first

Each step runs in its own transaction together with its ledger update, so a
failure leaves earlier steps applied and recorded and the ledger consistent.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..config import MigratorOptions
from ..exceptions import DuplicateMigrationError, UnknownMigrationError
from ..types import Direction
from .ledger import Ledger, LedgerRecord
from .migration import InlineMigration

if TYPE_CHECKING:
    from ..ddl import DDLExecutor
    from ..entity import Entity, EntityRegistry

logger = logging.getLogger(__name__)

# Target meaning "reverse every applied migration"
MIGRATE_ZERO = "zero"
ZERO_TARGETS = frozenset({MIGRATE_ZERO, "0"})


@dataclass(frozen=True)
class MigrationPlan:
    """The steps to run, in order, and their direction."""

    direction: Direction
    migrations: tuple[InlineMigration, ...]

    @property
    def names(self) -> list[str]:
        return [m.name for m in self.migrations]

    def __len__(self) -> int:
        return len(self.migrations)


@dataclass(frozen=True)
class MigrationStatus:
    """Applied and pending migrations of a hierarchy, plus orphaned ledger rows."""

    applied: list[InlineMigration]
    pending: list[InlineMigration]
    orphaned: dict[str, str]


def resolve_plan(
    applied: Sequence[InlineMigration],
    pending: Sequence[InlineMigration],
    target: str | None = None,
) -> MigrationPlan | None:
    """
    Pick the steps needed to reach ``target`` from sorted ``applied`` and
    ``pending`` lists. Returns ``None`` when there is nothing to do.

    Reversing to an applied target undoes only the migrations after it; the
    target itself stays applied, so migrating to the same target twice is a
    no-op. Use ``"zero"`` to undo everything.

    Raises:
        UnknownMigrationError: If ``target`` is neither applied nor pending.
    """
    if target is None:
        if not pending:
            return None
        target = pending[-1].name

    if target in ZERO_TARGETS:
        return MigrationPlan(Direction.REVERSE, tuple(reversed(applied))) if applied else None

    pending_names = [m.name for m in pending]
    if target in pending_names:
        index = pending_names.index(target)
        return MigrationPlan(Direction.FORWARD, tuple(pending[: index + 1]))

    applied_names = [m.name for m in applied]
    if target in applied_names:
        # The target itself stays applied
        index = applied_names.index(target)
        steps = tuple(reversed(applied[index + 1 :]))
        return MigrationPlan(Direction.REVERSE, steps) if steps else None

    raise UnknownMigrationError(target)


class Migrator:
    """
    Migrates the database using the migrations declared on ``root`` and its
    descendants.

    Example:
        migrator = Migrator(registry, model, executor, MigratorOptions(target="20110711_1623_another"))
        plan = await migrator.run()
    """

    def __init__(
        self,
        registry: EntityRegistry,
        root: Entity,
        executor: DDLExecutor,
        options: MigratorOptions | None = None,
    ):
        self.registry = registry
        self.root = root
        self.executor = executor
        self.options = options or MigratorOptions()
        self.ledger = Ledger(executor, self.options.table, self.options.column)

    @property
    def target(self) -> str | None:
        return self.options.target

    def all_migrating_entities(self) -> list[Entity]:
        """The root entity and all of its descendants."""
        return self.registry.closure(self.root)

    def all_migrations(self) -> list[InlineMigration]:
        """
        Every migration declared in the hierarchy, sorted by name, then by
        owning entity name.

        Raises:
            DuplicateMigrationError: If two entities declare the same name.
        """
        merged: dict[str, InlineMigration] = {}
        for entity in self.all_migrating_entities():
            for name, migration in entity.migrations.items():
                existing = merged.get(name)
                if existing is not None and existing is not migration:
                    raise DuplicateMigrationError(name, existing.source, migration.source)
                merged[name] = migration

        return sorted(merged.values(), key=lambda m: m.sort_key)

    async def status(self) -> MigrationStatus:
        """Split the hierarchy's migrations by whether the ledger lists them."""
        entity_names = [e.name for e in self.all_migrating_entities() if e.name]
        applied_map = await self.ledger.applied_map(entity_names)

        applied: list[InlineMigration] = []
        pending: list[InlineMigration] = []
        for migration in self.all_migrations():
            if applied_map.pop(migration.name, None) is not None:
                applied.append(migration)
            else:
                pending.append(migration)

        return MigrationStatus(applied=applied, pending=pending, orphaned=applied_map)

    async def get_partitioned_migrations(self) -> tuple[list[InlineMigration], list[InlineMigration]]:
        """
        Return the ``(applied, pending)`` migrations of the hierarchy.

        Ledger rows whose migration is no longer declared (it was likely
        deleted after being applied) are logged and otherwise ignored.
        """
        status = await self.status()
        for name, entity_name in status.orphaned.items():
            logger.warning(f"No {name} migration defined in {entity_name}; ignoring it.")
        return status.applied, status.pending

    async def plan(self) -> MigrationPlan | None:
        """The steps ``run`` would execute, without executing them."""
        applied, pending = await self.get_partitioned_migrations()
        return resolve_plan(applied, pending, self.target)

    async def run(self) -> MigrationPlan | None:
        """
        Run the steps needed to reach the target.

        Returns:
            The executed plan, or ``None`` when there was nothing to do.
        """
        plan = await self.plan()
        if plan is None:
            logger.info("No migrations to apply.")
            return None

        direction = plan.direction
        logger.info(f"Migrating {len(plan)} steps {direction}...")

        for migration in plan.migrations:
            record = LedgerRecord(name=migration.name, model_class=migration.entity_name)
            start = time.perf_counter()
            logger.info(f"Begin: {migration.describe()}, direction: {direction}")

            try:
                async with self.executor.transaction() as session:
                    await migration.apply(session, direction)
                    if direction == Direction.FORWARD:
                        await self.ledger.record_applied(session, record)
                    else:
                        await self.ledger.record_reverted(session, record)
            except Exception as e:
                logger.error(f"Migration {migration.name} failed, direction: {direction}: {e}")
                raise

            logger.info(f"  finished: {migration.describe()}, direction: {direction} ({time.perf_counter() - start:0.6f}s)")

        return plan

    async def register_existing(self, entity: Entity) -> list[InlineMigration]:
        """
        Record every migration declared on ``entity`` as applied, without
        running it. Used right after creating the entity's table, whose schema
        already includes their changes.

        Returns:
            The migrations that were fast-forwarded.
        """
        registered: list[InlineMigration] = []
        for migration in sorted(entity.migrations.values(), key=lambda m: m.sort_key):
            record = LedgerRecord(name=migration.name, model_class=migration.entity_name)
            if await self.ledger.contains(record):
                continue
            logger.info(f"  fast-forwarding migration {migration.name}...")
            await self.ledger.insert(record)
            registered.append(migration)
        return registered


__all__ = ["MIGRATE_ZERO", "MigrationPlan", "MigrationStatus", "Migrator", "resolve_plan"]
