"""
Installing entity tables and views, and migrating them.

``SchemaInstaller`` is the entry point applications use: it creates the
tables of a hierarchy in dependency order, fast-forwards the migrations of
freshly created tables, runs pending migrations and (re)creates views, with
the entity lifecycle hooks invoked around each step.

Usage:
    installer = SchemaInstaller(registry, SurrealExecutor(connection))
    await installer.migrate(model)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .config import MigratorOptions
from .hooks import run_hook
from .migrations.migrator import MigrationPlan, Migrator
from .resolver import DependencyResolver

if TYPE_CHECKING:
    from .ddl import DDLExecutor
    from .entity import Entity, EntityRegistry

logger = logging.getLogger(__name__)


class SchemaInstaller:
    """Creates, drops and migrates the tables and views of registered entities."""

    def __init__(
        self,
        registry: EntityRegistry,
        executor: DDLExecutor,
        options: MigratorOptions | None = None,
    ):
        self.registry = registry
        self.executor = executor
        self.options = options or MigratorOptions()
        self.resolver = DependencyResolver(registry, executor)

    def migrator(self, root: Entity, target: str | None = None) -> Migrator:
        """Return a migrator for ``root``'s hierarchy, set up with ``target``."""
        logger.info("Creating the migrator...")
        options = MigratorOptions(table=self.options.table, column=self.options.column, target=target)
        return Migrator(self.registry, root, self.executor, options)

    @staticmethod
    def _table_name(entity: Entity) -> str:
        if entity.table_name is None:
            raise ValueError(f"{entity.display_name} has no table")
        return entity.table_name

    # Tables

    async def table_exists(self, entity: Entity) -> bool:
        return await self.executor.table_exists(self._table_name(entity))

    async def create_table(self, entity: Entity) -> None:
        """
        Create ``entity``'s table from its schema, then record its migrations
        as applied: the declared schema is the latest one and already
        includes them.

        Raises:
            HookFailed: If ``before_create_table`` or ``after_create_table`` aborts.
            ValueError: If the entity has no schema.
        """
        table = self._table_name(entity)
        schema = entity.schema
        if schema is None:
            raise ValueError(f"{entity.display_name} has no schema to create {table!r} from")

        await run_hook(entity, "before_create_table")
        logger.info(f"Creating table {table} for {entity.display_name}")
        await self.executor.create_table(table, schema)
        await run_hook(entity, "after_create_table")

        await self.migrator(entity).register_existing(entity)

    async def create_table_if_missing(self, entity: Entity) -> bool:
        """Create the table unless it already exists. Returns whether it was created."""
        if await self.table_exists(entity):
            return False
        await self.create_table(entity)
        return True

    async def recreate_table(self, entity: Entity) -> None:
        """Drop the table if it exists, then create it. Meant for tests."""
        await self.drop_table_if_exists(entity)
        await self.create_table(entity)

    async def drop_table(self, entity: Entity) -> None:
        """
        Drop ``entity``'s table. Fails if the table doesn't exist.

        Raises:
            HookFailed: If ``before_drop_table`` or ``after_drop_table`` aborts.
        """
        table = self._table_name(entity)
        await run_hook(entity, "before_drop_table")
        logger.info(f"Dropping table {table}")
        await self.executor.drop_table(table)
        await run_hook(entity, "after_drop_table")

    async def drop_table_if_exists(self, entity: Entity) -> None:
        await self.executor.drop_table(self._table_name(entity), if_exists=True)

    # Views

    async def create_view(self, entity: Entity) -> None:
        if entity.view is None:
            raise ValueError(f"{entity.display_name} is not a view")
        await self.executor.create_view(self._table_name(entity), entity.view)

    async def recreate_view(self, entity: Entity) -> None:
        """Replace the view definition, creating it if needed."""
        if entity.view is None:
            raise ValueError(f"{entity.display_name} is not a view")
        await self.executor.create_view(self._table_name(entity), entity.view, overwrite=True)

    async def drop_view(self, entity: Entity, if_exists: bool = False) -> None:
        await self.executor.drop_view(self._table_name(entity), if_exists=if_exists)

    # Migrating

    async def migrate(self, root: Entity, target: str | None = None) -> MigrationPlan | None:
        """
        Create any missing tables of ``root``'s hierarchy, run its pending
        migrations up to ``target`` (or reverse down to it), then (re)create
        its views.

        Returns:
            The executed migration plan, or ``None`` if no migration ran.

        Raises:
            HookFailed: If a hook aborts; nothing after it runs.
        """
        migrator = self.migrator(root, target)
        tables_to_install = await self.resolver.uninstalled_tables(root)
        logger.info(f"Entities with tables that need to be installed: {[e.display_name for e in tables_to_install]}")
        views_to_install = await self.resolver.installed_views(root) + await self.resolver.uninstalled_views(root)
        logger.info(f"Views to install: {[e.table_name for e in views_to_install]}")

        await run_hook(root, "before_migration_run")

        logger.info("Creating tables that don't yet exist...")
        for entity in tables_to_install:
            await self.create_table(entity)

        logger.info("Running any pending migrations...")
        plan = await migrator.run()
        await run_hook(root, "after_migration_run")

        logger.info("(Re)-creating any modeled views...")
        for entity in views_to_install:
            await self.recreate_view(entity)

        return plan
