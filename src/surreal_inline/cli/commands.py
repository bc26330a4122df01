"""
CLI commands for surreal-inline.

Uses click for command-line argument parsing.
"""

from __future__ import annotations

import asyncio
import importlib
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import click

from ..config import ConnectionConfig, MigratorOptions
from ..connection import HTTPConnection
from ..ddl import SurrealExecutor
from ..entity import Entity, EntityRegistry
from ..exceptions import SurrealInlineError
from ..installer import SchemaInstaller
from ..migrations.migrator import Migrator
from ..resolver import DependencyResolver


def run_async(coro: Any) -> Any:
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def load_registry(path: str) -> EntityRegistry:
    """
    Import ``module:attribute`` and return the ``EntityRegistry`` it names.

    The attribute defaults to ``registry``.
    """
    module_name, _, attribute = path.partition(":")
    module = importlib.import_module(module_name)
    registry = getattr(module, attribute or "registry", None)
    if not isinstance(registry, EntityRegistry):
        raise click.BadParameter(f"{path} is not an EntityRegistry", param_hint="--models")
    return registry


@asynccontextmanager
async def connected_executor(config: ConnectionConfig) -> AsyncIterator[SurrealExecutor]:
    """Open an authenticated connection for the duration of a command."""
    async with HTTPConnection.from_config(config) as connection:
        await connection.signin(config.user, config.password)
        yield SurrealExecutor(connection)


def _root(ctx: click.Context, name: str) -> Entity:
    registry: EntityRegistry = ctx.obj["registry"]
    try:
        return registry.get(name)
    except SurrealInlineError as e:
        raise click.BadParameter(str(e), param_hint="ROOT")


@click.group()
@click.option(
    "--models",
    "-m",
    "registry_path",
    envvar="SURREAL_INLINE_MODELS",
    required=True,
    help="Entity registry to use, as module:attribute",
)
@click.option("--url", "-u", envvar="SURREAL_URL", default="http://localhost:8000", help="SurrealDB URL")
@click.option("--namespace", "-n", envvar="SURREAL_NAMESPACE", default="test", help="SurrealDB namespace")
@click.option("--database", "-d", envvar="SURREAL_DATABASE", default="test", help="SurrealDB database")
@click.option("--user", envvar="SURREAL_USER", default="root", help="SurrealDB user")
@click.option("--password", envvar="SURREAL_PASSWORD", default="root", help="SurrealDB password")
@click.option("--table", default=MigratorOptions.table, show_default=True, help="Ledger table")
@click.option("--column", default=MigratorOptions.column, show_default=True, help="Ledger migration name column")
@click.pass_context
def cli(
    ctx: click.Context,
    registry_path: str,
    url: str,
    namespace: str,
    database: str,
    user: str,
    password: str,
    table: str,
    column: str,
) -> None:
    """Create entity tables and run inline migrations."""
    ctx.ensure_object(dict)
    ctx.obj["registry"] = load_registry(registry_path)
    ctx.obj["config"] = ConnectionConfig(url=url, user=user, password=password, namespace=namespace, database=database)
    ctx.obj["options"] = MigratorOptions(table=table, column=column)


@cli.command()
@click.argument("root")
@click.option("--target", "-t", default=None, help="Migration to migrate to ('zero' to undo everything)")
@click.pass_context
def migrate(ctx: click.Context, root: str, target: str | None) -> None:
    """Create missing tables of ROOT's hierarchy and run its migrations."""
    entity = _root(ctx, root)

    async def _migrate() -> Any:
        async with connected_executor(ctx.obj["config"]) as executor:
            installer = SchemaInstaller(ctx.obj["registry"], executor, ctx.obj["options"])
            return await installer.migrate(entity, target)

    try:
        plan = run_async(_migrate())
    except SurrealInlineError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if plan is None:
        click.echo("No migrations to apply.")
        return

    click.echo(f"Migrated {len(plan)} step(s) {plan.direction}:")
    for name in plan.names:
        click.echo(f"  {name}")


@cli.command()
@click.argument("root")
@click.pass_context
def status(ctx: click.Context, root: str) -> None:
    """Show applied and pending migrations of ROOT's hierarchy."""
    entity = _root(ctx, root)

    async def _status() -> Any:
        async with connected_executor(ctx.obj["config"]) as executor:
            return await Migrator(ctx.obj["registry"], entity, executor, ctx.obj["options"]).status()

    try:
        result = run_async(_status())
    except SurrealInlineError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not result.applied and not result.pending:
        click.echo("No migrations declared.")
    for migration in result.applied:
        click.echo(f"  [X] {migration.name} ({migration.entity_name})")
    for migration in result.pending:
        click.echo(f"  [ ] {migration.name} ({migration.entity_name})")
    if result.orphaned:
        click.echo(f"{len(result.orphaned)} applied migration(s) no longer declared:")
        for name, entity_name in result.orphaned.items():
            click.echo(f"  [?] {name} ({entity_name})")


@cli.command()
@click.argument("root")
@click.pass_context
def order(ctx: click.Context, root: str) -> None:
    """Print ROOT's hierarchy in table creation order."""
    entity = _root(ctx, root)
    try:
        entities = DependencyResolver(ctx.obj["registry"]).installable_order(entity)
    except SurrealInlineError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for position, item in enumerate(entities, 1):
        click.echo(f"{position}. {item.display_name} [{item.kind}] {item.table_name}")
