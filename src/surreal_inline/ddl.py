"""
DDL execution.

The resolver, the migrator and the installer only talk to the database
through the ``DDLExecutor`` protocol. ``SurrealExecutor`` implements it on
top of an ``HTTPConnection``; ``surreal_inline.testing.MemoryExecutor``
implements it in memory.
"""

from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Any, Protocol

from .connection.transaction import build_insert, build_select
from .utils import validate_identifier

if TYPE_CHECKING:
    from .connection.http import HTTPConnection
    from .schema import TableSchema, ViewDefinition

logger = logging.getLogger(__name__)


class Session(Protocol):
    """Statement interface available inside a transaction."""

    async def execute(self, sql: str, vars: dict[str, Any] | None = None) -> None: ...

    async def insert(self, table: str, record: dict[str, Any]) -> None: ...

    async def delete(self, table: str, where: dict[str, Any]) -> None: ...


class DDLExecutor(Protocol):
    """Everything this package needs from a database."""

    async def table_exists(self, name: str) -> bool: ...

    async def view_exists(self, name: str) -> bool: ...

    async def table_columns(self, name: str) -> list[str]: ...

    async def create_table(self, name: str, schema: TableSchema) -> None: ...

    async def drop_table(self, name: str, if_exists: bool = False) -> None: ...

    async def create_view(self, name: str, view: ViewDefinition, overwrite: bool = False) -> None: ...

    async def drop_view(self, name: str, if_exists: bool = False) -> None: ...

    async def select(self, table: str, where: dict[str, Any] | None = None) -> list[dict[str, Any]]: ...

    async def insert(self, table: str, record: dict[str, Any]) -> None: ...

    def transaction(self) -> AbstractAsyncContextManager[Session]: ...


class SurrealExecutor:
    """
    ``DDLExecutor`` backed by SurrealDB.

    Views are SurrealDB pre-computed tables (``DEFINE TABLE ... AS SELECT``),
    so they are listed among the tables of the database and told apart by
    their definition.
    """

    def __init__(self, connection: HTTPConnection):
        self.connection = connection

    async def _db_tables(self) -> dict[str, str]:
        response = await self.connection.query("INFO FOR DB;")
        info = response.first_result.result if response.first_result else None
        if not isinstance(info, dict):
            return {}
        # SurrealDB 1.x reports tables under "tb"
        tables = info.get("tables", info.get("tb", {}))
        return {name: str(definition) for name, definition in tables.items()}

    async def table_exists(self, name: str) -> bool:
        return name in await self._db_tables()

    async def view_exists(self, name: str) -> bool:
        definition = (await self._db_tables()).get(name)
        return definition is not None and " AS SELECT" in definition.upper()

    async def table_columns(self, name: str) -> list[str]:
        validate_identifier(name, "table name")
        response = await self.connection.query(f"INFO FOR TABLE {name};")
        info = response.first_result.result if response.first_result else None
        if not isinstance(info, dict):
            return []
        fields = info.get("fields", info.get("fd", {}))
        return list(fields)

    async def create_table(self, name: str, schema: TableSchema) -> None:
        async with self.transaction() as tx:
            for statement in schema.statements(name):
                await tx.execute(statement)

    async def drop_table(self, name: str, if_exists: bool = False) -> None:
        validate_identifier(name, "table name")
        keyword = "REMOVE TABLE IF EXISTS" if if_exists else "REMOVE TABLE"
        await self.connection.query(f"{keyword} {name};")

    async def create_view(self, name: str, view: ViewDefinition, overwrite: bool = False) -> None:
        await self.connection.query(view.to_sql(name, overwrite=overwrite))

    async def drop_view(self, name: str, if_exists: bool = False) -> None:
        await self.drop_table(name, if_exists=if_exists)

    async def select(self, table: str, where: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        response = await self.connection.query(build_select(table, where), where)
        return response.all_records

    async def insert(self, table: str, record: dict[str, Any]) -> None:
        await self.connection.query(build_insert(table, record), record)

    def transaction(self) -> AbstractAsyncContextManager[Session]:
        return self.connection.transaction()


__all__ = ["Session", "DDLExecutor", "SurrealExecutor"]
