"""
Transaction support for the HTTP connection.

Since HTTP is stateless, statements are queued and sent as one
``BEGIN TRANSACTION; ... COMMIT TRANSACTION;`` request on commit, so either
all of them take effect or none does.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self

from ..exceptions import QueryError, TransactionError
from ..utils import validate_identifier
from .types import QueryResponse

if TYPE_CHECKING:
    from .http import HTTPConnection


def build_where(where: dict[str, Any]) -> str:
    """Render ``field = $field AND ...`` for a filter mapping."""
    for key in where:
        validate_identifier(key, "field name")
    return " AND ".join(f"{key} = ${key}" for key in where)


def build_insert(table: str, record: dict[str, Any]) -> str:
    validate_identifier(table, "table name")
    for key in record:
        validate_identifier(key, "field name")
    fields = ", ".join(f"{key} = ${key}" for key in record)
    return f"CREATE {table} SET {fields};"


def build_delete(table: str, where: dict[str, Any]) -> str:
    validate_identifier(table, "table name")
    return f"DELETE {table} WHERE {build_where(where)};"


def build_select(table: str, where: dict[str, Any] | None = None) -> str:
    validate_identifier(table, "table name")
    if where:
        return f"SELECT * FROM {table} WHERE {build_where(where)};"
    return f"SELECT * FROM {table};"


@dataclass
class TransactionStatement:
    """A single statement queued in a transaction."""

    sql: str
    vars: dict[str, Any] = field(default_factory=dict)


class HTTPTransaction:
    """
    HTTP-based transaction that batches statements.

    Usage:
        async with conn.transaction() as tx:
            await tx.execute("DEFINE FIELD age ON vendor TYPE int;")
            await tx.insert("schema_migrations", {"name": "20110308_1335_simple", "model_class": "Vendor"})
            # Auto-commit on success, auto-rollback on exception
    """

    def __init__(self, connection: HTTPConnection):
        self._connection = connection
        self._statements: list[TransactionStatement] = []
        self._committed = False
        self._rolled_back = False
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active and not self._committed and not self._rolled_back

    @property
    def is_committed(self) -> bool:
        return self._committed

    @property
    def is_rolled_back(self) -> bool:
        return self._rolled_back

    @property
    def statements(self) -> list[TransactionStatement]:
        return list(self._statements)

    async def __aenter__(self) -> Self:
        if self._active:
            raise TransactionError("Transaction already active")
        self._active = True
        self._statements = []
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        """Commit on success, rollback on exception."""
        if exc_type is not None:
            await self.rollback()
            return False  # Re-raise exception
        await self.commit()
        return False

    def _queue_statement(self, sql: str, vars: dict[str, Any] | None = None) -> None:
        if not self.is_active:
            raise TransactionError("Transaction not active")
        self._statements.append(TransactionStatement(sql=sql, vars=dict(vars or {})))

    async def execute(self, sql: str, vars: dict[str, Any] | None = None) -> None:
        """Queue a statement for execution on commit."""
        self._queue_statement(sql, vars)

    async def insert(self, table: str, record: dict[str, Any]) -> None:
        self._queue_statement(build_insert(table, record), record)

    async def delete(self, table: str, where: dict[str, Any]) -> None:
        self._queue_statement(build_delete(table, where), where)

    async def commit(self) -> QueryResponse:
        """Execute all queued statements atomically."""
        if not self.is_active:
            raise TransactionError("Transaction not active")

        if not self._statements:
            self._committed = True
            self._active = False
            return QueryResponse()

        sql_parts = ["BEGIN TRANSACTION;"]
        all_vars: dict[str, Any] = {}

        for i, stmt in enumerate(self._statements):
            sql = stmt.sql
            # Namespace variables to avoid conflicts between statements
            for key, val in stmt.vars.items():
                namespaced_key = f"tx_{i}_{key}"
                all_vars[namespaced_key] = val
                sql = re.sub(rf"\${re.escape(key)}\b", f"${namespaced_key}", sql)
            sql_parts.append(sql)

        sql_parts.append("COMMIT TRANSACTION;")
        full_sql = "\n".join(sql_parts)

        try:
            result = await self._connection.query(full_sql, all_vars)
        except QueryError as e:
            self._active = False
            raise TransactionError(f"Transaction commit failed: {e}") from e

        self._committed = True
        self._active = False
        return result

    async def rollback(self) -> None:
        """Discard queued statements (no server call needed for HTTP)."""
        self._statements = []
        self._rolled_back = True
        self._active = False
