"""
In-memory ``DDLExecutor`` for tests.

Keeps tables, views and rows in dictionaries and logs every statement it
would have sent, so tests can assert on what ran without a database::

    executor = MemoryExecutor()
    await SchemaInstaller(registry, executor).migrate(model)
    assert "DEFINE FIELD age ON things TYPE number;" in executor.statements

Statements executed inside a transaction are only logged (and their row
changes applied) when the transaction commits.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Self

from ..connection.transaction import build_delete, build_insert
from ..exceptions import QueryError, TransactionError
from ..schema import TableSchema, ViewDefinition

logger = logging.getLogger(__name__)

FailurePredicate = Callable[[str], bool]


def _matches(row: dict[str, Any], where: dict[str, Any] | None) -> bool:
    return not where or all(row.get(key) == value for key, value in where.items())


@dataclass
class _PendingWrite:
    sql: str
    apply: Callable[[], None] | None = None


class MemoryTransaction:
    """A buffered transaction over a ``MemoryExecutor``."""

    def __init__(self, executor: MemoryExecutor):
        self._executor = executor
        self._writes: list[_PendingWrite] = []
        self.committed = False
        self.rolled_back = False

    async def __aenter__(self) -> Self:
        self._executor.transactions.append(self)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        if exc_type is not None:
            self.rollback()
            return False
        self.commit()
        return False

    def _check_open(self) -> None:
        if self.committed or self.rolled_back:
            raise TransactionError("Transaction not active")

    async def execute(self, sql: str, vars: dict[str, Any] | None = None) -> None:
        self._check_open()
        self._executor._check_failure(sql)
        self._writes.append(_PendingWrite(sql))

    async def insert(self, table: str, record: dict[str, Any]) -> None:
        self._check_open()
        sql = build_insert(table, record)
        self._executor._check_failure(sql)
        self._executor._check_insert(table, record)
        self._writes.append(_PendingWrite(sql, lambda: self._executor._rows[table].append(dict(record))))

    async def delete(self, table: str, where: dict[str, Any]) -> None:
        self._check_open()
        sql = build_delete(table, where)
        self._executor._check_failure(sql)
        self._writes.append(_PendingWrite(sql, lambda: self._executor._delete_rows(table, where)))

    def commit(self) -> None:
        self._check_open()
        for write in self._writes:
            self._executor.statements.append(write.sql)
            if write.apply is not None:
                write.apply()
        self.committed = True

    def rollback(self) -> None:
        self._executor.rolled_back.extend(write.sql for write in self._writes)
        self._writes = []
        self.rolled_back = True


@dataclass
class MemoryExecutor:
    """
    ``DDLExecutor`` keeping everything in memory.

    Attributes:
        statements: Every statement that took effect, in order
        rolled_back: Statements discarded by rolled-back transactions
        transactions: Every transaction opened, in order
        fail_when: Predicate on a statement; matching statements raise ``QueryError``
    """

    statements: list[str] = field(default_factory=list)
    rolled_back: list[str] = field(default_factory=list)
    transactions: list[MemoryTransaction] = field(default_factory=list)
    fail_when: FailurePredicate | None = None
    _tables: dict[str, TableSchema] = field(default_factory=dict)
    _views: dict[str, ViewDefinition] = field(default_factory=dict)
    _rows: dict[str, list[dict[str, Any]]] = field(default_factory=dict)

    def fail_on(self, pattern: str) -> None:
        """Make statements matching the regex ``pattern`` fail."""
        regex = re.compile(pattern)
        self.fail_when = lambda sql: regex.search(sql) is not None

    def _check_failure(self, sql: str) -> None:
        if self.fail_when is not None and self.fail_when(sql):
            raise QueryError(f"Simulated failure for: {sql}", query=sql)

    def _check_insert(self, table: str, record: dict[str, Any]) -> None:
        if table not in self._tables:
            raise QueryError(f"The table '{table}' does not exist")
        primary_key = self._tables[table].primary_key
        if primary_key is None:
            return
        value = record.get(primary_key)
        if any(row.get(primary_key) == value for row in self._rows[table]):
            raise QueryError(f"Database index `{table}_pkey` already contains {value!r}")

    def _delete_rows(self, table: str, where: dict[str, Any]) -> None:
        self._rows[table] = [row for row in self._rows.get(table, []) if not _matches(row, where)]

    # Inspection helpers for tests

    def rows(self, table: str) -> list[dict[str, Any]]:
        return list(self._rows.get(table, []))

    def seed(self, table: str, rows: list[dict[str, Any]], schema: TableSchema | None = None) -> None:
        """Create ``table`` (schemaless unless ``schema`` is given) and add ``rows`` to it."""
        if table not in self._tables:
            self._tables[table] = schema or TableSchema()
            self._rows[table] = []
        self._rows[table].extend(dict(row) for row in rows)

    # DDLExecutor

    async def table_exists(self, name: str) -> bool:
        return name in self._tables or name in self._views

    async def view_exists(self, name: str) -> bool:
        return name in self._views

    async def table_columns(self, name: str) -> list[str]:
        if name in self._tables:
            columns = self._tables[name].columns
            if columns:
                return columns
            # Schemaless: report the fields present in the rows
            seen: dict[str, None] = {}
            for row in self._rows.get(name, []):
                seen.update(dict.fromkeys(row))
            return list(seen)
        return []

    async def create_table(self, name: str, schema: TableSchema) -> None:
        if name in self._tables:
            raise QueryError(f"The table '{name}' already exists")
        statements = schema.statements(name)
        for sql in statements:
            self._check_failure(sql)
        self.statements.extend(statements)
        self._tables[name] = schema
        self._rows[name] = []

    async def drop_table(self, name: str, if_exists: bool = False) -> None:
        if name not in self._tables and name not in self._views:
            if if_exists:
                self.statements.append(f"REMOVE TABLE IF EXISTS {name};")
                return
            raise QueryError(f"The table '{name}' does not exist")
        sql = f"REMOVE TABLE IF EXISTS {name};" if if_exists else f"REMOVE TABLE {name};"
        self._check_failure(sql)
        self.statements.append(sql)
        self._tables.pop(name, None)
        self._views.pop(name, None)
        self._rows.pop(name, None)

    async def create_view(self, name: str, view: ViewDefinition, overwrite: bool = False) -> None:
        if not overwrite and (name in self._views or name in self._tables):
            raise QueryError(f"The table '{name}' already exists")
        sql = view.to_sql(name, overwrite=overwrite)
        self._check_failure(sql)
        self.statements.append(sql)
        self._views[name] = view

    async def drop_view(self, name: str, if_exists: bool = False) -> None:
        await self.drop_table(name, if_exists=if_exists)

    async def select(self, table: str, where: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        return [dict(row) for row in self._rows.get(table, []) if _matches(row, where)]

    async def insert(self, table: str, record: dict[str, Any]) -> None:
        sql = build_insert(table, record)
        self._check_failure(sql)
        self._check_insert(table, record)
        self.statements.append(sql)
        self._rows[table].append(dict(record))

    def transaction(self) -> MemoryTransaction:
        return MemoryTransaction(self)
