"""
The ledger of applied migrations.

One row per applied migration: its name (the primary key, stored in a
configurable column) and the name of the entity that declares it. The table
is created on first use.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from ..config import DEFAULT_LEDGER_COLUMN, DEFAULT_LEDGER_TABLE
from ..exceptions import LedgerSchemaError
from ..schema import FieldDefinition, TableSchema
from ..types import FieldType
from ..utils import validate_identifier

if TYPE_CHECKING:
    from ..ddl import DDLExecutor, Session

logger = logging.getLogger(__name__)

MODEL_CLASS_COLUMN = "model_class"


class LedgerRecord(BaseModel):
    """A migration recorded as applied."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    model_class: str = Field(min_length=1)

    @classmethod
    def from_row(cls, row: dict[str, Any], column: str = DEFAULT_LEDGER_COLUMN) -> LedgerRecord:
        return cls(name=row[column], model_class=row[MODEL_CLASS_COLUMN])

    def to_row(self, column: str = DEFAULT_LEDGER_COLUMN) -> dict[str, str]:
        return {column: self.name, MODEL_CLASS_COLUMN: self.model_class}


class Ledger:
    """
    Reads and writes ledger rows through a ``DDLExecutor``.

    Writes that belong to a migration step go through the step's session so
    they commit or roll back together with the migration itself.
    """

    def __init__(
        self,
        executor: DDLExecutor,
        table: str = DEFAULT_LEDGER_TABLE,
        column: str = DEFAULT_LEDGER_COLUMN,
    ):
        validate_identifier(table, "ledger table name")
        validate_identifier(column, "ledger column name")
        self.executor = executor
        self.table = table
        self.column = column
        self._ready = False

    @property
    def schema(self) -> TableSchema:
        return TableSchema(
            fields=[
                FieldDefinition(self.column, FieldType.STRING),
                FieldDefinition(MODEL_CLASS_COLUMN, FieldType.STRING),
            ],
            primary_key=self.column,
        )

    async def ensure(self) -> None:
        """
        Create the ledger table if it doesn't exist.

        Raises:
            LedgerSchemaError: If the table exists without the name column.
        """
        if self._ready:
            return

        logger.info(f"Schema dataset is: {self.table}")
        if not await self.executor.table_exists(self.table):
            logger.info("No migrations table: Installing one.")
            await self.executor.create_table(self.table, self.schema)
        else:
            # An empty schemaless table reports no columns yet
            columns = await self.executor.table_columns(self.table)
            if columns and self.column not in columns:
                raise LedgerSchemaError(
                    f"Migrator table {self.table!r} does not contain column {self.column!r} ({columns})"
                )

        self._ready = True

    async def records(self) -> list[LedgerRecord]:
        await self.ensure()
        rows = await self.executor.select(self.table)
        return [LedgerRecord.from_row(row, self.column) for row in rows]

    async def applied_map(self, entity_names: list[str]) -> dict[str, str]:
        """Map migration name to owning entity name, for rows owned by ``entity_names``."""
        wanted = set(entity_names)
        return {r.name: r.model_class for r in await self.records() if r.model_class in wanted}

    async def contains(self, record: LedgerRecord) -> bool:
        await self.ensure()
        rows = await self.executor.select(self.table, record.to_row(self.column))
        return bool(rows)

    async def insert(self, record: LedgerRecord) -> None:
        """Insert a row outside of any migration step (fast-forwarding)."""
        await self.ensure()
        await self.executor.insert(self.table, record.to_row(self.column))

    async def record_applied(self, session: Session, record: LedgerRecord) -> None:
        await session.insert(self.table, record.to_row(self.column))

    async def record_reverted(self, session: Session, record: LedgerRecord) -> None:
        await session.delete(self.table, record.to_row(self.column))
