"""
Migration operations for SurrealDB schema changes.

Each operation represents a single schema modification that can be
applied (forwards) or reverted (backwards). Operations are the building
blocks of ``Change`` migration bodies.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from ..schema import FieldDefinition, IndexDefinition
from ..types import FieldType, normalize_field_type

if TYPE_CHECKING:
    from ..ddl import Session

DataFunc = Callable[["Session"], Awaitable[None]]


@dataclass
class Operation(ABC):
    """
    Base class for all migration operations.

    Operations must implement forwards() and backwards() methods
    that return SurrealQL statements.
    """

    reversible: bool = field(default=True, init=False)

    @abstractmethod
    def forwards(self) -> str:
        """Generate forward SurrealQL statement."""
        ...

    @abstractmethod
    def backwards(self) -> str:
        """Generate rollback SurrealQL statement."""
        ...

    def describe(self) -> str:
        """Human-readable description of the operation."""
        return f"{self.__class__.__name__}"

    async def apply_forwards(self, session: Session) -> None:
        sql = self.forwards()
        if sql:
            await session.execute(sql)

    async def apply_backwards(self, session: Session) -> None:
        sql = self.backwards()
        if sql:
            await session.execute(sql)


@dataclass
class AddField(Operation):
    """
    Add a field to a table.

    Example:
        AddField(table="vendor", name="created_at", field_type=FieldType.DATETIME, default="time::now()")

    Generates:
        DEFINE FIELD created_at ON vendor TYPE datetime DEFAULT time::now();
    """

    table: str
    name: str
    field_type: FieldType | str
    nullable: bool = False
    default: Any = None
    assertion: str | None = None
    value: str | None = None
    readonly: bool = False

    def __post_init__(self) -> None:
        normalize_field_type(self.field_type)

    @property
    def definition(self) -> FieldDefinition:
        return FieldDefinition(
            name=self.name,
            field_type=self.field_type,
            nullable=self.nullable,
            default=self.default,
            assertion=self.assertion,
            value=self.value,
            readonly=self.readonly,
        )

    def forwards(self) -> str:
        return self.definition.to_sql(self.table)

    def backwards(self) -> str:
        return f"REMOVE FIELD {self.name} ON {self.table};"

    def describe(self) -> str:
        return f"Add field {self.name} to {self.table}"


@dataclass
class DropField(Operation):
    """
    Remove a field from a table.

    Reversible only when the ``previous`` definition is given.

    Example:
        DropField(table="vendor", name="fax", previous=FieldDefinition("fax", "string"))

    Generates:
        REMOVE FIELD fax ON vendor;
    """

    table: str
    name: str
    previous: FieldDefinition | None = None

    def __post_init__(self) -> None:
        self.reversible = self.previous is not None

    def forwards(self) -> str:
        return f"REMOVE FIELD {self.name} ON {self.table};"

    def backwards(self) -> str:
        if self.previous is None:
            return ""
        return self.previous.to_sql(self.table)

    def describe(self) -> str:
        return f"Drop field {self.name} from {self.table}"


@dataclass
class AlterField(Operation):
    """
    Redefine an existing field.

    ``DEFINE FIELD`` replaces the previous definition, so reversing simply
    re-emits ``previous``; without it the operation is irreversible.
    """

    table: str
    definition: FieldDefinition
    previous: FieldDefinition | None = None

    def __post_init__(self) -> None:
        self.reversible = self.previous is not None

    def forwards(self) -> str:
        return self.definition.to_sql(self.table)

    def backwards(self) -> str:
        if self.previous is None:
            return ""
        return self.previous.to_sql(self.table)

    def describe(self) -> str:
        return f"Alter field {self.definition.name} on {self.table}"


@dataclass
class CreateIndex(Operation):
    """
    Create an index on a table.

    Example:
        CreateIndex(table="vendor", name="vendor_name", fields=["name"], unique=True)

    Generates:
        DEFINE INDEX vendor_name ON vendor FIELDS name UNIQUE;
    """

    table: str
    name: str
    fields: list[str]
    unique: bool = False

    def forwards(self) -> str:
        return IndexDefinition(self.name, self.fields, unique=self.unique).to_sql(self.table)

    def backwards(self) -> str:
        return f"REMOVE INDEX {self.name} ON {self.table};"

    def describe(self) -> str:
        return f"Create index {self.name} on {self.table}"


@dataclass
class DropIndex(Operation):
    """
    Remove an index from a table.

    Reversible only when the ``previous`` definition is given.
    """

    table: str
    name: str
    previous: IndexDefinition | None = None

    def __post_init__(self) -> None:
        self.reversible = self.previous is not None

    def forwards(self) -> str:
        return f"REMOVE INDEX {self.name} ON {self.table};"

    def backwards(self) -> str:
        if self.previous is None:
            return ""
        return self.previous.to_sql(self.table)

    def describe(self) -> str:
        return f"Drop index {self.name} from {self.table}"


@dataclass
class DataMigration(Operation):
    """
    Execute data transformations on existing records.

    Example:
        DataMigration(
            forwards_sql="UPDATE vendor SET created_at = time::now() WHERE created_at IS NONE;",
        )

    Or with async functions receiving the session:
        DataMigration(
            forwards_func=backfill_contacts,
            backwards_func=None,  # Irreversible
        )
    """

    forwards_sql: str | None = None
    backwards_sql: str | None = None
    forwards_func: DataFunc | None = None
    backwards_func: DataFunc | None = None
    description: str = "Data migration"

    def __post_init__(self) -> None:
        if not self.forwards_sql and not self.forwards_func:
            raise ValueError("DataMigration requires either forwards_sql or forwards_func")
        self.reversible = bool(self.backwards_sql or self.backwards_func)

    def forwards(self) -> str:
        return self.forwards_sql or ""

    def backwards(self) -> str:
        return self.backwards_sql or ""

    async def apply_forwards(self, session: Session) -> None:
        await super().apply_forwards(session)
        if self.forwards_func:
            await self.forwards_func(session)

    async def apply_backwards(self, session: Session) -> None:
        await super().apply_backwards(session)
        if self.backwards_func:
            await self.backwards_func(session)

    def describe(self) -> str:
        return self.description


@dataclass
class RawSQL(Operation):
    """
    Execute raw SurrealQL statements.

    Use with caution - prefer structured operations when possible.

    Example:
        RawSQL(
            sql="DEFINE EVENT vendor_created ON TABLE vendor WHEN $event = 'CREATE' THEN (CREATE log SET action = 'vendor_created');",
            reverse_sql="REMOVE EVENT vendor_created ON TABLE vendor;"
        )
    """

    sql: str
    reverse_sql: str = ""
    description: str = "Raw SQL"

    def __post_init__(self) -> None:
        self.reversible = bool(self.reverse_sql)

    def forwards(self) -> str:
        return self.sql

    def backwards(self) -> str:
        return self.reverse_sql

    def describe(self) -> str:
        return self.description
