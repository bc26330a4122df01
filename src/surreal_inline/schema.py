"""
Schema definitions for entity tables and views.

A ``TableSchema`` describes the *latest* state of an entity's table: it is
defined to already incorporate every migration declared on the entity, which
is why creating a table fast-forwards those migrations in the ledger instead
of running them.

Example:
    schema = TableSchema(
        fields=[
            FieldDefinition("name", FieldType.STRING),
            FieldDefinition("created_at", FieldType.DATETIME, default="time::now()"),
        ],
        indexes=[IndexDefinition("vendor_name", ["name"])],
    )
    schema.statements("vendor")
"""

from dataclasses import dataclass, field
from typing import Any

from .types import FieldType, SchemaMode, normalize_field_type
from .utils import escape_single_quotes, validate_identifier


def render_default(default: Any) -> str:
    """Render a DEFAULT value as a SurrealQL literal (function calls pass through)."""
    if isinstance(default, str):
        if default.startswith("time::") or default.startswith("rand::"):
            return default
        return f"'{escape_single_quotes(default)}'"
    if isinstance(default, bool):
        return str(default).lower()
    return str(default)


@dataclass
class FieldDefinition:
    """
    A single field of a table.

    Attributes:
        name: Field name
        field_type: SurrealDB type (``FieldType`` or type string)
        nullable: Wrap the type in ``option<...>``
        default: Default value if any
        assertion: Validation assertion
        value: VALUE clause for computed fields
        readonly: Whether the field is read-only
        comment: Optional comment
    """

    name: str
    field_type: FieldType | str = FieldType.ANY
    nullable: bool = False
    default: Any = None
    assertion: str | None = None
    value: str | None = None
    readonly: bool = False
    comment: str | None = None

    def __post_init__(self) -> None:
        validate_identifier(self.name, "field name")
        normalize_field_type(self.field_type)

    @property
    def type_sql(self) -> str:
        normalized = normalize_field_type(self.field_type)
        if self.nullable and not normalized.startswith("option<"):
            return f"option<{normalized}>"
        return normalized

    def to_sql(self, table: str) -> str:
        parts = [f"DEFINE FIELD {self.name} ON {table} TYPE {self.type_sql}"]

        if self.value:
            parts.append(f"VALUE {self.value}")

        if self.default is not None:
            parts.append(f"DEFAULT {render_default(self.default)}")

        if self.assertion:
            parts.append(f"ASSERT {self.assertion}")

        if self.readonly:
            parts.append("READONLY")

        if self.comment:
            parts.append(f"COMMENT '{escape_single_quotes(self.comment)}'")

        return " ".join(parts) + ";"


@dataclass
class IndexDefinition:
    """
    An index on one or more fields of a table.

    Attributes:
        name: Index name
        fields: List of field names in the index
        unique: Whether the index enforces uniqueness
    """

    name: str
    fields: list[str]
    unique: bool = False

    def __post_init__(self) -> None:
        validate_identifier(self.name, "index name")
        if not self.fields:
            raise ValueError(f"Index {self.name!r} must cover at least one field")

    def to_sql(self, table: str) -> str:
        sql = f"DEFINE INDEX {self.name} ON {table} FIELDS {', '.join(self.fields)}"
        if self.unique:
            sql += " UNIQUE"
        return sql + ";"


@dataclass
class TableSchema:
    """
    Column and constraint set of a table, consumed by ``create_table``.

    ``primary_key`` names a field whose values must be unique; SurrealDB has no
    user-defined primary keys, so it is rendered as a unique index named
    ``<table>_pkey``.
    """

    fields: list[FieldDefinition] = field(default_factory=list)
    indexes: list[IndexDefinition] = field(default_factory=list)
    schema_mode: SchemaMode = SchemaMode.SCHEMAFULL
    primary_key: str | None = None
    comment: str | None = None

    def __post_init__(self) -> None:
        if self.primary_key is not None and self.primary_key not in self.columns:
            raise ValueError(f"Primary key {self.primary_key!r} is not one of the fields {self.columns}")

    @property
    def columns(self) -> list[str]:
        """Names of the declared fields, in declaration order."""
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> FieldDefinition | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def statements(self, table: str) -> list[str]:
        """Return the DEFINE statements creating ``table`` with this schema."""
        validate_identifier(table, "table name")

        define = f"DEFINE TABLE {table} {self.schema_mode.value}"
        if self.comment:
            define += f" COMMENT '{escape_single_quotes(self.comment)}'"
        statements = [define + ";"]

        statements.extend(f.to_sql(table) for f in self.fields)

        if self.primary_key:
            statements.append(IndexDefinition(f"{table}_pkey", [self.primary_key], unique=True).to_sql(table))

        statements.extend(index.to_sql(table) for index in self.indexes)
        return statements


@dataclass
class ViewDefinition:
    """
    A view-backed entity: a pre-computed table defined by a SELECT query.

    Example:
        ViewDefinition("SELECT count() AS total, vendor FROM purchase GROUP BY vendor")

    Generates:
        DEFINE TABLE purchase_totals TYPE NORMAL AS SELECT count() AS total, vendor FROM purchase GROUP BY vendor;
    """

    query: str
    comment: str | None = None

    def __post_init__(self) -> None:
        if not self.query.strip().upper().startswith("SELECT"):
            raise ValueError(f"View query must be a SELECT statement: {self.query!r}")

    def to_sql(self, name: str, overwrite: bool = False) -> str:
        validate_identifier(name, "view name")
        keyword = "DEFINE TABLE OVERWRITE" if overwrite else "DEFINE TABLE"
        sql = f"{keyword} {name} TYPE NORMAL AS {self.query.strip().rstrip(';')}"
        if self.comment:
            sql += f" COMMENT '{escape_single_quotes(self.comment)}'"
        return sql + ";"


__all__ = ["FieldDefinition", "IndexDefinition", "TableSchema", "ViewDefinition", "render_default"]
