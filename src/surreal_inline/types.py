"""
Type definitions for surreal-inline.

This module contains the enums shared by the resolver, the migrator and the
schema builder: migration directions, entity kinds, association kinds,
schema modes and field types.
"""

from enum import StrEnum


class Direction(StrEnum):
    """
    Direction in which a migration is applied.

    - FORWARD: apply the change and record it in the ledger
    - REVERSE: undo the change and remove it from the ledger
    """

    FORWARD = "forward"
    REVERSE = "reverse"


class EntityKind(StrEnum):
    """
    How an entity is backed in the database.

    - TABLE: a regular table created from the entity's schema
    - VIEW: a pre-computed table defined by a SELECT query
    """

    TABLE = "table"
    VIEW = "view"


class AssociationKind(StrEnum):
    """
    Association types between entities.

    Only MANY_TO_ONE associations imply a creation-order dependency, since
    they are the ones where the entity's own table holds the reference.
    """

    MANY_TO_ONE = "many_to_one"
    ONE_TO_MANY = "one_to_many"
    ONE_TO_ONE = "one_to_one"
    MANY_TO_MANY = "many_to_many"


class SchemaMode(StrEnum):
    """
    Schema enforcement mode for SurrealDB tables.

    - SCHEMAFULL: Strict schema enforcement, only defined fields allowed
    - SCHEMALESS: Flexible schema, any fields accepted
    """

    SCHEMAFULL = "SCHEMAFULL"
    SCHEMALESS = "SCHEMALESS"


class FieldType(StrEnum):
    """
    SurrealDB field types for schema definitions.

    Generic Type Syntax:
        For typed collections/references, use the generic() method:
        - FieldType.ARRAY.generic("string") -> "array<string>"
        - FieldType.RECORD.generic("users") -> "record<users>"
        - FieldType.OPTION.generic("int") -> "option<int>"
    """

    # Numeric types
    INT = "int"
    FLOAT = "float"
    DECIMAL = "decimal"
    NUMBER = "number"

    # Primitive types
    STRING = "string"
    BOOL = "bool"
    DATETIME = "datetime"
    DURATION = "duration"
    BYTES = "bytes"
    UUID = "uuid"

    # Collection types
    ARRAY = "array"
    SET = "set"
    OBJECT = "object"

    # Special types
    ANY = "any"
    OPTION = "option"
    RECORD = "record"

    def generic(self, inner_type: str) -> str:
        """
        Create a generic type string for parameterized types.

        Examples:
            >>> FieldType.ARRAY.generic("string")
            'array<string>'
            >>> FieldType.RECORD.generic("users")
            'record<users>'
        """
        return f"{self.value}<{inner_type}>"


def normalize_field_type(field_type: FieldType | str) -> str:
    """
    Normalize a field type to its string representation.

    Accepts a FieldType or a string. Strings must be a known FieldType value,
    a generic type (``array<string>``) or a union (``int | null``).

    Raises:
        ValueError: If the string is not a valid SurrealDB type
    """
    if isinstance(field_type, FieldType):
        return field_type.value

    try:
        return FieldType(field_type).value
    except ValueError:
        pass

    if "<" in field_type and field_type.endswith(">"):
        base_type = field_type.split("<")[0]
        try:
            FieldType(base_type)
            return field_type
        except ValueError:
            pass

    if "|" in field_type:
        return field_type

    raise ValueError(
        f"Invalid field type: '{field_type}'. "
        f"Must be a FieldType enum value, a valid SurrealDB type string, "
        f"or a generic type like 'array<string>' or 'record<users>'."
    )
