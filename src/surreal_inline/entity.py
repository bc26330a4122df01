"""
Entities and the registry that owns them.

An ``Entity`` is a schema-bearing declaration: usually a table, sometimes a
view. Entities form a hierarchy through ``parent`` links and reference each
other through associations; both relationships drive table creation order.
Each entity also owns the migrations declared on it.

Example:
    registry = EntityRegistry()
    model = registry.define(None, abstract=True)
    company = registry.define("Company", parent=model, schema=TableSchema(...))
    vendor = registry.define(
        "Vendor",
        parent=model,
        schema=TableSchema(...),
        associations=[Association.many_to_one("company", "Company")],
    )

    vendor.migration(
        "20110228_1115_add_timestamps",
        "Add timestamp fields",
        Change([AddField("vendor", "created_at", FieldType.DATETIME)]),
    )
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

from .exceptions import AnonymousMigrationOwnerError, InvalidMigrationNameError, UnknownEntityError
from .hooks import EntityHooks
from .migrations.migration import MIGRATION_NAME_PATTERN, FunctionBody, InlineMigration, MigrationBody
from .schema import TableSchema, ViewDefinition
from .types import AssociationKind, EntityKind
from .utils import table_name_for, validate_identifier

logger = logging.getLogger(__name__)

SchemaFactory = Callable[[], TableSchema]


@dataclass
class Association:
    """
    A reference from one entity to another.

    Attributes:
        name: Association name (usually the referencing field)
        kind: Association type
        target: Target entity, or its registered name (resolved lazily)
        polymorphic: Polymorphic associations have no fixed target table and
            never imply a creation-order dependency
    """

    name: str
    kind: AssociationKind
    target: Entity | str | None = None
    polymorphic: bool = False

    @classmethod
    def many_to_one(cls, name: str, target: Entity | str, polymorphic: bool = False) -> Association:
        return cls(name=name, kind=AssociationKind.MANY_TO_ONE, target=target, polymorphic=polymorphic)

    @classmethod
    def one_to_many(cls, name: str, target: Entity | str) -> Association:
        return cls(name=name, kind=AssociationKind.ONE_TO_MANY, target=target)

    @property
    def is_dependency(self) -> bool:
        """Whether the owning entity's table references the target's table."""
        return self.kind == AssociationKind.MANY_TO_ONE and not self.polymorphic


@dataclass(eq=False)
class Entity:
    """
    A schema-bearing unit, table- or view-backed.

    Entities are created through ``EntityRegistry.define`` and compare by
    identity. Anonymous (``name=None``) and abstract entities have no table of
    their own; they are traversed when ordering tables but never installed.
    """

    name: str | None
    registry: EntityRegistry = field(repr=False)
    parent: Entity | None = field(default=None, repr=False)
    abstract: bool = False
    view: ViewDefinition | None = None
    associations: list[Association] = field(default_factory=list, repr=False)
    migrations: dict[str, InlineMigration] = field(default_factory=dict, repr=False)
    hooks: EntityHooks = field(default_factory=EntityHooks, repr=False)
    _table_name: str | None = field(default=None, repr=False)
    _schema: TableSchema | None = field(default=None, repr=False)
    _schema_factory: SchemaFactory | None = field(default=None, repr=False)

    @property
    def display_name(self) -> str:
        return self.name or "<anonymous entity>"

    @property
    def kind(self) -> EntityKind:
        return EntityKind.VIEW if self.view is not None else EntityKind.TABLE

    @property
    def is_installable(self) -> bool:
        """Named, concrete entities are the only ones backed by a table or view."""
        return bool(self.name) and not self.abstract

    @property
    def table_name(self) -> str | None:
        """Name of the backing table; defaults to the snake-cased entity name."""
        if self._table_name:
            return self._table_name
        if self.name and not self.abstract:
            return table_name_for(self.name)
        return None

    @property
    def schema(self) -> TableSchema | None:
        """
        The declared schema, resolved lazily from its factory, falling back
        to the nearest ancestor's schema when this entity declares none.
        """
        if self._schema is None and self._schema_factory is not None:
            self._schema = self._schema_factory()
        if self._schema is not None:
            return self._schema
        if self.parent is not None:
            return self.parent.schema
        return None

    def set_schema(self, schema: TableSchema | SchemaFactory) -> None:
        """Attach a schema or a zero-argument factory returning one."""
        if isinstance(schema, TableSchema):
            self._schema = schema
            self._schema_factory = None
        else:
            self._schema = None
            self._schema_factory = schema

    def ancestors(self) -> Iterator[Entity]:
        """Yield the parent chain, nearest first."""
        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    def is_descendant_of(self, other: Entity) -> bool:
        return any(ancestor is other for ancestor in self.ancestors())

    def dependencies(self) -> Iterator[Entity]:
        """Yield the targets of this entity's non-polymorphic many-to-one associations."""
        for association in self.associations:
            if not association.is_dependency or association.target is None:
                continue
            target = self.registry.resolve(association.target)
            # A self reference does not order this table against another one
            if target is not self:
                yield target

    def migration(
        self,
        name: str,
        description: str | None = None,
        body: MigrationBody | None = None,
    ) -> Any:
        """
        Declare a migration on this entity.

        The name must look like ``<year><month><day>_<hour><minute>_<desc>``.
        Pass a ``body`` (``Change`` or ``UpDown``), or use this method as a
        decorator on an ``async def up(session, direction)`` coroutine::

            @vendor.migration("20110303_1751_index_name", "Add an index to the name field")
            async def index_name(session, direction):
                ...

        Raises:
            InvalidMigrationNameError: If the name is malformed.
            AnonymousMigrationOwnerError: If this entity has no name.
        """
        if not MIGRATION_NAME_PATTERN.match(name):
            raise InvalidMigrationNameError(name)
        if self.name is None:
            raise AnonymousMigrationOwnerError(name)

        if body is not None:
            caller = inspect.stack(context=0)[1]
            return self._add_migration(name, description, body, f"{caller.filename}:{caller.lineno}")

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            code = func.__code__
            self._add_migration(name, description, FunctionBody(func), f"{code.co_filename}:{code.co_firstlineno}")
            return func

        return decorator

    def _add_migration(self, name: str, description: str | None, body: MigrationBody, source: str) -> InlineMigration:
        migration = InlineMigration(name=name, description=description, entity=self, body=body, source=source)
        if name in self.migrations:
            logger.debug(f"Replacing migration {name} on {self.display_name}")
        self.migrations[name] = migration
        return migration

    def __repr__(self) -> str:
        return f"Entity(name={self.name!r}, kind={self.kind.value!r}, table={self.table_name!r})"


class EntityRegistry:
    """
    Owns a set of entities, in declaration order.

    Registries are explicit objects: two registries never share entities, so
    tests and applications can keep independent hierarchies side by side.
    """

    def __init__(self) -> None:
        self._entities: list[Entity] = []
        self._by_name: dict[str, Entity] = {}

    def define(
        self,
        name: str | None,
        *,
        parent: Entity | str | None = None,
        table: str | None = None,
        schema: TableSchema | SchemaFactory | None = None,
        view: ViewDefinition | None = None,
        associations: list[Association] | None = None,
        abstract: bool = False,
    ) -> Entity:
        """
        Declare a new entity.

        Args:
            name: Entity name, or ``None`` for an anonymous entity
            parent: Structural supertype (entity or registered name)
            table: Backing table name (defaults to the snake-cased name)
            schema: Table schema, or a factory resolved on first use
            view: Makes the entity view-backed
            associations: References to other entities, in declaration order
            abstract: Abstract entities have no table of their own

        Raises:
            ValueError: If the name is already registered or the table name is invalid.
        """
        if name is not None and name in self._by_name:
            raise ValueError(f"An entity named {name!r} is already registered")
        if table is not None:
            validate_identifier(table, "table name")

        entity = Entity(
            name=name,
            registry=self,
            parent=self.resolve(parent) if parent is not None else None,
            abstract=abstract,
            view=view,
            associations=list(associations or []),
            _table_name=table,
        )
        if schema is not None:
            entity.set_schema(schema)

        self._entities.append(entity)
        if name is not None:
            self._by_name[name] = entity
        return entity

    def get(self, name: str) -> Entity:
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownEntityError(name) from None

    def resolve(self, ref: Entity | str) -> Entity:
        """Return ``ref`` itself, or the entity registered under that name."""
        if isinstance(ref, Entity):
            return ref
        return self.get(ref)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[Entity]:
        return iter(self._entities)

    def __len__(self) -> int:
        return len(self._entities)

    def children(self, entity: Entity) -> list[Entity]:
        """Direct children of ``entity``, in declaration order."""
        return [e for e in self._entities if e.parent is entity]

    def descendants(self, entity: Entity) -> list[Entity]:
        """All structural descendants of ``entity``, depth-first in declaration order."""
        result: list[Entity] = []
        for child in self.children(entity):
            result.append(child)
            result.extend(self.descendants(child))
        return result

    def closure(self, entity: Entity) -> list[Entity]:
        """``entity`` followed by all of its descendants."""
        return [entity, *self.descendants(entity)]

    def roots(self) -> list[Entity]:
        return [e for e in self._entities if e.parent is None]


__all__ = ["Association", "Entity", "EntityRegistry"]
