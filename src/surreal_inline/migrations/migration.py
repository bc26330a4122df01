"""
Inline migrations and their bodies.

An ``InlineMigration`` is declared on an entity and identified by a
timestamped name, which is also what orders it. Its body is opaque to the
migrator: it is only ever asked to ``apply`` itself in a direction, inside
the session of the transaction that also records it in the ledger.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from ..exceptions import IrreversibleMigrationError
from ..types import Direction

if TYPE_CHECKING:
    from ..ddl import Session
    from ..entity import Entity
    from .operations import Operation

# <year><month><day>_<hour><minute>_<underscored_description>
MIGRATION_NAME_PATTERN = re.compile(r"\A\d{8}_\d{4}_\w+\Z", re.ASCII)


class MigrationBody(Protocol):
    """Anything able to apply a schema change in either direction."""

    async def apply(self, session: Session, direction: Direction) -> None: ...


@dataclass
class Change:
    """
    A body made of operations that know how to reverse themselves.

    Forward runs the operations in order; reverse runs their backwards
    statements in reverse order, and refuses to start if any of them is
    irreversible.

    Example:
        Change([
            AddField(table="vendor", name="created_at", field_type="datetime"),
            CreateIndex(table="vendor", name="vendor_created", fields=["created_at"]),
        ])
    """

    operations: list[Operation] = field(default_factory=list)

    @property
    def is_reversible(self) -> bool:
        return all(op.reversible for op in self.operations)

    async def apply(self, session: Session, direction: Direction) -> None:
        if direction == Direction.FORWARD:
            for op in self.operations:
                await op.apply_forwards(session)
            return

        irreversible = [op.describe() for op in self.operations if not op.reversible]
        if irreversible:
            raise IrreversibleMigrationError(f"Cannot reverse: {', '.join(irreversible)}")
        for op in reversed(self.operations):
            await op.apply_backwards(session)

    def describe(self) -> str:
        return "; ".join(op.describe() for op in self.operations)


@dataclass
class UpDown:
    """
    A body made of two coroutines, ``up(session)`` and ``down(session)``.

    Without ``down`` the migration is irreversible.
    """

    up: Callable[[Session], Awaitable[Any]]
    down: Callable[[Session], Awaitable[Any]] | None = None

    @property
    def is_reversible(self) -> bool:
        return self.down is not None

    async def apply(self, session: Session, direction: Direction) -> None:
        if direction == Direction.FORWARD:
            await self.up(session)
        elif self.down is None:
            raise IrreversibleMigrationError("Migration has no down step")
        else:
            await self.down(session)


@dataclass
class FunctionBody:
    """A body made of one coroutine receiving the session and the direction."""

    func: Callable[[Session, Direction], Awaitable[Any]]

    @property
    def is_reversible(self) -> bool:
        return True

    async def apply(self, session: Session, direction: Direction) -> None:
        await self.func(session, direction)


@dataclass(eq=False)
class InlineMigration:
    """
    A named schema change owned by an entity.

    Attributes:
        name: ``YYYYMMDD_HHMM_description``; ordering key and ledger identity
        description: Human-readable description
        entity: Owning entity
        body: The change itself
        source: ``file:line`` where the migration was declared
    """

    name: str
    description: str | None
    entity: Entity
    body: MigrationBody
    source: str | None = None

    @property
    def entity_name(self) -> str:
        return self.entity.name or ""

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.name, self.entity_name)

    @property
    def is_reversible(self) -> bool:
        return bool(getattr(self.body, "is_reversible", True))

    async def apply(self, session: Session, direction: Direction) -> None:
        await self.body.apply(session, direction)

    def describe(self) -> str:
        return self.description or self.name

    def __repr__(self) -> str:
        return f"InlineMigration(name={self.name!r}, entity={self.entity.name!r})"


__all__ = [
    "MIGRATION_NAME_PATTERN",
    "MigrationBody",
    "Change",
    "UpDown",
    "FunctionBody",
    "InlineMigration",
]
