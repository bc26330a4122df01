"""
Table creation ordering.

Builds the dependency graph of an entity hierarchy, where an entity depends
on its ancestors and on the targets of its non-polymorphic many-to-one
associations, and sorts it topologically so every table is created after
the tables it references.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from enum import Enum
from typing import TYPE_CHECKING

from .exceptions import DependencyCycleError
from .types import EntityKind

if TYPE_CHECKING:
    from .ddl import DDLExecutor
    from .entity import Entity, EntityRegistry

logger = logging.getLogger(__name__)


class _Mark(Enum):
    VISITING = "visiting"
    DONE = "done"


class DependencyResolver:
    """
    Orders the entities of a hierarchy for installation.

    Example:
        resolver = DependencyResolver(registry, executor)
        for entity in await resolver.uninstalled_tables(model):
            await installer.create_table(entity)
    """

    def __init__(self, registry: EntityRegistry, executor: DDLExecutor | None = None):
        self.registry = registry
        self.executor = executor

    def dependencies(self, entity: Entity, root: Entity) -> Iterator[Entity]:
        """
        Yield what ``entity`` must be created after: its ancestors (nearest
        first, up to ``root``), then its many-to-one targets in declaration order.
        """
        if entity is not root:
            for ancestor in entity.ancestors():
                yield ancestor
                if ancestor is root:
                    break
        yield from entity.dependencies()

    def installable_order(self, root: Entity) -> list[Entity]:
        """
        Return the named, concrete entities reachable from ``root``'s closure,
        each one after everything it depends on.

        Anonymous and abstract entities are traversed but left out of the
        result. The order only depends on declaration order, so repeated calls
        return the same list.

        Raises:
            DependencyCycleError: If the dependency graph has a cycle.
        """
        marks: dict[Entity, _Mark] = {}
        order: list[Entity] = []
        path: list[Entity] = []

        def visit(entity: Entity) -> None:
            mark = marks.get(entity)
            if mark is _Mark.DONE:
                return
            if mark is _Mark.VISITING:
                start = path.index(entity)
                raise DependencyCycleError([e.display_name for e in path[start:]] + [entity.display_name])

            marks[entity] = _Mark.VISITING
            path.append(entity)
            for dependency in self.dependencies(entity, root):
                visit(dependency)
            path.pop()
            marks[entity] = _Mark.DONE

            if entity.is_installable:
                order.append(entity)

        for node in self.registry.closure(root):
            visit(node)

        return order

    def _require_executor(self) -> DDLExecutor:
        if self.executor is None:
            raise RuntimeError("DependencyResolver needs an executor to check what is installed")
        return self.executor

    async def uninstalled_tables(self, root: Entity) -> list[Entity]:
        """
        Table-backed entities whose table doesn't exist yet, in creation order.

        Entities sharing a physical table are only listed once.
        """
        executor = self._require_executor()
        logger.info("  searching for unbacked entities...")

        seen_tables: set[str] = set()
        result: list[Entity] = []
        for entity in self.installable_order(root):
            if entity.kind != EntityKind.TABLE or entity.table_name is None:
                continue
            if entity.table_name in seen_tables:
                continue
            if await executor.table_exists(entity.table_name):
                continue
            seen_tables.add(entity.table_name)
            result.append(entity)
        return result

    async def _views(self, root: Entity, installed: bool) -> list[Entity]:
        executor = self._require_executor()
        result: list[Entity] = []
        for entity in self.installable_order(root):
            if entity.kind != EntityKind.VIEW or entity.table_name is None:
                continue
            if await executor.view_exists(entity.table_name) == installed:
                result.append(entity)
        return result

    async def uninstalled_views(self, root: Entity) -> list[Entity]:
        """View-backed entities whose view doesn't exist yet, in order."""
        return await self._views(root, installed=False)

    async def installed_views(self, root: Entity) -> list[Entity]:
        """View-backed entities whose view already exists, in order."""
        return await self._views(root, installed=True)
