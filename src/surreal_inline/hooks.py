"""
Entity lifecycle hooks.

Hooks are async callables receiving the entity. They let the surrounding
operation go on by returning ``None`` or ``Proceed()``, and stop it by
returning ``Abort(...)``, which the caller turns into ``HookFailed``.

Usage:
    vendor = registry.define("Vendor", schema=...)

    @vendor.hooks.connect("before_create_table")
    async def check_maintenance_window(entity):
        if not in_maintenance_window():
            return Abort("Wait, don't create tables yet!")
        return None
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .exceptions import HookFailed

if TYPE_CHECKING:
    from .entity import Entity

logger = logging.getLogger(__name__)

HOOK_NAMES = (
    "before_create_table",
    "after_create_table",
    "before_drop_table",
    "after_drop_table",
    "before_migration_run",
    "after_migration_run",
)


@dataclass(frozen=True)
class Proceed:
    """Let the surrounding operation continue."""


@dataclass(frozen=True)
class Abort:
    """
    Cancel the surrounding operation.

    Attributes:
        message: Message of the resulting ``HookFailed``.
        hook: Name of the hook that failed, used when no message is given.
    """

    message: str | None = None
    hook: str | None = None

    @property
    def failure_message(self) -> str:
        if self.message:
            return self.message
        if self.hook:
            return f"the {self.hook} hook failed"
        return "a hook failed"


HookResult = Proceed | Abort

# Type alias for hook callables
Hook = Callable[["Entity"], Awaitable[HookResult | None]]


@dataclass
class EntityHooks:
    """The hooks attached to one entity, each one optional."""

    before_create_table: Hook | None = None
    after_create_table: Hook | None = None
    before_drop_table: Hook | None = None
    after_drop_table: Hook | None = None
    before_migration_run: Hook | None = None
    after_migration_run: Hook | None = None

    def connect(self, name: str) -> Callable[[Hook], Hook]:
        """
        Decorator attaching a hook by name.

            @entity.hooks.connect("after_migration_run")
            async def notify(entity):
                ...
        """
        if name not in HOOK_NAMES:
            raise ValueError(f"Unknown hook {name!r}; expected one of {', '.join(HOOK_NAMES)}")

        def decorator(func: Hook) -> Hook:
            setattr(self, name, func)
            return func

        return decorator

    def get(self, name: str) -> Hook | None:
        if name not in HOOK_NAMES:
            raise ValueError(f"Unknown hook {name!r}")
        hook: Hook | None = getattr(self, name)
        return hook


async def run_hook(entity: Entity, name: str) -> None:
    """
    Invoke the ``name`` hook of ``entity`` if it has one.

    Raises:
        HookFailed: If the hook returned ``Abort``.
    """
    hook = entity.hooks.get(name)
    if hook is None:
        return

    result = await hook(entity)
    if isinstance(result, Abort):
        logger.info(f"{name} hook of {entity.display_name} aborted: {result.failure_message}")
        raise HookFailed(result.failure_message, entity_name=entity.name)
    if result is not None and not isinstance(result, Proceed):
        raise TypeError(f"{name} hook of {entity.display_name} returned {result!r}; expected Proceed, Abort or None")


__all__ = ["Proceed", "Abort", "HookResult", "Hook", "EntityHooks", "run_hook", "HOOK_NAMES"]
