from .config import ConnectionConfig, MigratorOptions
from .connection import HTTPConnection
from .ddl import DDLExecutor, Session, SurrealExecutor
from .entity import Association, Entity, EntityRegistry
from .exceptions import (
    AnonymousMigrationOwnerError,
    DefinitionError,
    DependencyCycleError,
    DuplicateMigrationError,
    ExecutionError,
    HookFailed,
    InvalidMigrationNameError,
    ResolutionError,
    SurrealInlineError,
    UnknownMigrationError,
)
from .hooks import Abort, Proceed
from .installer import SchemaInstaller
from .migrations import MIGRATE_ZERO, Change, MigrationPlan, Migrator, UpDown, resolve_plan
from .resolver import DependencyResolver
from .schema import FieldDefinition, IndexDefinition, TableSchema, ViewDefinition
from .types import Direction, FieldType, SchemaMode

__all__ = [
    "ConnectionConfig",
    "MigratorOptions",
    "HTTPConnection",
    "DDLExecutor",
    "Session",
    "SurrealExecutor",
    "Association",
    "Entity",
    "EntityRegistry",
    "AnonymousMigrationOwnerError",
    "DefinitionError",
    "DependencyCycleError",
    "DuplicateMigrationError",
    "ExecutionError",
    "HookFailed",
    "InvalidMigrationNameError",
    "ResolutionError",
    "SurrealInlineError",
    "UnknownMigrationError",
    "Abort",
    "Proceed",
    "SchemaInstaller",
    "MIGRATE_ZERO",
    "Change",
    "MigrationPlan",
    "Migrator",
    "UpDown",
    "resolve_plan",
    "DependencyResolver",
    "FieldDefinition",
    "IndexDefinition",
    "TableSchema",
    "ViewDefinition",
    "Direction",
    "FieldType",
    "SchemaMode",
]
