"""
surreal-inline exceptions.

Definition errors are raised while entities and migrations are declared or
merged, resolution errors while deciding what to run, and execution errors
while running it. None of them is ever retried.
"""


class SurrealInlineError(Exception):
    """Base exception for all surreal-inline errors."""

    def __init__(self, message: str, code: int | None = None):
        self.message = message
        self.code = code
        super().__init__(message)


# Definition errors


class DefinitionError(SurrealInlineError):
    """Raised when an entity or migration declaration is invalid."""

    pass


class InvalidMigrationNameError(DefinitionError):
    """Raised when a migration name doesn't follow ``YYYYMMDD_HHMM_description``."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"invalid migration name {name!r}")


class AnonymousMigrationOwnerError(DefinitionError):
    """Raised when a migration is declared on an entity without a name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"migration {name!r} declared on an anonymous entity; the ledger needs a named owner")


class DuplicateMigrationError(DefinitionError):
    """Raised when two entities of one hierarchy declare the same migration name."""

    def __init__(self, name: str, first_source: str | None, second_source: str | None):
        self.name = name
        self.first_source = first_source
        self.second_source = second_source
        super().__init__(
            f"found duplicate names {name!r} for migrations at {first_source or '<unknown>'} "
            f"and {second_source or '<unknown>'}"
        )


# Resolution errors


class ResolutionError(SurrealInlineError):
    """Raised when a creation order or a migration plan can't be determined."""

    pass


class UnknownEntityError(ResolutionError):
    """Raised when an entity name isn't registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"no entity named {name!r} is registered")


class UnknownMigrationError(ResolutionError):
    """Raised when a migration target is neither applied nor pending."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"couldn't find migration {target!r}")


class DependencyCycleError(ResolutionError):
    """Raised when entities depend on each other in a cycle."""

    def __init__(self, path: list[str]):
        self.path = path
        super().__init__(f"dependency cycle detected: {' -> '.join(path)}")


# Execution errors


class ExecutionError(SurrealInlineError):
    """Raised when running a schema change fails."""

    pass


class HookFailed(ExecutionError):
    """Raised when a lifecycle hook aborts the surrounding operation."""

    def __init__(self, message: str, entity_name: str | None = None):
        self.entity_name = entity_name
        super().__init__(message)


class IrreversibleMigrationError(ExecutionError):
    """Raised when a migration that can't be undone is run in reverse."""

    pass


class LedgerSchemaError(ExecutionError):
    """Raised when the ledger table exists but lacks the migration name column."""

    pass


# Connection errors


class ConnectionError(SurrealInlineError):
    """Raised when connection to SurrealDB fails."""

    pass


class AuthenticationError(SurrealInlineError):
    """Raised when authentication fails."""

    pass


class QueryError(SurrealInlineError):
    """Raised when a query execution fails."""

    def __init__(self, message: str, query: str | None = None, code: int | None = None):
        self.query = query
        super().__init__(message, code)


class TransactionError(SurrealInlineError):
    """Raised when a transaction operation fails."""

    pass
