"""SurrealDB HTTP connection used by ``SurrealExecutor``."""

from .http import HTTPConnection
from .transaction import HTTPTransaction
from .types import QueryResponse, QueryResult, ResponseStatus

__all__ = ["HTTPConnection", "HTTPTransaction", "QueryResponse", "QueryResult", "ResponseStatus"]
