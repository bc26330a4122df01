"""
Pytest configuration for surreal-inline tests.

Unit tests run against ``MemoryExecutor``. Integration tests (marked
``integration``) need a SurrealDB instance reachable at ``SURREALDB_URL`` and
are skipped when none answers its health check.

Shared connection constants are defined here so every test file can import them
instead of hardcoding URLs, credentials, and ports.
"""

import os
import urllib.error
import urllib.request
from collections.abc import Generator

import pytest

from surreal_inline import EntityRegistry, FieldDefinition, FieldType, TableSchema
from surreal_inline.entity import Entity
from surreal_inline.testing import MemoryExecutor

# ---------------------------------------------------------------------------
# Shared connection constants (import these in test files)
# ---------------------------------------------------------------------------
TEST_PORT = int(os.getenv("SURREALDB_PORT", "8000"))
SURREALDB_URL = os.getenv("SURREALDB_URL", f"http://localhost:{TEST_PORT}")
SURREALDB_USER = os.getenv("SURREALDB_USER", "root")
SURREALDB_PASS = os.getenv("SURREALDB_PASS", "root")
SURREALDB_NAMESPACE = os.getenv("SURREALDB_NAMESPACE", "test")


def is_surrealdb_healthy(url: str = SURREALDB_URL) -> bool:
    """Check if SurrealDB is healthy via /health endpoint."""
    try:
        req = urllib.request.Request(f"{url.rstrip('/')}/health", method="GET")
        with urllib.request.urlopen(req, timeout=2) as response:
            return response.status == 200
    except (urllib.error.URLError, TimeoutError, OSError):
        return False


@pytest.fixture(scope="session")
def surrealdb_available() -> Generator[bool, None, None]:
    """
    Session-scoped fixture that indicates if SurrealDB is available.

        def test_something(surrealdb_available):
            if not surrealdb_available:
                pytest.skip("SurrealDB not available")
    """
    yield is_surrealdb_healthy()


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


def things_schema() -> TableSchema:
    return TableSchema(fields=[FieldDefinition("name", FieldType.STRING)])


@pytest.fixture
def registry() -> EntityRegistry:
    return EntityRegistry()


@pytest.fixture
def executor() -> MemoryExecutor:
    return MemoryExecutor()


@pytest.fixture
def model(registry: EntityRegistry) -> Entity:
    """The anonymous abstract root entities hang from."""
    return registry.define(None, abstract=True)


@pytest.fixture
def thing(registry: EntityRegistry, model: Entity) -> Entity:
    return registry.define("Thing", parent=model, table="things", schema=things_schema())
