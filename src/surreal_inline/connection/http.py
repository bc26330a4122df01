"""
HTTP Connection to SurrealDB.

Stateless connection posting SurrealQL to the ``/sql`` endpoint; every
request carries the namespace, database and bearer token as headers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Self

import httpx

from ..exceptions import AuthenticationError, ConnectionError, QueryError
from .types import QueryResponse

if TYPE_CHECKING:
    from ..config import ConnectionConfig
    from .transaction import HTTPTransaction

logger = logging.getLogger(__name__)


class HTTPConnection:
    """
    HTTP-based connection to SurrealDB.

    Usage:
        async with HTTPConnection("http://localhost:8000", "acme", "prod") as conn:
            await conn.signin("root", "root")
            response = await conn.query("INFO FOR DB;")
    """

    def __init__(
        self,
        url: str,
        namespace: str,
        database: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize HTTP connection.

        Args:
            url: SurrealDB HTTP URL (e.g., "http://localhost:8000")
            namespace: Target namespace
            database: Target database
            timeout: Request timeout in seconds
            transport: Optional httpx transport (e.g. ``httpx.MockTransport`` in tests)
        """
        # Normalize URL to HTTP if needed
        if url.startswith("ws://"):
            url = url.replace("ws://", "http://", 1)
        elif url.startswith("wss://"):
            url = url.replace("wss://", "https://", 1)

        self.url = url.rstrip("/")
        self.namespace = namespace
        self.database = database
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._token: str | None = None
        self._connected = False

    @classmethod
    def from_config(cls, config: ConnectionConfig) -> HTTPConnection:
        return cls(config.url, config.namespace, config.database, timeout=config.timeout)

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    @property
    def headers(self) -> dict[str, str]:
        h = {
            "Surreal-NS": self.namespace,
            "Surreal-DB": self.database,
            "Accept": "application/json",
        }
        if self._token:
            h["Authorization"] = f"Bearer {self._token}"
        return h

    async def connect(self) -> Self:
        """Establish HTTP client connection. Returns self for fluent API."""
        if self._connected:
            return self

        self._client = httpx.AsyncClient(
            base_url=self.url,
            timeout=self.timeout,
            transport=self._transport,
        )
        self._connected = True
        return self

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
        self._connected = False
        self._token = None

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def signin(
        self,
        user: str,
        password: str,
        namespace: str | None = None,
        database: str | None = None,
    ) -> str:
        """
        Authenticate and keep the returned JWT for subsequent requests.

        Without a namespace the user signs in as a root user; pass the
        namespace (and database) for namespace- or database-level users.

        Returns:
            The token

        Raises:
            AuthenticationError: If the credentials are rejected
        """
        if not self._client:
            raise ConnectionError("Not connected. Call connect() first.")

        payload: dict[str, Any] = {"user": user, "pass": password}
        if namespace:
            payload["ns"] = namespace
        if database:
            payload["db"] = database
        try:
            response = await self._client.post(
                "/signin",
                json=payload,
                headers={"Accept": "application/json", "Content-Type": "application/json"},
            )
        except httpx.RequestError as e:
            raise AuthenticationError(f"Authentication request failed: {e}")

        if response.status_code != 200:
            raise AuthenticationError(f"Authentication failed: {response.text}")

        token: str = response.json().get("token")
        self._token = token
        return token

    async def sql(self, query: str, vars: dict[str, Any] | None = None) -> list[Any]:
        """
        Execute raw SurrealQL via POST /sql and return the raw JSON results.

        Args:
            query: SurrealQL query string
            vars: Query variables (passed as query params)
        """
        if not self._client:
            raise ConnectionError("Not connected. Call connect() first.")

        logger.debug(f"Executing: {query[:200]}")
        try:
            response = await self._client.post(
                "/sql",
                content=query,
                headers={**self.headers, "Content-Type": "text/plain"},
                params=vars,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise QueryError(
                message=f"SQL query failed: {e.response.text}",
                query=query,
                code=e.response.status_code,
            )
        except httpx.RequestError as e:
            raise ConnectionError(f"Request failed: {e}")

        result: list[Any] = response.json()
        return result

    async def query(self, query: str, vars: dict[str, Any] | None = None) -> QueryResponse:
        """
        Execute SurrealQL and parse the per-statement results.

        Raises:
            QueryError: If any statement failed
        """
        response = QueryResponse.from_raw(await self.sql(query, vars))
        if not response.is_ok:
            raise QueryError(message="; ".join(response.errors), query=query)
        return response

    async def health(self) -> bool:
        """Check server health via GET /health endpoint."""
        if not self._client:
            return False

        try:
            response = await self._client.get("/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def transaction(self) -> HTTPTransaction:
        """
        Create a new HTTP transaction.

        HTTP transactions batch all statements and execute them atomically on commit.

        Usage:
            async with conn.transaction() as tx:
                await tx.execute("DEFINE FIELD age ON vendor TYPE int;")
                await tx.insert("schema_migrations", {"name": "...", "model_class": "Vendor"})
                # All statements executed atomically on exit
        """
        from .transaction import HTTPTransaction

        return HTTPTransaction(self)
