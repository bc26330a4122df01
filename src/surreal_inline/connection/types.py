"""
Type definitions for SurrealDB responses.

Provides typed wrappers around the raw JSON returned by the ``/sql`` endpoint,
one ``QueryResult`` per statement.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ResponseStatus(str, Enum):
    """Status of a SurrealDB statement result."""

    OK = "OK"
    ERR = "ERR"


@dataclass
class QueryResult:
    """
    Result of a single query statement.

    Attributes:
        status: OK or ERR
        result: The query result data (records, scalar, error message, etc.)
        time: Execution time as reported by SurrealDB
    """

    status: ResponseStatus
    result: list[dict[str, Any]] | dict[str, Any] | str | int | float | bool | None
    time: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueryResult":
        """Parse a query result from raw response dict."""
        status = ResponseStatus(data.get("status", "OK"))
        result = data.get("result", data.get("detail"))
        time = data.get("time", "")
        return cls(status=status, result=result, time=time)

    @property
    def is_ok(self) -> bool:
        return self.status == ResponseStatus.OK

    @property
    def is_error(self) -> bool:
        return self.status == ResponseStatus.ERR

    @property
    def records(self) -> list[dict[str, Any]]:
        """Get result as list of records. Returns empty list if not applicable."""
        if isinstance(self.result, list):
            return [r for r in self.result if isinstance(r, dict)]
        return []

    @property
    def first(self) -> dict[str, Any] | None:
        records = self.records
        return records[0] if records else None


@dataclass
class QueryResponse:
    """
    Response from a SurrealDB query.

    Contains one QueryResult per statement in the query.
    """

    results: list[QueryResult] = field(default_factory=list)
    raw: list[Any] = field(default_factory=list)

    @classmethod
    def from_raw(cls, data: Any) -> "QueryResponse":
        """Parse the JSON body of a ``/sql`` response."""
        results: list[QueryResult] = []
        items = data if isinstance(data, list) else [data]
        for item in items:
            if isinstance(item, dict) and "status" in item:
                results.append(QueryResult.from_dict(item))
            else:
                results.append(QueryResult(status=ResponseStatus.OK, result=item))
        return cls(results=results, raw=items)

    @property
    def is_ok(self) -> bool:
        """Check if all results succeeded."""
        return all(r.is_ok for r in self.results)

    @property
    def errors(self) -> list[str]:
        return [str(r.result) for r in self.results if r.is_error]

    @property
    def first_result(self) -> QueryResult | None:
        return self.results[0] if self.results else None

    @property
    def last_result(self) -> QueryResult | None:
        return self.results[-1] if self.results else None

    @property
    def all_records(self) -> list[dict[str, Any]]:
        """Get all records from all results."""
        records: list[dict[str, Any]] = []
        for result in self.results:
            records.extend(result.records)
        return records

    @property
    def is_empty(self) -> bool:
        return not self.all_records
