"""Record store interface for trips, reservations and users.

The lookup coordinator never talks to the record store; the CRUD services
around it do. Unlike lookups, record operations are transactional and fail
loudly with a classified ``DatabaseError``.

Backend error codes are mapped onto a small taxonomy (Postgres SQLSTATE):
- 23505: DUPLICATE
- 23503, 23502, 23514: CONSTRAINT_VIOLATION
- 42501, 42000: PERMISSION_DENIED
"""

import copy
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal
from uuid import uuid4

logger = logging.getLogger(__name__)

Record = dict[str, Any]
FilterOp = Literal["eq", "neq", "lt", "lte", "gt", "gte"]


class DatabaseErrorCode(str, Enum):
    UNKNOWN = "UNKNOWN"
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE = "DUPLICATE"
    CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"


GENERIC_MESSAGES = {
    DatabaseErrorCode.NOT_FOUND: "The requested resource was not found",
    DatabaseErrorCode.DUPLICATE: "A resource with this information already exists",
    DatabaseErrorCode.CONSTRAINT_VIOLATION: (
        "The operation could not be completed due to data constraints"
    ),
    DatabaseErrorCode.PERMISSION_DENIED: "You do not have permission to perform this action",
    DatabaseErrorCode.CONNECTION_ERROR: (
        "Unable to connect to the server. Please check your connection"
    ),
    DatabaseErrorCode.VALIDATION_ERROR: "The provided data is invalid",
    DatabaseErrorCode.UNKNOWN: "An unexpected error occurred",
}

SQLSTATE_CODES = {
    "23505": DatabaseErrorCode.DUPLICATE,
    "23503": DatabaseErrorCode.CONSTRAINT_VIOLATION,
    "23502": DatabaseErrorCode.CONSTRAINT_VIOLATION,
    "23514": DatabaseErrorCode.CONSTRAINT_VIOLATION,
    "42501": DatabaseErrorCode.PERMISSION_DENIED,
    "42000": DatabaseErrorCode.PERMISSION_DENIED,
}


class DatabaseError(Exception):
    """A record store operation failed."""

    def __init__(
        self,
        message: str,
        code: DatabaseErrorCode = DatabaseErrorCode.UNKNOWN,
        original: BaseException | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.original = original
        self.details = details


def is_development() -> bool:
    return os.getenv("APP_ENV", "production").lower() == "development"


def wrap_database_error(error: BaseException, context: str = "") -> DatabaseError:
    """Classify a backend exception into a ``DatabaseError``.

    Exceptions carrying a ``code`` attribute (PostgREST, asyncpg) are mapped
    by SQLSTATE. Raw messages are only exposed in development.
    """
    if isinstance(error, DatabaseError):
        return error

    dev = is_development()
    if dev:
        logger.error(f"[DB] {context} {type(error).__name__}: {error}")

    sqlstate = getattr(error, "code", None)
    if sqlstate is not None:
        code = SQLSTATE_CODES.get(str(sqlstate), DatabaseErrorCode.UNKNOWN)
        message = str(error) if dev else GENERIC_MESSAGES[code]
        details = getattr(error, "details", None) if dev else None
        return DatabaseError(message, code, original=error, details=details)

    message = str(error) if dev else GENERIC_MESSAGES[DatabaseErrorCode.UNKNOWN]
    return DatabaseError(message, DatabaseErrorCode.UNKNOWN, original=error)


@dataclass(frozen=True)
class RecordFilter:
    """A single equality or ordering comparison on one column."""
    column: str
    value: Any
    op: FilterOp = "eq"

    def matches(self, record: Record) -> bool:
        if self.column not in record:
            return False
        actual = record[self.column]
        if self.op == "eq":
            return actual == self.value
        if self.op == "neq":
            return actual != self.value
        if actual is None:
            return False
        if self.op == "lt":
            return actual < self.value
        if self.op == "lte":
            return actual <= self.value
        if self.op == "gt":
            return actual > self.value
        return actual >= self.value


class RecordStore(ABC):
    """Abstract base class for the remote table store."""

    @abstractmethod
    async def create_record(self, table: str, data: Record) -> Record:
        """Insert a record and return it with its assigned ``id``."""
        pass

    @abstractmethod
    async def read_records(
        self,
        table: str,
        filters: list[RecordFilter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Record]:
        pass

    @abstractmethod
    async def update_record(self, table: str, record_id: str, patch: Record) -> Record:
        """Apply a partial update and return the full updated record.

        Raises:
            DatabaseError: NOT_FOUND if no record has ``record_id``.
        """
        pass

    @abstractmethod
    async def delete_record(self, table: str, record_id: str) -> None:
        pass

    async def get_record(self, table: str, record_id: str) -> Record:
        """Read one record by id or raise NOT_FOUND."""
        records = await self.read_records(table, [RecordFilter("id", record_id)])
        if not records:
            raise DatabaseError(
                GENERIC_MESSAGES[DatabaseErrorCode.NOT_FOUND], DatabaseErrorCode.NOT_FOUND
            )
        return records[0]


class InMemoryRecordStore(RecordStore):
    """Process-local record store for tests and offline development.

    Records are copied on the way in and out so callers can't mutate
    stored state.
    """

    def __init__(self, tables: set[str] | None = None) -> None:
        self._tables: dict[str, dict[str, Record]] = {}
        self._allowed = tables

    def _table(self, table: str) -> dict[str, Record]:
        if self._allowed is not None and table not in self._allowed:
            raise DatabaseError(
                f"Unknown table: {table}" if is_development()
                else GENERIC_MESSAGES[DatabaseErrorCode.VALIDATION_ERROR],
                DatabaseErrorCode.VALIDATION_ERROR,
            )
        return self._tables.setdefault(table, {})

    def _not_found(self, table: str, record_id: str) -> DatabaseError:
        return DatabaseError(
            f"{table} {record_id} not found" if is_development()
            else GENERIC_MESSAGES[DatabaseErrorCode.NOT_FOUND],
            DatabaseErrorCode.NOT_FOUND,
        )

    async def create_record(self, table: str, data: Record) -> Record:
        rows = self._table(table)
        record = copy.deepcopy(data)
        record_id = str(record.get("id") or uuid4())
        if record_id in rows:
            raise DatabaseError(
                GENERIC_MESSAGES[DatabaseErrorCode.DUPLICATE], DatabaseErrorCode.DUPLICATE
            )
        record["id"] = record_id
        rows[record_id] = record
        return copy.deepcopy(record)

    async def read_records(
        self,
        table: str,
        filters: list[RecordFilter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Record]:
        rows = [r for r in self._table(table).values() if all(f.matches(r) for f in filters or [])]
        if order_by:
            # Missing values sort last regardless of direction
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            try:
                present.sort(key=lambda r: r[order_by], reverse=descending)
            except TypeError as e:
                raise wrap_database_error(e, f"order {table} by {order_by}") from e
            rows = present + missing
        return [copy.deepcopy(r) for r in rows]

    async def update_record(self, table: str, record_id: str, patch: Record) -> Record:
        rows = self._table(table)
        if record_id not in rows:
            raise self._not_found(table, record_id)
        if "id" in patch and str(patch["id"]) != record_id:
            raise DatabaseError(
                GENERIC_MESSAGES[DatabaseErrorCode.CONSTRAINT_VIOLATION],
                DatabaseErrorCode.CONSTRAINT_VIOLATION,
            )
        rows[record_id].update(copy.deepcopy(patch))
        return copy.deepcopy(rows[record_id])

    async def delete_record(self, table: str, record_id: str) -> None:
        rows = self._table(table)
        if record_id not in rows:
            raise self._not_found(table, record_id)
        del rows[record_id]
