"""Record store collaborator: abstract CRUD plus error classification."""

from .service import (
    DatabaseError,
    DatabaseErrorCode,
    InMemoryRecordStore,
    RecordFilter,
    RecordStore,
    wrap_database_error,
)

__all__ = [
    "DatabaseError",
    "DatabaseErrorCode",
    "InMemoryRecordStore",
    "RecordFilter",
    "RecordStore",
    "wrap_database_error",
]
