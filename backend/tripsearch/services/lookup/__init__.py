"""Lookup coordinator: cache-through services and debounced sessions."""

from .service import (
    CancelToken,
    LookupService,
    LookupSession,
    SessionState,
)

__all__ = [
    "CancelToken",
    "LookupService",
    "LookupSession",
    "SessionState",
]
