"""Error models for Trip Search.

Two families live here:

- ``ErrorCode`` / ``AppError``: the envelope returned by the HTTP API.
- ``LookupOutcome`` / ``ProviderError``: why a lookup produced nothing.
  Lookups never fail visibly; these exist for logging and for keeping
  failed or cancelled fetches out of the cache.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Error codes reported by the API."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    API_ERROR = "API_ERROR"


class AppError(BaseModel):
    """Structured API error."""

    code: ErrorCode
    message: str = Field(..., description="Technical message for logs")
    user_message: str = Field(..., description="Message safe to show to users")
    details: Optional[dict] = None


class LookupOutcome(str, Enum):
    """How a single lookup attempt ended."""

    OK = "ok"
    INELIGIBLE = "ineligible"  # query too short; a gate, not an error
    UNAVAILABLE = "unavailable"  # no provider credential configured
    TRANSPORT_FAILURE = "transport_failure"
    CANCELLED = "cancelled"  # superseded by a newer query


class ProviderError(Exception):
    """A provider round trip failed: network error, non-2xx status or bad JSON."""

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status_code = status_code
        self.outcome = LookupOutcome.TRANSPORT_FAILURE
