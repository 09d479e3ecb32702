"""Lookup coordinator: cache-through provider lookups and per-caller sessions.

Every lookup kind (place autocomplete, address autocomplete, geocoding,
cover images) is a ``LookupService`` subclass that only implements the
provider round trip in ``_fetch()``. The base class owns the query gate,
the availability check, the shared cache and the HTTP client.

``LookupSession`` is the debounce/cancellation scheduler for one caller
(one input widget, one WebSocket connection):

    IDLE --submit--> WAITING --timer--> IN_FLIGHT --fetch done--> IDLE

A new ``submit()`` in any state cancels the armed timer and the in-flight
fetch. Each dispatched fetch captures a ``CancelToken``; when the fetch
completes its result is delivered only if that token is still the
session's current one, so a superseded query never reaches the callback.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

import httpx
from dotenv import load_dotenv

from tripsearch.models import LookupOutcome, ProviderError
from tripsearch.utils import CacheStore, MIN_QUERY_LENGTH, is_eligible, normalize

logger = logging.getLogger(__name__)

load_dotenv()

T = TypeVar("T")

DEFAULT_DEBOUNCE_MS = 50
DEFAULT_HTTP_TIMEOUT = 10.0


def _debounce_seconds_from_env() -> float:
    return float(os.getenv("LOOKUP_DEBOUNCE_MS", str(DEFAULT_DEBOUNCE_MS))) / 1000


class LookupService(ABC, Generic[T]):
    """Base class for a single lookup kind backed by one external provider.

    Subclasses set the class attributes and implement ``_fetch()``, which
    performs the round trip for an eligible, trimmed query and raises
    ``ProviderError`` on any transport or parse failure.

    ``lookup()`` is the one-shot entry point and never raises for provider
    failures: the caller just gets ``empty()``.
    """

    #: Tag used in log lines, e.g. ``[PLACES]``
    log_tag: str = "LOOKUP"
    #: Environment variable holding the provider credential
    api_key_env: str = ""
    #: Value shipped in example env files; treated as "not configured"
    placeholder_key: str = ""
    min_length: int = MIN_QUERY_LENGTH

    def __init__(
        self,
        cache: CacheStore[T],
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._cache = cache
        self._api_key = api_key if api_key is not None else os.getenv(self.api_key_env)
        self._timeout = (
            timeout
            if timeout is not None
            else float(os.getenv("HTTP_TIMEOUT_SECONDS", str(DEFAULT_HTTP_TIMEOUT)))
        )
        self._client = client

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Human-readable provider name for logging."""
        ...

    @abstractmethod
    async def _fetch(self, query: str) -> T:
        """Run the provider round trip for a trimmed, eligible query."""
        ...

    @abstractmethod
    def empty(self) -> T:
        """The value callers receive when there is nothing to show."""
        ...

    def _is_cacheable(self, value: T) -> bool:
        return value is not None

    # ── Availability & cache ──────────────────────────────────────────

    @property
    def cache(self) -> CacheStore[T]:
        return self._cache

    def is_available(self) -> bool:
        """True iff a real provider credential is configured."""
        return bool(self._api_key) and self._api_key != self.placeholder_key

    def is_eligible(self, query: str) -> bool:
        return is_eligible(query, self.min_length)

    def gate(self, query: str) -> LookupOutcome | None:
        """Why ``query`` must short-circuit to ``empty()``, or None to proceed."""
        if not self.is_eligible(query):
            return LookupOutcome.INELIGIBLE
        if not self.is_available():
            return LookupOutcome.UNAVAILABLE
        return None

    def cached(self, query: str) -> T | None:
        return self._cache.get(normalize(query))

    def store(self, query: str, value: T) -> None:
        if self._is_cacheable(value):
            self._cache.put(normalize(query), value)

    # ── HTTP ──────────────────────────────────────────────────────────

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers={"Accept": "application/json"},
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get_json(
        self,
        url: str,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> Any:
        """GET a provider endpoint and return parsed JSON.

        Raises:
            ProviderError: On network errors, non-2xx responses and bodies
                that are not valid JSON. No retry is attempted here.
        """
        client = self._get_client()
        try:
            response = await client.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ProviderError(self.provider_name, f"HTTP {status}", status_code=status) from e
        except httpx.HTTPError as e:
            raise ProviderError(self.provider_name, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise ProviderError(self.provider_name, f"invalid JSON: {e}") from e

    # ── Lookups ───────────────────────────────────────────────────────

    async def fetch_fresh(self, query: str) -> T:
        """Always hit the provider; the caller decides whether to cache."""
        return await self._fetch(query.strip())

    async def lookup(self, query: str) -> T:
        """One-shot cache-through lookup.

        Ineligible queries and a missing credential return ``empty()``
        without touching the cache or the network. A cache hit performs no
        network call. Failed or cancelled fetches are never cached.
        """
        text = query.strip()
        gate = self.gate(text)
        if gate is not None:
            logger.debug(f"[{self.log_tag}] '{text}' {gate.value}")
            return self.empty()

        cached = self.cached(text)
        if cached is not None:
            return cached

        try:
            value = await self.fetch_fresh(text)
        except ProviderError as e:
            logger.warning(f"[{self.log_tag}] Lookup for '{text}' {e.outcome.value}: {e}")
            return self.empty()
        except asyncio.CancelledError:
            logger.warning(
                f"[{self.log_tag}] Lookup for '{text}' {LookupOutcome.CANCELLED.value}"
            )
            raise
        except Exception as e:
            logger.warning(
                f"[{self.log_tag}] Lookup for '{text}' {LookupOutcome.TRANSPORT_FAILURE.value}: "
                f"{type(e).__name__}: {e}"
            )
            return self.empty()

        self.store(text, value)
        logger.debug(f"[{self.log_tag}] '{text}' {LookupOutcome.OK.value}")
        return value


class SessionState(str, Enum):
    """Scheduler state of a ``LookupSession``."""

    IDLE = "idle"
    WAITING = "waiting"  # debounce timer armed, no network yet
    IN_FLIGHT = "in_flight"  # fetch dispatched, cancellable


class CancelToken:
    """Marks one dispatched fetch.

    Tokens are compared by identity: a fetch whose token is no longer the
    session's current token is stale and its result is dropped.
    """

    __slots__ = ("cancelled", "task")

    def __init__(self) -> None:
        self.cancelled = False
        self.task: asyncio.Task | None = None

    def cancel(self) -> None:
        """Best-effort abort of the attached fetch task."""
        self.cancelled = True
        if self.task is not None and not self.task.done():
            self.task.cancel()


class LookupSession(Generic[T]):
    """Debounce/cancellation state for one caller of a ``LookupService``.

    Sessions never share state: cancelling one leaves every other session's
    timer and in-flight fetch untouched. Must be used from inside a running
    event loop.

    Args:
        service: The lookup kind this session drives; its cache is shared
            with every other session of the same service.
        debounce_seconds: Quiet window before dispatch. Defaults to
            ``LOOKUP_DEBOUNCE_MS`` from the environment (50 ms).
    """

    def __init__(
        self,
        service: LookupService[T],
        debounce_seconds: float | None = None,
    ) -> None:
        self._service = service
        self._debounce = (
            debounce_seconds if debounce_seconds is not None else _debounce_seconds_from_env()
        )
        self._timer: asyncio.TimerHandle | None = None
        self._token: CancelToken | None = None
        self._state = SessionState.IDLE

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def service(self) -> LookupService[T]:
        return self._service

    def submit(self, query: str, on_result: Callable[[T], None]) -> None:
        """Schedule a lookup, superseding whatever this session was doing.

        Ineligible queries (and an unconfigured provider) deliver
        ``empty()`` synchronously and leave the session idle.
        """
        self._reset()

        gate = self._service.gate(query)
        if gate is not None:
            logger.debug(f"[{self._service.log_tag}] '{query.strip()}' {gate.value}")
            on_result(self._service.empty())
            return

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._debounce, self._dispatch, query.strip(), on_result)
        self._state = SessionState.WAITING

    def cancel(self) -> None:
        """Drop the pending timer and in-flight fetch. No callback fires."""
        self._reset()

    def _reset(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._token is not None:
            self._token.cancel()
            self._token = None
        self._state = SessionState.IDLE

    def _dispatch(self, query: str, on_result: Callable[[T], None]) -> None:
        self._timer = None
        token = CancelToken()
        self._token = token
        self._state = SessionState.IN_FLIGHT

        # Cached value is a provisional answer; the fetch still revalidates it
        provisional = self._service.cached(query)
        if provisional is not None:
            on_result(provisional)
            if token is not self._token:
                return  # the callback itself submitted a newer query

        token.task = asyncio.get_running_loop().create_task(
            self._complete(query, token, provisional, on_result)
        )

    async def _complete(
        self,
        query: str,
        token: CancelToken,
        provisional: T | None,
        on_result: Callable[[T], None],
    ) -> None:
        tag = self._service.log_tag
        try:
            value = await self._service.fetch_fresh(query)
        except ProviderError as e:
            logger.warning(f"[{tag}] Lookup for '{query}' {e.outcome.value}: {e}")
            self._fail(token, provisional, on_result)
            return
        except asyncio.CancelledError:
            logger.warning(f"[{tag}] Lookup for '{query}' {LookupOutcome.CANCELLED.value}")
            raise
        except Exception as e:
            logger.warning(
                f"[{tag}] Lookup for '{query}' {LookupOutcome.TRANSPORT_FAILURE.value}: "
                f"{type(e).__name__}: {e}"
            )
            self._fail(token, provisional, on_result)
            return

        if token.cancelled or token is not self._token:
            logger.debug(f"[{tag}] Discarding stale result for '{query}'")
            return

        self._service.store(query, value)
        self._token = None
        self._state = SessionState.IDLE
        if provisional is not None and provisional == value:
            return
        on_result(value)

    def _fail(
        self,
        token: CancelToken,
        provisional: T | None,
        on_result: Callable[[T], None],
    ) -> None:
        if token is not self._token:
            return
        self._token = None
        self._state = SessionState.IDLE
        # A provisional answer already went out; the failure adds nothing
        if provisional is None:
            on_result(self._service.empty())
