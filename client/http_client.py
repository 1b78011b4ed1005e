"""HTTP wrapper used by the client for every call to the block API.

The hosted backend may be cold-starting when the first request arrives, so
gateway errors (502/503/504) and transport failures are retried with
exponential backoff. A 401 means the session is no longer valid: the wrapper
signs out and hands the response back without retrying.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

LOGGER = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({502, 503, 504})


class ServerUnavailableError(Exception):
    """The server kept answering with a gateway error."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Server error: {status_code}")
        self.status_code = status_code


class RetryingClient:
    """Send requests with bearer injection and cold-start retries.

    Args:
        client: Underlying async HTTP client (its base URL points at the API).
        token_provider: Returns the current access token, or None when signed out.
        on_unauthorized: Awaited when a non-health request gets a 401.
        on_waking_up: Called once per request when the first retry starts.
        retries: Total attempts per request.
        backoff: Delay in seconds before the second attempt; doubles each time.
        sleep: Coroutine used to wait between attempts.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        on_unauthorized: Optional[Callable[[], Awaitable[None]]] = None,
        on_waking_up: Optional[Callable[[], None]] = None,
        retries: int = 3,
        backoff: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if retries < 1:
            raise ValueError("retries must be at least 1")
        self._client = client
        self._token_provider = token_provider
        self._on_unauthorized = on_unauthorized
        self._on_waking_up = on_waking_up
        self.retries = retries
        self.backoff = backoff
        self._sleep = sleep

    async def fetch(
        self,
        method: str,
        url: str,
        *,
        retries: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one logical request, retrying gateway and transport failures.

        Returns:
            The first response that is not a retryable gateway error; callers
            check `is_success` themselves.

        Raises:
            ServerUnavailableError | httpx.TransportError: The last failure,
                once every attempt has been used.
        """
        attempts = retries or self.retries
        request_headers = dict(headers or {})
        token = self._token_provider() if self._token_provider else None
        if token:
            request_headers["Authorization"] = f"Bearer {token}"

        last_error: Optional[Exception] = None
        waking_up = False
        for attempt in range(attempts):
            if attempt > 0 and not waking_up:
                waking_up = True
                if self._on_waking_up:
                    self._on_waking_up()

            try:
                response = await self._client.request(method, url, headers=request_headers, **kwargs)
            except httpx.TransportError as exc:
                LOGGER.warning("Attempt %d for %s %s raised: %s", attempt + 1, method, url, exc)
                last_error = exc
            else:
                if response.is_success:
                    return response
                if response.status_code == 401 and "/health" not in url:
                    LOGGER.warning("Session invalid or expired; signing out")
                    if self._on_unauthorized:
                        await self._on_unauthorized()
                    return response
                if response.status_code not in RETRYABLE_STATUSES:
                    return response
                LOGGER.warning(
                    "Attempt %d for %s %s failed with %d. Retrying...",
                    attempt + 1, method, url, response.status_code,
                )
                last_error = ServerUnavailableError(response.status_code)

            if attempt < attempts - 1:
                await self._sleep(self.backoff * 2 ** attempt)

        raise last_error
