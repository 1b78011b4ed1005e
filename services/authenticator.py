"""Bearer token verification against the hosted identity provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

import httpx

from utils.errors import AuthenticationError, StoreUnavailableError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """The identity behind a verified token. Any principal has full access."""

    id: str
    email: Optional[str] = None


ANONYMOUS = Principal(id="anonymous")


@runtime_checkable
class Authenticator(Protocol):
    async def verify(self, token: str) -> Principal:
        """Return the token's principal or raise AuthenticationError."""
        ...


class SupabaseAuthenticator:
    """Ask the provider's `/auth/v1/user` endpoint who owns a token.

    The provider is the authority on expiry and revocation, so every call
    is a round trip; nothing is cached.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str, anon_key: str) -> None:
        self._client = client
        self._url = f"{base_url.rstrip('/')}/auth/v1/user"
        self._anon_key = anon_key

    async def verify(self, token: str) -> Principal:
        if not token:
            raise AuthenticationError("Missing access token")
        try:
            response = await self._client.get(
                self._url,
                headers={"apikey": self._anon_key, "Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            LOGGER.error("Identity provider unreachable: %s", exc)
            raise StoreUnavailableError("Authentication provider unavailable") from exc

        if response.status_code in (401, 403):
            raise AuthenticationError("Invalid or expired token")
        if not response.is_success:
            LOGGER.error("Identity provider returned %s: %s", response.status_code, response.text)
            raise StoreUnavailableError(f"Authentication provider returned HTTP {response.status_code}")

        user = response.json()
        user_id = user.get("id") if isinstance(user, dict) else None
        if not user_id:
            raise AuthenticationError("Invalid or expired token")
        return Principal(id=str(user_id), email=user.get("email"))
