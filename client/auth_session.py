"""Client-side session for the hosted identity provider (GoTrue REST API)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx

LOGGER = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

AuthListener = Callable[[str, Optional["Session"]], None]


class AuthSessionError(Exception):
    """The identity provider rejected a sign-in or sign-up."""


@dataclass(frozen=True)
class Session:
    access_token: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    refresh_token: Optional[str] = None


class AuthSession:
    """Sign users in and out and notify listeners when the session changes."""

    def __init__(self, client: httpx.AsyncClient, base_url: str, anon_key: str) -> None:
        self._client = client
        self._auth_url = f"{base_url.rstrip('/')}/auth/v1"
        self._anon_key = anon_key
        self._session: Optional[Session] = None
        self._listeners: List[AuthListener] = []

    @property
    def session(self) -> Optional[Session]:
        return self._session

    def access_token(self) -> Optional[str]:
        return self._session.access_token if self._session else None

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        """Register `listener(event, session)`; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        data = await self._post("/token", params={"grant_type": "password"}, json={"email": email, "password": password})
        session = self._session_from(data)
        if session is None:
            raise AuthSessionError("Sign-in response did not contain a session")
        self._set_session(SIGNED_IN, session)
        return session

    async def sign_up(self, email: str, password: str) -> Optional[Session]:
        """Create an account.

        Providers that require e-mail confirmation return no session; the
        user signs in after confirming.
        """
        data = await self._post("/signup", json={"email": email, "password": password})
        session = self._session_from(data)
        if session is not None:
            self._set_session(SIGNED_IN, session)
        return session

    async def sign_out(self) -> None:
        """Revoke the token (best effort) and clear the local session."""
        token = self.access_token()
        if token:
            try:
                await self._client.post(
                    f"{self._auth_url}/logout",
                    headers={"apikey": self._anon_key, "Authorization": f"Bearer {token}"},
                )
            except httpx.HTTPError as exc:
                LOGGER.warning("Logout request failed: %s", exc)
        self._set_session(SIGNED_OUT, None)

    async def _post(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        response = await self._client.post(
            f"{self._auth_url}{path}",
            headers={"apikey": self._anon_key},
            **kwargs,
        )
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not response.is_success:
            message = data.get("error_description") or data.get("msg") or data.get("message")
            raise AuthSessionError(message or f"Authentication failed ({response.status_code})")
        return data

    def _set_session(self, event: str, session: Optional[Session]) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(event, session)

    @staticmethod
    def _session_from(data: Dict[str, Any]) -> Optional[Session]:
        token = data.get("access_token")
        if not token:
            return None
        user = data.get("user") or {}
        return Session(
            access_token=token,
            user_id=user.get("id"),
            email=user.get("email"),
            refresh_token=data.get("refresh_token"),
        )
