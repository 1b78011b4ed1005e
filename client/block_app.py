"""Client application flows: auth gate, gallery loading, form submission.

`BlockApp` drives the same sequence of API calls as the browser UI and keeps
everything it displays on an `AppState`. User-facing messages go through a
`notifier(message, kind)` callback, `kind` being "success", "warning" or "error".
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote

import httpx

from client import app_state
from client.app_state import GALLERY_VIEW, AppState
from client.auth_session import AuthSession, AuthSessionError, Session
from client.carousel import Carousel
from client.http_client import RetryingClient, ServerUnavailableError

LOGGER = logging.getLogger(__name__)

API_URL = "/api/blocks"

Notifier = Callable[[str, str], None]
PhotoFile = Tuple[str, bytes, str]


def _log_notification(message: str, kind: str) -> None:
    LOGGER.info("[%s] %s", kind, message)


class BlockApp:
    """Client-side controller for the block inventory.

    Args:
        http: Async HTTP client whose base URL points at the API server.
        notifier: Receives user-facing messages.
        retries: Attempts per request for cold-start retries.
        backoff: Initial retry delay in seconds.
        sleep: Coroutine used between retries.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        notifier: Notifier = _log_notification,
        retries: int = 3,
        backoff: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._http = http
        self.notify = notifier
        self.state = AppState()
        self.auth: Optional[AuthSession] = None
        self.api = RetryingClient(
            http,
            token_provider=self._access_token,
            on_unauthorized=self._force_sign_out,
            on_waking_up=self._waking_up,
            retries=retries,
            backoff=backoff,
            sleep=sleep,
        )

    @property
    def base_url(self) -> str:
        return str(self._http.base_url).rstrip("/")

    async def init(self) -> None:
        """Read the server's public config, start the auth gate, then load blocks."""
        try:
            response = await self.api.fetch("GET", "/api/config")
            config = response.json() if response.is_success else {}
        except (httpx.HTTPError, ServerUnavailableError, ValueError) as exc:
            LOGGER.error("Failed to read server config: %s", exc)
            config = {}

        if config.get("authRequired"):
            self.state.auth_required = True
            url, key = config.get("supabaseUrl"), config.get("supabaseKey")
            if not url or not key:
                self.notify("Erro de configuração do servidor", "error")
                app_state.apply_session(self.state, None)
                return
            self.auth = AuthSession(self._http, url, key)
            self.auth.on_auth_state_change(self._on_auth_state_change)

        if app_state.apply_session(self.state, self.auth.session if self.auth else None):
            await self.check_health_and_load()

    async def check_health_and_load(self) -> bool:
        """Wait out a cold start on /health, then load the gallery."""
        try:
            response = await self.api.fetch("GET", "/health")
            if not response.is_success:
                raise RuntimeError("Servidor indisponível")
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.error("Initial health check failed: %s", exc)
            self.notify("O servidor está demorando para responder. Tente recarregar a página.", "error")
            self.state.waking_up = False
            return False
        await self.load_blocks()
        return True

    async def switch_view(self, view: str) -> None:
        if app_state.set_view(self.state, view):
            await self.load_blocks()

    async def load_blocks(self, query: str = "") -> List[Dict[str, Any]]:
        """Fetch all blocks, or the search results for `query`, into the state."""
        url = f"{API_URL}/search/{quote(query, safe='')}" if query else API_URL
        try:
            response = await self.api.fetch("GET", url)
            if not response.is_success:
                raise RuntimeError("Erro ao carregar blocos")
            self.state.blocks = response.json()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.error("Error loading blocks: %s", exc)
            self.notify("Erro ao carregar blocos", "error")
        finally:
            self.state.waking_up = False
        return self.state.blocks

    async def search(self, text: str) -> List[Dict[str, Any]]:
        return await self.load_blocks(text.strip())

    async def submit_block(
        self,
        fields: Mapping[str, Any],
        photos: Optional[Mapping[str, PhotoFile]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Create a block, or update the one being edited.

        New blocks need at least one photo; edits may leave photos out.

        Args:
            fields: Form values (code, material, classification, dimensions).
            photos: `photo_<side>` -> (filename, bytes, mime type).
        """
        photos = {name: photo for name, photo in (photos or {}).items() if photo and photo[1]}
        editing = self.state.is_editing and self.state.current_block is not None
        if not editing and not photos:
            self.notify("Por favor, adicione pelo menos uma foto", "warning")
            return None

        if editing:
            method, url = "PUT", f"{API_URL}/{self.state.current_block['id']}"
        else:
            method, url = "POST", API_URL
        data = {key: str(value) for key, value in fields.items() if value is not None}

        try:
            response = await self.api.fetch(method, url, data=data, files=photos or None)
            if not response.is_success:
                raise RuntimeError(self._error_message(response, "Erro ao salvar bloco"))
            result = response.json()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.error("Error saving block: %s", exc)
            self.notify(str(exc), "error")
            return None
        finally:
            self.state.waking_up = False

        self.notify("Bloco atualizado com sucesso!" if editing else "Bloco cadastrado com sucesso!", "success")
        app_state.reset_form(self.state)
        await self.switch_view(GALLERY_VIEW)
        return result

    def edit_block(self, block_id: int) -> Optional[Dict[str, Any]]:
        block = app_state.start_editing(self.state, block_id)
        if block is not None:
            self.notify("Editando bloco. Atualize as informações necessárias.", "success")
        return block

    def cancel_edit(self) -> None:
        app_state.reset_form(self.state)

    async def delete_block(self, block_id: int, confirmed: bool = True) -> bool:
        if not confirmed:
            return False
        try:
            response = await self.api.fetch("DELETE", f"{API_URL}/{block_id}")
            if not response.is_success:
                raise RuntimeError("Erro ao excluir bloco")
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.error("Error deleting block: %s", exc)
            self.notify("Erro ao excluir bloco", "error")
            return False
        finally:
            self.state.waking_up = False

        self.notify("Bloco excluído com sucesso!", "success")
        await self.load_blocks()
        return True

    def view_block_photos(self, block_id: int) -> Optional[Carousel]:
        if app_state.find_block(self.state, block_id) is None:
            return None
        carousel = app_state.open_carousel(self.state, block_id, self.base_url)
        if carousel is None:
            self.notify("Este bloco não possui fotos", "warning")
        return carousel

    async def handle_login(self, email: str, password: str) -> bool:
        if self.auth is None:
            return False
        try:
            await self.auth.sign_in_with_password(email, password)
        except (AuthSessionError, httpx.HTTPError) as exc:
            LOGGER.error("Login error: %s", exc)
            self.notify(str(exc), "error")
            return False
        self.notify("Bem-vindo de volta!", "success")
        if not self.state.blocks:
            await self.check_health_and_load()
        return True

    async def handle_signup(self, email: str, password: str, confirm: str) -> bool:
        if self.auth is None:
            return False
        if password != confirm:
            self.notify("As senhas não coincidem", "warning")
            return False
        try:
            await self.auth.sign_up(email, password)
        except (AuthSessionError, httpx.HTTPError) as exc:
            LOGGER.error("Signup error: %s", exc)
            self.notify(str(exc), "error")
            return False
        self.notify("Conta criada! Verifique seu e-mail para confirmar.", "success")
        return True

    async def handle_logout(self, confirmed: bool = True) -> None:
        if confirmed and self.auth is not None:
            await self.auth.sign_out()
            self.notify("Até logo!", "success")

    def _on_auth_state_change(self, event: str, session: Optional[Session]) -> None:
        LOGGER.debug("Auth state changed: %s", event)
        app_state.apply_session(self.state, session)

    def _access_token(self) -> Optional[str]:
        return self.auth.access_token() if self.auth else None

    async def _force_sign_out(self) -> None:
        if self.auth is not None:
            await self.auth.sign_out()
        else:
            app_state.apply_session(self.state, None)

    def _waking_up(self) -> None:
        self.state.waking_up = True

    @staticmethod
    def _error_message(response: httpx.Response, default: str) -> str:
        try:
            return response.json().get("error") or default
        except (ValueError, AttributeError):
            return default
