"""Client view state and the functions that move it between views.

All mutable UI state lives on one `AppState` object handed to these
functions; nothing is kept in module globals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from client.auth_session import Session
from client.carousel import Carousel

FORM_VIEW = "form"
GALLERY_VIEW = "gallery"
UNAUTHENTICATED_VIEW = "unauthenticated"
VIEWS = (FORM_VIEW, GALLERY_VIEW, UNAUTHENTICATED_VIEW)


@dataclass
class AppState:
    current_view: str = FORM_VIEW
    blocks: List[Dict[str, Any]] = field(default_factory=list)
    current_block: Optional[Dict[str, Any]] = None
    is_editing: bool = False
    carousel: Optional[Carousel] = None
    session: Optional[Session] = None
    auth_required: bool = False
    waking_up: bool = False

    @property
    def authenticated(self) -> bool:
        return not self.auth_required or bool(self.session and self.session.access_token)


def image_url(reference: Optional[str], base_url: str = "") -> str:
    """Fetchable URL for a stored photo reference (filename or absolute URL)."""
    if not reference:
        return ""
    if reference.startswith(("http://", "https://")):
        return reference
    if reference.startswith("/"):
        return f"{base_url.rstrip('/')}{reference}"
    return f"{base_url.rstrip('/')}/uploads/{reference}"


def set_view(state: AppState, view: str) -> bool:
    """Switch to `view`; returns True when the gallery must be reloaded.

    While authentication is required and no session exists, the
    unauthenticated view replaces everything else.
    """
    if view not in VIEWS:
        raise ValueError(f"unknown view {view!r}")
    if not state.authenticated:
        state.current_view = UNAUTHENTICATED_VIEW
        return False
    state.current_view = view
    return view == GALLERY_VIEW


def apply_session(state: AppState, session: Optional[Session]) -> bool:
    """Record a session change; returns True when blocks should be loaded."""
    state.session = session
    if not state.authenticated:
        state.current_view = UNAUTHENTICATED_VIEW
        state.blocks = []
        state.carousel = None
        reset_form(state)
        return False
    if state.current_view == UNAUTHENTICATED_VIEW:
        state.current_view = FORM_VIEW
    return not state.blocks


def start_editing(state: AppState, block_id: int) -> Optional[Dict[str, Any]]:
    """Select a loaded block for editing and show the form."""
    block = find_block(state, block_id)
    if block is None:
        return None
    state.current_block = block
    state.is_editing = True
    state.current_view = FORM_VIEW
    return block


def reset_form(state: AppState) -> None:
    state.current_block = None
    state.is_editing = False


def open_carousel(state: AppState, block_id: int, base_url: str = "") -> Optional[Carousel]:
    """Open the photo carousel of a loaded block; None if it has no photos."""
    block = find_block(state, block_id)
    if block is None:
        return None

    def resolve(blk: Dict[str, Any], side: str) -> str:
        urls = blk.get("photo_urls") or {}
        return image_url(urls.get(side) or blk.get(f"photo_{side}"), base_url)

    carousel = Carousel.for_block(block, resolve)
    if not carousel.photos:
        return None
    state.carousel = carousel
    return carousel


def close_carousel(state: AppState) -> None:
    state.carousel = None


def find_block(state: AppState, block_id: int) -> Optional[Dict[str, Any]]:
    return next((b for b in state.blocks if b.get("id") == block_id), None)
