"""
Tests for client view state transitions.
"""

import pytest

from client import app_state
from client.app_state import FORM_VIEW, GALLERY_VIEW, UNAUTHENTICATED_VIEW, AppState
from client.auth_session import Session

BLOCKS = [
    {"id": 1, "code": "A", "photo_front": "f.png", "photo_urls": {"front": "/uploads/f.png"}},
    {"id": 2, "code": "B", "photo_back": "https://cdn.test/b.png"},
    {"id": 3, "code": "C"},
]


class TestImageUrl:
    @pytest.mark.parametrize(
        "reference, expected",
        [
            ("f.png", "http://h/uploads/f.png"),
            ("/uploads/f.png", "http://h/uploads/f.png"),
            ("https://cdn.test/x.png", "https://cdn.test/x.png"),
            (None, ""),
        ],
    )
    def test_resolution(self, reference, expected):
        assert app_state.image_url(reference, "http://h/") == expected


class TestViews:
    def test_gallery_switch_requests_reload(self):
        state = AppState()

        assert app_state.set_view(state, GALLERY_VIEW) is True
        assert state.current_view == GALLERY_VIEW
        assert app_state.set_view(state, FORM_VIEW) is False

    def test_unknown_view(self):
        with pytest.raises(ValueError):
            app_state.set_view(AppState(), "settings")

    def test_auth_gate_blocks_views_without_session(self):
        state = AppState(auth_required=True)

        assert app_state.set_view(state, GALLERY_VIEW) is False
        assert state.current_view == UNAUTHENTICATED_VIEW

    def test_sign_in_and_out(self):
        state = AppState(auth_required=True, current_view=UNAUTHENTICATED_VIEW)

        assert app_state.apply_session(state, Session(access_token="t")) is True
        assert state.current_view == FORM_VIEW

        state.blocks = list(BLOCKS)
        app_state.start_editing(state, 1)
        assert app_state.apply_session(state, None) is False
        assert state.current_view == UNAUTHENTICATED_VIEW
        assert state.blocks == []
        assert state.current_block is None
        assert not state.is_editing


class TestEditing:
    def test_start_editing_and_reset(self):
        state = AppState(blocks=list(BLOCKS), current_view=GALLERY_VIEW)

        block = app_state.start_editing(state, 2)

        assert block["code"] == "B"
        assert state.is_editing
        assert state.current_view == FORM_VIEW

        app_state.reset_form(state)
        assert state.current_block is None
        assert not state.is_editing

    def test_start_editing_unknown_block(self):
        state = AppState(blocks=list(BLOCKS))

        assert app_state.start_editing(state, 99) is None
        assert not state.is_editing


class TestCarouselState:
    def test_open_prefers_resolved_urls(self):
        state = AppState(blocks=list(BLOCKS))

        carousel = app_state.open_carousel(state, 1, "http://h")

        assert carousel.current.url == "http://h/uploads/f.png"
        assert state.carousel is carousel

    def test_open_passes_absolute_urls_through(self):
        state = AppState(blocks=list(BLOCKS))

        carousel = app_state.open_carousel(state, 2, "http://h")

        assert carousel.current.url == "https://cdn.test/b.png"
        assert carousel.current.label == "Trás"

    def test_block_without_photos_opens_nothing(self):
        state = AppState(blocks=list(BLOCKS))

        assert app_state.open_carousel(state, 3) is None
        assert state.carousel is None

    def test_close(self):
        state = AppState(blocks=list(BLOCKS))
        app_state.open_carousel(state, 1)

        app_state.close_carousel(state)

        assert state.carousel is None
