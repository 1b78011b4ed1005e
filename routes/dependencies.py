"""Shared FastAPI dependencies: app-state lookups and the authentication gate."""

from __future__ import annotations

from fastapi import HTTPException, Request

from dal.block_store import BlockStore
from services.authenticator import ANONYMOUS, Principal
from services.blob_store import BlobStore
from utils.errors import AuthenticationError, StoreUnavailableError
from utils.settings import Settings


def get_block_store(request: Request) -> BlockStore:
	"""Retrieve the record store from the app state."""
	store = getattr(request.app.state, "block_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Block store not initialized.")
	return store


def get_blob_store(request: Request) -> BlobStore:
	"""Retrieve the photo store from the app state."""
	blobs = getattr(request.app.state, "blob_store", None)
	if blobs is None:
		raise HTTPException(status_code=500, detail="Blob store not initialized.")
	return blobs


def get_settings(request: Request) -> Settings:
	return request.app.state.settings


async def require_principal(request: Request) -> Principal:
	"""Verify the request's bearer token when an authenticator is configured.

	The local variant runs without an authenticator and lets every request
	through as the anonymous principal.
	"""
	authenticator = getattr(request.app.state, "authenticator", None)
	if authenticator is None:
		return ANONYMOUS

	scheme, _, token = (request.headers.get("Authorization") or "").partition(" ")
	token = token.strip()
	if scheme.lower() != "bearer" or not token:
		raise HTTPException(status_code=401, detail="Authentication required")

	try:
		return await authenticator.verify(token)
	except AuthenticationError as exc:
		raise HTTPException(status_code=401, detail=str(exc)) from exc
	except StoreUnavailableError as exc:
		raise HTTPException(status_code=503, detail=str(exc)) from exc
