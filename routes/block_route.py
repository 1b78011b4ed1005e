"""FastAPI routes for the block inventory."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from controllers import block_controller
from dal.block_store import BlockStore
from routes.dependencies import get_blob_store, get_block_store, get_settings, require_principal
from services.blob_store import BlobStore
from utils.settings import Settings

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/api/blocks", tags=["blocks"], dependencies=[Depends(require_principal)])


def _internal_error(message: str, exc: Exception) -> HTTPException:
	LOGGER.error("%s: %s", message, exc, exc_info=exc)
	return HTTPException(status_code=500, detail=message)


@router.get("")
async def list_blocks_route(
	store: BlockStore = Depends(get_block_store),
	blobs: BlobStore = Depends(get_blob_store),
):
	try:
		return await block_controller.list_blocks(store, blobs)
	except HTTPException:
		raise
	except Exception as exc:
		raise _internal_error("Failed to fetch blocks", exc) from exc


@router.get("/search/{query}")
async def search_blocks_route(
	query: str,
	store: BlockStore = Depends(get_block_store),
	blobs: BlobStore = Depends(get_blob_store),
):
	"""Blocks whose code or material contains `query`, ignoring case."""
	try:
		return await block_controller.search_blocks(store, blobs, query)
	except HTTPException:
		raise
	except Exception as exc:
		raise _internal_error("Failed to search blocks", exc) from exc


@router.get("/{block_id}")
async def get_block_route(
	block_id: int,
	store: BlockStore = Depends(get_block_store),
	blobs: BlobStore = Depends(get_blob_store),
):
	try:
		return await block_controller.get_block(store, blobs, block_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise _internal_error("Failed to fetch block", exc) from exc


@router.post("", status_code=201)
async def create_block_route(
	code: Optional[str] = Form(None),
	material: Optional[str] = Form(None),
	classification: Optional[str] = Form(None),
	height: Optional[str] = Form(None),
	width: Optional[str] = Form(None),
	length: Optional[str] = Form(None),
	photo_front: Optional[UploadFile] = File(None),
	photo_back: Optional[UploadFile] = File(None),
	photo_left: Optional[UploadFile] = File(None),
	photo_right: Optional[UploadFile] = File(None),
	store: BlockStore = Depends(get_block_store),
	blobs: BlobStore = Depends(get_blob_store),
	settings: Settings = Depends(get_settings),
):
	"""Create a block from a multipart form with up to four photos."""
	form = {
		"code": code, "material": material, "classification": classification,
		"height": height, "width": width, "length": length,
	}
	uploads = {
		"photo_front": photo_front, "photo_back": photo_back,
		"photo_left": photo_left, "photo_right": photo_right,
	}
	try:
		return await block_controller.create_block(store, blobs, settings, form, uploads)
	except HTTPException:
		raise
	except Exception as exc:
		raise _internal_error("Failed to create block", exc) from exc


@router.put("/{block_id}")
async def update_block_route(
	block_id: int,
	code: Optional[str] = Form(None),
	material: Optional[str] = Form(None),
	classification: Optional[str] = Form(None),
	height: Optional[str] = Form(None),
	width: Optional[str] = Form(None),
	length: Optional[str] = Form(None),
	photo_front: Optional[UploadFile] = File(None),
	photo_back: Optional[UploadFile] = File(None),
	photo_left: Optional[UploadFile] = File(None),
	photo_right: Optional[UploadFile] = File(None),
	store: BlockStore = Depends(get_block_store),
	blobs: BlobStore = Depends(get_blob_store),
	settings: Settings = Depends(get_settings),
):
	"""Update a block; omitted fields and photo sides keep their values."""
	form = {
		"code": code, "material": material, "classification": classification,
		"height": height, "width": width, "length": length,
	}
	uploads = {
		"photo_front": photo_front, "photo_back": photo_back,
		"photo_left": photo_left, "photo_right": photo_right,
	}
	try:
		return await block_controller.update_block(store, blobs, settings, block_id, form, uploads)
	except HTTPException:
		raise
	except Exception as exc:
		raise _internal_error("Failed to update block", exc) from exc


@router.delete("/{block_id}")
async def delete_block_route(
	block_id: int,
	store: BlockStore = Depends(get_block_store),
	blobs: BlobStore = Depends(get_blob_store),
):
	try:
		return await block_controller.delete_block(store, blobs, block_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise _internal_error("Failed to delete block", exc) from exc
