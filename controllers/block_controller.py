"""Block CRUD workflows shared by the HTTP routes.

The controllers work against the `BlockStore` and `BlobStore` interfaces, so
the local and hosted variants run the same code. Domain errors are translated
to `HTTPException` here; anything unexpected propagates to the route.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from fastapi import HTTPException, UploadFile

from dal.block_store import BlockStore
from models.block_record import DIMENSION_FIELDS, PHOTO_FIELDS, BlockRecord
from services.blob_store import BlobStore
from utils.errors import BlockNotFoundError, StoreUnavailableError, UniqueViolationError, UploadValidationError
from utils.media_validation import PhotoUpload, parse_dimension, read_photo_upload
from utils.settings import Settings

LOGGER = logging.getLogger(__name__)

TEXT_FIELDS = ("code", "material", "classification")


def serialize_block(record: BlockRecord, blobs: BlobStore) -> Dict[str, Any]:
	"""Block as JSON, plus fetchable URLs for each photo that is set."""
	data = record.to_dict()
	data["photo_urls"] = {
		name[len("photo_"):]: blobs.resolve(ref) for name, ref in record.photos().items()
	}
	return data


async def list_blocks(store: BlockStore, blobs: BlobStore) -> List[Dict[str, Any]]:
	return [serialize_block(r, blobs) for r in await store.get_all()]


async def search_blocks(store: BlockStore, blobs: BlobStore, query: str) -> List[Dict[str, Any]]:
	return [serialize_block(r, blobs) for r in await store.search(query.strip())]


async def get_block(store: BlockStore, blobs: BlobStore, block_id: int) -> Dict[str, Any]:
	record = await store.get_by_id(block_id)
	if record is None:
		raise HTTPException(status_code=404, detail="Block not found")
	return serialize_block(record, blobs)


async def create_block(
	store: BlockStore,
	blobs: BlobStore,
	settings: Settings,
	form: Mapping[str, Optional[str]],
	uploads: Mapping[str, Optional[UploadFile]],
) -> Dict[str, Any]:
	"""Validate the submitted form, persist its photos, then the block row.

	Every check runs before anything is written. If the row cannot be
	written, the photos stored for this request are removed again.
	"""
	values = _clean_form(form)
	if any(field not in values for field in settings.required_fields):
		raise HTTPException(status_code=400, detail="Missing required fields")

	fields: Dict[str, Any] = {name: values.get(name) for name in TEXT_FIELDS}
	try:
		for name in DIMENSION_FIELDS:
			fields[name] = parse_dimension(name, values[name])
		photos = await _read_photos(uploads, settings.max_upload_bytes)
	except UploadValidationError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc

	stored = await _store_photos(blobs, photos)
	fields.update(stored)
	try:
		record = await store.create(fields)
	except UniqueViolationError as exc:
		await _discard(blobs, stored.values())
		raise HTTPException(status_code=400, detail="Block code already exists") from exc
	except Exception:
		await _discard(blobs, stored.values())
		raise

	LOGGER.info("Created block %s (%s) with %d photo(s)", record.id, record.code, len(stored))
	return serialize_block(record, blobs)


async def update_block(
	store: BlockStore,
	blobs: BlobStore,
	settings: Settings,
	block_id: int,
	form: Mapping[str, Optional[str]],
	uploads: Mapping[str, Optional[UploadFile]],
) -> Dict[str, Any]:
	"""Merge the submitted fields over an existing block.

	Blank or omitted fields keep their current value; photo sides that are
	not resubmitted keep their current reference. Photos replaced by a new
	upload are deleted once the row is saved.
	"""
	existing = await store.get_by_id(block_id)
	if existing is None:
		raise HTTPException(status_code=404, detail="Block not found")

	values = _clean_form(form)
	fields = existing.writable_values()
	for name in TEXT_FIELDS:
		if name in values:
			fields[name] = values[name]
	try:
		for name in DIMENSION_FIELDS:
			if name in values:
				fields[name] = parse_dimension(name, values[name])
		photos = await _read_photos(uploads, settings.max_upload_bytes)
	except UploadValidationError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc

	stored = await _store_photos(blobs, photos)
	replaced = [fields[name] for name in stored if fields.get(name)]
	fields.update(stored)
	try:
		record = await store.update(block_id, fields)
	except BlockNotFoundError as exc:
		await _discard(blobs, stored.values())
		raise HTTPException(status_code=404, detail="Block not found") from exc
	except UniqueViolationError as exc:
		await _discard(blobs, stored.values())
		raise HTTPException(status_code=400, detail="Block code already exists") from exc
	except Exception:
		await _discard(blobs, stored.values())
		raise

	await _discard(blobs, replaced)
	return serialize_block(record, blobs)


async def delete_block(store: BlockStore, blobs: BlobStore, block_id: int) -> Dict[str, str]:
	"""Delete a block's photos, then its row."""
	record = await store.get_by_id(block_id)
	if record is None:
		raise HTTPException(status_code=404, detail="Block not found")

	await _discard(blobs, record.photos().values())
	if not await store.delete(block_id):
		raise HTTPException(status_code=404, detail="Block not found")
	LOGGER.info("Deleted block %s (%s)", record.id, record.code)
	return {"message": "Block deleted successfully"}


def _clean_form(form: Mapping[str, Optional[str]]) -> Dict[str, str]:
	"""Drop absent and blank values; strip the rest."""
	return {key: value.strip() for key, value in form.items() if value is not None and value.strip()}


async def _read_photos(uploads: Mapping[str, Optional[UploadFile]], max_bytes: int) -> List[PhotoUpload]:
	photos = []
	for name in PHOTO_FIELDS:
		photo = await read_photo_upload(name, uploads.get(name), max_bytes)
		if photo is not None:
			photos.append(photo)
	return photos


async def _store_photos(blobs: BlobStore, photos: List[PhotoUpload]) -> Dict[str, str]:
	"""Store every photo, or none: a failure removes the ones already written."""
	stored: Dict[str, str] = {}
	try:
		for photo in photos:
			stored[photo.field] = await blobs.store(photo.data, photo.filename, photo.content_type)
	except StoreUnavailableError:
		await _discard(blobs, stored.values())
		raise
	return stored


async def _discard(blobs: BlobStore, references) -> None:
	for ref in list(references):
		await blobs.delete(ref)
