"""Blob store backed by hosted object storage (Supabase Storage API).

Objects live under `<bucket>/<folder>/<name>` and the reference kept on the
block row is the object's public URL, so `resolve()` is the identity.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from services.blob_store import unique_blob_name
from utils.errors import StoreUnavailableError

LOGGER = logging.getLogger(__name__)


class HostedBlobStore:
    """Upload, resolve and delete photos in a public storage bucket."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        api_key: str,
        bucket: str = "blocks",
        folder: str = "photos",
    ) -> None:
        base = base_url.rstrip("/")
        self._client = client
        self._bucket = bucket
        self._folder = folder.strip("/")
        self._object_url = f"{base}/storage/v1/object/{bucket}"
        self._public_url = f"{base}/storage/v1/object/public/{bucket}/"
        self._headers = {"apikey": api_key, "Authorization": f"Bearer {api_key}"}

    async def store(self, data: bytes, filename: str, mime_type: str) -> str:
        """Upload `data` and return its public URL.

        Raises:
            StoreUnavailableError: If the upload fails.
        """
        name = unique_blob_name(filename, mime_type)
        path = f"{self._folder}/{name}" if self._folder else name
        try:
            response = await self._client.post(
                f"{self._object_url}/{path}",
                content=data,
                headers={**self._headers, "Content-Type": mime_type or "application/octet-stream", "x-upsert": "false"},
            )
        except httpx.HTTPError as exc:
            LOGGER.error("Photo upload to %s failed: %s", path, exc)
            raise StoreUnavailableError("Object storage unreachable") from exc
        if not response.is_success:
            LOGGER.error("Photo upload to %s rejected (%s): %s", path, response.status_code, response.text)
            raise StoreUnavailableError(f"Object storage returned HTTP {response.status_code}")
        return self._public_url + path

    def resolve(self, reference: str) -> str:
        return reference

    async def delete(self, reference: str) -> None:
        path = self.object_path(reference)
        if path is None:
            LOGGER.warning("Not a photo in bucket %s: %r", self._bucket, reference)
            return
        try:
            response = await self._client.request(
                "DELETE",
                self._object_url,
                json={"prefixes": [path]},
                headers=self._headers,
            )
        except httpx.HTTPError as exc:
            LOGGER.warning("Failed to delete photo %s: %s", path, exc)
            return
        if not response.is_success:
            LOGGER.warning("Failed to delete photo %s (%s): %s", path, response.status_code, response.text)

    def object_path(self, reference: str) -> Optional[str]:
        """Path inside the bucket for a public URL issued by this store."""
        if not reference or not reference.startswith(self._public_url):
            return None
        path = reference[len(self._public_url):]
        return path or None
