"""Photo persistence: the `BlobStore` interface and its local filesystem adapter.

A blob reference is whatever the store hands back from `store()`: a bare
filename for `LocalBlobStore`, a public URL for
`services.hosted_blob_store.HostedBlobStore`. Block rows keep the reference;
`resolve()` turns it into something a browser can fetch.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from pathlib import Path
from typing import Protocol, runtime_checkable

import aiofiles

LOGGER = logging.getLogger(__name__)

MIME_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


@runtime_checkable
class BlobStore(Protocol):
    async def store(self, data: bytes, filename: str, mime_type: str) -> str:
        """Persist `data` and return its opaque reference."""
        ...

    def resolve(self, reference: str) -> str:
        """Return a URL the client can fetch for `reference`."""
        ...

    async def delete(self, reference: str) -> None:
        """Remove the blob; failures are logged, never raised."""
        ...


def unique_blob_name(filename: str, mime_type: str) -> str:
    """Return `<epoch-ms>-<random>.<ext>` keeping the upload's extension.

    Falls back to an extension derived from the MIME type when the original
    filename has none.
    """
    ext = Path(filename or "").suffix.lower()
    if not ext:
        ext = MIME_EXTENSIONS.get((mime_type or "").lower(), "")
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9 - 1)}{ext}"


class LocalBlobStore:
    """Store photos as files under a single uploads directory.

    Files are served back by the application under `url_prefix`
    (a static mount of the same directory).
    """

    def __init__(self, uploads_dir: Path | str, url_prefix: str = "/uploads") -> None:
        self.uploads_dir = Path(uploads_dir).expanduser()
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        self.url_prefix = url_prefix.rstrip("/")

    async def store(self, data: bytes, filename: str, mime_type: str) -> str:
        name = unique_blob_name(filename, mime_type)
        async with aiofiles.open(self.uploads_dir / name, "wb") as f:
            await f.write(data)
        return name

    def resolve(self, reference: str) -> str:
        if reference.startswith(("http://", "https://")):
            return reference
        return f"{self.url_prefix}/{reference}"

    async def delete(self, reference: str) -> None:
        path = self.path_for(reference)
        if path is None:
            LOGGER.warning("Refusing to delete blob outside uploads directory: %r", reference)
            return
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            LOGGER.warning("Failed to delete blob %s: %s", path, exc)

    def path_for(self, reference: str) -> Path | None:
        """Filesystem path of `reference`, or None if it escapes the uploads directory."""
        if not reference:
            return None
        root = self.uploads_dir.resolve()
        candidate = (root / reference).resolve()
        if candidate.parent != root:
            return None
        return candidate
