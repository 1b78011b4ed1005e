"""Helpers to remove photo files no block refers to any more."""

import asyncio
import logging
import time
from typing import List

from dal.block_dal import BlockDAL
from services.blob_store import LocalBlobStore

LOGGER = logging.getLogger(__name__)


class UploadCleaner:
    """Delete files in the uploads directory that are not referenced by any block."""

    def __init__(self, block_dal: BlockDAL, blob_store: LocalBlobStore, min_age_seconds: float = 0.0) -> None:
        """
        Args:
            block_dal: Local record store used to collect referenced photos.
            blob_store: Local photo store whose directory is swept.
            min_age_seconds: Files younger than this are kept, so uploads of a
                request still in flight are not removed.
        """
        self._dal = block_dal
        self._blobs = blob_store
        self.min_age_seconds = min_age_seconds

    async def prune_orphaned_uploads(self) -> List[str]:
        """Delete unreferenced upload files and return their names."""
        referenced = await self._dal.referenced_photos()
        candidates = await asyncio.to_thread(self._unreferenced_files, referenced)
        for name in candidates:
            await self._blobs.delete(name)
        if candidates:
            LOGGER.info("Removed %d orphaned upload(s)", len(candidates))
        return candidates

    def _unreferenced_files(self, referenced: set) -> List[str]:
        cutoff = time.time() - self.min_age_seconds
        names = []
        for path in sorted(self._blobs.uploads_dir.iterdir()):
            if not path.is_file() or path.name in referenced:
                continue
            if self.min_age_seconds and path.stat().st_mtime > cutoff:
                continue
            names.append(path.name)
        return names
