"""
Tests for the orphaned upload sweep.
"""

import os
import time

from dal.block_dal import BlockDAL
from services.blob_store import LocalBlobStore
from tests.conftest import new_block
from utils.upload_cleaner import UploadCleaner


class TestUploadCleaner:
    async def test_removes_only_unreferenced_files(self, block_dal: BlockDAL, local_blob_store: LocalBlobStore):
        kept = await local_blob_store.store(b"a", "a.png", "image/png")
        orphan = await local_blob_store.store(b"b", "b.png", "image/png")
        await block_dal.create(new_block(photo_front=kept))

        removed = await UploadCleaner(block_dal, local_blob_store).prune_orphaned_uploads()

        assert removed == [orphan]
        assert (local_blob_store.uploads_dir / kept).exists()
        assert not (local_blob_store.uploads_dir / orphan).exists()

    async def test_recent_files_are_kept(self, block_dal: BlockDAL, local_blob_store: LocalBlobStore):
        old = await local_blob_store.store(b"a", "a.png", "image/png")
        fresh = await local_blob_store.store(b"b", "b.png", "image/png")
        past = time.time() - 3600
        os.utime(local_blob_store.uploads_dir / old, (past, past))

        removed = await UploadCleaner(block_dal, local_blob_store, min_age_seconds=60).prune_orphaned_uploads()

        assert removed == [old]
        assert (local_blob_store.uploads_dir / fresh).exists()

    async def test_nothing_to_remove(self, block_dal: BlockDAL, local_blob_store: LocalBlobStore):
        assert await UploadCleaner(block_dal, local_blob_store).prune_orphaned_uploads() == []
