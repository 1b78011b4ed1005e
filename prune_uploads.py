"""Delete photo files that no block in the local database refers to.

Blocks whose record write failed, or photos replaced outside the API, can
leave files behind in the uploads directory. This script lists every photo
referenced by a block and removes the rest.

Run: configure `DATABASE_DIR` / `UPLOADS_DIR` like the server (a `.env` file
      works too) and run `python prune_uploads.py`.
"""
import asyncio

from dotenv import load_dotenv

from dal.block_dal import BlockDAL
from services.blob_store import LocalBlobStore
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import Settings
from utils.upload_cleaner import UploadCleaner


async def main() -> None:
    """Sweep the uploads directory and print the removed file names."""
    settings = Settings.from_env()
    if settings.is_hosted:
        raise SystemExit("prune_uploads.py only works with the local storage backend.")

    initializer = AsyncDatabaseInitializer(settings.database_dir)
    cleaner = UploadCleaner(BlockDAL(initializer), LocalBlobStore(settings.uploads_dir), min_age_seconds=60)
    removed = await cleaner.prune_orphaned_uploads()
    for name in removed:
        print(f"removed {name}")
    print(f"{len(removed)} orphaned upload(s) removed")


if __name__ == "__main__":
    load_dotenv()
    asyncio.run(main())
