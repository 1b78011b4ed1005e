"""
Pytest configuration and fixtures for the block inventory tests.
"""

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from dal.block_dal import BlockDAL
from main import create_app
from services.blob_store import LocalBlobStore
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import Settings

# 1x1 pixel PNG; the server checks name and MIME type, not content.
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010802000000907753de"
    "0000000c4944415408d763f8ffff3f0005fe02fea7d6a4a40000000049454e44ae426082"
)


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def local_settings(tmp_path: Path) -> Settings:
    """Local backend confined to a temporary directory."""
    return Settings(
        backend="local",
        database_dir=tmp_path / "database",
        uploads_dir=tmp_path / "uploads",
        max_upload_bytes=64 * 1024,
    )


@pytest.fixture
def block_dal(tmp_path: Path) -> BlockDAL:
    return BlockDAL(AsyncDatabaseInitializer(tmp_path / "database"))


@pytest.fixture
def local_blob_store(tmp_path: Path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "uploads")


@pytest.fixture
def api(local_settings: Settings) -> Generator[TestClient, None, None]:
    """HTTP client for an app running the local backend."""
    with TestClient(create_app(local_settings)) as client:
        yield client


def block_form(**overrides) -> dict:
    form = {"code": "B-001", "material": "Granite", "height": "1.2", "width": "0.8", "length": "2.0"}
    form.update(overrides)
    return form


def new_block(**overrides) -> dict:
    """Fields for BlockDAL.create with sensible defaults."""
    fields = {"code": "B-001", "material": "Granite", "height": 1.2, "width": 0.8, "length": 2.0}
    fields.update(overrides)
    return fields
