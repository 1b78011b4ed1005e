"""Environment-driven configuration for the block inventory server.

`Settings.from_env()` reads the process environment once at startup. The
server entry point loads a `.env` file first (see `main.py`), so every value
below can also be supplied there.

The storage backend defaults to `hosted` when `SUPABASE_URL` is present and to
`local` otherwise.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

BASE_DIR = Path(__file__).resolve().parent.parent

LOCAL_BACKEND = "local"
HOSTED_BACKEND = "hosted"

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class Settings:
    """Resolved configuration values.

    Attributes:
        backend: Either "local" (SQLite + filesystem) or "hosted" (REST + object storage).
        database_dir: Directory holding the local SQLite file.
        uploads_dir: Directory holding locally stored photos.
        max_upload_bytes: Per-file upload size limit.
        supabase_url: Base URL of the hosted project (hosted backend only).
        supabase_anon_key: Public key handed to browser clients.
        supabase_service_key: Key used by the server for table and storage calls.
        supabase_table: Hosted table name.
        supabase_bucket: Hosted storage bucket.
        supabase_folder: Folder namespace for photos inside the bucket.
        http_timeout: Timeout in seconds for hosted HTTP calls.
        log_level: Root logging level name.
    """

    backend: str = LOCAL_BACKEND
    database_dir: Path = BASE_DIR / "database"
    uploads_dir: Path = BASE_DIR / "uploads"
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    supabase_service_key: Optional[str] = None
    supabase_table: str = "blocks"
    supabase_bucket: str = "blocks"
    supabase_folder: str = "photos"
    http_timeout: float = 10.0
    log_level: str = "INFO"

    @property
    def is_hosted(self) -> bool:
        return self.backend == HOSTED_BACKEND

    @property
    def required_fields(self) -> tuple:
        """Form fields that must be present and non-empty when creating a block."""
        fields = ("code", "material", "height", "width", "length")
        if self.is_hosted:
            return fields + ("classification",)
        return fields

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Raises:
            RuntimeError: If a value is malformed or the hosted backend is
                selected without its URL and key.
        """
        env = os.environ if environ is None else environ

        supabase_url = _clean(env.get("SUPABASE_URL"))
        backend = (_clean(env.get("STORAGE_BACKEND")) or (HOSTED_BACKEND if supabase_url else LOCAL_BACKEND)).lower()
        if backend not in (LOCAL_BACKEND, HOSTED_BACKEND):
            raise RuntimeError(
                f"STORAGE_BACKEND={backend!r} is not supported; use 'local' or 'hosted'."
            )

        anon_key = _clean(env.get("SUPABASE_ANON_KEY"))
        if backend == HOSTED_BACKEND and not (supabase_url and anon_key):
            raise RuntimeError(
                "The hosted backend requires SUPABASE_URL and SUPABASE_ANON_KEY to be set."
            )

        database_dir = Path(_clean(env.get("DATABASE_DIR")) or BASE_DIR / "database").expanduser()
        if database_dir.exists() and not database_dir.is_dir():
            raise RuntimeError(
                f"DATABASE_DIR points to a file, not a directory ({database_dir})."
            )

        return cls(
            backend=backend,
            database_dir=database_dir,
            uploads_dir=Path(_clean(env.get("UPLOADS_DIR")) or BASE_DIR / "uploads").expanduser(),
            max_upload_bytes=_int(env, "MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
            supabase_url=supabase_url.rstrip("/") if supabase_url else None,
            supabase_anon_key=anon_key,
            supabase_service_key=_clean(env.get("SUPABASE_SERVICE_KEY")) or anon_key,
            supabase_table=_clean(env.get("SUPABASE_TABLE")) or "blocks",
            supabase_bucket=_clean(env.get("SUPABASE_BUCKET")) or "blocks",
            supabase_folder=(_clean(env.get("SUPABASE_FOLDER")) or "photos").strip("/"),
            http_timeout=_float(env, "HTTP_TIMEOUT_SECONDS", 10.0),
            log_level=(_clean(env.get("LOG_LEVEL")) or "INFO").upper(),
        )


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = _clean(env.get(key))
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{key}={raw!r} must be an integer") from exc


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = _clean(env.get(key))
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{key}={raw!r} must be a number") from exc
