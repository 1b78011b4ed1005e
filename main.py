import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from dal.block_dal import BlockDAL
from dal.block_store import BlockStore
from dal.hosted_block_dal import HostedBlockDAL
from routes.block_route import router as block_router
from services.authenticator import Authenticator, SupabaseAuthenticator
from services.blob_store import BlobStore, LocalBlobStore
from services.hosted_blob_store import HostedBlobStore
from utils.database_init import AsyncDatabaseInitializer
from utils.errors import BlockStoreError
from utils.settings import Settings

BASE_DIR = Path(__file__).resolve().parent
PUBLIC_DIR = BASE_DIR / "public"

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to build the storage adapters selected by the settings:
      - local: SQLite database under DATABASE_DIR and photos under UPLOADS_DIR
      - hosted: REST table, object storage and identity provider sharing one
        `httpx.AsyncClient`
    and attach them to `app.state`. Adapters injected through `create_app`
    are kept as they are.
    """
    settings: Settings = app.state.settings
    http_client: Optional[httpx.AsyncClient] = None

    if settings.is_hosted:
        needs_client = (
            app.state.block_store is None
            or app.state.blob_store is None
            or app.state.authenticator is None
        )
        if needs_client:
            http_client = httpx.AsyncClient(timeout=settings.http_timeout)
        if app.state.block_store is None:
            app.state.block_store = HostedBlockDAL(
                http_client, settings.supabase_url, settings.supabase_service_key, settings.supabase_table
            )
        if app.state.blob_store is None:
            app.state.blob_store = HostedBlobStore(
                http_client,
                settings.supabase_url,
                settings.supabase_service_key,
                settings.supabase_bucket,
                settings.supabase_folder,
            )
        if app.state.authenticator is None:
            app.state.authenticator = SupabaseAuthenticator(
                http_client, settings.supabase_url, settings.supabase_anon_key
            )
    else:
        if app.state.block_store is None:
            db_initializer = AsyncDatabaseInitializer(settings.database_dir)
            await db_initializer.ensure_database()
            app.state.db_initializer = db_initializer
            app.state.block_store = BlockDAL(db_initializer)
        if app.state.blob_store is None:
            app.state.blob_store = LocalBlobStore(settings.uploads_dir)

    LOGGER.info("Block inventory started with the %s backend", settings.backend)
    try:
        yield
    finally:
        if http_client is not None:
            await http_client.aclose()


def create_app(
    settings: Optional[Settings] = None,
    block_store: Optional[BlockStore] = None,
    blob_store: Optional[BlobStore] = None,
    authenticator: Optional[Authenticator] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Adapters passed in replace the ones the lifespan would build from the
    settings. When the settings select the hosted backend, requests to the
    block routes must carry a bearer token.
    """
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Block Inventory", lifespan=lifespan)
    app.state.settings = settings
    app.state.block_store = block_store
    app.state.blob_store = blob_store
    app.state.authenticator = authenticator

    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse({"error": "Invalid request"}, status_code=400)

    # Serve static assets from the public directory, if it exists.
    if PUBLIC_DIR.exists():
        app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")

    if not settings.is_hosted:
        settings.uploads_dir.mkdir(parents=True, exist_ok=True)
        app.mount("/uploads", StaticFiles(directory=settings.uploads_dir), name="uploads")

    @app.get("/", include_in_schema=False)
    async def serve_index():
        """
        Serve the frontend index page from the public directory.
        """
        index_path = PUBLIC_DIR / "index.html"
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="Frontend not found")
        return FileResponse(index_path)

    @app.get("/health")
    async def health(request: Request):
        """
        Liveness plus store connectivity: 200 when the record store answers, 503 otherwise.
        """
        body = {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "backend": settings.backend,
            "database": "connected",
        }
        try:
            await request.app.state.block_store.ping()
        except BlockStoreError:
            body.update(status="ERROR", database="unreachable")
            return JSONResponse(body, status_code=503)
        return body

    @app.get("/api/config")
    async def public_config():
        """
        Public identity-provider settings for the browser client.
        """
        return {
            "supabaseUrl": settings.supabase_url if settings.is_hosted else None,
            "supabaseKey": settings.supabase_anon_key if settings.is_hosted else None,
            "authRequired": settings.is_hosted,
        }

    # Register application routers
    app.include_router(block_router)

    return app


app = create_app()
