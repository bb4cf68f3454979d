"""PixNest API: FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map PixNestError to structured JSON responses
    - Database and object storage initialized on startup via lifespan
    - Request bodies above the upload ceiling are refused before multipart
      parsing, whether or not they declare a Content-Length

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Size guard as ASGI middleware (api/middleware.py): multipart parsing
      would otherwise spool the whole body to disk before any route code runs
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import pixnest.infrastructure.cloudinary_gateway as storage
import pixnest.infrastructure.database as database
from pixnest.api.error_handlers import register_error_handlers
from pixnest.api.middleware import RequestSizeLimitMiddleware
from pixnest.api.routes import auth, health, posts, profile
from pixnest.config import get_settings
from pixnest.infrastructure.observability import setup_logging
from pixnest.services.credential_store import prime_dummy_hash

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    storage.init_storage(
        settings.cloudinary_cloud_name,
        settings.cloudinary_api_key,
        settings.cloudinary_api_secret,
        timeout_seconds=settings.media_upload_timeout_seconds,
    )
    await prime_dummy_hash(settings.bcrypt_rounds)
    logger.info("PixNest API started")
    yield
    logger.info("PixNest API shutting down")
    if storage.storage_gateway:
        await storage.storage_gateway.aclose()
    if database.db_manager:
        await database.db_manager.dispose()


app = FastAPI(title="PixNest API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(
    RequestSizeLimitMiddleware,
    max_bytes=lambda: get_settings().max_request_bytes,
    media_max_bytes=lambda: get_settings().media_max_bytes,
)


register_error_handlers(app)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(posts.router)
app.include_router(profile.router)
