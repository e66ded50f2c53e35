import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from optin.adapters.kv_sqlite import SQLiteKVStore
from optin.api.deps import get_email_service, get_kv_store, get_rules, get_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("optin.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Rules, store and email provider must all be usable before serving (fail-fast)
    try:
        get_rules(settings)
        logger.info("Rules loaded from %s", settings.rules_path)
        kv = get_kv_store(settings)
        if isinstance(kv, SQLiteKVStore):
            purged = kv.purge_expired()
            logger.info("KV store at %s ready (%d expired keys purged)", settings.kv_path, purged)
        elif kv is None:
            logger.warning("No KV store configured; store-backed routes will answer 503")
        email_service = get_email_service(settings)
        logger.info("Email provider: %s", email_service.provider_name)
    except Exception as e:
        logger.critical("Startup failed: %s", e)
        sys.exit(1)

    yield


app = FastAPI(
    title="Optin Newsletter API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Invalid request"},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "An unexpected error occurred. Please try again."},
    )


# --- Routers ---
from optin.api.routes import (  # noqa: E402
    admin_newsletter,
    admin_subscribers,
    auth,
    public_newsletter,
)

app.include_router(public_newsletter.router, prefix="", tags=["Newsletter"])
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(
    admin_subscribers.router, prefix="/admin/subscribers", tags=["Admin Subscribers"]
)
app.include_router(admin_newsletter.router, prefix="/admin/newsletter", tags=["Admin Newsletter"])


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "api"}
