"""
Vidshelf API application.

Run locally with ``uvicorn vidshelf.main:app --reload`` or
``python -m vidshelf.main``.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from vidshelf import __version__
from vidshelf.api import api_router
from vidshelf.core.config import settings
from vidshelf.core.exceptions import CatalogError, TransientServerError
from vidshelf.core.logging import get_logger, setup_logging
from vidshelf.db.session import check_db_health, close_db, init_db

setup_logging()
logger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info(
        "starting_application",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        version=__version__,
    )
    await init_db()

    yield

    logger.info("shutting_down_application")
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="Public video catalog: ranked feeds, search, engagement and uploads",
    version=__version__,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


# ================================
# Error Rendering
# ================================

def error_response(error: CatalogError) -> JSONResponse:
    """``{"error": {"code", "message"}}`` with the error's status."""
    message = GENERIC_ERROR_MESSAGE if error.status_code == 500 else error.message
    return JSONResponse(
        status_code=error.status_code,
        content={"error": {"code": error.code, "message": message}},
    )


@app.exception_handler(CatalogError)
async def catalog_exception_handler(request: Request, exc: CatalogError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "request_failed",
        code=exc.code,
        status_code=exc.status_code,
        error=exc.message,
        path=request.url.path,
        method=request.method,
    )
    return error_response(exc)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected becomes a generic 500; details stay in the logs."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )
    return error_response(TransientServerError(str(exc)))


# ================================
# Service Endpoints
# ================================

@app.get("/health", tags=["health"])
async def health_check() -> JSONResponse:
    """Liveness plus a database round trip; 503 when the database is unreachable."""
    db_healthy = await check_db_health()

    return JSONResponse(
        status_code=200 if db_healthy else 503,
        content={
            "status": "healthy" if db_healthy else "unhealthy",
            "app_name": settings.APP_NAME,
            "environment": settings.APP_ENV,
            "version": __version__,
            "database": "connected" if db_healthy else "disconnected",
        },
    )


@app.get("/", tags=["root"])
async def root() -> dict:
    return {
        "message": f"Welcome to {settings.APP_NAME} API",
        "version": __version__,
        "docs": "/docs" if settings.DEBUG else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "vidshelf.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
