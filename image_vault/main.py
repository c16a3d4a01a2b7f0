from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from datetime import datetime, timezone
import logging

# Load environment variables as early as possible
load_dotenv()

from .config import settings
from .database import create_db_and_tables
from .exceptions import (
    ImageVaultError,
    StorageUnavailable,
    create_error_response,
    http_exception_handler,
    vault_exception_handler,
)
from .middleware import SecurityMiddleware, LoggingMiddleware, ErrorHandlingMiddleware, RequestSizeLimitMiddleware
from .routers import images_router
from .application.ports.image_record_repo import ImageRecordRepository

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting Image Vault API...")
    app.state.db_init_ok = True
    app.state.db_init_error = None
    if settings.STORAGE_BACKEND == "sql":
        try:
            create_db_and_tables()
            logger.info("Database initialized successfully")
        except Exception as e:
            # Do not crash the app; report via health endpoint
            app.state.db_init_ok = False
            app.state.db_init_error = e.__class__.__name__
            logger.exception("Database initialization failed")
    yield
    # Shutdown
    logger.info("Shutting down Image Vault API...")

# Initialize FastAPI
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    docs_url=("/docs" if settings.DOCS_ENABLED else None),
    redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
    openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
)

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # FastAPI's default body echoes the offending input, which may be a passphrase
    fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
    logger.info(f"Request validation failed on fields: {fields}")
    return JSONResponse(status_code=400, content=create_error_response("Invalid input", 400))

# Add custom exception handlers
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(ImageVaultError, vault_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

# Add middleware
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(SecurityMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)

# GZip compression
app.add_middleware(GZipMiddleware, minimum_size=settings.GZIP_MIN_SIZE)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.allowed_methods_list,
    allow_headers=settings.allowed_headers_list,
    expose_headers=["Content-Disposition"],
)

app.include_router(images_router.router)

# Health check endpoint
@app.get("/health")
def health_check(repo: ImageRecordRepository = Depends(images_router.get_image_repository)):
    storage_ok = getattr(app.state, "db_init_ok", True)
    storage_error = getattr(app.state, "db_init_error", None)
    if settings.HEALTH_CHECK_ENABLED and storage_ok:
        try:
            repo.ping()
        except StorageUnavailable:
            storage_ok = False
            storage_error = "unavailable"
    return {
        "status": "healthy" if storage_ok else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": {
            "ok": storage_ok,
            "error": storage_error,
            "backend": settings.STORAGE_BACKEND,
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("image_vault.main:app", host=settings.HOST, port=settings.PORT, workers=settings.WORKERS)
