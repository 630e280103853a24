"""
Bookshelf - FastAPI application
Self-published books: sessions, cover uploads, publishing and reading.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from bookshelf import __version__
from bookshelf.core.config import settings
from bookshelf.core.errors import BookshelfError

from bookshelf.api.books import router as books_router
from bookshelf.api.session import router as session_router
from bookshelf.api.covers import upload_router as cover_upload_router, blob_router
# Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown events"""
    logger.info(f"Bookshelf starting (environment={settings.ENVIRONMENT}, kv={settings.KV_BACKEND}, storage={settings.STORAGE_BACKEND})")
    if not settings.PUBLISH_PASSWORD:
        logger.warning("PUBLISH_PASSWORD is not set; publishing is disabled")
    yield
    logger.info("Bookshelf stopped")


app = FastAPI(
    title="Bookshelf API",
    description="Self-published e-books: publish chapters, upload covers, read online",
    version=__version__,
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan
)

DEV_ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:8788",
]
ALLOWED_ORIGINS = DEV_ALLOWED_ORIGINS if settings.ENVIRONMENT == "development" else []
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookshelfError)
async def bookshelf_error_handler(request: Request, exc: BookshelfError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed JSON, unknown fields and missing fields are all bad requests"""
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] == "body":
            loc = loc[1:]
        if loc:
            fields.append(".".join(loc))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "missing or invalid fields", "kind": "bad-request", "fields": fields},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal error", "kind": "upstream-failure"},
    )


app.include_router(books_router, prefix="/api/books", tags=["books"])
app.include_router(session_router, prefix="/api/session", tags=["session"])
app.include_router(cover_upload_router, prefix="/api/upload-cover", tags=["covers"])
app.include_router(blob_router, prefix="/r2", tags=["covers"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Bookshelf API",
        "version": __version__,
        "docs": "/docs",
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check"""
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "bookshelf.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True if settings.ENVIRONMENT == "development" else False
    )
