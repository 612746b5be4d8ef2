"""
Main application entry point.
"""

import logging
import os

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from homelibrary.domain.exceptions import DuplicateError, NotFoundError
from homelibrary.api.v1.book_endpoints import router as book_router
from homelibrary.api.v1.library_endpoints import router as library_router
from homelibrary.api.v1.rating_endpoints import router as rating_router
from homelibrary.api.v1.search_endpoints import router as search_router

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Home Library API",
    description="Personal book library with catalog search and OpenLibrary / Google Books fallback.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Include API routers
app.include_router(search_router, prefix="/api/v1", tags=["search"])
app.include_router(book_router, prefix="/api/v1", tags=["books"])
app.include_router(library_router, prefix="/api/v1", tags=["library"])
app.include_router(rating_router, prefix="/api/v1", tags=["ratings"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query/path/body parameters are a plain 400, like domain validation errors."""
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p not in ('query', 'body', 'path'))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return _error(status.HTTP_400_BAD_REQUEST, f"Invalid request: {details}")


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(NotFoundError)
async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, str(exc))


@app.exception_handler(DuplicateError)
async def handle_duplicate(request: Request, exc: DuplicateError) -> JSONResponse:
    return _error(status.HTTP_409_CONFLICT, str(exc))


@app.exception_handler(ValueError)
async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(RuntimeError)
async def handle_runtime_error(request: Request, exc: RuntimeError) -> JSONResponse:
    logger.error(f"Service unavailable on {request.url.path}: {exc}")
    return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "Service temporarily unavailable, please try again later")


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unexpected error on {request.url.path}")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred")


@app.get("/")
def read_root():
    """Root endpoint."""
    return {
        "message": "Welcome to the Home Library API",
        "docs": "/docs",
        "health": "/api/v1/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("homelibrary.main:app", host="0.0.0.0", port=8000, reload=True)
