from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from .routers import auth, books, categories
from .config import settings
from .core.errors import AuthError, LibraryError
from .database import init_db
from .logging_setup import get_logger

logger = get_logger("api")

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables if they don't exist
    init_db()
    yield

app = FastAPI(title="Bookshelf", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "User-Id", "Content-Type", "Accept", "X-Requested-With"],
)

# Include Routers
app.include_router(auth.router)
app.include_router(books.router)
app.include_router(categories.router)


def _failure(status_code: int, message: str, error: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "error": error},
        headers=headers,
    )

@app.exception_handler(LibraryError)
async def library_error_handler(request: Request, exc: LibraryError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _failure(exc.status_code, exc.message, exc.error, headers)

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )
    return _failure(400, "Invalid request", details)

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _failure(exc.status_code, str(exc.detail), str(exc.detail), getattr(exc, "headers", None))

@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return _failure(500, "Database error", exc.__class__.__name__)

@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _failure(500, "Unexpected error", exc.__class__.__name__)


@app.get("/")
def root():
    return {"success": True, "message": "Bookshelf API is running"}


def run():
    logger.info("Starting server at http://127.0.0.1:8123")
    uvicorn.run(app, host="127.0.0.1", port=8123)

if __name__ == "__main__":
    run()
