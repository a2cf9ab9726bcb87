from contextlib import asynccontextmanager
import time
import uuid
import logging

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from library_api.api.v1.dependencies import get_db
from library_api.api.v1.endpoints import admin, owner, reader
from library_api.core.config import settings
from library_api.core.errors import LibraryError, StorageError
from library_api.core.logging import configure_logging, get_logger, request_id_ctx
from library_api.db import models  # noqa: F401  registers the tables on Base
from library_api.db.session import Base, SessionLocal, engine
from library_api.services.init_owner import ensure_default_owner


# Configure global logging when the module is loaded
configure_logging()
request_logger = get_logger("api.request")
error_logger = get_logger("api.errors")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        ensure_default_owner(db)
    finally:
        db.close()
    yield


app = FastAPI(
    title="Library Lending API",
    version="1.0.0",
    lifespan=lifespan,
)

# API routers, one per role
app.include_router(owner.router)
app.include_router(admin.router)
app.include_router(reader.router)


@app.exception_handler(LibraryError)
async def library_error_handler(request: Request, exc: LibraryError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # malformed bodies are a 400 here, with a single readable message
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"detail": f"{location}: {message}" if location else message},
    )


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    error_logger.error(
        "storage_error",
        extra={"method": request.method, "path": request.url.path, "status_code": 500},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=StorageError.status_code,
        content={"detail": StorageError.default_message},
    )


@app.middleware("http")
async def add_request_id_and_log(request: Request, call_next):
    """
    Middleware that:
    - Assigns a request_id (unless one came in the X-Request-ID header).
    - Measures the response time.
    - Logs the request, at WARNING when it is slow.
    """
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    start = time.perf_counter()

    request.state.request_id = request_id
    request_id_ctx.set(request_id)

    try:
        response: Response = await call_next(request)
    except Exception:
        process_time_ms = (time.perf_counter() - start) * 1000
        request_logger.error(
            "unhandled_exception",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": 500,
                "duration_ms": round(process_time_ms, 2),
                "client_host": request.client.host if request.client else None,
            },
            exc_info=True,
        )
        raise

    process_time_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request_id

    level = logging.INFO
    if process_time_ms > settings.SLOW_REQUEST_THRESHOLD_MS:
        level = logging.WARNING

    request_logger.log(
        level,
        "request_completed",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(process_time_ms, 2),
            "client_host": request.client.host if request.client else None,
        },
    )

    return response


@app.get("/")
def root():
    return {"message": "Library API running"}


@app.get("/health/db")
def health_db(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "ok"}
