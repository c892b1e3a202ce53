import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from config import BaseServiceSettings
from errors import AppError, DatabaseError
from utils.responses import fail, validation_details

logger = logging.getLogger("langchain_flow.http")


def register_error_handlers(app: FastAPI, settings: BaseServiceSettings) -> None:
    """Render every failure as the `{success: false, error}` envelope."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return fail(400, "Invalid request data", details=validation_details(exc.errors()))

    @app.exception_handler(DatabaseError)
    async def database_error_handler(request: Request, exc: DatabaseError):
        logger.error("Database error on %s %s: %s", request.method, request.url.path, exc.cause)
        message = exc.error if settings.is_development else None
        return fail(exc.status_code, "Internal server error", message=message)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return fail(exc.status_code, exc.error)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        error = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and error == "Not Found":
            error = "Not found"
        return fail(exc.status_code, error)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        message = str(exc) if settings.is_development else None
        return fail(500, "Internal server error", message=message)


def add_request_logging(app: FastAPI) -> None:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("%s %s -> %s (%.1fms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response
