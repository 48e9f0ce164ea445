import logging
import time

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from schemas.common import ErrorDetail, ErrorResponse
from services.errors import GradebookError, InvalidTaskDefinition, ResourceNotFound

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def _latency_ms(request: Request):
    start = getattr(request.state, "start_time", None)
    if start is None:
        return None
    return int((time.perf_counter() - start) * 1000)


def _error(request: Request, status_code: int, code: str, message: str, details=None, headers=None):
    body = ErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details),
        latency_ms=_latency_ms(request),
        trace_id=request.headers.get("X-Request-ID"),
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body),
        headers=headers,
    )


def add_error_handlers(app: FastAPI):
    @app.exception_handler(ResourceNotFound)
    async def not_found_handler(request: Request, exc: ResourceNotFound):
        return _error(request, 404, exc.code, exc.message)

    @app.exception_handler(InvalidTaskDefinition)
    async def invalid_task_handler(request: Request, exc: InvalidTaskDefinition):
        return _error(request, 422, exc.code, exc.message)

    @app.exception_handler(GradebookError)
    async def gradebook_error_handler(request: Request, exc: GradebookError):
        return _error(request, 400, exc.code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError):
        return _error(request, 422, "VALIDATION_ERROR", "Invalid request data", details=jsonable_encoder(exc.errors()))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        code = _STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
        return _error(request, exc.status_code, code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error("database error on %s %s: %s", request.method, request.url.path, exc)
        return _error(request, 503, "DATABASE_UNAVAILABLE", "Database is unavailable")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return _error(request, 500, "INTERNAL_ERROR", str(exc))
