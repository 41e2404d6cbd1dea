import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.cores.api_error import ApiError, field_error
from app.cores.api_response import send_error

logger = logging.getLogger(__name__)

LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie", "form"}


def _clean_message(message: str) -> str:
    # pydantic antepone "Value error, " a los ValueError de los validadores
    return message.split(", ", 1)[1] if message.startswith("Value error, ") else message


def _field_from_loc(loc) -> str:
    parts = [str(part) for part in loc if part not in LOCATION_PREFIXES]
    return ".".join(parts) if parts else "request"


async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return send_error(exc.status_code, exc.message, exc.errors)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        field_error(_field_from_loc(error.get("loc", ())), _clean_message(error.get("msg", "Invalid value")))
        for error in exc.errors()
    ]
    return send_error(422, "Validation failed", errors)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and message == "Not Found":
        message = f"Route {request.url.path} not found"
    return send_error(exc.status_code, message, headers=getattr(exc, "headers", None))


async def rate_limit_error_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rate limit hit on {request.url.path}: {exc.detail}")
    return send_error(429, "Too many requests, please try again later", [field_error("rate_limit", str(exc.detail))])


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return send_error(500, "An internal error occurred. Please try again later.")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
