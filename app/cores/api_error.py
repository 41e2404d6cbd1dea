from typing import Any, Dict, List, Optional


STATUS_TEXT = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}


def get_status_text(status_code: int) -> str:
    return STATUS_TEXT.get(status_code, "Unknown Error")


def field_error(field: str, message: str) -> Dict[str, str]:
    return {"field": field, "message": message}


class ApiError(Exception):
    """
    Base de todos los errores de dominio.

    Los servicios lanzan una subclase y el handler registrado en `create_app`
    la convierte en el sobre de error estándar (success, statusCode, statusText,
    message, errors, data, timestamp).
    """

    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)

    @property
    def status_text(self) -> str:
        return get_status_text(self.status_code)

    def __repr__(self):
        return f"<{type(self).__name__}(status_code={self.status_code}, message={self.message!r})>"


class BadRequestError(ApiError):
    status_code = 400
    default_message = "Bad request"


class InvalidOperationError(BadRequestError):
    default_message = "Invalid operation"


class UnauthenticatedError(ApiError):
    status_code = 401
    default_message = "Unauthorized request"


class ForbiddenError(ApiError):
    status_code = 403
    default_message = "You are not allowed to perform this action"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Resource already exists"


class UnprocessableEntityError(ApiError):
    status_code = 422
    default_message = "Validation failed"


class TooManyRequestsError(ApiError):
    status_code = 429
    default_message = "Too many requests, please try again later"


class InternalError(ApiError):
    status_code = 500
    default_message = "An internal error occurred. Please try again later."
