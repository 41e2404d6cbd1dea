"""
Sobres de respuesta estándar del API.
Toda respuesta lleva statusCode, success, message, data y timestamp;
las respuestas de error agregan statusText y errors.
"""

from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.cores.api_error import get_status_text
from app.cores.db import utc_now


def get_timestamp() -> str:
    return utc_now().isoformat() + "Z"


def send_response(
    data: Any = None,
    message: str = "Success",
    status_code: int = 200,
) -> JSONResponse:
    content = {
        "statusCode": status_code,
        "success": status_code < 400,
        "message": message,
        "data": data,
        "timestamp": get_timestamp(),
    }
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content, by_alias=True))


def send_error(
    status_code: int,
    message: str,
    errors: Optional[List[Dict[str, Any]]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content = {
        "success": False,
        "statusCode": status_code,
        "statusText": get_status_text(status_code),
        "message": message,
        "errors": errors or [],
        "data": None,
        "timestamp": get_timestamp(),
    }
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content), headers=headers)
