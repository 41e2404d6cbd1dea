from datetime import datetime, timedelta, UTC
from jose import JWTError, jwt
import secrets

from app.configs.settings import settings
from app.cores.api_error import UnauthenticatedError


ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES
REFRESH_TOKEN_EXPIRE_DAYS = settings.REFRESH_TOKEN_EXPIRE_DAYS


"""
Genera un token JWT con la información de `data`.
    - Cada token lleva "type" (access/refresh), "exp" y un "jti" aleatorio,
      así dos tokens emitidos en el mismo segundo nunca son iguales.
    - Access y refresh se firman con secretos distintos.
"""
def _encode_token(data: dict, token_type: str, expires_delta: timedelta, secret: str) -> str:
    to_encode = data.copy()
    expire = datetime.now(UTC) + expires_delta
    to_encode.update({"type": token_type, "exp": expire, "jti": secrets.token_hex(16)})
    return jwt.encode(to_encode, secret, algorithm=ALGORITHM)


def create_access_token(data: dict, expires_delta: timedelta = None):
    return _encode_token(
        data,
        "access",
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
        settings.ACCESS_TOKEN_SECRET,
    )


def create_refresh_token(data: dict, expires_delta: timedelta = None):
    return _encode_token(
        data,
        "refresh",
        expires_delta or timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
        settings.REFRESH_TOKEN_SECRET,
    )


def _decode_token(token: str, secret: str, expected_type: str) -> dict:
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError:
        raise UnauthenticatedError("Invalid or expired token")
    if payload.get("type") != expected_type or not payload.get("user_id"):
        raise UnauthenticatedError("Invalid token")
    return payload


def verify_access_token(token: str) -> dict:
    return _decode_token(token, settings.ACCESS_TOKEN_SECRET, "access")


def verify_refresh_token(token: str) -> dict:
    return _decode_token(token, settings.REFRESH_TOKEN_SECRET, "refresh")
