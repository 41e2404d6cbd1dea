from slowapi import Limiter
from fastapi import Request

from app.configs.settings import settings


def get_client_ip(request: Request) -> str:
    """
    Obtiene la IP del cliente desde el request.
    Considera proxies y headers de forwarding.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


# Limiter global: límite general del API y límites más estrictos para auth y subidas
limiter = Limiter(
    key_func=get_client_ip,
    default_limits=[settings.API_RATE_LIMIT],
    storage_uri="memory://",  # Usar memoria (para producción considerar Redis)
    headers_enabled=False,
    enabled=settings.RATE_LIMIT_ENABLED,
)

AUTH_LIMIT = settings.AUTH_RATE_LIMIT
UPLOAD_LIMIT = settings.UPLOAD_RATE_LIMIT
