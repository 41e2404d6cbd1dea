"""
Caché de respuestas GET en memoria con TTL.

No hay invalidación al escribir: un video recién publicado aparece en el listado
cuando expira la entrada (como máximo CACHE_TTL_SECONDS después).

Las entradas vencidas se barren en cada escritura y el total se acota con
`max_entries`. Un hit no pasa por la autenticación de la ruta, por eso el
middleware sólo usa la caché cuando el access token presentado es válido; un
token firmado y vigente tras un logout sigue viendo su entrada hasta el TTL,
igual que seguiría pasando la autenticación hasta su expiración.
"""

import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.cores.api_error import UnauthenticatedError
from app.cores.token import verify_access_token

logger = logging.getLogger(__name__)


class CacheDuration:
    VERY_SHORT = 60
    SHORT = 300
    MEDIUM = 1800
    LONG = 3600
    VERY_LONG = 86400


@dataclass
class CachedResponse:
    body: bytes
    status_code: int
    media_type: Optional[str]
    expires_at: float


@dataclass
class CacheRule:
    path: str
    ttl: int = CacheDuration.SHORT
    exact: bool = False

    def matches(self, path: str) -> bool:
        normalized = path.rstrip("/") or "/"
        if self.exact:
            return normalized == self.path
        return normalized == self.path or normalized.startswith(self.path + "/")


@dataclass
class ResponseCache:
    default_ttl: int = CacheDuration.SHORT
    max_entries: int = 1000
    clock: Callable[[], float] = time.monotonic
    _entries: Dict[str, CachedResponse] = field(default_factory=dict)

    def get(self, key: str) -> Optional[CachedResponse]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self.clock():
            del self._entries[key]
            return None
        return entry

    def set(self, key: str, body: bytes, status_code: int, media_type: Optional[str], ttl: Optional[int] = None) -> None:
        now = self.clock()
        self._sweep(now)
        self._entries.pop(key, None)
        # las más antiguas primero: el dict conserva el orden de inserción
        while len(self._entries) >= self.max_entries:
            del self._entries[next(iter(self._entries))]
        expires_at = now + (ttl if ttl is not None else self.default_ttl)
        self._entries[key] = CachedResponse(body, status_code, media_type, expires_at)

    def _sweep(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self):
        return len(self._entries)


def build_cache_key(request: Request) -> str:
    """Método + path + query ordenado; con credenciales se agrega un digest para no mezclar usuarios."""
    path = request.url.path.rstrip("/") or "/"
    query = "&".join(f"{k}={v}" for k, v in sorted(request.query_params.multi_items()))
    key = f"{request.method}:{path}?{query}"

    credential = request.cookies.get("accessToken") or request.headers.get("authorization")
    if credential:
        digest = hashlib.sha256(credential.encode("utf-8")).hexdigest()[:16]
        key = f"{key}#{digest}"
    return key


def _has_valid_credential(request: Request) -> bool:
    """True sin credenciales (vista anónima) o con un access token que verifica."""
    token = request.cookies.get("accessToken")
    if not token:
        scheme, _, token = request.headers.get("authorization", "").partition(" ")
        if not token:
            return not scheme
        if scheme.lower() != "bearer":
            return False
    try:
        verify_access_token(token.strip())
    except UnauthenticatedError:
        return False
    return True


class CacheMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, cache: ResponseCache, rules: List[CacheRule], enabled: bool = True):
        super().__init__(app)
        self.cache = cache
        self.rules = rules
        self.enabled = enabled

    def _match_rule(self, path: str) -> Optional[CacheRule]:
        for rule in self.rules:
            if rule.matches(path):
                return rule
        return None

    async def dispatch(self, request: Request, call_next):
        rule = self._match_rule(request.url.path) if self.enabled and request.method == "GET" else None
        if rule is None or not _has_valid_credential(request):
            return await call_next(request)

        key = build_cache_key(request)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            return Response(
                content=cached.body,
                status_code=cached.status_code,
                media_type=cached.media_type,
                headers={"X-Cache": "HIT"},
            )

        response = await call_next(request)
        if not 200 <= response.status_code < 300:
            return response

        body, headers = await _read_body(response)
        self.cache.set(key, body, response.status_code, headers.get("content-type"), rule.ttl)
        headers["X-Cache"] = "MISS"
        return Response(content=body, status_code=response.status_code, headers=headers)


async def _read_body(response) -> Tuple[bytes, Dict[str, str]]:
    chunks = [chunk async for chunk in response.body_iterator]
    headers = {k: v for k, v in response.headers.items() if k.lower() != "content-length"}
    return b"".join(chunks), headers
