"""
Este bloque define la configuración de inicio (lifespan) y creación de la aplicación FastAPI.
Incluye tareas que deben ejecutarse al arrancar la aplicación, como la creación de tablas.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi.middleware import SlowAPIMiddleware

from app.configs.settings import settings
from app.cores.cache import CacheDuration, CacheMiddleware, CacheRule, ResponseCache
from app.cores.db import Base, engine
from app.cores.error_handlers import register_exception_handlers
from app.cores.rate_limiter import limiter
from app.cores.request_logger import RequestLoggingMiddleware, setup_logging

from app import models  # noqa: F401  registra todas las tablas en Base.metadata

from app.apis.comment_api import router as comment_router
from app.apis.dashboard_api import router as dashboard_router
from app.apis.healthcheck_api import router as healthcheck_router
from app.apis.like_api import router as like_router
from app.apis.playlist_api import router as playlist_router
from app.apis.subscription_api import router as subscription_router
from app.apis.tweet_api import router as tweet_router
from app.apis.user_api import router as user_router
from app.apis.video_api import router as video_router

logger = logging.getLogger(__name__)

response_cache = ResponseCache(default_ttl=settings.CACHE_TTL_SECONDS, max_entries=settings.CACHE_MAX_ENTRIES)

CACHE_RULES = [
    CacheRule(f"{settings.API_PREFIX}/videos", ttl=CacheDuration.SHORT, exact=True),
    CacheRule(f"{settings.API_PREFIX}/dashboard", ttl=CacheDuration.SHORT),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Función que se ejecuta al iniciar la aplicación.
    - Crea todas las tablas en la base de datos si no existen.
    - Al finalizar, continúa con la ejecución normal de la app (con `yield`).
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"{settings.PROJECT_NAME} started ({settings.ENVIRONMENT})")

    yield

    await engine.dispose()


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        lifespan=lifespan
    )

    app.state.limiter = limiter
    register_exception_handlers(app)

    # el último middleware agregado es el más externo
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(CacheMiddleware, cache=response_cache, rules=CACHE_RULES, enabled=settings.CACHE_ENABLED)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    prefix = settings.API_PREFIX
    app.include_router(healthcheck_router, prefix=prefix, tags=["Healthcheck"])
    app.include_router(user_router, prefix=f"{prefix}/users", tags=["Users"])
    app.include_router(video_router, prefix=f"{prefix}/videos", tags=["Videos"])
    app.include_router(comment_router, prefix=f"{prefix}/comments", tags=["Comments"])
    app.include_router(like_router, prefix=f"{prefix}/likes", tags=["Likes"])
    app.include_router(subscription_router, prefix=f"{prefix}/subscriptions", tags=["Subscriptions"])
    app.include_router(playlist_router, prefix=f"{prefix}/playlist", tags=["Playlists"])
    app.include_router(tweet_router, prefix=f"{prefix}/tweets", tags=["Tweets"])
    app.include_router(dashboard_router, prefix=f"{prefix}/dashboard", tags=["Dashboard"])

    # archivos subidos con LocalBlobStore
    os.makedirs(settings.MEDIA_ROOT, exist_ok=True)
    app.mount(settings.MEDIA_BASE_URL, StaticFiles(directory=settings.MEDIA_ROOT), name="media")

    return app
