from typing import List
from pydantic import ConfigDict
from pydantic_settings import BaseSettings

"""
Se carga automáticamente desde el archivo `.env` o las variables de entorno del sistema.
    - Define la configuración principal del backend de videos.
    - Incluye base de datos, tokens de sesión, almacenamiento de medios, caché y límites de peticiones.
    - Todos los valores tienen un default para que la aplicación arranque sin `.env`.
"""
class Settings(BaseSettings):
    PROJECT_NAME: str = "VideoTube API"
    API_PREFIX: str = "/api/v1"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    SQLALCHEMY_DATABASE_URI: str = "sqlite+aiosqlite:///./videotube.db"

    ACCESS_TOKEN_SECRET: str = "change-me-access-secret"
    REFRESH_TOKEN_SECRET: str = "change-me-refresh-secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 10
    COOKIE_MAX_AGE_SECONDS: int = 24 * 60 * 60
    BCRYPT_ROUNDS: int = 12

    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    MEDIA_ROOT: str = "public/media"
    MEDIA_BASE_URL: str = "/media"
    UPLOAD_TMP_DIR: str = "public/temp"
    UPLOAD_TIMEOUT_SECONDS: float = 30.0
    MAX_IMAGE_SIZE_BYTES: int = 5 * 1024 * 1024
    MAX_VIDEO_SIZE_BYTES: int = 500 * 1024 * 1024
    DEFAULT_AVATAR_URL: str = "https://res.cloudinary.com/demo/image/upload/v1/defaults/avatar.png"
    DEFAULT_COVER_URL: str = "https://res.cloudinary.com/demo/image/upload/v1/defaults/cover.png"
    DEFAULT_THUMBNAIL_URL: str = "https://res.cloudinary.com/demo/image/upload/v1/defaults/thumbnail.png"

    CACHE_ENABLED: bool = True
    CACHE_TTL_SECONDS: int = 300
    CACHE_MAX_ENTRIES: int = 1000

    RATE_LIMIT_ENABLED: bool = True
    API_RATE_LIMIT: str = "100/15minutes"
    AUTH_RATE_LIMIT: str = "5/hour"
    UPLOAD_RATE_LIMIT: str = "10/hour"

    TWEET_BURST_LIMIT: int = 5
    TWEET_BURST_WINDOW_SECONDS: int = 60
    TWEET_EDIT_WINDOW_MINUTES: int = 15

    COMMENT_FLAG_THRESHOLD: int = 5

    model_config = ConfigDict(env_file=".env", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


settings = Settings()
