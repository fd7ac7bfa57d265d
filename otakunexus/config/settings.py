from typing import Optional
from databases import Database
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Paramètres de l'application chargés depuis les variables d'environnement."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    ADDON_NAME: Optional[str] = "Otaku Nexus"
    FASTAPI_HOST: Optional[str] = "0.0.0.0"
    FASTAPI_PORT: Optional[int] = 8000
    FASTAPI_WORKERS: Optional[int] = 1
    ANIME_API_URL: Optional[str] = "https://anime-sama-scraper.vercel.app"
    ANIMESAMA_URL: Optional[str] = "https://anime-sama.fr"
    IMAGE_CDN_URL: Optional[str] = "https://cdn.statically.io/gh/Anime-Sama/IMG/img/contenu"
    EMBED_API_URL: Optional[str] = ""
    HTTP_TIMEOUT: Optional[int] = 15
    RETRY_MAX_ATTEMPTS: Optional[int] = 2
    RETRY_BASE_DELAY: Optional[float] = 1.0
    SEARCH_DEBOUNCE: Optional[float] = 0.3
    SEARCH_MIN_LENGTH: Optional[int] = 2
    TRENDING_LIMIT: Optional[int] = 12
    DEFAULT_EPISODE_COUNT: Optional[int] = 12
    EPISODE_CATALOG_PATH: Optional[str] = None
    DATABASE_TYPE: Optional[str] = "sqlite"
    DATABASE_URL: Optional[str] = "username:password@hostname:port"
    DATABASE_PATH: Optional[str] = "data/otakunexus.db"
    PROXY_URL: Optional[str] = None
    LOG_LEVEL: Optional[str] = "DEBUG"


settings = AppSettings()

# Normalisation des URLs (suppression du slash final)
for _field in ("ANIME_API_URL", "ANIMESAMA_URL", "IMAGE_CDN_URL", "EMBED_API_URL"):
    _value = getattr(settings, _field)
    if _value and _value.endswith('/'):
        setattr(settings, _field, _value.rstrip('/'))

database_url = f"sqlite:///{settings.DATABASE_PATH}" if settings.DATABASE_TYPE == "sqlite" else settings.DATABASE_URL
database = Database(database_url)
