import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from otakunexus.api.core import main as core_router
from otakunexus.api.history import history_router
from otakunexus.api.stream import streams as stream_router
from otakunexus.config.settings import settings
from otakunexus.services.catalog import load_episode_catalog
from otakunexus.utils.database import (
    DatabaseWatchHistory,
    InMemoryWatchHistory,
    setup_database,
    teardown_database,
)
from otakunexus.utils.errors.handler import NexusException, global_exception_handler
from otakunexus.utils.http_client import HttpClient
from otakunexus.utils.logger import logger


class LoguruMiddleware(BaseHTTPMiddleware):
    """
    Middleware qui mesure le temps de réponse et log automatiquement
    toutes les requêtes HTTP avec leur statut et durée de traitement.
    """

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        except Exception as e:
            logger.error(f"Exception durant le traitement de la requête: {e}")
            raise
        finally:
            process_time = time.time() - start_time
            log_level = "WARNING" if status_code >= 400 else "API"
            logger.log(log_level, f"{request.method} {request.url.path} [{status_code}] {process_time:.3f}s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gestionnaire du cycle de vie de l'application FastAPI."""
    database_ready = False
    try:
        await setup_database()
        database_ready = True
        app.state.watch_history = DatabaseWatchHistory()
    except Exception as e:
        logger.error(f"Base de données indisponible ({e}) - historique en mémoire")
        app.state.watch_history = InMemoryWatchHistory()

    app.state.http_client = HttpClient()
    app.state.episode_catalog = load_episode_catalog()
    logger.log("NEXUS", "Initialisation terminée - Prêt à interroger l'API anime")

    try:
        yield
    finally:
        await app.state.http_client.close()
        if database_ready:
            await teardown_database()
        logger.log("NEXUS", "Ressources nettoyées - Arrêt propre")


app = FastAPI(
    title=settings.ADDON_NAME,
    summary=f"{settings.ADDON_NAME} – recherche, épisodes et lecture d'animes",
    lifespan=lifespan,
    redoc_url=None,
)

app.add_middleware(LoguruMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(NexusException, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.include_router(core_router)
app.include_router(stream_router)
app.include_router(history_router)


def start_log():
    """Affiche la configuration de démarrage."""
    db_info = settings.DATABASE_PATH if settings.DATABASE_TYPE == 'sqlite' else 'PostgreSQL'
    embed_info = settings.EMBED_API_URL or "extraction locale"
    logger.log("NEXUS", f"Serveur: http://{settings.FASTAPI_HOST}:{settings.FASTAPI_PORT} ({settings.FASTAPI_WORKERS} workers)")
    logger.log("NEXUS", f"API anime: {settings.ANIME_API_URL} - Embed: {embed_info}")
    logger.log("NEXUS", f"Base: {settings.DATABASE_TYPE} ({db_info})")


def run_with_uvicorn():
    """Lance le serveur avec Uvicorn."""
    start_log()
    uvicorn.run(
        "otakunexus.main:app",
        host=settings.FASTAPI_HOST,
        port=settings.FASTAPI_PORT,
        proxy_headers=True,
        forwarded_allow_ips="*",
        workers=settings.FASTAPI_WORKERS,
        log_config=None,
    )


if __name__ == "__main__":
    run_with_uvicorn()
