from typing import Optional

from fastapi import Depends, Header, Request

from otakunexus.config.settings import settings
from otakunexus.scrapers.animesama.client import AnimeSamaAPI
from otakunexus.scrapers.embed.client import EmbedClient
from otakunexus.scrapers.embed.extractor import EmbedExtractor
from otakunexus.services.catalog import EpisodeCatalog
from otakunexus.services.details import AnimeDetailResolver
from otakunexus.services.episodes import EpisodeResolver
from otakunexus.services.search import SearchController
from otakunexus.services.sources import EmbedSource, SourceResolver
from otakunexus.utils.database import WatchHistoryRepository
from otakunexus.utils.errors.handler import InvalidRequest
from otakunexus.utils.http_client import HttpClient


def get_http_client(request: Request) -> HttpClient:
    """Dépendance pour obtenir l'instance partagée HttpClient."""
    return request.app.state.http_client


def get_episode_catalog(request: Request) -> EpisodeCatalog:
    return request.app.state.episode_catalog


def get_watch_history(request: Request) -> WatchHistoryRepository:
    return request.app.state.watch_history


def get_session_id(x_session_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Session utilisateur portée par l'en-tête X-Session-Id."""
    return x_session_id.strip() if x_session_id and x_session_id.strip() else None


def require_session_id(session_id: Optional[str] = Depends(get_session_id)) -> str:
    if not session_id:
        raise InvalidRequest("En-tête X-Session-Id requis")
    return session_id


def get_animesama_api(client: HttpClient = Depends(get_http_client)) -> AnimeSamaAPI:
    return AnimeSamaAPI(client)


def get_embed_extractor(client: HttpClient = Depends(get_http_client)) -> EmbedExtractor:
    return EmbedExtractor(client)


def get_embed_source(client: HttpClient = Depends(get_http_client)) -> EmbedSource:
    """Endpoint distant si EMBED_API_URL est défini, extraction en processus sinon."""
    if settings.EMBED_API_URL:
        return EmbedClient(client, settings.EMBED_API_URL)
    return EmbedExtractor(client)


def get_search_controller(api: AnimeSamaAPI = Depends(get_animesama_api)) -> SearchController:
    return SearchController(api)


def get_detail_resolver(api: AnimeSamaAPI = Depends(get_animesama_api)) -> AnimeDetailResolver:
    return AnimeDetailResolver(api)


def get_episode_resolver(api: AnimeSamaAPI = Depends(get_animesama_api),
                         catalog: EpisodeCatalog = Depends(get_episode_catalog)) -> EpisodeResolver:
    return EpisodeResolver(api, catalog)


def get_source_resolver(embed: EmbedSource = Depends(get_embed_source)) -> SourceResolver:
    return SourceResolver(embed)
