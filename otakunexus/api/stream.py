from typing import Optional

from fastapi import APIRouter, Depends, Query

from otakunexus.scrapers.embed.extractor import EmbedExtractor
from otakunexus.services.details import AnimeDetailResolver
from otakunexus.services.episodes import EpisodeResolver
from otakunexus.services.playback import PlayerSession, PlayerStatus
from otakunexus.services.sources import SourceResolver
from otakunexus.utils.database import WatchHistoryRepository
from otakunexus.utils.dependencies import (
    get_detail_resolver, get_embed_extractor, get_episode_resolver, get_session_id,
    get_source_resolver, get_watch_history
)
from otakunexus.utils.errors.handler import AnimeNotFoundException, InvalidRequest, NexusException
from otakunexus.utils.logger import logger

streams = APIRouter()


@streams.get("/api/player/{anime_id}")
async def player(
    anime_id: str,
    season: Optional[str] = None,
    episode: Optional[int] = Query(default=None, ge=0),
    lang: Optional[str] = None,
    server: int = Query(default=0, ge=0),
    details: AnimeDetailResolver = Depends(get_detail_resolver),
    episodes: EpisodeResolver = Depends(get_episode_resolver),
    sources: SourceResolver = Depends(get_source_resolver),
    history: WatchHistoryRepository = Depends(get_watch_history),
    session_id: Optional[str] = Depends(get_session_id),
):
    """État complet du lecteur: saison, épisodes, sources de l'épisode retenu."""
    logger.log("STREAM", f"Lecteur {anime_id} (saison={season}, épisode={episode}, langue={lang})")
    session = PlayerSession(
        anime_id, details, episodes, sources,
        season=season, episode=episode, lang=lang,
        history=history, session_id=session_id,
    )
    status = await session.load()
    if status == PlayerStatus.ERROR:
        raise AnimeNotFoundException(anime_id)

    if server and not session.select_server(server):
        logger.log("WARNING", f"Serveur {server} inexistant pour {anime_id}, serveur 0 conservé")
    return session.snapshot()


@streams.get("/api/embed")
async def embed(
    url: str = Query(..., min_length=1),
    episode: Optional[int] = Query(default=None, ge=1),
    extractor: EmbedExtractor = Depends(get_embed_extractor),
):
    """Extraction des URLs vidéo directes d'une page de lecteur."""
    if not url.startswith(('http://', 'https://')):
        raise InvalidRequest("URL de lecteur invalide", {"url": url})

    try:
        sources = await extractor.extract(url, episode)
    except NexusException as e:
        logger.log("WARNING", f"Extraction impossible pour {url}: {e.message}")
        return {"success": False, "sources": [], "error": e.message}

    return {"success": bool(sources), "sources": [source.model_dump() for source in sources]}
