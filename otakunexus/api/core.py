from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from otakunexus.services.details import AnimeDetailResolver
from otakunexus.services.episodes import EpisodeResolver, select_episode
from otakunexus.services.search import SearchController
from otakunexus.utils.database import WatchHistoryRepository
from otakunexus.utils.dependencies import (
    get_detail_resolver, get_episode_resolver, get_search_controller, get_session_id, get_watch_history
)
from otakunexus.utils.errors.handler import AnimeNotFoundException, NoDataAvailable
from otakunexus.utils.validation.models import AnimeSummary, Season, normalize_language

main = APIRouter()


async def _with_history(results: List[AnimeSummary], history: WatchHistoryRepository,
                        session_id: Optional[str]) -> List[dict]:
    """Ajoute le dernier épisode regardé (badge « Ep N ») aux résultats."""
    watched = await history.get_all(session_id) if session_id else {}
    return [
        result.model_copy(update={"lastEpisode": watched.get(result.id)}).model_dump()
        for result in results
    ]


@main.get("/health")
async def health():
    """Endpoint de vérification de santé."""
    return {"status": "ok"}


@main.get("/api/search")
async def search(
    query: str = Query(default="", max_length=100),
    controller: SearchController = Depends(get_search_controller),
    history: WatchHistoryRepository = Depends(get_watch_history),
    session_id: Optional[str] = Depends(get_session_id),
):
    """Recherche d'animes (mangas exclus)."""
    results = await controller.search(query)
    if controller.error:
        return JSONResponse(status_code=502, content={"success": False, "error": controller.error, "results": []})
    return {"success": True, "results": await _with_history(results, history, session_id)}


@main.get("/api/trending")
async def trending(
    controller: SearchController = Depends(get_search_controller),
    history: WatchHistoryRepository = Depends(get_watch_history),
    session_id: Optional[str] = Depends(get_session_id),
):
    """Animes populaires."""
    results = await controller.trending()
    return {"success": True, "results": await _with_history(results, history, session_id)}


@main.get("/api/anime/{anime_id}")
async def anime_detail(
    anime_id: str,
    season: Optional[str] = None,
    resolver: AnimeDetailResolver = Depends(get_detail_resolver),
):
    """Fiche anime, saisons valides et saison retenue."""
    detail = await resolver.resolve(anime_id, season)
    if not detail.found:
        raise AnimeNotFoundException(anime_id)
    return {
        "success": True,
        "data": detail.anime.model_dump(),
        "validSeasons": [s.model_dump() for s in detail.valid_seasons],
        "selectedSeason": detail.selected_season.model_dump() if detail.selected_season else None,
    }


@main.get("/api/seasons/{anime_id}")
async def anime_seasons(anime_id: str, resolver: AnimeDetailResolver = Depends(get_detail_resolver)):
    """Saisons valides via l'endpoint autonome, repli sur la fiche."""
    seasons = await resolver.fetch_seasons(anime_id)
    if not seasons:
        detail = await resolver.resolve(anime_id)
        if not detail.found:
            raise AnimeNotFoundException(anime_id)
        seasons = detail.valid_seasons
    return {"success": True, "seasons": [s.model_dump() for s in seasons]}


@main.get("/api/episodes/{anime_id}")
async def anime_episodes(
    anime_id: str,
    season: str = Query(..., min_length=1, max_length=100),
    language: str = "VOSTFR",
    episode: Optional[int] = Query(default=None, ge=0),
    resolver: EpisodeResolver = Depends(get_episode_resolver),
):
    """Épisodes d'une saison dans une langue; catalogue de secours si l'API est vide."""
    language = normalize_language(language)
    target = Season(name=season, value=season, languages=[language])

    result = await resolver.load(anime_id, target, language)
    if not result.episodes:
        raise NoDataAvailable("Aucun épisode trouvé pour cette saison", {"anime_id": anime_id, "season": season})

    selected = select_episode(result.episodes, episode)
    return {
        "success": True,
        "episodes": [ep.model_dump() for ep in result.episodes],
        "selectedEpisode": selected.model_dump() if selected else None,
        "source": result.source,
    }
