from typing import List, Optional, Dict, Any

from pydantic import ValidationError

from otakunexus.config.settings import settings
from otakunexus.scrapers.base import BaseScraper
from otakunexus.scrapers.animesama.helpers import parse_seasons
from otakunexus.utils.errors.handler import MalformedResponse, NoDataAvailable
from otakunexus.utils.errors.patterns import is_success_payload, safe_get_dict, safe_get_list
from otakunexus.utils.http_client import HttpClient
from otakunexus.utils.logger import logger
from otakunexus.utils.retry import RetryPolicy
from otakunexus.utils.validation.models import AnimeData, Season, normalize_language


class AnimeSamaAPI(BaseScraper):
    """Client de l'API de scraping anime-sama (recherche, fiches, saisons, épisodes)."""

    def __init__(self, client: HttpClient, base_url: Optional[str] = None,
                 retry_policy: Optional[RetryPolicy] = None):
        super().__init__(client, base_url or settings.ANIME_API_URL, retry_policy)

    async def _get_results(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        payload = await self._get_json(path, params)
        if not is_success_payload(payload) or not isinstance(payload.get("results"), list):
            raise MalformedResponse(self._url(path), "champ 'results' manquant")
        return payload["results"]

    async def search(self, query: str) -> List[Dict[str, Any]]:
        """GET /api/search?query= → résultats bruts."""
        logger.log("ANIMESAMA", f"Recherche '{query}'")
        return await self._get_results("/api/search", {"query": query})

    async def trending(self) -> List[Dict[str, Any]]:
        """GET /api/trending → résultats bruts."""
        logger.log("ANIMESAMA", "Récupération des tendances")
        return await self._get_results("/api/trending")

    async def get_anime(self, anime_id: str) -> AnimeData:
        """GET /api/anime/{id} → métadonnées validées."""
        logger.log("ANIMESAMA", f"Récupération fiche {anime_id}")
        path = f"/api/anime/{anime_id}"
        payload = await self._get_json(path)

        if not is_success_payload(payload):
            raise MalformedResponse(self._url(path), "success absent ou faux")
        data = safe_get_dict(payload, "data")
        if not data:
            raise NoDataAvailable(f"Aucune donnée pour l'anime {anime_id}", {"anime_id": anime_id})

        raw_seasons = safe_get_list(data, "seasons")
        try:
            anime = AnimeData.model_validate({**data, "id": data.get("id") or anime_id, "seasons": []})
        except ValidationError as e:
            raise MalformedResponse(self._url(path), f"{e.error_count()} champ(s) invalide(s)") from e
        anime.seasons = parse_seasons(raw_seasons)
        return anime

    async def get_seasons(self, anime_id: str) -> List[Season]:
        """GET /api/seasons/{id}; accepte une liste nue ou une enveloppe {success, seasons|data}."""
        path = f"/api/seasons/{anime_id}"
        payload = await self._get_json(path)

        if isinstance(payload, list):
            return parse_seasons(payload)
        if is_success_payload(payload):
            raw = payload.get("seasons")
            if not isinstance(raw, list):
                raw = payload.get("data")
            if isinstance(raw, list):
                return parse_seasons(raw)
        raise MalformedResponse(self._url(path), "liste de saisons introuvable")

    async def get_episodes(self, anime_id: str, season_value: str, language: str) -> List[Dict[str, Any]]:
        """GET /api/episodes/{id}?season=&language= → épisodes bruts."""
        path = f"/api/episodes/{anime_id}"
        payload = await self._get_json(path, {"season": season_value, "language": normalize_language(language)})

        if not is_success_payload(payload):
            raise NoDataAvailable(
                "Erreur lors du chargement des épisodes",
                {"anime_id": anime_id, "season": season_value}
            )
        episodes = payload.get("episodes")
        if not isinstance(episodes, list):
            raise NoDataAvailable(
                "Aucun épisode trouvé pour cette saison",
                {"anime_id": anime_id, "season": season_value}
            )
        return episodes
