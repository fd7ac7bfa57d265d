from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from otakunexus.config.settings import settings
from otakunexus.scrapers.animesama.client import AnimeSamaAPI
from otakunexus.scrapers.animesama.helpers import build_catalogue_url
from otakunexus.services.catalog import EpisodeCatalog
from otakunexus.utils.errors.handler import NexusException, NoDataAvailable
from otakunexus.utils.errors.patterns import safe_get_int, safe_get_list, safe_get_str
from otakunexus.utils.logger import logger
from otakunexus.utils.validation.models import Episode, Season, VideoSource, language_code, normalize_language


SOURCE_API = "api"
SOURCE_CATALOG = "catalog"


def make_episode_id(anime_id: str, season_value: str, episode_number: int, language: str) -> str:
    """Identifiant unique par (anime, saison, épisode, langue)."""
    return f"{anime_id}-{season_value}-ep{episode_number}-{language_code(language)}"


def default_streaming_source(url: str, language: str) -> VideoSource:
    return VideoSource(url=url, server="Anime-Sama", quality="HD", language=language,
                       type="streaming", serverIndex=0)


@dataclass
class EpisodeList:
    """Épisodes résolus et provenance (api ou catalogue)."""
    episodes: List[Episode] = field(default_factory=list)
    source: str = SOURCE_API
    error: Optional[str] = None


def select_episode(episodes: List[Episode], episode_param: Optional[Any] = None) -> Optional[Episode]:
    """Épisode dont le numéro vaut le paramètre `episode`, sinon le premier."""
    if not episodes:
        return None
    if episode_param is not None:
        try:
            wanted = int(episode_param)
        except (TypeError, ValueError):
            wanted = None
        for episode in episodes:
            if episode.episodeNumber == wanted:
                return episode
    return episodes[0]


class EpisodeResolver:
    """Résout la liste d'épisodes d'une saison, depuis l'API ou le catalogue de secours."""

    def __init__(self, api: AnimeSamaAPI, catalog: Optional[EpisodeCatalog] = None,
                 default_count: Optional[int] = None):
        self.api = api
        self.catalog = catalog or EpisodeCatalog()
        self.default_count = settings.DEFAULT_EPISODE_COUNT if default_count is None else default_count

    async def resolve(self, anime_id: str, season: Season, language: str) -> List[Episode]:
        """Voie principale: /api/episodes. Lève NoDataAvailable si l'API ne renvoie rien d'exploitable."""
        language = normalize_language(language)
        raw_episodes = await self.api.get_episodes(anime_id, season.value, language)
        episodes = []
        seen_ids = set()
        for index, raw in enumerate(raw_episodes):
            if not isinstance(raw, dict):
                continue
            try:
                episode = self._format_episode(anime_id, season, language, raw, index)
            except ValidationError as e:
                logger.log("WARNING", f"Épisode {index + 1} ignoré (format invalide): {e.error_count()} erreur(s)")
                continue
            # Numéro répété par l'API: première occurrence conservée
            if episode.id in seen_ids:
                continue
            seen_ids.add(episode.id)
            episodes.append(episode)

        if not episodes:
            raise NoDataAvailable(
                "Aucun épisode trouvé pour cette saison",
                {"anime_id": anime_id, "season": season.value, "language": language}
            )
        logger.log("ANIMESAMA", f"{anime_id}/{season.value}/{language}: {len(episodes)} épisode(s) depuis l'API")
        return episodes

    def _format_episode(self, anime_id: str, season: Season, language: str,
                        raw: Dict[str, Any], index: int) -> Episode:
        number = safe_get_int(raw, "episodeNumber", index + 1)
        if number < 1:
            number = index + 1
        url = safe_get_str(raw, "url", build_catalogue_url(anime_id, season.value, language))

        sources = []
        for source_index, raw_source in enumerate(safe_get_list(raw, "streamingSources")):
            if not isinstance(raw_source, dict) or not raw_source.get("url"):
                continue
            try:
                sources.append(VideoSource.model_validate({
                    "language": language, "serverIndex": source_index, **raw_source
                }))
            except ValidationError:
                logger.debug(f"Source ignorée pour l'épisode {number}")
        if not sources:
            sources = [default_streaming_source(url, language)]

        return Episode(
            id=make_episode_id(anime_id, season.value, number, language),
            title=safe_get_str(raw, "title", f"Épisode {number}"),
            episodeNumber=number,
            url=url,
            language=language,
            available=True,
            streamingSources=sources,
        )

    def generate(self, anime_id: str, season: Season, language: str) -> List[Episode]:
        """Épisodes synthétisés depuis le catalogue; 12 épisodes 1..12 sans entrée."""
        language = normalize_language(language)
        entry = self.catalog.lookup(anime_id, season.value)
        count, start_ep = (entry.count, entry.start_ep) if entry else (self.default_count, 1)
        url = build_catalogue_url(anime_id, season.value, language)

        episodes = []
        for offset in range(count):
            number = start_ep + offset
            episodes.append(Episode(
                id=make_episode_id(anime_id, season.value, number, language),
                title=f"Épisode {number}",
                episodeNumber=number,
                url=url,
                language=language,
                available=True,
                streamingSources=[default_streaming_source(url, language)],
            ))

        logger.log("ANIMESAMA", f"{anime_id}/{season.value}/{language}: {count} épisode(s) générés "
                                f"({'catalogue' if entry else 'défaut'}) à partir de {start_ep}")
        return episodes

    async def load(self, anime_id: str, season: Season, language: str) -> EpisodeList:
        """API d'abord, catalogue si l'API ne fournit aucune donnée exploitable."""
        try:
            return EpisodeList(episodes=await self.resolve(anime_id, season, language), source=SOURCE_API)
        except NexusException as e:
            logger.log("WARNING", f"Épisodes API indisponibles pour {anime_id}/{season.value}: {e.message} - catalogue utilisé")
            return EpisodeList(
                episodes=self.generate(anime_id, season, language),
                source=SOURCE_CATALOG,
                error=e.message,
            )
