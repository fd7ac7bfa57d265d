import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from otakunexus.services.details import AnimeDetailResolver
from otakunexus.services.episodes import EpisodeResolver, select_episode
from otakunexus.services.sources import SourceResolver
from otakunexus.utils.database import WatchHistoryRepository
from otakunexus.utils.errors.handler import NexusException
from otakunexus.utils.logger import logger
from otakunexus.utils.validation.models import (
    AnimeData, Episode, EpisodeDetails, Season, VideoSource, normalize_language
)


class PlayerStatus(Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


ANIME_NOT_FOUND_MESSAGE = "Anime non trouvé"


class PlayerSession:
    """État de lecture d'un anime: saison, langue, épisode, serveur.

    Chaque opération réseau ouvre une nouvelle génération de navigation et
    annule la tâche de la génération précédente: une réponse tardive ne peut
    pas écraser un état plus récent.
    """

    def __init__(self, anime_id: str, details: AnimeDetailResolver, episodes: EpisodeResolver,
                 sources: SourceResolver, season: Optional[str] = None, episode: Optional[Any] = None,
                 lang: Optional[str] = None, auto_load: bool = True,
                 history: Optional[WatchHistoryRepository] = None, session_id: Optional[str] = None):
        self.anime_id = anime_id
        self.details = details
        self.episode_resolver = episodes
        self.source_resolver = sources
        self.season_param = season
        self.episode_param = episode
        self.auto_load = auto_load
        self.history = history
        self.session_id = session_id

        self.status = PlayerStatus.LOADING
        self.error: Optional[str] = None
        self.inline_error: Optional[str] = None
        self.anime: Optional[AnimeData] = None
        self.seasons: List[Season] = []
        self.selected_season: Optional[Season] = None
        self.selected_language = normalize_language(lang)
        self.episodes: List[Episode] = []
        self.episodes_source: Optional[str] = None
        self.selected_episode: Optional[Episode] = None
        self.selected_player = 0
        self.episode_details: Optional[EpisodeDetails] = None

        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    # Générations de navigation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _run_latest(self, operation: Callable[[int], Awaitable[None]]) -> bool:
        """Annule l'opération en cours et exécute la nouvelle; False si elle a été remplacée."""
        self._generation += 1
        generation = self._generation
        if self._task and not self._task.done():
            self._task.cancel()

        task = asyncio.create_task(operation(generation))
        self._task = task
        try:
            await asyncio.wait([task])
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task.cancelled():
            logger.debug(f"Navigation {generation} remplacée pour {self.anime_id}")
            return False
        task.result()
        if not self._is_current(generation):
            return False
        # Un chargement interrompu par une action utilisateur ne laisse pas l'écran en Loading
        if self.status == PlayerStatus.LOADING and self.anime is not None:
            self.status = PlayerStatus.READY
        return True

    # Chargement

    async def load(self) -> PlayerStatus:
        """Loading → Ready, ou Error si la fiche anime est introuvable."""
        self.status = PlayerStatus.LOADING
        self.error = None
        self.inline_error = None
        await self._run_latest(self._load_all)
        return self.status

    async def retry(self) -> PlayerStatus:
        self.details.reset()
        return await self.load()

    async def _load_all(self, generation: int) -> None:
        detail = await self.details.resolve(self.anime_id, self.season_param)
        if not self._is_current(generation):
            return

        if not detail.found:
            self.anime = None
            self.error = detail.error or ANIME_NOT_FOUND_MESSAGE
            self.status = PlayerStatus.ERROR
            logger.log("WARNING", f"Lecteur {self.anime_id}: {self.error}")
            return

        self.anime = detail.anime
        self.seasons = detail.valid_seasons or list(detail.anime.seasons)
        self.selected_season = detail.selected_season

        if self.selected_season:
            await self._load_episodes(generation, self.selected_season, self.episode_param, self.auto_load)
        else:
            self.inline_error = "Aucune saison disponible pour cet anime"

        if self._is_current(generation):
            self.status = PlayerStatus.READY
            logger.log("STREAM", f"Lecteur {self.anime_id} prêt: {self.selected_season.value if self.selected_season else '-'} "
                                 f"/ {self.selected_language} / {len(self.episodes)} épisode(s)")

    async def _load_episodes(self, generation: int, season: Season, episode_param: Optional[Any],
                             auto_load: bool) -> None:
        result = await self.episode_resolver.load(self.anime_id, season, self.selected_language)
        if not self._is_current(generation):
            return

        self.episodes = result.episodes
        self.episodes_source = result.source
        self.selected_episode = select_episode(self.episodes, episode_param)
        self.selected_player = 0
        self.episode_details = None
        self.inline_error = None if self.episodes else "Aucun épisode trouvé pour cette saison"

        if auto_load and self.selected_episode:
            await self._load_sources(generation, self.selected_episode)

    async def _load_sources(self, generation: int, episode: Episode) -> None:
        try:
            details = await self.source_resolver.resolve(episode, self.anime.title if self.anime else "")
        except NexusException as e:
            if self._is_current(generation):
                self.inline_error = e.message
            return
        if not self._is_current(generation):
            return

        self.episode_details = details
        self.selected_player = 0
        self.inline_error = None
        await self._record_history(episode)

    async def _record_history(self, episode: Episode) -> None:
        if not self.history or not self.session_id:
            return
        try:
            await self.history.record(self.session_id, self.anime_id, episode.episodeNumber)
        except Exception as e:
            logger.log("WARNING", f"Historique non enregistré pour {self.anime_id}: {e}")

    # Actions utilisateur

    def episode_index(self) -> int:
        if not self.selected_episode:
            return -1
        for index, episode in enumerate(self.episodes):
            if episode.id == self.selected_episode.id:
                return index
        return -1

    def can_navigate(self, direction: str) -> bool:
        """État des boutons précédent/suivant (pas de bouclage)."""
        index = self.episode_index()
        if index < 0:
            return False
        target = index + 1 if direction == "next" else index - 1
        return 0 <= target < len(self.episodes)

    async def navigate(self, direction: str) -> bool:
        """Épisode précédent/suivant; sans effet aux bornes de la liste."""
        if direction not in ("prev", "next") or not self.can_navigate(direction):
            return False
        index = self.episode_index()
        target = self.episodes[index + 1 if direction == "next" else index - 1]
        return await self.select_episode(target.id)

    async def select_episode(self, episode_id: str) -> bool:
        episode = next((ep for ep in self.episodes if ep.id == episode_id), None)
        if episode is None:
            return False
        self.selected_episode = episode
        return await self._run_latest(lambda generation: self._load_sources(generation, episode))

    async def change_language(self, language: str) -> bool:
        """Recharge les épisodes de la saison courante dans la nouvelle langue (même numéro si présent)."""
        self.selected_language = normalize_language(language)
        if not self.selected_season:
            return False
        season = self.selected_season
        current_number = self.selected_episode.episodeNumber if self.selected_episode else None
        return await self._run_latest(
            lambda generation: self._load_episodes(generation, season, current_number, self.auto_load)
        )

    async def change_season(self, season_value: str) -> bool:
        season = next((s for s in self.seasons if s.value == season_value), None)
        if season is None:
            return False
        self.selected_season = season
        return await self._run_latest(
            lambda generation: self._load_episodes(generation, season, None, self.auto_load)
        )

    def select_server(self, index: int) -> bool:
        """Changement de serveur local, sans appel réseau."""
        if not self.episode_details or not 0 <= index < len(self.episode_details.sources):
            return False
        self.selected_player = index
        return True

    @property
    def current_source(self) -> Optional[VideoSource]:
        if not self.episode_details or not self.episode_details.sources:
            return None
        return self.episode_details.sources[self.selected_player]

    def snapshot(self) -> Dict[str, Any]:
        """Vue JSON de l'état du lecteur."""
        return {
            "success": self.status != PlayerStatus.ERROR,
            "status": self.status.value,
            "error": self.error,
            "inlineError": self.inline_error,
            "anime": self.anime.model_dump() if self.anime else None,
            "seasons": [season.model_dump() for season in self.seasons],
            "selectedSeason": self.selected_season.model_dump() if self.selected_season else None,
            "selectedLanguage": self.selected_language,
            "episodes": [episode.model_dump() for episode in self.episodes],
            "episodesSource": self.episodes_source,
            "selectedEpisode": self.selected_episode.model_dump() if self.selected_episode else None,
            "selectedPlayer": self.selected_player,
            "episodeDetails": self.episode_details.model_dump() if self.episode_details else None,
            "currentSource": self.current_source.model_dump() if self.current_source else None,
            "canPrev": self.can_navigate("prev"),
            "canNext": self.can_navigate("next"),
        }
