from dataclasses import dataclass, field
from typing import List, Optional

from otakunexus.scrapers.animesama.client import AnimeSamaAPI
from otakunexus.scrapers.animesama.helpers import filter_valid_seasons
from otakunexus.utils.errors.handler import NexusException
from otakunexus.utils.logger import logger
from otakunexus.utils.validation.models import AnimeData, Season


ANIME_LOAD_ERROR = "Erreur lors du chargement de l'anime"


@dataclass
class AnimeDetail:
    """Fiche résolue: anime, saisons valides et saison retenue."""
    anime: Optional[AnimeData] = None
    valid_seasons: List[Season] = field(default_factory=list)
    selected_season: Optional[Season] = None
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.anime is not None


def select_season(seasons: List[Season], valid_seasons: List[Season],
                  season_param: Optional[str] = None) -> Optional[Season]:
    """Paramètre `season` s'il correspond à une saison valide, sinon première valide, sinon première brute."""
    if season_param:
        for season in valid_seasons:
            if season.value == season_param:
                return season
    if valid_seasons:
        return valid_seasons[0]
    return seasons[0] if seasons else None


class AnimeDetailResolver:
    """Charge une fiche anime une fois par identifiant et choisit la saison cible."""

    def __init__(self, api: AnimeSamaAPI):
        self.api = api
        self._anime_id: Optional[str] = None
        self._anime: Optional[AnimeData] = None

    def reset(self) -> None:
        self._anime_id = None
        self._anime = None

    async def resolve(self, anime_id: str, season_param: Optional[str] = None) -> AnimeDetail:
        """Ne lève jamais: un échec donne une fiche vide avec message d'erreur."""
        if anime_id != self._anime_id or self._anime is None:
            try:
                self._anime = await self.api.get_anime(anime_id)
                self._anime_id = anime_id
            except NexusException as e:
                logger.log("WARNING", f"Fiche {anime_id} indisponible: {e.message}")
                self.reset()
                return AnimeDetail(error=ANIME_LOAD_ERROR)
        else:
            logger.debug(f"Fiche {anime_id} déjà chargée")

        anime = self._anime
        valid_seasons = filter_valid_seasons(anime.seasons)
        selected = select_season(anime.seasons, valid_seasons, season_param)
        logger.log("ANIMESAMA", f"{anime_id}: {len(valid_seasons)}/{len(anime.seasons)} saison(s) valide(s), "
                                f"sélection {selected.value if selected else 'aucune'}")
        return AnimeDetail(anime=anime, valid_seasons=valid_seasons, selected_season=selected)

    async def fetch_seasons(self, anime_id: str) -> List[Season]:
        """Liste autonome /api/seasons/{id}, filtrée; vide en cas d'échec."""
        try:
            return filter_valid_seasons(await self.api.get_seasons(anime_id))
        except NexusException as e:
            logger.log("WARNING", f"Saisons {anime_id} indisponibles: {e.message}")
            return []
