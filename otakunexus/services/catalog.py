import os
from dataclasses import dataclass
from typing import Dict, Optional

import orjson

from otakunexus.config.settings import settings
from otakunexus.utils.logger import logger


@dataclass(frozen=True)
class CatalogEntry:
    """Nombre d'épisodes d'une saison et numéro du premier épisode."""
    count: int
    start_ep: int = 1


DEFAULT_EPISODE_TABLE: Dict[str, Dict[str, CatalogEntry]] = {
    "one-piece": {
        "saison1": CatalogEntry(61, 1),
        "saison2": CatalogEntry(77, 62),
        "saison3": CatalogEntry(52, 139),
        "saison4": CatalogEntry(118, 191),
        "saison5": CatalogEntry(48, 309),
        "saison6": CatalogEntry(91, 357),
        "saison7": CatalogEntry(118, 448),
        "saison8": CatalogEntry(118, 566),
        "saison9": CatalogEntry(99, 684),
        "saison10": CatalogEntry(195, 783),
        "saison11": CatalogEntry(122, 1086),  # Egghead
    }
}


class EpisodeCatalog:
    """Table (anime, saison) → numérotation des épisodes, utilisée quand l'API n'a rien."""

    def __init__(self, table: Optional[Dict[str, Dict[str, CatalogEntry]]] = None):
        self._table = table if table is not None else DEFAULT_EPISODE_TABLE

    def lookup(self, anime_id: str, season_value: str) -> Optional[CatalogEntry]:
        return self._table.get(anime_id, {}).get(season_value)

    def __len__(self) -> int:
        return sum(len(seasons) for seasons in self._table.values())

    @classmethod
    def from_file(cls, path: str) -> "EpisodeCatalog":
        """Charge un JSON {"anime": {"saison": {"count": N, "startEp": M}}}."""
        with open(path, 'rb') as f:
            raw = orjson.loads(f.read())

        table: Dict[str, Dict[str, CatalogEntry]] = {}
        for anime_id, seasons in raw.items():
            if not isinstance(seasons, dict):
                continue
            for season_value, entry in seasons.items():
                if not isinstance(entry, dict) or int(entry.get("count", 0)) <= 0:
                    continue
                table.setdefault(anime_id, {})[season_value] = CatalogEntry(
                    count=int(entry["count"]),
                    start_ep=int(entry.get("startEp") or 1),
                )
        return cls(table)


def load_episode_catalog(path: Optional[str] = None) -> EpisodeCatalog:
    """Catalogue depuis EPISODE_CATALOG_PATH si présent, sinon table intégrée."""
    path = path or settings.EPISODE_CATALOG_PATH
    if path and os.path.exists(path):
        try:
            catalog = EpisodeCatalog.from_file(path)
            logger.log("NEXUS", f"Catalogue d'épisodes chargé: {path} ({len(catalog)} saisons)")
            return catalog
        except (OSError, ValueError, orjson.JSONDecodeError) as e:
            logger.log("WARNING", f"Catalogue d'épisodes illisible ({path}): {e} - table intégrée utilisée")
    elif path:
        logger.log("WARNING", f"Catalogue d'épisodes introuvable: {path} - table intégrée utilisée")
    return EpisodeCatalog()
