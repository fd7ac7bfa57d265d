import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from otakunexus.config.settings import settings
from otakunexus.utils.errors.patterns import safe_get_str
from otakunexus.utils.logger import logger
from otakunexus.utils.validation.models import AnimeSummary, Season, language_code


SEASON_NAME_PATTERN = re.compile(r'saison|saga', re.IGNORECASE)

EXCLUDED_RESULT_TYPES = {"manga"}


def default_image_url(anime_id: str) -> str:
    """Image CDN déduite de l'identifiant quand l'API n'en fournit pas."""
    return f"{settings.IMAGE_CDN_URL}/{anime_id}.jpg"


def build_catalogue_url(anime_id: str, season_value: str, language: str) -> str:
    """URL anime-sama d'une saison dans une langue donnée."""
    return f"{settings.ANIMESAMA_URL}/catalogue/{anime_id}/{season_value}/{language_code(language)}"


def normalize_search_result(raw: Dict[str, Any]) -> Optional[AnimeSummary]:
    """Complète un résultat brut (image, statut, type par défaut)."""
    anime_id = safe_get_str(raw, "id")
    if not anime_id:
        return None

    return AnimeSummary(
        id=anime_id,
        title=safe_get_str(raw, "title", anime_id),
        image=safe_get_str(raw, "image", default_image_url(anime_id)),
        status=safe_get_str(raw, "status", "Disponible"),
        type=safe_get_str(raw, "type", "Anime"),
        url=safe_get_str(raw, "url"),
    )


def normalize_search_results(raw_results: List[Any]) -> List[AnimeSummary]:
    """Filtre les types non-anime puis normalise les résultats."""
    normalized = []
    for raw in raw_results:
        if not isinstance(raw, dict):
            continue
        if str(raw.get("type", "")).lower() in EXCLUDED_RESULT_TYPES:
            continue
        result = normalize_search_result(raw)
        if result:
            normalized.append(result)
    return normalized


def is_valid_season(season: Season) -> bool:
    """Écarte les entrées factices ('nom', 'url') et les noms sans 'saison'/'saga'."""
    if not season.name or season.name == "nom" or season.value == "url":
        return False
    return bool(SEASON_NAME_PATTERN.search(season.name))


def filter_valid_seasons(seasons: List[Season]) -> List[Season]:
    """Liste des saisons exploitables, ordre de l'API conservé."""
    return [season for season in seasons if is_valid_season(season)]


def parse_seasons(raw_seasons: List[Any]) -> List[Season]:
    """Convertit la liste brute de saisons; les entrées non-dict sont ignorées."""
    seasons = []
    for raw in raw_seasons:
        if not isinstance(raw, dict):
            continue
        try:
            seasons.append(Season.model_validate(raw))
        except ValidationError as e:
            logger.log("WARNING", f"Saison ignorée (format invalide): {e.error_count()} erreur(s)")
    return seasons
