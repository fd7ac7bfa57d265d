import asyncio
from typing import List, Optional

from otakunexus.config.settings import settings
from otakunexus.scrapers.animesama.client import AnimeSamaAPI
from otakunexus.scrapers.animesama.helpers import normalize_search_results
from otakunexus.utils.errors.handler import NexusException
from otakunexus.utils.logger import logger
from otakunexus.utils.validation.models import AnimeSummary


SEARCH_ERROR_MESSAGE = "Impossible de rechercher les animes. Vérifiez votre connexion."


class SearchController:
    """Recherche d'animes avec anti-rebond, tentatives et normalisation des résultats."""

    def __init__(self, api: AnimeSamaAPI, debounce: Optional[float] = None,
                 min_length: Optional[int] = None):
        self.api = api
        self.debounce = settings.SEARCH_DEBOUNCE if debounce is None else debounce
        self.min_length = settings.SEARCH_MIN_LENGTH if min_length is None else min_length
        self.results: List[AnimeSummary] = []
        self.error: Optional[str] = None
        self.loading = False
        self._pending: Optional[asyncio.Task] = None

    async def search(self, query: str) -> List[AnimeSummary]:
        """Lance la recherche immédiatement; les requêtes trop courtes vident les résultats."""
        query = (query or "").strip()
        if len(query) < self.min_length:
            self.results = []
            self.error = None
            return self.results

        self.loading = True
        self.error = None
        try:
            raw_results = await self.api.search(query)
            self.results = normalize_search_results(raw_results)
            logger.log("ANIMESAMA", f"Recherche '{query}': {len(self.results)} résultat(s)")
        except NexusException as e:
            logger.log("WARNING", f"Recherche '{query}' en échec: {e.message}")
            self.error = SEARCH_ERROR_MESSAGE
            self.results = []
        finally:
            self.loading = False
        return self.results

    def submit(self, query: str) -> asyncio.Task:
        """Saisie utilisateur: annule la recherche en attente et la reprogramme après le délai."""
        self.cancel()
        self._pending = asyncio.create_task(self._debounced(query))
        return self._pending

    def cancel(self) -> None:
        if self._pending and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def _debounced(self, query: str) -> List[AnimeSummary]:
        if not query:
            self.results = []
            return self.results
        await asyncio.sleep(self.debounce)
        return await self.search(query)

    async def trending(self, limit: Optional[int] = None) -> List[AnimeSummary]:
        """Animes populaires normalisés; tout échec donne une liste vide."""
        limit = settings.TRENDING_LIMIT if limit is None else limit
        try:
            raw_results = await self.api.trending()
        except NexusException as e:
            logger.log("WARNING", f"Tendances indisponibles: {e.message}")
            return []
        return normalize_search_results(raw_results)[:limit]
