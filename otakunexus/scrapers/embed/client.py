from typing import List, Optional

from pydantic import ValidationError

from otakunexus.scrapers.base import BaseScraper
from otakunexus.utils.errors.handler import MalformedResponse
from otakunexus.utils.errors.patterns import safe_get_list
from otakunexus.utils.http_client import HttpClient
from otakunexus.utils.logger import logger
from otakunexus.utils.retry import RetryPolicy
from otakunexus.utils.validation.models import VideoSource


class EmbedClient(BaseScraper):
    """Consommateur d'un endpoint /api/embed distant ({success, sources})."""

    def __init__(self, client: HttpClient, base_url: str, retry_policy: Optional[RetryPolicy] = None):
        super().__init__(client, base_url, retry_policy or RetryPolicy(max_attempts=1))

    async def extract(self, url: str, episode_number: Optional[int] = None) -> List[VideoSource]:
        params = {"url": url}
        if episode_number is not None:
            params["episode"] = episode_number

        payload = await self._get_json("/api/embed", params)
        if not isinstance(payload, dict):
            raise MalformedResponse(self._url("/api/embed"), "objet JSON attendu")
        if not payload.get("success"):
            logger.log("STREAM", f"Extraction distante sans succès pour {url}")
            return []

        sources = []
        for index, raw in enumerate(safe_get_list(payload, "sources")):
            if not isinstance(raw, dict):
                continue
            try:
                sources.append(VideoSource.model_validate({"serverIndex": index, **raw}))
            except ValidationError:
                logger.log("WARNING", f"Source ignorée (format invalide) pour {url}")
        return sources
