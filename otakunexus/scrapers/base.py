from abc import ABC
from typing import Any, Dict, Optional

from otakunexus.utils.http_client import HttpClient
from otakunexus.utils.logger import logger
from otakunexus.utils.retry import RetryPolicy


class BaseScraper(ABC):
    """Classe de base pour clients d'API externes avec fonctionnalités HTTP communes."""

    def __init__(self, client: HttpClient, base_url: str, retry_policy: Optional[RetryPolicy] = None):
        self.client = client
        self.base_url = base_url.rstrip('/')
        self.retry_policy = retry_policy

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET JSON sur l'API externe avec la politique de tentatives du scraper."""
        url = self._url(path)
        logger.debug(f"Requête {url} params={params or {}}")
        return await self.client.get_json(url, params=params, retry_policy=self.retry_policy)

    async def _get_text(self, url: str) -> str:
        """GET d'une page HTML ou d'un script."""
        response = await self.client.get(url, retry_policy=self.retry_policy)
        return response.text
