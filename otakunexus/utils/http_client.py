import random
from typing import Any, Optional

import httpx
import orjson

from otakunexus.config.settings import settings
from otakunexus.utils.errors.handler import HttpError, MalformedResponse, NetworkFailure
from otakunexus.utils.logger import logger
from otakunexus.utils.retry import RetryPolicy


USER_AGENT_POOL = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/138.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/138.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:132.0) Gecko/20100101 Firefox/132.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/138.0.0.0 Safari/537.36"
]


def get_random_user_agent():
    """Retourne un User-Agent aléatoire depuis le pool."""
    return random.choice(USER_AGENT_POOL)


def get_default_headers():
    """Génère des headers de base avec User-Agent aléatoire."""
    return {
        "User-Agent": get_random_user_agent(),
        "Accept": "application/json,text/html;q=0.9,*/*;q=0.8",
        "Accept-Language": "fr-FR,fr;q=0.9,en;q=0.8",
        "Connection": "keep-alive",
    }


class HttpClient:
    """Client HTTP asynchrone avec politique de tentatives et erreurs typées."""

    def __init__(self, base_url: str = "", timeout: Optional[float] = None,
                 retry_policy: Optional[RetryPolicy] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None
        self._setup_client()

    def _setup_client(self):
        """Configure le client httpx (avec proxy si configuré)."""
        config = {
            "timeout": httpx.Timeout(self.timeout),
            "headers": get_default_headers(),
            "follow_redirects": True,
        }
        if self._transport is not None:
            config["transport"] = self._transport
        elif settings.PROXY_URL:
            config["proxy"] = settings.PROXY_URL
            logger.log("INFO", f"Configuration du proxy: {settings.PROXY_URL}")

        self.client = httpx.AsyncClient(**config)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def is_closed(self) -> bool:
        return self.client is None or self.client.is_closed

    async def close(self):
        """Ferme le client et nettoie les ressources."""
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    def _build_url(self, url: str) -> str:
        if url.startswith('http'):
            return url
        return f"{self.base_url.rstrip('/')}/{url.lstrip('/')}"

    async def _send_once(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Une seule requête: convertit les échecs httpx en erreurs typées."""
        if self.is_closed:
            self._setup_client()

        logger.log("API", f"{method} {url}")
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise NetworkFailure(url, "timeout") from e
        except httpx.RequestError as e:
            raise NetworkFailure(url, str(e)) from e

        if response.status_code >= 400:
            raise HttpError(url, response.status_code)

        logger.log("API", f"{method} {url} → {response.status_code}")
        return response

    async def request(self, method: str, url: str, retry_policy: Optional[RetryPolicy] = None,
                      **kwargs) -> httpx.Response:
        """Effectue une requête HTTP avec tentatives selon la politique."""
        url = self._build_url(url)
        policy = retry_policy or self.retry_policy
        return await policy.run(lambda: self._send_once(method, url, **kwargs), label=f"{method} {url}")

    async def get(self, url: str, **kwargs) -> httpx.Response:
        """Effectue une requête GET avec nouvelles tentatives automatiques."""
        return await self.request("GET", url, **kwargs)

    async def get_json(self, url: str, retry_policy: Optional[RetryPolicy] = None, **kwargs) -> Any:
        """GET puis décodage JSON; un corps invalide compte comme une tentative échouée."""
        url = self._build_url(url)
        policy = retry_policy or self.retry_policy

        async def fetch_and_decode():
            response = await self._send_once("GET", url, **kwargs)
            try:
                return orjson.loads(response.content)
            except orjson.JSONDecodeError as e:
                raise MalformedResponse(url, "JSON invalide") from e

        return await policy.run(fetch_and_decode, label=f"GET {url}")
