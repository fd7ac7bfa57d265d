from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest

from otakunexus.scrapers.animesama.client import AnimeSamaAPI
from otakunexus.utils.http_client import HttpClient
from otakunexus.utils.retry import RetryPolicy


API_BASE = "https://anime-api.test"

ONE_PIECE = {
    "id": "one-piece",
    "title": "One Piece",
    "description": "Luffy veut devenir le roi des pirates.",
    "image": "https://img.test/one-piece.jpg",
    "genres": ["Action", "Aventure"],
    "status": "En cours",
    "year": 1999,
    "url": "https://anime-sama.fr/catalogue/one-piece/",
    "seasons": [
        {"number": 0, "name": "nom", "value": "url", "languages": ["VOSTFR"]},
        {"number": 1, "name": "Saison 1", "value": "saison1", "languages": ["VOSTFR", "VF"], "episodeCount": 61},
        {"number": 2, "name": "Saison 2", "value": "saison2", "languages": ["VOSTFR"], "episodeCount": 77},
        {"number": 99, "name": "Film", "value": "film", "languages": ["VOSTFR"]},
    ],
}

Route = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeBackend:
    """Transport httpx simulé: chemin → réponse, avec journal des requêtes."""

    def __init__(self, routes: Optional[Dict[str, Route]] = None):
        self.routes: Dict[str, Route] = dict(routes or {})
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"success": False})
        if callable(route):
            return route(request)
        # Copie: une réponse lue ne peut pas être renvoyée telle quelle
        return httpx.Response(route.status_code, headers=route.headers, content=route.content)

    def calls(self, path: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]


def json_response(payload: Any, status: int = 200) -> httpx.Response:
    return httpx.Response(status, json=payload)


@pytest.fixture
def no_wait_retry() -> RetryPolicy:
    return RetryPolicy(max_attempts=2, backoff=lambda attempt: 0)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend({
        "/api/anime/one-piece": json_response({"success": True, "data": ONE_PIECE}),
    })


@pytest.fixture
async def http_client(backend, no_wait_retry):
    client = HttpClient(transport=httpx.MockTransport(backend), retry_policy=no_wait_retry)
    yield client
    await client.close()


@pytest.fixture
def api(http_client) -> AnimeSamaAPI:
    return AnimeSamaAPI(http_client, base_url=API_BASE)
