import asyncio

import httpx

from otakunexus.config.settings import settings
from otakunexus.services.search import SEARCH_ERROR_MESSAGE, SearchController

from conftest import json_response


RAW_RESULTS = [
    {"id": "naruto", "title": "Naruto", "image": "https://img.test/naruto.jpg", "status": "Terminé", "type": "Anime"},
    {"id": "naruto-scan", "title": "Naruto", "type": "Manga"},
    {"id": "boruto", "title": "Boruto"},
    {"title": "sans identifiant"},
    "pas un objet",
]


def search_route(request):
    return json_response({"success": True, "results": RAW_RESULTS})


async def test_short_query_sends_no_request(api, backend):
    backend.routes["/api/search"] = search_route
    controller = SearchController(api, debounce=0)
    controller.results = ["ancien"]

    assert await controller.search(" n ") == []
    assert controller.error is None
    assert backend.calls("/api/search") == []


async def test_results_exclude_manga_and_get_defaults(api, backend):
    backend.routes["/api/search"] = search_route
    controller = SearchController(api, debounce=0)

    results = await controller.search("naruto")

    assert [r.id for r in results] == ["naruto", "boruto"]
    assert results[0].status == "Terminé"
    boruto = results[1]
    assert boruto.image == f"{settings.IMAGE_CDN_URL}/boruto.jpg"
    assert boruto.status == "Disponible"
    assert boruto.type == "Anime"
    assert backend.calls("/api/search")[0].url.params["query"] == "naruto"


async def test_failure_after_retries_sets_error(api, backend):
    backend.routes["/api/search"] = httpx.Response(503)
    controller = SearchController(api, debounce=0)
    controller.results = ["ancien"]

    results = await controller.search("naruto")

    assert results == []
    assert controller.error == SEARCH_ERROR_MESSAGE
    assert not controller.loading
    assert len(backend.calls("/api/search")) == 2


async def test_payload_without_results_is_an_error(api, backend):
    backend.routes["/api/search"] = json_response({"success": False})
    controller = SearchController(api, debounce=0)

    await controller.search("naruto")
    assert controller.error == SEARCH_ERROR_MESSAGE


async def test_debounce_keeps_only_last_query(api, backend):
    backend.routes["/api/search"] = search_route
    controller = SearchController(api, debounce=0.05)

    first = controller.submit("nar")
    second = controller.submit("naruto")
    await second

    assert first.cancelled()
    queries = [request.url.params["query"] for request in backend.calls("/api/search")]
    assert queries == ["naruto"]


async def test_cancel_pending_search(api, backend):
    backend.routes["/api/search"] = search_route
    controller = SearchController(api, debounce=0.05)

    controller.submit("naruto")
    controller.cancel()
    await asyncio.sleep(0.1)

    assert backend.calls("/api/search") == []


async def test_trending_is_normalized_and_limited(api, backend):
    raw = [{"id": f"anime-{i}", "title": f"Anime {i}"} for i in range(20)] + [{"id": "scan", "type": "manga"}]
    backend.routes["/api/trending"] = json_response({"success": True, "results": raw})
    controller = SearchController(api)

    results = await controller.trending(limit=5)
    assert [r.id for r in results] == [f"anime-{i}" for i in range(5)]


async def test_trending_failure_returns_empty_list(api, backend):
    backend.routes["/api/trending"] = httpx.Response(500)
    assert await SearchController(api).trending() == []
