import httpx
import pytest
from fastapi.testclient import TestClient

from otakunexus.main import app
from otakunexus.services.catalog import EpisodeCatalog
from otakunexus.utils.database import InMemoryWatchHistory
from otakunexus.utils.http_client import HttpClient
from otakunexus.utils.retry import RetryPolicy

from conftest import json_response


def episodes_route(request):
    language = request.url.params["language"]
    return json_response({"success": True, "episodes": [
        {"episodeNumber": n, "title": f"Épisode {n} ({language})"} for n in (1, 2, 3)
    ]})


@pytest.fixture
def client(backend):
    backend.routes["/api/episodes/one-piece"] = episodes_route
    backend.routes["/api/search"] = json_response({"success": True, "results": [
        {"id": "one-piece", "title": "One Piece"},
        {"id": "one-piece-scan", "title": "One Piece", "type": "Manga"},
    ]})
    backend.routes["/api/trending"] = json_response({"success": True, "results": [
        {"id": f"anime-{i}"} for i in range(15)
    ]})

    app.state.http_client = HttpClient(
        transport=httpx.MockTransport(backend),
        retry_policy=RetryPolicy(max_attempts=2, backoff=lambda attempt: 0),
    )
    app.state.episode_catalog = EpisodeCatalog()
    app.state.watch_history = InMemoryWatchHistory()
    return TestClient(app)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_search_filters_and_marks_history(client):
    client.put("/api/history/one-piece", json={"episodeNumber": 5}, headers={"X-Session-Id": "abc"})

    response = client.get("/api/search", params={"query": "one"}, headers={"X-Session-Id": "abc"})

    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["id"] for r in results] == ["one-piece"]
    assert results[0]["lastEpisode"] == 5
    assert results[0]["status"] == "Disponible"


def test_short_search_does_not_call_api(client, backend):
    response = client.get("/api/search", params={"query": "o"})

    assert response.json() == {"success": True, "results": []}
    assert backend.calls("/api/search") == []


def test_search_failure_returns_error_message(client, backend):
    backend.routes["/api/search"] = httpx.Response(500)

    response = client.get("/api/search", params={"query": "naruto"})

    assert response.status_code == 502
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Impossible de rechercher les animes. Vérifiez votre connexion."
    assert len(backend.calls("/api/search")) == 2


def test_trending_is_limited(client):
    assert len(client.get("/api/trending").json()["results"]) == 12


def test_anime_detail(client):
    body = client.get("/api/anime/one-piece", params={"season": "saison2"}).json()

    assert body["data"]["title"] == "One Piece"
    assert [s["value"] for s in body["validSeasons"]] == ["saison1", "saison2"]
    assert body["selectedSeason"]["value"] == "saison2"


def test_unknown_anime_is_404(client, backend):
    backend.routes["/api/anime/inconnu"] = httpx.Response(404)

    response = client.get("/api/anime/inconnu")

    assert response.status_code == 404
    assert response.json()["error"] == "ANIME_NOT_FOUND"


def test_seasons_fall_back_to_anime_detail(client):
    body = client.get("/api/seasons/one-piece").json()
    assert [s["value"] for s in body["seasons"]] == ["saison1", "saison2"]


def test_episodes_from_api(client):
    body = client.get("/api/episodes/one-piece", params={"season": "saison1", "language": "vf", "episode": 2}).json()

    assert body["source"] == "api"
    assert body["episodes"][0]["id"] == "one-piece-saison1-ep1-vf"
    assert body["selectedEpisode"]["episodeNumber"] == 2


def test_episodes_fall_back_to_catalog(client, backend):
    backend.routes["/api/episodes/one-piece"] = json_response({"success": False})

    body = client.get("/api/episodes/one-piece", params={"season": "saison2"}).json()

    assert body["source"] == "catalog"
    assert len(body["episodes"]) == 77
    assert body["selectedEpisode"]["episodeNumber"] == 62


def test_player_state(client):
    response = client.get("/api/player/one-piece", params={"episode": 2, "lang": "vf"},
                          headers={"X-Session-Id": "abc"})

    body = response.json()
    assert body["status"] == "ready"
    assert body["selectedLanguage"] == "VF"
    assert body["selectedEpisode"]["id"] == "one-piece-saison1-ep2-vf"
    assert body["canPrev"] is True
    assert body["canNext"] is True
    # Page lecteur introuvable: repli sur la source anime-sama connue
    assert body["currentSource"]["server"] == "Anime-Sama"

    history = client.get("/api/history", headers={"X-Session-Id": "abc"}).json()
    assert history["history"] == {"one-piece": 2}


def test_player_unknown_anime(client, backend):
    backend.routes["/api/anime/inconnu"] = httpx.Response(404)
    assert client.get("/api/player/inconnu").status_code == 404


def test_embed_endpoint(client, backend):
    backend.routes["/player/ep1"] = httpx.Response(
        200, text='<iframe src="https://sendvid.com/embed/xyz"></iframe>'
    )

    body = client.get("/api/embed", params={"url": "https://anime-sama.fr/player/ep1"}).json()

    assert body["success"] is True
    assert body["sources"][0]["server"] == "Sendvid"


def test_embed_endpoint_failures(client):
    assert client.get("/api/embed", params={"url": "ftp://x"}).status_code == 400

    body = client.get("/api/embed", params={"url": "https://anime-sama.fr/absent"}).json()
    assert body["success"] is False
    assert body["sources"] == []
    assert "404" in body["error"]


def test_history_requires_session(client):
    response = client.get("/api/history")

    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_REQUEST"


def test_history_rejects_negative_episode(client):
    response = client.put("/api/history/one-piece", json={"episodeNumber": -1}, headers={"X-Session-Id": "abc"})
    assert response.status_code == 422
