import httpx
import orjson

from otakunexus.config.settings import settings
from otakunexus.services.catalog import CatalogEntry, EpisodeCatalog, load_episode_catalog
from otakunexus.services.episodes import (
    SOURCE_API, SOURCE_CATALOG, EpisodeResolver, make_episode_id, select_episode
)
from otakunexus.utils.validation.models import Season

from conftest import json_response


SAISON1 = Season(number=1, name="Saison 1", value="saison1")
SAISON2 = Season(number=2, name="Saison 2", value="saison2")


def test_episode_ids_differ_by_language():
    vf = make_episode_id("one-piece", "saison1", 3, "VF")
    vostfr = make_episode_id("one-piece", "saison1", 3, "VOSTFR")
    assert vf == "one-piece-saison1-ep3-vf"
    assert vostfr == "one-piece-saison1-ep3-vostfr"


async def test_catalog_generation_for_known_season(api):
    resolver = EpisodeResolver(api)

    episodes = resolver.generate("one-piece", SAISON1, "VOSTFR")

    assert len(episodes) == 61
    assert [ep.episodeNumber for ep in episodes] == list(range(1, 62))
    assert episodes[0].title == "Épisode 1"
    assert episodes[0].url == f"{settings.ANIMESAMA_URL}/catalogue/one-piece/saison1/vostfr"
    assert episodes[0].streamingSources[0].server == "Anime-Sama"


async def test_catalog_generation_keeps_absolute_numbering(api):
    episodes = EpisodeResolver(api).generate("one-piece", SAISON2, "VF")

    assert len(episodes) == 77
    assert episodes[0].episodeNumber == 62
    assert episodes[-1].episodeNumber == 138
    assert episodes[0].id == "one-piece-saison2-ep62-vf"


async def test_unknown_season_gets_default_episodes(api):
    episodes = EpisodeResolver(api).generate("frieren", SAISON1, "VOSTFR")
    assert [ep.episodeNumber for ep in episodes] == list(range(1, 13))


async def test_generated_ids_are_unique_across_languages(api):
    resolver = EpisodeResolver(api)
    vf = resolver.generate("one-piece", SAISON1, "VF")
    vostfr = resolver.generate("one-piece", SAISON1, "VOSTFR")

    ids = [ep.id for ep in vf + vostfr]
    assert len(ids) == len(set(ids))


async def test_api_episodes_are_formatted(api, backend):
    backend.routes["/api/episodes/frieren"] = json_response({"success": True, "episodes": [
        {"episodeNumber": 1, "title": "Le voyage commence", "url": "https://anime-sama.fr/ep1",
         "streamingSources": [{"url": "https://video.sibnet.ru/shell.php?videoid=1", "server": "Sibnet"},
                              {"server": "sans url"}]},
        {"url": ""},
        {"episodeNumber": 1, "title": "doublon"},
        "ignoré",
    ]})

    episodes = await EpisodeResolver(api).resolve("frieren", SAISON1, "vf")

    assert [ep.episodeNumber for ep in episodes] == [1, 2]
    first, second = episodes
    assert first.id == "frieren-saison1-ep1-vf"
    assert first.title == "Le voyage commence"
    assert first.language == "VF"
    assert [s.server for s in first.streamingSources] == ["Sibnet"]
    assert second.title == "Épisode 2"
    assert second.url == f"{settings.ANIMESAMA_URL}/catalogue/frieren/saison1/vf"
    assert second.streamingSources[0].url == second.url

    params = backend.calls("/api/episodes/frieren")[0].url.params
    assert params["season"] == "saison1"
    assert params["language"] == "VF"


async def test_load_prefers_api(api, backend):
    backend.routes["/api/episodes/one-piece"] = json_response(
        {"success": True, "episodes": [{"episodeNumber": 1}]}
    )

    result = await EpisodeResolver(api).load("one-piece", SAISON1, "VOSTFR")

    assert result.source == SOURCE_API
    assert len(result.episodes) == 1
    assert result.error is None


async def test_load_falls_back_to_catalog_on_empty_list(api, backend):
    backend.routes["/api/episodes/one-piece"] = json_response({"success": True, "episodes": []})

    result = await EpisodeResolver(api).load("one-piece", SAISON2, "VOSTFR")

    assert result.source == SOURCE_CATALOG
    assert result.episodes[0].episodeNumber == 62
    assert result.error


async def test_load_falls_back_to_catalog_on_network_error(api, backend):
    backend.routes["/api/episodes/frieren"] = httpx.Response(502)

    result = await EpisodeResolver(api, default_count=4).load("frieren", SAISON1, "VOSTFR")

    assert result.source == SOURCE_CATALOG
    assert [ep.episodeNumber for ep in result.episodes] == [1, 2, 3, 4]


async def test_select_episode_by_number(api):
    episodes = EpisodeResolver(api).generate("one-piece", SAISON2, "VOSTFR")

    assert select_episode(episodes, 70).episodeNumber == 70
    assert select_episode(episodes, "70").episodeNumber == 70
    assert select_episode(episodes, 1).episodeNumber == 62
    assert select_episode(episodes, "abc").episodeNumber == 62
    assert select_episode([], 1) is None


def test_catalog_from_file(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_bytes(orjson.dumps({
        "bleach": {"saison1": {"count": 20, "startEp": 1}, "saison2": {"count": 16, "startEp": 21},
                   "vide": {"count": 0}},
        "invalide": [],
    }))

    catalog = load_episode_catalog(str(path))

    assert len(catalog) == 2
    assert catalog.lookup("bleach", "saison2").start_ep == 21
    assert catalog.lookup("bleach", "vide") is None


def test_missing_catalog_file_uses_builtin_table(tmp_path):
    catalog = load_episode_catalog(str(tmp_path / "absent.json"))
    assert catalog.lookup("one-piece", "saison11").start_ep == 1086


async def test_custom_catalog_is_used(api):
    resolver = EpisodeResolver(api, EpisodeCatalog({"bleach": {"saison2": CatalogEntry(3, 21)}}))
    episodes = resolver.generate("bleach", SAISON2, "VOSTFR")
    assert [ep.episodeNumber for ep in episodes] == [21, 22, 23]


async def test_out_of_range_episode_numbers_use_position(api, backend):
    backend.routes["/api/episodes/frieren"] = json_response({"success": True, "episodes": [
        {"episodeNumber": -1},
        {"episodeNumber": 2, "title": None, "streamingSources": [{"url": "https://cdn.test/2.mp4", "server": None}]},
    ]})

    result = await EpisodeResolver(api).load("frieren", SAISON1, "VOSTFR")

    assert result.source == SOURCE_API
    assert [ep.episodeNumber for ep in result.episodes] == [1, 2]
    assert result.episodes[1].title == "Épisode 2"
    assert result.episodes[1].streamingSources[0].server == "Anime-Sama"
