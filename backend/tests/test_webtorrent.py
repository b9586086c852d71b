from unittest.mock import AsyncMock

import pytest

from app.exceptions import InvalidInputError, UpstreamError
from app.services import webtorrent

BREAKING_BAD = {
    "id": 1396,
    "name": "Во все тяжкие",
    "first_air_date": "2008-01-20",
    "genres": [{"id": 18, "name": "драма"}],
    "seasons": [
        {"season_number": 0, "name": "Спецматериалы"},
        {"season_number": 1, "name": "Сезон 1"},
        {"season_number": 2, "name": "Сезон 2"},
    ],
}


def tmdb_routes(routes: dict):
    """Answer TMDB paths from ``routes``; a value that is an exception is raised."""

    def fake_get(path, params=None, headers=None):
        value = routes[path]
        if isinstance(value, Exception):
            raise value
        return value

    return AsyncMock(side_effect=fake_get)


def test_render_player_embeds_decoded_magnet():
    page = webtorrent.render_player("magnet%3A%3Fxt%3Durn%3Abtih%3Aabc")
    assert 'const magnetLink = "magnet:?xt=urn:btih:abc";' in page
    assert "webtorrent" in page


def test_render_player_keeps_magnet_inside_script():
    page = webtorrent.render_player('magnet:?dn=</script><script>alert("x")</script>')
    assert "</script><script>alert" not in page
    assert '<\\/script>' in page


def test_render_player_requires_magnet():
    with pytest.raises(InvalidInputError):
        webtorrent.render_player("")


async def test_player_route_reads_magnet_header(client):
    resp = await client.get("/api/v1/webtorrent/player", headers={"X-Magnet-Link": "magnet:?xt=urn:btih:def"})
    assert resp.status_code == 200
    assert "magnet:?xt=urn:btih:def" in resp.text


async def test_player_route_without_magnet(client):
    resp = await client.get("/api/v1/webtorrent/player")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Magnet link is required"


async def test_movie_metadata(client, providers):
    providers.tmdb._get = tmdb_routes({
        "search/movie": {"results": [{"id": 603, "title": "Матрица"}]},
        "movie/603": {
            "id": 603,
            "title": "Матрица",
            "release_date": "1999-03-30",
            "runtime": 136,
            "poster_path": "/m.jpg",
            "genres": [{"id": 28, "name": "боевик"}],
        },
    })

    resp = await client.get("/api/v1/webtorrent/metadata", params={"query": "Матрица"})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data == {
        "id": 603,
        "title": "Матрица",
        "type": "movie",
        "year": 1999,
        "posterPath": "/m.jpg",
        "runtime": 136,
        "genres": [{"id": 28, "name": "боевик"}],
    }


async def test_tv_metadata_skips_specials_and_missing_seasons(client, providers):
    providers.tmdb._get = tmdb_routes({
        "search/movie": {"results": []},
        "search/tv": {"results": [{"id": 1396, "name": "Во все тяжкие"}]},
        "tv/1396": BREAKING_BAD,
        "tv/1396/season/1": {"episodes": [
            {"episode_number": 1, "name": "Пилот", "runtime": 58},
            {"episode_number": 2, "name": "Кот в мешке"},
        ]},
        "tv/1396/season/2": UpstreamError("TMDB", 500),
    })

    resp = await client.get("/api/v1/webtorrent/metadata", params={"query": "breaking bad"})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["type"] == "tv"
    assert data["year"] == 2008
    assert [s["seasonNumber"] for s in data["seasons"]] == [1]
    assert [e["name"] for e in data["episodes"]] == ["Пилот", "Кот в мешке"]
    assert data["episodes"][0] == {"episodeNumber": 1, "seasonNumber": 1, "name": "Пилот", "runtime": 58}


async def test_metadata_not_found(client, providers):
    providers.tmdb._get = tmdb_routes({"search/movie": {"results": []}, "search/tv": {"results": []}})

    resp = await client.get("/api/v1/webtorrent/metadata", params={"query": "zzzz"})

    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Media not found: no results"}


async def test_metadata_requires_query(client):
    resp = await client.get("/api/v1/webtorrent/metadata")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Query parameter is required"
