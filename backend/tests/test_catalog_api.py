from unittest.mock import AsyncMock

import pytest

from app.exceptions import ProviderNotConfigured, UpstreamError
from app.services.catalog import CatalogService

KP_SHAWSHANK = {
    "kinopoiskId": 326,
    "imdbId": "tt0111161",
    "nameRu": "Побег из Шоушенка",
    "nameOriginal": "The Shawshank Redemption",
    "ratingKinopoisk": 9.1,
    "year": 1994,
    "filmLength": 142,
    "description": "Бухгалтер Энди Дюфрейн обвинён в убийстве",
    "type": "FILM",
    "countries": [{"country": "США"}],
    "genres": [{"genre": "драма"}],
    "coverUrl": "https://avatars.mds.yandex.net/get-ott/cover.jpg",
}


async def test_kp_movie_is_enriched_with_tmdb_id(client, providers):
    providers.kinopoisk._get = AsyncMock(return_value=KP_SHAWSHANK)
    providers.tmdb._get = AsyncMock(return_value={"movie_results": [{"id": 278, "title": "The Shawshank Redemption"}]})

    resp = await client.get("/api/v1/movies/kp_326", params={"lang": "ru"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["source"] == "kp"
    data = body["data"]
    assert data["type"] == "movie"
    assert data["sourceId"] == "kp_326"
    assert data["externalIds"] == {"kp": 326, "tmdb": 278, "imdb": "tt0111161"}
    assert data["posterUrl"].startswith("/api/v1/images/kp_")
    assert data["backdropUrl"].startswith("/api/v1/images/")
    assert "seasons" not in data
    assert body["metadata"]["apiVersion"] == "3.0"
    providers.tmdb._get.assert_awaited_once()
    assert providers.tmdb._get.await_args.args[0] == "find/tt0111161"


async def test_failed_enrichment_keeps_kp_record(client, providers):
    providers.kinopoisk._get = AsyncMock(return_value=KP_SHAWSHANK)
    providers.tmdb._get = AsyncMock(side_effect=UpstreamError("TMDB", 500))

    resp = await client.get("/api/v1/movies/kp_326", params={"lang": "ru"})

    assert resp.status_code == 200
    assert resp.json()["data"]["externalIds"]["tmdb"] is None


async def test_multi_search_drops_people(client, providers):
    providers.tmdb._get = AsyncMock(return_value={
        "page": 1,
        "total_pages": 1,
        "total_results": 3,
        "results": [
            {"id": 603, "media_type": "movie", "title": "The Matrix", "release_date": "1999-03-30", "poster_path": "/m.jpg"},
            {"id": 1399, "media_type": "tv", "name": "The Matrix Show", "first_air_date": "2001-01-01"},
            {"id": 6384, "media_type": "person", "name": "Keanu Reeves"},
        ],
    })

    resp = await client.get("/api/v1/search/multi", params={"query": "matrix", "page": 1, "lang": "en"})

    assert resp.status_code == 200
    body = resp.json()
    assert [item["type"] for item in body["data"]] == ["movie", "tv"]
    assert body["pagination"]["totalResults"] == 2
    assert body["pagination"]["pageSize"] == 2
    assert body["metadata"]["query"] == "matrix"
    assert body["data"][0]["posterUrl"] == "/api/v1/images/w500/m.jpg"


async def test_tmdb_not_found_is_reported_as_upstream_error(client, providers):
    providers.tmdb._get = AsyncMock(side_effect=UpstreamError("TMDB", 404))

    resp = await client.get("/api/v1/movies/tmdb_999999", params={"lang": "en"})

    assert resp.status_code == 502
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "TMDB API error: 404"
    assert body["source"] == "tmdb"
    assert "fetchedAt" in body["metadata"]


async def test_malformed_id_is_rejected(client):
    resp = await client.get("/api/v1/movies/imdb_123")
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid SOURCE_ID format"


async def test_bare_id_with_russian_language_goes_to_kinopoisk(client, providers):
    providers.kinopoisk._get = AsyncMock(return_value=KP_SHAWSHANK)
    providers.tmdb._get = AsyncMock(return_value={"movie_results": []})

    resp = await client.get("/api/v1/movies/326", params={"lang": "ru"})

    assert resp.status_code == 200
    assert resp.json()["source"] == "kp"


async def test_explicit_source_overrides_language(client, providers):
    providers.tmdb._get = AsyncMock(return_value={"id": 278, "title": "The Shawshank Redemption", "imdb_id": "tt0111161"})

    resp = await client.get("/api/v1/movies/278", params={"lang": "ru", "source": "tmdb"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["source"] == "tmdb"
    assert body["data"]["sourceId"] == "tmdb_278"


async def test_invalid_source_is_rejected(client):
    resp = await client.get("/api/v1/movies/278", params={"source": "imdb"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "source must be 'kp' or 'tmdb'"


async def test_unified_search_uses_kinopoisk_for_russian(client, providers):
    providers.kinopoisk._get = AsyncMock(side_effect=[
        {"films": [{"filmId": 326, "nameRu": "Побег из Шоушенка", "year": "1994", "type": "FILM", "rating": "9.1"}], "pagesCount": 1},
        KP_SHAWSHANK,
    ])
    providers.tmdb._get = AsyncMock(return_value={"movie_results": [{"id": 278}]})

    resp = await client.get("/api/v1/search", params={"query": "шоушенк", "lang": "ru"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["source"] == "kp"
    item = body["data"][0]
    assert item["sourceId"] == "kp_326"
    assert item["externalIds"]["tmdb"] == 278
    assert item["externalIds"]["imdb"] == "tt0111161"


async def test_categories_merge_movie_and_tv_genres(client, providers):
    providers.tmdb._get = AsyncMock(side_effect=[
        {"genres": [{"id": 28, "name": "Action"}, {"id": 18, "name": "Drama"}]},
        {"genres": [{"id": 18, "name": "Drama"}, {"id": 10759, "name": "Action & Adventure"}]},
    ])

    resp = await client.get("/api/v1/categories", params={"lang": "en"})

    assert resp.status_code == 200
    categories = resp.json()["data"]
    assert [c["id"] for c in categories] == [28, 18, 10759]
    assert categories[2]["slug"] == "action--adventure"


async def test_health(client):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_kp_series_is_not_served_as_movie(client, providers):
    providers.kinopoisk._get = AsyncMock(return_value={
        "kinopoiskId": 77044,
        "nameRu": "Друзья",
        "year": 1994,
        "type": "TV_SERIES",
        "serial": True,
    })

    resp = await client.get("/api/v1/movies/kp_77044", params={"lang": "ru"})

    assert resp.status_code == 404
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "movie not found"
    assert body["source"] == "kp"


async def test_unconfigured_kinopoisk_is_named_in_error(client, providers):
    providers.catalog.kinopoisk = None

    resp = await client.get("/api/v1/movies/kp_326", params={"lang": "ru"})

    assert resp.status_code == 502
    assert resp.json()["error"] == "Kinopoisk not configured"


async def test_unconfigured_tmdb_is_named_in_error():
    catalog = CatalogService(tmdb=None, kinopoisk=None)
    with pytest.raises(ProviderNotConfigured, match="^TMDB not configured$"):
        await catalog.get_movie("tmdb", 550, "en-US")
