from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.schemas.torrent import TorrentResult
from app.services import torrent_pipeline as pipeline
from app.services.torrent_pipeline import TorrentSearchOptions
from app.services.torrents import RedAPIClient, TorrentService


def row(magnet, title, seasons=(), quality="1080p", types=("serial",), seeders=10, size="1 GB"):
    return {
        "Title": title,
        "Tracker": "rutracker",
        "Size": size,
        "Seeders": seeders,
        "Peers": 1,
        "MagnetUri": magnet,
        "PublishDate": "2024-01-01T00:00:00",
        "CategoryDesc": "TV",
        "Info": {"quality": quality, "types": list(types), "seasons": list(seasons), "voices": ["LostFilm"]},
    }


def torrent(title, **kwargs):
    return TorrentResult(title=title, magnet=kwargs.pop("magnet", title), **kwargs)


@pytest.fixture
async def service():
    redapi = RedAPIClient("http://redapi.test")
    tmdb = AsyncMock()
    tmdb.find.return_value.tv_results = []
    service = TorrentService(redapi, tmdb=tmdb)
    yield service
    await redapi.close()


def test_quality_ladder_and_hdr_filter():
    title = "Movie.Name.2023.2160p.HDR.x265"
    assert pipeline.extract_quality(title) == "4K"
    item = torrent(title, quality=pipeline.extract_quality(title))

    assert pipeline.filter_torrents([item], TorrentSearchOptions(hdr=True)) == [item]
    assert pipeline.filter_torrents([item], TorrentSearchOptions(hdr=False)) == []
    assert pipeline.filter_torrents([item], TorrentSearchOptions(hevc=True)) == [item]


def test_unknown_quality():
    assert pipeline.extract_quality("Movie.Name.DVDRip") == "Unknown"


def test_quality_bounds_and_exclusions():
    rows = [torrent(q, quality=q) for q in ("480p", "720p", "1080p", "4K")]
    options = TorrentSearchOptions(min_quality="720p", max_quality="1080p")
    assert [t.quality for t in pipeline.filter_torrents(rows, options)] == ["720p", "1080p"]

    options = TorrentSearchOptions(exclude_qualities=["4k", "480P"])
    assert [t.quality for t in pipeline.filter_torrents(rows, options)] == ["720p", "1080p"]

    options = TorrentSearchOptions(quality=["4K"])
    assert [t.quality for t in pipeline.filter_torrents(rows, options)] == ["4K"]


@pytest.mark.parametrize(
    "title,expected",
    [
        ("Show S01 1080p", {1}),
        ("Сериал (Сезон 2)", {2}),
        ("Сериал 3 сезон", {3}),
        ("Show.S01-S02", {1, 2}),
        ("Movie 2020", set()),
    ],
)
def test_title_seasons(title, expected):
    assert pipeline.title_seasons(title) == expected


@pytest.mark.parametrize(
    "text,expected",
    [("1.46 GB", int(1.46 * 1024**3)), ("700 MiB", 700 * 1024**2), ("1 234", 1), ("", 0), ("1024", 1024)],
)
def test_parse_size(text, expected):
    assert pipeline.parse_size(text) == expected


def test_size_sort_uses_parsed_bytes():
    rows = [torrent("a", size="900 MB"), torrent("b", size="1.5 GB"), torrent("c", size="20 GB")]
    assert [t.title for t in pipeline.sort_torrents(rows, "size", "desc")] == ["c", "b", "a"]
    assert [t.title for t in pipeline.sort_torrents(rows, "size", "asc")] == ["a", "b", "c"]


def test_content_type_falls_back_to_title_markers():
    rows = [torrent("Фильм (2020)"), torrent("Сериал (сезон 1)"), torrent("Naruto anime", category="TV/Anime")]
    assert [t.title for t in pipeline.filter_by_content_type(rows, "movie")] == ["Фильм (2020)", "Naruto anime"]
    assert [t.title for t in pipeline.filter_by_content_type(rows, "tv")] == ["Сериал (сезон 1)"]
    assert [t.title for t in pipeline.filter_by_content_type(rows, "anime")] == ["Naruto anime"]


def test_group_by_season_puts_multi_season_rows_in_each_bucket():
    rows = [torrent("Show S01-S02", seeders=5), torrent("Show S02", seeders=9), torrent("Show complete")]
    groups = pipeline.group_by_season(rows)
    assert list(groups) == ["Сезон 1", "Сезон 2", "Неизвестно"]
    assert [t.title for t in groups["Сезон 2"]] == ["Show S02", "Show S01-S02"]


def test_group_by_quality_merges_2160p_into_4k():
    rows = [torrent("a", quality="2160p"), torrent("b", quality="4K"), torrent("c", quality="")]
    groups = pipeline.group_by_quality(rows)
    assert sorted(groups) == ["4K", "unknown"]
    assert len(groups["4K"]) == 2


async def test_season_fallback_merges_matching_rows(service):
    first = {"Results": [
        row("m1", "Show (Сезон 1)", seasons=[1]),
        row("m2", "Show (Сезон 1) WEB", seasons=[1]),
        row("m3", "Show (Сезон 2)", seasons=[2]),
        row("m4", "Show (Сезон 3)", seasons=[3]),
    ]}
    follow_up = {"Results": [
        row("m2", "Show.S01.WEB-DL"),
        row("m5", "Show.S01.1080p"),
        row("m6", "Show.S04.1080p"),
    ]}
    service.redapi._get = AsyncMock(side_effect=[first, follow_up])
    service.tmdb.find.return_value.tv_results = [
        SimpleNamespace(name="Шоу", original_name="Show", first_air_date="2020-05-01")
    ]

    results = await service.search_by_imdb("tt123", "tv", TorrentSearchOptions(season=1), season_fallback=True)

    assert sorted(t.magnet for t in results) == ["m1", "m2", "m5"]
    assert all(pipeline.matches_season(t, 1) for t in results)
    first_query = dict(service.redapi._get.await_args_list[0].args[1])
    second_query = dict(service.redapi._get.await_args_list[1].args[1])
    assert first_query["season"] == "1"
    assert first_query["title_original"] == "Show"
    assert first_query["year"] == "2020"
    assert "season" not in second_query


async def test_search_by_imdb_leaves_caller_options_untouched(service):
    service.redapi._get = AsyncMock(return_value={"Results": [row("m1", "Show (Сезон 1)", seasons=[1])]})
    service.tmdb.find.return_value.tv_results = [
        SimpleNamespace(name="Шоу", original_name="Show", first_air_date="2020-05-01")
    ]
    options = TorrentSearchOptions(season=1)

    results = await service.search_by_imdb("tt123", "tv", options)

    assert [t.magnet for t in results] == ["m1"]
    assert options.content_type == ""
    assert options == TorrentSearchOptions(season=1)


async def test_no_fallback_query_for_large_result_sets(service):
    rows = {"Results": [row(f"m{i}", f"Show S01 part {i}", seasons=[1]) for i in range(6)]}
    service.redapi._get = AsyncMock(return_value=rows)

    results = await service.search_series("Шоу", "Show", "2020", season=1)

    assert len(results) == 6
    assert service.redapi._get.await_count == 1


async def test_torrent_route_reports_empty_result_as_404(client, providers):
    providers.tmdb._get = AsyncMock(return_value={"movie_results": [{"id": 1, "title": "Movie", "release_date": "2020-01-01"}]})
    providers.torrents.redapi._get = AsyncMock(return_value={"Results": []})

    resp = await client.get("/api/v1/torrents/search/tt0000001")

    assert resp.status_code == 404
    body = resp.json()
    assert body["error"] == "No torrents found for this IMDB ID"
    assert body["data"]["total"] == 0


async def test_torrent_route_groups_by_quality(client, providers):
    providers.tmdb._get = AsyncMock(return_value={"movie_results": [{"id": 1, "title": "Movie", "release_date": "2020-01-01"}]})
    providers.torrents.redapi._get = AsyncMock(return_value={"Results": [
        row("a", "Movie 2020 2160p HDR", quality="2160p", types=["movie"], seeders=3),
        row("b", "Movie 2020 1080p", quality="1080p", types=["movie"], seeders=8),
    ]})

    resp = await client.get("/api/v1/torrents/search/tt0000001", params={"groupByQuality": "true"})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["grouped"] is True
    assert set(data["groups"]) == {"4K", "1080p"}
    assert data["groups"]["1080p"][0]["magnet"] == "b"


async def test_torrent_title_search_requires_a_title(client):
    resp = await client.get("/api/v1/torrents/movies")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Title or original title is required"
