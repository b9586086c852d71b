import pytest

from app.exceptions import InvalidInputError
from app.schemas import kinopoisk as kp
from app.schemas import tmdb
from app.schemas.types import flexible_float, flexible_int
from app.services import mappers
from app.services.catalog import (
    ContentId,
    category_slug,
    normalize_language,
    parse_content_id,
    select_source,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("326", ContentId(326)),
        ("kp_326", ContentId(326, "kp")),
        ("tmdb_278", ContentId(278, "tmdb")),
        ("KP_5", ContentId(5, "kp")),
    ],
)
def test_parse_content_id(raw, expected):
    assert parse_content_id(raw) == expected


@pytest.mark.parametrize("raw", ["", "abc", "imdb_1", "kp_", "kp_x", "0", "-4"])
def test_parse_content_id_rejects(raw):
    with pytest.raises(InvalidInputError):
        parse_content_id(raw)


@pytest.mark.parametrize(
    "lang,expected",
    [(None, "ru-RU"), ("", "ru-RU"), ("ru", "ru-RU"), ("RU-ru", "ru-RU"), ("'ru'", "ru-RU"), ("en", "en-US"), ("de", "en-US")],
)
def test_normalize_language(lang, expected):
    assert normalize_language(lang) == expected


def test_prefix_beats_explicit_source():
    assert select_source(ContentId(1, "tmdb"), "kp", "ru-RU", True) == "tmdb"


def test_explicit_source_beats_language():
    assert select_source(ContentId(1), "tmdb", "ru-RU", True) == "tmdb"
    assert select_source(ContentId(1), "kp", "en-US", True) == "kp"


def test_russian_prefers_kinopoisk_only_when_configured():
    assert select_source(ContentId(1), None, "ru-RU", True) == "kp"
    assert select_source(ContentId(1), None, "ru-RU", False) == "tmdb"
    assert select_source(ContentId(1), "", "en-US", True) == "tmdb"


def test_category_slug():
    assert category_slug("Science Fiction") == "science-fiction"
    assert category_slug("Боевик") == ""


def test_flexible_numbers():
    assert flexible_int("12.7") == 12
    assert flexible_int(None) == 0
    assert flexible_int("n/a") == 0
    assert flexible_float("97%") == 97.0
    assert flexible_float("") == 0.0


def test_kp_series_maps_to_tv_with_start_year():
    film = kp.KPFilm.model_validate({
        "kinopoiskId": 77044,
        "nameRu": "Друзья",
        "nameOriginal": "Friends",
        "type": "TV_SERIES",
        "year": 1994,
        "startYear": 1994,
        "endYear": 2004,
        "serial": True,
    })

    content = mappers.map_kp_film(film)

    assert content.type == "tv"
    assert content.release_date == "1994-01-01"
    assert content.end_date == "2004-01-01"
    assert content.seasons == []
    assert content.poster_url == "/api/v1/images/kp_big/77044"


def test_kp_short_rating_ignores_awaiting_score():
    row = kp.KPFilmShort.model_validate({"filmId": 1, "rating": "97%"})
    assert mappers.kp_short_rating(row) == 0.0
    row = kp.KPFilmShort.model_validate({"filmId": 1, "rating": "7.4"})
    assert mappers.kp_short_rating(row) == 7.4


def test_tmdb_movie_prefers_external_imdb_id():
    movie = tmdb.Movie.model_validate({
        "id": 603,
        "title": "The Matrix",
        "poster_path": "/poster.jpg",
        "budget": 0,
        "external_ids": {"imdb_id": "tt0133093"},
    })

    content = mappers.map_tmdb_movie(movie)

    assert content.imdb_id == "tt0133093"
    assert content.external_ids.tmdb == 603
    assert content.budget is None
    assert content.poster_url == "/api/v1/images/w500/poster.jpg"
    assert "seasons" not in content.model_dump(by_alias=True)


def test_tmdb_payload_tolerates_string_numbers():
    movie = tmdb.Movie.model_validate({"id": "603", "vote_average": "8.2", "runtime": None, "title": None})
    assert movie.id == 603
    assert movie.vote_average == 8.2
    assert movie.runtime == 0
    assert movie.title == ""
