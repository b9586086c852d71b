"""Pure mapping functions from upstream payloads to the unified model.

Mappers never raise on odd input: missing fields become zero values, and
every produced entity carries a ``sourceId`` prefixed with its own source.
"""
from __future__ import annotations
import re

from app.schemas import kinopoisk as kp
from app.schemas import tmdb
from app.schemas.unified import (
    ExternalIds,
    UnifiedContent,
    UnifiedEpisode,
    UnifiedGenre,
    UnifiedSearchItem,
    UnifiedSeason,
)
from app.services.images import build_image_proxy_url

KP_TV_TYPES = {"TV_SERIES", "MINI_SERIES", "TV_SHOW"}

_YEAR_RE = re.compile(r"(\d{4})")


def genre_id(name: str, fallback: int | str = "") -> str:
    slug = name.strip().replace(" ", "-").lower()
    return slug or str(fallback)


def year_to_date(year: int | str | None) -> str:
    if isinstance(year, int):
        return f"{year:04d}-01-01" if year > 0 else ""
    match = _YEAR_RE.search(year or "")
    if not match or int(match.group(1)) == 0:
        return ""
    return f"{match.group(1)}-01-01"


def leading_year(date: str | None) -> int:
    """Leading 4 digits of a date string, else 0."""
    if date and len(date) >= 4 and date[:4].isdigit():
        return int(date[:4])
    return 0


def _tmdb_genres(genres: list[tmdb.Genre]) -> list[UnifiedGenre]:
    result = []
    for g in genres:
        name = g.name.strip()
        result.append(UnifiedGenre(id=genre_id(name, g.id), name=name))
    return result


def _first_country(countries: list[tmdb.ProductionCountry]) -> str:
    if not countries:
        return ""
    return countries[0].name.strip() or countries[0].iso_3166_1


def _positive(value: int) -> int | None:
    return value if value > 0 else None


def _tmdb_imdb(own: str, external: tmdb.ExternalIds | None) -> str:
    if external is not None and external.imdb_id:
        return external.imdb_id
    return own


def map_tmdb_movie(movie: tmdb.Movie, external: tmdb.ExternalIds | None = None) -> UnifiedContent:
    external = external or movie.external_ids
    imdb = _tmdb_imdb(movie.imdb_id, external)
    return UnifiedContent(
        id=str(movie.id),
        source_id=f"tmdb_{movie.id}",
        title=movie.title,
        original_title=movie.original_title,
        description=movie.overview,
        release_date=movie.release_date,
        end_date=None,
        type="movie",
        genres=_tmdb_genres(movie.genres),
        rating=movie.vote_average,
        poster_url=build_image_proxy_url(movie.poster_path, "w500"),
        backdrop_url=build_image_proxy_url(movie.backdrop_path, "w1280"),
        duration=movie.runtime,
        country=_first_country(movie.production_countries),
        language=movie.original_language,
        budget=_positive(movie.budget),
        revenue=_positive(movie.revenue),
        imdb_id=imdb,
        external_ids=ExternalIds(kp=None, tmdb=movie.id, imdb=imdb),
    )


def map_tmdb_season(season: tmdb.SeasonSummary) -> UnifiedSeason:
    return UnifiedSeason(
        id=str(season.id),
        source_id=f"tmdb_{season.id}",
        name=season.name,
        season_number=season.season_number,
        episode_count=season.episode_count,
        release_date=season.air_date,
        poster_url=build_image_proxy_url(season.poster_path, "w500"),
    )


def map_tmdb_season_details(details: tmdb.SeasonDetails) -> UnifiedSeason:
    episodes = [
        UnifiedEpisode(
            id=str(ep.id),
            source_id=f"tmdb_{ep.id}",
            name=ep.name,
            episode_number=ep.episode_number,
            season_number=ep.season_number or details.season_number,
            air_date=ep.air_date,
            duration=ep.runtime,
            description=ep.overview,
            still_url=build_image_proxy_url(ep.still_path, "w780"),
        )
        for ep in details.episodes
    ]
    return UnifiedSeason(
        id=str(details.id),
        source_id=f"tmdb_{details.id}",
        name=details.name,
        season_number=details.season_number,
        episode_count=len(episodes),
        release_date=details.air_date,
        poster_url=build_image_proxy_url(details.poster_path, "w500"),
        episodes=episodes,
    )


def map_tmdb_tv(show: tmdb.TVShow, external: tmdb.ExternalIds | None = None) -> UnifiedContent:
    external = external or show.external_ids
    imdb = _tmdb_imdb("", external)
    country = _first_country(show.production_countries)
    if not country and show.origin_country:
        country = show.origin_country[0]
    return UnifiedContent(
        id=str(show.id),
        source_id=f"tmdb_{show.id}",
        title=show.name,
        original_title=show.original_name,
        description=show.overview,
        release_date=show.first_air_date,
        end_date=show.last_air_date or None,
        type="tv",
        genres=_tmdb_genres(show.genres),
        rating=show.vote_average,
        poster_url=build_image_proxy_url(show.poster_path, "w500"),
        backdrop_url=build_image_proxy_url(show.backdrop_path, "w1280"),
        duration=show.episode_run_time[0] if show.episode_run_time else 0,
        country=country,
        language=show.original_language,
        imdb_id=imdb,
        external_ids=ExternalIds(kp=None, tmdb=show.id, imdb=imdb),
        seasons=[map_tmdb_season(s) for s in show.seasons],
    )


def map_tmdb_multi(page: tmdb.MultiPage) -> list[UnifiedSearchItem]:
    items = []
    for row in page.results:
        if row.media_type not in ("movie", "tv"):
            continue
        is_tv = row.media_type == "tv"
        items.append(
            UnifiedSearchItem(
                id=str(row.id),
                source_id=f"tmdb_{row.id}",
                title=row.name if is_tv else row.title,
                type=row.media_type,
                original_type=row.media_type,
                release_date=row.first_air_date if is_tv else row.release_date,
                poster_url=build_image_proxy_url(row.poster_path, "w500"),
                rating=row.vote_average,
                description=row.overview,
                external_ids=ExternalIds(tmdb=row.id),
            )
        )
    return items


def map_tmdb_movie_items(page: tmdb.MoviePage) -> list[UnifiedSearchItem]:
    return [
        UnifiedSearchItem(
            id=str(m.id),
            source_id=f"tmdb_{m.id}",
            title=m.title,
            type="movie",
            release_date=m.release_date,
            poster_url=build_image_proxy_url(m.poster_path, "w500"),
            rating=m.vote_average,
            description=m.overview,
            external_ids=ExternalIds(tmdb=m.id),
        )
        for m in page.results
    ]


def map_tmdb_tv_items(page: tmdb.TVPage) -> list[UnifiedSearchItem]:
    return [
        UnifiedSearchItem(
            id=str(s.id),
            source_id=f"tmdb_{s.id}",
            title=s.name,
            type="tv",
            release_date=s.first_air_date,
            poster_url=build_image_proxy_url(s.poster_path, "w500"),
            rating=s.vote_average,
            description=s.overview,
            external_ids=ExternalIds(tmdb=s.id),
        )
        for s in page.results
    ]


# Kinopoisk


def kp_media_type(kp_type: str, serial: bool | None = False) -> str:
    if kp_type.strip().upper() in KP_TV_TYPES or serial:
        return "tv"
    return "movie"


def detect_language(film: kp.KPFilm | kp.KPFilmShort) -> str:
    if film.name_ru:
        return "ru"
    if film.name_en:
        return "en"
    return "ru"


def kp_title(film: kp.KPFilm | kp.KPFilmShort) -> str:
    return film.name_ru or film.name_en or film.name_original


def kp_original_title(film: kp.KPFilm | kp.KPFilmShort) -> str:
    return film.name_original or film.name_en


def kp_short_id(film: kp.KPFilmShort) -> int:
    return film.kinopoisk_id or film.film_id


def kp_short_rating(film: kp.KPFilmShort) -> float:
    if film.rating_kinopoisk:
        return film.rating_kinopoisk
    text = film.rating.strip()
    # "97%" is an awaiting score, not a rating
    if not text or text.endswith("%"):
        return 0.0
    try:
        return float(text)
    except ValueError:
        return 0.0


def _kp_genres(genres: list[kp.KPGenre]) -> list[UnifiedGenre]:
    return [UnifiedGenre(id=genre_id(g.genre), name=g.genre.strip()) for g in genres if g.genre.strip()]


def kp_poster_url(kp_id: int, size: str = "kp_big") -> str:
    if kp_id <= 0:
        return ""
    return build_image_proxy_url(str(kp_id), size)


def map_kp_film(film: kp.KPFilm) -> UnifiedContent:
    media_type = kp_media_type(film.type, film.serial)
    release_year = film.start_year if media_type == "tv" and film.start_year else film.year
    content = UnifiedContent(
        id=str(film.kinopoisk_id),
        source_id=f"kp_{film.kinopoisk_id}",
        title=kp_title(film),
        original_title=kp_original_title(film),
        description=film.description or film.short_description,
        release_date=year_to_date(release_year),
        type=media_type,
        genres=_kp_genres(film.genres),
        rating=film.rating_kinopoisk,
        poster_url=kp_poster_url(film.kinopoisk_id),
        backdrop_url=build_image_proxy_url(film.cover_url, "w1280"),
        duration=film.film_length,
        country=film.countries[0].country if film.countries else "",
        language=detect_language(film),
        imdb_id=film.imdb_id,
        external_ids=ExternalIds(kp=film.kinopoisk_id, tmdb=None, imdb=film.imdb_id),
    )
    if media_type == "tv":
        content.end_date = year_to_date(film.end_year) or None
        content.seasons = []
    return content


def map_kp_search(films: list[kp.KPFilmShort]) -> list[UnifiedSearchItem]:
    items = []
    for film in films:
        kp_id = kp_short_id(film)
        if kp_id <= 0:
            continue
        items.append(
            UnifiedSearchItem(
                id=str(kp_id),
                source_id=f"kp_{kp_id}",
                title=film.name_ru or film.name_en or film.name_original,
                type=kp_media_type(film.type),
                original_type=film.type or None,
                release_date=year_to_date(film.year),
                poster_url=kp_poster_url(kp_id, "kp_small"),
                rating=kp_short_rating(film),
                description=film.description,
                external_ids=ExternalIds(kp=kp_id, imdb=film.imdb_id),
            )
        )
    return items
